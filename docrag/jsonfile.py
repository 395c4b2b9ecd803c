"""Durable JSON file writes shared by the chunk and learning stores."""

import json
import os
import tempfile


def atomic_write_json(path: str, payload, indent=None) -> None:
    """
    Write JSON to a temp file beside ``path`` and rename it into place.

    Readers never observe a half-written file; the parent directory is
    created if missing.
    """
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".tmp-", suffix=".json")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=indent, default=str)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise
