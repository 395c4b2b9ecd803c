"""
Learning Data Models
====================

One record per query/answer exchange reported by the agent.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Any

# RFC 3339 fractional seconds may carry up to nanosecond precision
_FRACTION = re.compile(r"\.(\d+)")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 / RFC 3339 timestamp, trimming fractions to microseconds."""
    text = value.replace("Z", "+00:00")
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    return datetime.fromisoformat(text)


@dataclass
class Interaction:
    """A single query/answer event and its outcome."""
    query: str
    response: str
    chunks_used: List[str] = field(default_factory=list)
    successful: bool = False
    timestamp: datetime = field(default_factory=_utcnow)
    context: Dict[str, str] = field(default_factory=dict)

    # Filled in by LearningStore.record_interaction: chunk_id -> new score
    feedback_applied: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query": self.query,
            "response": self.response,
            "chunksUsed": list(self.chunks_used),
            "successful": self.successful,
            "timestamp": self.timestamp.isoformat(),
            "context": dict(self.context),
            "feedbackApplied": dict(self.feedback_applied),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Interaction":
        timestamp = data.get("timestamp")
        if isinstance(timestamp, str):
            timestamp = parse_timestamp(timestamp)
        elif timestamp is None:
            timestamp = _utcnow()
        else:
            raise ValueError(f"invalid interaction timestamp: {timestamp!r}")

        return cls(
            query=data.get("query", ""),
            response=data.get("response", ""),
            chunks_used=list(data.get("chunksUsed") or []),
            successful=bool(data.get("successful", False)),
            timestamp=timestamp,
            context=dict(data.get("context") or {}),
            feedback_applied={k: float(v) for k, v in (data.get("feedbackApplied") or {}).items()},
        )
