"""
docrag FastAPI Application
==========================

Endpoints:
    GET  /api/health          - Health check
    POST /api/docs/search     - Search documentation
    POST /api/docs/feedback   - Record answer outcome

Usage:
    uvicorn docrag.api.main:app --port 8000

    Or:
    python -m docrag.api.main
"""

import logging
import os

from fastapi import FastAPI

from ..config import get_settings
from ..logging_config import setup_logging_from_settings
from .routes import router as docs_router

logger = logging.getLogger(__name__)

app = FastAPI(
    title="docrag API",
    description="Documentation retrieval and feedback learning",
    version="0.1.0",
)

app.include_router(docs_router)


@app.get("/api/health")
def health_check():
    """Liveness plus whether the stores are where configuration says."""
    settings = get_settings()
    return {
        "status": "healthy",
        "store_path": settings.storage.store_path,
        "store_present": os.path.exists(settings.storage.store_path),
        "embedding": "configured" if settings.embedding.api_key else "not_configured",
    }


if __name__ == "__main__":
    import uvicorn

    setup_logging_from_settings(get_settings())
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
