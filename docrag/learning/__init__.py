"""
docrag Learning Module
======================

Feedback history and learned per-chunk scores.

Components:
    - Interaction: one query/answer exchange and its outcome
    - LearningStore: append-only log + EMA chunk scores, persisted to JSON
"""

from .models import Interaction
from .store import LearningStore, LearningStoreError

__all__ = [
    "Interaction",
    "LearningStore",
    "LearningStoreError",
]
