"""
docrag
======

Retrieval and feedback-learning engine for a documentation-grounded
command-line assistant.

Subpackages:
    - rag: markdown chunking, embeddings, chunk store and search, ingestion
    - learning: interaction history and learned chunk scores
    - api: HTTP surface used by the agent
"""

__version__ = "0.1.0"
