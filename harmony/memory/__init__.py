"""
Memory layer: encrypted document store, similarity ranking and the service facade
"""

from .store import Document, DocumentType, MemoryStore
from .ranker import ScoredDocument, SimilarityRanker

__all__ = ["Document", "DocumentType", "MemoryStore", "ScoredDocument", "SimilarityRanker"]
