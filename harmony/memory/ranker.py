from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Sequence

import numpy as np

from harmony.memory.store import Document


@dataclass
class ScoredDocument:
    document: Document
    score: float
    position: int  # index in the scanned sequence; breaks score ties


class SimilarityRanker:
    """Cosine similarity over a full scan. O(n * d) per query, no index."""

    def score(self, a: Sequence[float], b: Sequence[float]) -> float:
        va = np.asarray(a, dtype=np.float64)
        vb = np.asarray(b, dtype=np.float64)
        if va.shape != vb.shape:
            raise ValueError(f"Vector length mismatch: {va.shape[0]} != {vb.shape[0]}")

        norm_a = float(np.linalg.norm(va))
        norm_b = float(np.linalg.norm(vb))
        if norm_a == 0.0 or norm_b == 0.0:
            return 0.0

        value = float(np.dot(va, vb) / (norm_a * norm_b))
        if math.isnan(value):
            return 0.0
        # Rounding can push |value| a hair past 1
        return max(-1.0, min(1.0, value))

    def rank(
        self,
        query_vector: Sequence[float],
        documents: Sequence[Document],
        limit: int,
    ) -> List[ScoredDocument]:
        """Score every document and keep the best ``limit``.

        Sorted by score descending; equal scores keep insertion order.
        """
        if limit <= 0 or not documents:
            return []

        scored = [
            ScoredDocument(document=doc, score=self.score(query_vector, doc.vector), position=i)
            for i, doc in enumerate(documents)
        ]
        scored.sort(key=lambda item: (-item.score, item.position))
        return scored[:limit]
