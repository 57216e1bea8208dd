"""Test utilities and helpers."""
import asyncio
import hashlib
from typing import List

import numpy as np

from harmony.errors import ProviderError


# Small dimension keeps the fake embedder fast
TEST_EMBEDDING_DIM = 64


def create_test_embedding(dim=TEST_EMBEDDING_DIM, seed=None):
    """Create a deterministic, unit-length test embedding vector.

    Args:
        dim: Dimension of the embedding (default: 64)
        seed: Random seed for reproducibility (default: None)

    Returns:
        List of floats representing an embedding vector
    """
    rng = np.random.default_rng(seed)
    vec = rng.random(dim)
    vec = vec / np.linalg.norm(vec)
    return vec.tolist()


class FakeEmbedder:
    """Bag-of-words hashing embedder: identical texts give identical vectors."""

    def __init__(self, dim: int = TEST_EMBEDDING_DIM) -> None:
        self.dim = dim
        self.calls: List[str] = []

    async def __call__(self, text: str) -> List[float]:
        self.calls.append(text)
        vec = np.zeros(self.dim)
        for token in text.lower().split():
            index = int(hashlib.sha256(token.encode("utf-8")).hexdigest(), 16) % self.dim
            vec[index] += 1.0
        return vec.tolist()


class FailingEmbedder:
    def __init__(self) -> None:
        self.calls = 0

    async def __call__(self, text: str) -> List[float]:
        self.calls += 1
        raise ProviderError("embedding backend offline")


class GatedEmbedder(FakeEmbedder):
    """Blocks every call until ``release()`` is called."""

    def __init__(self, dim: int = TEST_EMBEDDING_DIM) -> None:
        super().__init__(dim)
        self.gate = asyncio.Event()

    def release(self) -> None:
        self.gate.set()

    async def __call__(self, text: str) -> List[float]:
        await self.gate.wait()
        return await super().__call__(text)
