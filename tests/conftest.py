import pytest

from harmony.database.kv import InMemoryKeyValueStore
from harmony.memory.service import MemoryService
from tests.unit.test_utils import FakeEmbedder


@pytest.fixture
def memory_backend():
    """Fresh in-memory key-value backend."""
    return InMemoryKeyValueStore()


@pytest.fixture
def fake_embedder():
    return FakeEmbedder()


@pytest.fixture
def memory_service(memory_backend, fake_embedder):
    """MemoryService wired to the in-memory backend and the fake embedder."""
    return MemoryService.from_backend(memory_backend, fake_embedder)
