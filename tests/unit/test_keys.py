"""Unit tests for the persistent key lifecycle."""
import asyncio

import pytest

from harmony.database.kv import InMemoryKeyValueStore
from harmony.errors import KeyUnavailableError, StoreError
from harmony.security.cipher import CipherService, CryptoKey
from harmony.security.keys import KEY_NAMESPACE, KeyManager


class BrokenBackend(InMemoryKeyValueStore):
    async def get(self, namespace, key):
        raise StoreError("database is locked")


class ReadOnlyBackend(InMemoryKeyValueStore):
    async def put_if_absent(self, namespace, key, value):
        raise StoreError("disk full")


class LosingRaceBackend(InMemoryKeyValueStore):
    """First read misses, but another writer stores a key before our insert."""

    def __init__(self, winner: CryptoKey):
        super().__init__()
        self.winner = winner
        self.reads = 0

    async def get(self, namespace, key):
        self.reads += 1
        if self.reads == 1:
            return None
        return await super().get(namespace, key)

    async def put_if_absent(self, namespace, key, value):
        await super().put_if_absent(
            namespace, key, {"material": self.winner.export_material()}
        )
        return await super().put_if_absent(namespace, key, value)


@pytest.mark.unit
@pytest.mark.asyncio
class TestKeyManager:
    async def test_creates_and_persists_key(self, memory_backend):
        manager = KeyManager(memory_backend, key_id="k1")

        key = await manager.get_or_create_key()

        record = await memory_backend.get(KEY_NAMESPACE, "k1")
        assert record["material"] == key.export_material()
        assert "created_at" in record

    async def test_reuses_persisted_key_across_managers(self, memory_backend):
        first = await KeyManager(memory_backend).get_or_create_key()
        second = await KeyManager(memory_backend).get_or_create_key()

        assert first == second
        blob = CipherService().encrypt("remember me", first)
        assert CipherService().decrypt(blob, second) == "remember me"

    async def test_concurrent_callers_share_one_key(self, memory_backend):
        manager = KeyManager(memory_backend)

        keys = await asyncio.gather(*(manager.get_or_create_key() for _ in range(20)))

        assert all(k is keys[0] for k in keys)
        assert len(await memory_backend.get_all(KEY_NAMESPACE)) == 1

    async def test_racing_managers_converge_on_stored_key(self, memory_backend):
        a = KeyManager(memory_backend)
        b = KeyManager(memory_backend)

        key_a, key_b = await asyncio.gather(a.get_or_create_key(), b.get_or_create_key())

        assert key_a == key_b
        stored = await memory_backend.get(KEY_NAMESPACE, a.key_id)
        assert stored["material"] == key_a.export_material()

    async def test_lost_insert_uses_the_winning_key(self):
        winner = CryptoKey.generate("master-session-key")
        manager = KeyManager(LosingRaceBackend(winner))

        key = await manager.get_or_create_key()

        assert key == winner

    async def test_backend_read_failure_raises_key_unavailable(self):
        with pytest.raises(KeyUnavailableError):
            await KeyManager(BrokenBackend()).get_or_create_key()

    async def test_backend_write_failure_raises_key_unavailable(self):
        with pytest.raises(KeyUnavailableError):
            await KeyManager(ReadOnlyBackend()).get_or_create_key()

    async def test_malformed_record_raises_key_unavailable(self, memory_backend):
        await memory_backend.put(KEY_NAMESPACE, "master-session-key", {"material": "%%%"})

        with pytest.raises(KeyUnavailableError):
            await KeyManager(memory_backend).get_or_create_key()
