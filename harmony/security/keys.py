"""
Key lifecycle for the single persistent memory key.

The key is generated on first use and stored in the "keys" namespace of the
key-value backend under a fixed id. Two guards make first-use races safe:

1. An asyncio.Lock so concurrent callers in this process share one lookup
   (single flight) and then reuse the cached handle.
2. A create-if-absent write followed by a re-read, so if another writer got
   there first every caller converges on the key that actually persisted.

There is no rotation and no passphrase: losing the stored key makes every
existing document unreadable.
"""

from __future__ import annotations

import asyncio
import binascii
from datetime import datetime, timezone
from typing import Optional

from harmony.errors import KeyUnavailableError, StoreError
from harmony.memory.interfaces import KeyValueStore
from harmony.security.cipher import CryptoKey
from harmony.utils.logging import get_logger

logger = get_logger(__name__, category="security")

KEY_NAMESPACE = "keys"
DEFAULT_KEY_ID = "master-session-key"


class KeyManager:
    def __init__(self, backend: KeyValueStore, key_id: str = DEFAULT_KEY_ID) -> None:
        self.backend = backend
        self.key_id = key_id
        self._key: Optional[CryptoKey] = None
        self._lock = asyncio.Lock()

    async def get_or_create_key(self) -> CryptoKey:
        """Return the persisted key, generating and storing it on first use.

        Raises:
            KeyUnavailableError: the backend could not be read or written,
                or the stored record is unusable.
        """
        if self._key is not None:
            return self._key

        async with self._lock:
            if self._key is not None:
                return self._key

            try:
                record = await self.backend.get(KEY_NAMESPACE, self.key_id)
                if record is None:
                    candidate = CryptoKey.generate(self.key_id)
                    created = await self.backend.put_if_absent(
                        KEY_NAMESPACE,
                        self.key_id,
                        {
                            "material": candidate.export_material(),
                            "created_at": datetime.now(timezone.utc).isoformat(),
                        },
                    )
                    if created:
                        logger.info(f"Generated new memory key '{self.key_id}'")
                        self._key = candidate
                        return candidate

                    logger.info(
                        f"Memory key '{self.key_id}' was created concurrently; using stored key"
                    )
                    record = await self.backend.get(KEY_NAMESPACE, self.key_id)
            except StoreError as exc:
                raise KeyUnavailableError(
                    f"Key backend unavailable for '{self.key_id}': {exc}"
                ) from exc

            self._key = self._load(record)
            return self._key

    def _load(self, record: Optional[dict]) -> CryptoKey:
        if not record or "material" not in record:
            raise KeyUnavailableError(f"Stored key '{self.key_id}' is missing or malformed")
        try:
            return CryptoKey.from_material(self.key_id, record["material"])
        except (binascii.Error, ValueError, TypeError) as exc:
            raise KeyUnavailableError(f"Stored key '{self.key_id}' is unreadable") from exc
