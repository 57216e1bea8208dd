"""
Memory Service

Orchestrates the encrypted semantic memory:

Write path: text -> redact -> {embed, encrypt} concurrently -> Document -> store
Read path:  query -> redact -> embed -> full scan -> rank -> threshold -> decrypt

The service owns its key manager and store; nothing here is a module-level
singleton. Failures propagate unchanged except per-record decryption errors
during retrieval, which turn into a placeholder entry.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence

from harmony.errors import DecryptionError, ProviderError
from harmony.memory.interfaces import EmbeddingTool, KeyValueStore
from harmony.memory.ranker import SimilarityRanker
from harmony.memory.store import Document, DocumentType, MemoryStore
from harmony.security.cipher import CipherService
from harmony.security.keys import DEFAULT_KEY_ID, KeyManager
from harmony.utils.logging import get_logger
from harmony.utils.redaction import RedactionFilter

logger = get_logger(__name__, category="memory")

ENCRYPTED_PLACEHOLDER = "[Encrypted Memory]"
CONTEXT_HEADER = "[System Context - Relevant Creative Memories]:"


@dataclass
class MemoryContext:
    text: str
    timestamp: datetime
    score: float


def format_context(contexts: Sequence[MemoryContext]) -> str:
    """Render retrieved memories as the block appended to a chat prompt."""
    if not contexts:
        return ""
    lines = [f"- [Date: {ctx.timestamp.date().isoformat()}] {ctx.text}" for ctx in contexts]
    return "\n\n" + CONTEXT_HEADER + "\n" + "\n".join(lines)


class MemoryService:
    def __init__(
        self,
        *,
        embedder: EmbeddingTool,
        store: Optional[MemoryStore] = None,
        key_manager: Optional[KeyManager] = None,
        cipher: Optional[CipherService] = None,
        ranker: Optional[SimilarityRanker] = None,
        redactor: Optional[RedactionFilter] = None,
    ) -> None:
        self.embedder = embedder
        self.store = store or MemoryStore()
        self.key_manager = key_manager or KeyManager(self.store.backend)
        self.cipher = cipher or CipherService()
        self.ranker = ranker or SimilarityRanker()
        self.redactor = redactor or RedactionFilter()

    @classmethod
    def from_backend(
        cls,
        backend: KeyValueStore,
        embedder: EmbeddingTool,
        key_id: str = DEFAULT_KEY_ID,
    ) -> "MemoryService":
        """Build a service whose documents and key share one backend."""
        return cls(
            embedder=embedder,
            store=MemoryStore(backend),
            key_manager=KeyManager(backend, key_id=key_id),
        )

    async def add_interaction(
        self, text: str, type: DocumentType = DocumentType.INTERACTION
    ) -> Document:
        """Redact, embed and encrypt ``text``, then persist it.

        All-or-nothing: if the key, the embedding or the encryption fails,
        nothing is written and the error propagates.
        """
        clean = self.redactor.redact(text) or ""
        key = await self.key_manager.get_or_create_key()

        vector, encrypted = await asyncio.gather(
            self.embedder(clean),
            asyncio.to_thread(self.cipher.encrypt, clean, key),
        )

        document = Document.create(encrypted, vector, type)
        await self.store.add(document)
        logger.info(f"Stored {document.type.value} memory {document.id}")
        return document

    async def retrieve_context(
        self, query: str, limit: int = 3, min_score: float = 0.0
    ) -> List[MemoryContext]:
        """Return up to ``limit`` decrypted memories scoring at least ``min_score``.

        A record that fails to decrypt comes back as a placeholder entry
        instead of aborting the whole retrieval.
        """
        clean = self.redactor.redact(query) or ""
        query_vector = await self.embedder(clean)
        documents = await self.store.get_all()
        if not documents:
            return []

        size = len(query_vector)
        expected = await self.store.dimension()
        if expected is not None and size != expected:
            raise ProviderError(
                f"Query embedding has dimension {size}, store holds {expected}"
            )
        comparable = [doc for doc in documents if len(doc.vector) == size]
        if len(comparable) != len(documents):
            logger.warning(
                f"Skipping {len(documents) - len(comparable)} memories with a vector "
                f"dimension other than {size}"
            )

        ranked = self.ranker.rank(query_vector, comparable, limit)
        survivors = [item for item in ranked if item.score >= min_score]
        if not survivors:
            return []

        key = await self.key_manager.get_or_create_key()
        results: List[MemoryContext] = []
        for item in survivors:
            doc = item.document
            try:
                text = self.cipher.decrypt(doc.encrypted_content, key)
            except DecryptionError as exc:
                logger.error(f"Decryption failed for memory {doc.id}: {exc}")
                text = ENCRYPTED_PLACEHOLDER
            results.append(MemoryContext(text=text, timestamp=doc.timestamp, score=item.score))

        logger.debug(
            f"Retrieved {len(results)} memories from {len(documents)} documents "
            f"(limit={limit}, min_score={min_score})"
        )
        return results

    async def purge(self) -> int:
        """Delete every stored memory."""
        return await self.store.clear()
