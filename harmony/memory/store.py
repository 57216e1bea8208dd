"""
Memory Store

Append-only persistence for encrypted memory documents. There is no update
and no single-record delete; the only mutations are add and bulk clear.
Retrieval is a full scan in insertion order, which is the accepted scale
ceiling for a single-user local store.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from harmony.database.kv import SqlKeyValueStore
from harmony.errors import StoreError
from harmony.memory.interfaces import KeyValueStore
from harmony.utils.logging import get_logger

logger = get_logger(__name__, category="store")

DOCUMENT_NAMESPACE = "documents"
META_NAMESPACE = "meta"
DIMENSION_KEY = "vector_dimension"


class DocumentType(str, Enum):
    INTERACTION = "interaction"
    NOTE = "note"


@dataclass(frozen=True)
class Document:
    encrypted_content: str
    vector: Tuple[float, ...]
    type: DocumentType = DocumentType.INTERACTION
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def create(
        cls,
        encrypted_content: str,
        vector: Sequence[float],
        type: DocumentType = DocumentType.INTERACTION,
    ) -> "Document":
        return cls(
            encrypted_content=encrypted_content,
            vector=tuple(float(v) for v in vector),
            type=DocumentType(type),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "encrypted_content": self.encrypted_content,
            "vector": list(self.vector),
            "timestamp": self.timestamp.isoformat(),
            "type": self.type.value,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Document":
        return cls(
            id=record["id"],
            encrypted_content=record["encrypted_content"],
            vector=tuple(float(v) for v in record["vector"]),
            timestamp=datetime.fromisoformat(record["timestamp"]),
            type=DocumentType(record["type"]),
        )


class MemoryStore:
    def __init__(self, backend: Optional[KeyValueStore] = None) -> None:
        self.backend: KeyValueStore = backend or SqlKeyValueStore()

    async def add(self, document: Document) -> None:
        """Insert an immutable document.

        The first document fixes the vector dimension of the store; later
        documents must match it.

        Raises:
            StoreError: duplicate id, dimension mismatch or backend failure.
                Not retried.
        """
        await self._check_dimension(len(document.vector))
        inserted = await self.backend.put_if_absent(
            DOCUMENT_NAMESPACE, document.id, document.to_record()
        )
        if not inserted:
            raise StoreError(f"Document {document.id} already exists")
        logger.debug(f"Stored document {document.id} ({document.type.value})")

    async def dimension(self) -> Optional[int]:
        """Vector dimension recorded by the first write, or None if unset."""
        record = await self.backend.get(META_NAMESPACE, DIMENSION_KEY)
        if record is None:
            return None
        try:
            return int(record["dimension"])
        except (KeyError, TypeError, ValueError) as exc:
            raise StoreError(f"Unreadable dimension record: {exc}") from exc

    async def _check_dimension(self, size: int) -> None:
        if size < 1:
            raise StoreError("Document vector is empty")
        await self.backend.put_if_absent(META_NAMESPACE, DIMENSION_KEY, {"dimension": size})
        expected = await self.dimension()
        if expected != size:
            raise StoreError(
                f"Vector dimension {size} does not match store dimension {expected}"
            )

    async def get_all(self) -> List[Document]:
        """Every readable document in insertion order.

        Structurally broken records are logged and skipped.
        """
        records = await self.backend.get_all(DOCUMENT_NAMESPACE)
        documents: List[Document] = []
        for record in records:
            try:
                documents.append(Document.from_record(record))
            except (KeyError, TypeError, ValueError) as exc:
                record_id = record.get("id") if isinstance(record, dict) else None
                logger.error(f"Skipping unreadable document record {record_id}: {exc}")
        return documents

    async def clear(self) -> int:
        removed = await self.backend.clear(DOCUMENT_NAMESPACE)
        await self.backend.clear(META_NAMESPACE)
        logger.info(f"Cleared {removed} memory documents")
        return removed
