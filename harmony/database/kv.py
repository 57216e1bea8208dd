"""
Key-Value Backends

Two implementations of the KeyValueStore interface:
- SqlKeyValueStore: SQLAlchemy async sessions over the kv_entries table
  (embedded SQLite file by default, PostgreSQL also supported)
- InMemoryKeyValueStore: process-local dicts, for tests and ephemeral use

Each call runs in its own transaction, so a single put/clear either fully
commits or leaves the store untouched.
"""

from __future__ import annotations

import asyncio
import copy
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from harmony.database.connection import SessionLocal
from harmony.database.models import KeyValueEntry
from harmony.errors import StoreError
from harmony.utils.logging import get_logger

logger = get_logger(__name__, category="store")


def _dialect_insert(dialect_name: str):
    """Return the dialect-specific insert() that supports ON CONFLICT."""
    if dialect_name == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    elif dialect_name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    else:
        raise StoreError(f"Unsupported database dialect: {dialect_name}")
    return insert


class SqlKeyValueStore:
    def __init__(
        self, session_factory: Optional[async_sessionmaker[AsyncSession]] = None
    ) -> None:
        self.session_factory: async_sessionmaker[AsyncSession] = (
            session_factory or SessionLocal
        )

    async def get(self, namespace: str, key: str) -> Optional[Any]:
        stmt = select(KeyValueEntry.value).where(
            KeyValueEntry.namespace == namespace, KeyValueEntry.key == key
        )
        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                return result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to read {namespace}/{key}: {exc}") from exc

    async def put(self, namespace: str, key: str, value: Any) -> None:
        try:
            async with self.session_factory() as session:
                insert = _dialect_insert(session.get_bind().dialect.name)
                stmt = insert(KeyValueEntry).values(
                    namespace=namespace, key=key, value=value
                )
                stmt = stmt.on_conflict_do_update(
                    index_elements=["namespace", "key"],
                    set_={"value": stmt.excluded.value},
                )
                await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to write {namespace}/{key}: {exc}") from exc

    async def put_if_absent(self, namespace: str, key: str, value: Any) -> bool:
        try:
            async with self.session_factory() as session:
                insert = _dialect_insert(session.get_bind().dialect.name)
                stmt = (
                    insert(KeyValueEntry)
                    .values(namespace=namespace, key=key, value=value)
                    .on_conflict_do_nothing(index_elements=["namespace", "key"])
                    .returning(KeyValueEntry.seq)
                )
                result = await session.execute(stmt)
                inserted = result.scalar_one_or_none() is not None
                await session.commit()
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to insert {namespace}/{key}: {exc}") from exc

        if not inserted:
            logger.debug(f"Key {namespace}/{key} already present; insert skipped")
        return inserted

    async def get_all(self, namespace: str) -> List[Any]:
        stmt = (
            select(KeyValueEntry.value)
            .where(KeyValueEntry.namespace == namespace)
            .order_by(KeyValueEntry.seq)
        )
        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                return list(result.scalars().all())
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to scan {namespace}: {exc}") from exc

    async def clear(self, namespace: str) -> int:
        stmt = delete(KeyValueEntry).where(KeyValueEntry.namespace == namespace)
        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to clear {namespace}: {exc}") from exc
        # rowcount can be -1 with some drivers; coerce to int >= 0
        count = result.rowcount if result.rowcount is not None else 0
        return max(int(count), 0)


class InMemoryKeyValueStore:
    """Dict-backed store. ``max_entries`` caps each namespace like a quota."""

    def __init__(self, max_entries: Optional[int] = None) -> None:
        self.max_entries = max_entries
        self._data: Dict[str, Dict[str, Any]] = {}
        self._lock = asyncio.Lock()

    def _check_capacity(self, bucket: Dict[str, Any], namespace: str) -> None:
        if self.max_entries is not None and len(bucket) >= self.max_entries:
            raise StoreError(
                f"Capacity exceeded for {namespace}: limit is {self.max_entries} entries"
            )

    async def get(self, namespace: str, key: str) -> Optional[Any]:
        async with self._lock:
            value = self._data.get(namespace, {}).get(key)
            return copy.deepcopy(value)

    async def put(self, namespace: str, key: str, value: Any) -> None:
        async with self._lock:
            bucket = self._data.setdefault(namespace, {})
            if key not in bucket:
                self._check_capacity(bucket, namespace)
            bucket[key] = copy.deepcopy(value)

    async def put_if_absent(self, namespace: str, key: str, value: Any) -> bool:
        async with self._lock:
            bucket = self._data.setdefault(namespace, {})
            if key in bucket:
                return False
            self._check_capacity(bucket, namespace)
            bucket[key] = copy.deepcopy(value)
            return True

    async def get_all(self, namespace: str) -> List[Any]:
        async with self._lock:
            return [copy.deepcopy(v) for v in self._data.get(namespace, {}).values()]

    async def clear(self, namespace: str) -> int:
        async with self._lock:
            removed = self._data.pop(namespace, {})
            return len(removed)
