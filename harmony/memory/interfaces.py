from __future__ import annotations

from typing import Any, List, Optional, Protocol


class EmbeddingTool(Protocol):
    async def __call__(self, text: str) -> List[float]:
        ...


class KeyValueStore(Protocol):
    """Namespaced async key-value backend.

    Every call is atomic on its own. Values are JSON-compatible objects.
    """

    async def get(self, namespace: str, key: str) -> Optional[Any]:
        ...

    async def put(self, namespace: str, key: str, value: Any) -> None:
        ...

    async def put_if_absent(self, namespace: str, key: str, value: Any) -> bool:
        """Insert only if ``key`` is free; True when this call inserted it."""
        ...

    async def get_all(self, namespace: str) -> List[Any]:
        """All values of a namespace in insertion order."""
        ...

    async def clear(self, namespace: str) -> int:
        ...
