from __future__ import annotations

import asyncio
import hashlib
import random
from collections import OrderedDict
from typing import List, Optional

from openai import OpenAI
from openai import APIError, RateLimitError, APITimeoutError, APIConnectionError

from harmony.config import settings
from harmony.errors import ProviderError
from harmony.utils.logging import get_logger

logger = get_logger(__name__, category="memory")


class _LRU:
    def __init__(self, max_entries: int = 5000) -> None:
        self.max = max_entries
        self.data: OrderedDict[str, List[float]] = OrderedDict()

    def get(self, key: str) -> Optional[List[float]]:
        value = self.data.pop(key, None)
        if value is not None:
            # re-insert to mark as most-recently used
            self.data[key] = value
        return value

    def set(self, key: str, value: List[float]) -> None:
        if self.max <= 0:
            return
        if key in self.data:
            self.data.pop(key)
        self.data[key] = value
        if len(self.data) > self.max:
            # evict least-recently used
            self.data.popitem(last=False)


def _cache_key(model: str, text: str) -> str:
    return hashlib.sha256((model + "\n" + text).encode("utf-8")).hexdigest()


class OpenAIEmbeddingProvider:
    """Embedding adapter for any OpenAI-compatible /embeddings endpoint.

    Callable as ``await provider(text)`` so it satisfies ``EmbeddingTool``.
    Every failure leaves as ProviderError; the memory core never retries.
    """

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        dimension: Optional[int] = None,
        base_url: Optional[str] = None,
        max_attempts: Optional[int] = None,
        cache_size: Optional[int] = None,
        client: Optional[OpenAI] = None,
    ) -> None:
        self.model = model or settings.embedding_model
        self.dimension = dimension if dimension is not None else settings.embedding_dim
        self.max_attempts = max(1, max_attempts or settings.embedding_max_attempts)
        self._cache = _LRU(cache_size if cache_size is not None else settings.embedding_cache_size)
        base_url = base_url or settings.embedding_base_url
        api_key = api_key or settings.openai_api_key
        if api_key is None and base_url:
            # Local OpenAI-compatible servers (e.g. Ollama) ignore the key
            api_key = "local"
        self._client = client or OpenAI(api_key=api_key, base_url=base_url)

    async def __call__(self, text: str) -> List[float]:
        return await self.embed_text(text)

    async def embed_text(self, text: str) -> List[float]:
        """Embed a single piece of text, with LRU caching."""
        key = _cache_key(self.model, text)
        cached = self._cache.get(key)
        if cached is not None:
            return list(cached)

        vector = await self._request(text)
        self._cache.set(key, vector)
        return list(vector)

    async def _request(self, text: str) -> List[float]:
        delay_seconds = 0.5
        for attempt in range(self.max_attempts):
            try:
                # The OpenAI client is synchronous; run in a thread to avoid blocking.
                response = await asyncio.to_thread(
                    self._client.embeddings.create, model=self.model, input=[text]
                )
            except (RateLimitError, APITimeoutError, APIConnectionError) as exc:
                if attempt == self.max_attempts - 1:
                    raise ProviderError(f"Embedding request failed: {exc}") from exc
                logger.warning(
                    f"Embedding attempt {attempt + 1}/{self.max_attempts} failed: {exc}"
                )
                # Exponential backoff with jitter
                await asyncio.sleep(delay_seconds + random.random() * 0.25)
                delay_seconds *= 2
                continue
            except APIError as exc:
                raise ProviderError(f"Embedding request rejected: {exc}") from exc

            return self._validate(response)

        raise ProviderError("Embedding request made no attempts")

    def _validate(self, response) -> List[float]:  # type: ignore[no-untyped-def]
        data = getattr(response, "data", None)
        if not data:
            raise ProviderError("Invalid embedding response structure")
        vector = [float(v) for v in data[0].embedding]
        if len(vector) != self.dimension:
            raise ProviderError(
                f"Unexpected embedding dimension: {len(vector)} != {self.dimension}"
            )
        return vector
