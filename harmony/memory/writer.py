"""
Background memory writes.

Chat replies should not wait on embedding + persistence, but writes must not
vanish either. BackgroundWriter keeps a bounded queue of pending writes:

- submit() blocks while the queue is full, so nothing is dropped under load
- every write gets a Future that resolves to the stored Document or the error
- close() stops intake and waits until every accepted write has finished

The HTTP app calls close() on shutdown.
"""

from __future__ import annotations

import asyncio
from typing import List, Optional, Tuple

from harmony.memory.service import MemoryService
from harmony.memory.store import Document, DocumentType
from harmony.utils.logging import get_logger

logger = get_logger(__name__, category="memory")

_Job = Tuple[str, DocumentType, "asyncio.Future[Document]"]


def _consume_exception(future: "asyncio.Future[Document]") -> None:
    # Failures are already logged and counted; mark them retrieved so an
    # ignored future does not warn at garbage collection.
    if not future.cancelled():
        future.exception()


class BackgroundWriter:
    def __init__(
        self,
        service: MemoryService,
        max_pending: int = 100,
        workers: int = 1,
    ) -> None:
        if max_pending < 1 or workers < 1:
            raise ValueError("max_pending and workers must be positive")
        self.service = service
        self.max_pending = max_pending
        self.workers = workers
        self.completed_count = 0
        self.failed_count = 0
        self._queue: Optional[asyncio.Queue[Optional[_Job]]] = None
        self._tasks: List[asyncio.Task] = []
        self._closed = False

    @property
    def pending(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        """Spawn the worker tasks. Called lazily by submit() if needed."""
        if self._tasks:
            return
        if self._closed:
            raise RuntimeError("BackgroundWriter is closed")
        self._queue = asyncio.Queue(maxsize=self.max_pending)
        self._tasks = [
            asyncio.create_task(self._worker(i), name=f"memory-writer-{i}")
            for i in range(self.workers)
        ]
        logger.debug(f"Started {self.workers} memory writer(s)")

    async def submit(
        self, text: str, type: DocumentType = DocumentType.INTERACTION
    ) -> "asyncio.Future[Document]":
        """Queue a write and return a future tracking its completion."""
        if self._closed:
            raise RuntimeError("BackgroundWriter is closed; write rejected")
        self.start()
        future: asyncio.Future[Document] = asyncio.get_running_loop().create_future()
        future.add_done_callback(_consume_exception)
        await self._queue.put((text, type, future))
        return future

    async def record_exchange(
        self, user_text: str, response_text: str
    ) -> List["asyncio.Future[Document]"]:
        """Queue both sides of a chat turn."""
        futures = []
        for text in (user_text, response_text):
            if text and text.strip():
                futures.append(await self.submit(text, DocumentType.INTERACTION))
        return futures

    async def close(self) -> None:
        """Stop accepting writes and wait for every queued one to finish."""
        if self._closed:
            return
        self._closed = True
        if self._queue is None:
            return

        await self._queue.join()
        for _ in self._tasks:
            await self._queue.put(None)
        await asyncio.gather(*self._tasks)
        self._tasks = []
        logger.info(
            f"Memory writer drained: {self.completed_count} stored, {self.failed_count} failed"
        )

    async def _worker(self, index: int) -> None:
        queue = self._queue
        while True:
            job = await queue.get()
            try:
                if job is None:
                    return
                text, type, future = job
                try:
                    document = await self.service.add_interaction(text, type)
                except Exception as exc:  # noqa: BLE001 - delivered through the future
                    self.failed_count += 1
                    logger.error(f"Background memory write failed: {exc}")
                    if not future.done():
                        future.set_exception(exc)
                else:
                    self.completed_count += 1
                    if not future.done():
                        future.set_result(document)
            finally:
                queue.task_done()
