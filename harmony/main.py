"""
Harmony Memory Service - FastAPI Application

Exposes the encrypted semantic memory to the chat front end:
- POST /memory/interactions  store one memory (awaited)
- POST /memory/exchanges     queue both sides of a chat turn (background)
- POST /memory/search        retrieve relevant memories + prompt context
- DELETE /memory             purge every memory

Run with:
    uvicorn harmony.main:app --port 8000
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from harmony.config import settings
from harmony.database.connection import engine, init_models
from harmony.database.kv import SqlKeyValueStore
from harmony.errors import KeyUnavailableError, ProviderError, StoreError
from harmony.memory.service import MemoryService, format_context
from harmony.memory.writer import BackgroundWriter
from harmony.utils.embeddings import OpenAIEmbeddingProvider
from harmony.utils.logging import get_logger
from schemas.memory import (
    ExchangeQueued,
    ExchangeRequest,
    InteractionRequest,
    InteractionStored,
    MemoryContextItem,
    PurgeResponse,
    SearchRequest,
    SearchResponse,
)

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = get_logger(__name__, category="system")
api_logger = get_logger(f"{__name__}.api", category="api")

app = FastAPI(
    title="Harmony Memory Service",
    description="Encrypted semantic memory for the Harmony assistant",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Created on startup; None means the memory subsystem is unavailable
memory_service: Optional[MemoryService] = None
memory_writer: Optional[BackgroundWriter] = None


def _require_service() -> MemoryService:
    if memory_service is None:
        raise HTTPException(status_code=503, detail="Memory service unavailable")
    return memory_service


def _to_http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, ProviderError):
        return HTTPException(status_code=502, detail="Embedding provider failed")
    if isinstance(exc, KeyUnavailableError):
        return HTTPException(status_code=503, detail="Encryption key unavailable")
    if isinstance(exc, StoreError):
        return HTTPException(status_code=503, detail="Memory store unavailable")
    return HTTPException(status_code=500, detail="Memory operation failed")


@app.post("/memory/interactions", response_model=InteractionStored)
async def add_interaction(request: InteractionRequest):
    service = _require_service()
    try:
        document = await service.add_interaction(request.text, request.type)
    except (ProviderError, KeyUnavailableError, StoreError) as exc:
        api_logger.error(f"Failed to store interaction: {exc}")
        raise _to_http_error(exc) from exc

    return InteractionStored(id=document.id, type=document.type, timestamp=document.timestamp)


@app.post("/memory/exchanges", response_model=ExchangeQueued, status_code=202)
async def record_exchange(request: ExchangeRequest):
    _require_service()
    if memory_writer is None or memory_writer.closed:
        raise HTTPException(status_code=503, detail="Memory writer unavailable")

    futures = await memory_writer.record_exchange(request.user_text, request.response_text)
    return ExchangeQueued(queued=len(futures), pending=memory_writer.pending)


@app.post("/memory/search", response_model=SearchResponse)
async def search_memory(request: SearchRequest):
    service = _require_service()
    limit = request.limit if request.limit is not None else settings.memory_default_limit
    min_score = (
        request.min_score if request.min_score is not None else settings.memory_min_score
    )

    try:
        contexts = await service.retrieve_context(request.query, limit=limit, min_score=min_score)
    except (ProviderError, KeyUnavailableError, StoreError) as exc:
        api_logger.error(f"Memory search failed: {exc}")
        raise _to_http_error(exc) from exc

    return SearchResponse(
        results=[
            MemoryContextItem(text=ctx.text, timestamp=ctx.timestamp, score=ctx.score)
            for ctx in contexts
        ],
        context=format_context(contexts),
    )


@app.delete("/memory", response_model=PurgeResponse)
async def purge_memory():
    service = _require_service()
    try:
        removed = await service.purge()
    except StoreError as exc:
        api_logger.error(f"Memory purge failed: {exc}")
        raise _to_http_error(exc) from exc

    logger.info(f"Creative vector memory purged ({removed} documents)")
    return PurgeResponse(purged=removed)


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "service": "harmony-memory",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "memory": {
            "available": memory_service is not None,
            "pending_writes": memory_writer.pending if memory_writer else 0,
        },
    }


@app.on_event("startup")
async def startup_event():
    """Create tables, the embedding provider, the service and the writer."""
    logger.info(f"Harmony memory service starting on {settings.host}:{settings.port}")

    global memory_service, memory_writer
    try:
        await init_models()
    except Exception as exc:
        logger.error(f"Failed to initialise memory database: {exc}")
        return

    try:
        embedder = OpenAIEmbeddingProvider()
    except Exception as exc:
        logger.warning(f"Embedding provider not configured, memory disabled: {exc}")
        return

    memory_service = MemoryService.from_backend(
        SqlKeyValueStore(), embedder, key_id=settings.memory_key_id
    )
    memory_writer = BackgroundWriter(
        memory_service,
        max_pending=settings.memory_write_queue_size,
        workers=settings.memory_writer_workers,
    )
    memory_writer.start()
    logger.info("Memory service ready")


@app.on_event("shutdown")
async def shutdown_event():
    """Drain queued writes before the database goes away."""
    logger.info("Harmony memory service shutting down")

    global memory_writer
    if memory_writer:
        try:
            await memory_writer.close()
        except Exception as exc:
            logger.error(f"Error draining memory writer: {exc}")

    await engine.dispose()
