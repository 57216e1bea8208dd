"""
Memory API Schemas

Request/response models for the memory endpoints. Plaintext only ever
appears in requests and in search results; stored documents are never
returned raw.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional

from harmony.memory.store import DocumentType


class InteractionRequest(BaseModel):
    text: str = Field(..., min_length=1, description="Text to remember (PII is redacted before storage)")
    type: DocumentType = Field(DocumentType.INTERACTION, description="interaction or note")

    class Config:
        json_schema_extra = {
            "example": {"text": "Chorus idea: rain on a tin roof in D minor", "type": "note"}
        }


class InteractionStored(BaseModel):
    id: str
    type: DocumentType
    timestamp: datetime


class ExchangeRequest(BaseModel):
    user_text: str = Field(..., description="What the user said")
    response_text: str = Field(..., description="What the assistant replied")


class ExchangeQueued(BaseModel):
    queued: int = Field(..., description="Number of writes accepted into the background queue")
    pending: int = Field(..., description="Writes still waiting in the queue")


class SearchRequest(BaseModel):
    query: str = Field(..., min_length=1)
    limit: Optional[int] = Field(None, ge=1, le=50, description="Defaults to MEMORY_DEFAULT_LIMIT")
    min_score: Optional[float] = Field(None, ge=-1.0, le=1.0, description="Defaults to MEMORY_MIN_SCORE")


class MemoryContextItem(BaseModel):
    text: str
    timestamp: datetime
    score: float


class SearchResponse(BaseModel):
    results: List[MemoryContextItem]
    context: str = Field("", description="Prompt-ready block of the results")


class PurgeResponse(BaseModel):
    purged: int
