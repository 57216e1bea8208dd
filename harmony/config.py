"""
Configuration Management

All settings load from environment variables (or a local .env file) through
Pydantic Settings, so types are converted and validated once at startup.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """
    Application Settings

    Variable names match field names (case-insensitive), e.g. DATABASE_URL,
    MEMORY_MIN_SCORE.
    """

    log_level: str = "INFO"
    log_categories: Optional[str] = None  # Comma-separated categories (memory,security,store,api,system). If None, show all logs.
    port: int = 8000
    host: str = "127.0.0.1"

    # Persistence (embedded SQLite file by default; postgresql+asyncpg URLs also work)
    database_url: str = "sqlite+aiosqlite:///./harmony_memory.db"

    # Embedding provider
    openai_api_key: Optional[str] = None
    embedding_model: str = "text-embedding-3-small"
    embedding_dim: int = 1536
    embedding_base_url: Optional[str] = None  # Any OpenAI-compatible server, e.g. http://localhost:11434/v1
    embedding_max_attempts: int = 3
    embedding_cache_size: int = 5000

    # Memory behaviour
    memory_key_id: str = "master-session-key"
    memory_default_limit: int = 3
    memory_min_score: float = 0.65
    memory_write_queue_size: int = 100
    memory_writer_workers: int = 1

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"  # Allow extra env vars without validation errors


# Loaded once when the module is imported
settings = Settings()
