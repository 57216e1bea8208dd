"""
Category-aware logging utility for Harmony

Logs can be filtered by category (memory, security, store, api, system)
and log level (DEBUG, INFO, WARN, ERROR).

Usage:
    from harmony.utils.logging import get_logger

    logger = get_logger(__name__, category='memory')
    logger.info('Stored interaction %s', doc_id)

Plaintext memories and key material must never be passed to these loggers.
"""

import logging
from typing import List, Optional

from harmony.config import settings


# Log level hierarchy (lower number = more verbose)
LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def parse_categories(raw: Optional[str]) -> Optional[List[str]]:
    """Turn a comma-separated LOG_CATEGORIES value into a list (None = all)."""
    if not raw:
        return None
    categories = [cat.strip().lower() for cat in raw.split(",") if cat.strip()]
    return categories or None


_allowed_categories = parse_categories(settings.log_categories)


class CategoryFilter(logging.Filter):
    """Filter logs by category if LOG_CATEGORIES is set."""

    def __init__(
        self,
        category: Optional[str] = None,
        allowed: Optional[List[str]] = None,
    ):
        """
        Initialize category filter.

        Args:
            category: Category name for this logger (e.g., 'memory', 'security', 'store')
            allowed: Explicit allow-list; defaults to the configured LOG_CATEGORIES
        """
        super().__init__()
        self.category = category.lower() if category else "system"
        self.allowed = allowed if allowed is not None else _allowed_categories

    def filter(self, record: logging.LogRecord) -> bool:
        # If no category filter is set, show all logs
        if self.allowed is None:
            return True
        return self.category in self.allowed


def get_logger(name: str, category: Optional[str] = None) -> logging.Logger:
    """
    Get a logger with category filtering support.

    Args:
        name: Logger name (typically __name__)
        category: Category for filtering. If None, defaults to 'system'

    Returns:
        Logger instance with category filter applied
    """
    logger = logging.getLogger(name)

    log_level = LOG_LEVELS.get(settings.log_level.upper(), logging.INFO)
    logger.setLevel(log_level)

    # Remove existing category filters to avoid duplicates
    logger.filters = [f for f in logger.filters if not isinstance(f, CategoryFilter)]
    logger.addFilter(CategoryFilter(category))

    return logger
