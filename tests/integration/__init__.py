"""
Integration tests for the Harmony memory service.

These tests run against:
- A SQLite database file in a temporary directory (via aiosqlite)
- The FastAPI app through httpx's ASGI transport
- External embedding providers are replaced with deterministic fakes
"""
