"""
Error taxonomy for the memory subsystem.

Every failure the core reports is one of these. None of them is retried
inside the core; callers decide what to do.
"""


class HarmonyError(Exception):
    """Base class for memory subsystem errors."""


class KeyUnavailableError(HarmonyError):
    """The encryption key could not be fetched or created."""


class DecryptionError(HarmonyError):
    """A stored blob failed authentication or could not be parsed."""


class ProviderError(HarmonyError):
    """The embedding provider failed or returned an unusable response."""


class StoreError(HarmonyError):
    """The persistence backend failed (including duplicate ids and quota)."""
