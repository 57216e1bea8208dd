"""
Security layer: AEAD cipher and key lifecycle
"""

from .cipher import CipherService, CryptoKey

__all__ = ["CipherService", "CryptoKey"]
