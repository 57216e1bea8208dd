"""
AEAD encryption for memory contents.

Blob format (the only binary format this package defines):

    base64( 12-byte nonce || ciphertext || 16-byte GCM tag )

A fresh random nonce is drawn for every call, so encrypting the same text
twice under the same key never yields the same blob.
"""

from __future__ import annotations

import base64
import binascii
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from harmony.errors import DecryptionError

NONCE_SIZE = 12
TAG_SIZE = 16
KEY_SIZE_BITS = 256


class CryptoKey:
    """Opaque AES-256-GCM key handle.

    The raw bytes stay inside this object; ``repr`` only shows the key id.
    """

    __slots__ = ("key_id", "_material", "_aead")

    def __init__(self, key_id: str, material: bytes) -> None:
        if len(material) * 8 != KEY_SIZE_BITS:
            raise ValueError(f"Expected a {KEY_SIZE_BITS}-bit key, got {len(material) * 8} bits")
        self.key_id = key_id
        self._material = bytes(material)
        self._aead = AESGCM(self._material)

    @classmethod
    def generate(cls, key_id: str) -> "CryptoKey":
        return cls(key_id, AESGCM.generate_key(bit_length=KEY_SIZE_BITS))

    def export_material(self) -> str:
        """Base64 key material, for persisting through KeyManager only."""
        return base64.b64encode(self._material).decode("ascii")

    @classmethod
    def from_material(cls, key_id: str, encoded: str) -> "CryptoKey":
        return cls(key_id, base64.b64decode(encoded, validate=True))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CryptoKey):
            return NotImplemented
        return self.key_id == other.key_id and self._material == other._material

    def __hash__(self) -> int:
        return hash((self.key_id, self._material))

    def __repr__(self) -> str:
        return f"CryptoKey(key_id={self.key_id!r})"


class CipherService:
    """Stateless encrypt/decrypt primitives over a :class:`CryptoKey`."""

    def encrypt(self, plaintext: str, key: CryptoKey) -> str:
        nonce = os.urandom(NONCE_SIZE)
        sealed = key._aead.encrypt(nonce, plaintext.encode("utf-8"), None)
        return base64.b64encode(nonce + sealed).decode("ascii")

    def decrypt(self, blob: str, key: CryptoKey) -> str:
        """Verify and decrypt a blob produced by :meth:`encrypt`.

        Raises:
            DecryptionError: wrong key, tampered or truncated data, or
                anything that is not a well-formed blob.
        """
        try:
            raw = base64.b64decode(blob, validate=True)
        except (binascii.Error, ValueError, TypeError) as exc:
            raise DecryptionError("Blob is not valid base64") from exc

        if len(raw) < NONCE_SIZE + TAG_SIZE:
            raise DecryptionError(
                f"Blob too short: {len(raw)} bytes, need at least {NONCE_SIZE + TAG_SIZE}"
            )

        nonce, sealed = raw[:NONCE_SIZE], raw[NONCE_SIZE:]
        try:
            plaintext = key._aead.decrypt(nonce, sealed, None)
        except InvalidTag as exc:
            raise DecryptionError("Authentication tag did not verify") from exc

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecryptionError("Decrypted payload is not UTF-8") from exc
