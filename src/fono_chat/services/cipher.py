# src/fono_chat/services/cipher.py
"""Authenticated encryption of chat message bodies."""

from __future__ import annotations

import os
from dataclasses import dataclass

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from fono_chat.core.errors import DecryptionError

KEY_LENGTH_BYTES = 32
IV_LENGTH_BYTES = 16
TAG_LENGTH_BYTES = 16


class CipherKeyError(ValueError):
    """Raised when the configured encryption key is unusable."""


@dataclass(frozen=True)
class EncryptedPayload:
    """Output of one encryption call, stored verbatim by the message store."""

    iv: bytes
    ciphertext: bytes
    tag: bytes


@dataclass(frozen=True)
class Decrypted:
    content: str


@dataclass(frozen=True)
class DecryptFailed:
    reason: str


DecryptResult = Decrypted | DecryptFailed


def load_key(key_hex: str) -> bytes:
    """Decode and validate a hex encoded AES-256 key.

    Raises:
        CipherKeyError: If the value is not hex or not exactly 32 bytes long.
    """
    try:
        key = bytes.fromhex(key_hex.strip())
    except ValueError as err:
        raise CipherKeyError("ENCRYPTION_KEY must be hex encoded") from err
    if len(key) != KEY_LENGTH_BYTES:
        raise CipherKeyError("ENCRYPTION_KEY must be a 32-byte (256-bit) key.")
    return key


class CipherEngine:
    """AES-256-GCM with a fresh random 16-byte IV per message.

    The engine is built once at startup and is the only holder of the raw key.
    """

    def __init__(self, key: bytes) -> None:
        if len(key) != KEY_LENGTH_BYTES:
            raise CipherKeyError("ENCRYPTION_KEY must be a 32-byte (256-bit) key.")
        self._aead = AESGCM(key)

    @classmethod
    def from_hex(cls, key_hex: str) -> CipherEngine:
        return cls(load_key(key_hex))

    def encrypt(self, plaintext: str) -> EncryptedPayload:
        """Encrypt a UTF-8 string.

        Args:
            plaintext: Message body to protect

        Returns:
            The IV, ciphertext and 16-byte authentication tag
        """
        iv = os.urandom(IV_LENGTH_BYTES)
        sealed = self._aead.encrypt(iv, plaintext.encode("utf-8"), None)
        return EncryptedPayload(
            iv=iv,
            ciphertext=sealed[:-TAG_LENGTH_BYTES],
            tag=sealed[-TAG_LENGTH_BYTES:],
        )

    def decrypt(self, payload: EncryptedPayload) -> str:
        """Verify the tag and return the plaintext.

        Raises:
            DecryptionError: If the tag does not verify, the IV or tag has the
                wrong length, or the recovered bytes are not UTF-8.
        """
        if len(payload.iv) != IV_LENGTH_BYTES or len(payload.tag) != TAG_LENGTH_BYTES:
            raise DecryptionError("Decryption failed: malformed IV or authentication tag.")
        try:
            plaintext = self._aead.decrypt(payload.iv, payload.ciphertext + payload.tag, None)
        except InvalidTag as err:
            raise DecryptionError() from err
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as err:
            raise DecryptionError("Decryption failed: plaintext is not valid UTF-8.") from err

    def try_decrypt(self, payload: EncryptedPayload) -> DecryptResult:
        """Decrypt without raising, for batch reads that must not abort."""
        try:
            return Decrypted(self.decrypt(payload))
        except DecryptionError as err:
            return DecryptFailed(err.detail)
