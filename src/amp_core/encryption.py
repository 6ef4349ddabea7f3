"""Symmetric encryption for managed-account credentials.

AES-256-CBC with a random 16-byte IV per message. The IV is prepended to the
ciphertext and the pair is base64-encoded into a single opaque string:

    base64( iv[16] || aes_cbc(pkcs7(plaintext)) )

Key handling is deliberately permissive: a configured key that is not
exactly 32 bytes is zero-padded or truncated (with a warning) so startup
never fails on a misconfigured key. Short keys weaken the cipher; the
warning is the only signal.
"""
import base64
import binascii
import json
import logging
import os
from functools import lru_cache
from typing import Any

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .config import get_settings
from .errors import DecryptionError

logger = logging.getLogger("amp-core.encryption")

KEY_SIZE = 32
IV_SIZE = 16


def normalize_key(raw_key: str | bytes) -> bytes:
    """Pad with zero bytes or truncate a key to exactly KEY_SIZE bytes."""
    key = raw_key.encode("utf-8") if isinstance(raw_key, str) else bytes(raw_key)
    if len(key) != KEY_SIZE:
        logger.warning(
            f"Encryption key must be {KEY_SIZE} bytes for AES-256-CBC (got {len(key)}). "
            "Using a padded/truncated key."
        )
        if len(key) < KEY_SIZE:
            key = key + b"\x00" * (KEY_SIZE - len(key))
        else:
            key = key[:KEY_SIZE]
    return key


class CredentialCipher:
    """Encrypt structured credential data to an opaque string and back."""

    def __init__(self, key: str | bytes):
        self._key = normalize_key(key)

    def encrypt(self, data: Any) -> str:
        """
        Encrypt a value.

        Strings are encrypted as-is; anything else is JSON-encoded first.

        Args:
            data: Credential payload (dict, list, str, number)

        Returns:
            Base64 string of IV + ciphertext
        """
        plaintext = data if isinstance(data, str) else json.dumps(data)

        iv = os.urandom(IV_SIZE)
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()

        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()

        return base64.b64encode(iv + ciphertext).decode("ascii")

    def decrypt(self, token: str) -> Any:
        """
        Decrypt a value produced by encrypt().

        Returns the parsed JSON value when the plaintext is valid JSON,
        otherwise the raw string.

        Raises:
            DecryptionError: If the token is malformed or the key is wrong
        """
        try:
            raw = base64.b64decode(token, validate=True)
            if len(raw) <= IV_SIZE or (len(raw) - IV_SIZE) % (algorithms.AES.block_size // 8):
                raise ValueError("ciphertext has an invalid length")

            iv, ciphertext = raw[:IV_SIZE], raw[IV_SIZE:]
            decryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).decryptor()
            padded = decryptor.update(ciphertext) + decryptor.finalize()

            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            plaintext = (unpadder.update(padded) + unpadder.finalize()).decode("utf-8")
        except (binascii.Error, ValueError, TypeError) as e:
            logger.error(f"Decryption error: {e}")
            raise DecryptionError("Failed to decrypt data") from e

        try:
            return json.loads(plaintext)
        except json.JSONDecodeError:
            return plaintext


@lru_cache
def get_cipher() -> CredentialCipher:
    """Return the process-wide cipher built from settings.encryption_key."""
    return CredentialCipher(get_settings().encryption_key)
