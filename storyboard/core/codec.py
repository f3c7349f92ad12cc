"""Symmetric authenticated encryption of storyboard documents."""

import base64
import binascii
import json
import logging
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .constants import CIPHER_VERSION, KDF_ITERATIONS, KEY_LENGTH, NONCE_LENGTH
from .exceptions import DecodeError, ValidationError

logger = logging.getLogger(__name__)

_HEADER_LENGTH = 1 + NONCE_LENGTH


class CryptoCodec:
    """
    Encrypts documents into opaque text blobs and back.

    Blob layout (before base64url):
        version (1 byte) | nonce (12 bytes) | AES-256-GCM ciphertext + tag

    Tampering or a wrong key fails the GCM tag check and surfaces as
    DecodeError rather than garbage data.
    """

    def __init__(self, key: bytes):
        if not isinstance(key, bytes) or len(key) != KEY_LENGTH:
            raise ValidationError(f"Encryption key must be {KEY_LENGTH} bytes")
        self._aead = AESGCM(key)

    @classmethod
    def from_passphrase(cls, passphrase: str, salt: str, iterations: int = KDF_ITERATIONS) -> "CryptoCodec":
        """
        Derive a key from a passphrase.

        The salt should be the principal or document identifier so that
        each user ends up with a distinct key.
        """
        if not passphrase:
            raise ValidationError("Passphrase must not be empty")
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=KEY_LENGTH,
            salt=salt.encode("utf-8"),
            iterations=iterations,
        )
        return cls(kdf.derive(passphrase.encode("utf-8")))

    def encrypt(self, document: dict) -> str:
        """Serialize and encrypt a document. Returns base64url text."""
        plaintext = json.dumps(document, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
        nonce = os.urandom(NONCE_LENGTH)
        ciphertext = self._aead.encrypt(nonce, plaintext, None)
        blob = bytes([CIPHER_VERSION]) + nonce + ciphertext
        return base64.urlsafe_b64encode(blob).decode("ascii")

    def decrypt(self, cipher: str) -> dict:
        """Decrypt a blob produced by encrypt(). Raises DecodeError on any failure."""
        if not isinstance(cipher, str) or not cipher:
            raise DecodeError("Ciphertext is empty")

        try:
            blob = base64.urlsafe_b64decode(cipher.encode("ascii"))
        except (binascii.Error, UnicodeEncodeError, ValueError) as e:
            raise DecodeError(f"Ciphertext is not valid base64: {e}") from e

        if len(blob) <= _HEADER_LENGTH:
            raise DecodeError("Ciphertext is truncated")
        if blob[0] != CIPHER_VERSION:
            raise DecodeError(f"Unsupported cipher version {blob[0]}")

        nonce = blob[1:_HEADER_LENGTH]
        try:
            plaintext = self._aead.decrypt(nonce, blob[_HEADER_LENGTH:], None)
        except InvalidTag:
            raise DecodeError("Ciphertext failed authentication (wrong key or tampered)") from None

        try:
            document = json.loads(plaintext.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise DecodeError(f"Decrypted payload is not JSON: {e}") from e

        if not isinstance(document, dict):
            raise DecodeError("Decrypted payload is not a document object")

        logger.debug(f"Decrypted document ({len(plaintext)} bytes)")
        return document
