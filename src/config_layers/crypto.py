from __future__ import annotations

import base64
import logging
import os
from typing import Protocol

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from typing_extensions import runtime_checkable

from .exceptions import ConfigDecryptError

logger = logging.getLogger("config_layers.crypto")
logger.addHandler(logging.NullHandler())

__all__ = ["CryptoTransform", "FernetTransform"]


@runtime_checkable
class CryptoTransform(Protocol):
    def encrypt(self, data: bytes, password: str) -> bytes: ...

    def decrypt(self, data: bytes, password: str) -> bytes: ...


class FernetTransform:
    """
    Password based encryption of whole documents.

    Payload layout: ``MAGIC || salt (SALT_SIZE bytes) || Fernet token``. The
    Fernet key is derived from the password and the salt with
    PBKDF2-HMAC-SHA256, so the same password yields a different key for every
    payload.
    """

    MAGIC = b"CLYR1"
    SALT_SIZE = 16
    DEFAULT_ITERATIONS = 100_000

    def __init__(self, iterations: int = DEFAULT_ITERATIONS) -> None:
        if iterations < 1:
            raise ValueError("iterations must be a positive integer")
        self._iterations = iterations

    @classmethod
    def is_encrypted(cls, data: bytes) -> bool:
        return data.startswith(cls.MAGIC)

    def _derive_key(self, password: str, salt: bytes) -> bytes:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=salt,
            iterations=self._iterations,
        )
        return base64.urlsafe_b64encode(kdf.derive(password.encode("utf-8")))

    def encrypt(self, data: bytes, password: str) -> bytes:
        salt = os.urandom(self.SALT_SIZE)
        token = Fernet(self._derive_key(password, salt)).encrypt(data)
        logger.debug("Encrypted %d bytes into %d byte token", len(data), len(token))
        return self.MAGIC + salt + token

    def decrypt(self, data: bytes, password: str) -> bytes:
        if not password:
            raise ConfigDecryptError("A password is required to decrypt this document")
        if not self.is_encrypted(data):
            logger.error("Payload is not an encrypted document")
            raise ConfigDecryptError("Payload is not an encrypted document")
        body = data[len(self.MAGIC) :]
        if len(body) <= self.SALT_SIZE:
            logger.error("Encrypted payload too short (%d bytes)", len(data))
            raise ConfigDecryptError("Payload is too short to be an encrypted document")
        salt, token = body[: self.SALT_SIZE], body[self.SALT_SIZE :]
        try:
            return Fernet(self._derive_key(password, salt)).decrypt(token)
        except InvalidToken as exc:
            logger.error("Decryption failed: wrong password or corrupted payload")
            raise ConfigDecryptError(
                "Unable to decrypt document: wrong password or corrupted payload"
            ) from exc
