from __future__ import annotations

from typing import Optional


class ConfigError(Exception):
    """Base config exception."""


class ConfigDecodeError(ConfigError):
    """Raised when a document cannot be parsed into a configuration tree."""

    def __init__(self, message: str, locator: Optional[str] = None) -> None:
        self.locator = locator
        if locator is not None:
            message = f"{message} (locator: {locator})"
        super().__init__(message)


class ConfigDecryptError(ConfigError):
    """Raised when an encrypted document cannot be decrypted with the given password."""


class ConfigStorageError(ConfigError):
    """Raised when reading or writing durable storage fails."""

    def __init__(self, message: str, locator: Optional[str] = None) -> None:
        self.locator = locator
        super().__init__(message)


class ConfigStorageNotFoundError(ConfigStorageError):
    """Raised when nothing is stored at the requested locator."""


class ConfigStateError(ConfigError):
    """Raised when an operation is attempted in the wrong lifecycle state."""


class ConfigEncodeError(ConfigError):
    """Raised when a configuration tree holds values the document format cannot represent."""
