from __future__ import annotations

import logging
import os
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from .codecs import DocumentCodec
from .crypto import CryptoTransform, FernetTransform
from .document import ConfigDocument
from .exceptions import ConfigDecryptError, ConfigStateError, ConfigStorageNotFoundError
from .storage import Locator, Storage

logger = logging.getLogger("config_layers.persistence")
logger.addHandler(logging.NullHandler())


class PersistenceState(Enum):
    UNINITIALIZED = "uninitialized"
    LOADED = "loaded"
    TERMINATED = "terminated"


def read_document(
    storage: Storage,
    locator: Locator,
    codec: DocumentCodec,
    *,
    crypto: Optional[CryptoTransform] = None,
    password: Optional[str] = None,
) -> ConfigDocument:
    """
    Read, decrypt (when a password is given) and decode the document at ``locator``.

    Raises ConfigStorageNotFoundError when nothing is stored there.
    """
    data = storage.read(locator)
    if password:
        data = (crypto or FernetTransform()).decrypt(data, password)
    elif FernetTransform.is_encrypted(data):
        logger.error("Document at %s is encrypted but no password was set", locator)
        raise ConfigDecryptError(f"Document at {locator} is encrypted; a password is required")
    tree = codec.decode(data)
    return ConfigDocument.from_tree(tree, locator=os.fspath(locator))


class PersistenceController:
    """
    Durable storage of the override layer.

    Lifecycle: UNINITIALIZED -> LOADED (load, then every flush) -> TERMINATED
    (teardown). TERMINATED is final; flushing there is still allowed.
    """

    def __init__(
        self,
        storage: Storage,
        locator: Locator,
        codec: DocumentCodec,
        *,
        crypto: Optional[CryptoTransform] = None,
        password: Optional[str] = None,
    ) -> None:
        self._storage = storage
        self._locator = locator
        self._codec = codec
        self._crypto = crypto
        self._password = password
        self._state = PersistenceState.UNINITIALIZED
        self._dirty = False
        self._last_plaintext: Optional[bytes] = None
        self._last_payload: Optional[bytes] = None

    @property
    def state(self) -> PersistenceState:
        return self._state

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def locator(self) -> Locator:
        return self._locator

    @property
    def has_password(self) -> bool:
        return bool(self._password)

    @property
    def crypto(self) -> CryptoTransform:
        if self._crypto is None:
            self._crypto = FernetTransform()
        return self._crypto

    def set_password(self, password: Optional[str]) -> None:
        if self._state is not PersistenceState.UNINITIALIZED:
            logger.error("Decryption password set after load (state=%s)", self._state.value)
            raise ConfigStateError("The decryption password must be set before the first load")
        self._password = password or None

    def read(self, locator: Locator, codec: DocumentCodec) -> ConfigDocument:
        """Read another document through the same storage and password, e.g. the base document."""
        return read_document(
            self._storage, locator, codec, crypto=self.crypto, password=self._password
        )

    def load(self) -> Dict[str, Any]:
        """
        Reconstruct the override layer from storage.

        Decode and decrypt failures propagate and leave the controller
        UNINITIALIZED.
        """
        try:
            document = self.read(self._locator, self._codec)
        except ConfigStorageNotFoundError:
            logger.info("No persisted overrides at %s; starting empty", self._locator)
            overrides: Dict[str, Any] = {}
        except Exception as exc:
            logger.error("Failed to load persisted overrides from %s: %s", self._locator, exc)
            raise
        else:
            if document.environments:
                logger.warning(
                    "Ignoring environment partitions %s in persisted overrides at %s",
                    document.environment_names(),
                    self._locator,
                )
            overrides = document.global_values
            logger.info("Loaded %d persisted override(s) from %s", len(overrides), self._locator)
        self._state = PersistenceState.LOADED
        self._dirty = False
        return overrides

    def mark_dirty(self) -> None:
        self._dirty = True

    def encode(self, overrides: Mapping[str, Any]) -> bytes:
        """Serialize ``overrides`` with the codec; raises ConfigEncodeError for unrepresentable values."""
        return self._codec.encode(ConfigDocument(global_values=dict(overrides)).to_tree())

    def _payload_for(self, overrides: Mapping[str, Any]) -> bytes:
        plaintext = self.encode(overrides)
        if not self._password:
            return plaintext
        # reuse the previous ciphertext so unchanged state writes identical bytes
        if plaintext == self._last_plaintext and self._last_payload is not None:
            return self._last_payload
        payload = self.crypto.encrypt(plaintext, self._password)
        self._last_plaintext = plaintext
        self._last_payload = payload
        return payload

    def flush(self, overrides: Mapping[str, Any]) -> None:
        if self._state is PersistenceState.UNINITIALIZED:
            raise ConfigStateError("Cannot flush before the persisted overrides were loaded")
        self._dirty = True
        payload = self._payload_for(overrides)
        self._storage.write(self._locator, payload)
        self._dirty = False
        logger.debug("Flushed %d override(s) to %s", len(overrides), self._locator)

    def teardown(self, overrides: Mapping[str, Any], *, persistent: bool) -> None:
        if persistent:
            self.flush(overrides)
        else:
            logger.info("Teardown without flush: overrides are not persistent")
        if self._state is not PersistenceState.TERMINATED:
            self._state = PersistenceState.TERMINATED
            logger.info("Persistence terminated for %s", self._locator)
