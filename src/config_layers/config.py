from __future__ import annotations

import logging
import os
import threading
from functools import wraps
from pathlib import Path
from types import MappingProxyType, TracebackType
from typing import Any, Callable, FrozenSet, Iterable, List, Mapping, Optional, Type, TypeVar, Union, cast

from .codecs import DocumentCodec, JsonCodec, codec_for_path
from .crypto import CryptoTransform
from .document import ConfigDocument
from .exceptions import ConfigEncodeError
from .persistence import PersistenceController, PersistenceState
from .storage import FileStorage, InMemoryStorage, Storage
from .store import ConfigStore
from .utils import _env_environment, _env_password, _redact_for_log

logger = logging.getLogger("config_layers.config")
logger.addHandler(logging.NullHandler())

F = TypeVar("F", bound=Callable[..., Any])

PathLike = Union[str, "os.PathLike[str]"]
BaseSource = Union[ConfigDocument, Mapping[str, Any], PathLike, None]

MEMORY_OVERRIDES_LOCATOR = "overrides"


def requires_load(func: F) -> F:
    """
    Decorator that loads the base document and persisted overrides before the
    wrapped method runs. Load failures propagate, so the instance never serves
    data from a partial load.
    """

    @wraps(func)
    def wrapper(self: "LayeredConfig", *args: Any, **kwargs: Any) -> Any:
        with self._LayeredConfig__lock:  # type: ignore[attr-defined]
            self.load()
            return func(self, *args, **kwargs)

    return cast(F, wrapper)


def _overrides_path_for(base: Path) -> Path:
    return base.with_name(f"{base.stem}.overrides{base.suffix}")


class LayeredConfig:
    """
    Environment-aware configuration with protected keys and persisted overrides.

    Construct one instance at application start, pass it to the code that
    needs it and call teardown() at application end (or use it as a context
    manager). Reads resolve override layer -> active environment -> globals.
    Writes to protected keys are silently ignored.
    """

    def __init__(
        self,
        base: BaseSource = None,
        overrides_path: Optional[PathLike] = None,
        *,
        environment: Optional[str] = None,
        codec: Optional[DocumentCodec] = None,
        storage: Optional[Storage] = None,
        crypto: Optional[CryptoTransform] = None,
        password: Optional[str] = None,
        persistent: bool = True,
    ) -> None:
        self.__lock = threading.RLock()

        self.__base_document: Optional[ConfigDocument] = None
        self.__base_locator: Optional[Path] = None
        if isinstance(base, ConfigDocument):
            self.__base_document = base
        elif isinstance(base, Mapping):
            self.__base_document = ConfigDocument.from_tree(base)
        elif base is not None:
            self.__base_locator = Path(base)
        else:
            self.__base_document = ConfigDocument()

        overrides_locator: PathLike
        if overrides_path is not None:
            overrides_locator = Path(overrides_path)
        elif self.__base_locator is not None:
            overrides_locator = _overrides_path_for(self.__base_locator)
        else:
            overrides_locator = MEMORY_OVERRIDES_LOCATOR

        if storage is None:
            if overrides_locator == MEMORY_OVERRIDES_LOCATOR:
                storage = InMemoryStorage()
            else:
                storage = FileStorage()
        self.__storage = storage

        self.__base_codec: Optional[DocumentCodec] = None
        if self.__base_locator is not None:
            self.__base_codec = codec or codec_for_path(self.__base_locator)
        if codec is not None:
            overrides_codec = codec
        elif overrides_locator == MEMORY_OVERRIDES_LOCATOR:
            overrides_codec = self.__base_codec or JsonCodec()
        else:
            overrides_codec = codec_for_path(overrides_locator)

        self.__persistence = PersistenceController(
            storage,
            overrides_locator,
            overrides_codec,
            crypto=crypto,
            password=password or _env_password(),
        )
        self.__environment = environment if environment is not None else _env_environment()
        self.__persistent = bool(persistent)
        self.__store: Optional[ConfigStore] = None
        self.__torn_down = False

        logger.debug(
            "LayeredConfig init base=%s overrides=%s env=%r persistent=%s encrypted=%s",
            self.__base_locator or "<in-memory>",
            overrides_locator,
            self.__environment,
            self.__persistent,
            self.__persistence.has_password,
        )

    # forbid public attribute mutation
    def __setattr__(self, name: str, value: Any) -> None:
        if hasattr(self, "_LayeredConfig__lock") and not name.startswith("_LayeredConfig__"):
            raise AttributeError("Direct attribute assignment forbidden. Use set_object().")
        super().__setattr__(name, value)

    # lifecycle

    @property
    def loaded(self) -> bool:
        return self.__store is not None

    @property
    def torn_down(self) -> bool:
        return self.__torn_down

    @property
    def persistence_state(self) -> PersistenceState:
        return self.__persistence.state

    def load(self) -> None:
        """
        Load the base document and the persisted overrides if not done yet.

        Raises ConfigDecodeError, ConfigDecryptError or ConfigStorageError;
        a failed load leaves the instance unloaded and the next call retries.
        """
        with self.__lock:
            if self.__store is not None:
                return
            if self.__base_document is not None:
                document = self.__base_document
            else:
                assert self.__base_locator is not None and self.__base_codec is not None
                try:
                    document = self.__persistence.read(self.__base_locator, self.__base_codec)
                except Exception as exc:
                    logger.error("Failed to load base document %s: %s", self.__base_locator, exc)
                    raise
            overrides = self.__persistence.load()
            store = ConfigStore(document, environment=self.__environment)
            store.replace_overrides(overrides)
            self.__store = store
            logger.info(
                "Configuration loaded: %d global key(s), environments=%s, %d override(s)",
                len(document.global_values),
                document.environment_names(),
                len(overrides),
            )

    def teardown(self) -> None:
        """
        Flush the whole override layer one final time if persistence is on now.
        Safe to call repeatedly; the instance stays usable afterwards.
        """
        with self.__lock:
            if self.__store is None:
                logger.info("Teardown before load; nothing to flush")
                self.__torn_down = True
                return
            self.__persistence.teardown(self.__store.overrides(), persistent=self.__persistent)
            self.__torn_down = True
            logger.info("LayeredConfig torn down.")

    @requires_load
    def flush(self) -> None:
        """Write the override layer now, e.g. to retry after a failed write."""
        assert self.__store is not None
        if not self.__persistent:
            logger.debug("Flush skipped: overrides are not persistent")
            return
        self.__persistence.flush(self.__store.overrides())

    # environment and secrets

    @property
    def environment(self) -> Optional[str]:
        return self.__environment

    def set_env(self, name: Optional[str]) -> None:
        with self.__lock:
            self.__environment = name
            if self.__store is not None:
                self.__store.set_env(name)
            logger.info("Environment set to %r", name)

    def set_decryption_password(self, password: Optional[str]) -> None:
        """Set the password of encrypted documents. Must be called before the first load."""
        with self.__lock:
            self.__persistence.set_password(password)
            logger.info("Decryption password %s", "set" if password else "cleared")

    # reads

    @requires_load
    def config_value_for_key(self, key: str, default: Any = None) -> Any:
        assert self.__store is not None
        value = self.__store.get(key, default)
        logger.debug("Read key=%r value=%s", key, _redact_for_log(key, value))
        return value

    get = config_value_for_key

    @requires_load
    def snapshot(self) -> MappingProxyType:
        """Return a read-only copy of every key visible under the active environment."""
        assert self.__store is not None
        return self.__store.snapshot()

    @requires_load
    def __contains__(self, key: object) -> bool:
        assert self.__store is not None
        return isinstance(key, str) and self.__store.contains(key)

    @requires_load
    def __getitem__(self, key: str) -> Any:
        assert self.__store is not None
        if not self.__store.contains(key):
            raise KeyError(key)
        return self.__store.get(key)

    # protection

    @requires_load
    def set_key_to_protected(self, key: str) -> None:
        assert self.__store is not None
        self.__store.protect(key)
        logger.info("Protected key %r", key)

    @requires_load
    def set_keys_to_protected(self, keys: Iterable[str]) -> None:
        assert self.__store is not None
        keys = list(keys) if not isinstance(keys, str) else keys
        self.__store.protect_many(keys)
        logger.info("Protected keys %s", keys)

    @requires_load
    def set_all_keys_to_protected(self) -> None:
        assert self.__store is not None
        protected = self.__store.protect_all()
        logger.info("Protected all %d known key(s)", len(protected))

    @requires_load
    def remove_key_protection(self, key: str) -> None:
        assert self.__store is not None
        self.__store.unprotect(key)
        logger.info("Removed protection from key %r", key)

    @requires_load
    def remove_keys_from_protection(self, keys: Iterable[str]) -> None:
        assert self.__store is not None
        keys = list(keys) if not isinstance(keys, str) else keys
        self.__store.unprotect_many(keys)
        logger.info("Removed protection from keys %s", keys)

    @requires_load
    def remove_all_key_protection(self) -> None:
        assert self.__store is not None
        self.__store.unprotect_all()
        logger.info("Removed protection from all keys")

    @requires_load
    def is_protected(self, key: str) -> bool:
        assert self.__store is not None
        return self.__store.is_protected(key)

    @requires_load
    def protected_keys(self) -> FrozenSet[str]:
        assert self.__store is not None
        return self.__store.protected_keys()

    # overrides

    @property
    def persistent(self) -> bool:
        return self.__persistent

    def set_overwrite_state_to_persistent(self, state: bool) -> None:
        """Choose whether writes and teardown flush the override layer; the switch itself writes nothing."""
        with self.__lock:
            self.__persistent = bool(state)
            logger.info("Overwrite persistence set to %s", self.__persistent)

    @requires_load
    def set_object(self, value: Any, key: str) -> None:
        """Override ``key`` with ``value``; silently ignored when ``key`` is protected."""
        self._write({key: value})

    @requires_load
    def overwrite_config_with_dictionary(self, values: Mapping[str, Any]) -> None:
        """Override every unprotected key in ``values``; protected keys are skipped one by one."""
        if not isinstance(values, Mapping):
            raise TypeError("overwrite_config_with_dictionary expects a mapping")
        accepted = self._write(values)
        logger.info(
            "Overwrote %d of %d key(s) persistent=%s", len(accepted), len(values), self.__persistent
        )

    def _write(self, values: Mapping[str, Any]) -> List[str]:
        """
        Apply ``values`` to the override layer and flush it when persistent.

        The staged layer is encoded first, so a value the overrides codec
        cannot represent raises ConfigEncodeError and leaves the layer as it
        was. A failed flush leaves the accepted values in memory.
        """
        assert self.__store is not None
        staged = self.__store.staged(values)
        try:
            self.__persistence.encode(staged)
        except ConfigEncodeError:
            logger.error(
                "Rejected write of key(s) %s: not representable by the overrides codec",
                list(values),
            )
            raise
        accepted = self.__store.overwrite_all(values)
        if accepted and self.__persistent:
            self.__persistence.mark_dirty()
            self.__persistence.flush(self.__store.overrides())
        return accepted

    def __repr__(self) -> str:
        with self.__lock:
            return (
                f"<LayeredConfig env={self.__environment!r} loaded={self.loaded} "
                f"persistent={self.__persistent} encrypted={self.__persistence.has_password}>"
            )

    def __enter__(self) -> "LayeredConfig":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_value: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> None:
        self.teardown()
