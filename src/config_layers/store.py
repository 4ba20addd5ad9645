from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional

from .document import ConfigDocument
from .protection import ProtectionSet
from .utils import _detached_copy, _redact_for_log

logger = logging.getLogger("config_layers.store")
logger.addHandler(logging.NullHandler())

_MISSING = object()


class ConfigStore:
    """
    Merged view over a base document and a runtime override layer.

    Reads resolve override layer -> active environment partition -> global
    partition. Writes to protected keys never reach the override layer.
    """

    def __init__(
        self,
        document: Optional[ConfigDocument] = None,
        environment: Optional[str] = None,
    ) -> None:
        self._document = document if document is not None else ConfigDocument()
        self._environment = environment
        self._protection = ProtectionSet()
        self._overrides: Dict[str, Any] = {}
        logger.debug(
            "ConfigStore init globals=%d environments=%s env=%r",
            len(self._document.global_values),
            self._document.environment_names(),
            self._environment,
        )

    # environment

    @property
    def environment(self) -> Optional[str]:
        return self._environment

    def set_env(self, name: Optional[str]) -> None:
        if name is not None and name not in self._document.environments:
            logger.debug("Environment %r has no partition; reads fall through to globals", name)
        self._environment = name

    # reads

    def _lookup(self, key: str) -> Any:
        if key in self._overrides:
            return self._overrides[key]
        partition = self._document.partition(self._environment)
        if key in partition:
            return partition[key]
        return self._document.global_values.get(key, _MISSING)

    def get(self, key: str, default: Any = None) -> Any:
        value = self._lookup(key)
        if value is _MISSING:
            return default
        return _detached_copy(value)

    def contains(self, key: str) -> bool:
        return self._lookup(key) is not _MISSING

    def known_keys(self) -> FrozenSet[str]:
        return frozenset(
            set(self._document.global_values)
            | set(self._document.partition(self._environment))
            | set(self._overrides)
        )

    def snapshot(self) -> MappingProxyType:
        merged: Dict[str, Any] = dict(self._document.global_values)
        merged.update(self._document.partition(self._environment))
        merged.update(self._overrides)
        return MappingProxyType({k: _detached_copy(v) for k, v in merged.items()})

    # protection

    def protect(self, key: str) -> None:
        self._protection.protect(key)

    def protect_many(self, keys: Iterable[str]) -> None:
        self._protection.protect_many(keys)

    def protect_all(self) -> FrozenSet[str]:
        """Protect every key visible right now; returns the keys that were protected."""
        keys = self.known_keys()
        self._protection.protect_many(keys)
        return keys

    def unprotect(self, key: str) -> None:
        self._protection.unprotect(key)

    def unprotect_many(self, keys: Iterable[str]) -> None:
        self._protection.unprotect_many(keys)

    def unprotect_all(self) -> None:
        self._protection.clear()

    def is_protected(self, key: str) -> bool:
        return self._protection.is_protected(key)

    def protected_keys(self) -> FrozenSet[str]:
        return self._protection.keys()

    # writes

    def set(self, key: str, value: Any) -> bool:
        """
        Write ``key`` into the override layer unless it is protected.

        Returns False when the write was dropped because of protection.
        """
        if self._protection.is_protected(key):
            logger.debug("Ignoring write to protected key %r", key)
            return False
        value = _detached_copy(value)
        self._overrides[key] = value
        logger.debug("Store.set key=%r value=%s", key, _redact_for_log(key, value))
        return True

    def overwrite_all(self, values: Mapping[str, Any]) -> List[str]:
        """Apply ``set`` to each pair independently; returns the accepted keys."""
        accepted: List[str] = []
        for key, value in values.items():
            if self.set(key, value):
                accepted.append(key)
        skipped = len(values) - len(accepted)
        if skipped:
            logger.debug("overwrite_all skipped %d protected key(s)", skipped)
        return accepted

    def staged(self, values: Mapping[str, Any]) -> Dict[str, Any]:
        """Return the override layer as ``overwrite_all(values)`` would leave it, without writing."""
        layer = dict(self._overrides)
        for key, value in values.items():
            if not self._protection.is_protected(key):
                layer[key] = value
        return layer

    # override layer access

    def overrides(self) -> Dict[str, Any]:
        return {k: _detached_copy(v) for k, v in self._overrides.items()}

    def replace_overrides(self, values: Mapping[str, Any]) -> None:
        self._overrides = {str(k): _detached_copy(v) for k, v in values.items()}

    @property
    def document(self) -> ConfigDocument:
        return self._document
