from __future__ import annotations

from typing import FrozenSet, Iterable, Set


class ProtectionSet:
    """
    Names of keys that reject every write. A key can be protected before it
    exists anywhere in the configuration.
    """

    def __init__(self) -> None:
        self._keys: Set[str] = set()

    def protect(self, key: str) -> None:
        self._keys.add(key)

    def protect_many(self, keys: Iterable[str]) -> None:
        if isinstance(keys, str):
            raise TypeError("protect_many expects an iterable of keys, not a single string")
        self._keys.update(keys)

    def unprotect(self, key: str) -> None:
        self._keys.discard(key)

    def unprotect_many(self, keys: Iterable[str]) -> None:
        if isinstance(keys, str):
            raise TypeError("unprotect_many expects an iterable of keys, not a single string")
        self._keys.difference_update(keys)

    def clear(self) -> None:
        self._keys.clear()

    def is_protected(self, key: str) -> bool:
        return key in self._keys

    def keys(self) -> FrozenSet[str]:
        return frozenset(self._keys)

    def __contains__(self, key: object) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return len(self._keys)
