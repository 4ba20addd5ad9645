from __future__ import annotations

import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, Protocol, Union

from typing_extensions import runtime_checkable

from .exceptions import ConfigStorageError, ConfigStorageNotFoundError

logger = logging.getLogger("config_layers.storage")
logger.addHandler(logging.NullHandler())

__all__ = ["Storage", "FileStorage", "InMemoryStorage"]

Locator = Union[str, "os.PathLike[str]"]


@runtime_checkable
class Storage(Protocol):
    def read(self, locator: Locator) -> bytes: ...

    def write(self, locator: Locator, data: bytes) -> None: ...


class FileStorage:
    """
    Filesystem storage. Writes go to a temporary file next to the target which
    then replaces it, so a failed write never truncates the previous content.
    """

    def read(self, locator: Locator) -> bytes:
        path = Path(locator)
        try:
            return path.read_bytes()
        except FileNotFoundError as exc:
            logger.debug("No stored document at %s", path)
            raise ConfigStorageNotFoundError(f"No document at {path}", str(path)) from exc
        except OSError as exc:
            logger.error("Failed to read %s: %s", path, exc)
            raise ConfigStorageError(f"Failed to read {path}: {exc}", str(path)) from exc

    def write(self, locator: Locator, data: bytes) -> None:
        path = Path(locator)
        tmp_name = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, path)
            tmp_name = None
            logger.debug("Wrote %d bytes to %s", len(data), path)
        except OSError as exc:
            logger.error("Failed to write %s: %s", path, exc)
            raise ConfigStorageError(f"Failed to write {path}: {exc}", str(path)) from exc
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)


class InMemoryStorage:
    """Process-local storage keyed by locator; shared instances act as a durable medium in tests."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._blobs: Dict[str, bytes] = {}

    def read(self, locator: Locator) -> bytes:
        key = os.fspath(locator)
        with self._lock:
            try:
                return self._blobs[key]
            except KeyError:
                raise ConfigStorageNotFoundError(f"No document at {key}", key) from None

    def write(self, locator: Locator, data: bytes) -> None:
        key = os.fspath(locator)
        with self._lock:
            self._blobs[key] = bytes(data)
        logger.debug("Stored %d bytes at %s", len(data), key)

    def __contains__(self, locator: object) -> bool:
        with self._lock:
            return os.fspath(locator) in self._blobs  # type: ignore[arg-type]
