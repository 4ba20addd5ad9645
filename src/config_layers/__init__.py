"""
LayeredConfig: environment-aware configuration with protected keys and persisted overrides.

- Resolves keys through runtime overrides, then the active environment, then globals.
- Protected keys silently reject every write, including keys not present yet.
- Overrides persist across restarts by default, optionally encrypted with a password.
- Thread safe; one instance per application, torn down explicitly at exit.
"""

from __future__ import annotations

from config_layers.codecs import DocumentCodec, JsonCodec, PlistCodec, YamlCodec, codec_for_path
from config_layers.config import LayeredConfig
from config_layers.crypto import CryptoTransform, FernetTransform
from config_layers.document import ConfigDocument
from config_layers.exceptions import (
    ConfigDecodeError,
    ConfigDecryptError,
    ConfigEncodeError,
    ConfigError,
    ConfigStateError,
    ConfigStorageError,
    ConfigStorageNotFoundError,
)
from config_layers.persistence import PersistenceController, PersistenceState
from config_layers.storage import FileStorage, InMemoryStorage, Storage
from config_layers.store import ConfigStore

__all__ = [
    "LayeredConfig",
    "ConfigStore",
    "ConfigDocument",
    "PersistenceController",
    "PersistenceState",
    "DocumentCodec",
    "JsonCodec",
    "PlistCodec",
    "YamlCodec",
    "codec_for_path",
    "CryptoTransform",
    "FernetTransform",
    "Storage",
    "FileStorage",
    "InMemoryStorage",
    "ConfigError",
    "ConfigDecodeError",
    "ConfigDecryptError",
    "ConfigEncodeError",
    "ConfigStateError",
    "ConfigStorageError",
    "ConfigStorageNotFoundError",
]
