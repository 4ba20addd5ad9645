from __future__ import annotations

import json
import logging
import plistlib
from pathlib import Path
from typing import Any, Dict, Mapping, Protocol, Union
from xml.parsers.expat import ExpatError

import yaml
from typing_extensions import runtime_checkable

from .exceptions import ConfigDecodeError, ConfigEncodeError, ConfigError

logger = logging.getLogger("config_layers.codecs")
logger.addHandler(logging.NullHandler())

__all__ = [
    "DocumentCodec",
    "JsonCodec",
    "PlistCodec",
    "YamlCodec",
    "codec_for_path",
]


@runtime_checkable
class DocumentCodec(Protocol):
    def decode(self, data: bytes) -> Dict[str, Any]: ...

    def encode(self, tree: Mapping[str, Any]) -> bytes: ...


class JsonCodec:
    """UTF-8 JSON with sorted keys, so equal trees always encode to equal bytes."""

    def __init__(self, indent: int = 2) -> None:
        self._indent = indent

    def decode(self, data: bytes) -> Dict[str, Any]:
        if not data.strip():
            return {}
        try:
            return json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.error("JSON decode failed: %s", exc)
            raise ConfigDecodeError(f"Invalid JSON document: {exc}") from exc

    def encode(self, tree: Mapping[str, Any]) -> bytes:
        try:
            text = json.dumps(tree, indent=self._indent, sort_keys=True, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            logger.error("JSON encode failed: %s", exc)
            raise ConfigEncodeError(f"Cannot encode tree as JSON: {exc}") from exc
        return text.encode("utf-8")


class PlistCodec:
    """XML property lists. None values are not representable in this format."""

    def decode(self, data: bytes) -> Dict[str, Any]:
        if not data.strip():
            return {}
        try:
            return plistlib.loads(data)
        except (plistlib.InvalidFileException, ExpatError, ValueError) as exc:
            logger.error("Plist decode failed: %s", exc)
            raise ConfigDecodeError(f"Invalid plist document: {exc}") from exc

    def encode(self, tree: Mapping[str, Any]) -> bytes:
        try:
            return plistlib.dumps(dict(tree), fmt=plistlib.FMT_XML, sort_keys=True)
        except (TypeError, ValueError, OverflowError) as exc:
            logger.error("Plist encode failed: %s", exc)
            raise ConfigEncodeError(f"Cannot encode tree as plist: {exc}") from exc


class YamlCodec:
    def decode(self, data: bytes) -> Dict[str, Any]:
        try:
            loaded = yaml.safe_load(data)
        except yaml.YAMLError as exc:
            logger.error("YAML decode failed: %s", exc)
            raise ConfigDecodeError(f"Invalid YAML document: {exc}") from exc
        return {} if loaded is None else loaded

    def encode(self, tree: Mapping[str, Any]) -> bytes:
        try:
            text = yaml.safe_dump(
                dict(tree), sort_keys=True, default_flow_style=False, allow_unicode=True
            )
        except yaml.YAMLError as exc:
            logger.error("YAML encode failed: %s", exc)
            raise ConfigEncodeError(f"Cannot encode tree as YAML: {exc}") from exc
        return text.encode("utf-8")


_SUFFIX_CODECS = {
    ".json": JsonCodec,
    ".plist": PlistCodec,
    ".yaml": YamlCodec,
    ".yml": YamlCodec,
}


def codec_for_path(path: Union[str, Path]) -> DocumentCodec:
    suffix = Path(path).suffix.lower()
    try:
        return _SUFFIX_CODECS[suffix]()
    except KeyError:
        logger.error("No codec registered for suffix %r (path=%s)", suffix, path)
        raise ConfigError(
            f"Unsupported document format {suffix!r}; expected one of {sorted(_SUFFIX_CODECS)}"
        ) from None
