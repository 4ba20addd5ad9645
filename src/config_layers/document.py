from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from .exceptions import ConfigDecodeError
from .utils import _detached_copy

logger = logging.getLogger("config_layers.document")
logger.addHandler(logging.NullHandler())

GLOBAL_SECTION = "global"
ENVIRONMENTS_SECTION = "environments"


@dataclass
class ConfigDocument:
    """
    Base configuration: a global partition plus one partition per environment.

    Tree layout shared by every codec::

        {"global": {key: value},
         "environments": {ENV_NAME: {key: value}}}
    """

    global_values: Dict[str, Any] = field(default_factory=dict)
    environments: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    @classmethod
    def from_tree(cls, tree: Any, locator: Optional[str] = None) -> "ConfigDocument":
        if tree is None:
            return cls()
        if not isinstance(tree, Mapping):
            logger.error("Document root is %s, expected a mapping", type(tree).__name__)
            raise ConfigDecodeError(
                f"Document root must be a mapping, got {type(tree).__name__}", locator
            )

        unknown = set(tree) - {GLOBAL_SECTION, ENVIRONMENTS_SECTION}
        if unknown:
            logger.error("Document has unknown sections: %s", sorted(map(str, unknown)))
            raise ConfigDecodeError(f"Unknown document sections: {sorted(map(str, unknown))}", locator)

        global_values = tree.get(GLOBAL_SECTION)
        if global_values is None:
            global_values = {}
        if not isinstance(global_values, Mapping):
            raise ConfigDecodeError(f"'{GLOBAL_SECTION}' section must be a mapping", locator)

        environments = tree.get(ENVIRONMENTS_SECTION)
        if environments is None:
            environments = {}
        if not isinstance(environments, Mapping):
            raise ConfigDecodeError(f"'{ENVIRONMENTS_SECTION}' section must be a mapping", locator)

        partitions: Dict[str, Dict[str, Any]] = {}
        for env, values in environments.items():
            if values is None:
                values = {}
            if not isinstance(values, Mapping):
                raise ConfigDecodeError(f"Environment {env!r} must be a mapping", locator)
            partitions[str(env)] = {str(k): _detached_copy(v) for k, v in values.items()}

        return cls(
            global_values={str(k): _detached_copy(v) for k, v in global_values.items()},
            environments=partitions,
        )

    def to_tree(self) -> Dict[str, Any]:
        return {
            GLOBAL_SECTION: _detached_copy(self.global_values),
            ENVIRONMENTS_SECTION: _detached_copy(self.environments),
        }

    def partition(self, env: Optional[str]) -> Mapping[str, Any]:
        """Return the partition for ``env``; empty when unset or unknown."""
        if env is None:
            return {}
        return self.environments.get(env, {})

    def environment_names(self) -> Tuple[str, ...]:
        return tuple(sorted(self.environments))
