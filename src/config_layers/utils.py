from __future__ import annotations

import os
from copy import deepcopy
from typing import Any, Optional

__all__ = [
    "_detached_copy",
    "_redact_for_log",
    "_env_environment",
    "_env_password",
    "ENV_VAR_ENVIRONMENT",
    "ENV_VAR_PASSWORD",
]

ENV_VAR_ENVIRONMENT = "CONFIG_LAYERS_ENV"
ENV_VAR_PASSWORD = "CONFIG_LAYERS_PASSWORD"

_SECRET_MARKERS = ("secret", "password", "token", "key", "passwd", "api_key")


def _detached_copy(value: Any) -> Any:
    try:
        return deepcopy(value)
    except Exception as e:
        raise ValueError("Value is not deepcopy-able") from e


def _redact_for_log(name: str, value: Any) -> str:
    """
    Redact likely secrets in logs.
    """
    lowered = str(name).lower()
    if any(s in lowered for s in _SECRET_MARKERS):
        return "***"
    try:
        return repr(value)
    except Exception:
        return "<unreprable>"


def _env_environment() -> Optional[str]:
    return os.getenv(ENV_VAR_ENVIRONMENT) or None


def _env_password() -> Optional[str]:
    return os.getenv(ENV_VAR_PASSWORD) or None
