"""Configuration for kp-copy.

A single `CopyConfig` value is built once (from the environment and then
overridden by CLI flags) and passed explicitly to the mapper, archiver and
pipeline. Recognised environment variables:

* `KP_COPY_BUFFER_SIZE` - bytes per chunk when streaming file content
* `KP_COPY_TIMEOUT` - seconds before the sink process is killed
* `KP_COPY_STRICT` - treat absolute symlinks / exotic files as fatal
* `KP_DOCKER_BIN`, `KP_KUBECTL_BIN` - runtime executables
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional

from .constants import DEFAULT_BUFFER_SIZE, DEFAULT_DOCKER_BIN, DEFAULT_KUBECTL_BIN


def env_bool(environ: Mapping[str, str], key: str, default: bool = False) -> bool:
    value = environ.get(key)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def env_int(environ: Mapping[str, str], key: str, default: int) -> int:
    value = environ.get(key)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def env_float(environ: Mapping[str, str], key: str, default: Optional[float]) -> Optional[float]:
    value = environ.get(key)
    if not value:
        return default
    try:
        parsed = float(value)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


@dataclass(frozen=True)
class CopyConfig:
    """Typed copy settings."""

    buffer_size: int = DEFAULT_BUFFER_SIZE
    timeout: Optional[float] = None
    strict_entry_types: bool = False
    docker_bin: str = DEFAULT_DOCKER_BIN
    kubectl_bin: str = DEFAULT_KUBECTL_BIN

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "CopyConfig":
        environ = os.environ if environ is None else environ
        buffer_size = env_int(environ, "KP_COPY_BUFFER_SIZE", DEFAULT_BUFFER_SIZE)
        return cls(
            buffer_size=buffer_size if buffer_size > 0 else DEFAULT_BUFFER_SIZE,
            timeout=env_float(environ, "KP_COPY_TIMEOUT", None),
            strict_entry_types=env_bool(environ, "KP_COPY_STRICT", False),
            docker_bin=environ.get("KP_DOCKER_BIN") or DEFAULT_DOCKER_BIN,
            kubectl_bin=environ.get("KP_KUBECTL_BIN") or DEFAULT_KUBECTL_BIN,
        )

    def with_overrides(self, **overrides) -> "CopyConfig":
        """Return a copy with every non-None override applied."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes)
