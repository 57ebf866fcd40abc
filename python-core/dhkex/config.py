"""
Backend and serialization selection.

Python has no build step, so the selection is made once, when ``dhkex`` is
imported, from environment variables:

    DHKEX_BACKENDS       comma-separated subset of "x25519,p256" (default both)
    DHKEX_SERIALIZATION  1/0, true/false, yes/no, on/off (default on)

Selecting no backend, or an unknown one, fails the import with
ConfigurationError.
"""

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

SUPPORTED_BACKENDS = ("x25519", "p256")

BACKENDS_ENV = "DHKEX_BACKENDS"
SERIALIZATION_ENV = "DHKEX_SERIALIZATION"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class KexConfig:
    """Which backends are compiled in and whether the serialization adapter is."""
    backends: Tuple[str, ...]
    serialization: bool

    def __post_init__(self):
        if not self.backends:
            raise ConfigurationError("At least one key-exchange backend must be selected")
        unknown = [name for name in self.backends if name not in SUPPORTED_BACKENDS]
        if unknown:
            raise ConfigurationError(
                f"Unknown backend(s) {unknown}; expected a subset of {list(SUPPORTED_BACKENDS)}"
            )
        if len(set(self.backends)) != len(self.backends):
            raise ConfigurationError(f"Duplicate backend in selection {list(self.backends)}")

    @classmethod
    def default(cls) -> "KexConfig":
        """Both backends and the serialization adapter."""
        return cls(backends=SUPPORTED_BACKENDS, serialization=True)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "KexConfig":
        """Build the selection from ``environ`` (defaults to ``os.environ``)."""
        env = os.environ if environ is None else environ

        raw_backends = env.get(BACKENDS_ENV)
        if raw_backends is None:
            backends = SUPPORTED_BACKENDS
        else:
            backends = tuple(part.strip().lower() for part in raw_backends.split(",") if part.strip())

        raw_serialization = env.get(SERIALIZATION_ENV)
        if raw_serialization is None:
            serialization = True
        else:
            value = raw_serialization.strip().lower()
            if value in _TRUE_VALUES:
                serialization = True
            elif value in _FALSE_VALUES:
                serialization = False
            else:
                raise ConfigurationError(f"{SERIALIZATION_ENV} must be a boolean, got {raw_serialization!r}")

        config = cls(backends=backends, serialization=serialization)
        logger.debug(f"Key-exchange configuration: backends={list(config.backends)}, serialization={config.serialization}")
        return config

    def is_enabled(self, backend: str) -> bool:
        return backend in self.backends


_active_config: Optional[KexConfig] = None


def set_active_config(config: KexConfig) -> None:
    global _active_config
    _active_config = config


def active_config() -> KexConfig:
    """The selection the package was imported with (loaded lazily if unset)."""
    global _active_config
    if _active_config is None:
        _active_config = KexConfig.from_env()
    return _active_config
