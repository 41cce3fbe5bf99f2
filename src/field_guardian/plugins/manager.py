from __future__ import annotations

import importlib
from typing import Any

from ..core.exceptions import ConfigError


def load_plugin(path: str, class_name: str) -> Any:
    """Dynamically load a plugin class given module path and class name.

    Example: load_plugin('field_guardian.kms.local', 'LocalKmsBackend')
    """
    try:
        mod = importlib.import_module(path)
    except ImportError as exc:
        raise ConfigError(f"Cannot import plugin module {path!r}: {exc}") from exc
    try:
        return getattr(mod, class_name)
    except AttributeError as exc:
        raise ConfigError(f"Plugin module {path!r} has no attribute {class_name!r}") from exc


def load_entrypoint(spec: str) -> Any:
    """Load ``module:Class`` style references used in configuration files."""
    module, _, name = spec.partition(":")
    if not module or not name:
        raise ConfigError(f"Plugin reference must look like module:Class, got {spec!r}")
    return load_plugin(module, name)
