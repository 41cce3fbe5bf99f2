"""Structured logging setup for field_guardian."""
from __future__ import annotations

import logging
import sys
from typing import Any, List, MutableMapping, Optional, TextIO

import structlog

_ROOT = "field_guardian"
_REDACTED_FIELDS = frozenset({"plaintext", "ciphertext", "key_material", "keyset_bytes", "value"})

EventDict = MutableMapping[str, Any]


def configure_logging(level: Optional[str] = None, *, stream: Optional[TextIO] = None) -> None:
    """Send JSON lines (``ts``, ``level``, ``msg``, ``component``) to ``stream``.

    Defaults to stderr so that command output on stdout stays machine readable.
    Field values and key material never reach the renderer: known sensitive
    keys are replaced and raw ``bytes`` values are reduced to their length.
    """
    numeric_level = _numeric_level(level)
    logging.basicConfig(
        level=numeric_level,
        handlers=[logging.StreamHandler(stream or sys.stderr)],
        format="%(message)s",
        force=True,
    )
    structlog.configure(
        processors=_processors(),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        cache_logger_on_first_use=True,
    )


def _processors() -> List[Any]:
    return [
        structlog.processors.TimeStamper(fmt="iso", key="ts"),
        structlog.stdlib.add_log_level,
        _add_component,
        structlog.processors.EventRenamer("msg"),
        _scrub,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ]


def _add_component(logger: Any, _method: str, event_dict: EventDict) -> EventDict:
    """``field_guardian.storage.keyset_store`` is reported as ``storage.keyset_store``"""
    if "component" not in event_dict:
        name = getattr(logger, "name", None) or _ROOT
        event_dict["component"] = name[len(_ROOT) + 1:] if name.startswith(_ROOT + ".") else name
    return event_dict


def _scrub(_logger: Any, _method: str, event_dict: EventDict) -> EventDict:
    for key, item in event_dict.items():
        if key in _REDACTED_FIELDS:
            event_dict[key] = "[redacted]"
        elif isinstance(item, (bytes, bytearray)):
            event_dict[key] = f"<{len(item)} bytes>"
    return event_dict


def _numeric_level(level: Optional[str]) -> int:
    resolved = logging.getLevelName((level or "INFO").upper())
    return resolved if isinstance(resolved, int) else logging.INFO


__all__ = ["configure_logging"]
