"""Structured logging setup for certmaker."""
from __future__ import annotations

import logging
import sys
from typing import Any, MutableMapping, TextIO

import structlog

_ROOT_LOGGER = "certmaker"
_SECRET_FIELDS = frozenset({"token", "vault_token", "vault-token"})
_LEVELS = ("critical", "error", "warning", "info", "debug")

EventDict = MutableMapping[str, Any]


def configure_logging(level: str | None = None, *, stream: TextIO | None = None) -> None:
    """Emit one JSON object per line on ``stream`` (stderr by default).

    Records carry ``ts``, ``level``, ``msg`` and ``component``; the component
    is the emitting module relative to the package, e.g. ``kms.gateway``.
    stdout is left for the ``Saved <role> cert to <path>`` lines.
    """

    numeric_level = resolve_level(level)
    logging.basicConfig(
        level=numeric_level,
        handlers=[logging.StreamHandler(stream or sys.stderr)],
        format="%(message)s",
        force=True,
    )
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
            structlog.stdlib.add_log_level,
            _add_component,
            _mask_secrets,
            _event_as_msg,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(sort_keys=True),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        cache_logger_on_first_use=True,
    )


def resolve_level(level: str | None) -> int:
    name = (level or "info").strip().lower()
    if name == "warn":
        name = "warning"
    if name not in _LEVELS:
        return logging.INFO
    return getattr(logging, name.upper())


def _add_component(logger: Any, _method: str, event_dict: EventDict) -> EventDict:
    if "component" not in event_dict:
        name = getattr(logger, "name", None) or _ROOT_LOGGER
        prefix = _ROOT_LOGGER + "."
        event_dict["component"] = name[len(prefix):] if name.startswith(prefix) else name
    return event_dict


def _mask_secrets(_logger: Any, _method: str, event_dict: EventDict) -> EventDict:
    for key in _SECRET_FIELDS.intersection(event_dict):
        event_dict[key] = "***"
    options = event_dict.get("options")
    if isinstance(options, dict):
        event_dict["options"] = {
            name: "***" if name in _SECRET_FIELDS else value for name, value in options.items()
        }
    return event_dict


def _event_as_msg(_logger: Any, _method: str, event_dict: EventDict) -> EventDict:
    if "msg" not in event_dict:
        event_dict["msg"] = event_dict.pop("event", "")
    return event_dict


__all__ = ["configure_logging", "resolve_level"]
