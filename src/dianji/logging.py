"""structlog configuration.

Every module logs through structlog.get_logger() with dotted event names
("auth.login_failed") and key/value context. configure_logging() is called
once from create_app(); the request id bound by RequestContextMiddleware
flows into every entry through the contextvars processor.
"""

import logging
from typing import Any

import structlog

_REDACTED_KEYS = ("password", "secret", "token", "authorization", "cookie")


def _redact_secrets(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Mask values of secret-looking keys."""
    for key in list(event_dict):
        if key == "event":
            continue
        if any(marker in key.lower() for marker in _REDACTED_KEYS):
            value = event_dict[key]
            if isinstance(value, str) and len(value) > 4:
                event_dict[key] = value[:2] + "***"
    return event_dict


def configure_logging(level: str = "INFO", json_output: bool = False) -> None:
    """Install structlog processors and the minimum log level."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        _redact_secrets,
        structlog.processors.StackInfoRenderer(),
    ]
    if json_output:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )
