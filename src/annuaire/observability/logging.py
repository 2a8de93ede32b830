"""
Structured Logging

Features:
- JSON-formatted logs
- Log levels
- Redaction of national identifiers and credentials
"""

import logging
import re
import sys
from typing import Any

import structlog

REDACTED = "***REDACTED***"

# Keys whose values never reach the log output
SENSITIVE_KEYS = {"api_key", "esante-api-key", "national_id", "rpps"}

# identifier=<system>|<value> inside logged upstream URLs
_IDENTIFIER_PARAM = re.compile(r"(identifier=[^&|]*(?:%7C|\|))[^&]+", re.IGNORECASE)


def _redact_value(value: str) -> str:
    return _IDENTIFIER_PARAM.sub(lambda m: m.group(1) + REDACTED, value)


def redaction_processor(logger, method_name, event_dict):
    """Mask national identifiers and credentials in the event dict."""
    for key, value in list(event_dict.items()):
        if key.lower() in SENSITIVE_KEYS and value:
            event_dict[key] = REDACTED
        elif isinstance(value, str) and key not in ("level", "logger", "timestamp"):
            event_dict[key] = _redact_value(value)
    return event_dict


def configure_logging(level: str = "INFO", json_output: bool = True) -> None:
    """
    Configure structlog on top of the standard library logging module.
    
    Args:
        level: Minimum level name (DEBUG, INFO, ...)
        json_output: Render JSON lines; otherwise use the console renderer
    """
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO
    
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    
    renderer: Any = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )
    
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            redaction_processor,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
