"""structlog setup for clashctl.

Logs go to stderr so stdout stays clean for compiled configs and
``--json`` results: a console renderer by default, JSON lines with
``--log-json``. stdlib loggers (clashctl's infrastructure, alembic,
httpx) are routed through the same processors.

Subscription URLs usually embed an access token, so ``url`` values are
logged without their query string or credentials.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import MutableMapping
from typing import Any
from urllib.parse import urlsplit, urlunsplit

import structlog

# Third-party loggers that are chatty at INFO (httpx logs every request).
_QUIET_LIBRARIES = ("httpx", "httpcore", "alembic")

_URL_KEYS = frozenset({"url"})


def redact_url(url: str) -> str:
    """*url* with its query and userinfo masked; scheme, host and path kept.

    Examples:
        >>> redact_url("https://sub.example.com/api/v1/client?token=s3cret")
        'https://sub.example.com/api/v1/client?<redacted>'
        >>> redact_url("https://sub.example.com/clash.yaml")
        'https://sub.example.com/clash.yaml'
    """
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    if not parts.query and "@" not in parts.netloc:
        return url
    host = parts.netloc.rpartition("@")[2]
    query = "<redacted>" if parts.query else ""
    return urlunsplit((parts.scheme, host, parts.path, query, ""))


def redact_urls(
    _logger: Any, _method: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """structlog processor applying :func:`redact_url` to ``url`` fields."""
    for key in _URL_KEYS & event_dict.keys():
        value = event_dict[key]
        if isinstance(value, str):
            event_dict[key] = redact_url(value)
    return event_dict


def configure_logging(*, verbose: bool = False, log_json: bool = False) -> None:
    """Install the stderr handler and set clashctl's level.

    Args:
        verbose: DEBUG for clashctl loggers; otherwise WARNING and up.
        log_json: Render JSON lines instead of console output.
    """
    shared: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        redact_urls,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer()
        if log_json
        else structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    )

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.WARNING)

    logging.getLogger("clashctl").setLevel(logging.DEBUG if verbose else logging.WARNING)
    for name in _QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)
