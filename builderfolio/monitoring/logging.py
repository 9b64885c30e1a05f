"""
Builderfolio - Structured Logging

structlog setup shared by the API and its services. Development gets the
console renderer; production gets one JSON object per line. Values whose
keys look like credentials (operator key, IPFS secret, Neo4j password,
Farcaster signature) are masked before rendering.
"""

from __future__ import annotations

import logging
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from structlog.typing import EventDict, Processor, WrappedLogger

SERVICE_NAME = "builderfolio-api"
SERVICE_VERSION = "1.0.0"

REDACTED = "[REDACTED]"

# Matched as substrings of the lower-cased key.
SECRET_KEY_FRAGMENTS = (
    "password",
    "passwd",
    "secret",
    "token",
    "api_key",
    "apikey",
    "auth",
    "private_key",
    "privatekey",
    "mnemonic",
    "seed_phrase",
    "signature",
    "cookie",
)

_MAX_REDACT_DEPTH = 10

_NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "neo4j", "web3")


def _is_secret_key(key: Any) -> bool:
    lowered = str(key).lower()
    return any(fragment in lowered for fragment in SECRET_KEY_FRAGMENTS)


def _redact(value: Any, depth: int = 0) -> Any:
    if depth > _MAX_REDACT_DEPTH:
        return value
    if isinstance(value, dict):
        return {
            k: REDACTED if _is_secret_key(k) else _redact(v, depth + 1)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [_redact(item, depth + 1) for item in value]
    return value


def redact_secrets(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Mask credential-like values, including inside nested dicts and lists."""
    redacted: EventDict = _redact(event_dict)
    return redacted


def add_service_info(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    event_dict.setdefault("service", SERVICE_NAME)
    event_dict.setdefault("version", SERVICE_VERSION)
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    sanitize_logs: bool = True,
) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Render JSON lines instead of console output
        sanitize_logs: Mask credential-like values
    """
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
        add_service_info,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if sanitize_logs:
        processors.append(redact_secrets)

    if json_output:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level.upper())
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


@contextmanager
def log_duration(
    logger: Any,
    operation: str,
    level: str = "info",
    **context: Any,
) -> Iterator[None]:
    """
    Log `<operation>_completed` with the elapsed time, or `<operation>_failed`
    with the error before re-raising.

    Usage:
        with log_duration(logger, "profile_nft_mint", wallet=wallet):
            result = await contracts.mint_profile_nft(wallet)
    """
    started = time.monotonic()

    def elapsed_ms() -> float:
        return round((time.monotonic() - started) * 1000, 2)

    try:
        yield
    except Exception as e:
        logger.error(f"{operation}_failed", duration_ms=elapsed_ms(), error=str(e), **context)
        raise
    getattr(logger, level)(f"{operation}_completed", duration_ms=elapsed_ms(), **context)


__all__ = [
    "configure_logging",
    "log_duration",
    "add_service_info",
    "redact_secrets",
]
