"""
structlog setup shared by the API server and the CLI.

Both structlog loggers and the stdlib loggers used by the core modules end
up in one stdout handler, rendered as JSON lines or for the console.
"""

import logging
import sys
from typing import Any, MutableMapping, Optional

import structlog

from .config import settings

# Event keys that must never reach the logs in clear
SECRET_KEYS = frozenset({"password", "secret", "pkey", "private_key"})

NOISY_LOGGERS = ("uvicorn.access", "httpcore", "httpx")


def redact_secrets(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    for key in SECRET_KEYS.intersection(event_dict):
        event_dict[key] = "***"
    return event_dict


def _pick_renderer(log_format: str, level: int) -> structlog.types.Processor:
    if log_format == "console" or (log_format == "auto" and level == logging.DEBUG):
        return structlog.dev.ConsoleRenderer()
    return structlog.processors.JSONRenderer()


def setup_logging(log_level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """Install the structlog pipeline on the root logger.

    Args:
        log_level: Overrides settings.log_level.
        log_format: "json", "console" or "auto" (console at DEBUG); overrides settings.log_format.
    """
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)
    renderer = _pick_renderer((log_format or settings.log_format).lower(), level)

    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        redact_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if isinstance(renderer, structlog.processors.JSONRenderer):
        pre_chain.append(structlog.processors.format_exc_info)

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
