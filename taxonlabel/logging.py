from __future__ import annotations

import logging
import os

import structlog


def setup_logging(json_mode: bool | None = None, *, verbose: bool = False) -> structlog.BoundLogger:
    """Route structlog through stdlib logging on stderr.

    ``json_mode=None`` defers to ``LOG_FORMAT=json``; ``LOG_LEVEL`` overrides
    the level picked by ``verbose``.
    """
    if json_mode is None:
        json_mode = os.getenv("LOG_FORMAT", "").lower() == "json"

    processors: list[structlog.types.Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if json_mode:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    # Search and index events are emitted at debug level.
    level = logging.DEBUG if verbose else logging.INFO
    env_level = os.getenv("LOG_LEVEL")
    if env_level:
        level = logging.getLevelName(env_level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown LOG_LEVEL: {env_level}")

    logging.basicConfig(level=level, format="%(message)s", force=True)
    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    return structlog.get_logger("taxonlabel")


__all__ = ["setup_logging"]
