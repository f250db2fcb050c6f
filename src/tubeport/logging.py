"""Logging for tubeport: structlog events rendered through stdlib handlers.

``tubeport.log`` receives every event in console format. ``convert.log``
receives only events from ``tubeport.convert`` loggers, one JSON object per
line, so a conversion can be replayed track by track. Both rotate.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

import structlog

_ROTATE_BYTES = 10 * 1024 * 1024
_ROTATE_KEEP = 5
_CONVERT_LOGGER = "tubeport.convert"
_NOISY_LOGGERS = ("httpx", "httpcore")

_pre_chain: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.stdlib.ExtraAdder(),
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.UnicodeDecoder(),
]


def _file_handler(path: Path, renderer: structlog.types.Processor) -> RotatingFileHandler:
    handler = RotatingFileHandler(path, maxBytes=_ROTATE_BYTES, backupCount=_ROTATE_KEEP, encoding="utf-8")
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=_pre_chain))
    return handler


def _log_uncaught(exc_type: type[BaseException], exc_value: BaseException, exc_tb: object) -> None:
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_tb)  # type: ignore[arg-type]
        return
    logging.getLogger("tubeport").critical("Unhandled exception", exc_info=(exc_type, exc_value, exc_tb))


def setup_logging(log_level: str = "info", log_dir: Path | None = None) -> None:
    """Route structlog through the stdlib root logger.

    Unknown *log_level* names fall back to ``info``. With *log_dir* set to
    ``None`` no files are written.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    structlog.configure(
        processors=[*_pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        root.addHandler(_file_handler(log_dir / "tubeport.log", structlog.dev.ConsoleRenderer(colors=False)))

        convert_handler = _file_handler(log_dir / "convert.log", structlog.processors.JSONRenderer())
        convert_handler.addFilter(logging.Filter(_CONVERT_LOGGER))
        root.addHandler(convert_handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    sys.excepthook = _log_uncaught  # type: ignore[assignment]
