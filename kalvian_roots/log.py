"""
Logging configuration for ``kalvian_roots``.

Components never configure handlers themselves: each one accepts an injected
``logging.Logger`` and falls back to ``get_logger(__name__)``. Applications
call ``configure_logging`` once at startup.
"""

from __future__ import annotations

import logging
from logging import Logger, StreamHandler

from kalvian_roots.config import Settings, settings as default_settings

BASE_LOGGER_NAME = "kalvian_roots"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_configured: bool = False


def _build_handler(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    return handler


def configure_logging(config: Settings | None = None, force: bool = False) -> Logger:
    """Install console and optional file handlers on the package logger.

    Calling this more than once is a no-op unless ``force`` is set.
    """
    global _configured

    base_logger = logging.getLogger(BASE_LOGGER_NAME)
    if _configured and not force:
        return base_logger

    cfg = config or default_settings
    level = getattr(logging, cfg.log_level, logging.INFO)

    for handler in list(base_logger.handlers):
        base_logger.removeHandler(handler)
        handler.close()

    base_logger.setLevel(level)
    base_logger.addHandler(_build_handler(StreamHandler(), level))

    if cfg.log_file is not None:
        cfg.log_file.parent.mkdir(parents=True, exist_ok=True)
        base_logger.addHandler(
            _build_handler(logging.FileHandler(cfg.log_file, encoding="utf-8"), level)
        )

    _configured = True
    return base_logger


def get_logger(name: str | None = None) -> Logger:
    """Return a logger below the package namespace."""
    if not name:
        return logging.getLogger(BASE_LOGGER_NAME)
    if name == BASE_LOGGER_NAME or name.startswith(BASE_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{BASE_LOGGER_NAME}.{name}")
