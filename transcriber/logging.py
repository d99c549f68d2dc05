"""Logging helpers for the transcriber package."""

from __future__ import annotations

import logging
from typing import Optional

_LOGGER_CONFIGURED = False


def configure_logging(level: int = logging.INFO) -> None:
    """Configure basic logging once for the application.

    Later calls only adjust the root level so ``--verbose`` can still take
    effect after modules have grabbed their loggers.
    """

    global _LOGGER_CONFIGURED
    if _LOGGER_CONFIGURED:
        logging.getLogger().setLevel(level)
        return

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )
    _LOGGER_CONFIGURED = True


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Convenience helper that ensures logging is configured."""

    configure_logging()
    return logging.getLogger(name or "transcriber")


__all__ = ["configure_logging", "get_logger"]
