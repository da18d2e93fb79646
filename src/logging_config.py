"""Logging setup for the Session Transcription Service.

Services log through module-level loggers; this module only wires the
root handler once at process start.
"""

import logging

from src.config import get_settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Configure root logging from settings.

    Args:
        level: Explicit level name (e.g. "DEBUG"). When None, DEBUG is used
            if settings.DEBUG is set, otherwise settings.LOG_LEVEL.
    """
    if level is None:
        settings = get_settings()
        level = "DEBUG" if settings.DEBUG else settings.LOG_LEVEL

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )
