"""Environment and logging helpers."""

import logging
import os
import sys
from typing import Optional

from ..config import API_KEY_NAMES, LOG_DATE_FORMAT, LOG_FORMAT


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> None:
    """Set up logging configuration.

    Logs always go to stderr; pass ``log_file`` to also append to a file.

    Args:
        level: Logging level
        log_file: Path to log file (None to disable file logging)
    """
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
            handlers.append(file_handler)
        except OSError as e:
            print(f"Warning: Could not open log file '{log_file}': {e}", file=sys.stderr)

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=handlers,
        force=True,
    )


def get_api_key() -> Optional[str]:
    """Return the Gemini API key from the environment, if any."""
    for name in API_KEY_NAMES:
        value = os.getenv(name)
        if value:
            return value
    return None
