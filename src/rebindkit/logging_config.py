"""Logging setup for the rebindkit CLI and embedding hosts."""
import logging
import os
from typing import Optional, Union

ENV_LOG_LEVEL = "REBINDKIT_LOG_LEVEL"
LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"


def resolve_level(value: Optional[Union[str, int]], default: int) -> int:
    """Turn a level name ("debug") or number ("10") into a logging level."""
    if value is None:
        return default
    if isinstance(value, int):
        return value
    text = value.strip()
    if not text:
        return default
    if text.isdigit():
        return int(text)
    level = logging.getLevelName(text.upper())
    return level if isinstance(level, int) else default


def configure_logging(default_level: int = logging.INFO, *, debug: bool = False) -> int:
    """Install the root handler and set the ``rebindkit`` logger level.

    ``REBINDKIT_LOG_LEVEL`` beats ``debug``, which beats ``default_level``.
    Other libraries stay at WARNING. Returns the level in effect.
    """
    fallback = logging.DEBUG if debug else default_level
    level = resolve_level(os.getenv(ENV_LOG_LEVEL), fallback)
    logging.basicConfig(level=logging.WARNING, format=LOG_FORMAT)
    logging.getLogger("rebindkit").setLevel(level)
    return level
