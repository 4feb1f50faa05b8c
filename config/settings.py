"""
TAILDRAW - Configuration & Logging

Environment-driven settings for the draw engine and its tools.
Values are read once at import (after .env is loaded) into class attributes,
so tests and callers can override them by patching the class.

    TAILDRAW_MAX_ATTEMPTS   Random draws allowed per tail before giving up
    TAILDRAW_LOG_LEVEL      Level for the "taildraw" logger tree
    TAILDRAW_CLIENT_SEED    Fixed client seed for provably fair sessions
    TAILDRAW_CHECK_LIMIT    Largest pool the CLI will brute-force verify
"""

import logging
import os
from dotenv import load_dotenv

load_dotenv()


class DrawSettings:

    # --- Tail generation ---
    MAX_ATTEMPTS = int(os.getenv("TAILDRAW_MAX_ATTEMPTS", "100000"))

    # --- Randomness ---
    CLIENT_SEED = os.getenv("TAILDRAW_CLIENT_SEED", "")

    # --- CLI verification ---
    CHECK_LIMIT = int(os.getenv("TAILDRAW_CHECK_LIMIT", "1000000"))

    # --- Logging ---
    LOG_LEVEL = os.getenv("TAILDRAW_LOG_LEVEL", "WARNING").upper()
    LOG_FORMAT = "[%(asctime)s] %(levelname)s %(message)s"
    LOG_DATEFMT = "%H:%M:%S"

    @classmethod
    def max_attempts(cls, override: int = None) -> int:
        """Resolve the per-tail draw bound. Explicit overrides win."""
        value = cls.MAX_ATTEMPTS if override is None else override
        if value < 1:
            raise ValueError(f"max_attempts must be positive, got {value}")
        return value


def configure_logging(level: str = None) -> logging.Logger:
    """Attach one stream handler to the taildraw logger tree.

    Library modules only create child loggers; entry points (CLI, scripts)
    call this once.
    """
    logger = logging.getLogger("taildraw")
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(DrawSettings.LOG_FORMAT,
                                               datefmt=DrawSettings.LOG_DATEFMT))
        logger.addHandler(handler)
    logger.setLevel((level or DrawSettings.LOG_LEVEL).upper())
    return logger
