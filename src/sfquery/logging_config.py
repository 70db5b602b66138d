from __future__ import annotations

import logging
import os
from typing import Optional

_DEFAULT_FMT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_DEFAULT_DATEFMT = "%H:%M:%S"

# Lets the Streamlit builder (which has no -v flags) log more verbosely.
LOG_LEVEL_ENV = "SFQUERY_LOG_LEVEL"


def level_from_env(default: int = logging.WARNING) -> int:
    """Level named by SFQUERY_LOG_LEVEL ("DEBUG", "info", "20"...), else ``default``."""
    raw = (os.getenv(LOG_LEVEL_ENV) or "").strip()
    if not raw:
        return default
    if raw.isdigit():
        return int(raw)
    lvl = logging.getLevelName(raw.upper())
    return lvl if isinstance(lvl, int) else default


def configure_logging(level: Optional[int]) -> None:
    """Set the root level for sfquery; an explicit level beats SFQUERY_LOG_LEVEL.

    Safe to call on every Streamlit rerun: handlers are only added once.
    """
    lvl = level if level is not None else level_from_env()
    root = logging.getLogger()

    if root.handlers:
        # Streamlit and pytest install their own handlers.
        root.setLevel(lvl)
    else:
        logging.basicConfig(level=lvl, format=_DEFAULT_FMT, datefmt=_DEFAULT_DATEFMT)

    # requests' connection pool chatter drowns out describe/query logs at DEBUG.
    for name in ("urllib3.connection", "urllib3.connectionpool"):
        noisy = logging.getLogger(name)
        if noisy.level == logging.NOTSET or noisy.level < logging.ERROR:
            noisy.setLevel(logging.ERROR)
