from __future__ import annotations

import logging

from backend.app.core.config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Configure le logging racine (API et jobs planifiés)."""
    logging.basicConfig(
        level=level or LOG_LEVEL,
        format=LOG_FORMAT,
    )
