"""
Process-wide logging configuration.

Modules log through `logging.getLogger(__name__)`; this only wires the root
handler once at startup.
"""

import logging
import sys

from app.config import LOG_LEVEL


class TextFormatter(logging.Formatter):
    """Human-readable single-line formatter."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


def configure_logging(level: str = LOG_LEVEL) -> None:
    root = logging.getLogger()
    if any(getattr(h, "_estimator_handler", False) for h in root.handlers):
        root.setLevel(level.upper())
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(TextFormatter())
    handler._estimator_handler = True  # type: ignore[attr-defined]

    root.addHandler(handler)
    root.setLevel(level.upper())
