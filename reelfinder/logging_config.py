from __future__ import annotations

import logging
import sys

from reelfinder.config import LoggingSettings


def configure_logging(settings: LoggingSettings) -> None:
    """Configure process-wide logging once at CLI startup.

    Log records go to stderr so the JSON summary on stdout stays parseable.
    """

    logging.basicConfig(
        level=getattr(logging, settings.level.upper(), logging.INFO),
        format=settings.format,
        stream=sys.stderr,
        force=True,
    )
