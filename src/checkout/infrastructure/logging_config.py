from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level: str | int = logging.WARNING) -> None:
    """Configure the root logger once for the CLI process."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT)
    # httpx logs every request line at INFO, including query strings.
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
