"""Logging setup shared by the worker, beat and ad-hoc scripts."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def init_logging(level: str = "INFO") -> None:
    """Initialize process-wide logging."""
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logging.basicConfig(level=level.upper(), handlers=[handler], force=True)

    # Provider SDKs are chatty at INFO
    logging.getLogger("twilio.http_client").setLevel(logging.WARNING)
