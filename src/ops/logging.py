"""
Logging setup.

Logs go to a file and to the console. Spoken text is logged at INFO by the
log speech backend, so the file doubles as a transcript of a session.
"""

from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def setup_logging(log_path: str, log_level: str) -> None:
    log_dir = os.path.dirname(log_path)
    if log_dir and not os.path.exists(log_dir):
        os.makedirs(log_dir)

    level = log_level.upper() if isinstance(log_level, str) else "INFO"
    if level not in VALID_LOG_LEVELS:
        level = "INFO"

    logging.basicConfig(
        level=getattr(logging, level),
        format=LOG_FORMAT,
        handlers=[
            logging.FileHandler(log_path, encoding="utf-8"),
            logging.StreamHandler(),
        ],
    )

    # Per-request access lines drown out the narration transcript
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
