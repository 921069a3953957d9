from __future__ import annotations

import logging

from .config import LOG_FILE

logger = logging.getLogger("bikebench")
logger.setLevel(logging.DEBUG)

if not logger.handlers:
    handler = logging.FileHandler(LOG_FILE, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter("%(asctime)s - %(levelname)s - %(message)s"))
    logger.addHandler(handler)
