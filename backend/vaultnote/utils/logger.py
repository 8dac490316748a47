# vaultnote/utils/logger.py

import logging
import sys
from typing import Optional

from vaultnote.core.config import get_settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_configured = False


def setup_logger(level: Optional[str] = None) -> None:
    """Configure root logging once; later calls only adjust the level"""
    global _configured

    level_name = (level or get_settings().log_level).upper()
    root = logging.getLogger()
    root.setLevel(getattr(logging, level_name, logging.INFO))
    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.handlers[:] = [handler]
    _configured = True
