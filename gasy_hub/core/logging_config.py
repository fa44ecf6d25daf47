# gasy_hub/core/logging_config.py

import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

from gasy_hub.core.settings import settings

_configured = False


def configure_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """
    Configure the root logger once.

    Console handler always; rotating file handler only when a log file is set.
    """
    global _configured
    if _configured:
        return

    level_name = (level or settings.LOG_LEVEL or "INFO").upper()
    log_file = log_file or settings.LOG_FILE

    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG)

    # --- Console Handler ---
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(getattr(logging, level_name, logging.INFO))
    console_handler.setFormatter(logging.Formatter(
        '[%(levelname)s] %(asctime)s - %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    logger.addHandler(console_handler)

    # --- File Handler (Rotating File) ---
    # 5 MB per file, 3 old files kept
    if log_file:
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=5 * 1024 * 1024,
            backupCount=3,
            encoding='utf-8'
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))
        logger.addHandler(file_handler)

    # SQLAlchemy engine logging stays quiet unless DATABASE_ECHO is on
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    _configured = True
    logger.info(f"Logging configured (level={level_name}, file={log_file or 'none'})")
