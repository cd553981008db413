"""
Common utilities for the lawcatalog pipeline.

Provides:
- Logging setup (tqdm-safe console output plus a rotating log file)
- Stage headers for the run log
"""

import logging
from logging.handlers import RotatingFileHandler
from typing import Optional

from tqdm import tqdm

from lawcatalog import config


class TqdmLoggingHandler(logging.Handler):
    """
    Logging handler that routes messages through tqdm.write()
    to avoid breaking progress bars.
    """
    def __init__(self, level=logging.NOTSET):
        super().__init__(level)

    def emit(self, record):
        try:
            msg = self.format(record)
            tqdm.write(msg)
            self.flush()
        except Exception:
            self.handleError(record)


def setup_logging(
    name: str = "lawcatalog",
    level: int = logging.INFO,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """Set up logging with console (tqdm-safe) and file handlers.

    Configure the package logger ("lawcatalog") once from the entry point;
    modules log through logging.getLogger(__name__) and inherit the handlers.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Check if handler already exists to avoid duplicates
    if not logger.handlers:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - [%(threadName)s] - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

        console_handler = TqdmLoggingHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

        log_path = config.LOG_FILE if log_file is None else config.LOG_DIR / log_file
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path, maxBytes=5 * 1024 * 1024, backupCount=5, encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

        # Prevent propagation to root logger which might have default handlers
        logger.propagate = False

    return logger


def log_stage_header(logger: logging.Logger, stage_number: int, stage_name: str) -> None:
    """Log a formatted header for a pipeline stage."""
    header = f"STAGE {stage_number}: {stage_name}"
    logger.info("=" * len(header))
    logger.info(header)
    logger.info("=" * len(header))
