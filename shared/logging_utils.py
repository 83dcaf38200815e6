"""FuoTerm logging utilities."""
from __future__ import annotations
import logging
import logging.handlers
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_rotating_logger(name: str, log_dir: Path, level: int = logging.DEBUG) -> logging.Logger:
    """Set up a rotating file logger + console output.

    Console output goes to stderr at WARNING and above so it does not break
    up the status line on stdout.
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"{name}.log"

    logger = logging.getLogger(name)
    logger.setLevel(level)

    if not logger.handlers:
        # Rotating file handler: 5MB x 5 files
        fh = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=5 * 1024 * 1024, backupCount=5, encoding="utf-8"
        )
        fh.setLevel(level)
        fmt = logging.Formatter(LOG_FORMAT)
        fh.setFormatter(fmt)
        logger.addHandler(fh)

        # Console handler
        ch = logging.StreamHandler()
        ch.setLevel(max(level, logging.WARNING))
        ch.setFormatter(fmt)
        logger.addHandler(ch)

    return logger
