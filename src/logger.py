"""
Logging setup shared by the whole project.
"""
import logging
import logging.handlers
from pathlib import Path
from typing import Optional
import time
from contextlib import contextmanager

from .config import OUTPUTS_DIR


def setup_logging(level: str = "INFO",
                  log_file: Optional[Path] = None,
                  enable_console: bool = True) -> None:
    """
    Configure the root logger with a rotating file and a console handler.
    Repeated calls never add duplicate handlers.
    """
    root = logging.getLogger()

    # Always reset the level, third-party libraries may have changed it
    log_level = getattr(logging, level.upper(), logging.INFO)
    root.setLevel(log_level)

    console_fmt = logging.Formatter(
        fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%H:%M:%S"
    )
    file_fmt = logging.Formatter(
        fmt="%(asctime)s | %(levelname)s | %(name)s | %(filename)s:%(lineno)d | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    if log_file is None:
        OUTPUTS_DIR.mkdir(parents=True, exist_ok=True)
        log_file = OUTPUTS_DIR / "pipeline.log"
    else:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    file_handler_exists = any(
        isinstance(h, logging.handlers.RotatingFileHandler)
        and getattr(h, 'baseFilename', None) == str(Path(log_file).resolve())
        for h in root.handlers
    )
    if not file_handler_exists:
        file_handler = logging.handlers.RotatingFileHandler(
            str(log_file), maxBytes=25 * 1024 * 1024, backupCount=3, encoding="utf-8"
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(file_fmt)
        root.addHandler(file_handler)

    if enable_console:
        # RotatingFileHandler is a StreamHandler subclass too
        console_exists = any(
            type(h) is logging.StreamHandler for h in root.handlers
        )
        if not console_exists:
            console_handler = logging.StreamHandler()
            console_handler.setLevel(log_level)
            console_handler.setFormatter(console_fmt)
            root.addHandler(console_handler)

    # neo4j driver notifications are noisy at INFO
    logging.getLogger("neo4j").setLevel(max(log_level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    """
    Return a named logger.
    """
    return logging.getLogger(name)


@contextmanager
def log_timing(logger: logging.Logger, message: str):
    """
    Log how long the wrapped block took.
    """
    start = time.time()
    logger.info(f"{message} - started")
    try:
        yield
    finally:
        took = time.time() - start
        logger.info(f"{message} - finished in {took:.2f}s")
