# log_utils.py
import logging
import os

_DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """
    Logger with one console handler attached on first use.
    Level comes from PAYMENT_LOG_LEVEL (default INFO).
    """
    logger = logging.getLogger(name if name else "payments")
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_DEFAULT_FORMAT))
        logger.addHandler(handler)

        level_str = os.getenv("PAYMENT_LOG_LEVEL", "INFO").upper()
        logger.setLevel(getattr(logging, level_str, logging.INFO))

    return logger
