import logging
import sys
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    format_string: Optional[str] = None,
    force: bool = False,
) -> logging.Logger:
    """
    Configure the create_request logger.

    Unknown level names fall back to INFO.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file that also receives log records
        format_string: Optional custom format string for log messages
        force: If True, replace handlers even if some already exist

    Returns:
        The configured "create_request" logger
    """
    formatter = logging.Formatter(format_string or DEFAULT_FORMAT)
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger("create_request")
    logger.setLevel(numeric_level)

    if force or not logger.handlers:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

        handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
        if log_file:
            handlers.append(logging.FileHandler(log_file))

        for handler in handlers:
            handler.setLevel(numeric_level)
            handler.setFormatter(formatter)
            logger.addHandler(handler)

    # Keep records out of the root logger so they are not printed twice
    logger.propagate = False

    return logger
