"""Logging setup for the API process."""
import logging
import sys


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure the root logger with a single stdout handler.

    Args:
        log_level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level.upper())

    # Avoid duplicate handlers on reload
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    logging.getLogger(__name__).info(f"Logging initialised (level: {log_level.upper()})")
