import sys
import logging
from pathlib import Path
from typing import Optional


def setup_logging(
    log_level: str = "INFO", log_folder: Optional[Path] = None
) -> logging.Logger:
    """
    Set up logging configuration with both file and console handlers.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_folder: Directory for the log file, defaults to ./logs

    Returns:
        Configured root logger
    """
    log_folder = log_folder or Path.cwd() / "logs"
    log_folder.mkdir(parents=True, exist_ok=True)

    log_file = log_folder / "security_docs_generator.log"

    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    # Clear any existing handlers
    logger = logging.getLogger()
    logger.handlers.clear()

    level = getattr(logging, log_level.upper(), logging.INFO)
    logger.setLevel(level)

    # File handler - logs everything
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(log_format, date_format))
    logger.addHandler(file_handler)

    # Console handler - logs the configured level and above
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    logger.addHandler(console_handler)

    # The client logs every request at INFO
    logging.getLogger("elastic_transport").setLevel(logging.WARNING)

    return logger
