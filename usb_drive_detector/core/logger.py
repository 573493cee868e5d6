import logging
import json
from pathlib import Path
from datetime import datetime
from typing import Optional, Tuple
from rich.logging import RichHandler
from rich.console import Console
from platformdirs import user_log_dir

from .config import config

LOGGER_NAME = "usb_drive_detector"

# Setup rich console
console = Console()


class CustomJSONEncoder(json.JSONEncoder):
    def default(self, obj):
        if hasattr(obj, 'value'):  # Handle Enums
            return obj.value
        if isinstance(obj, datetime):
            return obj.isoformat()
        return str(obj)


class JSONFormatter(logging.Formatter):
    def format(self, record):
        log_obj = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name
        }

        # Structured fields attached through `extra=`
        for key in ['root_directory', 'interval_ms', 'observer']:
            if hasattr(record, key):
                log_obj[key] = getattr(record, key)

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_obj, cls=CustomJSONEncoder)


def default_log_file() -> Path:
    log_dir = Path(user_log_dir(LOGGER_NAME, appauthor=False))
    return log_dir / "usb_drive_detector.json.log"


def setup_logger(name: str = LOGGER_NAME, verbose: bool = False,
                 log_file: Optional[Path] = None) -> Tuple[logging.Logger, Optional[Path]]:
    """
    Configure the package logger with a rich console handler and a JSON
    file handler. Calling it again replaces the handlers it installed before.
    """
    logger = logging.getLogger(name)
    level_name = "DEBUG" if verbose else str(config["logging"].get("level", "INFO")).upper()
    logger.setLevel(getattr(logging, level_name, logging.INFO))
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if config["logging"].get("file_output", True):
        log_file = log_file or default_log_file()
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file)
        except OSError:
            log_file = None
        else:
            file_handler.setFormatter(JSONFormatter())
            logger.addHandler(file_handler)
    else:
        log_file = None

    if config["logging"].get("console_output", True):
        console_handler = RichHandler(console=console, markup=False)
        logger.addHandler(console_handler)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    return logger, log_file


logger, log_file_path = setup_logger()
