"""Configures application-wide logging."""

import logging
import logging.handlers
import os
from pathlib import Path

_HANDLER_NAME = "snapedit-file"


def get_app_data_dir() -> Path:
    """Returns the application data directory."""
    app_data = os.getenv("APPDATA")
    if app_data:
        return Path(app_data) / "snapedit"
    return Path.home() / ".snapedit"


def setup_logging(debug: bool = False):
    """Sets up logging to a rotating file in the app data directory.

    Safe to call more than once; the file handler is only installed the first time.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if debug else logging.INFO)

    if any(getattr(h, "name", None) == _HANDLER_NAME for h in root_logger.handlers):
        return

    log_dir = get_app_data_dir() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "app.log"

    handler = logging.handlers.RotatingFileHandler(
        log_file, maxBytes=10*1024*1024, backupCount=5
    )
    handler.set_name(_HANDLER_NAME)
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    # Configure logging for key modules
    logging.getLogger("snapedit.imaging.cache").setLevel(logging.DEBUG if debug else logging.INFO)
    logging.getLogger("snapedit.imaging.verifier").setLevel(logging.DEBUG)
    logging.getLogger("PIL").setLevel(logging.INFO)
