# Module for setting up logging
import logging
import os
import sys

import constants


def setup_logging(log_file=None, level=constants.DEFAULT_LOG_LEVEL):
    """Sets up logging to console and, when log_file is given, to a file."""
    log_formatter = logging.Formatter(constants.LOG_FORMAT)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Clear existing handlers (setup may run more than once in a process)
    if root_logger.hasHandlers():
        root_logger.handlers.clear()

    if log_file:
        # Ensure directory exists for log file if it's in a subdirectory
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
        file_handler.setFormatter(log_formatter)
        root_logger.addHandler(file_handler)

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(log_formatter)
    root_logger.addHandler(console_handler)

    # Per-request chatter from urllib3 is only useful when debugging
    logging.getLogger("urllib3").setLevel(logging.DEBUG if level == "DEBUG" else logging.WARNING)
    logging.debug("Logging setup complete.")
