"""Logging setup for scraper runs"""

import logging
import os
import sys
from datetime import datetime

from iaai_scraper.config.run_config import logging_config


def setup_logging(debug: bool = False, log_dir: str = None) -> str:
    """Configure root logging with a timestamped file plus stdout; returns the log file path"""
    logs_dir = log_dir or logging_config["directory"]
    os.makedirs(logs_dir, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_filename = os.path.join(logs_dir, f"{logging_config['file_prefix']}_{timestamp}.log")

    logging.basicConfig(
        level=logging.DEBUG if debug else logging_config["level"],
        format=logging_config["format"],
        handlers=[
            logging.FileHandler(log_filename, encoding='utf-8'),
            logging.StreamHandler(sys.stdout)
        ],
        force=True,
    )

    # Suppress verbose HTTP and database logs
    for name in logging_config["quiet_loggers"]:
        logging.getLogger(name).setLevel(logging.WARNING)

    return log_filename
