# run_config.py
"""
Runtime Configuration for the IAAI listing scraper
"""

import json
import logging
import os
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from iaai_scraper.config.auction_site_config import auction_site

load_dotenv()

# Logging configuration
logging_config = {
    "level": getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
    "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    "directory": os.environ.get("IAAI_LOG_DIR", "logs"),
    "file_prefix": "iaai_listings",
    "quiet_loggers": ["httpx", "httpcore", "supabase", "postgrest"],
}

# Runtime settings
runtime_settings = {
    "storage_dir": os.environ.get("IAAI_STORAGE_DIR", "storage"),
    "checkpoint_key": "CRAWLER_STATE",
    "dataset_name": "default",
    "key_value_store_name": "default",
    "reset_checkpoint_on_finish": os.getenv("IAAI_RESET_CHECKPOINT_ON_FINISH", "False").lower() == "true",
    "browser_args": ["--no-sandbox", "--disable-setuid-sandbox"],
}

# Environment settings
env_settings = {
    "debug": os.getenv("DEBUG", "False").lower() == "true",
    "input_file": os.getenv("IAAI_INPUT_FILE"),
}

# Run input defaults (keys follow the actor input format)
default_run_input = {
    "startUrls": [{"url": auction_site["scraping"]["start_url"]}],
    "maxPages": 99999,
    "maxConcurrency": 1,
    "headless": True,
    "proxyConfiguration": None,
    "debugMode": env_settings["debug"],
    "distanceUnit": "km",
    "translateDamage": False,
    "pageErrorPolicy": "continue",
    "runTimeoutSecs": 7200,
}


def load_run_input(input_file: Optional[str] = None, overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Build the run input from defaults, an optional JSON input file and CLI overrides.

    Overrides whose value is None are ignored so unset CLI flags do not
    clobber file values.
    """
    run_input = dict(default_run_input)

    path = input_file or env_settings["input_file"]
    if path:
        with open(path, "r", encoding="utf-8") as f:
            file_input = json.load(f)
        if not isinstance(file_input, dict):
            raise ValueError(f"Input file {path} must contain a JSON object")
        run_input.update(file_input)

    for key, value in (overrides or {}).items():
        if value is not None:
            run_input[key] = value

    run_input["startUrls"] = normalize_start_urls(run_input.get("startUrls"))
    return run_input


def normalize_start_urls(start_urls: Any) -> List[str]:
    """Accept either plain strings or {"url": ...} objects and return URL strings."""
    urls = []
    for entry in start_urls or []:
        if isinstance(entry, dict):
            url = entry.get("url")
        else:
            url = entry
        if isinstance(url, str) and url.strip():
            urls.append(url.strip())
    return urls


# Export configurations
__all__ = [
    "logging_config",
    "runtime_settings",
    "env_settings",
    "default_run_input",
    "load_run_input",
    "normalize_start_urls",
]
