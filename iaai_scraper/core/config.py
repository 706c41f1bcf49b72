# config.py
"""
Unified Configuration for the IAAI listing scraper
"""

# Import existing configurations
from iaai_scraper.config.auction_site_config import auction_site
from iaai_scraper.config.run_config import (
    default_run_input,
    env_settings,
    load_run_input,
    logging_config,
    runtime_settings,
)

# Scraping settings
scraping_settings = {
    "selectors": auction_site["selectors"],
    "pagination": auction_site["pagination"],
    "timeouts": auction_site["timeouts"],
    "media_base_url": auction_site["scraping"]["media_base_url"],
}

# Export all configurations
__all__ = [
    "auction_site",
    "default_run_input",
    "env_settings",
    "load_run_input",
    "logging_config",
    "runtime_settings",
    "scraping_settings",
]
