import os
from dotenv import load_dotenv
load_dotenv()
# Auction site configuration (IAAI "Buy Now" search results)
auction_site = {
    "name": "IAAI",
    "scraping": {
        "start_url": os.environ.get(
            "IAAI_START_URL",
            "https://www.iaai.com/Search?queryFilterValue=Buy%20Now&queryFilterGroup=AuctionType"
        ),
        "media_base_url": "https://mediastorageaccountprod.blob.core.windows.net/media",
    },
    "selectors": {
        "results_table": "div.table-body",
        "listing_row": "div.table-row.table-row-border",
        "cookie_consent": "#truste-consent-button",
        "loader": ".circle-loader-shape",
        "overlay": ".blockUI.blockOverlay",
        # {page} is replaced with the target page number
        "page_number_button": "button#PageNumber{page}",
        "next_batch_button": "button.btn-next-10",
        "next_button": "button.btn-next",
        "active_class": "active",
    },
    "pagination": {
        "batch_size": 10,
        "loader_timeout": 25000,
        "overlay_timeout": 5000,
        "probe_timeout": 1000,
        "batch_settle_delay": 2000,
        "fast_forward_settle_delay": 1500,
        # Seconds per navigation action; None derives it from the waits above
        "navigation_hard_timeout": None,
    },
    "timeouts": {
        "goto": 60000,
        "results": 30000,
        "cookie_consent": 3000,
        "page_settle": 1000,
    },
}

__all__ = ["auction_site"]
