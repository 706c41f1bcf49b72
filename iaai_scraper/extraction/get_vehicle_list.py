#!/usr/bin/env python3
"""
get_vehicle_list.py - Listing-page helpers for IAAI search results

1. Dismiss the cookie banner
2. Wait for the results table
3. Read the site-reported total
4. Extract the raw rows of the page currently shown (never paginates)
"""

import logging
import re
from typing import Dict, List, Optional

from playwright.async_api import Page, TimeoutError as PlaywrightTimeoutError

from iaai_scraper.core.config import scraping_settings
from iaai_scraper.core.models import RawRecord

logger = logging.getLogger(__name__)

SELECTORS = scraping_settings["selectors"]
TIMEOUTS = scraping_settings["timeouts"]

TOTAL_COUNT_PATTERN = re.compile(
    r'<label[^>]*class="[^"]*label--total[^"]*"[^>]*>([\d,]+)</label>',
    re.IGNORECASE,
)

# Runs in the browser. Each row is wrapped in its own try/catch so one
# malformed row is reported and skipped without losing the rest of the page.
EXTRACT_ROWS_SCRIPT = """
(rowSelector) => {
    const records = [];
    const errors = [];
    document.querySelectorAll(rowSelector).forEach((row, index) => {
        try {
            const byTitle = (prefix) => {
                const el = row.querySelector(`span[title^="${prefix}"]`);
                return el ? el.textContent.trim() : null;
            };
            const text = (selector) => {
                const el = row.querySelector(selector);
                return el ? el.textContent.trim() : null;
            };

            const link = row.querySelector('h4.heading-7 a');
            if (!link) return;

            let stock = null;
            let vin = null;
            row.querySelectorAll('.data-list__item').forEach(item => {
                const label = item.querySelector('.data-list__label');
                if (!label) return;
                const labelText = label.textContent.trim();
                if (labelText.startsWith('Stock #:')) {
                    const value = item.querySelector('.data-list__value');
                    stock = value ? value.textContent.trim() : null;
                }
                if (labelText.startsWith('VIN:')) {
                    vin = label.nextElementSibling ? label.nextElementSibling.textContent.trim() : null;
                }
            });

            let buyNowPrice = null;
            row.querySelectorAll('.data-list--action a').forEach(a => {
                const linkText = a.textContent.trim();
                if (linkText.startsWith('Buy Now')) buyNowPrice = linkText;
            });

            const img = row.querySelector('.table-cell--image img');
            const href = link.getAttribute('href');

            records.push({
                stock,
                vin,
                title: link.textContent.trim(),
                detailUrl: href ? new URL(href, location.origin).href : null,
                imageUrl: img ? (img.getAttribute('data-src') || img.getAttribute('src')) : null,
                primaryDamage: byTitle('Primary Damage:'),
                lossType: byTitle('Loss:'),
                odometer: byTitle('Odometer:'),
                engineInfo: byTitle('Engine:'),
                fuelType: byTitle('Fuel Type:'),
                cylinders: byTitle('Cylinder:'),
                origin: text('span[title^="Branch:"] a'),
                engineStatus: text('.badge'),
                bidPrice: text('.btn--pre-bid') || text('[data-testid="current-bid-price"]'),
                acv: byTitle('ACV:'),
                buyNowPrice,
                auctionDate: text('.data-list__value--action'),
                is360: !!row.querySelector('span.media_360_view'),
            });
        } catch (e) {
            errors.push({ index, message: String(e && e.message ? e.message : e) });
        }
    });
    return { records, errors };
}
"""


async def extract_vehicle_data_from_list(page: Page) -> List[RawRecord]:
    """Return the raw rows of the listing page currently shown; [] when no rows match."""
    result = await page.evaluate(EXTRACT_ROWS_SCRIPT, SELECTORS["listing_row"])
    result = result or {}

    for error in result.get("errors") or []:
        logger.warning(f"⚠️ Could not process vehicle row {error.get('index')}: {error.get('message')}")

    return list(result.get("records") or [])


async def handle_cookie_consent(page: Page) -> bool:
    """Click the consent banner when it shows up; absence is normal"""
    try:
        button = page.locator(SELECTORS["cookie_consent"]).first
        if await button.is_visible(timeout=TIMEOUTS["cookie_consent"]):
            await button.click()
            logger.debug("🍪 Cookie consent accepted")
            return True
    except PlaywrightTimeoutError:
        logger.debug("Cookie consent button did not respond in time")
    return False


async def wait_for_results(page: Page, timeout: Optional[int] = None) -> bool:
    """Wait for the results table; False when the page shows no results table"""
    try:
        await page.wait_for_selector(SELECTORS["results_table"], timeout=timeout or TIMEOUTS["results"])
    except PlaywrightTimeoutError:
        logger.warning("⚠️ No results table found.")
        return False
    return True


async def get_total_auctions_count(page: Page) -> Optional[int]:
    """Site-reported total, or None when the label is missing (best effort)"""
    try:
        content = await page.content()
    except PlaywrightTimeoutError:
        return None
    return parse_total_count(content)


def parse_total_count(content: str) -> Optional[int]:
    match = TOTAL_COUNT_PATTERN.search(content or "")
    if match:
        return int(match.group(1).replace(',', ''))
    return None


__all__ = [
    "extract_vehicle_data_from_list",
    "handle_cookie_consent",
    "wait_for_results",
    "get_total_auctions_count",
    "parse_total_count",
]
