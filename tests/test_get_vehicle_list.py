from __future__ import annotations

import asyncio
import logging

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from conftest import FakeIaaiSite, FakePage
from iaai_scraper.extraction.get_vehicle_list import (
    extract_vehicle_data_from_list,
    get_total_auctions_count,
    parse_total_count,
    wait_for_results,
)


class EmptyResultsPage(FakePage):
    async def wait_for_selector(self, selector, state=None, timeout=None):
        raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {selector}")


def test_extract_returns_records_and_logs_row_errors(caplog) -> None:
    page = FakePage(FakeIaaiSite(total_pages=1))
    page.evaluate_result = {
        "records": [{"stock": "41234567", "title": "2019 TOYOTA CAMRY"}],
        "errors": [{"index": 3, "message": "Cannot read properties of null"}],
    }

    with caplog.at_level(logging.WARNING):
        records = asyncio.run(extract_vehicle_data_from_list(page))

    assert records == [{"stock": "41234567", "title": "2019 TOYOTA CAMRY"}]
    assert "Could not process vehicle row 3" in caplog.text


def test_extract_with_no_rows_is_empty() -> None:
    page = FakePage(FakeIaaiSite(total_pages=1))

    assert asyncio.run(extract_vehicle_data_from_list(page)) == []

    page.evaluate_result = {"records": [], "errors": []}
    assert asyncio.run(extract_vehicle_data_from_list(page)) == []


def test_parse_total_count() -> None:
    html = '<div><label class="label label--total">12,408</label> results</div>'

    assert parse_total_count(html) == 12408
    assert parse_total_count("<div>no label here</div>") is None
    assert parse_total_count(None) is None


def test_total_count_from_page_content() -> None:
    page = FakePage(FakeIaaiSite(total_pages=1))
    page.html = '<label class="label--total">950</label>'

    assert asyncio.run(get_total_auctions_count(page)) == 950

    page.html = "<html></html>"
    assert asyncio.run(get_total_auctions_count(page)) is None


def test_wait_for_results() -> None:
    site = FakeIaaiSite(total_pages=1)

    assert asyncio.run(wait_for_results(FakePage(site))) is True
    assert asyncio.run(wait_for_results(EmptyResultsPage(site), timeout=10)) is False
