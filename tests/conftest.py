"""Test doubles: a simulated IAAI results page and an in-memory Supabase client."""

from __future__ import annotations

import asyncio
import re
from typing import Any, Dict, List, Optional

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

PAGE_BUTTON = re.compile(r"^button#PageNumber(\d+)$")


class FakeIaaiSite:
    """State of the paged results list behind a FakePage."""

    def __init__(
        self,
        total_pages: int,
        rows_per_page: int = 3,
        batch_size: int = 10,
        page_buttons: bool = True,
        batch_button: bool = True,
        next_button: bool = True,
    ) -> None:
        self.total_pages = total_pages
        self.rows_per_page = rows_per_page
        self.batch_size = batch_size
        self.page_buttons = page_buttons
        self.batch_button = batch_button
        self.next_button = next_button

        self.current_page = 1
        self.block_start = 1
        self.disabled_pages: set[int] = set()
        self.clicks: List[tuple] = []

    def visible_page_numbers(self) -> range:
        if not self.page_buttons:
            return range(0)
        last = min(self.block_start + self.batch_size - 1, self.total_pages)
        return range(self.block_start, last + 1)

    def has_next_block(self) -> bool:
        return self.batch_button and self.block_start + self.batch_size <= self.total_pages

    def go_to(self, page_number: int) -> None:
        self.current_page = page_number
        self.block_start = ((page_number - 1) // self.batch_size) * self.batch_size + 1

    def rows(self) -> List[Dict[str, Any]]:
        if self.current_page > self.total_pages:
            return []
        return [
            {
                "stock": f"STK{self.current_page:03d}-{index}",
                "title": "2019 TOYOTA CAMRY SE 2.5L",
                "odometer": "12,345 mi",
                "primaryDamage": "Front",
                "lossType": "Collision" if index % 2 else None,
                "bidPrice": "$1,250",
                "buyNowPrice": "Buy Now $4,500",
                "engineStatus": "Run & Drive",
                "auctionDate": "Oct 21 10:00am CDT",
                "is360": index == 0,
            }
            for index in range(self.rows_per_page)
        ]


class FakeLocator:
    def __init__(self, page: "FakePage", selector: str) -> None:
        self.page = page
        self.site = page.site
        self.selector = selector

    @property
    def first(self) -> "FakeLocator":
        return self

    def _page_number(self) -> Optional[int]:
        match = PAGE_BUTTON.match(self.selector)
        return int(match.group(1)) if match else None

    async def is_visible(self, timeout: Optional[float] = None) -> bool:
        number = self._page_number()
        if number is not None:
            return number in self.site.visible_page_numbers()
        if self.selector == "button.btn-next-10":
            return self.site.has_next_block()
        if self.selector == "button.btn-next":
            return self.site.next_button
        return False

    async def is_enabled(self, timeout: Optional[float] = None) -> bool:
        number = self._page_number()
        if number is not None:
            return number not in self.site.disabled_pages
        if self.selector == "button.btn-next":
            return self.site.current_page < self.site.total_pages
        return True

    async def get_attribute(self, name: str, timeout: Optional[float] = None) -> Optional[str]:
        number = self._page_number()
        if name == "class" and number is not None:
            return "btn btn-page active" if number == self.site.current_page else "btn btn-page"
        return None

    async def click(self, timeout: Optional[float] = None) -> None:
        if self.page.click_error is not None:
            raise self.page.click_error
        number = self._page_number()
        if number is not None:
            self.site.clicks.append(("direct", number))
            self.site.go_to(number)
        elif self.selector == "button.btn-next-10":
            self.site.clicks.append(("batch", self.site.block_start + self.site.batch_size))
            self.site.block_start += self.site.batch_size
            self.site.current_page = self.site.block_start
        elif self.selector == "button.btn-next":
            self.site.clicks.append(("next", self.site.current_page + 1))
            self.site.go_to(self.site.current_page + 1)


class FakePage:
    """Just enough of playwright's Page for the paginator and the crawler loop."""

    def __init__(self, site: FakeIaaiSite, sites: Optional[Dict[str, FakeIaaiSite]] = None) -> None:
        self.site = site
        self.sites = sites or {}
        self.url: Optional[str] = None
        self.loader_stuck = False
        self.loader_hang_seconds = 0.0
        self.click_error: Optional[BaseException] = None
        self.evaluate_result: Any = None
        self.html = ""
        self.waits: List[int] = []

    def locator(self, selector: str) -> FakeLocator:
        return FakeLocator(self, selector)

    async def wait_for_selector(self, selector: str, state: Optional[str] = None, timeout: Optional[float] = None):
        if self.loader_hang_seconds:
            await asyncio.sleep(self.loader_hang_seconds)
        if self.loader_stuck and selector == ".circle-loader-shape":
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {selector}")
        return None

    async def wait_for_timeout(self, timeout: float) -> None:
        self.waits.append(timeout)

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        return self.evaluate_result

    async def content(self) -> str:
        return self.html

    async def goto(self, url: str, wait_until: Optional[str] = None, timeout: Optional[float] = None) -> None:
        self.url = url
        self.site = self.sites.get(url, self.site)


class FakeContext:
    def __init__(self, browser: "FakeBrowser") -> None:
        self.browser = browser
        self.closed = False

    async def new_page(self) -> FakePage:
        return FakePage(FakeIaaiSite(total_pages=0), sites=self.browser.sites)

    async def close(self) -> None:
        self.closed = True


class FakeBrowser:
    def __init__(self, sites: Dict[str, FakeIaaiSite]) -> None:
        self.sites = sites
        self.contexts: List[FakeContext] = []
        self.closed = False

    async def new_context(self) -> FakeContext:
        context = FakeContext(self)
        self.contexts.append(context)
        return context

    async def close(self) -> None:
        self.closed = True


class FakeChromium:
    def __init__(self, sites: Dict[str, FakeIaaiSite]) -> None:
        self.sites = sites
        self.browsers: List[FakeBrowser] = []
        self.launch_options: List[Dict[str, Any]] = []

    async def launch(self, **options: Any) -> FakeBrowser:
        self.launch_options.append(options)
        browser = FakeBrowser(self.sites)
        self.browsers.append(browser)
        return browser


class FakePlaywright:
    """Stands in for the async_playwright() context manager."""

    def __init__(self, sites: Optional[Dict[str, FakeIaaiSite]] = None) -> None:
        self.chromium = FakeChromium(sites or {})

    async def __aenter__(self) -> "FakePlaywright":
        return self

    async def __aexit__(self, *exc_info: Any) -> bool:
        return False


class FakeResponse:
    def __init__(self, data: List[Dict[str, Any]], count: Optional[int] = None) -> None:
        self.data = data
        self.count = count


class FakeQuery:
    def __init__(self, client: "FakeSupabaseClient", table: str) -> None:
        self.client = client
        self.table = table
        self.rows = client.tables.setdefault(table, {})
        self.operation = "select"
        self.filters: List[tuple] = []
        self.payload: Optional[Dict[str, Any]] = None
        self.count_mode: Optional[str] = None
        self.limit_value: Optional[int] = None
        self.order_column: Optional[str] = None
        self.order_desc = False

    def select(self, *columns: str, count: Optional[str] = None) -> "FakeQuery":
        self.operation = "select"
        self.count_mode = count
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self.filters.append((column, value))
        return self

    def limit(self, value: int) -> "FakeQuery":
        self.limit_value = value
        return self

    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self.order_column = column
        self.order_desc = desc
        return self

    def upsert(self, payload: Dict[str, Any], on_conflict: str = "") -> "FakeQuery":
        self.operation = "upsert"
        self.payload = payload
        self.client.conflict_columns.append(on_conflict)
        return self

    def execute(self) -> FakeResponse:
        if self.client.error is not None:
            raise self.client.error
        if self.operation == "upsert":
            stock = self.payload["stock"]
            error = self.client.fail_stocks.get(stock)
            if error is not None:
                raise error
            merged = dict(self.rows.get(stock, {}))
            merged.update(self.payload)
            self.rows[stock] = merged
            return FakeResponse([merged])

        matches = [row for row in self.rows.values() if all(row.get(c) == v for c, v in self.filters)]
        if self.order_column:
            matches.sort(key=lambda row: row.get(self.order_column) or "", reverse=self.order_desc)
        count = len(matches) if self.count_mode else None
        if self.limit_value is not None:
            matches = matches[: self.limit_value]
        return FakeResponse([dict(row) for row in matches], count)


class FakeSupabaseClient:
    def __init__(self) -> None:
        self.tables: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.conflict_columns: List[str] = []
        self.fail_stocks: Dict[str, BaseException] = {}
        self.error: Optional[BaseException] = None

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)


async def extract_from_site(page: FakePage) -> List[Dict[str, Any]]:
    return page.site.rows()


@pytest.fixture
def supabase_client() -> FakeSupabaseClient:
    return FakeSupabaseClient()
