# paginator.py
"""
Pagination controller for the IAAI results list.

The list exposes up to three navigation affordances: a button per page
number (one block of `batch_size` at a time), a "next 10 pages" button that
reveals the following block, and a plain "next" button. `advance` tries them
in that fixed order; `fast_forward` reuses the first two to reach a saved
page in O(page / batch_size) clicks.
"""

import asyncio
import logging
from collections import Counter
from typing import Dict, Optional

from playwright.async_api import Error as PlaywrightError, Locator, Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from iaai_scraper.core.config import scraping_settings
from iaai_scraper.core.models import AdvanceResult

logger = logging.getLogger(__name__)

ABSENT = "absent"
DISABLED = "disabled"
READY = "ready"


class NavigationStuck(Exception):
    """The view changed but did not reach the requested page"""


class PaginationController:
    """Moves one live results page forward; owns no run state besides action counts"""

    def __init__(self, page: Page, selectors: Optional[Dict] = None, pagination: Optional[Dict] = None):
        self.page = page
        self.selectors = dict(scraping_settings["selectors"], **(selectors or {}))
        settings = dict(scraping_settings["pagination"], **(pagination or {}))

        self.batch_size = settings["batch_size"]
        self.loader_timeout = settings["loader_timeout"]
        self.overlay_timeout = settings["overlay_timeout"]
        self.probe_timeout = settings["probe_timeout"]
        self.batch_settle_delay = settings["batch_settle_delay"]
        self.fast_forward_settle_delay = settings["fast_forward_settle_delay"]
        configured_bound = settings.get("navigation_hard_timeout")
        self.hard_timeout = configured_bound if configured_bound is not None else self.derived_hard_timeout()

        self.action_counts = Counter()
        self.click_timeouts = 0

    def derived_hard_timeout(self) -> float:
        """Seconds the slowest non-stuck `advance` can take with every wait at its full timeout.

        Initial settle, the disabled re-check settle, then batch, direct and
        next clicks each followed by a settle, the batch delay and the visibility checks.
        """
        settle = self.loader_timeout + self.overlay_timeout
        click_and_settle = self.loader_timeout + settle
        total_ms = 2 * settle + 3 * click_and_settle + self.batch_settle_delay + 10 * self.probe_timeout
        return total_ms / 1000

    def starts_block(self, page_number: int) -> bool:
        return (page_number - 1) % self.batch_size == 0

    # Controls
    def page_button(self, page_number: int) -> Locator:
        return self.page.locator(self.selectors["page_number_button"].format(page=page_number))

    def next_batch_button(self) -> Locator:
        return self.page.locator(self.selectors["next_batch_button"]).first

    def next_button(self) -> Locator:
        return self.page.locator(self.selectors["next_button"]).first

    async def control_state(self, locator: Locator) -> str:
        """ABSENT when not visible, DISABLED when visible but not enabled, else READY"""
        try:
            if not await locator.is_visible(timeout=self.probe_timeout):
                return ABSENT
            if not await locator.is_enabled(timeout=self.probe_timeout):
                return DISABLED
        except PlaywrightTimeoutError:
            return ABSENT
        return READY

    async def is_active(self, locator: Locator) -> bool:
        class_attr = await locator.get_attribute("class", timeout=self.probe_timeout)
        return self.selectors["active_class"] in (class_attr or "").split()

    # Waits
    async def settle(self) -> bool:
        """Wait for the loading spinner and overlay to go away.

        A spinner that never hides is logged and the caller proceeds.
        """
        try:
            await self.page.wait_for_selector(self.selectors["loader"], state="hidden", timeout=self.loader_timeout)
        except PlaywrightTimeoutError:
            logger.warning(f"⚠️ Loader still visible after {self.loader_timeout}ms, continuing anyway")
            return False

        try:
            await self.page.wait_for_selector(self.selectors["overlay"], state="hidden", timeout=self.overlay_timeout)
        except PlaywrightTimeoutError:
            logger.debug("Overlay did not hide in time")
        return True

    async def click(self, locator: Locator, strategy: str, settle_delay: int = 0) -> bool:
        """Click and settle; a click timeout returns False so the caller can fall through"""
        try:
            await locator.click(timeout=self.loader_timeout)
        except PlaywrightTimeoutError as e:
            logger.warning(f"⚠️ {strategy} click timed out: {e}")
            self.click_timeouts += 1
            return False

        self.action_counts[strategy] += 1
        if settle_delay:
            await self.page.wait_for_timeout(settle_delay)
        await self.settle()
        return True

    async def _bounded(self, coro, description: str) -> AdvanceResult:
        try:
            return await asyncio.wait_for(coro, timeout=self.hard_timeout)
        except asyncio.TimeoutError:
            logger.error(f"❌ {description} exceeded {self.hard_timeout}s, page looks stuck")
            return AdvanceResult.failed(f"{description} timed out")
        except NavigationStuck as e:
            logger.error(f"❌ {description}: {e}")
            return AdvanceResult.failed(str(e))
        except PlaywrightError as e:
            logger.error(f"❌ Navigation error during {description}: {e}")
            return AdvanceResult.failed(str(e))

    # Strategies
    async def direct_jump(self, page_number: int) -> bool:
        """Click the page-number control when it is visible and enabled"""
        button = self.page_button(page_number)
        if await self.control_state(button) != READY:
            return False
        return await self.click(button, "direct")

    async def batch_advance(self, settle_delay: Optional[int] = None) -> bool:
        """Reveal the next block of page-number controls"""
        button = self.next_batch_button()
        if await self.control_state(button) != READY:
            return False
        delay = self.batch_settle_delay if settle_delay is None else settle_delay
        return await self.click(button, "batch", settle_delay=delay)

    async def sequential_next(self) -> bool:
        button = self.next_button()
        if await self.control_state(button) != READY:
            return False
        return await self.click(button, "next")

    async def _land_on(self, page_number: int) -> bool:
        """After a batch click: True when the target is (now) the active page"""
        button = self.page_button(page_number)
        state = await self.control_state(button)
        if state == ABSENT:
            return False
        if await self.is_active(button):
            return True
        if state == READY and await self.click(button, "direct"):
            return True
        raise NavigationStuck(f"page {page_number} control shown but could not be activated")

    async def advance(self, current_page: int) -> AdvanceResult:
        """Move from current_page to current_page + 1"""
        return await self._bounded(self._advance(current_page + 1), f"advance to page {current_page + 1}")

    async def _advance(self, target: int) -> AdvanceResult:
        self.click_timeouts = 0
        await self.settle()

        batch_skipped = False
        button = self.page_button(target)
        state = await self.control_state(button)
        if state == DISABLED:
            # Disabled means the list is still busy; wait once rather than skipping ahead
            await self.settle()
            state = await self.control_state(button)

        if state == READY:
            if await self.click(button, "direct"):
                return AdvanceResult.moved(target, "direct")
        elif state == ABSENT:
            if not self.starts_block(target):
                # next-N always lands on a block start, which would skip pages here
                logger.debug(f"Page {target} is inside the current block, skipping next-{self.batch_size}")
                batch_skipped = await self.control_state(self.next_batch_button()) == READY
            elif await self.batch_advance():
                logger.info(f"⏭️ Direct button missing, used next-{self.batch_size} for page {target}")
                if not await self._land_on(target):
                    logger.debug(f"Page {target} control not shown after batch click, view starts at it")
                return AdvanceResult.moved(target, "batch")
        else:
            logger.info(f"Page {target} control still disabled, trying next button")

        if await self.sequential_next():
            return AdvanceResult.moved(target, "next")

        if self.click_timeouts:
            return AdvanceResult.failed(f"clicks timed out and no fallback reached page {target}")
        if batch_skipped:
            return AdvanceResult.failed(f"only next-{self.batch_size} is available and it would skip page {target}")

        logger.info(f"🏁 No navigation control leads to page {target}")
        return AdvanceResult.no_more_results(f"no control for page {target}")

    async def fast_forward(self, target_page: int) -> AdvanceResult:
        """Jump from page 1 to target_page without visiting the pages in between.

        NO_MORE_RESULTS when the listing now ends before target_page.
        """
        if target_page <= 1:
            return AdvanceResult.moved(1, "fast_forward")

        logger.info(f"⏩ Fast forward: jumping to page {target_page}...")
        await self.settle()

        # Pages 1..batch_size are visible on the first view
        visible_max = self.batch_size
        while target_page > visible_max:
            logger.debug(f"   Visible pages up to {visible_max}, target {target_page}: next-{self.batch_size}")
            result = await self._bounded(self._fast_forward_step(target_page, visible_max), f"fast forward past page {visible_max}")
            if not result.advanced:
                return result
            visible_max += self.batch_size

        logger.info(f"🎯 Range reached, selecting page {target_page}")
        return await self._bounded(self._select_page(target_page, visible_max), f"select page {target_page}")

    async def _fast_forward_step(self, target_page: int, visible_max: int) -> AdvanceResult:
        if await self.batch_advance(settle_delay=self.fast_forward_settle_delay):
            return AdvanceResult.moved(visible_max + 1, "batch")
        if await self._pagination_ends_before(target_page, visible_max):
            return AdvanceResult.no_more_results(f"listing ends before page {target_page}")
        raise NavigationStuck(f"next-{self.batch_size} control unavailable after page {visible_max}")

    async def _select_page(self, target_page: int, visible_max: int) -> AdvanceResult:
        button = self.page_button(target_page)
        state = await self.control_state(button)
        if state == ABSENT:
            if await self._pagination_ends_before(target_page, visible_max):
                return AdvanceResult.no_more_results(f"listing ends before page {target_page}")
            raise NavigationStuck(f"page {target_page} control not found")
        if await self.is_active(button):
            return AdvanceResult.moved(target_page, "fast_forward")
        if state != READY or not await self.click(button, "direct"):
            raise NavigationStuck(f"page {target_page} control could not be clicked")
        return AdvanceResult.moved(target_page, "fast_forward")

    async def _pagination_ends_before(self, target_page: int, visible_max: int) -> bool:
        """True when the shown block is the last one and its highest page is below target_page"""
        if await self.control_state(self.next_batch_button()) != ABSENT:
            return False

        block_start = visible_max - self.batch_size + 1
        last_shown = None
        for number in range(visible_max, block_start - 1, -1):
            if await self.control_state(self.page_button(number)) != ABSENT:
                last_shown = number
                break
        if last_shown is None or last_shown >= target_page:
            # No page controls rendered, or the target should be there
            return False
        if last_shown < visible_max:
            return True

        # Full final block: only the next control on its last page can tell
        button = self.page_button(last_shown)
        if not await self.is_active(button) and not await self.click(button, "direct"):
            return False
        return await self.control_state(self.next_button()) != READY


__all__ = ["PaginationController", "NavigationStuck", "ABSENT", "DISABLED", "READY"]
