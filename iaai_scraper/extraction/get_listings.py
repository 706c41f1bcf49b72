#!/usr/bin/env python3
"""
get_listings.py - Resumable IAAI listing scraper

Workflow per start URL:
1. Open the search results and read the site-reported total
2. Resume: fast-forward to the checkpointed page when one exists
3. For each page: checkpoint -> extract -> normalize -> persist -> paginate
4. Stop on empty page, reported total, max pages or end of pagination
5. Emit run statistics (always, also after an early abort)
"""

import argparse
import asyncio
import logging
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional

from playwright.async_api import Browser, Page, async_playwright
from playwright.async_api import Error as PlaywrightError

from iaai_scraper.core.checkpoint import CheckpointStore
from iaai_scraper.core.config import load_run_input, runtime_settings, scraping_settings
from iaai_scraper.core.db import CREATED, DatabaseHandler
from iaai_scraper.core.errors import DatabaseError, FatalRunError
from iaai_scraper.core.models import (
    CheckpointState,
    DistanceUnit,
    NavigationOutcome,
    PageErrorPolicy,
    RawRecord,
    RunStatistics,
)
from iaai_scraper.core.standardizer import DataStandardizer
from iaai_scraper.extraction.get_vehicle_list import (
    extract_vehicle_data_from_list,
    get_total_auctions_count,
    handle_cookie_consent,
    wait_for_results,
)
from iaai_scraper.extraction.paginator import PaginationController
from iaai_scraper.utils.export import DatasetWriter, format_table
from iaai_scraper.utils.logging_utils import setup_logging

logger = logging.getLogger(__name__)

TIMEOUTS = scraping_settings["timeouts"]

# Outcomes after which the traversal is considered complete
FINISHED_OUTCOMES = ("no_results", "reached_total", "no_more_pages")


class ListingCrawler:
    """Drives pagination, checkpointing and persistence for one or more start URLs"""

    def __init__(
        self,
        db_handler: DatabaseHandler,
        dataset: DatasetWriter,
        standardizer: DataStandardizer,
        storage_dir: str = None,
        checkpoint_key: str = None,
        max_pages: int = 99999,
        page_error_policy: PageErrorPolicy = PageErrorPolicy.CONTINUE,
        max_concurrency: int = 1,
        run_timeout: Optional[float] = 7200,
        headless: bool = True,
        proxy: Optional[Dict[str, str]] = None,
        reset_checkpoint_on_finish: bool = False,
        extract_page: Callable[[Page], Awaitable[List[RawRecord]]] = extract_vehicle_data_from_list,
        paginator_factory: Callable[[Page], PaginationController] = PaginationController,
    ):
        self.db_handler = db_handler
        self.dataset = dataset
        self.standardizer = standardizer
        self.storage_dir = Path(storage_dir or runtime_settings["storage_dir"])
        self.checkpoint_key = checkpoint_key or runtime_settings["checkpoint_key"]
        self.max_pages = max_pages
        self.page_error_policy = PageErrorPolicy.from_value(page_error_policy)
        self.max_concurrency = max(1, int(max_concurrency or 1))
        self.run_timeout = run_timeout
        self.headless = headless
        self.proxy = proxy
        self.reset_checkpoint_on_finish = reset_checkpoint_on_finish
        self.extract_page = extract_page
        self.paginator_factory = paginator_factory

    def checkpoint_for(self, index: int) -> CheckpointStore:
        """Each start URL resumes independently"""
        key = self.checkpoint_key if index == 0 else f"{self.checkpoint_key}_{index}"
        store_dir = self.storage_dir / "key_value_stores" / runtime_settings["key_value_store_name"]
        return CheckpointStore(store_dir, key)

    def reset_checkpoints(self, count: int) -> None:
        for index in range(count):
            self.checkpoint_for(index).clear()

    # Persistence
    async def persist_page(self, raw_records: List[RawRecord], stats: RunStatistics) -> None:
        """Normalize and store one page; per-record database errors never abort the page"""
        records, skipped = self.standardizer.normalize_many(raw_records)
        if skipped:
            logger.warning(f"⚠️ Skipped {skipped} rows without a stock number")
        stats.rows_skipped += skipped

        saved = 0
        errors = 0
        for record in records:
            self.dataset.push_data(record)
            try:
                result = await asyncio.to_thread(self.db_handler.upsert_vehicle, record)
            except DatabaseError as e:
                errors += 1
                logger.error(f"❌ Error upserting vehicle {record.stock}: {e}")
                continue

            saved += 1
            if result == CREATED:
                stats.db_created += 1
            else:
                stats.db_updated += 1

        stats.db_saved += saved
        stats.db_errors += errors
        if saved > 0 or errors > 0:
            logger.info(f"💾 Saved {saved} vehicles (Errors: {errors})")

    # Page loop
    async def scrape_pages(
        self,
        page: Page,
        stats: RunStatistics,
        checkpoint: CheckpointStore,
        paginator: Optional[PaginationController] = None,
    ) -> RunStatistics:
        """Resume if needed, then process pages until a stop condition fires"""
        paginator = paginator or self.paginator_factory(page)
        current_page = 1

        saved_state = checkpoint.load()
        if saved_state.last_page_processed > 1:
            resume_page = saved_state.last_page_processed
            logger.info(f"🔄 Resuming from page {resume_page}...")
            result = await paginator.fast_forward(resume_page)
            if result.outcome is NavigationOutcome.NO_MORE_RESULTS:
                # Listing shrank below the saved page; the next run starts over at page 1
                logger.warning(f"⚠️ Page {resume_page} no longer exists ({result.reason}), clearing checkpoint")
                checkpoint.clear()
                stats.finish("no_more_pages")
                return stats
            if not result.advanced:
                logger.error(f"❌ Could not resume at page {resume_page}: {result.reason}")
                stats.finish("resume_failed")
                return stats
            current_page = resume_page
            logger.info(f"✅ Successfully resumed at page {current_page}")

        while True:
            # Saved before extraction so a crash mid-page re-targets this page
            checkpoint.save(CheckpointState(last_page_processed=current_page))

            logger.info(f"📄 === Scraping page {current_page} ===")
            await page.wait_for_timeout(TIMEOUTS["page_settle"])

            try:
                vehicles_data = await self.extract_page(page)
                if not vehicles_data:
                    logger.info("⚠️ No vehicles found. Stopping pagination.")
                    stats.finish("no_results")
                    break

                logger.info(f"✅ Found {len(vehicles_data)} vehicles.")
                stats.vehicles_found += len(vehicles_data)
                await self.persist_page(vehicles_data, stats)
                stats.pages_processed += 1
            except Exception as e:
                stats.page_errors += 1
                logger.error(f"❌ Page {current_page} failed: {e}")
                logger.debug(traceback.format_exc())
                if self.page_error_policy is PageErrorPolicy.ABORT:
                    stats.finish("aborted")
                    break

            if stats.total_on_site is not None and stats.vehicles_found >= stats.total_on_site:
                logger.info("🛑 Reached total count. Stopping.")
                stats.finish("reached_total")
                break
            if current_page >= self.max_pages:
                logger.info("🛑 Max pages reached.")
                stats.finish("max_pages")
                break

            result = await paginator.advance(current_page)
            if result.advanced:
                current_page = result.page
            elif result.outcome is NavigationOutcome.NO_MORE_RESULTS:
                logger.info("🏁 End of pagination.")
                stats.finish("no_more_pages")
                break
            else:
                logger.error(f"❌ Navigation failed after page {current_page}: {result.reason}")
                stats.finish("navigation_failed")
                break

        return stats

    # Sessions
    async def crawl_start_url(self, browser: Browser, start_url: str, index: int, stats: RunStatistics) -> RunStatistics:
        """Open one start URL in its own context and walk its pages"""
        context = await browser.new_context()
        try:
            page = await context.new_page()
            logger.info(f"📖 Processing: {start_url}")
            await page.goto(start_url, wait_until='domcontentloaded', timeout=TIMEOUTS["goto"])
            await handle_cookie_consent(page)
            if not await wait_for_results(page):
                stats.finish("no_results")
                return stats

            paginator = self.paginator_factory(page)
            await paginator.settle()

            stats.total_on_site = await get_total_auctions_count(page)
            logger.info(f"🎉 Total auctions found: {stats.total_on_site if stats.total_on_site is not None else 'N/A'}")

            checkpoint = self.checkpoint_for(index)
            await self.scrape_pages(page, stats, checkpoint, paginator)

            if self.reset_checkpoint_on_finish and stats.outcome in FINISHED_OUTCOMES:
                checkpoint.clear()
            return stats
        finally:
            await context.close()

    async def _run_session(self, playwright, start_url: str, index: int, stats: RunStatistics,
                           semaphore: asyncio.Semaphore) -> RunStatistics:
        async with semaphore:
            stats.start_time = datetime.now()
            browser = None
            try:
                launch_options: Dict[str, Any] = {
                    "headless": self.headless,
                    "args": runtime_settings["browser_args"],
                }
                if self.proxy:
                    launch_options["proxy"] = self.proxy
                browser = await playwright.chromium.launch(**launch_options)

                await asyncio.wait_for(
                    self.crawl_start_url(browser, start_url, index, stats),
                    timeout=self.run_timeout,
                )
            except asyncio.TimeoutError:
                logger.error(f"⏱️ Run timeout ({self.run_timeout}s) reached for {start_url}")
                stats.finish("timeout")
            except Exception as e:
                logger.error(f"❌ Session error for {start_url}: {e}")
                logger.error(traceback.format_exc())
                stats.page_errors += 1
                stats.finish("error")
            finally:
                if browser:
                    try:
                        await browser.close()
                    except PlaywrightError as e:
                        logger.warning(f"⚠️ Browser for {start_url} did not close cleanly: {e}")
                stats.finish()
        return stats

    async def run(self, start_urls: List[str], all_stats: Optional[List[RunStatistics]] = None) -> List[RunStatistics]:
        """Crawl every start URL with at most max_concurrency browser sessions"""
        if not start_urls:
            raise FatalRunError("No start URL configured")
        if all_stats is None:
            all_stats = [RunStatistics(start_url=url) for url in start_urls]

        semaphore = asyncio.Semaphore(self.max_concurrency)
        async with async_playwright() as playwright:
            tasks = [
                asyncio.create_task(self._run_session(playwright, url, index, stats, semaphore))
                for index, (url, stats) in enumerate(zip(start_urls, all_stats))
            ]
            await asyncio.gather(*tasks)
        return all_stats


def build_proxy_settings(proxy_configuration: Optional[Dict[str, Any]]) -> Optional[Dict[str, str]]:
    """Accept {"server", "username", "password"} or {"proxyUrls": [...]} and return Playwright proxy settings"""
    if not proxy_configuration:
        return None
    server = proxy_configuration.get("server")
    if not server and proxy_configuration.get("proxyUrls"):
        server = proxy_configuration["proxyUrls"][0]
    if not server:
        return None
    proxy = {"server": server}
    for key in ("username", "password"):
        if proxy_configuration.get(key):
            proxy[key] = proxy_configuration[key]
    return proxy


def emit_run_summary(all_stats: List[RunStatistics], start_time: datetime) -> RunStatistics:
    """Log and print the run summary; returns the merged totals"""
    totals = RunStatistics(start_url="TOTAL", start_time=start_time)
    for stats in all_stats:
        totals.merge(stats)
    totals.finish("done")

    rows = []
    for stats in all_stats + [totals]:
        summary = stats.summary()
        rows.append([
            summary["start_url"] or "-",
            summary["pages"],
            summary["found"],
            summary["saved"],
            summary["db_errors"],
            summary["page_errors"],
            str(summary["total_on_site"]),
            summary["outcome"] or "-",
            summary["duration"],
        ])

    logger.info("=" * 50)
    logger.info("🎉 Crawling completed!")
    logger.info(f"📊 Statistics: {totals.summary()}")
    print(format_table(rows, ["Start URL", "Pages", "Found", "Saved", "DB Errors",
                              "Page Errors", "On Site", "Outcome", "Duration"]))
    return totals


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Scrape IAAI Buy Now listings into Supabase.")
    parser.add_argument("--input", help="Path to a JSON run input file")
    parser.add_argument(
        "--start-url",
        action="append",
        help="Override start URL(s). Can be used multiple times.",
    )
    parser.add_argument("--max-pages", type=int, help="Max listing pages to crawl")
    parser.add_argument("--max-concurrency", type=int, help="Max concurrent browser sessions")
    parser.add_argument("--headful", action="store_true", help="Show the browser window")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    parser.add_argument("--distance-unit", choices=["km", "mi"], help="Odometer unit shown on the site")
    parser.add_argument("--page-error-policy", choices=["continue", "abort"], help="What to do when a page fails")
    parser.add_argument("--run-timeout", type=float, help="Wall-clock limit per start URL (seconds)")
    parser.add_argument("--reset-checkpoint", action="store_true", help="Ignore saved progress and start at page 1")
    parser.add_argument("--service-role", action="store_true", help="Use the Supabase service role key")
    return parser.parse_args(argv)


def build_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    return {
        "startUrls": args.start_url,
        "maxPages": args.max_pages,
        "maxConcurrency": args.max_concurrency,
        "headless": False if args.headful else None,
        "debugMode": True if args.debug else None,
        "distanceUnit": args.distance_unit,
        "pageErrorPolicy": args.page_error_policy,
        "runTimeoutSecs": args.run_timeout,
    }


async def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    run_input = load_run_input(args.input, overrides=build_overrides(args))
    log_filename = setup_logging(debug=run_input["debugMode"])

    start_time = datetime.now()
    logger.info("=" * 60)
    logger.info("🚀 IAAI LISTING SCRAPER - resumable pagination")
    logger.info("=" * 60)
    logger.info(f"Log file: {log_filename}")

    start_urls = run_input["startUrls"]
    all_stats = [RunStatistics(start_url=url) for url in start_urls]
    db_handler = DatabaseHandler(use_service_role=args.service_role)
    exit_code = 0

    try:
        db_handler.show_connection_info()
        db_handler.connect()

        initial_stats = db_handler.get_stats()
        logger.info(f"📊 Total cars in database: {initial_stats['total_cars']}")

        storage_dir = Path(runtime_settings["storage_dir"])
        dataset = DatasetWriter(storage_dir / "datasets" / runtime_settings["dataset_name"])
        standardizer = DataStandardizer(
            distance_unit=DistanceUnit.from_value(run_input["distanceUnit"]),
            translate_damage=bool(run_input["translateDamage"]),
            media_base_url=scraping_settings["media_base_url"],
        )
        crawler = ListingCrawler(
            db_handler=db_handler,
            dataset=dataset,
            standardizer=standardizer,
            storage_dir=str(storage_dir),
            max_pages=int(run_input["maxPages"]),
            page_error_policy=PageErrorPolicy.from_value(run_input["pageErrorPolicy"]),
            max_concurrency=int(run_input["maxConcurrency"]),
            run_timeout=run_input["runTimeoutSecs"],
            headless=bool(run_input["headless"]),
            proxy=build_proxy_settings(run_input.get("proxyConfiguration")),
            reset_checkpoint_on_finish=runtime_settings["reset_checkpoint_on_finish"],
        )
        if args.reset_checkpoint:
            crawler.reset_checkpoints(len(start_urls))

        await crawler.run(start_urls, all_stats)
    except FatalRunError as e:
        logger.error(f"❌ Fatal error, run aborted before scraping: {e}")
        exit_code = 1
    finally:
        emit_run_summary(all_stats, start_time)
        db_handler.close()

    return exit_code


def cli() -> None:
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        logger.warning("Script interrupted by user")
        print("\nScript interrupted by user")
        sys.exit(130)


if __name__ == "__main__":
    cli()
