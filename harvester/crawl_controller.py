"""
Main orchestrator for the resumable harvester.
Runs frontier population then extraction, checkpointing as it goes.
"""

import math
from datetime import datetime
from typing import Callable, List, Optional

from .browser import LocalSessionFactory, MultiloginSessionFactory
from .config import HarvesterConfig
from .context import CrawlContext
from .errors import ExtractionError, NavigationError, PersistenceError, WaitTimeout
from .models import CrawlPhase, CrawlResult, ProgressCheckpoint
from .muckrack import MuckRackExtractor, get_extractor
from .output import CsvSink
from .resilience import (
    BatchArchiver,
    FailureLedger,
    FrontierStore,
    ProgressTracker,
    RateLimiter,
    RetryHandler,
    VisitedLedger,
)
from .utils import listing_page_url, now_iso


def create_session_factory(config: HarvesterConfig):
    """Pick the page provider backend for this run."""
    if config.local_browser:
        return LocalSessionFactory()
    return MultiloginSessionFactory(config.multilogin)


class CrawlController:
    """Coordinates the stores, the page provider and the extractor."""

    def __init__(
        self,
        config: Optional[HarvesterConfig] = None,
        extractor: Optional[MuckRackExtractor] = None,
        session_factory=None,
        context: Optional[CrawlContext] = None,
        sleep: Optional[Callable[[float], object]] = None,
        rate_limiter: Optional[RateLimiter] = None
    ):
        """
        Initialize controller with configuration.

        Args:
            config: HarvesterConfig instance, uses defaults if None
            extractor: Extractor for the configured target
            session_factory: Page provider factory, chosen from config if None
            context: Cancellation handle shared with signal handlers
            sleep: Pause function for pacing and backoff, interruptible wait if None
            rate_limiter: RateLimiter instance, built from config if None
        """
        self.config = config or HarvesterConfig()
        self.extractor = extractor or get_extractor(self.config.target)
        self.session_factory = session_factory
        self.context = context or CrawlContext()
        self._sleep = sleep or self.context.wait
        self._started_at: Optional[str] = None
        self._skipped = 0

        state_dir = self.config.state_dir
        self.frontier = FrontierStore(state_dir)
        self.visited = VisitedLedger(state_dir)
        self.failures = FailureLedger(state_dir)
        self.progress = ProgressTracker(state_dir)
        self.archiver = BatchArchiver(self.config.batch_dir, batch_size=self.config.crawl.batch_size)
        self.sink = CsvSink(self.config.output_file, self.extractor.columns)

        self.rate_limiter = rate_limiter or RateLimiter(config=self.config.rate_limit)
        self.retry_handler = RetryHandler(config=self.config.retry, sleep=self._sleep)

    @property
    def session(self):
        return self.context.session

    def run(self, fresh: bool = False, resume: bool = False) -> CrawlResult:
        """
        Run a crawl.

        Args:
            fresh: Empty all stores before starting
            resume: Skip URL collection when enough unprocessed URLs already exist

        Returns:
            CrawlResult with statistics and final phase
        """
        if fresh and resume:
            raise ValueError("fresh and resume are mutually exclusive")
        self.config.validate()

        self._started_at = now_iso()
        self._skipped = 0

        if fresh:
            self.reset_state()

        state = self.progress.load()
        phase = state.phase
        if phase is CrawlPhase.INTERRUPTED:
            phase = state.interrupted_phase or CrawlPhase.INITIALIZING
            print(f"Resuming interrupted crawl in '{phase.value}' phase "
                  f"({state.total_processed} processed, page {state.current_page})")

        collect = phase in (CrawlPhase.INITIALIZING, CrawlPhase.COLLECTING_URLS)
        if resume and collect:
            ready = len(self.compute_unprocessed())
            if ready >= self.config.crawl.max_items:
                print(f"Found {ready} unprocessed URLs, skipping URL collection")
                collect = False

        self._open_session()
        try:
            if collect:
                self._collect_urls(state)
            if not self.context.stopped:
                self._extract_all()

            if self.context.stopped:
                self._drain()
            else:
                self.archiver.flush()
                self._checkpoint(phase=CrawlPhase.COMPLETED, interrupted_phase=None)
        except BaseException as e:
            print(f"Crawl aborted: {e!r}")
            self._drain()
            raise
        finally:
            self.context.release_session()

        return self._create_result()

    def _open_session(self):
        if self.session_factory is None:
            self.session_factory = create_session_factory(self.config)
        session = self.session_factory.open_session(
            headless=self.config.headless,
            default_timeout=self.config.crawl.listing_timeout,
        )
        self.context.attach_session(session)

    # Phase 1

    def _collect_urls(self, state: ProgressCheckpoint):
        crawl = self.config.crawl
        self.progress.save(phase=CrawlPhase.COLLECTING_URLS)

        pages_needed = math.ceil(crawl.max_items / crawl.results_per_page)
        end_page = crawl.start_page + pages_needed - 1
        first_page = max(crawl.start_page, state.current_page + 1)

        if len(self.frontier) >= crawl.max_items:
            print(f"Frontier already holds {len(self.frontier)} URLs")
            return
        if first_page > end_page:
            print(f"All {pages_needed} listing pages already collected")
            return

        print(f"\nCollecting URLs from pages {first_page}-{end_page} "
              f"({crawl.results_per_page} per page, target {crawl.max_items})")

        pages = list(range(first_page, end_page + 1))
        batch_size = max(1, crawl.pages_per_batch)
        for start in range(0, len(pages), batch_size):
            for page_num in pages[start:start + batch_size]:
                if self.context.stopped:
                    return

                print(f"  Scraping page {page_num}/{end_page}...")
                urls = self._fetch_listing(page_num)
                if urls is None:
                    return
                if not urls:
                    print(f"    No results on page {page_num}, stopping pagination")
                    self.progress.save(total_pages=page_num - 1)
                    return

                added = self.frontier.append(urls)
                collected = len(self.frontier)
                self.progress.save(
                    current_page=page_num,
                    total_pages=end_page,
                    total_collected=collected,
                )
                print(f"    Found {len(urls)} URLs on page {page_num} ({added} new, {collected} total)")

                if collected >= crawl.max_items:
                    print(f"    Collected enough URLs ({collected}), stopping pagination")
                    return

            if start + batch_size < len(pages):
                self._sleep(self.rate_limiter.batch_delay())

    def _fetch_listing(self, page_num: int) -> Optional[List[str]]:
        """
        Fetch one listing page with retries.

        Returns:
            Candidate URLs; empty means the end of results was reached,
            None means a stop cut the retries short
        """
        url = listing_page_url(self.extractor.search_url, page_num)
        outcome = self.retry_handler.execute_with_retry(
            self._open_listing, url, should_stop=lambda: self.context.stopped
        )
        if outcome.succeeded:
            return outcome.result
        if not outcome.terminal:
            return None
        raise NavigationError(f"Listing page {page_num} failed after {outcome.attempt} attempts: "
                              f"{outcome.last_error}")

    def _open_listing(self, url: str) -> List[str]:
        try:
            page = self.session.open(
                url, wait=self.extractor.listing_wait, timeout=self.config.crawl.listing_timeout
            )
        except WaitTimeout:
            return []
        if page.no_results:
            return []
        return self.extractor.list_urls(page)

    # Phase 2

    def compute_unprocessed(self) -> List[str]:
        """
        URLs in the frontier that still need extraction, bounded to max_items.

        Previously exhausted URLs are included unless retry_failed_on_resume is off.
        """
        visited = self.visited.load_all()
        excluded = visited
        if not self.config.crawl.retry_failed_on_resume:
            excluded = visited | self.failures.exhausted(self.config.retry.max_retries)
        unprocessed = [url for url in self.frontier.load() if url not in excluded]
        return unprocessed[:self.config.crawl.max_items]

    def _extract_all(self):
        crawl = self.config.crawl
        self.progress.save(phase=CrawlPhase.EXTRACTING_DATA)

        unprocessed = self.compute_unprocessed()
        total = len(unprocessed)
        print(f"\nStarting detailed extraction of {total} URLs...")

        for i, url in enumerate(unprocessed, 1):
            if self.context.stopped:
                print("Extraction stopped by user")
                break

            progress = f"[{i}/{total}]"
            if self.visited.contains(url):
                self._skipped += 1
                continue

            print(f"{progress} Visiting: {url}")
            outcome = self.retry_handler.execute_with_retry(
                self._extract_detail,
                url,
                on_failure=lambda attempt, error: self.failures.mark_failed(url, error),
                should_stop=lambda: self.context.stopped,
            )

            if outcome.succeeded:
                record = outcome.result
                # Row first: a crash before mark_visited re-extracts rather than loses the record
                self.sink.append(record)
                self.visited.mark_visited(url, record if crawl.audit_payloads else None)
                self.archiver.add(record)
                self.rate_limiter.record_success()
                print(f"{progress} ✓ Extracted")
            elif outcome.terminal:
                self.rate_limiter.record_failure()
                print(f"{progress} ✗ Failed after {outcome.attempt} attempts: {outcome.last_error}")
            else:
                break

            if i % crawl.checkpoint_every == 0:
                self._checkpoint(last_processed_url=url)
                stats = self.progress.get_stats()
                print(f"  Progress: {stats['processed']}/{stats['collected']} processed, "
                      f"{stats['failed']} failed")

            if i < total and not self.context.stopped:
                if outcome.succeeded:
                    self._sleep(self.rate_limiter.item_delay())
                elif self.rate_limiter.should_cooldown():
                    self._sleep(self.rate_limiter.cooldown_seconds())

        self._checkpoint()

    def _extract_detail(self, url: str) -> Optional[dict]:
        page = self.session.open(url, wait=self.extractor.detail_wait, timeout=self.config.crawl.detail_timeout)
        try:
            return self.extractor.extract_detail(page)
        except (AttributeError, IndexError, KeyError, TypeError, ValueError) as e:
            raise ExtractionError(f"Could not parse {url}: {e!r}") from e

    # Checkpointing and shutdown

    def _failed_count(self) -> int:
        exhausted = self.failures.exhausted(self.config.retry.max_retries)
        return len(exhausted - self.visited.load_all())

    def _checkpoint(self, **updates) -> ProgressCheckpoint:
        return self.progress.save(
            total_collected=len(self.frontier),
            total_processed=self.visited.count(),
            total_failed=self._failed_count(),
            **updates
        )

    def _drain(self):
        """Best-effort: record the interruption and flush any partial batch."""
        state = self.progress.state
        interrupted_phase = state.phase if state.phase.is_active else state.interrupted_phase
        try:
            self._checkpoint(phase=CrawlPhase.INTERRUPTED, interrupted_phase=interrupted_phase)
            print("✓ Progress checkpoint saved")
        except PersistenceError as e:
            print(f"⚠️  Warning: Could not save checkpoint: {e}")
        try:
            self.archiver.flush()
        except PersistenceError as e:
            print(f"⚠️  Warning: Could not flush partial batch: {e}")

    def reset_state(self):
        """Empty the frontier, both ledgers and the checkpoint; rotate old output."""
        self.frontier.reset()
        self.visited.reset()
        self.failures.reset()
        self.progress.reset()
        self.rate_limiter.reset()
        self.sink.rotate()
        print("State cleared")

    def extract_one(self, url: str) -> Optional[dict]:
        """Extract a single detail URL without touching crawl state."""
        self.config.validate()
        self._open_session()
        try:
            outcome = self.retry_handler.execute_with_retry(self._extract_detail, url)
            return outcome.result if outcome.succeeded else None
        finally:
            self.context.release_session()

    def get_stats(self) -> dict:
        """
        Get store statistics.

        Returns:
            Dict with queue, ledger and checkpoint info
        """
        queued = len(self.frontier)
        return {
            'total_queued': queued,
            'total_visited': self.visited.count(),
            'total_failed': self.failures.count(),
            'total_remaining': len(self.compute_unprocessed()),
            'next_batch': self.archiver.next_sequence,
            'progress': self.progress.load().to_dict(),
        }

    def _create_result(self) -> CrawlResult:
        """Create CrawlResult with calculated fields."""
        completed_at = now_iso()
        state = self.progress.state

        duration = 0.0
        if self._started_at:
            start = datetime.fromisoformat(self._started_at)
            end = datetime.fromisoformat(completed_at)
            duration = (end - start).total_seconds()

        items_per_hour = 0.0
        if duration > 0:
            items_per_hour = self.sink.rows_written / (duration / 3600)

        failed = sorted(
            (r for url, r in self.failures.load_all().items()
             if r.attempt_count >= self.config.retry.max_retries and not self.visited.contains(url)),
            key=lambda r: r.last_attempt,
        )

        return CrawlResult(
            success=state.phase is CrawlPhase.COMPLETED,
            target=self.config.target,
            phase=state.phase.value,
            started_at=self._started_at or completed_at,
            completed_at=completed_at,
            total_collected=state.total_collected,
            total_processed=state.total_processed,
            total_failed=state.total_failed,
            total_skipped=self._skipped,
            failed_urls=[{'url': r.url, 'reason': r.last_error, 'attempts': r.attempt_count}
                         for r in failed],
            duration_seconds=duration,
            items_per_hour=items_per_hour,
        )
