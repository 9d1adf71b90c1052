"""
Async job engine for the Google Maps crawler.

Runs seed jobs and every follow-up job they emit on a fixed number of
workers. Each worker owns one browser (via the pool); every job attempt
gets a fresh page and its own deadline.

Architecture:
- asyncio.PriorityQueue ordered by job priority, then submission order
- One JobContext per run; ``stop()`` sets its event and every pending
  browser wait returns promptly
- Navigation failures are retried with backoff up to the job's budget;
  processing failures are final
"""

import asyncio
import itertools
import time
import uuid
from typing import Dict, Iterable, List, Optional

from playwright.async_api import Error as PlaywrightError

from runner.logging_setup import get_logger
from .browser_pool import AsyncBrowserPool
from .gmaps_config import GmapsConfig
from .gmaps_errors import GmapsError, JobCancelled, NavigationFailure
from .gmaps_logger import GmapsScraperLogger
from .job_context import JobContext
from .jobs import Job
from .models import NormalizedResponse

logger = get_logger("gmaps_job_engine")


class JobEngine:
    """
    Usage:
        engine = JobEngine(config)
        results = await engine.run(create_seed_jobs("en", lines, 10, False, config))
    """

    def __init__(
        self,
        config: Optional[GmapsConfig] = None,
        page_source=None,
        scrape_logger: Optional[GmapsScraperLogger] = None,
    ):
        """
        Args:
            config: Crawler configuration
            page_source: Object with ``get_page(worker_id) -> (page, context)``
                and ``cleanup()``; defaults to an AsyncBrowserPool
            scrape_logger: Structured job logger; created under
                ``config.log_dir`` if omitted
        """
        self.config = config or GmapsConfig()
        self.concurrency = self.config.engine.concurrency
        self.page_source = page_source or AsyncBrowserPool(
            self.config.playwright, worker_count=self.concurrency
        )
        self.scrape_logger = scrape_logger or GmapsScraperLogger(self.config.log_dir)

        self.results: List[object] = []
        self.stats: Dict[str, int] = {
            "jobs_completed": 0,
            "jobs_failed": 0,
            "jobs_retried": 0,
            "places_found": 0,
            "results": 0,
        }

        self._queue: Optional[asyncio.PriorityQueue] = None
        self._cancel_event: Optional[asyncio.Event] = None
        self._root: Optional[JobContext] = None
        self._seq = itertools.count()
        self.session_id: Optional[str] = None

    def stop(self):
        """Signal every worker and pending wait to stop."""
        if self._cancel_event is not None:
            logger.info("Stop requested, cancelling pending jobs")
            self._cancel_event.set()

    def get_stats(self) -> Dict[str, int]:
        return dict(self.stats)

    def submit(self, job: Job):
        """Queue a job (lower priority value runs first)."""
        self._queue.put_nowait((job.priority.value, next(self._seq), job))

    async def run(self, seed_jobs: Iterable[Job]) -> List[object]:
        """
        Process seed jobs and their follow-ups until the queue drains or
        ``stop()`` is called.

        Returns:
            Results of every job whose ``use_in_results()`` is True
        """
        self._queue = asyncio.PriorityQueue()
        self._cancel_event = asyncio.Event()
        self._root = JobContext(self._cancel_event)

        seed_jobs = list(seed_jobs)
        for job in seed_jobs:
            self.submit(job)

        start_time = time.time()
        self.session_id = uuid.uuid4().hex[:12]
        self.scrape_logger.set_context(session=self.session_id, lang_code=self.config.lang_code)
        self.scrape_logger.operation_started("crawl", {
            "seed_jobs": len(seed_jobs),
            "concurrency": self.concurrency,
        })

        workers = [asyncio.create_task(self._worker(worker_id)) for worker_id in range(self.concurrency)]
        drained = asyncio.create_task(self._queue.join())
        stopped = asyncio.create_task(self._cancel_event.wait())

        try:
            await asyncio.wait({drained, stopped}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in [drained, stopped, *workers]:
                task.cancel()
            await asyncio.gather(*workers, return_exceptions=True)
            await self.page_source.cleanup()

        duration = time.time() - start_time
        total = self.stats["jobs_completed"] + self.stats["jobs_failed"]
        self.scrape_logger.session_summary(
            total_jobs=total,
            completed=self.stats["jobs_completed"],
            failed=self.stats["jobs_failed"],
            places_found=self.stats["places_found"],
            duration_minutes=duration / 60,
        )
        was_stopped = self._cancel_event.is_set()
        self.scrape_logger.crawl_throughput(duration, total, self.stats["results"], was_stopped)
        self.scrape_logger.operation_completed("crawl", "stopped" if was_stopped else "success")
        self.scrape_logger.clear_context()

        logger.info(f"Crawl finished in {duration:.1f}s: {self.stats}")
        return self.results

    async def _worker(self, worker_id: int):
        while not self._root.cancelled():
            try:
                _, _, job = await self._root.guard(self._queue.get())
            except JobCancelled:
                return

            try:
                await self._run_job(worker_id, job)
            except GmapsError as e:
                self.stats["jobs_failed"] += 1
                self.scrape_logger.job_failed(job.id, type(job).__name__, e, attempts=1)
            except Exception as e:
                # Keep the worker alive for the remaining jobs
                self.stats["jobs_failed"] += 1
                logger.exception(f"Worker {worker_id}: unexpected error in {type(job).__name__} {job.id}")
                self.scrape_logger.error("Unexpected job error", e, {"job_id": job.id})
            finally:
                self._queue.task_done()

    async def _run_job(self, worker_id: int, job: Job):
        job_type = type(job).__name__
        started = time.time()
        max_attempts = max(job.max_retries, 1)
        waits = self.config.engine.retry_backoff.intervals(max_attempts)

        response = None
        attempt = 0
        for attempt in range(1, max_attempts + 1):
            self.scrape_logger.job_started(job.id, job_type, job.full_url(), attempt)
            response = await self._attempt(worker_id, job)

            if response.ok:
                break

            self.scrape_logger.page_load_failed(job.id, job.full_url(), response.error, attempt)

            if attempt == max_attempts:
                break

            wait = next(waits)
            self.stats["jobs_retried"] += 1
            self.scrape_logger.job_retry(job.id, attempt + 1, max_attempts, wait)
            if not await self._root.sleep(wait):
                break

        if not response.ok:
            self.stats["jobs_failed"] += 1
            self.scrape_logger.job_failed(job.id, job_type, response.error, attempt)
            return

        self.scrape_logger.page_settled(
            job.id, response.url, response.status_code, int((time.time() - started) * 1000)
        )

        if job.needs_document:
            response.parse_document()

        result, next_jobs = await job.process(self._root.child(self.config.engine.job_timeout), response)

        self.stats["jobs_completed"] += 1
        self.scrape_logger.job_completed(job.id, job_type, time.time() - started)

        if result is not None and job.use_in_results():
            self.results.append(result)
            self.stats["results"] += 1

        if not job.use_in_results():
            self.stats["places_found"] += len(next_jobs)
            self.scrape_logger.places_found(job.id, getattr(job, "query", ""), len(next_jobs))

        for next_job in next_jobs:
            self.submit(next_job)

    async def _attempt(self, worker_id: int, job: Job) -> NormalizedResponse:
        """One navigation on a fresh page; errors come back on the response."""
        ctx = self._root.child(self.config.engine.job_timeout)

        try:
            page, context = await ctx.guard(self.page_source.get_page(worker_id))
        except PlaywrightError as e:
            return NormalizedResponse(url=job.full_url(), error=NavigationFailure(f"could not open page: {e}"))
        except GmapsError as e:
            return NormalizedResponse(url=job.full_url(), error=e)

        try:
            return await job.browser_actions(ctx, page)
        finally:
            try:
                await context.close()
            except PlaywrightError as e:
                logger.warning(f"Error closing context for worker {worker_id}: {e}")
