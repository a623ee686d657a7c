"""Bulk indexing run: resolve site, list URLs, check statuses, submit what is not indexed."""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Awaitable, Callable

from engines import google_indexing, google_sc, sitemap
from engines.auth import get_credentials
from engines.batch import run_batches
from engines.config import IndexerSettings, IndexOptions, resolve_options
from engines.errors import NoSitemapsError, NoUrlsError
from engines.status import STALENESS_POLICIES, CacheEntry, IndexingStatus, PageStatus, make_entry
from engines.storage import load_cache, save_cache, timestamp
from engines.submission import SubmissionController, SubmissionOutcome

logger = logging.getLogger(__name__)


class GoogleClient:
    """Search Console + Indexing API calls bound to one set of credentials."""

    def __init__(self, creds):
        self.creds = creds

    def check_site_url(self, site_url: str) -> str:
        return google_sc.check_site_url(self.creds, site_url)

    def get_sitemap_urls(self, site_url: str) -> tuple[list[str], list[str]]:
        return sitemap.get_sitemap_urls(self.creds, site_url)

    def get_page_indexing_status(self, site_url: str, url: str) -> IndexingStatus:
        return google_sc.get_page_indexing_status(self.creds, site_url, url)

    def get_publish_metadata(self, url: str) -> int:
        return google_indexing.get_publish_metadata(self.creds, url)

    def request_indexing(self, url: str) -> int:
        return google_indexing.request_indexing(self.creds, url)


@dataclass
class IndexingReport:
    site_url: str
    urls: list[str]
    pages: dict[str, CacheEntry]
    sitemaps: list[str] = field(default_factory=list)
    rechecked: list[str] = field(default_factory=list)
    buckets: dict[IndexingStatus, list[str]] = field(default_factory=dict)
    queue: list[str] = field(default_factory=list)
    outcomes: dict[str, SubmissionOutcome] = field(default_factory=dict)
    cache_file: Path | None = None

    def counts(self) -> dict[IndexingStatus, int]:
        return {status: len(urls) for status, urls in self.buckets.items() if urls}


class Pipeline:
    def __init__(self, client, settings: IndexerSettings | None = None,
                 sleep: Callable[[float], Awaitable] = asyncio.sleep,
                 clock: Callable[[], datetime] = timestamp):
        self.client = client
        self.settings = settings or IndexerSettings()
        self.clock = clock
        self.sleep = sleep
        self.executor: ThreadPoolExecutor | None = None

    async def _call(self, func, *args):
        """Run a blocking client call on the pipeline's own worker threads."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, func, *args)

    async def resolve_site(self, site: str) -> str:
        site_url = google_sc.convert_to_site_url(site)
        logger.info("Processing site: %s", site_url)
        return await self._call(self.client.check_site_url, site_url)

    async def enumerate_urls(self, site_url: str, urls: list[str] | None = None) -> tuple[list[str], list[str]]:
        if urls:
            urls = google_sc.check_custom_urls(site_url, urls)
            logger.info("Found %d URLs in the provided list", len(urls))
            sitemaps = []
        else:
            logger.info("Fetching sitemaps and pages...")
            sitemaps, urls = await self._call(self.client.get_sitemap_urls, site_url)
            if not sitemaps:
                raise NoSitemapsError("No sitemaps found, add them to Google Search Console and try again.")
            logger.info("Found %d URLs in %d sitemaps", len(urls), len(sitemaps))

        if not urls:
            raise NoUrlsError(f"No URLs found for {site_url}, nothing to index.")
        return sitemaps, urls

    async def check_statuses(self, site_url: str, urls: list[str], cached: dict[str, CacheEntry],
                             on_batch_complete: Callable[[int, int], None] | None = None,
                             ) -> dict[str, CacheEntry]:
        """Return fresh-or-cached entries for ``urls``. ``cached`` is not modified."""
        settings = self.settings
        is_stale = STALENESS_POLICIES[settings.staleness_policy]
        now = self.clock()

        async def check(url, index, batch_index, batch_count):
            entry = cached.get(url)
            if entry is not None and not is_stale(entry, now, settings.freshness_window, settings.indexable_statuses):
                return url, entry
            try:
                status = await self._call(self.client.get_page_indexing_status, site_url, url)
            except Exception as e:
                logger.warning("Status check for %s failed: %s", url, e)
                status = IndexingStatus.ERROR
            return url, make_entry(status, now, settings.indexable_statuses)

        results = await run_batches(check, urls, settings.batch_size, on_batch_complete)
        return dict(r for r in results if r is not None)

    async def run(self, site: str, urls: list[str] | None = None, rpm_retry: bool = False,
                  on_batch_complete: Callable[[int, int], None] | None = None,
                  on_checked: Callable[[IndexingReport], None] | None = None,
                  on_submitted: Callable[[str, SubmissionOutcome], None] | None = None,
                  ) -> IndexingReport:
        self.executor = ThreadPoolExecutor(max_workers=self.settings.batch_size, thread_name_prefix="gsc-indexer")
        try:
            return await self._run(site, urls, rpm_retry, on_batch_complete, on_checked, on_submitted)
        finally:
            self.executor.shutdown(wait=True)
            self.executor = None

    async def _run(self, site, urls, rpm_retry, on_batch_complete, on_checked, on_submitted) -> IndexingReport:
        site_url = await self.resolve_site(site)
        sitemaps, urls = await self.enumerate_urls(site_url, urls)

        cache_dir = self.settings.cache_dir
        cached = load_cache(site_url, cache_dir)
        checked = await self.check_statuses(site_url, urls, cached, on_batch_complete)

        pages = dict(cached)
        pages.update(checked)
        cache_file = save_cache(site_url, pages, cache_dir)
        logger.debug("Saved %d pages to %s", len(pages), cache_file)

        buckets: dict[IndexingStatus, list[str]] = {status: [] for status in IndexingStatus}
        for url, entry in checked.items():
            buckets[entry.indexing_status].append(url)

        report = IndexingReport(
            site_url=site_url,
            urls=urls,
            pages=pages,
            sitemaps=sitemaps,
            rechecked=[url for url, entry in checked.items() if cached.get(url) is not entry],
            buckets=buckets,
            queue=[url for url, entry in checked.items() if entry.status is PageStatus.PENDING],
            cache_file=cache_file,
        )
        if on_checked:
            on_checked(report)

        submitter = SubmissionController(self.client, self.settings, sleep=self.sleep, executor=self.executor)
        report.outcomes = await submitter.submit_all(report.queue, rpm_retry, on_submitted)
        return report


def run_index(site: str, options: IndexOptions | None = None, settings: IndexerSettings | None = None,
              **hooks) -> IndexingReport:
    """Run a full indexing pass for ``site``. Unset options come from the environment."""
    options = resolve_options(options)
    creds = get_credentials(options.client_email, options.private_key, options.path)
    pipeline = Pipeline(GoogleClient(creds), settings)
    return asyncio.run(pipeline.run(site, options.urls, bool(options.rpm_retry), **hooks))
