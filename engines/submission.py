"""Indexing-request submission with rate-limit backoff."""

import asyncio
import logging
from concurrent.futures import Executor
from enum import Enum
from typing import Awaitable, Callable, Iterable

from engines.config import IndexerSettings

logger = logging.getLogger(__name__)

HTTP_NOT_FOUND = 404
HTTP_TOO_MANY_REQUESTS = 429


class SubmissionOutcome(str, Enum):
    ALREADY_REQUESTED = "AlreadyRequested"
    NEWLY_SUBMITTED = "NewlySubmitted"
    PERMANENT_FAILURE = "PermanentFailure"


class SubmissionController:
    """Submits URLs one at a time, skipping URLs Google already has a notification for.

    ``client`` needs blocking ``get_publish_metadata(url) -> int`` and
    ``request_indexing(url) -> int`` methods returning HTTP status codes.
    """

    def __init__(self, client, settings: IndexerSettings | None = None,
                 sleep: Callable[[float], Awaitable] = asyncio.sleep, executor: Executor | None = None):
        self.client = client
        self.settings = settings or IndexerSettings()
        self.sleep = sleep
        self.executor = executor

    async def _call(self, func, url: str) -> int:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, func, url)

    async def _publish_metadata(self, url: str, retries: int) -> int:
        while True:
            status = await self._call(self.client.get_publish_metadata, url)
            if status != HTTP_TOO_MANY_REQUESTS or retries <= 0:
                return status
            retries -= 1
            wait = self.settings.rpm_waiting_time
            logger.warning("Rate limited on %s, waiting %ss (%d retries left)", url, wait, retries)
            await self.sleep(wait)

    async def submit(self, url: str, rpm_retry: bool = False) -> SubmissionOutcome:
        try:
            return await self._submit(url, rpm_retry)
        except Exception as e:
            logger.error("Submission of %s failed: %s", url, e)
            return SubmissionOutcome.PERMANENT_FAILURE

    async def _submit(self, url: str, rpm_retry: bool) -> SubmissionOutcome:
        retries = self.settings.rpm_retries if rpm_retry else 0
        status = await self._publish_metadata(url, retries)

        if status == HTTP_NOT_FOUND:
            result = await self._call(self.client.request_indexing, url)
            if result >= 400:
                return SubmissionOutcome.PERMANENT_FAILURE
            logger.info("Indexing requested for %s", url)
            return SubmissionOutcome.NEWLY_SUBMITTED

        if status < 400:
            logger.info("Indexing already requested previously for %s", url)
            return SubmissionOutcome.ALREADY_REQUESTED

        if status == HTTP_TOO_MANY_REQUESTS:
            logger.error("Rate limit exceeded for %s, try again later", url)
        else:
            logger.error("Metadata lookup for %s failed with HTTP %s", url, status)
        return SubmissionOutcome.PERMANENT_FAILURE

    async def submit_all(self, urls: Iterable[str], rpm_retry: bool = False,
                         on_submitted: Callable[[str, SubmissionOutcome], None] | None = None,
                         ) -> dict[str, SubmissionOutcome]:
        """Submit sequentially; a failed URL is recorded and the loop moves on."""
        outcomes = {}
        for url in urls:
            outcomes[url] = await self.submit(url, rpm_retry)
            if on_submitted:
                on_submitted(url, outcomes[url])
        return outcomes
