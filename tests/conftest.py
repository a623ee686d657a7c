"""Shared fixtures: an in-memory stand-in for the Google API client."""

from collections import deque

import pytest

from engines.status import IndexingStatus


class FakeClient:
    """Answers like GoogleClient without touching the network.

    ``statuses`` maps URL -> IndexingStatus for inspections. Publish metadata
    answers 200 for URLs already submitted and 404 otherwise, unless a scripted
    sequence of codes was queued for that URL in ``metadata``.
    """

    def __init__(self, site_url="sc-domain:example.com", sitemaps=None, urls=None, statuses=None):
        self.site_url = site_url
        self.sitemaps = ["https://example.com/sitemap.xml"] if sitemaps is None else sitemaps
        self.urls = list(urls or [])
        self.statuses = dict(statuses or {})
        self.metadata: dict[str, deque] = {}
        self.submitted: set[str] = set()
        self.inspected: list[str] = []
        self.metadata_calls: list[str] = []
        self.indexing_requests: list[str] = []
        self.indexing_status_code = 200

    def check_site_url(self, site_url):
        return self.site_url

    def get_sitemap_urls(self, site_url):
        return self.sitemaps, self.urls

    def get_page_indexing_status(self, site_url, url):
        self.inspected.append(url)
        status = self.statuses.get(url, IndexingStatus.ERROR)
        if isinstance(status, Exception):
            raise status
        return status

    def get_publish_metadata(self, url):
        self.metadata_calls.append(url)
        scripted = self.metadata.get(url)
        if scripted:
            return scripted.popleft()
        return 200 if url in self.submitted else 404

    def request_indexing(self, url):
        self.indexing_requests.append(url)
        if self.indexing_status_code < 400:
            self.submitted.add(url)
        return self.indexing_status_code


class SleepRecorder:
    def __init__(self):
        self.waits: list[float] = []

    async def __call__(self, seconds):
        self.waits.append(seconds)


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def sleep():
    return SleepRecorder()
