"""Sitemap discovery via Search Console, URL extraction from sitemap XML."""

import logging
import xml.etree.ElementTree as ET

import requests

from engines.errors import NoSitemapsError
from engines.google_sc import list_sitemaps

logger = logging.getLogger(__name__)

NS = {"s": "http://www.sitemaps.org/schemas/sitemap/0.9"}
MAX_DEPTH = 5


def fetch_sitemap_urls(sitemap_url: str, session: requests.Session | None = None, _depth: int = 0) -> list[str]:
    """Fetch a sitemap and return its page URLs, following sitemap index files."""
    http = session or requests
    resp = http.get(sitemap_url, timeout=30)
    resp.raise_for_status()
    root = ET.fromstring(resp.content)

    if root.tag.endswith("sitemapindex"):
        if _depth >= MAX_DEPTH:
            logger.warning("Sitemap index nesting too deep at %s, skipping", sitemap_url)
            return []
        urls = []
        for loc in root.findall("s:sitemap/s:loc", NS):
            if loc.text:
                urls.extend(fetch_sitemap_urls(loc.text.strip(), session, _depth + 1))
        return urls

    return [loc.text.strip() for loc in root.findall("s:url/s:loc", NS) if loc.text]


def get_sitemap_urls(creds, site_url: str) -> tuple[list[str], list[str]]:
    """Return (sitemaps registered in Search Console, de-duplicated page URLs)."""
    from googleapiclient.errors import HttpError

    try:
        registered = list_sitemaps(creds, site_url)
    except HttpError as e:
        status = getattr(e.resp, "status", "?")
        raise NoSitemapsError(f"Could not list sitemaps for {site_url} (HTTP {status}).") from e
    sitemaps = [s["path"] for s in registered if s.get("path")]
    urls: list[str] = []

    with requests.Session() as session:
        for sitemap in sitemaps:
            try:
                urls.extend(fetch_sitemap_urls(sitemap, session))
            except (requests.RequestException, ET.ParseError) as e:
                logger.warning("Could not read sitemap %s: %s", sitemap, e)

    return sitemaps, list(dict.fromkeys(urls))
