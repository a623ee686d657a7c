"""Google Search Console API — properties, sitemaps, URL inspection."""

import logging
from urllib.parse import urlparse

from engines.errors import InvalidUrlsError, SiteAccessError
from engines.status import IndexingStatus

logger = logging.getLogger(__name__)


def _build_service(creds, api: str = "searchconsole", version: str = "v1"):
    from googleapiclient.discovery import build

    return build(api, version, credentials=creds, cache_discovery=False)


def _http_status(error) -> int:
    return int(getattr(error.resp, "status", 0) or 0)


def list_sites(creds) -> list:
    service = _build_service(creds, "webmasters", "v3")
    result = service.sites().list().execute()
    return result.get("siteEntry", [])


def list_sitemaps(creds, site_url: str) -> list:
    service = _build_service(creds, "webmasters", "v3")
    result = service.sitemaps().list(siteUrl=site_url).execute()
    return result.get("sitemap", [])


def inspect_url(creds, site_url: str, page_url: str) -> dict:
    service = _build_service(creds)
    body = {"inspectionUrl": page_url, "siteUrl": site_url}
    result = service.urlInspection().index().inspect(body=body).execute()
    return result.get("inspectionResult", {})


def get_page_indexing_status(creds, site_url: str, url: str) -> IndexingStatus:
    """Coverage state of one URL. Never raises: failures come back as RateLimited/Forbidden/Error."""
    from googleapiclient.errors import HttpError

    try:
        result = inspect_url(creds, site_url, url)
    except HttpError as e:
        status = _http_status(e)
        if status == 429:
            return IndexingStatus.RATE_LIMITED
        if status == 403:
            return IndexingStatus.FORBIDDEN
        logger.warning("Inspection of %s failed with HTTP %s", url, status)
        return IndexingStatus.ERROR
    except Exception as e:
        logger.warning("Inspection of %s failed: %s", url, e)
        return IndexingStatus.ERROR

    coverage = result.get("indexStatusResult", {}).get("coverageState", "")
    try:
        return IndexingStatus(coverage)
    except ValueError:
        logger.warning("Unrecognised coverage state for %s: %r", url, coverage)
        return IndexingStatus.ERROR


# ─── Site URL helpers ────────────────────────────────────────────────────


def _bare_domain(site_url: str) -> str:
    for prefix in ("sc-domain:", "https://", "http://"):
        if site_url.startswith(prefix):
            site_url = site_url[len(prefix):]
            break
    return site_url.rstrip("/")


def convert_to_site_url(value: str) -> str:
    """example.com -> sc-domain:example.com; https://example.com -> https://example.com/"""
    value = value.strip()
    if value.startswith(("http://", "https://")):
        return value if value.endswith("/") else value + "/"
    if value.startswith("sc-domain:"):
        return value
    return f"sc-domain:{value.rstrip('/')}"


def convert_to_file_path(site_url: str) -> str:
    """Filesystem-safe name for a site's cache file."""
    return (
        site_url.replace("http://", "http_")
        .replace("https://", "https_")
        .replace(":", "_")
        .replace("/", "_")
    )


def check_site_url(creds, site_url: str) -> str:
    """Return the property URL the service account can access, trying scheme/domain variants."""
    from googleapiclient.errors import HttpError

    domain = _bare_domain(site_url)
    candidates = [site_url, f"https://{domain}/", f"http://{domain}/", f"sc-domain:{domain}"]
    try:
        available = {s["siteUrl"] for s in list_sites(creds)}
    except HttpError as e:
        raise SiteAccessError(f"Could not list Search Console properties (HTTP {_http_status(e)}).") from e

    for candidate in dict.fromkeys(candidates):
        if candidate in available:
            return candidate
    raise SiteAccessError(
        f"This service account doesn't have access to {site_url}. "
        "Add its email as an owner in Google Search Console."
    )


def check_custom_urls(site_url: str, urls: list[str]) -> list[str]:
    """Expand relative URLs against the site and reject URLs outside it."""
    protocol = "http://" if site_url.startswith("http://") else "https://"
    domain = _bare_domain(site_url)
    is_domain_property = site_url.startswith("sc-domain:")

    formatted = []
    for url in urls:
        url = url.strip()
        if not url:
            continue
        if url.startswith("/"):
            url = protocol + domain + url
        elif url.startswith(("http://", "https://")):
            pass
        elif url.startswith(domain):
            url = protocol + url
        else:
            url = f"{protocol}{domain}/{url}"
        formatted.append(url)

    def belongs(url: str) -> bool:
        if is_domain_property:
            host = urlparse(url).hostname or ""
            return host == domain or host.endswith("." + domain)
        prefix = protocol + domain
        return url == prefix or url.startswith(prefix + "/")

    invalid = [u for u in formatted if not belongs(u)]
    if invalid:
        raise InvalidUrlsError(f"URLs outside {site_url}: {', '.join(invalid)}")
    return list(dict.fromkeys(formatted))
