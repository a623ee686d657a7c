"""Google Indexing API — notification metadata and URL_UPDATED requests."""

import logging

logger = logging.getLogger(__name__)


def _build_service(creds):
    from googleapiclient.discovery import build

    return build("indexing", "v3", credentials=creds, cache_discovery=False)


def _call(request) -> int:
    """Execute a request and return an HTTP status code instead of raising."""
    from googleapiclient.errors import HttpError

    try:
        request.execute()
        return 200
    except HttpError as e:
        return int(getattr(e.resp, "status", 0) or 500)


def get_publish_metadata(creds, url: str) -> int:
    """Single metadata lookup. 404 = never submitted, <400 = already submitted, else error."""
    service = _build_service(creds)
    status = _call(service.urlNotifications().getMetadata(url=url))
    if status == 403:
        logger.error("Forbidden while reading metadata for %s; is the Indexing API enabled?", url)
    elif status >= 500:
        logger.error("Server error %s while reading metadata for %s", status, url)
    return status


def request_indexing(creds, url: str, action: str = "URL_UPDATED") -> int:
    """Notify Google about a URL change. action: URL_UPDATED or URL_DELETED."""
    service = _build_service(creds)
    body = {"url": url, "type": action}
    status = _call(service.urlNotifications().publish(body=body))
    if status == 429:
        logger.error("Rate limit exceeded while requesting indexing for %s", url)
    elif status >= 400:
        logger.error("Indexing request for %s failed with HTTP %s", url, status)
    return status
