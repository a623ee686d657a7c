"""Indexing status model — raw coverage states, page states, staleness policies."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable


class IndexingStatus(str, Enum):
    """Coverage state reported by the URL Inspection API (plus our failure labels)."""

    SUBMITTED_AND_INDEXED = "Submitted and indexed"
    DUPLICATE_WITHOUT_USER_SELECTED_CANONICAL = "Duplicate without user-selected canonical"
    CRAWLED_CURRENTLY_NOT_INDEXED = "Crawled - currently not indexed"
    DISCOVERED_CURRENTLY_NOT_INDEXED = "Discovered - currently not indexed"
    PAGE_WITH_REDIRECT = "Page with redirect"
    URL_IS_UNKNOWN_TO_GOOGLE = "URL is unknown to Google"
    RATE_LIMITED = "RateLimited"
    FORBIDDEN = "Forbidden"
    ERROR = "Error"


class PageStatus(str, Enum):
    PENDING = "Pending"
    PROCESSING = "Processing"
    COMPLETED = "Completed"
    FAILED = "Failed"


INDEXABLE_STATUSES = frozenset({
    IndexingStatus.DISCOVERED_CURRENTLY_NOT_INDEXED,
    IndexingStatus.CRAWLED_CURRENTLY_NOT_INDEXED,
    IndexingStatus.URL_IS_UNKNOWN_TO_GOOGLE,
    IndexingStatus.FORBIDDEN,
    IndexingStatus.ERROR,
})


@dataclass(frozen=True)
class CacheEntry:
    indexing_status: IndexingStatus
    status: PageStatus
    last_checked_at: datetime

    def to_dict(self) -> dict:
        return {
            "indexing_status": self.indexing_status.value,
            "status": self.status.value,
            "last_checked_at": self.last_checked_at.isoformat(timespec="seconds"),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CacheEntry":
        """Build an entry from its JSON form. Raises KeyError/ValueError on bad data."""
        checked_at = datetime.fromisoformat(data["last_checked_at"])
        if checked_at.tzinfo is None:
            raise ValueError(f"last_checked_at has no UTC offset: {data['last_checked_at']!r}")
        return cls(
            indexing_status=IndexingStatus(data["indexing_status"]),
            status=PageStatus(data["status"]),
            last_checked_at=checked_at,
        )


def classify(indexing_status: IndexingStatus, indexable: frozenset = INDEXABLE_STATUSES) -> PageStatus:
    """Map a raw coverage state to the action we should take for the page.

    Rate-limited checks become Failed so the next run re-checks them; anything
    not indexable (indexed, duplicate, redirect) is Completed.
    """
    if indexing_status is IndexingStatus.RATE_LIMITED:
        return PageStatus.FAILED
    if indexing_status in indexable:
        return PageStatus.PENDING
    return PageStatus.COMPLETED


def make_entry(indexing_status: IndexingStatus, checked_at: datetime,
               indexable: frozenset = INDEXABLE_STATUSES) -> CacheEntry:
    return CacheEntry(
        indexing_status=indexing_status,
        status=classify(indexing_status, indexable),
        last_checked_at=checked_at,
    )


# ─── Staleness policies ──────────────────────────────────────────────────
# A policy answers "should this cached entry be checked again now?".
# Entries are fresh while now - last_checked_at <= window; exactly at the
# window boundary an entry is still fresh.


def _is_old(entry: CacheEntry, now: datetime, window) -> bool:
    return entry.last_checked_at < now - window


def failure_or_age(entry: CacheEntry, now: datetime, window, indexable: frozenset = INDEXABLE_STATUSES) -> bool:
    """Re-check failed checks immediately and everything else once it is old."""
    return entry.status is PageStatus.FAILED or _is_old(entry, now, window)


def indexable_and_age(entry: CacheEntry, now: datetime, window, indexable: frozenset = INDEXABLE_STATUSES) -> bool:
    """Re-check only old entries that are still worth submitting. Indexed pages are never re-checked."""
    worth_checking = entry.indexing_status in indexable or entry.indexing_status is IndexingStatus.RATE_LIMITED
    return worth_checking and _is_old(entry, now, window)


StalenessPolicy = Callable[..., bool]

STALENESS_POLICIES: dict[str, StalenessPolicy] = {
    "failure-or-age": failure_or_age,
    "indexable-and-age": indexable_and_age,
}
