"""Tests for engines/status.py: classification and staleness policies."""

from datetime import datetime, timedelta, timezone

import pytest

from engines.status import (
    INDEXABLE_STATUSES,
    STALENESS_POLICIES,
    CacheEntry,
    IndexingStatus,
    PageStatus,
    classify,
    failure_or_age,
    indexable_and_age,
    make_entry,
)

NOW = datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc)
WINDOW = timedelta(days=14)


def _entry(status: IndexingStatus, age: timedelta) -> CacheEntry:
    return make_entry(status, NOW - age)


# ---------------------------------------------------------------------------
# classify
# ---------------------------------------------------------------------------

class TestClassify:

    @pytest.mark.parametrize("status", list(IndexingStatus))
    def test_every_status_has_a_page_status(self, status):
        assert isinstance(classify(status), PageStatus)

    @pytest.mark.parametrize("status", sorted(INDEXABLE_STATUSES))
    def test_indexable_statuses_are_pending(self, status):
        assert classify(status) is PageStatus.PENDING

    def test_rate_limited_is_failed(self):
        assert classify(IndexingStatus.RATE_LIMITED) is PageStatus.FAILED

    @pytest.mark.parametrize("status", [
        IndexingStatus.SUBMITTED_AND_INDEXED,
        IndexingStatus.DUPLICATE_WITHOUT_USER_SELECTED_CANONICAL,
        IndexingStatus.PAGE_WITH_REDIRECT,
    ])
    def test_indexed_duplicate_redirect_are_completed(self, status):
        assert classify(status) is PageStatus.COMPLETED

    def test_rate_limited_stays_failed_even_if_listed_indexable(self):
        indexable = INDEXABLE_STATUSES | {IndexingStatus.RATE_LIMITED}
        assert classify(IndexingStatus.RATE_LIMITED, indexable) is PageStatus.FAILED

    def test_never_processing(self):
        assert PageStatus.PROCESSING not in {classify(s) for s in IndexingStatus}


# ---------------------------------------------------------------------------
# Staleness policies
# ---------------------------------------------------------------------------

class TestFailureOrAge:

    def test_fresh_completed_is_kept(self):
        entry = _entry(IndexingStatus.SUBMITTED_AND_INDEXED, timedelta(days=1))
        assert not failure_or_age(entry, NOW, WINDOW)

    def test_failed_is_rechecked_regardless_of_age(self):
        entry = _entry(IndexingStatus.RATE_LIMITED, timedelta(seconds=5))
        assert failure_or_age(entry, NOW, WINDOW)

    def test_old_indexed_page_is_rechecked(self):
        entry = _entry(IndexingStatus.SUBMITTED_AND_INDEXED, timedelta(days=15))
        assert failure_or_age(entry, NOW, WINDOW)

    def test_exact_boundary_is_fresh(self):
        entry = _entry(IndexingStatus.DISCOVERED_CURRENTLY_NOT_INDEXED, WINDOW)
        assert not failure_or_age(entry, NOW, WINDOW)

    def test_one_second_past_boundary_is_stale(self):
        entry = _entry(IndexingStatus.DISCOVERED_CURRENTLY_NOT_INDEXED, WINDOW + timedelta(seconds=1))
        assert failure_or_age(entry, NOW, WINDOW)


class TestIndexableAndAge:

    def test_indexed_page_never_rechecked(self):
        entry = _entry(IndexingStatus.SUBMITTED_AND_INDEXED, timedelta(days=365))
        assert not indexable_and_age(entry, NOW, WINDOW)

    def test_old_indexable_page_rechecked(self):
        entry = _entry(IndexingStatus.CRAWLED_CURRENTLY_NOT_INDEXED, timedelta(days=20))
        assert indexable_and_age(entry, NOW, WINDOW)

    def test_fresh_indexable_page_kept(self):
        entry = _entry(IndexingStatus.CRAWLED_CURRENTLY_NOT_INDEXED, timedelta(days=2))
        assert not indexable_and_age(entry, NOW, WINDOW)

    def test_fresh_rate_limited_kept_until_old(self):
        assert not indexable_and_age(_entry(IndexingStatus.RATE_LIMITED, timedelta(hours=1)), NOW, WINDOW)
        assert indexable_and_age(_entry(IndexingStatus.RATE_LIMITED, timedelta(days=30)), NOW, WINDOW)

    def test_exact_boundary_is_fresh(self):
        entry = _entry(IndexingStatus.ERROR, WINDOW)
        assert not indexable_and_age(entry, NOW, WINDOW)


def test_policies_registered_by_name():
    assert STALENESS_POLICIES == {"failure-or-age": failure_or_age, "indexable-and-age": indexable_and_age}


def test_cache_entry_dict_form():
    entry = make_entry(IndexingStatus.URL_IS_UNKNOWN_TO_GOOGLE, NOW)
    assert entry.to_dict() == {
        "indexing_status": "URL is unknown to Google",
        "status": "Pending",
        "last_checked_at": "2026-10-18T12:00:00+00:00",
    }
    assert CacheEntry.from_dict(entry.to_dict()) == entry
