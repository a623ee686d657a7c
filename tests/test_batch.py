"""Tests for engines/batch.py: bounded-concurrency batches."""

import asyncio

import pytest

from engines.batch import chunk, run_batches


def test_chunk_sizes():
    assert [len(c) for c in chunk(list(range(120)), 50)] == [50, 50, 20]
    assert chunk([], 50) == []


def test_chunk_rejects_zero():
    with pytest.raises(ValueError):
        chunk([1], 0)


def test_120_items_in_three_sequential_batches():
    events = []
    settled = set()

    async def worker(item, index, batch_index, batch_count):
        events.append(("start", batch_index, item))
        await asyncio.sleep(0)
        settled.add(item)
        events.append(("end", batch_index, item))
        return item * 2

    def on_batch_complete(batch_index, batch_count):
        events.append(("batch", batch_index, batch_count))

    results = asyncio.run(run_batches(worker, list(range(120)), 50, on_batch_complete))

    assert results == [i * 2 for i in range(120)]
    batches = [e for e in events if e[0] == "batch"]
    assert batches == [("batch", 0, 3), ("batch", 1, 3), ("batch", 2, 3)]

    starts = {}
    for e in events:
        if e[0] == "start":
            starts.setdefault(e[1], []).append(e[2])
    assert [len(starts[b]) for b in (0, 1, 2)] == [50, 50, 20]

    first_batch_done = events.index(("batch", 0, 3))
    first_start_of_batch_1 = next(i for i, e in enumerate(events) if e[0] == "start" and e[1] == 1)
    assert first_batch_done < first_start_of_batch_1
    assert all(e[1] == 0 for e in events[:first_batch_done] if e[0] == "end")
    assert sum(1 for e in events[:first_batch_done] if e[0] == "end") == 50


def test_items_in_a_batch_run_concurrently():
    in_flight = 0
    peak = 0

    async def worker(item, index, batch_index, batch_count):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1

    asyncio.run(run_batches(worker, list(range(12)), 5))
    assert peak == 5


def test_worker_receives_indices():
    seen = []

    async def worker(item, index, batch_index, batch_count):
        seen.append((item, index, batch_index, batch_count))

    asyncio.run(run_batches(worker, ["a", "b", "c"], 2))
    assert sorted(seen) == [("a", 0, 0, 2), ("b", 1, 0, 2), ("c", 2, 1, 2)]


def test_raising_worker_does_not_stop_the_run():
    calls = []

    async def worker(item, index, batch_index, batch_count):
        calls.append(item)
        if item == 1:
            raise RuntimeError("boom")
        return item

    completed = []
    results = asyncio.run(run_batches(worker, [0, 1, 2, 3], 2, lambda b, n: completed.append(b)))
    assert results == [0, None, 2, 3]
    assert sorted(calls) == [0, 1, 2, 3]
    assert completed == [0, 1]


def test_no_items_no_batches():
    completed = []

    async def worker(item, index, batch_index, batch_count):
        return item

    assert asyncio.run(run_batches(worker, [], 50, lambda b, n: completed.append(b))) == []
    assert completed == []
