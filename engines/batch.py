"""Bounded-concurrency batch runner for async workers."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Sequence

logger = logging.getLogger(__name__)

Worker = Callable[[Any, int, int, int], Awaitable[Any]]


def chunk(items: Sequence, size: int) -> list[Sequence]:
    if size < 1:
        raise ValueError(f"batch size must be positive, got {size}")
    return [items[i:i + size] for i in range(0, len(items), size)]


async def run_batches(
    worker: Worker,
    items: Sequence,
    batch_size: int,
    on_batch_complete: Callable[[int, int], None] | None = None,
) -> list:
    """Run ``worker(item, item_index, batch_index, batch_count)`` over ``items``.

    Items of one batch run concurrently; the next batch starts only after every
    item of the current one has settled. ``on_batch_complete(batch_index,
    batch_count)`` fires once per batch. Workers are expected to turn their own
    failures into result values; if one raises anyway the error is logged and
    its slot in the returned list is ``None``. Nothing is retried here.
    """
    batches = chunk(items, batch_size)
    batch_count = len(batches)
    results: list = []

    for batch_index, batch in enumerate(batches):
        offset = batch_index * batch_size
        settled = await asyncio.gather(
            *(worker(item, offset + i, batch_index, batch_count) for i, item in enumerate(batch)),
            return_exceptions=True,
        )
        for item, result in zip(batch, settled):
            if isinstance(result, BaseException):
                logger.error("Worker failed for %s: %r", item, result)
                result = None
            results.append(result)

        if on_batch_complete:
            on_batch_complete(batch_index, batch_count)

    return results
