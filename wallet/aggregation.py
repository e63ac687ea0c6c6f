"""
aggregation.py - Partitioned reductions and filters over the payment log

Every function here receives a snapshot (a list) of payments and never
mutates it. Parallel variants follow one pattern:

    partition -> per-worker private accumulator -> serialized merge

Functions:
- shard_bounds: deterministic [start, stop) ranges for N items and k workers
- sum_payments: exact sum of all amounts
- filter_payments: value copies of one account's payments
- filter_payments_by_fn: value copies of payments matching a predicate
- sum_payments_with_progress: iterator of per-chunk Progress records

Ordering: sums are order-insensitive. Filters keep insertion order inside a
shard, but shards are merged in completion order.
"""

from __future__ import annotations
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import replace
import logging
import queue
import threading
from typing import Callable, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from .core import (
    Money, Payment, Progress,
    DEFAULT_PROGRESS_CHUNK_SIZE,
)


logger = logging.getLogger(__name__)

PaymentPredicate = Callable[[Payment], bool]

# Marks the end of a progress stream.
_CLOSED = object()


def shard_bounds(total: int, workers: int) -> List[Tuple[int, int]]:
    """
    Split ``total`` items into ``workers`` contiguous ranges.

    shard_size = total // workers. Shard i spans [i*shard_size, (i+1)*shard_size)
    except the last, which runs to ``total`` and absorbs the remainder.
    Empty shards are allowed (total < workers).

    Args:
        total: Number of items
        workers: Number of shards (>= 1)

    Returns:
        List of (start, stop) pairs, one per worker, covering [0, total)
    """
    if workers < 1:
        raise ValueError(f"workers must be >= 1, got {workers}")
    size = total // workers
    starts = np.arange(workers, dtype=np.int64) * size
    stops = np.append(starts[1:], total)
    return [(int(a), int(b)) for a, b in zip(starts, stops)]


def _sum_shard(shard: Sequence[Payment]) -> Money:
    return sum(p.amount for p in shard)


def _match_account(shard: Sequence[Payment], account_id: int) -> List[Payment]:
    if not shard:
        return []
    ids = np.fromiter((p.account_id for p in shard), dtype=np.int64, count=len(shard))
    return [replace(shard[i]) for i in np.flatnonzero(ids == account_id)]


def _match_predicate(shard: Sequence[Payment], predicate: PaymentPredicate) -> List[Payment]:
    # The predicate sees a copy so it cannot touch the stored record.
    out = []
    for payment in shard:
        snapshot = replace(payment)
        if predicate(snapshot):
            out.append(snapshot)
    return out


def _run_sharded(payments: Sequence[Payment], workers: int, task, merge) -> None:
    """
    Run ``task`` on every shard in its own thread and feed results to ``merge``.

    ``merge`` is called under a single lock, once per shard, in completion order.
    Returns after every shard is merged.
    """
    lock = threading.Lock()
    bounds = shard_bounds(len(payments), workers)

    def work(start: int, stop: int) -> None:
        partial = task(payments[start:stop])
        with lock:
            merge(partial)

    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(work, start, stop) for start, stop in bounds]
        for future in futures:
            # Re-raise a worker failure in the caller's thread.
            future.result()


def sum_payments(payments: Sequence[Payment], workers: int = 1) -> Money:
    """
    Sum the amounts of all payments regardless of status.

    workers <= 1 sums sequentially; otherwise the log is split with
    shard_bounds() and partial sums are combined under a lock. The result
    is identical for every worker count.
    """
    if workers <= 1:
        return _sum_shard(payments)

    total = [0]

    def merge(partial: Money) -> None:
        total[0] += partial

    _run_sharded(payments, workers, _sum_shard, merge)
    return total[0]


def filter_payments(payments: Sequence[Payment], account_id: int, workers: int = 1) -> List[Payment]:
    """
    Return value copies of every payment debiting ``account_id``.

    Account existence is the caller's concern. With workers <= 1 the result
    is in insertion order; otherwise only per-shard order is kept.
    """
    if workers <= 1:
        return _match_account(payments, account_id)

    found: List[Payment] = []
    _run_sharded(payments, workers, lambda shard: _match_account(shard, account_id), found.extend)
    return found


def filter_payments_by_fn(
    payments: Sequence[Payment],
    predicate: PaymentPredicate,
    workers: int = 1,
) -> List[Payment]:
    """
    Return value copies of every payment for which ``predicate`` is true.

    Same partitioning and ordering rules as filter_payments(). The predicate
    may run concurrently from several threads and must not mutate the ledger.
    """
    if workers <= 1:
        return _match_predicate(payments, predicate)

    found: List[Payment] = []
    _run_sharded(payments, workers, lambda shard: _match_predicate(shard, predicate), found.extend)
    return found


def _drain(stream: queue.Queue) -> Iterator[Progress]:
    while True:
        item = stream.get()
        if item is _CLOSED:
            return
        if isinstance(item, BaseException):
            raise item
        yield item


def sum_payments_with_progress(
    payments: Sequence[Payment],
    chunk_size: int = DEFAULT_PROGRESS_CHUNK_SIZE,
    workers: Optional[int] = None,
) -> Iterator[Progress]:
    """
    Sum payments chunk by chunk, reporting each partial sum as it completes.

    The log is sliced into chunks of ``chunk_size`` payments. Every chunk is
    summed by its own task; on completion the task puts
    ``Progress(part=1, result=partial)`` on a bounded queue. Once all tasks
    finish the stream is closed. Records arrive in completion order.

    Work starts immediately; the returned iterator only consumes. The final
    total is ``sum(p.result for p in stream)``. An empty log yields nothing.

    Args:
        payments: Snapshot of the payment log
        chunk_size: Payments per chunk (> 0)
        workers: Maximum concurrently running chunk tasks (default: one per chunk)

    Returns:
        Iterator over Progress records
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be > 0, got {chunk_size}")

    chunks = [payments[i:i + chunk_size] for i in range(0, len(payments), chunk_size)]
    # Room for every record plus the close marker, so producers never block
    # on a consumer that stopped reading.
    stream: queue.Queue = queue.Queue(maxsize=len(chunks) + 1)
    if not chunks:
        stream.put(_CLOSED)
        return _drain(stream)

    def work(chunk: Sequence[Payment]) -> None:
        stream.put(Progress(part=1, result=_sum_shard(chunk)))

    pool = ThreadPoolExecutor(max_workers=workers or len(chunks))
    futures = [pool.submit(work, chunk) for chunk in chunks]

    def close() -> None:
        wait(futures)
        pool.shutdown()
        failures = [f.exception() for f in futures if f.exception() is not None]
        if failures:
            logger.error("progress sum: %d chunk task(s) failed", len(failures))
            stream.put(failures[0])
        stream.put(_CLOSED)

    threading.Thread(target=close, name="wallet-progress-close", daemon=True).start()
    logger.debug("progress sum: %d payments in %d chunks", len(payments), len(chunks))
    return _drain(stream)
