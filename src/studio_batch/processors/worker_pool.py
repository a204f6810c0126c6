"""Bounded worker pool: N asyncio tasks draining one shared queue."""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Iterable, Optional, TypeVar

from ..core.logging_config import get_logger

T = TypeVar("T")


@dataclass
class PoolStats:
    """What one ``WorkerPool.run`` did."""

    workers: int = 0
    claimed: int = 0
    failed: int = 0
    peak_in_flight: int = 0
    stopped_early: bool = False


class WorkerPool(Generic[T]):
    """
    Run ``size`` workers that each pull the next entry and await ``handler`` on it.

    Pulling an entry and entering the handler happen without a suspension
    point in between, so no entry is ever handed to two workers. A worker
    that finds the queue empty exits; the run ends once every worker has
    exited. Exceptions escaping the handler are logged and counted and do
    not stop the other workers.
    """

    def __init__(self, size: int):
        self.size = size

    async def run(
        self,
        entries: Iterable[T],
        handler: Callable[[T], Awaitable[None]],
        should_continue: Optional[Callable[[], bool]] = None,
    ) -> PoolStats:
        queue = deque(entries)
        worker_count = min(self.size, len(queue)) if self.size > 0 else 0
        stats = PoolStats(workers=worker_count)
        if worker_count == 0:
            return stats

        in_flight = 0
        logger = get_logger("worker-pool")

        async def worker(worker_id: int) -> None:
            nonlocal in_flight
            while queue:
                if should_continue is not None and not should_continue():
                    stats.stopped_early = True
                    return
                entry = queue.popleft()
                stats.claimed += 1
                in_flight += 1
                stats.peak_in_flight = max(stats.peak_in_flight, in_flight)
                try:
                    await handler(entry)
                except Exception as e:
                    stats.failed += 1
                    logger.error(f"[worker-{worker_id}] Handler failed for {entry!r}: {e}", exc_info=True)
                finally:
                    in_flight -= 1

        await asyncio.gather(*(worker(i) for i in range(worker_count)))
        return stats
