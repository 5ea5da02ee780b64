"""
driver.py - Concurrent workers racing increments on one record

Each worker loops updater attempts until it has collected its quota of
committed writes, counting failed reads and failed or rejected writes along
the way. Workers share nothing in-process; the store's conditional write is
the only point where they are serialized.
"""
import logging
import random
import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import List, Optional

from resourcecounter.config import BackoffConfig
from resourcecounter.errors import CodecError
from resourcecounter.models.resource import Outcome, ResourceKey, UpdateMode, WorkerStats
from resourcecounter.updater import OptimisticUpdater

logger = logging.getLogger(__name__)


@dataclass
class BackoffPolicy:
    """Exponential back-off with random jitter, capped at max_delay."""
    base_delay: float = 0.01
    max_delay: float = 0.5
    jitter: float = 0.1

    def delay(self, consecutive_failures: int) -> float:
        if consecutive_failures < 1:
            return 0.0
        delay = min(self.base_delay * (2 ** (consecutive_failures - 1)), self.max_delay)
        delay += delay * self.jitter * random.uniform(-1, 1)
        return max(0.0, min(delay, self.max_delay))

    @classmethod
    def from_config(cls, config: BackoffConfig) -> Optional["BackoffPolicy"]:
        if not config.enabled:
            return None
        return cls(base_delay=config.base_delay, max_delay=config.max_delay, jitter=config.jitter)


class ConcurrentDriver:
    """Fans out workers over one key and joins them."""

    def __init__(self, updater: OptimisticUpdater, backoff: Optional[BackoffPolicy] = None):
        self.updater = updater
        self.backoff = backoff

    def run(
        self,
        key: ResourceKey,
        workers: int,
        writes_per_worker: int,
        mode: UpdateMode,
        stop_event: Optional[threading.Event] = None,
    ) -> List[WorkerStats]:
        """
        Run ``workers`` workers until each has committed ``writes_per_worker`` increments.

        Attempts are not capped. Setting ``stop_event`` makes every worker
        return before its next attempt, with ``completed`` left False.

        Returns:
            One WorkerStats per worker, in spawn order

        Raises:
            ValueError: If workers or writes_per_worker is below one
            CodecError: If any worker read or produced an undecodable record;
                the other workers are stopped and joined first
            KeyboardInterrupt: Re-raised once the workers have been stopped
                and joined
        """
        if workers < 1:
            raise ValueError(f"workers must be at least 1, got {workers}")
        if writes_per_worker < 1:
            raise ValueError(f"writes_per_worker must be at least 1, got {writes_per_worker}")

        mode = UpdateMode(mode)
        stop_event = stop_event or threading.Event()
        abort = threading.Event()
        stats = [WorkerStats(worker_id=i) for i in range(workers)]

        logger.info(
            f"Starting {workers} workers x {writes_per_worker} writes on {key} in {mode.value} mode"
        )

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="worker") as executor:
            futures = [
                executor.submit(self._work, s, key, writes_per_worker, mode, stop_event, abort)
                for s in stats
            ]
            try:
                wait(futures)
            except BaseException:
                # Interrupted (e.g. Ctrl-C); the executor joins on exit, so
                # workers must leave before their next attempt
                stop_event.set()
                raise

        # Futures are in spawn order; surface the first failure
        for future in futures:
            error = future.exception()
            if error is not None:
                raise error

        return stats

    def _work(
        self,
        stats: WorkerStats,
        key: ResourceKey,
        target: int,
        mode: UpdateMode,
        stop_event: threading.Event,
        abort: threading.Event,
    ) -> WorkerStats:
        started = time.perf_counter()
        try:
            while stats.writes < target:
                if stop_event.is_set() or abort.is_set():
                    logger.warning(f"worker {stats.worker_id} stopped after {stats.attempts} attempts")
                    break

                try:
                    outcome = self.updater.increment(key, mode)
                except CodecError:
                    abort.set()
                    raise

                stats.record(outcome)
                if outcome is not Outcome.COMMITTED and self.backoff is not None:
                    time.sleep(self.backoff.delay(stats.consecutive_failures))
            else:
                stats.completed = True
        finally:
            stats.elapsed = time.perf_counter() - started

        logger.info(
            f"worker {stats.worker_id} writes: {stats.writes} read errs: {stats.read_errors} "
            f"write errs: {stats.write_errors} elapsed: {stats.elapsed:.3f}s"
        )
        return stats
