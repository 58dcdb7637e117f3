"""
Single-flight background refresh.

At most one refresh per cache key runs at a time. Jobs run on a bounded
thread pool; the key is released when the job ends, whatever the outcome.
"""
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class RefreshError(Exception):
    """Raised inside a refresh job. Logged, never surfaced to callers."""
    pass


class RefreshCoordinator:
    def __init__(self, max_workers: int = 4):
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="cache-refresh")
        self._in_flight: set = set()
        self._lock = threading.Lock()
        self._closed = False

    def is_refreshing(self, key: str) -> bool:
        with self._lock:
            return key in self._in_flight

    def in_flight(self) -> int:
        with self._lock:
            return len(self._in_flight)

    def schedule(self, key: str, job: Callable[[], None]) -> Optional[Future]:
        """Submit a refresh for key unless one is already running.

        Returns the Future of the submitted job, or None when skipped.
        """
        with self._lock:
            if self._closed or key in self._in_flight:
                return None
            self._in_flight.add(key)

        try:
            return self._executor.submit(self._run, key, job)
        except RuntimeError:
            # executor shut down between the check and the submit
            self._release(key)
            return None

    def _run(self, key: str, job: Callable[[], None]) -> None:
        logger.info(f"[Refresh] Background refresh for cache key: {key[:12]}")
        try:
            job()
            logger.info(f"[Refresh] Completed for key: {key[:12]}")
        except Exception as e:
            err = e if isinstance(e, RefreshError) else RefreshError(str(e))
            logger.error(f"[Refresh] Failed for key {key[:12]}: {err}")
        finally:
            self._release(key)

    def _release(self, key: str) -> None:
        with self._lock:
            self._in_flight.discard(key)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting refreshes; optionally wait for running ones."""
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=wait)
