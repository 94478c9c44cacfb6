"""
Single-flight guard for cache refreshes.

When several requests miss the same cache key at once, only the first one
runs the refresh; the rest wait for it and receive the same result (or the
same exception).
"""
import threading
import logging
from concurrent.futures import Future, TimeoutError as FutureTimeout
from typing import Any, Callable, Dict

logger = logging.getLogger("cache.coalescer")


class RequestCoalescer:
    """
    One in-flight refresh per cache key.

    Usage:
        coalescer = RequestCoalescer()
        leagues = coalescer.get_or_fetch("leagues", refresh_leagues)
    """

    def __init__(self, timeout: float = 60.0):
        """
        Args:
            timeout: Max seconds a joining caller waits for the leader
        """
        self._in_flight: Dict[str, Future] = {}
        self._waiters: Dict[str, int] = {}
        self._lock = threading.Lock()
        self._timeout = timeout

    def get_or_fetch(self, cache_key: str, fetch_fn: Callable[[], Any]) -> Any:
        """
        Run fetch_fn for cache_key unless a run is already in flight.

        Raises:
            TimeoutError: If waiting for the in-flight refresh times out
            Exception: Any error from fetch_fn, re-raised for every caller
        """
        with self._lock:
            future = self._in_flight.get(cache_key)
            is_leader = future is None
            if is_leader:
                future = Future()
                self._in_flight[cache_key] = future
                self._waiters[cache_key] = 0
                logger.debug(f"Refreshing {cache_key}")
            else:
                self._waiters[cache_key] += 1
                logger.debug(f"Joining in-flight refresh for {cache_key} (waiters: {self._waiters[cache_key]})")

        if not is_leader:
            try:
                return future.result(timeout=self._timeout)
            except FutureTimeout:
                logger.error(f"Timeout waiting for in-flight refresh: {cache_key}")
                raise TimeoutError(f"Refresh of {cache_key} timed out after {self._timeout}s")

        try:
            future.set_result(fetch_fn())
        except BaseException as e:
            logger.warning(f"Refresh failed for {cache_key}: {e}")
            future.set_exception(e)
        finally:
            with self._lock:
                self._in_flight.pop(cache_key, None)
                self._waiters.pop(cache_key, None)

        return future.result()

    @property
    def active_requests(self) -> int:
        """Number of keys currently being refreshed."""
        with self._lock:
            return len(self._in_flight)

    def get_stats(self) -> Dict[str, Any]:
        """Get coalescer statistics."""
        with self._lock:
            return {
                "active_requests": len(self._in_flight),
                "active_keys": list(self._in_flight.keys()),
            }
