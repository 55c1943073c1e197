"""
Handler timings.

Every CRUD handler is wrapped with timed_operation and reports one sample
per call, keyed by operation name ("blueprint.<verb>") and the collection
it served.
"""

import functools
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any


@dataclass
class OperationStats:
    count: int = 0
    errors: int = 0
    total_ms: float = 0.0

    @property
    def mean_ms(self) -> float:
        return self.total_ms / self.count if self.count else 0.0


class MetricsCollector:
    """Thread-safe per-(operation, collection) call counts and durations."""

    def __init__(self):
        self._stats: dict[tuple[str, str | None], OperationStats] = {}
        self._lock = threading.Lock()

    def record_operation(
        self,
        operation: str,
        duration_ms: float,
        success: bool = True,
        collection: str | None = None,
    ) -> None:
        with self._lock:
            stats = self._stats.setdefault((operation, collection), OperationStats())
            stats.count += 1
            stats.total_ms += duration_ms
            if not success:
                stats.errors += 1

    def stats(self, operation: str, collection: str | None = None) -> OperationStats:
        """
        Return a snapshot for one operation.

        With ``collection`` omitted the samples of every collection are summed.
        """
        with self._lock:
            if collection is not None:
                return replace(self._stats.get((operation, collection), OperationStats()))
            total = OperationStats()
            for (name, _), stats in self._stats.items():
                if name == operation:
                    total.count += stats.count
                    total.errors += stats.errors
                    total.total_ms += stats.total_ms
            return total

    def reset(self) -> None:
        with self._lock:
            self._stats.clear()


_collector = MetricsCollector()


def get_metrics_collector() -> MetricsCollector:
    return _collector


def record_operation(
    operation: str, duration_ms: float, success: bool = True, collection: str | None = None
) -> None:
    _collector.record_operation(operation, duration_ms, success, collection)


def timed_operation(operation: str, collection_of: Callable[..., str] | None = None):
    """
    Time an async handler and record the sample, failed or not.

    Args:
        operation: Name the samples are recorded under
        collection_of: Receives the handler's arguments and returns the
            collection to attribute the sample to

    Usage:
        @timed_operation("blueprint.get", lambda descriptor, *a, **kw: descriptor.collection)
        async def get_record(descriptor, handle, record_id):
            ...
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            collection = collection_of(*args, **kwargs) if collection_of else None
            started = time.perf_counter()
            success = False
            try:
                result = await func(*args, **kwargs)
                success = True
                return result
            finally:
                record_operation(
                    operation, (time.perf_counter() - started) * 1000, success, collection
                )

        return wrapper

    return decorator
