"""
Thread-pool fan-out with per-task degradation.

Store clients are synchronous, so independent lookups (entity adapters,
ranking signals, recommendation sections) are fanned out on a
ThreadPoolExecutor and collected against a shared deadline. A task that
raises or misses the deadline yields its default instead of failing the
whole call; unfinished work is cancelled on exit.
"""

import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import Callable, Dict, Hashable, Mapping, Optional, TypeVar

from core.logging import get_logger

logger = get_logger(__name__)

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")


def fan_out(
    tasks: Mapping[K, Callable[[], T]],
    timeout: Optional[float],
    default_factory: Callable[[K], T],
    max_workers: int = 8,
    label: str = "lookup",
) -> Dict[K, T]:
    """
    Run ``tasks`` concurrently and return ``{key: result}`` in task order.

    Args:
        tasks: Zero-argument callables keyed by a label.
        timeout: Deadline in seconds shared by all tasks (None waits forever).
        default_factory: Builds the fallback value for a failed task's key.
        max_workers: Upper bound on pool threads.
        label: Name used in the warning logged for a failed task.
    """
    results: Dict[K, T] = {}
    if not tasks:
        return results

    deadline = None if timeout is None else time.monotonic() + timeout
    executor = ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(tasks))))
    try:
        futures = {key: executor.submit(fn) for key, fn in tasks.items()}
        for key, future in futures.items():
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            try:
                results[key] = future.result(timeout=remaining)
            except FutureTimeout:
                future.cancel()
                logger.warning(f"{label} timed out", key=str(key), timeout_s=timeout)
                results[key] = default_factory(key)
            except Exception as e:
                logger.warning(f"{label} failed", key=str(key), error=str(e))
                results[key] = default_factory(key)
    finally:
        executor.shutdown(wait=False, cancel_futures=True)
    return results
