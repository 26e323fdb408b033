from __future__ import annotations

from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Deque, Iterable, List, TypeVar

T = TypeVar("T")
R = TypeVar("R")


def parallel_map_ordered(
    func: Callable[[T], R],
    items: Iterable[T],
    max_workers: int,
) -> List[R]:
    """
    Apply func to every item on a bounded thread pool and return the results
    in input order.

    At most max_workers calls are in flight and items are consumed lazily.
    The first worker exception is re-raised after queued calls are cancelled.
    With max_workers <= 1 items are processed inline, one at a time.
    """
    if max_workers <= 1:
        return [func(item) for item in items]

    results: List[R] = []
    window: Deque[Future[R]] = deque()
    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="aws-inv") as executor:
        try:
            for item in items:
                if len(window) >= max_workers:
                    results.append(window.popleft().result())
                window.append(executor.submit(func, item))
            while window:
                results.append(window.popleft().result())
        except BaseException:
            for fut in window:
                fut.cancel()
            raise
    return results
