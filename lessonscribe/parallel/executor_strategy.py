"""
Execution strategies for running extraction strategies side by side.

The comparison reporter hands every configured extraction strategy to an
ExecutorStrategy. SequentialStrategy reproduces the reference behaviour
(one strategy at a time, predictable cost and load on the inference
server); ThreadPoolStrategy overlaps strategies when wall-clock time
matters more.

Both return results in submission order, so reports list strategies in
configuration order whichever executor ran them.

Usage:
    with ThreadPoolStrategy(max_workers=2) as executor:
        outcomes = list(executor.map(run_one, strategies))
"""

from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Iterator, TypeVar

from lessonscribe.config import STRATEGY_MAX_WORKERS

T = TypeVar('T')
R = TypeVar('R')


class ExecutorStrategy(ABC):
    """
    Interface shared by sequential and threaded execution.

    Attributes:
        max_workers: Number of strategies that may run at once
    """

    max_workers: int

    @abstractmethod
    def submit(self, fn: Callable[[T], R], item: T) -> Future:
        """
        Schedule fn(item).

        Returns:
            Future holding the result or the exception raised
        """
        pass

    @abstractmethod
    def map(self, fn: Callable[[T], R], items: list[T]) -> Iterator[R]:
        """
        Apply fn to every item.

        Results are yielded in the order of items. An exception raised by fn
        propagates when its result is reached, so callers that must not stop
        early should catch inside fn.
        """
        pass

    @abstractmethod
    def shutdown(self, wait: bool = True, cancel_futures: bool = False) -> None:
        """Release worker resources."""
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown(wait=True)
        return False


class ThreadPoolStrategy(ExecutorStrategy):
    """
    Runs strategies on worker threads.

    Strategies spend nearly all their time waiting on the inference server,
    so threads overlap them well. Keep max_workers small: each worker holds
    open one long generation request.

    Workers share the inference client. OllamaInferenceClient gives each
    thread its own requests.Session unless one was injected; an injected
    session is shared by every worker and must tolerate that.

    Args:
        max_workers: Concurrent strategies. Defaults to STRATEGY_MAX_WORKERS.
    """

    def __init__(self, max_workers: int | None = None):
        if max_workers is None:
            max_workers = STRATEGY_MAX_WORKERS
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")

        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="strategy"
        )
        self.max_workers = max_workers

    def submit(self, fn: Callable[[T], R], item: T) -> Future:
        return self._executor.submit(fn, item)

    def map(self, fn: Callable[[T], R], items: list[T]) -> Iterator[R]:
        """Map over items on the pool; results come back in submission order."""
        return self._executor.map(fn, items)

    def shutdown(self, wait: bool = True, cancel_futures: bool = False) -> None:
        self._executor.shutdown(wait=wait, cancel_futures=cancel_futures)


class SequentialStrategy(ExecutorStrategy):
    """
    Runs strategies one after another on the calling thread.

    This is the default for comparisons and for tests: execution order is
    deterministic and inference calls never overlap.
    """

    def __init__(self):
        self.max_workers = 1

    def submit(self, fn: Callable[[T], R], item: T) -> Future:
        """Run fn(item) immediately and wrap the outcome in a completed Future."""
        future: Future = Future()
        try:
            future.set_result(fn(item))
        except Exception as e:
            future.set_exception(e)
        return future

    def map(self, fn: Callable[[T], R], items: list[T]) -> Iterator[R]:
        for item in items:
            yield fn(item)

    def shutdown(self, wait: bool = True, cancel_futures: bool = False) -> None:
        """Nothing to release."""
        pass
