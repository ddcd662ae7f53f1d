"""
Tests for the executor strategies used to schedule extraction strategies.

Tests cover:
- SequentialStrategy ordering, futures and exception capture
- ThreadPoolStrategy concurrency and submission-order results
- Worker defaults from config
"""

import threading
import time

import pytest

from lessonscribe.config import STRATEGY_MAX_WORKERS
from lessonscribe.parallel import ExecutorStrategy, SequentialStrategy, ThreadPoolStrategy


class TestSequentialStrategy:
    """Test SequentialStrategy for deterministic execution."""

    def test_map_returns_results_in_order(self):
        results = list(SequentialStrategy().map(lambda x: x * 2, [1, 2, 3]))
        assert results == [2, 4, 6]

    def test_map_runs_on_calling_thread(self):
        """Every call runs on the thread that iterates the results."""
        caller = threading.get_ident()
        idents = list(SequentialStrategy().map(lambda _: threading.get_ident(), range(3)))
        assert set(idents) == {caller}

    def test_map_is_lazy_and_stops_on_error(self):
        """An exception surfaces when its item is reached; later items never run."""
        seen = []

        def work(x):
            seen.append(x)
            if x == 2:
                raise ValueError("bad strategy")
            return x

        results = SequentialStrategy().map(work, [1, 2, 3])
        assert next(results) == 1
        with pytest.raises(ValueError):
            next(results)
        assert seen == [1, 2]

    def test_submit_returns_completed_future(self):
        future = SequentialStrategy().submit(lambda x: x + 10, 5)
        assert future.done()
        assert future.result() == 15

    def test_submit_captures_exceptions(self):
        def raise_error(x):
            raise ValueError("Test error")

        future = SequentialStrategy().submit(raise_error, 1)
        with pytest.raises(ValueError, match="Test error"):
            future.result()

    def test_max_workers_is_one(self):
        assert SequentialStrategy().max_workers == 1

    def test_context_manager(self):
        with SequentialStrategy() as strategy:
            assert isinstance(strategy, ExecutorStrategy)
            assert list(strategy.map(str.upper, ["a", "b"])) == ["A", "B"]


class TestThreadPoolStrategy:
    """Test ThreadPoolStrategy for overlapping strategies."""

    def test_default_max_workers_from_config(self):
        strategy = ThreadPoolStrategy()
        assert strategy.max_workers == STRATEGY_MAX_WORKERS
        strategy.shutdown()

    def test_custom_max_workers(self):
        strategy = ThreadPoolStrategy(max_workers=3)
        assert strategy.max_workers == 3
        strategy.shutdown()

    def test_rejects_zero_workers(self):
        with pytest.raises(ValueError):
            ThreadPoolStrategy(max_workers=0)

    def test_results_in_submission_order(self):
        """Slow early items still come back first."""
        def work(x):
            time.sleep(0.05 * (3 - x))
            return x

        with ThreadPoolStrategy(max_workers=3) as strategy:
            assert list(strategy.map(work, [0, 1, 2])) == [0, 1, 2]

    def test_executes_concurrently(self):
        start_times = []
        end_times = []

        def slow_task(x):
            start_times.append(time.time())
            time.sleep(0.1)
            end_times.append(time.time())
            return x

        with ThreadPoolStrategy(max_workers=4) as strategy:
            list(strategy.map(slow_task, [1, 2, 3, 4]))

        # Sequential would take ~0.4s
        total_duration = max(end_times) - min(start_times)
        assert total_duration < 0.3, f"Tasks should run in parallel, took {total_duration}s"

    def test_submit_returns_future(self):
        with ThreadPoolStrategy(max_workers=2) as strategy:
            future = strategy.submit(lambda x: x * 2, 21)
            assert future.result(timeout=1) == 42
