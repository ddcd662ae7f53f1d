"""
Execution strategies for LessonScribe.

Separates "what runs" (one extraction strategy over a document) from "how it
runs" (sequentially or on a thread pool):

    ExecutorStrategy - Abstract base class defining the execution interface
    ThreadPoolStrategy - Overlaps strategies on worker threads
    SequentialStrategy - One strategy at a time (default, deterministic)

Usage Example:
    from lessonscribe.parallel import ThreadPoolStrategy
    from lessonscribe.extraction import compare_strategies

    with ThreadPoolStrategy(max_workers=2) as executor:
        results = compare_strategies(pages, manifest, strategies,
                                     client=client, executor=executor)
"""

from .executor_strategy import (
    ExecutorStrategy,
    SequentialStrategy,
    ThreadPoolStrategy,
)

__all__ = [
    'ExecutorStrategy',
    'ThreadPoolStrategy',
    'SequentialStrategy',
]
