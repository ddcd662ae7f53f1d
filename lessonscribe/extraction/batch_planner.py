"""
Batch planning for extraction strategies.

Splits an ordered page list into contiguous batches, and picks the sample
pages used by the hybrid overview pass.
"""

from lessonscribe.logging_config import debug_log

from .errors import MissingInputError
from .models import Page


def plan_batches(pages: list[Page], batch_size: int) -> list[list[Page]]:
    """
    Partition pages into contiguous batches of at most batch_size pages.

    Every page appears in exactly one batch and page order is preserved.
    Only the last batch may be smaller than batch_size.

    Args:
        pages: Pages in document order
        batch_size: Maximum pages per batch (must be >= 1)

    Returns:
        List of batches (empty when pages is empty)

    Raises:
        MissingInputError: If batch_size is less than 1
    """
    if batch_size is None or batch_size < 1:
        raise MissingInputError(f"Batch size must be at least 1, got {batch_size}")

    batches = [pages[i:i + batch_size] for i in range(0, len(pages), batch_size)]
    debug_log(
        f"[BatchPlanner] {len(pages)} pages, batch size {batch_size} -> "
        f"{len(batches)} batches {[len(b) for b in batches]}"
    )
    return batches


def select_overview_pages(pages: list[Page]) -> list[Page]:
    """
    Pick the first, middle and last page for the hybrid overview call.

    Short documents repeat positions; repeats are dropped so no page is
    sent twice.
    """
    if not pages:
        return []

    selected = []
    seen = set()
    for index in (0, len(pages) // 2, len(pages) - 1):
        if index not in seen:
            seen.add(index)
            selected.append(pages[index])
    return selected
