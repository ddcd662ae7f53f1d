"""
Coverage statistics and cost estimates for merged extractions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from lessonscribe import config
from lessonscribe.logging_config import debug_log

from .errors import UnknownModelPricing
from .models import MergedExtraction


@dataclass
class ExtractionStats:
    """
    Coverage summary of one merged extraction.

    Attributes:
        total_translations: Vocabulary items across all categories
        category_counts: Category label -> item count
        pages_with_content: Sorted distinct pages referenced by vocabulary items
        missing_pages: Pages inside [min, max] of pages_with_content with no items
        avg_items_per_page: total_translations over the referenced page span
        grammar_rules: Number of grammar rules
        exercises: Number of exercises
    """

    total_translations: int = 0
    category_counts: dict[str, int] = field(default_factory=dict)
    pages_with_content: list[int] = field(default_factory=list)
    missing_pages: list[int] = field(default_factory=list)
    avg_items_per_page: float = 0.0
    grammar_rules: int = 0
    exercises: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the camelCase keys used in comparison reports."""
        return {
            "totalTranslations": self.total_translations,
            "categoryCounts": dict(self.category_counts),
            "pagesWithContent": list(self.pages_with_content),
            "missingPages": list(self.missing_pages),
            "avgItemsPerPage": self.avg_items_per_page,
            "grammarRules": self.grammar_rules,
            "exercises": self.exercises,
        }


@dataclass
class PerformanceMetrics:
    """Wall-clock time, token usage and estimated cost of one strategy."""

    total_time_ms: float
    tokens_used: int
    cost_estimate: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalTime": self.total_time_ms,
            "tokensUsed": self.tokens_used,
            "costEstimate": self.cost_estimate,
        }


def _page_number(value: Any) -> int | None:
    """Return a positive page number from an int, whole float or digit string, else None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, float):
        if not value.is_integer():
            return None
        value = int(value)
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, str) and value.strip().isdigit():
        number = int(value.strip())
        return number if number > 0 else None
    return None


def calculate_stats(extraction: MergedExtraction) -> ExtractionStats:
    """
    Compute coverage statistics for a merged extraction.

    Only vocabulary items count toward page coverage. Items without a usable
    page value are counted as translations but ignored for coverage.

    Example:
        Items on pages {2, 4, 5} give missing_pages [3] and a span of 4 pages.
    """
    stats = ExtractionStats(
        grammar_rules=len(extraction.grammar_rules),
        exercises=len(extraction.exercises),
    )

    pages = set()
    for category, items in extraction.categories.items():
        stats.category_counts[category] = len(items)
        stats.total_translations += len(items)
        for item in items:
            page = _page_number(item.get("page"))
            if page is not None:
                pages.add(page)

    stats.pages_with_content = sorted(pages)
    if stats.pages_with_content:
        first, last = stats.pages_with_content[0], stats.pages_with_content[-1]
        stats.avg_items_per_page = stats.total_translations / (last - first + 1)
        stats.missing_pages = [p for p in range(first, last + 1) if p not in pages]

    return stats


def estimate_cost(model: str, tokens: int) -> float:
    """
    Estimate the USD cost of a token count for a model.

    Assumes an 80/20 input/output split of the total. Models with no
    configured pricing use DEFAULT_MODEL_PRICING.

    Args:
        model: Model identifier
        tokens: Total tokens consumed

    Returns:
        Estimated cost in USD
    """
    try:
        rates = config.get_model_pricing(model)
    except UnknownModelPricing as e:
        debug_log(f"[Stats] {e}; using default rates")
        rates = config.DEFAULT_MODEL_PRICING

    input_cost = tokens * config.COST_INPUT_SHARE * rates['input']
    output_cost = tokens * config.COST_OUTPUT_SHARE * rates['output']
    return (input_cost + output_cost) / 1_000_000


