"""
Extraction Package

Multi-strategy lesson extraction and merge engine:
- Plan page batches and carry context between them (batch_planner, context)
- Run one inference call per batch and parse its fragment (prompts, extractor)
- Drive a strategy through its batches (runner)
- Merge fragments into one deduplicated document (merger)
- Score, cost and compare strategies (stats, comparison)
"""

from .comparison import ComparisonReporter, StrategyResult, compare_strategies, pick_winner
from .errors import (
    ArtifactPersistenceError,
    ExtractionError,
    MissingInputError,
    UnknownModelPricing,
    UnparseableExtraction,
)
from .merger import MergeEngine, dedup_key, deduplicate_items, normalize_category
from .models import (
    BatchExtraction,
    ContextMode,
    ExtractionFragment,
    Manifest,
    MergedExtraction,
    Page,
    Strategy,
)
from .runner import RunState, StrategyRun, StrategyRunner
from .stats import ExtractionStats, PerformanceMetrics, calculate_stats, estimate_cost

__all__ = [
    # Entry point
    'compare_strategies',
    'ComparisonReporter',
    'StrategyResult',
    'pick_winner',
    # Engine
    'StrategyRunner',
    'StrategyRun',
    'RunState',
    'MergeEngine',
    'normalize_category',
    'dedup_key',
    'deduplicate_items',
    'calculate_stats',
    'estimate_cost',
    # Data model
    'BatchExtraction',
    'ContextMode',
    'ExtractionFragment',
    'ExtractionStats',
    'Manifest',
    'MergedExtraction',
    'Page',
    'PerformanceMetrics',
    'Strategy',
    # Errors
    'ExtractionError',
    'UnparseableExtraction',
    'MissingInputError',
    'UnknownModelPricing',
    'ArtifactPersistenceError',
]
