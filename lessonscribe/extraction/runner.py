"""
Strategy Runner for LessonScribe.

Drives one strategy over one document and collects its fragments in merge
order. Context policy per mode:

- FULL: one call over every page
- PROGRESSIVE: batches strictly in order; each call sees the context
  accumulated from the batches before it
- HYBRID: an overview call over sample pages (first, middle, last), then
  detail batches all seeded with the same static overview

Each inference call adds a row to the run's batch log (a pandas DataFrame),
which the comparison report and debugging tools read afterwards.

Any failure aborts the whole run. There is no partial result: a strategy
either yields every fragment or none.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum

import pandas as pd

from lessonscribe.ai.inference_client import InferenceClient
from lessonscribe.logging_config import debug_log

from .batch_planner import plan_batches, select_overview_pages
from .context import ContextAccumulator, OverviewContext
from .errors import MissingInputError
from .extractor import (
    PHASE_DETAIL,
    PHASE_FULL,
    PHASE_OVERVIEW,
    PHASE_PROGRESSIVE,
    BatchExtractor,
)
from .models import BatchExtraction, ContextMode, ExtractionFragment, Manifest, Page, Strategy


BATCH_LOG_COLUMNS = [
    'phase',
    'batch',
    'pages',
    'input_tokens',
    'output_tokens',
    'categories',
    'items',
    'elapsed_sec',
]


class RunState(str, Enum):
    """Lifecycle of one strategy run."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class StrategyRun:
    """
    Record of one strategy executed over one document.

    Attributes:
        strategy: The strategy that was run
        state: Current lifecycle state
        fragments: Fragments in merge order (hybrid: overview first)
        input_tokens: Prompt tokens summed over every call
        output_tokens: Generated tokens summed over every call
        batch_log: One row per inference call (see BATCH_LOG_COLUMNS)
        error: The exception that aborted the run, if it failed
    """

    strategy: Strategy
    state: RunState = RunState.NOT_STARTED
    fragments: list[ExtractionFragment] = field(default_factory=list)
    input_tokens: int = 0
    output_tokens: int = 0
    batch_log: pd.DataFrame = field(
        default_factory=lambda: pd.DataFrame(columns=BATCH_LOG_COLUMNS)
    )
    error: BaseException | None = None

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    @property
    def call_count(self) -> int:
        return len(self.batch_log)


class StrategyRunner:
    """
    Executes strategies through a BatchExtractor.

    A runner holds no per-run state, so one instance can serve several
    strategies (one at a time per thread). Each run gets its own context
    accumulator.

    Example:
        runner = StrategyRunner(client)
        run = runner.run(strategy, pages, manifest)
        print(run.state, len(run.fragments), run.total_tokens)
    """

    def __init__(self, client: InferenceClient, extractor: BatchExtractor | None = None):
        self.extractor = extractor or BatchExtractor(client)

    def run(
        self,
        strategy: Strategy,
        pages: list[Page],
        manifest: Manifest,
        record: StrategyRun | None = None,
    ) -> StrategyRun:
        """
        Run a strategy to completion.

        Args:
            strategy: Strategy to execute
            pages: Document pages in order
            manifest: Document manifest
            record: Optional NOT_STARTED record to fill in, so callers can
                inspect a FAILED run after the exception propagates

        Returns:
            A COMPLETED StrategyRun

        Raises:
            MissingInputError: If there are no pages or the batch size is invalid
            UnparseableExtraction: If any call returns unusable output
            InferenceRequestError: If any inference call fails
        """
        run = record if record is not None else StrategyRun(strategy=strategy)
        problem = None
        if not pages:
            problem = f"Strategy {strategy.name}: no pages to extract"
        elif strategy.batch_size is not None and strategy.batch_size < 1:
            problem = f"Strategy {strategy.name}: batch size must be at least 1, got {strategy.batch_size}"
        if problem is not None:
            run.state = RunState.FAILED
            run.error = MissingInputError(problem)
            raise run.error

        run.state = RunState.RUNNING
        log_rows: list[dict] = []
        debug_log(
            f"[StrategyRunner] Starting {strategy.name} ({strategy.context_mode.value}, "
            f"model {strategy.model}) over {len(pages)} pages"
        )

        try:
            if strategy.context_mode == ContextMode.FULL:
                self._run_full(run, pages, manifest, log_rows)
            elif strategy.context_mode == ContextMode.PROGRESSIVE:
                self._run_progressive(run, pages, manifest, log_rows)
            elif strategy.context_mode == ContextMode.HYBRID:
                self._run_hybrid(run, pages, manifest, log_rows)
            else:
                raise ValueError(f"Unsupported context mode: {strategy.context_mode}")
        except Exception as e:
            run.state = RunState.FAILED
            run.error = e
            run.fragments = []
            run.batch_log = pd.DataFrame(log_rows, columns=BATCH_LOG_COLUMNS)
            debug_log(f"[StrategyRunner] {strategy.name} FAILED after {len(log_rows)} calls: {e}")
            raise

        run.state = RunState.COMPLETED
        run.batch_log = pd.DataFrame(log_rows, columns=BATCH_LOG_COLUMNS)
        debug_log(
            f"[StrategyRunner] {strategy.name} completed: {len(run.fragments)} fragments, "
            f"{run.total_tokens} tokens"
        )
        return run

    def _call(
        self,
        run: StrategyRun,
        log_rows: list[dict],
        batch: list[Page],
        manifest: Manifest,
        phase: str,
        batch_index: int,
        context=None,
        page_count: int | None = None,
    ) -> BatchExtraction:
        start = time.time()
        result = self.extractor.extract(
            batch,
            run.strategy,
            manifest=manifest,
            phase=phase,
            context=context,
            page_count=page_count,
        )
        run.fragments.append(result.fragment)
        run.input_tokens += result.input_tokens
        run.output_tokens += result.output_tokens
        log_rows.append({
            'phase': phase,
            'batch': batch_index,
            'pages': list(result.pages),
            'input_tokens': result.input_tokens,
            'output_tokens': result.output_tokens,
            'categories': len(result.fragment.categories),
            'items': result.fragment.item_count,
            'elapsed_sec': round(time.time() - start, 3),
        })
        return result

    def _run_full(self, run, pages, manifest, log_rows):
        self._call(run, log_rows, pages, manifest, PHASE_FULL, 0, page_count=len(pages))

    def _run_progressive(self, run, pages, manifest, log_rows):
        batches = plan_batches(pages, run.strategy.effective_batch_size(len(pages)))
        context = ContextAccumulator()

        for index, batch in enumerate(batches):
            is_first = index == 0
            debug_log(f"[StrategyRunner] {run.strategy.name}: batch {index + 1}/{len(batches)}")
            result = self._call(
                run, log_rows, batch, manifest, PHASE_PROGRESSIVE, index,
                context=None if is_first else context,
            )
            context.update(result.fragment, is_first_batch=is_first)

    def _run_hybrid(self, run, pages, manifest, log_rows):
        # Phase 1: overview from sample pages
        sample = select_overview_pages(pages)
        debug_log(
            f"[StrategyRunner] {run.strategy.name}: overview from pages "
            f"{[p.page_number for p in sample]}"
        )
        result = self._call(
            run, log_rows, sample, manifest, PHASE_OVERVIEW, 0, page_count=len(pages)
        )
        overview = OverviewContext.from_fragment(result.fragment, fallback_title=manifest.topic)

        # Phase 2: every detail batch sees the same overview
        batches = plan_batches(pages, run.strategy.effective_batch_size(len(pages)))
        for index, batch in enumerate(batches):
            debug_log(f"[StrategyRunner] {run.strategy.name}: detail batch {index + 1}/{len(batches)}")
            self._call(run, log_rows, batch, manifest, PHASE_DETAIL, index, context=overview)
