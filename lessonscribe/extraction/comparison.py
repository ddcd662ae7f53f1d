"""
Comparison Reporter for LessonScribe.

Runs every configured strategy over one document, merges and scores each
successful run, picks a winner and writes one comparison report.

Pipeline per strategy:
    StrategyRunner -> MergeEngine -> calculate_stats / estimate_cost

A strategy that fails for any reason is logged with its name and error type
and left out of the results; the comparison itself never raises for a
partial failure. Callers that need every strategy to succeed should compare
len(results) with len(strategies).
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import pandas as pd

from lessonscribe.ai.inference_client import InferenceClient
from lessonscribe.config import REPORT_KEY_PREFIX, REPORT_STRATEGY_COLUMN_WIDTH
from lessonscribe.logging_config import Timer, debug_log, error, info, warning
from lessonscribe.parallel import ExecutorStrategy, SequentialStrategy

from .errors import ArtifactPersistenceError
from .merger import MergeEngine
from .models import Manifest, MergedExtraction, Page, Strategy
from .runner import StrategyRunner
from .stats import ExtractionStats, PerformanceMetrics, calculate_stats, estimate_cost

if TYPE_CHECKING:
    from lessonscribe.storage.artifact_store import ArtifactStore


@dataclass
class StrategyResult:
    """
    Outcome of one successfully completed strategy.

    Attributes:
        strategy: The strategy that produced this result
        extraction: Merged, deduplicated extraction
        stats: Coverage statistics of the extraction
        performance: Time, tokens and estimated cost
        batch_log: Per-call log from the strategy run
    """

    strategy: Strategy
    extraction: MergedExtraction
    stats: ExtractionStats
    performance: PerformanceMetrics
    batch_log: pd.DataFrame | None = None

    def to_report_entry(self) -> dict[str, Any]:
        return {
            "strategyName": self.strategy.name,
            "model": self.strategy.model,
            "stats": self.stats.to_dict(),
            "performance": self.performance.to_dict(),
        }


def pick_winner(results: list[StrategyResult]) -> StrategyResult | None:
    """
    Return the result with the most translations.

    Ties go to the earliest result, so configuration order decides.
    Returns None when there are no results.
    """
    best = None
    for result in results:
        if best is None or result.stats.total_translations > best.stats.total_translations:
            best = result
    return best


class ComparisonReporter:
    """
    Compares extraction strategies over one document.

    Example:
        reporter = ComparisonReporter(client, store=LocalArtifactStore())
        results = reporter.compare(pages, manifest, strategies)
        print(reporter.format_table(results, manifest))
    """

    def __init__(
        self,
        client: InferenceClient,
        store: ArtifactStore | None = None,
        executor: ExecutorStrategy | None = None,
        runner: StrategyRunner | None = None,
        merger: MergeEngine | None = None,
    ):
        """
        Args:
            client: Inference collaborator shared by all strategies
            store: Where to persist the report (None skips persistence)
            executor: How strategies are scheduled (default: sequentially)
            runner: Strategy runner (default: one built around client)
            merger: Merge engine (default: a new MergeEngine)
        """
        self.store = store
        self.executor = executor or SequentialStrategy()
        self.runner = runner or StrategyRunner(client)
        self.merger = merger or MergeEngine()

    def compare(
        self,
        pages: list[Page],
        manifest: Manifest,
        strategies: list[Strategy],
    ) -> list[StrategyResult]:
        """
        Run every strategy and report on those that complete.

        Args:
            pages: Document pages in order
            manifest: Document manifest
            strategies: Strategies in configuration order

        Returns:
            StrategyResult per completed strategy, in configuration order
        """
        info(f"[Comparison] Comparing {len(strategies)} strategies on document {manifest.document_id}")

        outcomes = list(self.executor.map(
            lambda strategy: self.run_strategy(strategy, pages, manifest),
            strategies,
        ))
        results = [outcome for outcome in outcomes if outcome is not None]

        info(f"[Comparison] {len(results)}/{len(strategies)} strategies completed")

        now = datetime.now(timezone.utc)
        artifact = self.build_artifact(results, manifest, now)
        if self.store is not None:
            self.save_artifact(artifact, manifest, now)

        for line in self.format_table(results, manifest).splitlines():
            info(line)

        return results

    def run_strategy(
        self,
        strategy: Strategy,
        pages: list[Page],
        manifest: Manifest,
    ) -> StrategyResult | None:
        """
        Run, merge and score one strategy.

        Returns:
            The StrategyResult, or None if the strategy failed (the failure is logged)
        """
        info(f"[Comparison] Testing strategy: {strategy.name}")
        try:
            with Timer(f"Strategy {strategy.name}") as timer:
                run = self.runner.run(strategy, pages, manifest)
                extraction = self.merger.merge(run.fragments, manifest)
                stats = calculate_stats(extraction)
        except Exception as e:
            error(f"[Comparison] {strategy.name} failed: {type(e).__name__}: {e}")
            return None

        performance = PerformanceMetrics(
            total_time_ms=timer.get_duration_ms(),
            tokens_used=run.total_tokens,
            cost_estimate=estimate_cost(strategy.model, run.total_tokens),
        )

        info(
            f"[Comparison] {strategy.name} completed: {stats.total_translations} items, "
            f"{len(stats.pages_with_content)}/{len(pages)} pages with content, "
            f"{performance.total_time_ms / 1000:.1f}s, {performance.tokens_used:,} tokens"
        )

        return StrategyResult(
            strategy=strategy,
            extraction=extraction,
            stats=stats,
            performance=performance,
            batch_log=run.batch_log,
        )

    def build_artifact(
        self,
        results: list[StrategyResult],
        manifest: Manifest,
        timestamp: datetime | None = None,
    ) -> dict[str, Any]:
        """Build the JSON-serializable comparison report."""
        timestamp = timestamp or datetime.now(timezone.utc)
        winner = pick_winner(results)
        return {
            "documentId": manifest.document_id,
            "timestamp": timestamp.isoformat(),
            "results": [result.to_report_entry() for result in results],
            "winner": winner.strategy.name if winner else None,
        }

    @staticmethod
    def artifact_key(manifest: Manifest, timestamp: datetime) -> str:
        epoch_ms = int(timestamp.timestamp() * 1000)
        return f"{REPORT_KEY_PREFIX}/{manifest.document_id}-{epoch_ms}.json"

    def save_artifact(
        self,
        artifact: dict[str, Any],
        manifest: Manifest,
        timestamp: datetime,
    ) -> str | None:
        """
        Persist the report through the artifact store.

        Storage failures are logged as warnings and never raised.

        Returns:
            The artifact key, or None if the report was not stored
        """
        key = self.artifact_key(manifest, timestamp)
        content = json.dumps(artifact, indent=2, ensure_ascii=False).encode('utf-8')
        try:
            self.store.put(key, content, "application/json")
        except ArtifactPersistenceError as e:
            warning(f"[Comparison] Could not save comparison report: {e}")
            return None
        except Exception as e:
            # Stores are pluggable; whatever they raise must not cost the results
            warning(f"[Comparison] Could not save comparison report {key}: {type(e).__name__}: {e}")
            return None

        debug_log(f"[Comparison] Saved comparison report to {key}")
        return key

    @staticmethod
    def format_table(results: list[StrategyResult], manifest: Manifest) -> str:
        """
        Render the comparison as a box-drawn text table plus the winner line.

        Columns: strategy, items, pages with content / total, time (s), cost ($).
        """
        width = REPORT_STRATEGY_COLUMN_WIDTH
        lines = [
            "Comparison Summary:",
            f"┌{'─' * (width + 2)}┬──────────┬────────┬─────────┬──────────┐",
            f"│ {'Strategy'.ljust(width)} │ Items    │ Pages  │ Time(s) │ Cost($)  │",
            f"├{'─' * (width + 2)}┼──────────┼────────┼─────────┼──────────┤",
        ]
        for result in results:
            pages = f"{len(result.stats.pages_with_content)}/{manifest.total_pages}"
            lines.append(
                f"│ {result.strategy.name[:width].ljust(width)} "
                f"│ {str(result.stats.total_translations).rjust(8)} "
                f"│ {pages.rjust(6)} "
                f"│ {f'{result.performance.total_time_ms / 1000:.1f}'.rjust(7)} "
                f"│ {f'{result.performance.cost_estimate:.3f}'.rjust(8)} │"
            )
        lines.append(f"└{'─' * (width + 2)}┴──────────┴────────┴─────────┴──────────┘")

        winner = pick_winner(results)
        lines.append(f"Best extraction: {winner.strategy.name if winner else 'none'}")
        return "\n".join(lines)


def compare_strategies(
    pages: list[Page],
    manifest: Manifest,
    strategies: list[Strategy],
    *,
    client: InferenceClient,
    store: ArtifactStore | None = None,
    executor: ExecutorStrategy | None = None,
) -> list[StrategyResult]:
    """
    Compare extraction strategies over one document.

    Args:
        pages: Document pages in order
        manifest: Document manifest
        strategies: Strategies in configuration order
        client: Inference collaborator
        store: Optional artifact store for the comparison report
        executor: Optional executor (default runs strategies sequentially)

    Returns:
        StrategyResult per completed strategy, in configuration order.
        Failed strategies are logged and omitted.
    """
    reporter = ComparisonReporter(client, store=store, executor=executor)
    return reporter.compare(pages, manifest, strategies)
