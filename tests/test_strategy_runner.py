"""
Tests for StrategyRunner: the three context modes, the run state machine and
the per-call batch log.
"""

import pytest
from conftest import make_response

from lessonscribe.ai.inference_client import InferenceRequestError
from lessonscribe.extraction.errors import MissingInputError, UnparseableExtraction
from lessonscribe.extraction.models import ContextMode, Strategy
from lessonscribe.extraction.runner import BATCH_LOG_COLUMNS, RunState, StrategyRun, StrategyRunner


def strategy(mode, batch_size=3):
    return Strategy(f"Test-{mode.value}", "llama3.2-vision:11b", batch_size, mode)


class TestFullMode:
    """Test single-call extraction."""

    def test_one_call_with_all_pages(self, scripted_client, pages, manifest):
        client = scripted_client([make_response({"numbers": [{"fijian": "dua", "english": "one"}]})])
        run = StrategyRunner(client).run(strategy(ContextMode.FULL, None), pages, manifest)

        assert run.state == RunState.COMPLETED
        assert len(client.calls) == 1
        assert len(client.calls[0]['images']) == 7
        assert len(run.fragments) == 1
        assert run.total_tokens == 120


class TestProgressiveMode:
    """Test sequential batches with accumulated context."""

    def test_batches_in_order_with_context(self, scripted_client, pages, manifest):
        client = scripted_client([
            make_response({"numbers": [{"fijian": "dua"}]}, metadata={"title": "Na Gauna"}),
            make_response({"Numbers": [{"fijian": "rua"}]}),
            make_response({"times": [{"fijian": "siga"}]}),
        ])
        run = StrategyRunner(client).run(strategy(ContextMode.PROGRESSIVE), pages, manifest)

        assert [len(c['images']) for c in client.calls] == [3, 3, 1]
        assert "FIRST batch" in client.user_prompts[0]
        assert "CONTINUATION" in client.user_prompts[1]
        assert "Chapter Title: Na Gauna" in client.user_prompts[1]
        assert "numbers" in client.user_prompts[2]
        assert len(run.fragments) == 3

    def test_batch_log_has_one_row_per_call(self, scripted_client, pages, manifest):
        client = scripted_client([make_response({"n": [{"fijian": "dua"}]})] * 3)
        run = StrategyRunner(client).run(strategy(ContextMode.PROGRESSIVE), pages, manifest)

        assert list(run.batch_log.columns) == BATCH_LOG_COLUMNS
        assert len(run.batch_log) == 3
        assert run.batch_log['pages'].tolist() == [[37, 38, 39], [40, 41, 42], [43]]
        assert run.batch_log['items'].sum() == 3
        assert run.call_count == 3

    def test_oversized_batch_is_single_call(self, scripted_client, pages, manifest):
        client = scripted_client([make_response()])
        StrategyRunner(client).run(strategy(ContextMode.PROGRESSIVE, 50), pages, manifest)
        assert len(client.calls) == 1


class TestHybridMode:
    """Test overview then detail batches."""

    def test_overview_then_details(self, scripted_client, pages, manifest):
        client = scripted_client([
            make_response({"numbers": []}, metadata={"title": "Na Gauna"},
                          grammar=[{"concept": "Time markers"}]),
            make_response({"numbers": [{"fijian": "dua"}]}),
            make_response({"numbers": [{"fijian": "rua"}]}),
            make_response({"numbers": [{"fijian": "tolu"}]}),
        ])
        run = StrategyRunner(client).run(strategy(ContextMode.HYBRID), pages, manifest)

        overview_call = client.calls[0]
        assert [i.data for i in overview_call['images']] == ["img-37", "img-40", "img-43"]
        assert overview_call['max_tokens'] == 2000
        assert "out of 7 total" in overview_call['user_prompt']

        # Every detail batch sees the same static overview
        for prompt in client.user_prompts[1:]:
            assert "- Title: Na Gauna" in prompt
            assert "- Grammar focus: Time markers" in prompt

        assert len(run.fragments) == 4
        assert run.fragments[0].metadata["title"] == "Na Gauna"
        assert run.batch_log['phase'].tolist() == ["overview", "detail", "detail", "detail"]


class TestRunFailures:
    """Test validation and abort semantics."""

    def test_no_pages(self, scripted_client, manifest):
        client = scripted_client([])
        with pytest.raises(MissingInputError):
            StrategyRunner(client).run(strategy(ContextMode.FULL), [], manifest)
        assert client.calls == []

    def test_invalid_batch_size_before_any_call(self, scripted_client, pages, manifest):
        client = scripted_client([make_response()])
        with pytest.raises(MissingInputError):
            StrategyRunner(client).run(strategy(ContextMode.PROGRESSIVE, 0), pages, manifest)
        assert client.calls == []

    def test_unparseable_batch_aborts_run(self, scripted_client, pages, manifest):
        """A bad second batch stops the run; the third batch is never sent."""
        client = scripted_client([make_response(), "Sorry, no JSON.", make_response()])
        with pytest.raises(UnparseableExtraction):
            StrategyRunner(client).run(strategy(ContextMode.PROGRESSIVE), pages, manifest)
        assert len(client.calls) == 2

    def test_inference_failure_aborts_run(self, scripted_client, pages, manifest):
        client = scripted_client([InferenceRequestError("llama3.2-vision:11b", "timeout")])
        with pytest.raises(InferenceRequestError):
            StrategyRunner(client).run(strategy(ContextMode.FULL), pages, manifest)


class TestRunStates:
    """Test the NOT_STARTED -> RUNNING -> COMPLETED | FAILED lifecycle."""

    def test_completed(self, scripted_client, pages, manifest):
        record = StrategyRun(strategy(ContextMode.FULL, None))
        assert record.state == RunState.NOT_STARTED

        run = StrategyRunner(scripted_client([make_response()])).run(
            record.strategy, pages, manifest, record=record
        )

        assert run is record
        assert record.state == RunState.COMPLETED
        assert record.error is None

    def test_failed_record_keeps_error_and_no_fragments(self, scripted_client, pages, manifest):
        """A failed run keeps the error and the log of calls made, but no fragments."""
        record = StrategyRun(strategy(ContextMode.PROGRESSIVE))
        client = scripted_client([make_response({"n": [{"fijian": "dua"}]}), "not json"])

        with pytest.raises(UnparseableExtraction):
            StrategyRunner(client).run(record.strategy, pages, manifest, record=record)

        assert record.state == RunState.FAILED
        assert isinstance(record.error, UnparseableExtraction)
        assert record.fragments == []
        assert len(record.batch_log) == 1

    def test_validation_failure_marks_record_failed(self, scripted_client, manifest):
        record = StrategyRun(strategy(ContextMode.FULL))
        with pytest.raises(MissingInputError):
            StrategyRunner(scripted_client([])).run(record.strategy, [], manifest, record=record)
        assert record.state == RunState.FAILED
        assert isinstance(record.error, MissingInputError)
