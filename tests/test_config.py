"""
Tests for configuration loading: model pricing and strategy presets.
"""

import pytest

from lessonscribe import config
from lessonscribe.extraction.errors import UnknownModelPricing
from lessonscribe.extraction.models import ContextMode


@pytest.fixture(autouse=True)
def restore_pricing(monkeypatch):
    """Keep pricing changes local to each test."""
    monkeypatch.setattr(config, "MODEL_PRICING", dict(config.MODEL_PRICING))


class TestModelPricing:
    """Test pricing lookup from YAML."""

    def test_shipped_models_yaml(self):
        pricing = config.load_model_pricing()
        assert pricing["claude-3-opus-20240229"] == {"input": 15.0, "output": 75.0}
        assert pricing["claude-3-5-sonnet-20241022"] == {"input": 3.0, "output": 15.0}

    def test_base_name_fallback(self, tmp_path):
        path = tmp_path / "models.yaml"
        path.write_text("models:\n  llava:\n    input: 1.0\n    output: 2.0\n", encoding='utf-8')
        config.load_model_pricing(path)
        assert config.get_model_pricing("llava:34b") == {"input": 1.0, "output": 2.0}

    def test_unknown_model_raises(self, tmp_path):
        path = tmp_path / "models.yaml"
        path.write_text("models:\n  llava:\n    input: 1.0\n    output: 2.0\n", encoding='utf-8')
        config.load_model_pricing(path)
        with pytest.raises(UnknownModelPricing) as exc_info:
            config.get_model_pricing("mystery")
        assert exc_info.value.model == "mystery"
        assert isinstance(exc_info.value, LookupError)

    def test_missing_file_gives_empty_pricing(self, tmp_path):
        assert config.load_model_pricing(tmp_path / "absent.yaml") == {}

    def test_broken_yaml_gives_empty_pricing(self, tmp_path):
        path = tmp_path / "models.yaml"
        path.write_text("models: [unclosed", encoding='utf-8')
        assert config.load_model_pricing(path) == {}


class TestStrategyPresets:
    """Test strategy preset loading."""

    def test_shipped_presets(self):
        strategies = config.load_strategy_presets(total_pages=7)
        assert [s.name for s in strategies] == [
            "Vision-90B-Full",
            "Vision-11B-Full",
            "Vision-90B-Batch-Context",
            "Vision-11B-Batch-Context",
            "Vision-11B-Hybrid",
        ]
        assert strategies[0].batch_size == 7
        assert strategies[2].batch_size == 3
        assert strategies[2].context_mode == ContextMode.PROGRESSIVE
        assert strategies[4].context_mode == ContextMode.HYBRID

    def test_summary_alias_and_all(self, tmp_path):
        path = tmp_path / "strategies.yaml"
        path.write_text(
            "strategies:\n"
            "  - name: Hybrid\n    model: m\n    batch_size: 2\n    context_mode: summary\n"
            "  - name: Full\n    model: m\n    batch_size: all\n",
            encoding='utf-8',
        )
        hybrid, full = config.load_strategy_presets(total_pages=5, path=path)
        assert hybrid.context_mode == ContextMode.HYBRID
        assert full.batch_size == 5
        assert full.context_mode == ContextMode.FULL

    def test_missing_file_uses_builtin_presets(self, tmp_path):
        strategies = config.load_strategy_presets(total_pages=4, path=tmp_path / "absent.yaml")
        assert len(strategies) == len(config.DEFAULT_STRATEGY_PRESETS)

    def test_unknown_mode_rejected(self, tmp_path):
        path = tmp_path / "strategies.yaml"
        path.write_text(
            "strategies:\n  - name: X\n    model: m\n    context_mode: sideways\n",
            encoding='utf-8',
        )
        with pytest.raises(ValueError):
            config.load_strategy_presets(total_pages=3, path=path)


class TestConfigConstants:
    """Sanity checks on extraction limits."""

    def test_token_limits(self):
        assert config.FULL_MAX_TOKENS > config.BATCH_MAX_TOKENS > config.OVERVIEW_MAX_TOKENS

    def test_cost_split_sums_to_one(self):
        assert config.COST_INPUT_SHARE + config.COST_OUTPUT_SHARE == pytest.approx(1.0)

    def test_app_directories_exist(self):
        assert config.LOGS_DIR.is_dir()
        assert config.REPORTS_DIR.is_dir()

    def test_no_unused_directories_created(self):
        """Only the log and report directories are part of the layout."""
        assert not hasattr(config, "CACHE_DIR")
        assert config.LOGS_DIR.parent == config.REPORTS_DIR.parent == config.APPDATA_DIR
