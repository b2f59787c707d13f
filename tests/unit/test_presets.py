"""Tests for pipeline presets."""

import pytest

from manual_rag.exceptions import ConfigurationError
from manual_rag.pipeline.presets import PipelineConfig


def test_standard_preset():
    config = PipelineConfig.from_preset("standard")
    assert (config.search_limit, config.rerank_top_k) == (15, 5)
    assert config.enable_cache and config.enable_rerank and config.enable_metrics
    assert config.rerank_strategy == "llm"
    assert config.cache_ttl_seconds == 3600


def test_quick_preset():
    config = PipelineConfig.from_preset("quick")
    assert (config.search_limit, config.rerank_top_k) == (10, 5)
    assert config.enable_cache
    assert not config.enable_rerank
    assert not config.enable_metrics
    assert config.preset == "quick"


def test_premium_preset():
    config = PipelineConfig.from_preset("premium")
    assert (config.search_limit, config.rerank_top_k) == (20, 8)
    assert config.enable_cache and config.enable_rerank and config.enable_metrics


def test_overrides_applied_and_none_ignored():
    config = PipelineConfig.from_preset("quick", enable_rerank=True, search_limit=None)
    assert config.enable_rerank
    assert config.search_limit == 10


def test_unknown_preset():
    with pytest.raises(ConfigurationError):
        PipelineConfig.from_preset("turbo")


def test_invalid_override():
    with pytest.raises(ConfigurationError):
        PipelineConfig.from_preset("standard", search_limit=0)
    with pytest.raises(ConfigurationError):
        PipelineConfig.from_preset("standard", not_a_field=True)
