"""Named pipeline presets and per-request configuration."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from manual_rag.config.constants import DEFAULT_CACHE_TTL_SECONDS
from manual_rag.exceptions import ConfigurationError

PresetName = Literal["standard", "quick", "premium"]


class PipelineConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    preset: str = "standard"
    search_limit: int = Field(default=15, ge=1)
    rerank_top_k: int = Field(default=5, ge=1)
    enable_cache: bool = True
    enable_rerank: bool = True
    enable_metrics: bool = True
    rerank_strategy: Literal["llm", "heuristic"] = "llm"
    cache_ttl_seconds: int = Field(default=DEFAULT_CACHE_TTL_SECONDS, ge=1)
    document_ids: list[str] | None = None

    @classmethod
    def from_preset(cls, name: str = "standard", **overrides: Any) -> PipelineConfig:
        """Build a config from a preset; ``None`` overrides keep the preset value."""
        if name not in PRESETS:
            raise ConfigurationError(
                f"Unknown preset {name!r}; expected one of {', '.join(sorted(PRESETS))}"
            )
        values = {**PRESETS[name], "preset": name}
        values.update({k: v for k, v in overrides.items() if v is not None})
        try:
            return cls.model_validate(values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid pipeline override: {e}") from e


PRESETS: dict[str, dict[str, Any]] = {
    "standard": {
        "search_limit": 15,
        "rerank_top_k": 5,
        "enable_cache": True,
        "enable_rerank": True,
        "enable_metrics": True,
        "rerank_strategy": "llm",
    },
    "quick": {
        "search_limit": 10,
        "rerank_top_k": 5,
        "enable_cache": True,
        "enable_rerank": False,
        "enable_metrics": False,
        "rerank_strategy": "heuristic",
    },
    "premium": {
        "search_limit": 20,
        "rerank_top_k": 8,
        "enable_cache": True,
        "enable_rerank": True,
        "enable_metrics": True,
        "rerank_strategy": "llm",
    },
}
