"""Model pricing lookup and token cost calculation.

Rates are USD per million tokens (MTok) and ship as package data in
data/pricing.json.
"""

import logging
import re
from importlib import resources
from pathlib import Path

import orjson

from claude_overseer.types.costs import ModelPricing
from claude_overseer.types.messages import TokenUsage

logger = logging.getLogger(__name__)

_DATE_SUFFIX = re.compile(r"-\d{8}$")


def normalize_model_id(model: str) -> str:
    """Strip a trailing release date: claude-sonnet-4-5-20250929 → claude-sonnet-4-5."""
    return _DATE_SUFFIX.sub("", model or "")


class PricingTable:
    """Static mapping from normalized model id to ModelPricing."""

    def __init__(self, models: list[ModelPricing] | None = None):
        self._models: dict[str, ModelPricing] = {}
        for m in models or []:
            self._models[m.model_id] = m

    @classmethod
    def from_dict(cls, data: dict) -> "PricingTable":
        models = []
        for raw in data.get("models", []):
            if not isinstance(raw, dict):
                continue
            try:
                models.append(ModelPricing(
                    name=raw.get("name", raw["model_id"]),
                    model_id=raw["model_id"],
                    input_per_mtok=float(raw["input_per_mtok"]),
                    output_per_mtok=float(raw["output_per_mtok"]),
                    cache_read_per_mtok=_optional_rate(raw.get("cache_read_per_mtok")),
                    cache_write_5m_per_mtok=_optional_rate(raw.get("cache_write_5m_per_mtok")),
                ))
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping malformed pricing entry: %r", raw)
        return cls(models)

    @classmethod
    def from_file(cls, path: str | Path) -> "PricingTable":
        return cls.from_dict(orjson.loads(Path(path).read_bytes()))

    @classmethod
    def default(cls) -> "PricingTable":
        """Load the bundled pricing table."""
        data = resources.files("claude_overseer.data").joinpath("pricing.json").read_bytes()
        return cls.from_dict(orjson.loads(data))

    def __len__(self) -> int:
        return len(self._models)

    def __contains__(self, model: str) -> bool:
        return self.get(model) is not None

    def get(self, model: str) -> ModelPricing | None:
        if not model:
            return None
        return self._models.get(normalize_model_id(model))

    def calculate_cost(self, usage: TokenUsage, model: str) -> float | None:
        """Cost in USD for one usage block, or None if the model has no pricing."""
        p = self.get(model)
        if p is None:
            return None

        input_cost = usage.input_tokens / 1_000_000 * p.input_per_mtok
        output_cost = usage.output_tokens / 1_000_000 * p.output_per_mtok
        cache_read_cost = (
            usage.cache_read_input_tokens / 1_000_000 * p.cache_read_per_mtok
            if p.cache_read_per_mtok else 0.0
        )
        cache_write_cost = (
            usage.cache_creation_input_tokens / 1_000_000 * p.cache_write_5m_per_mtok
            if p.cache_write_5m_per_mtok else 0.0
        )
        return input_cost + output_cost + cache_read_cost + cache_write_cost

    def model_name(self, model: str) -> str:
        """Short display name, e.g. "Opus 4.6"; falls back to the raw id."""
        p = self.get(model)
        if p is None:
            return model
        return re.sub(r"^Claude\s+", "", p.name, flags=re.IGNORECASE)


def _optional_rate(value) -> float | None:
    if value is None:
        return None
    return float(value)


_default_table: PricingTable | None = None


def default_pricing() -> PricingTable:
    global _default_table
    if _default_table is None:
        _default_table = PricingTable.default()
    return _default_table


def format_cost(usd: float) -> str:
    if usd < 0.01:
        return f"${usd:.3f}"
    return f"${usd:.2f}"
