"""Pricing and cost cache types."""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class ModelPricing:
    name: str
    model_id: str
    input_per_mtok: float
    output_per_mtok: float
    cache_read_per_mtok: Optional[float] = None
    cache_write_5m_per_mtok: Optional[float] = None


@dataclass
class CostCacheEntry:
    total: float
    by_model: dict[str, float] = field(default_factory=dict)
    last_modified: float = 0.0   # File mtime in ms since epoch at read time
