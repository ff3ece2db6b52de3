"""Data models for training-value scoring."""

from dataclasses import dataclass
from typing import Optional

from codesight.config import ConfigurationError

WEIGHT_TOLERANCE = 1e-6


@dataclass(frozen=True)
class QualityWeights:
    """Versioned dimension weights for the aggregate score.

    Weights are fixed per version and must sum to 1.0.
    """

    version: str = "v1"
    selector: float = 0.35
    spatial: float = 0.20
    dom: float = 0.10
    business: float = 0.20
    site: float = 0.15

    def __post_init__(self):
        values = self.as_tuple()
        if any(v < 0 for v in values):
            raise ConfigurationError(f"Quality weights must be non-negative: {values}")
        total = sum(values)
        if abs(total - 1.0) > WEIGHT_TOLERANCE:
            raise ConfigurationError(f"Quality weights must sum to 1.0, got {total:.6f}")

    @classmethod
    def from_mapping(cls, data: Optional[dict]) -> "QualityWeights":
        if not data:
            return cls()
        known = {"version", "selector", "spatial", "dom", "business", "site"}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown quality weight keys: {sorted(unknown)}")
        values = {k: (str(v) if k == "version" else float(v)) for k, v in data.items()}
        return cls(**values)

    def as_tuple(self) -> tuple[float, float, float, float, float]:
        return (self.selector, self.spatial, self.dom, self.business, self.site)


@dataclass(frozen=True)
class QualityMetrics:
    """Sub-scores (0-100) and their weighted aggregate."""

    selector_quality: float = 0.0
    spatial_richness: float = 0.0
    dom_complexity: float = 0.0
    business_value: float = 0.0
    site_value: float = 0.0
    aggregate: float = 0.0
    weights_version: str = "v1"

    def to_dict(self) -> dict:
        return {
            "selector_quality": self.selector_quality,
            "spatial_richness": self.spatial_richness,
            "dom_complexity": self.dom_complexity,
            "business_value": self.business_value,
            "site_value": self.site_value,
            "aggregate": self.aggregate,
            "weights_version": self.weights_version,
        }


# Per-domain value multipliers, matched on hostname suffix
DEFAULT_DOMAIN_MULTIPLIERS: dict[str, float] = {
    "amazon.com": 1.4,
    "target.com": 1.4,
    "walmart.com": 1.3,
    "bestbuy.com": 1.3,
    "nike.com": 1.5,
    "hm.com": 1.3,
    "gap.com": 1.3,
    "zara.com": 1.3,
    "anthropologie.com": 1.2,
}
