"""Quality scoring - rate interactions and sequences for training value."""

from .models import DEFAULT_DOMAIN_MULTIPLIERS, QualityMetrics, QualityWeights
from .scorer import QualityScorer, dom_score, selector_score, spatial_score

__all__ = [
    "QualityWeights",
    "QualityMetrics",
    "DEFAULT_DOMAIN_MULTIPLIERS",
    "QualityScorer",
    "selector_score",
    "spatial_score",
    "dom_score",
]
