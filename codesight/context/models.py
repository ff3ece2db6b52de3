"""Data models for page and intent context."""

from dataclasses import dataclass, field
from enum import Enum


class PageType(str, Enum):
    """Page types, declared in tie-break order."""

    PRODUCT = "product"
    CART = "cart"
    CHECKOUT = "checkout"
    SEARCH = "search"
    CATEGORY = "category"
    HOME = "home"
    OTHER = "other"


class Intent(str, Enum):
    """Primary shopping intents, declared in tie-break order."""

    SEARCH = "search"
    BROWSE = "browse"
    COMPARE = "compare"
    PURCHASE = "purchase"
    RESEARCH = "research"


class FunnelStage(str, Enum):
    """Position in the shopping funnel."""

    AWARENESS = "awareness"
    CONSIDERATION = "consideration"
    DECISION = "decision"


class Level(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class PageCapabilities:
    """UI capabilities detected from element text and locators."""

    has_search: bool = False
    has_filters: bool = False
    has_cart: bool = False
    has_navigation: bool = False
    has_product_grid: bool = False
    has_pagination: bool = False
    has_variant_selectors: bool = False

    def enabled(self) -> list[str]:
        """Names of the capabilities that are present."""
        return [name for name, value in self.to_dict().items() if value]

    def to_dict(self) -> dict:
        return {
            "has_search": self.has_search,
            "has_filters": self.has_filters,
            "has_cart": self.has_cart,
            "has_navigation": self.has_navigation,
            "has_product_grid": self.has_product_grid,
            "has_pagination": self.has_pagination,
            "has_variant_selectors": self.has_variant_selectors,
        }


@dataclass(frozen=True)
class PageContext:
    """Classified page type with confidence.

    Attributes:
        page_type: Dominant page type, OTHER when nothing matched
        confidence: 0-100
        capabilities: Detected UI capabilities
        match_counts: Matches per page type (only types that matched)
    """

    page_type: PageType = PageType.OTHER
    confidence: float = 50.0
    capabilities: PageCapabilities = field(default_factory=PageCapabilities)
    match_counts: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "page_type": self.page_type.value,
            "confidence": self.confidence,
            "capabilities": self.capabilities.enabled(),
            "match_counts": dict(sorted(self.match_counts.items())),
        }


@dataclass(frozen=True)
class UserIntent:
    """Inferred shopping intent for a journey or journey prefix."""

    primary: Intent = Intent.BROWSE
    confidence: float = 0.0
    funnel_stage: FunnelStage = FunnelStage.AWARENESS
    urgency: Level = Level.LOW
    price_sensitivity: Level = Level.LOW
    indicators: tuple[str, ...] = ()
    scores: dict[str, float] = field(default_factory=dict)
    reasoning: str = ""

    def to_dict(self) -> dict:
        return {
            "primary": self.primary.value,
            "confidence": self.confidence,
            "funnel_stage": self.funnel_stage.value,
            "urgency": self.urgency.value,
            "price_sensitivity": self.price_sensitivity.value,
            "indicators": list(self.indicators),
            "scores": dict(sorted(self.scores.items())),
            "reasoning": self.reasoning,
        }
