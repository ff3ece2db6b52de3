"""Data models for shopping-sequence segmentation."""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional

from codesight.interactions.models import AnyInteraction


class FlowType(str, Enum):
    """Kinds of shopping flow a segment can represent."""

    BROWSE_TO_CART = "browse_to_cart"
    SEARCH_TO_CART = "search_to_cart"
    PRODUCT_CONFIGURATION = "product_configuration"
    NAVIGATION_FLOW = "navigation_flow"
    SINGLE_INTERACTION = "single_interaction"


class SequenceStatus(str, Enum):
    COMPLETE = "complete"
    INCOMPLETE = "incomplete"
    STANDALONE = "standalone"


class CloseReason(str, Enum):
    """Why a segment was closed."""

    END_TRIGGER = "end_trigger"
    LOOKAHEAD_TIMEOUT = "lookahead_timeout"
    END_OF_SESSION = "end_of_session"
    STANDALONE = "standalone"


CONFIGURATION_FIELDS = ("size", "color", "quantity", "style")


@dataclass(frozen=True)
class ProductConfiguration:
    """Product options chosen so far, last write wins per field."""

    size: Optional[str] = None
    color: Optional[str] = None
    quantity: Optional[str] = None
    style: Optional[str] = None

    def updated(self, field_name: str, value: str) -> "ProductConfiguration":
        if field_name not in CONFIGURATION_FIELDS:
            raise ValueError(f"Unknown configuration field: {field_name}")
        return replace(self, **{field_name: value})

    @property
    def is_empty(self) -> bool:
        return not self.to_dict()

    def to_dict(self) -> dict:
        """Only the fields that have been set, in declaration order."""
        values = {
            "size": self.size,
            "color": self.color,
            "quantity": self.quantity,
            "style": self.style,
        }
        return {k: v for k, v in values.items() if v is not None}


@dataclass(frozen=True)
class ShoppingSequence:
    """A contiguous slice of a session's interactions.

    Indices are positions in the session's interaction list; end_index is
    inclusive. closed_at_index is where the flow was closed: the end step
    for a completed flow, the step that exhausted the look-ahead for a
    timeout, and the last step for an end of session. It defaults to
    end_index.
    """

    start_index: int
    end_index: int
    interactions: tuple[AnyInteraction, ...]
    flow_type: FlowType = FlowType.SINGLE_INTERACTION
    status: SequenceStatus = SequenceStatus.STANDALONE
    close_reason: CloseReason = CloseReason.STANDALONE
    configuration: ProductConfiguration = field(default_factory=ProductConfiguration)
    quality_score: float = 0.0
    start_family: Optional[str] = None
    has_product_page: bool = False
    has_cart_signal: bool = False
    closed_at_index: Optional[int] = None

    def __post_init__(self):
        if self.closed_at_index is None:
            object.__setattr__(self, "closed_at_index", self.end_index)

    @property
    def length(self) -> int:
        return len(self.interactions)

    @property
    def is_flow(self) -> bool:
        """True for complete or incomplete multi-step flows."""
        return self.status != SequenceStatus.STANDALONE

    @property
    def is_complete(self) -> bool:
        return self.status == SequenceStatus.COMPLETE

    @property
    def last_interaction(self) -> AnyInteraction:
        return self.interactions[-1]

    def to_dict(self) -> dict:
        """Sequence metadata without the interactions themselves."""
        return {
            "start_index": self.start_index,
            "end_index": self.end_index,
            "length": self.length,
            "flow_type": self.flow_type.value,
            "status": self.status.value,
            "close_reason": self.close_reason.value,
            "configuration": self.configuration.to_dict(),
            "quality_score": self.quality_score,
            "start_family": self.start_family,
        }


@dataclass(frozen=True)
class SegmentationResult:
    """Ordered partition of one session's interactions."""

    segments: tuple[ShoppingSequence, ...] = ()
    interaction_count: int = 0

    @property
    def flows(self) -> list[ShoppingSequence]:
        """Complete and incomplete sequences, in stream order."""
        return [s for s in self.segments if s.is_flow]

    @property
    def standalone(self) -> list[ShoppingSequence]:
        return [s for s in self.segments if not s.is_flow]

    def segment_for(self, index: int) -> Optional[ShoppingSequence]:
        """The segment containing an interaction index."""
        for segment in self.segments:
            if segment.start_index <= index <= segment.end_index:
                return segment
        return None

    def is_partition(self) -> bool:
        """True when segments cover every index once, in order."""
        expected = 0
        for segment in self.segments:
            if segment.start_index != expected or segment.end_index < segment.start_index:
                return False
            expected = segment.end_index + 1
        return expected == self.interaction_count
