"""Sequence segmenter - split a session into shopping flows.

A two-state machine (IDLE / OPEN) walks the interactions in order. Start
triggers open a flow, product pages and option choices continue it, and
add-to-cart style actions close it as complete. A flow that sees
``max_lookahead`` interactions in a row without a trigger is closed as
incomplete at its last trigger step; those trailing interactions become
standalone segments. The output always partitions the stream.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence

import structlog

from codesight.config import ConfigurationError
from codesight.interactions.models import AnyInteraction, Session

from .models import (
    CloseReason,
    FlowType,
    ProductConfiguration,
    SegmentationResult,
    SequenceStatus,
    ShoppingSequence,
)
from .patterns import ConfigurationDetector, TriggerPatterns

logger = structlog.get_logger()


class SegmenterState(str, Enum):
    IDLE = "idle"
    OPEN = "open"


@dataclass
class _OpenFlow:
    """Mutable bookkeeping for the flow currently being built."""

    start_index: int
    family: str
    last_trigger_index: int
    configuration: ProductConfiguration = field(default_factory=ProductConfiguration)
    lookahead: int = 0
    has_product_page: bool = False
    has_cart_signal: bool = False


def sequence_quality(length: int, configuration: ProductConfiguration, complete: bool) -> float:
    """Structural quality (0-100) from length, configuration and completion."""
    quality = 0.5 + min(0.3, length * 0.05)
    if not configuration.is_empty:
        quality += 0.2
        if complete:
            quality += 0.1
    if complete:
        quality += 0.2
    return round(min(1.0, quality) * 100, 2)


class SequenceSegmenter:
    """Segments a session's interaction stream into shopping sequences.

    Example:
        segmenter = SequenceSegmenter(max_lookahead=15)
        result = segmenter.segment(session)
        for flow in result.flows:
            print(flow.flow_type, flow.status, flow.configuration.to_dict())
    """

    def __init__(
        self,
        triggers: Optional[TriggerPatterns] = None,
        detector: Optional[ConfigurationDetector] = None,
        max_lookahead: int = 15,
    ):
        """Initialize segmenter.

        Args:
            triggers: Start/continue/end trigger tables
            detector: Product option detector
            max_lookahead: Consecutive non-trigger interactions before an
                open flow is closed as incomplete

        Raises:
            ConfigurationError: If max_lookahead is not positive
        """
        if max_lookahead < 1:
            raise ConfigurationError(f"max_lookahead must be >= 1, got {max_lookahead}")

        self.triggers = triggers or TriggerPatterns()
        self.detector = detector or ConfigurationDetector()
        self.max_lookahead = max_lookahead
        self.log = logger.bind(component="sequence_segmenter")

    def segment(self, session: Session | Sequence[AnyInteraction]) -> SegmentationResult:
        """Partition interactions into flows and standalone segments."""
        interactions = list(session.interactions if isinstance(session, Session) else session)

        segments: list[ShoppingSequence] = []
        state = SegmenterState.IDLE
        flow: Optional[_OpenFlow] = None

        for index, interaction in enumerate(interactions):
            if state == SegmenterState.IDLE:
                family = self.triggers.start_family(interaction)
                if family is None:
                    segments.append(self._standalone(interactions, index))
                    continue

                flow = _OpenFlow(start_index=index, family=family, last_trigger_index=index)
                self._absorb(flow, interaction)
                state = SegmenterState.OPEN
                self.log.debug("Flow opened", index=index, family=family)
                continue

            if self.triggers.is_end(interaction):
                flow.has_cart_signal = True
                segments.append(self._close(interactions, flow, index, CloseReason.END_TRIGGER))
                flow, state = None, SegmenterState.IDLE
                continue

            if self._is_continuation(interaction):
                self._absorb(flow, interaction)
                flow.last_trigger_index = index
                flow.lookahead = 0
                continue

            flow.lookahead += 1
            if flow.lookahead >= self.max_lookahead:
                segments.extend(self._close_with_tail(interactions, flow, index, CloseReason.LOOKAHEAD_TIMEOUT))
                flow, state = None, SegmenterState.IDLE

        if flow is not None:
            segments.extend(
                self._close_with_tail(interactions, flow, len(interactions) - 1, CloseReason.END_OF_SESSION)
            )

        result = SegmentationResult(segments=tuple(segments), interaction_count=len(interactions))
        self.log.debug(
            "Segmentation complete",
            interaction_count=len(interactions),
            flows=len(result.flows),
            standalone=len(result.standalone),
        )
        return result

    def _is_continuation(self, interaction: AnyInteraction) -> bool:
        return (
            self.triggers.is_product_page(interaction)
            or self.detector.detect(interaction) is not None
            or self.triggers.start_family(interaction) is not None
        )

    def _absorb(self, flow: _OpenFlow, interaction: AnyInteraction) -> None:
        """Fold a trigger-matching step into the open flow."""
        if self.triggers.is_product_page(interaction):
            flow.has_product_page = True
        if self.triggers.has_cart_signal(interaction):
            flow.has_cart_signal = True
        detected = self.detector.detect(interaction)
        if detected is not None:
            field_name, value = detected
            flow.configuration = flow.configuration.updated(field_name, value)

    def _close(
        self,
        interactions: list[AnyInteraction],
        flow: _OpenFlow,
        end_index: int,
        reason: CloseReason,
        closed_at_index: Optional[int] = None,
    ) -> ShoppingSequence:
        complete = reason == CloseReason.END_TRIGGER
        steps = tuple(interactions[flow.start_index : end_index + 1])

        if complete:
            flow_type = FlowType.SEARCH_TO_CART if flow.family == "search" else FlowType.BROWSE_TO_CART
        elif flow.has_product_page and not flow.configuration.is_empty:
            flow_type = FlowType.PRODUCT_CONFIGURATION
        else:
            flow_type = FlowType.NAVIGATION_FLOW

        sequence = ShoppingSequence(
            start_index=flow.start_index,
            end_index=end_index,
            interactions=steps,
            flow_type=flow_type,
            status=SequenceStatus.COMPLETE if complete else SequenceStatus.INCOMPLETE,
            close_reason=reason,
            configuration=flow.configuration,
            quality_score=sequence_quality(len(steps), flow.configuration, complete),
            start_family=flow.family,
            has_product_page=flow.has_product_page,
            has_cart_signal=flow.has_cart_signal,
            closed_at_index=end_index if closed_at_index is None else closed_at_index,
        )
        self.log.debug(
            "Flow closed",
            start_index=flow.start_index,
            end_index=end_index,
            reason=reason.value,
            flow_type=flow_type.value,
        )
        return sequence

    def _close_with_tail(
        self,
        interactions: list[AnyInteraction],
        flow: _OpenFlow,
        last_seen_index: int,
        reason: CloseReason,
    ) -> list[ShoppingSequence]:
        """Close incomplete at the last trigger step; the tail goes standalone."""
        closed = [self._close(interactions, flow, flow.last_trigger_index, reason, closed_at_index=last_seen_index)]
        for index in range(flow.last_trigger_index + 1, last_seen_index + 1):
            closed.append(self._standalone(interactions, index))
        return closed

    def _standalone(self, interactions: list[AnyInteraction], index: int) -> ShoppingSequence:
        return ShoppingSequence(
            start_index=index,
            end_index=index,
            interactions=(interactions[index],),
            flow_type=FlowType.SINGLE_INTERACTION,
            status=SequenceStatus.STANDALONE,
            close_reason=CloseReason.STANDALONE,
            quality_score=sequence_quality(1, ProductConfiguration(), False),
            has_product_page=self.triggers.is_product_page(interactions[index]),
            has_cart_signal=self.triggers.has_cart_signal(interactions[index]),
        )
