"""Interaction ingestion - typed interaction variants and session parsing."""

from .kinds import RAW_KIND_ALIASES, InteractionKind
from .models import (
    AnyInteraction,
    BoundingBox,
    ClickInteraction,
    Direction,
    ElementDescriptor,
    ElementSummary,
    FocusInteraction,
    InputInteraction,
    InteractionRecord,
    NavigationInteraction,
    NearbyElement,
    PageSnapshot,
    Session,
)
from .parser import SessionParser, parse_session

__all__ = [
    # Kinds
    "InteractionKind",
    "RAW_KIND_ALIASES",
    # Models
    "Direction",
    "BoundingBox",
    "ElementSummary",
    "ElementDescriptor",
    "NearbyElement",
    "PageSnapshot",
    "ClickInteraction",
    "InputInteraction",
    "NavigationInteraction",
    "FocusInteraction",
    "AnyInteraction",
    "InteractionRecord",
    "Session",
    # Parser
    "SessionParser",
    "parse_session",
]
