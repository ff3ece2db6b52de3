"""Selector strategy module - rank captured locators per interaction."""

from .models import (
    DEFAULT_KIND_PRIORITY,
    ActionDescriptor,
    ActionVerb,
    LocatorKind,
    ResolvedSelector,
    SelectorCandidate,
)
from .resolver import SelectorResolver, infer_locator_kind, validate_kind_priority

__all__ = [
    # Models
    "LocatorKind",
    "DEFAULT_KIND_PRIORITY",
    "ActionVerb",
    "SelectorCandidate",
    "ResolvedSelector",
    "ActionDescriptor",
    # Resolver
    "SelectorResolver",
    "infer_locator_kind",
    "validate_kind_priority",
]
