"""Selector strategy resolver - pick a primary locator and a fallback chain.

Ranking is driven by the reliability scores captured with each locator.
Missing scores count as 0. Exact ties fall back to a fixed locator-kind
priority (id > test attribute > accessibility > name > stable class >
structural path).
"""

import re
from typing import Iterable, Optional

import structlog

from codesight.config import ConfigurationError
from codesight.interactions.kinds import InteractionKind

from .models import (
    DEFAULT_KIND_PRIORITY,
    ActionDescriptor,
    ActionVerb,
    LocatorKind,
    ResolvedSelector,
    SelectorCandidate,
)

logger = structlog.get_logger()

# Utility-class prefixes that say nothing about the element's identity
UTILITY_CLASS_PATTERN = re.compile(r"^(p|m|w|h|px|py|mx|my|flex|grid|text|bg|border|col|row|gap)-")

_TEST_ATTRIBUTES = ("data-testid", "data-test-id", "data-test", "data-cy", "data-qa")
_ACCESSIBILITY_ATTRIBUTES = ("aria-label", "aria-labelledby", "role=", "alt=", "title=")


def infer_locator_kind(locator: str) -> LocatorKind:
    """Classify a raw locator string by strategy."""
    value = (locator or "").strip()
    lowered = value.lower()

    if any(attr in lowered for attr in _TEST_ATTRIBUTES):
        return LocatorKind.TEST_ATTRIBUTE

    if value.startswith("/") or value.startswith("("):
        if re.fullmatch(r"//\*?\w*\[@id=['\"][^'\"]+['\"]\]", value):
            return LocatorKind.ID
        if any(attr.rstrip("=") in lowered for attr in _ACCESSIBILITY_ATTRIBUTES):
            return LocatorKind.ACCESSIBILITY
        return LocatorKind.STRUCTURAL_PATH

    if re.fullmatch(r"\w*#[\w-]+", value):
        return LocatorKind.ID

    if any(attr in lowered for attr in _ACCESSIBILITY_ATTRIBUTES):
        return LocatorKind.ACCESSIBILITY

    if "[name=" in lowered:
        return LocatorKind.NAME

    if re.fullmatch(r"\w*\.[\w-]+", value):
        class_name = value.split(".", 1)[1]
        if not UTILITY_CLASS_PATTERN.match(class_name):
            return LocatorKind.STABLE_CLASS

    return LocatorKind.STRUCTURAL_PATH


def validate_kind_priority(priority: Iterable[LocatorKind | str]) -> tuple[LocatorKind, ...]:
    """Check that a priority list names every LocatorKind exactly once.

    Raises:
        ConfigurationError: On unknown, missing or repeated kinds
    """
    kinds = []
    for entry in priority:
        try:
            kinds.append(LocatorKind(entry))
        except ValueError:
            raise ConfigurationError(f"Unknown locator kind in priority: {entry!r}") from None

    if len(set(kinds)) != len(kinds) or set(kinds) != set(LocatorKind):
        missing = sorted(k.value for k in set(LocatorKind) - set(kinds))
        raise ConfigurationError(
            f"Locator kind priority must list every kind exactly once (missing: {missing})"
        )
    return tuple(kinds)


class SelectorResolver:
    """Ranks selector candidates for one interaction.

    Example:
        resolver = SelectorResolver(max_fallbacks=3)
        resolved = resolver.resolve(interaction.selectors, element_tag="button")
        action = resolver.action_for(interaction.kind, resolved.primary)
    """

    def __init__(
        self,
        max_fallbacks: int = 3,
        kind_priority: Iterable[LocatorKind | str] = DEFAULT_KIND_PRIORITY,
    ):
        """Initialize resolver.

        Args:
            max_fallbacks: Cap on the fallback chain length
            kind_priority: Every LocatorKind exactly once, most preferred first

        Raises:
            ConfigurationError: If the priority list is incomplete or unknown
        """
        if max_fallbacks < 0:
            raise ConfigurationError(f"max_fallbacks must be >= 0, got {max_fallbacks}")

        self.max_fallbacks = max_fallbacks
        self.kind_priority = validate_kind_priority(kind_priority)
        self._rank = {kind: index for index, kind in enumerate(self.kind_priority)}
        self.log = logger.bind(component="selector_resolver")

    def _sort_key(self, candidate: SelectorCandidate) -> tuple[float, int]:
        return (-candidate.effective_reliability, self._rank[candidate.kind])

    def rank(self, candidates: Iterable[SelectorCandidate]) -> list[SelectorCandidate]:
        """Order usable candidates best first, dropping duplicate locators.

        Sorting is stable so candidates equal on both keys keep input order.
        """
        usable = [c for c in candidates if c is not None and c.is_usable]
        ordered = sorted(usable, key=self._sort_key)

        seen: set[str] = set()
        unique = []
        for candidate in ordered:
            if candidate.locator in seen:
                continue
            seen.add(candidate.locator)
            unique.append(candidate)
        return unique

    def resolve(
        self,
        candidates: Optional[Iterable[SelectorCandidate]],
        element_tag: Optional[str] = None,
    ) -> ResolvedSelector:
        """Choose a primary locator and fallback chain.

        Never raises: with no usable candidates a structural placeholder
        with reliability 0 is synthesized so quality scoring can filter it.
        """
        ranked = self.rank(candidates or [])

        if not ranked:
            placeholder = self.placeholder_for(element_tag)
            self.log.warning(
                "No usable selector candidates, using placeholder",
                placeholder=placeholder.locator,
            )
            return ResolvedSelector(primary=placeholder, fallbacks=(), synthesized=True)

        return ResolvedSelector(
            primary=ranked[0],
            fallbacks=tuple(ranked[1 : 1 + self.max_fallbacks]),
        )

    @staticmethod
    def placeholder_for(element_tag: Optional[str]) -> SelectorCandidate:
        """Generic-tag structural locator with zero reliability."""
        tag = (element_tag or "").strip().lower()
        if not re.fullmatch(r"[a-z][a-z0-9-]*", tag):
            tag = "*"
        return SelectorCandidate(
            locator=f"//{tag}",
            kind=LocatorKind.STRUCTURAL_PATH,
            reliability=0.0,
        )

    def action_for(
        self,
        interaction_kind: InteractionKind | str,
        selector: SelectorCandidate,
        element_tag: Optional[str] = None,
    ) -> ActionDescriptor:
        """Map an interaction kind to an abstract action verb."""
        kind = InteractionKind(interaction_kind)

        if kind == InteractionKind.INPUT:
            verb = ActionVerb.SELECT if (element_tag or "").lower() == "select" else ActionVerb.FILL
        elif kind == InteractionKind.NAVIGATION:
            verb = ActionVerb.NAVIGATE
        else:
            # Focus is reproduced by clicking the element
            verb = ActionVerb.CLICK

        return ActionDescriptor(
            verb=verb,
            target=selector.locator,
            reliability=selector.effective_reliability,
        )
