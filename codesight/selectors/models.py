"""Data models for selector resolution."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class LocatorKind(str, Enum):
    """Locator strategies, declared from most to least stable."""

    ID = "id"
    TEST_ATTRIBUTE = "test_attribute"
    ACCESSIBILITY = "accessibility"
    NAME = "name"
    STABLE_CLASS = "stable_class"
    STRUCTURAL_PATH = "structural_path"


# Tie-break order when two candidates share the same reliability
DEFAULT_KIND_PRIORITY: tuple[LocatorKind, ...] = (
    LocatorKind.ID,
    LocatorKind.TEST_ATTRIBUTE,
    LocatorKind.ACCESSIBILITY,
    LocatorKind.NAME,
    LocatorKind.STABLE_CLASS,
    LocatorKind.STRUCTURAL_PATH,
)


class ActionVerb(str, Enum):
    """Abstract action verbs, independent of any automation library."""

    CLICK = "click"
    FILL = "fill"
    SELECT = "select"
    NAVIGATE = "navigate"


class SelectorCandidate(BaseModel):
    """One locator proposed by the capture layer.

    Attributes:
        locator: The locator string (CSS, XPath, attribute selector)
        kind: Locator strategy
        reliability: Confidence in [0, 1]; None when the capture layer
            did not score it
    """

    model_config = ConfigDict(frozen=True)

    locator: str
    kind: LocatorKind = LocatorKind.STRUCTURAL_PATH
    reliability: Optional[float] = Field(None, ge=0.0, le=1.0)

    @property
    def effective_reliability(self) -> float:
        """Reliability with missing scores treated as 0."""
        return self.reliability if self.reliability is not None else 0.0

    @property
    def is_usable(self) -> bool:
        return bool(self.locator and self.locator.strip())

    def to_dict(self) -> dict:
        return {
            "locator": self.locator,
            "kind": self.kind.value,
            "reliability": round(self.effective_reliability, 4),
        }


@dataclass(frozen=True)
class ResolvedSelector:
    """Primary locator plus an ordered fallback chain."""

    primary: SelectorCandidate
    fallbacks: tuple[SelectorCandidate, ...] = field(default_factory=tuple)
    synthesized: bool = False

    @property
    def reliability(self) -> float:
        return self.primary.effective_reliability

    @property
    def fallback_locators(self) -> list[str]:
        return [c.locator for c in self.fallbacks]

    def to_dict(self) -> dict:
        return {
            "primary": self.primary.to_dict(),
            "fallbacks": [c.to_dict() for c in self.fallbacks],
            "synthesized": self.synthesized,
        }


@dataclass(frozen=True)
class ActionDescriptor:
    """Abstract action against a resolved locator."""

    verb: ActionVerb
    target: str
    reliability: float = 0.0

    def to_dict(self) -> dict:
        return {
            "action": self.verb.value,
            "target": self.target,
            "reliability": round(self.reliability, 4),
        }
