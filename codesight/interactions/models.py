"""Data models for recorded browser interactions.

Interactions form a closed set of tagged variants discriminated on
``kind``. Every model is frozen: the pipeline only ever reads them.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from codesight.selectors.models import SelectorCandidate

from .kinds import InteractionKind


class Direction(str, Enum):
    """Position of a nearby element relative to the target."""

    ABOVE = "above"
    BELOW = "below"
    LEFT = "left"
    RIGHT = "right"
    INSIDE = "inside"
    NEAR = "near"


class BoundingBox(BaseModel):
    """Element rectangle in viewport pixels."""

    model_config = ConfigDict(frozen=True)

    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0


class ElementSummary(BaseModel):
    """Compact description of an ancestor or sibling element."""

    model_config = ConfigDict(frozen=True)

    tag: str = ""
    text: str = ""
    attributes: dict[str, str] = Field(default_factory=dict)


class ElementDescriptor(BaseModel):
    """The element an interaction targeted."""

    model_config = ConfigDict(frozen=True)

    tag: str = ""
    text: str = ""
    attributes: dict[str, str] = Field(default_factory=dict)
    bounding_box: Optional[BoundingBox] = None
    ancestors: list[ElementSummary] = Field(default_factory=list)
    siblings: list[ElementSummary] = Field(default_factory=list)

    @field_validator("tag")
    @classmethod
    def normalize_tag(cls, v: str) -> str:
        return (v or "").strip().lower()

    @field_validator("text")
    @classmethod
    def normalize_text(cls, v: str) -> str:
        return " ".join((v or "").split())

    @field_validator("attributes", mode="before")
    @classmethod
    def stringify_attributes(cls, v: Any) -> dict[str, str]:
        if not v:
            return {}
        return {str(k): "" if val is None else str(val) for k, val in dict(v).items()}


class NearbyElement(BaseModel):
    """An element close to the target, used as spatial context."""

    model_config = ConfigDict(frozen=True)

    text: str = ""
    tag: str = ""
    direction: Direction = Direction.NEAR
    distance: float = Field(0.0, ge=0.0)
    interactive: bool = False


class PageSnapshot(BaseModel):
    """Optional page-level state captured alongside an interaction."""

    model_config = ConfigDict(frozen=True)

    title: str = ""
    state: dict[str, Any] = Field(default_factory=dict)


class _InteractionBase(BaseModel):
    """Fields shared by every interaction variant."""

    model_config = ConfigDict(frozen=True)

    timestamp: int = Field(..., ge=0, description="Milliseconds since epoch or recording start")
    page_url: str = ""
    element: ElementDescriptor = Field(default_factory=ElementDescriptor)
    selectors: list[SelectorCandidate] = Field(default_factory=list)
    nearby_elements: list[NearbyElement] = Field(default_factory=list)
    page: Optional[PageSnapshot] = None

    @property
    def hostname(self) -> str:
        """Lowercased host of the page URL ('' when unparseable)."""
        try:
            return (urlparse(self.page_url).hostname or "").lower()
        except ValueError:
            return ""

    @property
    def text(self) -> str:
        return self.element.text

    @property
    def page_title(self) -> str:
        return self.page.title if self.page else ""

    @property
    def interaction_kind(self) -> InteractionKind:
        return InteractionKind(getattr(self, "kind"))


class ClickInteraction(_InteractionBase):
    kind: Literal["click"] = "click"


class InputInteraction(_InteractionBase):
    kind: Literal["input"] = "input"
    value: Optional[str] = None


class NavigationInteraction(_InteractionBase):
    kind: Literal["navigation"] = "navigation"
    from_url: Optional[str] = None


class FocusInteraction(_InteractionBase):
    kind: Literal["focus"] = "focus"


AnyInteraction = Union[ClickInteraction, InputInteraction, NavigationInteraction, FocusInteraction]

InteractionRecord = Annotated[AnyInteraction, Field(discriminator="kind")]


class Session(BaseModel):
    """A fully materialized recording session.

    Interactions must already be in ascending timestamp order; the
    pipeline never reorders them.
    """

    model_config = ConfigDict(frozen=True)

    session_id: str = Field(..., min_length=1)
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    interactions: list[InteractionRecord] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_ordering(self) -> "Session":
        previous = None
        for index, interaction in enumerate(self.interactions):
            if previous is not None and interaction.timestamp < previous:
                raise ValueError(
                    f"Interactions must be in ascending timestamp order (index {index})"
                )
            previous = interaction.timestamp
        return self

    @property
    def interaction_count(self) -> int:
        return len(self.interactions)

    @property
    def duration_ms(self) -> int:
        if len(self.interactions) < 2:
            return 0
        return self.interactions[-1].timestamp - self.interactions[0].timestamp
