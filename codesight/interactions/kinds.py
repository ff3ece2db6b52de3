"""Interaction kinds recognised by the pipeline."""

from enum import Enum


class InteractionKind(str, Enum):
    """Closed set of interaction variants."""

    CLICK = "click"
    INPUT = "input"
    NAVIGATION = "navigation"
    FOCUS = "focus"


# Raw capture-layer event names mapped onto the closed set
RAW_KIND_ALIASES: dict[str, InteractionKind] = {
    "click": InteractionKind.CLICK,
    "dblclick": InteractionKind.CLICK,
    "double_click": InteractionKind.CLICK,
    "tap": InteractionKind.CLICK,
    "input": InteractionKind.INPUT,
    "type": InteractionKind.INPUT,
    "fill": InteractionKind.INPUT,
    "change": InteractionKind.INPUT,
    "select": InteractionKind.INPUT,
    "form_submit": InteractionKind.INPUT,
    "navigation": InteractionKind.NAVIGATION,
    "navigate": InteractionKind.NAVIGATION,
    "page_load": InteractionKind.NAVIGATION,
    "goto": InteractionKind.NAVIGATION,
    "focus": InteractionKind.FOCUS,
}
