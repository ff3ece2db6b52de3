"""Prompt and completion templates for training examples.

Each template renders a prompt out of named sections and a JSON
completion. Rendering is pure: identical inputs give identical text, and
no session identifier is ever part of the input.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

from codesight.context.models import Intent, PageContext, UserIntent
from codesight.interactions.models import AnyInteraction
from codesight.selectors.models import ActionDescriptor, ActionVerb, ResolvedSelector
from codesight.sequences.models import ShoppingSequence

MAX_NEARBY_ELEMENTS = 8
MAX_TEXT_LENGTH = 80

GOALS = {
    Intent.SEARCH: "Find a product using the site search",
    Intent.BROWSE: "Browse products and explore the catalog",
    Intent.COMPARE: "Compare several products before choosing",
    Intent.PURCHASE: "Add the chosen product to the cart",
    Intent.RESEARCH: "Research product details and reviews",
}


def truncate(text: str, limit: int = MAX_TEXT_LENGTH) -> str:
    text = " ".join((text or "").split())
    return text if len(text) <= limit else text[: limit - 3] + "..."


def to_json(data: dict) -> str:
    return json.dumps(data, sort_keys=True, ensure_ascii=False, separators=(",", ":"))


@dataclass(frozen=True)
class InteractionView:
    """Everything the per-interaction template needs."""

    interaction: AnyInteraction
    step: int
    total_steps: int
    resolved: ResolvedSelector
    action: ActionDescriptor
    page: PageContext
    intent: UserIntent


@dataclass(frozen=True)
class SequenceStep:
    action: ActionDescriptor
    text: str
    page_type: str


@dataclass(frozen=True)
class SequenceView:
    """Everything the per-sequence template needs."""

    sequence: ShoppingSequence
    steps: tuple[SequenceStep, ...] = field(default_factory=tuple)
    hostname: str = ""


class BaseExampleTemplate(ABC):
    """Base class for example templates.

    Subclasses provide the prompt sections and the completion payload;
    the base class joins sections and serializes the completion.
    """

    name: str = "base"

    @abstractmethod
    def sections(self, view: Any) -> list[tuple[str, list[str]]]:
        """Ordered (section title, lines) pairs."""
        pass

    @abstractmethod
    def completion_payload(self, view: Any) -> dict:
        pass

    def render_prompt(self, view: Any) -> str:
        blocks = []
        for title, lines in self.sections(view):
            blocks.append("\n".join([f"[{title}]"] + lines))
        return "\n\n".join(blocks)

    def render_completion(self, view: Any) -> str:
        return to_json(self.completion_payload(view))

    def render(self, view: Any) -> tuple[str, str]:
        return self.render_prompt(view), self.render_completion(view)


class InteractionTemplate(BaseExampleTemplate):
    """Single-step example: what to do next on this page."""

    name = "interaction"

    def sections(self, view: InteractionView) -> list[tuple[str, list[str]]]:
        return [
            ("JOURNEY", self._journey(view)),
            ("PAGE CONTEXT", self._page(view)),
            ("SPATIAL CONTEXT", self._spatial(view)),
            ("SELECTORS", self._selectors(view)),
        ]

    def _journey(self, view: InteractionView) -> list[str]:
        intent = view.intent
        return [
            f"Goal: {GOALS[intent.primary]}",
            f"Step: {view.step}/{view.total_steps}",
            f"Funnel stage: {intent.funnel_stage.value}",
            f"Intent: {intent.primary.value} (confidence {intent.confidence:.0f})",
        ]

    def _page(self, view: InteractionView) -> list[str]:
        interaction = view.interaction
        lines = [
            f"URL: {interaction.page_url or 'unknown'}",
            f"Page type: {view.page.page_type.value} (confidence {view.page.confidence:.0f})",
        ]
        if interaction.page_title:
            lines.append(f"Title: {truncate(interaction.page_title)}")
        capabilities = view.page.capabilities.enabled()
        lines.append(f"Capabilities: {', '.join(capabilities) if capabilities else 'none detected'}")
        return lines

    def _spatial(self, view: InteractionView) -> list[str]:
        interaction = view.interaction
        element = interaction.element
        target = f"<{element.tag or 'element'}>"
        if element.text:
            target += f' "{truncate(element.text)}"'
        lines = [f"Target: {target}"]

        nearby = sorted(interaction.nearby_elements, key=lambda n: n.distance)[:MAX_NEARBY_ELEMENTS]
        if not nearby:
            lines.append("Nearby: none captured")
        for n in nearby:
            flag = ", interactive" if n.interactive else ""
            label = f'"{truncate(n.text, 40)}"' if n.text else "(no text)"
            lines.append(f"- {n.direction.value}: {label} <{n.tag or 'element'}> {n.distance:.0f}px{flag}")
        return lines

    def _selectors(self, view: InteractionView) -> list[str]:
        primary = view.resolved.primary
        lines = [f"Primary: {primary.locator} ({primary.kind.value}, reliability {primary.effective_reliability:.2f})"]
        if view.resolved.synthesized:
            lines.append("Note: no captured selector, structural placeholder")
        for position, fallback in enumerate(view.resolved.fallbacks, start=1):
            lines.append(
                f"Fallback {position}: {fallback.locator} "
                f"({fallback.kind.value}, reliability {fallback.effective_reliability:.2f})"
            )
        return lines

    def reasoning(self, view: InteractionView) -> str:
        intent = view.intent
        action = view.action
        target = f'"{truncate(view.interaction.text, 40)}"' if view.interaction.text else "the target element"
        fallbacks = len(view.resolved.fallbacks)
        return (
            f"The user is in the {intent.funnel_stage.value} stage with {intent.primary.value} intent, "
            f"so the next step is to {action.verb.value} {target} on the {view.page.page_type.value} page. "
            f"The {view.resolved.primary.kind.value} selector has reliability {action.reliability:.2f} "
            f"with {fallbacks} fallback{'s' if fallbacks != 1 else ''}."
        )

    def completion_payload(self, view: InteractionView) -> dict:
        payload = {
            "action": view.action.verb.value,
            "selector": view.action.target,
            "reasoning": self.reasoning(view),
            "confidence": round(view.action.reliability, 2),
            "fallbacks": view.resolved.fallback_locators,
        }
        value = _action_value(view.interaction, view.action)
        if value is not None:
            payload["value"] = value
        return payload


class SequenceTemplate(BaseExampleTemplate):
    """Multi-step example: given the flow so far, produce its final action."""

    name = "sequence"

    def sections(self, view: SequenceView) -> list[tuple[str, list[str]]]:
        sequence = view.sequence
        lines = [
            f"Flow: {sequence.flow_type.value}",
            f"Site: {view.hostname or 'unknown'}",
            f"Started from: {sequence.start_family or 'unknown'}",
            "Steps so far:",
        ]
        previous = view.steps[:-1]
        if not previous:
            lines.append("(none)")
        for position, step in enumerate(previous, start=1):
            label = f' "{truncate(step.text, 40)}"' if step.text else ""
            lines.append(f"{position}. {step.action.verb.value}{label} on {step.page_type} page -> {step.action.target}")

        configuration = sequence.configuration.to_dict()
        rendered = ", ".join(f"{k}={v}" for k, v in configuration.items())
        lines.append(f"Configuration: {rendered or 'none'}")
        lines.append(f"Status: {sequence.status.value} ({len(view.steps)} steps)")
        return [("SHOPPING FLOW", lines)]

    def completion_payload(self, view: SequenceView) -> dict:
        sequence = view.sequence
        terminal = view.steps[-1]
        return {
            "action": terminal.action.verb.value,
            "selector": terminal.action.target,
            "configuration": sequence.configuration.to_dict(),
            "status": sequence.status.value,
            "flow_type": sequence.flow_type.value,
            "confidence": round(terminal.action.reliability, 2),
        }


def _action_value(interaction: AnyInteraction, action: ActionDescriptor) -> Optional[str]:
    if action.verb in (ActionVerb.FILL, ActionVerb.SELECT):
        return getattr(interaction, "value", None)
    if action.verb == ActionVerb.NAVIGATE:
        return interaction.page_url or None
    return None
