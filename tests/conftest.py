"""Shared fixtures for codesight tests."""

import os
from typing import Optional

import pytest

from codesight.interactions.models import (
    ClickInteraction,
    ElementDescriptor,
    ElementSummary,
    FocusInteraction,
    InputInteraction,
    NavigationInteraction,
    NearbyElement,
    PageSnapshot,
    Session,
)
from codesight.selectors.models import LocatorKind, SelectorCandidate

# Keep developer .env files and shell settings out of the test run
for _key in list(os.environ):
    if _key.startswith("CODESIGHT_"):
        del os.environ[_key]


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "smoke: mark test as smoke test (fast, critical path - included in CI)"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


SITE = "https://shop.example.com"

_VARIANTS = {
    "click": ClickInteraction,
    "input": InputInteraction,
    "navigation": NavigationInteraction,
    "focus": FocusInteraction,
}


def default_selectors(name: str) -> list[SelectorCandidate]:
    return [
        SelectorCandidate(locator=f"#{name}", kind=LocatorKind.ID, reliability=0.9),
        SelectorCandidate(locator=f"[data-testid='{name}']", kind=LocatorKind.TEST_ATTRIBUTE, reliability=0.8),
        SelectorCandidate(locator=f"//main//button[@name='{name}']", kind=LocatorKind.STRUCTURAL_PATH, reliability=0.5),
    ]


def default_nearby() -> list[NearbyElement]:
    return [
        NearbyElement(text="$19.99", tag="span", direction="above", distance=12, interactive=False),
        NearbyElement(text="Size guide", tag="a", direction="below", distance=20, interactive=True),
        NearbyElement(text="Wishlist", tag="button", direction="right", distance=30, interactive=True),
        NearbyElement(text="Free shipping", tag="p", direction="below", distance=44, interactive=False),
        NearbyElement(text="Reviews", tag="a", direction="below", distance=60, interactive=True),
        NearbyElement(text="Share", tag="button", direction="left", distance=75, interactive=True),
        NearbyElement(text="In stock", tag="span", direction="above", distance=80, interactive=False),
        NearbyElement(text="Details", tag="p", direction="below", distance=96, interactive=False),
    ]


def build_interaction(
    kind: str = "click",
    timestamp: int = 0,
    url: str = f"{SITE}/",
    text: str = "",
    tag: str = "button",
    name: Optional[str] = None,
    attributes: Optional[dict] = None,
    selectors: Optional[list[SelectorCandidate]] = None,
    nearby: Optional[list[NearbyElement]] = None,
    rich: bool = True,
    **extra,
):
    """Build one interaction; ``rich`` fills in selectors, context and DOM."""
    name = name or (text.lower().replace(" ", "-") or "target")
    if attributes is None:
        attributes = {"id": name, "class": "btn"} if rich else {}
    if selectors is None:
        selectors = default_selectors(name) if rich else []
    if nearby is None:
        nearby = default_nearby() if rich else []

    element = ElementDescriptor(
        tag=tag,
        text=text,
        attributes=attributes,
        ancestors=[ElementSummary(tag=t) for t in ("main", "section", "div")] if rich else [],
        siblings=[ElementSummary(tag="button") for _ in range(3)] if rich else [],
    )
    return _VARIANTS[kind](
        timestamp=timestamp,
        page_url=url,
        element=element,
        selectors=selectors,
        nearby_elements=nearby,
        page=PageSnapshot(title="Example Shop") if rich else None,
        **extra,
    )


def browse_to_cart_interactions(start: int = 0) -> list:
    """Sale -> product -> size M -> Add to bag."""
    return [
        build_interaction(timestamp=start + 1000, url=f"{SITE}/c/womens", text="Sale", tag="a"),
        build_interaction(timestamp=start + 2000, url=f"{SITE}/p/cotton-t-shirt", text="Cotton T-shirt", tag="a"),
        build_interaction(timestamp=start + 3000, url=f"{SITE}/p/cotton-t-shirt", text="M", name="size-m"),
        build_interaction(timestamp=start + 4000, url=f"{SITE}/p/cotton-t-shirt", text="Add to bag"),
    ]


def neutral_interactions(count: int, start: int = 0) -> list:
    """Interactions that match no trigger family."""
    return [
        build_interaction(
            timestamp=start + (i + 1) * 100,
            url=f"{SITE}/about-us",
            text=f"Read more {i}",
            tag="a",
            name=f"read-more-{i}",
        )
        for i in range(count)
    ]


@pytest.fixture
def interaction_factory():
    """Factory for interaction records."""
    return build_interaction


@pytest.fixture
def neutral_factory():
    """Factory for trigger-free interactions."""
    return neutral_interactions


@pytest.fixture
def browse_to_cart_session():
    """Four-step browse-to-cart flow."""
    return Session(session_id="sess-browse", interactions=browse_to_cart_interactions())


@pytest.fixture
def lookahead_timeout_session():
    """A start trigger followed by 20 interactions without any trigger."""
    interactions = [build_interaction(timestamp=0, url=f"{SITE}/sale", text="Sale", tag="a")]
    interactions.extend(neutral_interactions(20, start=0))
    return Session(session_id="sess-timeout", interactions=interactions)


@pytest.fixture
def sparse_interaction():
    """No selectors, no nearby elements, no attributes."""
    return build_interaction(url="https://unknown.example.org/page", text="", tag="div", rich=False)


@pytest.fixture
def mixed_session():
    """Standalone noise, a complete flow, then more noise."""
    interactions = neutral_interactions(2, start=0)
    interactions.extend(browse_to_cart_interactions(start=1000))
    interactions.extend(neutral_interactions(2, start=10_000))
    return Session(session_id="sess-mixed", interactions=interactions)


@pytest.fixture
def extension_payload():
    """Raw payload in the browser extension's camelCase shape."""
    return {
        "sessionId": "ext-001",
        "startTime": "2024-05-01T10:00:00Z",
        "interactions": [
            {
                "type": "CLICK",
                "timestamp": 2000,
                "context": {"pageUrl": f"{SITE}/p/jacket", "pageTitle": "Rain Jacket"},
                "element": {"tagName": "BUTTON", "text": "Add  to   bag", "attributes": {"id": "add"}},
                "selectors": {
                    "xpath": "//*[@id='add']",
                    "cssPath": "main > div > button.add",
                    "primary": "#add",
                    "alternatives": ["[data-testid='add-to-bag']"],
                    "reliability": {"//*[@id='add']": 0.7, "main > div > button.add": 0.4, "#add": 0.9},
                },
                "nearbyElements": [
                    {"text": "$80", "elementType": "span", "direction": "up", "distance": 10},
                ],
            },
            {
                "type": "scroll",
                "timestamp": 1500,
            },
            {
                "type": "input",
                "timestamp": 1000,
                "url": f"{SITE}/search",
                "value": "rain jacket",
                "element": {"tag": "input", "attributes": {"name": "q", "aria-label": "Search"}},
            },
            {
                "type": "click",
                "timestamp": "not-a-time",
            },
        ],
    }
