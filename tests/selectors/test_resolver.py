"""Tests for the selector strategy resolver."""

import pytest

from codesight.config import ConfigurationError
from codesight.interactions.kinds import InteractionKind
from codesight.selectors.models import (
    DEFAULT_KIND_PRIORITY,
    ActionVerb,
    LocatorKind,
    SelectorCandidate,
)
from codesight.selectors.resolver import (
    SelectorResolver,
    infer_locator_kind,
    validate_kind_priority,
)


def candidate(locator, kind=LocatorKind.STRUCTURAL_PATH, reliability=None):
    return SelectorCandidate(locator=locator, kind=kind, reliability=reliability)


# =============================================================================
# Locator Kind Inference Tests
# =============================================================================


class TestInferLocatorKind:
    """Tests for infer_locator_kind."""

    @pytest.mark.parametrize(
        "locator,expected",
        [
            ("#add-to-cart", LocatorKind.ID),
            ("button#buy", LocatorKind.ID),
            ("//*[@id='buy']", LocatorKind.ID),
            ("[data-testid='buy']", LocatorKind.TEST_ATTRIBUTE),
            ("//button[@data-test='buy']", LocatorKind.TEST_ATTRIBUTE),
            ("button[aria-label='Add to bag']", LocatorKind.ACCESSIBILITY),
            ("//button[@aria-label='Add']", LocatorKind.ACCESSIBILITY),
            ("input[name='q']", LocatorKind.NAME),
            (".product-card", LocatorKind.STABLE_CLASS),
            (".px-4", LocatorKind.STRUCTURAL_PATH),
            ("main > div:nth-child(2) > button", LocatorKind.STRUCTURAL_PATH),
            ("/html/body/div[2]/button", LocatorKind.STRUCTURAL_PATH),
        ],
    )
    def test_inference(self, locator, expected):
        """Test each locator shape maps to its strategy."""
        assert infer_locator_kind(locator) == expected


# =============================================================================
# Priority Validation Tests
# =============================================================================


class TestValidateKindPriority:
    """Tests for validate_kind_priority."""

    def test_default_priority_valid(self):
        """Test the default priority passes."""
        assert validate_kind_priority(DEFAULT_KIND_PRIORITY) == DEFAULT_KIND_PRIORITY

    def test_string_values_accepted(self):
        """Test priorities given as plain strings."""
        values = [k.value for k in reversed(DEFAULT_KIND_PRIORITY)]
        result = validate_kind_priority(values)

        assert result[0] == LocatorKind.STRUCTURAL_PATH
        assert result[-1] == LocatorKind.ID

    def test_unknown_kind_raises(self):
        """Test unknown kinds are a configuration error."""
        with pytest.raises(ConfigurationError, match="Unknown locator kind"):
            validate_kind_priority(["id", "shadow_dom"])

    def test_missing_kind_raises(self):
        """Test an incomplete list is rejected."""
        with pytest.raises(ConfigurationError, match="exactly once"):
            validate_kind_priority(DEFAULT_KIND_PRIORITY[:-1])

    def test_duplicate_kind_raises(self):
        """Test duplicates are rejected."""
        with pytest.raises(ConfigurationError):
            validate_kind_priority(list(DEFAULT_KIND_PRIORITY) + [LocatorKind.ID])


# =============================================================================
# Resolver Tests
# =============================================================================


class TestSelectorResolver:
    """Tests for SelectorResolver."""

    def test_negative_max_fallbacks_raises(self):
        """Test max_fallbacks must not be negative."""
        with pytest.raises(ConfigurationError):
            SelectorResolver(max_fallbacks=-1)

    def test_highest_reliability_wins(self):
        """Test the most reliable candidate becomes primary."""
        resolver = SelectorResolver()
        resolved = resolver.resolve([
            candidate("//div/button", reliability=0.4),
            candidate("#buy", LocatorKind.ID, 0.95),
            candidate(".buy-button", LocatorKind.STABLE_CLASS, 0.6),
        ])

        assert resolved.primary.locator == "#buy"
        assert resolved.fallback_locators == [".buy-button", "//div/button"]
        assert resolved.synthesized is False

    def test_tie_broken_by_kind_priority(self):
        """Test equal reliability falls back to locator kind order."""
        resolver = SelectorResolver()
        resolved = resolver.resolve([
            candidate(".buy", LocatorKind.STABLE_CLASS, 0.8),
            candidate("[data-testid='buy']", LocatorKind.TEST_ATTRIBUTE, 0.8),
            candidate("#buy", LocatorKind.ID, 0.8),
        ])

        assert resolved.primary.kind == LocatorKind.ID
        assert [c.kind for c in resolved.fallbacks] == [
            LocatorKind.TEST_ATTRIBUTE,
            LocatorKind.STABLE_CLASS,
        ]

    def test_custom_priority(self):
        """Test a custom priority changes the tie-break."""
        priority = [LocatorKind.STABLE_CLASS] + [k for k in DEFAULT_KIND_PRIORITY if k != LocatorKind.STABLE_CLASS]
        resolver = SelectorResolver(kind_priority=priority)
        resolved = resolver.resolve([
            candidate("#buy", LocatorKind.ID, 0.8),
            candidate(".buy", LocatorKind.STABLE_CLASS, 0.8),
        ])

        assert resolved.primary.locator == ".buy"

    def test_unscored_candidates_count_as_zero(self):
        """Test missing reliability ranks below any scored candidate."""
        resolver = SelectorResolver()
        resolved = resolver.resolve([
            candidate("#buy", LocatorKind.ID, None),
            candidate("//button", reliability=0.1),
        ])

        assert resolved.primary.locator == "//button"
        assert resolved.fallbacks[0].effective_reliability == 0.0

    def test_equal_candidates_keep_input_order(self):
        """Test sorting is stable for identical keys."""
        resolver = SelectorResolver()
        resolved = resolver.resolve([
            candidate("//a", reliability=0.5),
            candidate("//b", reliability=0.5),
        ])

        assert resolved.primary.locator == "//a"

    def test_fallbacks_capped(self):
        """Test the fallback chain honours max_fallbacks."""
        resolver = SelectorResolver(max_fallbacks=2)
        resolved = resolver.resolve([candidate(f"//div[{i}]", reliability=i / 10) for i in range(6)])

        assert len(resolved.fallbacks) == 2
        assert resolved.primary.locator == "//div[5]"

    def test_duplicate_locators_dropped(self):
        """Test repeated locators appear once, at their best rank."""
        resolver = SelectorResolver()
        resolved = resolver.resolve([
            candidate("#buy", LocatorKind.ID, 0.3),
            candidate("#buy", LocatorKind.ID, 0.9),
        ])

        assert resolved.primary.reliability == 0.9
        assert resolved.fallbacks == ()

    def test_blank_locators_ignored(self):
        """Test whitespace-only locators are unusable."""
        resolver = SelectorResolver()
        resolved = resolver.resolve([candidate("   ", reliability=1.0), candidate("#ok", LocatorKind.ID, 0.2)])

        assert resolved.primary.locator == "#ok"

    def test_no_candidates_synthesizes_placeholder(self):
        """Test an empty list yields a zero-reliability placeholder."""
        resolver = SelectorResolver()
        resolved = resolver.resolve([], element_tag="BUTTON")

        assert resolved.synthesized is True
        assert resolved.primary.locator == "//button"
        assert resolved.primary.kind == LocatorKind.STRUCTURAL_PATH
        assert resolved.reliability == 0.0

    def test_placeholder_for_odd_tag(self):
        """Test unusable tags fall back to a wildcard."""
        assert SelectorResolver.placeholder_for("<svg>").locator == "//*"
        assert SelectorResolver.placeholder_for(None).locator == "//*"

    def test_resolve_none(self):
        """Test None behaves like an empty list."""
        assert SelectorResolver().resolve(None).synthesized is True


# =============================================================================
# Action Mapping Tests
# =============================================================================


class TestActionFor:
    """Tests for SelectorResolver.action_for."""

    @pytest.mark.parametrize(
        "kind,tag,verb",
        [
            (InteractionKind.CLICK, "button", ActionVerb.CLICK),
            (InteractionKind.INPUT, "input", ActionVerb.FILL),
            (InteractionKind.INPUT, "SELECT", ActionVerb.SELECT),
            (InteractionKind.NAVIGATION, "a", ActionVerb.NAVIGATE),
            (InteractionKind.FOCUS, "input", ActionVerb.CLICK),
            ("click", None, ActionVerb.CLICK),
        ],
    )
    def test_verb_mapping(self, kind, tag, verb):
        """Test interaction kinds map onto abstract verbs."""
        action = SelectorResolver().action_for(kind, candidate("#x", LocatorKind.ID, 0.7), tag)

        assert action.verb == verb
        assert action.target == "#x"
        assert action.reliability == 0.7

    def test_unknown_kind_raises(self):
        """Test kinds outside the closed set are rejected."""
        with pytest.raises(ValueError):
            SelectorResolver().action_for("hover", candidate("#x"))
