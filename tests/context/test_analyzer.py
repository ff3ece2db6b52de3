"""Tests for the context analyzer."""

import pytest

from codesight.context.analyzer import ContextAnalyzer, IntentTracker, funnel_stage_for
from codesight.context.models import FunnelStage, Intent, Level, PageType
from codesight.context.patterns import ContextPatterns
from codesight.interactions.models import ClickInteraction, ElementDescriptor, InputInteraction

SITE = "https://shop.example.com"


def click(url, text=""):
    return ClickInteraction(timestamp=0, page_url=url, element=ElementDescriptor(text=text))


@pytest.fixture
def analyzer():
    return ContextAnalyzer()


# =============================================================================
# Page Classification Tests
# =============================================================================


class TestClassifyPage:
    """Tests for ContextAnalyzer.classify_page."""

    @pytest.mark.parametrize(
        "url,expected",
        [
            (f"{SITE}/p/cotton-t-shirt", PageType.PRODUCT),
            (f"{SITE}/dp/B0001", PageType.PRODUCT),
            (f"{SITE}/cart", PageType.CART),
            (f"{SITE}/checkout/shipping", PageType.CHECKOUT),
            (f"{SITE}/search?q=shoes", PageType.SEARCH),
            (f"{SITE}/c/womens", PageType.CATEGORY),
            (f"{SITE}/", PageType.HOME),
            (f"{SITE}/about-us", PageType.OTHER),
        ],
    )
    def test_url_classification(self, analyzer, url, expected):
        """Test each URL shape maps to its page type."""
        assert analyzer.classify_page([url]).page_type == expected

    def test_nothing_matched(self, analyzer):
        """Test no observations yield OTHER at base confidence."""
        page = analyzer.classify_page([])

        assert page.page_type == PageType.OTHER
        assert page.confidence == 50.0
        assert page.match_counts == {}

    def test_confidence_increments(self, analyzer):
        """Test confidence rises with URLs and a match."""
        assert analyzer.classify_page([f"{SITE}/about-us"]).confidence == 70.0
        assert analyzer.classify_page([f"{SITE}/p/a"]).confidence == 85.0

        many = [f"{SITE}/p/{i}" for i in range(6)]
        page = analyzer.classify_page(many)
        assert page.confidence == 100.0
        assert page.match_counts == {"product": 6}

    def test_text_counts(self, analyzer):
        """Test element texts add to page type counts."""
        page = analyzer.classify_page([f"{SITE}/about-us"], ["Shopping cart", "Subtotal: $40"])

        assert page.page_type == PageType.CART
        assert page.match_counts == {"cart": 2}

    def test_tie_uses_table_order(self, analyzer):
        """Test equal counts resolve to the earlier page type."""
        page = analyzer.classify_page([f"{SITE}/cart"], ["Filter by"])

        assert page.match_counts == {"cart": 1, "category": 1}
        assert page.page_type == PageType.CART

    def test_plain_string_texts(self, analyzer):
        """Test a single text string is matched whole, not per character."""
        as_list = analyzer.classify_page([f"{SITE}/about"], ["Add to cart"])
        as_string = analyzer.classify_page([f"{SITE}/about"], "Add to cart")

        assert as_string.page_type == PageType.PRODUCT
        assert as_string.match_counts == as_list.match_counts == {"product": 1}

    def test_interaction_counted_once_per_type(self, analyzer):
        """Test a URL and text of one interaction matching the same type count once."""
        page = analyzer.classify_page(
            [f"{SITE}/cart", f"{SITE}/c/womens", f"{SITE}/c/mens"],
            ["Your cart", "", ""],
        )

        assert page.match_counts == {"cart": 1, "category": 2}
        assert page.page_type == PageType.CATEGORY

    def test_capabilities(self, analyzer):
        """Test capabilities come from texts and locators."""
        page = analyzer.classify_page([], ["Search", "Sort by"], ["#mini-cart", "button.size-swatch"])

        assert page.capabilities.enabled() == [
            "has_search",
            "has_filters",
            "has_cart",
            "has_variant_selectors",
        ]

    def test_classify_interaction_page(self, analyzer, interaction_factory):
        """Test single-interaction classification uses nearby text."""
        interaction = interaction_factory(url=f"{SITE}/p/cotton-t-shirt", text="Add to bag")
        page = analyzer.classify_interaction_page(interaction)

        assert page.page_type == PageType.PRODUCT
        assert page.match_counts == {"product": 1}
        assert "has_cart" in page.capabilities.enabled()
        assert "has_variant_selectors" in page.capabilities.enabled()


# =============================================================================
# Intent Classification Tests
# =============================================================================


class TestClassifyIntent:
    """Tests for ContextAnalyzer.classify_intent."""

    def test_no_signal_is_browse(self, analyzer):
        """Test an empty journey is browse with zero confidence."""
        intent = analyzer.classify_intent([])

        assert intent.primary == Intent.BROWSE
        assert intent.confidence == 0.0
        assert intent.funnel_stage == FunnelStage.AWARENESS
        assert intent.indicators == ()
        assert "no strong signals" in intent.reasoning

    def test_search_from_input(self, analyzer):
        """Test typing counts as search behavior."""
        intent = analyzer.classify_intent([InputInteraction(timestamp=0, page_url=f"{SITE}/", value="boots")])

        assert intent.primary == Intent.SEARCH
        assert intent.confidence == 20.0
        assert intent.indicators == ("search_behavior",)

    def test_compare_needs_distinct_products(self, analyzer):
        """Test compare scores only past the product threshold."""
        two = [click(f"{SITE}/p/a"), click(f"{SITE}/p/b"), click(f"{SITE}/p/a")]
        three = two + [click(f"{SITE}/p/c")]

        assert analyzer.classify_intent(two).primary == Intent.BROWSE
        intent = analyzer.classify_intent(three)
        assert intent.primary == Intent.COMPARE
        assert intent.confidence == 30.0
        assert intent.funnel_stage == FunnelStage.CONSIDERATION

    def test_compare_threshold_configurable(self):
        """Test compare_min_products is honoured."""
        analyzer = ContextAnalyzer(compare_min_products=4)
        journey = [click(f"{SITE}/p/{c}") for c in "abc"]

        assert analyzer.classify_intent(journey).primary == Intent.BROWSE

    def test_purchase(self, analyzer):
        """Test cart text signals purchase intent."""
        intent = analyzer.classify_intent([click(f"{SITE}/p/a", "Add to cart")])

        assert intent.primary == Intent.PURCHASE
        assert intent.funnel_stage == FunnelStage.DECISION
        assert intent.scores == {"purchase": 25.0}

    def test_research(self, analyzer):
        """Test distinct research terms add up."""
        intent = analyzer.classify_intent([click(f"{SITE}/about-us", "Read reviews and ratings")])

        assert intent.primary == Intent.RESEARCH
        assert intent.confidence == 30.0

    def test_tie_uses_declaration_order(self, analyzer):
        """Test equal scores resolve to the earlier intent."""
        intent = analyzer.classify_intent([click(f"{SITE}/c/womens", "Review")])

        assert intent.scores == {"browse": 15.0, "research": 15.0}
        assert intent.primary == Intent.BROWSE

    def test_confidence_ceiling(self, analyzer):
        """Test confidence never exceeds 100."""
        journey = [click(f"{SITE}/about-us", "Add to cart") for _ in range(6)]

        assert analyzer.classify_intent(journey).confidence == 100.0

    def test_levels(self, analyzer):
        """Test urgency and price sensitivity levels."""
        intent = analyzer.classify_intent([
            click(f"{SITE}/about-us", "Ships today, order now"),
            click(f"{SITE}/about-us", "Sale price with discount"),
        ])

        assert intent.urgency == Level.HIGH
        assert intent.price_sensitivity == Level.HIGH

    def test_explicit_lists(self, analyzer):
        """Test urls and texts may be passed separately."""
        intent = analyzer.classify_intent([], urls=[f"{SITE}/search?q=x"], element_texts=[""])

        assert intent.primary == Intent.SEARCH

    def test_plain_string_texts(self, analyzer):
        """Test a single text string counts once as journey-wide text."""
        intent = analyzer.classify_intent([], urls=[f"{SITE}/about-us"], element_texts="Add to cart")

        assert intent.primary == Intent.PURCHASE
        assert intent.scores == {"purchase": 25.0}

    def test_research_is_not_search(self, analyzer):
        """Test research wording and URLs add no search points."""
        intent = analyzer.classify_intent([click(f"{SITE}/research/specs", "Product research")])

        assert "search" not in intent.scores

    def test_to_dict(self, analyzer):
        """Test dictionary rendering."""
        data = analyzer.classify_intent([click(f"{SITE}/p/a", "Add to cart")]).to_dict()

        assert data["primary"] == "purchase"
        assert data["funnel_stage"] == "decision"
        assert data["indicators"] == ["purchase_actions"]


class TestIntentTracker:
    """Tests for incremental intent tracking."""

    def test_prefix_matches_batch(self, analyzer, browse_to_cart_session):
        """Test incremental results equal classifying each prefix."""
        tracker = analyzer.intent_tracker()
        interactions = browse_to_cart_session.interactions

        for index, interaction in enumerate(interactions):
            tracker.observe_interaction(interaction)
            assert tracker.current() == analyzer.classify_intent(interactions[: index + 1])

    def test_standalone_tracker(self):
        """Test trackers can be built from compiled tables directly."""
        tracker = IntentTracker(ContextPatterns().compile())
        tracker.observe("input", f"{SITE}/", "")

        assert tracker.current().primary == Intent.SEARCH


class TestFunnelStage:
    """Tests for funnel_stage_for."""

    @pytest.mark.parametrize(
        "intent,stage",
        [
            (Intent.SEARCH, FunnelStage.AWARENESS),
            (Intent.BROWSE, FunnelStage.AWARENESS),
            (Intent.RESEARCH, FunnelStage.CONSIDERATION),
            (Intent.COMPARE, FunnelStage.CONSIDERATION),
            ("purchase", FunnelStage.DECISION),
        ],
    )
    def test_mapping(self, intent, stage):
        """Test every intent maps to one stage."""
        assert funnel_stage_for(intent) == stage
