"""Context analyzer - infer page type, shopping intent and funnel stage.

Classification is table-driven (see patterns.py). Ambiguity never raises:
no page match yields PageType.OTHER and no intent signal yields BROWSE
with zero confidence.
"""

from itertools import zip_longest
from typing import Iterable, Optional, Sequence

import structlog

from codesight.interactions.kinds import InteractionKind
from codesight.interactions.models import AnyInteraction

from .models import FunnelStage, Intent, Level, PageCapabilities, PageContext, PageType, UserIntent
from .patterns import CompiledContextPatterns, ContextPatterns

logger = structlog.get_logger()

INTENT_CONFIDENCE_CEILING = 100.0

SEARCH_WEIGHT = 20
BROWSE_WEIGHT = 15
COMPARE_WEIGHT = 10
PURCHASE_WEIGHT = 25
RESEARCH_WEIGHT = 15

_FUNNEL_STAGES = {
    Intent.SEARCH: FunnelStage.AWARENESS,
    Intent.BROWSE: FunnelStage.AWARENESS,
    Intent.RESEARCH: FunnelStage.CONSIDERATION,
    Intent.COMPARE: FunnelStage.CONSIDERATION,
    Intent.PURCHASE: FunnelStage.DECISION,
}

_REASONING = {
    Intent.SEARCH: "User demonstrated search behavior through {indicators}. Currently in {stage} stage.",
    Intent.BROWSE: "User showed browsing patterns with {indicators}. Exploring options in {stage} stage.",
    Intent.COMPARE: "User compared multiple options indicated by {indicators}. In {stage} stage of decision making.",
    Intent.PURCHASE: "User showed purchase intent through {indicators}. Advanced to {stage} stage.",
    Intent.RESEARCH: "User conducted research activities: {indicators}. Deep in {stage} stage.",
}


def funnel_stage_for(intent: Intent | str) -> FunnelStage:
    """Funnel stage is a pure function of the primary intent."""
    return _FUNNEL_STAGES[Intent(intent)]


class IntentTracker:
    """Accumulates intent signals over a growing journey prefix.

    Feeding interactions one at a time and calling current() after each
    gives the intent as it stood at that step, in linear total time.
    """

    def __init__(self, patterns: CompiledContextPatterns, compare_min_products: int = 3):
        self._patterns = patterns
        self._compare_min_products = compare_min_products
        self._search_hits = 0
        self._category_hits = 0
        self._purchase_hits = 0
        self._product_urls: set[str] = set()
        self._research_terms: set[str] = set()
        self._urgency_terms: set[str] = set()
        self._price_terms: set[str] = set()

    def observe(self, kind: Optional[InteractionKind | str], url: str = "", text: str = "") -> None:
        """Record one observation (interaction kind, page URL, element text)."""
        url = url or ""
        lowered = (text or "").lower()

        is_input = kind is not None and InteractionKind(kind) == InteractionKind.INPUT
        if is_input or self._patterns.search_text.search(url) or self._patterns.search_text.search(lowered):
            self._search_hits += 1

        if url and self._patterns.url_matches(PageType.CATEGORY, url):
            self._category_hits += 1

        if url and self._patterns.url_matches(PageType.PRODUCT, url):
            self._product_urls.add(url)

        if lowered and self._patterns.purchase_text.search(lowered):
            self._purchase_hits += 1

        if lowered:
            self._research_terms.update(t for t in self._patterns.research_terms if t in lowered)
            self._urgency_terms.update(t for t in self._patterns.urgency_terms if t in lowered)
            self._price_terms.update(t for t in self._patterns.price_terms if t in lowered)

    def observe_interaction(self, interaction: AnyInteraction) -> None:
        self.observe(interaction.interaction_kind, interaction.page_url, interaction.text)

    def scores(self) -> dict[Intent, float]:
        scores: dict[Intent, float] = {}
        if self._search_hits:
            scores[Intent.SEARCH] = float(self._search_hits * SEARCH_WEIGHT)
        if self._category_hits:
            scores[Intent.BROWSE] = float(self._category_hits * BROWSE_WEIGHT)
        if len(self._product_urls) >= self._compare_min_products:
            scores[Intent.COMPARE] = float(len(self._product_urls) * COMPARE_WEIGHT)
        if self._purchase_hits:
            scores[Intent.PURCHASE] = float(self._purchase_hits * PURCHASE_WEIGHT)
        if self._research_terms:
            scores[Intent.RESEARCH] = float(len(self._research_terms) * RESEARCH_WEIGHT)
        return scores

    def current(self) -> UserIntent:
        """Build the UserIntent for everything observed so far."""
        scores = self.scores()

        indicators = []
        if Intent.SEARCH in scores:
            indicators.append("search_behavior")
        if Intent.BROWSE in scores:
            indicators.append("category_browsing")
        if Intent.COMPARE in scores:
            indicators.append("multiple_products_viewed")
        if Intent.PURCHASE in scores:
            indicators.append("purchase_actions")
        if Intent.RESEARCH in scores:
            indicators.append("research_behavior")

        if scores:
            # Enum declaration order breaks ties
            primary = max(Intent, key=lambda intent: (scores.get(intent, 0.0), -list(Intent).index(intent)))
            confidence = min(100.0, scores[primary] / INTENT_CONFIDENCE_CEILING * 100.0)
        else:
            primary = Intent.BROWSE
            confidence = 0.0

        stage = funnel_stage_for(primary)
        reasoning = _REASONING[primary].format(
            indicators=", ".join(indicators) if indicators else "no strong signals",
            stage=stage.value,
        )

        return UserIntent(
            primary=primary,
            confidence=round(confidence, 2),
            funnel_stage=stage,
            urgency=self._level(len(self._urgency_terms), medium=1, high=2),
            price_sensitivity=self._level(len(self._price_terms), medium=1, high=3),
            indicators=tuple(indicators),
            scores={intent.value: score for intent, score in scores.items()},
            reasoning=reasoning,
        )

    @staticmethod
    def _level(count: int, medium: int, high: int) -> Level:
        if count >= high:
            return Level.HIGH
        if count >= medium:
            return Level.MEDIUM
        return Level.LOW


class ContextAnalyzer:
    """Classifies page type and user intent from interaction traces.

    Example:
        analyzer = ContextAnalyzer()
        page = analyzer.classify_interaction_page(interaction)
        intent = analyzer.classify_intent(session.interactions)
    """

    def __init__(
        self,
        patterns: Optional[ContextPatterns] = None,
        compare_min_products: int = 3,
    ):
        """Initialize analyzer.

        Args:
            patterns: Pattern tables (defaults when None)
            compare_min_products: Distinct product pages before compare
                intent scores

        Raises:
            ConfigurationError: If a pattern table fails to compile
        """
        self.patterns = patterns or ContextPatterns()
        self.compiled = self.patterns.compile()
        self.compare_min_products = compare_min_products
        self.log = logger.bind(component="context_analyzer")

    def classify_page(
        self,
        urls: Iterable[str],
        element_texts: Iterable[str] | str = (),
        locators: Iterable[str] = (),
    ) -> PageContext:
        """Classify the dominant page type for a set of observations.

        URLs and element texts are paired by position, one pair per
        interaction, and each interaction counts at most once per page type.
        A plain string of element text is a single page-wide observation.
        The highest count wins with table order breaking ties.
        """
        urls = list(urls)
        if isinstance(element_texts, str):
            texts = [element_texts] if element_texts else []
            pairs = [(url, "") for url in urls] + [("", text) for text in texts]
        else:
            element_texts = list(element_texts)
            texts = [t for t in element_texts if t]
            pairs = list(zip_longest(urls, element_texts))

        observations = [(url or "", text or "") for url, text in pairs if url or text]
        return self._classify(observations, sum(1 for u in urls if u), texts, locators)

    def _classify(
        self,
        observations: list[tuple[str, str]],
        url_count: int,
        texts: list[str],
        locators: Iterable[str],
    ) -> PageContext:
        counts: dict[PageType, int] = {}
        for url, text in observations:
            matched = set()
            if url:
                matched.update(
                    page_type for page_type, patterns in self.compiled.page_url
                    if any(p.search(url) for p in patterns)
                )
            if text:
                matched.update(
                    page_type for page_type, patterns in self.compiled.page_text
                    if any(p.search(text) for p in patterns)
                )
            for page_type in matched:
                counts[page_type] = counts.get(page_type, 0) + 1

        page_type = PageType.OTHER
        best = 0
        for candidate, _ in self.compiled.page_url + self.compiled.page_text:
            if counts.get(candidate, 0) > best:
                page_type, best = candidate, counts[candidate]

        confidence = 50.0
        if url_count:
            confidence += 20
        if url_count > 5:
            confidence += 15
        if page_type != PageType.OTHER:
            confidence += 15

        haystack = " ".join(texts + [l for l in locators if l]).lower()
        capabilities = PageCapabilities(**{
            name: bool(pattern.search(haystack)) for name, pattern in self.compiled.capabilities
        })

        return PageContext(
            page_type=page_type,
            confidence=min(confidence, 100.0),
            capabilities=capabilities,
            match_counts={pt.value: n for pt, n in counts.items()},
        )

    def classify_interaction_page(self, interaction: AnyInteraction) -> PageContext:
        """Classify the page a single interaction happened on."""
        texts = [interaction.text, interaction.page_title]
        texts.extend(n.text for n in interaction.nearby_elements)
        texts = [t for t in texts if t]
        locators = [c.locator for c in interaction.selectors]
        url = interaction.page_url or ""
        observations = [(url, "\n".join(texts))] if url or texts else []
        return self._classify(observations, 1 if url else 0, texts, locators)

    def intent_tracker(self) -> IntentTracker:
        """Fresh tracker sharing this analyzer's tables."""
        return IntentTracker(self.compiled, self.compare_min_products)

    def classify_intent(
        self,
        interactions: Sequence[AnyInteraction],
        urls: Optional[Sequence[str]] = None,
        element_texts: Optional[Sequence[str] | str] = None,
    ) -> UserIntent:
        """Classify the primary intent of a journey.

        Args:
            interactions: Interactions in journey order
            urls: Per-step URLs, defaults to each interaction's page URL
            element_texts: Per-step texts, defaults to each element's text.
                A plain string is observed once as journey-wide text.

        Returns:
            UserIntent (BROWSE with confidence 0 when nothing matched)
        """
        if urls is None:
            urls = [i.page_url for i in interactions]
        journey_text = ""
        if isinstance(element_texts, str):
            journey_text, element_texts = element_texts, []
        elif element_texts is None:
            element_texts = [i.text for i in interactions]

        tracker = self.intent_tracker()
        steps = max(len(interactions), len(urls), len(element_texts))
        for index in range(steps):
            kind = interactions[index].interaction_kind if index < len(interactions) else None
            url = urls[index] if index < len(urls) else ""
            text = element_texts[index] if index < len(element_texts) else ""
            tracker.observe(kind, url, text)
        if journey_text:
            tracker.observe(None, "", journey_text)

        intent = tracker.current()
        self.log.debug(
            "Intent classified",
            intent=intent.primary.value,
            confidence=intent.confidence,
            steps=steps,
        )
        return intent
