"""Quality scorer - rate interactions and sequences for training value."""

import re
from typing import Iterable, Mapping, Optional, Sequence

import structlog

from codesight.config import ConfigurationError
from codesight.context.models import PageContext, PageType
from codesight.interactions.models import AnyInteraction
from codesight.selectors.models import ResolvedSelector
from codesight.sequences.models import ShoppingSequence

from .models import DEFAULT_DOMAIN_MULTIPLIERS, QualityMetrics, QualityWeights

logger = structlog.get_logger()

BASE_SITE_VALUE = 50.0

_CART_SIGNAL = re.compile(r"add to (cart|bag|basket)|checkout|buy now|\bcart\b|\bbag\b", re.IGNORECASE)
_PRICE_SIGNAL = re.compile(r"[$€£¥]\s?\d|\bprice\b", re.IGNORECASE)
_VARIANT_SIGNAL = re.compile(r"\bsize\b|\bcolou?r\b|swatch|variant|quantity|\bqty\b", re.IGNORECASE)


def _clamp(value: float) -> float:
    return round(max(0.0, min(100.0, value)), 2)


def selector_score(resolved: Optional[ResolvedSelector]) -> float:
    """Primary reliability scaled by fallback depth; placeholders score 0."""
    if resolved is None or resolved.synthesized:
        return 0.0
    depth_factor = 0.85 + 0.05 * min(len(resolved.fallbacks), 3)
    return _clamp(resolved.reliability * 100 * depth_factor)


def spatial_score(interaction: AnyInteraction) -> float:
    nearby = interaction.nearby_elements
    if not nearby:
        return 0.0
    interactive = sum(1 for n in nearby if n.interactive)
    return _clamp(min(len(nearby), 8) / 8 * 60 + interactive / len(nearby) * 40)


def dom_score(interaction: AnyInteraction) -> float:
    element = interaction.element
    score = min(len(element.ancestors), 5) / 5 * 40
    score += min(len(element.siblings), 5) / 5 * 30
    score += min(len(element.attributes), 4) / 4 * 20
    if element.text:
        score += 10
    return _clamp(score)


class QualityScorer:
    """Scores training value of interactions and shopping sequences.

    Example:
        scorer = QualityScorer(min_quality_threshold=60)
        metrics = scorer.score(interaction, page_context, resolved)
        if scorer.meets_training_bar(metrics):
            ...
    """

    def __init__(
        self,
        weights: Optional[QualityWeights] = None,
        domain_multipliers: Optional[Mapping[str, float]] = None,
        min_quality_threshold: float = 60.0,
    ):
        """Initialize scorer.

        Raises:
            ConfigurationError: If the threshold is outside [0, 100] or a
                multiplier is negative
        """
        if not 0 <= min_quality_threshold <= 100:
            raise ConfigurationError(
                f"min_quality_threshold must be within [0, 100], got {min_quality_threshold}"
            )

        multipliers = dict(DEFAULT_DOMAIN_MULTIPLIERS if domain_multipliers is None else domain_multipliers)
        for domain, multiplier in multipliers.items():
            if multiplier < 0:
                raise ConfigurationError(f"Domain multiplier for {domain} must be >= 0, got {multiplier}")

        self.weights = weights or QualityWeights()
        self.domain_multipliers = {d.lower().lstrip("."): float(m) for d, m in multipliers.items()}
        self.min_quality_threshold = float(min_quality_threshold)
        self.log = logger.bind(component="quality_scorer")

    def domain_multiplier(self, hostname: str) -> float:
        """Longest matching domain suffix wins; unknown hosts get 1.0."""
        host = (hostname or "").lower()
        best, best_len = 1.0, -1
        for domain, multiplier in self.domain_multipliers.items():
            if (host == domain or host.endswith("." + domain)) and len(domain) > best_len:
                best, best_len = multiplier, len(domain)
        return best

    def site_score(self, hostname: str) -> float:
        return _clamp(BASE_SITE_VALUE * self.domain_multiplier(hostname))

    def score(
        self,
        subject: AnyInteraction | ShoppingSequence,
        context: Optional[PageContext] = None,
        resolved: Optional[ResolvedSelector | Sequence[Optional[ResolvedSelector]]] = None,
    ) -> QualityMetrics:
        """Score an interaction or a shopping sequence.

        Args:
            subject: Interaction record or shopping sequence
            context: Page context (of the interaction, or the sequence's
                last step)
            resolved: One ResolvedSelector for an interaction, one per step
                for a sequence
        """
        if isinstance(subject, ShoppingSequence):
            steps = list(resolved or []) if not isinstance(resolved, ResolvedSelector) else [resolved]
            return self._score_sequence(subject, steps)
        if isinstance(resolved, ResolvedSelector) or resolved is None:
            return self._score_interaction(subject, context, resolved)
        raise TypeError("An interaction is scored against a single ResolvedSelector")

    def _business_interaction(self, interaction: AnyInteraction, context: Optional[PageContext]) -> float:
        attributes = interaction.element.attributes
        texts = [interaction.text, attributes.get("aria-label", ""), interaction.page_title]
        texts.extend(n.text for n in interaction.nearby_elements)
        haystack = " ".join(t for t in texts if t)
        hints = " ".join(attributes.get(k, "") for k in ("name", "id", "class"))

        value = 0.0
        if _CART_SIGNAL.search(haystack):
            value += 40
        if _PRICE_SIGNAL.search(haystack):
            value += 25
        if _VARIANT_SIGNAL.search(haystack) or _VARIANT_SIGNAL.search(hints):
            value += 25
        if context is not None and context.page_type == PageType.PRODUCT:
            value += 10
        return _clamp(value)

    @staticmethod
    def _business_sequence(sequence: ShoppingSequence) -> float:
        value = 0.0
        if sequence.is_complete:
            value += 40
        if not sequence.configuration.is_empty:
            value += 25
        if sequence.has_product_page:
            value += 15
        if sequence.has_cart_signal:
            value += 20
        return _clamp(value)

    def _aggregate(self, scores: tuple[float, float, float, float, float]) -> float:
        return _clamp(sum(w * s for w, s in zip(self.weights.as_tuple(), scores)))

    def _metrics(self, scores: tuple[float, float, float, float, float]) -> QualityMetrics:
        selector, spatial, dom, business, site = scores
        return QualityMetrics(
            selector_quality=selector,
            spatial_richness=spatial,
            dom_complexity=dom,
            business_value=business,
            site_value=site,
            aggregate=self._aggregate(scores),
            weights_version=self.weights.version,
        )

    def _score_interaction(
        self,
        interaction: AnyInteraction,
        context: Optional[PageContext],
        resolved: Optional[ResolvedSelector],
    ) -> QualityMetrics:
        return self._metrics((
            selector_score(resolved),
            spatial_score(interaction),
            dom_score(interaction),
            self._business_interaction(interaction, context),
            self.site_score(interaction.hostname),
        ))

    def _score_sequence(
        self,
        sequence: ShoppingSequence,
        resolved: list[Optional[ResolvedSelector]],
    ) -> QualityMetrics:
        steps = sequence.interactions
        # Steps without a resolved selector count as placeholders
        selectors = [selector_score(resolved[i] if i < len(resolved) else None) for i in range(len(steps))]
        return self._metrics((
            _mean(selectors),
            _mean(spatial_score(step) for step in steps),
            _mean(dom_score(step) for step in steps),
            self._business_sequence(sequence),
            self.site_score(steps[0].hostname if steps else ""),
        ))

    def meets_training_bar(self, metrics: Optional[QualityMetrics], threshold: Optional[float] = None) -> bool:
        """True when the aggregate reaches the threshold. Never raises."""
        if metrics is None:
            return False
        bar = self.min_quality_threshold if threshold is None else threshold
        try:
            return metrics.aggregate >= float(bar)
        except (TypeError, ValueError):
            return False


def _mean(values: Iterable[float]) -> float:
    values = list(values)
    return _clamp(sum(values) / len(values)) if values else 0.0
