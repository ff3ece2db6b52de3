"""Pattern tables for page and intent classification.

Tables are plain data: ordered (page type, regex list) pairs plus term
vocabularies. They are compiled once into a CompiledContextPatterns and
handed to the analyzer, so there is no module-level registry to mutate.
"""

import re
from dataclasses import dataclass, field, replace
from dataclasses import fields as dataclass_fields
from typing import Any, Optional

from codesight.config import ConfigurationError

from .models import PageCapabilities, PageType

DEFAULT_PAGE_URL_PATTERNS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("product", (
        r"/products?/|/items?/|/p/|/dp/|/ip/",
        r"product-detail|item-detail|product-page",
    )),
    ("cart", (
        r"/cart|/basket|/bag(/|$|\?)",
        r"shopping-cart|cart-page|basket-page",
    )),
    ("checkout", (
        r"/checkout|/payment|/billing|/shipping",
        r"checkout-page|payment-page|order-review",
    )),
    ("search", (
        r"/search|/results|/find",
        r"[?&](q|query|search|searchTerm|k)=",
    )),
    ("category", (
        r"/category/|/categories/|/browse/|/shop/|/c/|/collections?/",
        r"/(mens?|womens?|kids|sale|new-arrivals)(/|$|\?)",
        r"category-page|browse-page|listing-page",
    )),
    ("home", (
        r"^https?://[^/]+/?(\?.*)?$",
        r"/(index\.html?|home)/?$",
    )),
)

DEFAULT_PAGE_TEXT_PATTERNS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("product", (r"\b(add to (cart|bag)|buy now|in stock|select size)\b",)),
    ("cart", (r"\b(shopping (cart|bag)|your (cart|bag)|subtotal)\b",)),
    ("checkout", (r"\b(place order|payment method|shipping address|billing)\b",)),
    ("search", (r"\b(results for|search results|showing \d+ results)\b",)),
    ("category", (r"\b(filter by|sort by|shop all|refine)\b",)),
)

DEFAULT_CAPABILITY_PATTERNS: tuple[tuple[str, str], ...] = (
    ("has_search", r"search|find"),
    ("has_filters", r"filter|sort|refine"),
    ("has_cart", r"cart|basket|\bbag\b"),
    ("has_navigation", r"\bnav|menu|header"),
    ("has_product_grid", r"product|item|grid|tile"),
    ("has_pagination", r"pagination|next page|previous|load more|show more"),
    ("has_variant_selectors", r"\bsize\b|\bcolou?r\b|swatch|variant|quantity|\bqty\b"),
)

DEFAULT_SEARCH_TEXT_PATTERN = r"\bsearch\b"
DEFAULT_PURCHASE_TEXT_PATTERN = r"cart|buy|checkout"
DEFAULT_RESEARCH_TERMS = ("review", "rating", "spec", "detail", "feature")
DEFAULT_URGENCY_TERMS = ("urgent", "now", "today", "asap", "immediate", "quick")
DEFAULT_PRICE_TERMS = ("price", "cost", "cheap", "expensive", "budget", "sale", "discount")


def _compile(pattern: str, where: str) -> re.Pattern:
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error as e:
        raise ConfigurationError(f"Invalid pattern in {where}: {pattern!r} ({e})") from e


def _page_table(entries: Any, where: str) -> tuple[tuple[str, tuple[str, ...]], ...]:
    """Normalize a mapping or pair list into an ordered page-type table."""
    items = entries.items() if isinstance(entries, dict) else entries
    table = []
    for page_type, patterns in items:
        try:
            PageType(page_type)
        except ValueError:
            raise ConfigurationError(f"Unknown page type in {where}: {page_type!r}") from None
        if isinstance(patterns, str):
            patterns = (patterns,)
        table.append((str(page_type), tuple(patterns)))
    return tuple(table)


@dataclass(frozen=True)
class CompiledContextPatterns:
    """Ready-to-use matchers built from ContextPatterns."""

    page_url: tuple[tuple[PageType, tuple[re.Pattern, ...]], ...]
    page_text: tuple[tuple[PageType, tuple[re.Pattern, ...]], ...]
    capabilities: tuple[tuple[str, re.Pattern], ...]
    search_text: re.Pattern
    purchase_text: re.Pattern
    research_terms: tuple[str, ...]
    urgency_terms: tuple[str, ...]
    price_terms: tuple[str, ...]

    def url_matches(self, page_type: PageType, url: str) -> bool:
        for candidate, patterns in self.page_url:
            if candidate == page_type:
                return any(p.search(url) for p in patterns)
        return False


@dataclass(frozen=True)
class ContextPatterns:
    """Declarative pattern tables for the context analyzer.

    Page tables are ordered; the order is the tie-break when two page
    types match equally often.
    """

    page_url_patterns: tuple[tuple[str, tuple[str, ...]], ...] = DEFAULT_PAGE_URL_PATTERNS
    page_text_patterns: tuple[tuple[str, tuple[str, ...]], ...] = DEFAULT_PAGE_TEXT_PATTERNS
    capability_patterns: tuple[tuple[str, str], ...] = DEFAULT_CAPABILITY_PATTERNS
    search_text_pattern: str = DEFAULT_SEARCH_TEXT_PATTERN
    purchase_text_pattern: str = DEFAULT_PURCHASE_TEXT_PATTERN
    research_terms: tuple[str, ...] = DEFAULT_RESEARCH_TERMS
    urgency_terms: tuple[str, ...] = DEFAULT_URGENCY_TERMS
    price_terms: tuple[str, ...] = DEFAULT_PRICE_TERMS
    _compiled: Optional[CompiledContextPatterns] = field(default=None, init=False, repr=False, compare=False)

    @classmethod
    def from_mapping(cls, data: Optional[dict]) -> "ContextPatterns":
        """Build tables from a mapping, keeping defaults for absent keys."""
        base = cls()
        if not data:
            return base

        overrides: dict[str, Any] = {}
        for key in ("page_url_patterns", "page_text_patterns"):
            if key in data:
                overrides[key] = _page_table(data[key], key)
        if "capability_patterns" in data:
            raw = data["capability_patterns"]
            items = raw.items() if isinstance(raw, dict) else raw
            overrides["capability_patterns"] = tuple((str(k), str(v)) for k, v in items)
        for key in ("search_text_pattern", "purchase_text_pattern"):
            if key in data:
                overrides[key] = str(data[key])
        for key in ("research_terms", "urgency_terms", "price_terms"):
            if key in data:
                overrides[key] = tuple(str(term).lower() for term in data[key])

        return replace(base, **overrides)

    def compile(self) -> CompiledContextPatterns:
        """Compile every table.

        Raises:
            ConfigurationError: On an invalid regex or unknown page type
        """
        if self._compiled is not None:
            return self._compiled

        page_url = tuple(
            (PageType(name), tuple(_compile(p, f"page_url_patterns[{name}]") for p in patterns))
            for name, patterns in _page_table(self.page_url_patterns, "page_url_patterns")
        )
        page_text = tuple(
            (PageType(name), tuple(_compile(p, f"page_text_patterns[{name}]") for p in patterns))
            for name, patterns in _page_table(self.page_text_patterns, "page_text_patterns")
        )
        known = {f.name for f in dataclass_fields(PageCapabilities)}
        for name, _ in self.capability_patterns:
            if name not in known:
                raise ConfigurationError(f"Unknown page capability: {name!r}")

        compiled = CompiledContextPatterns(
            page_url=page_url,
            page_text=page_text,
            capabilities=tuple(
                (name, _compile(p, f"capability_patterns[{name}]")) for name, p in self.capability_patterns
            ),
            search_text=_compile(self.search_text_pattern, "search_text_pattern"),
            purchase_text=_compile(self.purchase_text_pattern, "purchase_text_pattern"),
            research_terms=tuple(self.research_terms),
            urgency_terms=tuple(self.urgency_terms),
            price_terms=tuple(self.price_terms),
        )
        # Frozen dataclass: cache through object.__setattr__
        object.__setattr__(self, "_compiled", compiled)
        return compiled
