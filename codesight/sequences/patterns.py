"""Trigger tables and product-configuration detection for segmentation."""

import re
from dataclasses import dataclass, replace
from typing import Any, Optional

from codesight.config import ConfigurationError
from codesight.interactions.kinds import InteractionKind
from codesight.interactions.models import AnyInteraction


@dataclass(frozen=True)
class PatternFamily:
    """A named group of start-trigger patterns.

    A family matches when any URL pattern matches the page URL or any text
    pattern matches the element's text or accessible label.
    """

    name: str
    url_patterns: tuple[str, ...] = ()
    text_patterns: tuple[str, ...] = ()


DEFAULT_START_FAMILIES: tuple[PatternFamily, ...] = (
    PatternFamily(
        name="sale",
        url_patterns=(r"/sale(/|$|\?)|/clearance|/deals?(/|$|\?)|/outlet",),
        text_patterns=(r"^\s*(sale|clearance|deals?|outlet)\s*$", r"\bshop (the )?sale\b"),
    ),
    PatternFamily(
        name="search",
        url_patterns=(r"/search|/s\?|[?&](q|query|k|searchTerm|search)=",),
        text_patterns=(r"^\s*search\b",),
    ),
    PatternFamily(
        name="category",
        url_patterns=(
            r"/category/|/categories/|/c/|/collections?/",
            r"/(mens?|womens?|kids|boys|girls|baby)(/|$|\?)",
        ),
        text_patterns=(r"\b(shop all|view all|see all)\b", r"^\s*(men|women|kids|new arrivals)\s*$"),
    ),
    PatternFamily(
        name="shop",
        url_patterns=(r"/shop(/|$|\?)|/browse(/|$|\?)",),
        text_patterns=(r"\bshop now\b",),
    ),
)

DEFAULT_PRODUCT_URL_PATTERNS = (
    r"/products?/|/p/|/dp/|/ip/|/items?/|/pd/",
    r"product-detail|[?&]pid=",
)

DEFAULT_END_TEXT_PATTERNS = (
    r"\badd to (cart|bag|basket)\b",
    r"\bcheckout\b|\bcheck out\b",
    r"\bbuy (it )?now\b",
    r"\bplace order\b",
)

DEFAULT_CART_TEXT_PATTERNS = (r"\bcart\b|\bbag\b|\bbasket\b|\bcheckout\b",)


def _compile_all(patterns: tuple[str, ...], where: str) -> tuple[re.Pattern, ...]:
    compiled = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern, re.IGNORECASE))
        except re.error as e:
            raise ConfigurationError(f"Invalid pattern in {where}: {pattern!r} ({e})") from e
    return tuple(compiled)


def _label(interaction: AnyInteraction) -> str:
    """Visible text plus accessible label, the text a user acted on."""
    attributes = interaction.element.attributes
    parts = [interaction.text, attributes.get("aria-label", ""), attributes.get("value", "")]
    return " ".join(p for p in parts if p)


@dataclass(frozen=True)
class TriggerPatterns:
    """Start, continuation and end trigger tables.

    Example:
        triggers = TriggerPatterns()
        family = triggers.start_family(interaction)
        if family and triggers.is_end(next_interaction):
            ...
    """

    start_families: tuple[PatternFamily, ...] = DEFAULT_START_FAMILIES
    product_url_patterns: tuple[str, ...] = DEFAULT_PRODUCT_URL_PATTERNS
    end_text_patterns: tuple[str, ...] = DEFAULT_END_TEXT_PATTERNS
    cart_text_patterns: tuple[str, ...] = DEFAULT_CART_TEXT_PATTERNS

    def __post_init__(self):
        compiled_families = tuple(
            (
                family.name,
                _compile_all(family.url_patterns, f"start_families[{family.name}].url_patterns"),
                _compile_all(family.text_patterns, f"start_families[{family.name}].text_patterns"),
            )
            for family in self.start_families
        )
        object.__setattr__(self, "_families", compiled_families)
        object.__setattr__(self, "_product", _compile_all(self.product_url_patterns, "product_url_patterns"))
        object.__setattr__(self, "_end", _compile_all(self.end_text_patterns, "end_text_patterns"))
        object.__setattr__(self, "_cart", _compile_all(self.cart_text_patterns, "cart_text_patterns"))

    @classmethod
    def from_mapping(cls, data: Optional[dict]) -> "TriggerPatterns":
        """Build tables from a mapping, keeping defaults for absent keys.

        ``start_families`` maps family name to ``{url: [...], text: [...]}``.
        """
        base = cls()
        if not data:
            return base

        overrides: dict[str, Any] = {}
        if "start_families" in data:
            families = []
            for name, family in (data["start_families"] or {}).items():
                family = family or {}
                families.append(PatternFamily(
                    name=str(name),
                    url_patterns=tuple(family.get("url", ()) or ()),
                    text_patterns=tuple(family.get("text", ()) or ()),
                ))
            overrides["start_families"] = tuple(families)
        for key in ("product_url_patterns", "end_text_patterns", "cart_text_patterns"):
            if key in data:
                overrides[key] = tuple(data[key] or ())

        return replace(base, **overrides)

    @property
    def family_names(self) -> list[str]:
        return [family.name for family in self.start_families]

    def start_family(self, interaction: AnyInteraction) -> Optional[str]:
        """Name of the first start family the interaction matches."""
        label = _label(interaction)
        for name, url_patterns, text_patterns in self._families:
            if interaction.page_url and any(p.search(interaction.page_url) for p in url_patterns):
                return name
            if label and any(p.search(label) for p in text_patterns):
                return name
        return None

    def is_product_page(self, interaction: AnyInteraction) -> bool:
        url = interaction.page_url
        return bool(url) and any(p.search(url) for p in self._product)

    def is_end(self, interaction: AnyInteraction) -> bool:
        if interaction.interaction_kind == InteractionKind.NAVIGATION:
            return False
        label = _label(interaction)
        return bool(label) and any(p.search(label) for p in self._end)

    def has_cart_signal(self, interaction: AnyInteraction) -> bool:
        label = _label(interaction)
        return bool(label) and any(p.search(label) for p in self._cart)


@dataclass(frozen=True)
class NumericSizeRange:
    min: float
    max: float
    category: str


DEFAULT_ALPHA_SIZE_PATTERN = r"^(XXX?L|XX?L|XL|L|M|S|XS|XXS)$"

DEFAULT_NUMERIC_SIZE_RANGES = (
    NumericSizeRange(2, 18, "children"),
    NumericSizeRange(28, 44, "waist"),
    NumericSizeRange(6, 15, "shoes"),
    NumericSizeRange(32, 46, "eu-clothing"),
)

DEFAULT_SPECIALTY_SIZE_PATTERNS = (
    r"^\d+T$",
    r"^\d+(?:\.\d+)?[WDHRL]$",
    r"^ONE SIZE$",
    r"^OS$",
    r"^\d+/\d+$",
)

DEFAULT_COLORS = (
    "red", "blue", "black", "white", "green", "gray", "grey", "brown",
    "navy", "pink", "purple", "yellow", "orange", "beige", "tan",
)

DEFAULT_HINTS = {
    "size": r"\bsize|\bfit\b|length|width",
    "color": r"colou?r|swatch|shade",
    "quantity": r"quantity|\bqty\b",
    "style": r"\bstyle|variant|\bmodel\b|finish",
}


@dataclass(frozen=True)
class ConfigurationDetector:
    """Detects product-option choices (size, color, quantity, style).

    Attribute hints (name, id, aria-label, class, ancestors) say which
    option a control sets; value vocabularies recognise bare choices such
    as a "M" size button or a "Navy" swatch.
    """

    alpha_size_pattern: str = DEFAULT_ALPHA_SIZE_PATTERN
    numeric_size_ranges: tuple[NumericSizeRange, ...] = DEFAULT_NUMERIC_SIZE_RANGES
    specialty_size_patterns: tuple[str, ...] = DEFAULT_SPECIALTY_SIZE_PATTERNS
    colors: tuple[str, ...] = DEFAULT_COLORS
    hints: tuple[tuple[str, str], ...] = tuple(DEFAULT_HINTS.items())

    def __post_init__(self):
        object.__setattr__(self, "_alpha", _compile_all((self.alpha_size_pattern,), "alpha_size_pattern")[0])
        object.__setattr__(self, "_specialty", _compile_all(self.specialty_size_patterns, "specialty_size_patterns"))
        object.__setattr__(self, "_hints", {
            name: _compile_all((pattern,), f"hints[{name}]")[0] for name, pattern in self.hints
        })

    @classmethod
    def from_mapping(cls, data: Optional[dict]) -> "ConfigurationDetector":
        base = cls()
        if not data:
            return base

        overrides: dict[str, Any] = {}
        if "alpha_size_pattern" in data:
            overrides["alpha_size_pattern"] = str(data["alpha_size_pattern"])
        if "numeric_size_ranges" in data:
            overrides["numeric_size_ranges"] = tuple(
                NumericSizeRange(float(r["min"]), float(r["max"]), str(r.get("category", "")))
                for r in data["numeric_size_ranges"]
            )
        if "specialty_size_patterns" in data:
            overrides["specialty_size_patterns"] = tuple(data["specialty_size_patterns"])
        if "colors" in data:
            overrides["colors"] = tuple(str(c).lower() for c in data["colors"])
        if "hints" in data:
            overrides["hints"] = tuple({**DEFAULT_HINTS, **data["hints"]}.items())

        return replace(base, **overrides)

    def _hint_for(self, interaction: AnyInteraction) -> Optional[str]:
        attributes = interaction.element.attributes
        context = [
            attributes.get(key, "")
            for key in ("name", "id", "aria-label", "class", "data-testid", "data-test", "title")
        ]
        for ancestor in interaction.element.ancestors:
            context.append(ancestor.attributes.get("class", ""))
            context.append(ancestor.attributes.get("aria-label", ""))
        haystack = " ".join(c for c in context if c)
        if not haystack:
            return None
        for name, pattern in self._hints.items():
            if pattern.search(haystack):
                return name
        return None

    def _value_for(self, interaction: AnyInteraction) -> str:
        value = getattr(interaction, "value", None)
        if interaction.interaction_kind == InteractionKind.INPUT and value:
            return value.strip()
        attributes = interaction.element.attributes
        return (interaction.text or attributes.get("data-value") or attributes.get("aria-label") or "").strip()

    def is_size(self, value: str, hinted: bool = False) -> bool:
        text = value.strip()
        if not text:
            return False
        if self._alpha.match(text.upper()):
            return True
        if any(p.match(text.upper()) for p in self._specialty):
            return True
        if hinted and re.fullmatch(r"\d+(\.\d+)?", text):
            number = float(text)
            return any(r.min <= number <= r.max for r in self.numeric_size_ranges)
        return False

    def detect(self, interaction: AnyInteraction) -> Optional[tuple[str, str]]:
        """Return (field, value) when the interaction sets a product option."""
        if interaction.interaction_kind == InteractionKind.NAVIGATION:
            return None

        value = self._value_for(interaction)
        if not value or len(value) > 40:
            return None

        hint = self._hint_for(interaction)

        if hint == "quantity":
            if re.fullmatch(r"\d{1,2}", value) and int(value) > 0:
                return ("quantity", value)
            return None
        if hint == "color":
            return ("color", value)
        if hint == "size":
            if self.is_size(value, hinted=True) or (len(value) <= 12 and not value.isdigit()):
                return ("size", value.upper())
            return None
        if hint == "style":
            return ("style", value)

        # Typed values (e.g. a search box) only count when the control is hinted
        if interaction.interaction_kind == InteractionKind.INPUT:
            return None

        if self.is_size(value):
            return ("size", value.upper())
        words = value.lower().split()
        if len(words) <= 2 and words[-1] in self.colors:
            return ("color", value)
        return None
