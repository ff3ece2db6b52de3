"""Immutable pipeline configuration shared read-only by every worker.

PipelineConfig bundles the pattern tables, weights and limits that the
components are built from. It is assembled once (from Settings, a mapping
or a YAML file), validated, and only then handed to the runner.
"""

from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional

import structlog
import yaml

from codesight.config import ConfigurationError, Settings, get_settings
from codesight.context.analyzer import ContextAnalyzer
from codesight.context.patterns import ContextPatterns
from codesight.quality.models import DEFAULT_DOMAIN_MULTIPLIERS, QualityWeights
from codesight.quality.scorer import QualityScorer
from codesight.selectors.models import DEFAULT_KIND_PRIORITY, LocatorKind
from codesight.selectors.resolver import SelectorResolver, validate_kind_priority
from codesight.sequences.patterns import ConfigurationDetector, TriggerPatterns
from codesight.sequences.segmenter import SequenceSegmenter

logger = structlog.get_logger()

_SCALAR_KEYS = {
    "min_quality_threshold": float,
    "max_lookahead": int,
    "max_fallbacks": int,
    "compare_min_products": int,
    "max_workers": int,
}

_KNOWN_KEYS = set(_SCALAR_KEYS) | {
    "session_time_budget_seconds",
    "context_patterns",
    "triggers",
    "configuration_detector",
    "quality_weights",
    "domain_multipliers",
    "kind_priority",
}


@dataclass(frozen=True)
class PipelineConfig:
    """Everything a pipeline run is configured with."""

    context_patterns: ContextPatterns = field(default_factory=ContextPatterns)
    triggers: TriggerPatterns = field(default_factory=TriggerPatterns)
    detector: ConfigurationDetector = field(default_factory=ConfigurationDetector)
    weights: QualityWeights = field(default_factory=QualityWeights)
    domain_multipliers: Mapping[str, float] = field(
        default_factory=lambda: MappingProxyType(dict(DEFAULT_DOMAIN_MULTIPLIERS))
    )
    kind_priority: tuple[LocatorKind, ...] = DEFAULT_KIND_PRIORITY
    min_quality_threshold: float = 60.0
    max_lookahead: int = 15
    max_fallbacks: int = 3
    compare_min_products: int = 3
    session_time_budget_seconds: Optional[float] = 30.0
    max_workers: int = 1

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "PipelineConfig":
        """Build from environment settings, applying the YAML override if set."""
        settings = settings or get_settings()
        config = cls(
            min_quality_threshold=settings.min_quality_threshold,
            max_lookahead=settings.max_lookahead,
            max_fallbacks=settings.max_fallbacks,
            compare_min_products=settings.compare_min_products,
            session_time_budget_seconds=settings.session_time_budget_seconds,
            max_workers=settings.max_workers,
        )
        if settings.pipeline_config_path:
            config = config.merged(_read_yaml(settings.pipeline_config_path))
        return config

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "PipelineConfig":
        """Build from a plain mapping (e.g. parsed YAML) over the defaults."""
        return cls().merged(data)

    def merged(self, data: Optional[Mapping[str, Any]]) -> "PipelineConfig":
        """Return a copy with the mapping's entries applied.

        Raises:
            ConfigurationError: On unknown keys or malformed values
        """
        if not data:
            return self
        if not isinstance(data, Mapping):
            raise ConfigurationError("Pipeline configuration must be a mapping")

        unknown = set(data) - _KNOWN_KEYS
        if unknown:
            raise ConfigurationError(f"Unknown pipeline configuration keys: {sorted(unknown)}")

        overrides: dict[str, Any] = {}
        try:
            for key, cast in _SCALAR_KEYS.items():
                if key in data:
                    overrides[key] = cast(data[key])
            if "session_time_budget_seconds" in data:
                budget = data["session_time_budget_seconds"]
                overrides["session_time_budget_seconds"] = None if budget is None else float(budget)
            if "domain_multipliers" in data:
                overrides["domain_multipliers"] = MappingProxyType({
                    str(domain): float(multiplier)
                    for domain, multiplier in (data["domain_multipliers"] or {}).items()
                })
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid pipeline configuration value: {e}") from e

        if "kind_priority" in data:
            overrides["kind_priority"] = validate_kind_priority(data["kind_priority"] or ())
        if "context_patterns" in data:
            overrides["context_patterns"] = ContextPatterns.from_mapping(data["context_patterns"])
        if "triggers" in data:
            overrides["triggers"] = TriggerPatterns.from_mapping(data["triggers"])
        if "configuration_detector" in data:
            overrides["detector"] = ConfigurationDetector.from_mapping(data["configuration_detector"])
        if "quality_weights" in data:
            overrides["weights"] = QualityWeights.from_mapping(data["quality_weights"])

        return replace(self, **overrides)

    def validate(self) -> "PipelineConfig":
        """Check every limit and table; fail fast before any session runs.

        Raises:
            ConfigurationError: On the first invalid setting found
        """
        if not 0 <= self.min_quality_threshold <= 100:
            raise ConfigurationError(
                f"min_quality_threshold must be within [0, 100], got {self.min_quality_threshold}"
            )
        if self.max_lookahead < 1:
            raise ConfigurationError(f"max_lookahead must be >= 1, got {self.max_lookahead}")
        if self.max_fallbacks < 0:
            raise ConfigurationError(f"max_fallbacks must be >= 0, got {self.max_fallbacks}")
        if self.compare_min_products < 1:
            raise ConfigurationError(f"compare_min_products must be >= 1, got {self.compare_min_products}")
        if self.max_workers < 1:
            raise ConfigurationError(f"max_workers must be >= 1, got {self.max_workers}")
        if self.session_time_budget_seconds is not None and self.session_time_budget_seconds <= 0:
            raise ConfigurationError(
                f"session_time_budget_seconds must be positive, got {self.session_time_budget_seconds}"
            )
        for domain, multiplier in self.domain_multipliers.items():
            if multiplier < 0:
                raise ConfigurationError(f"Domain multiplier for {domain} must be >= 0, got {multiplier}")

        validate_kind_priority(self.kind_priority)
        self.context_patterns.compile()
        # Weights, triggers and detector validate on construction
        return self

    def build_resolver(self) -> SelectorResolver:
        return SelectorResolver(max_fallbacks=self.max_fallbacks, kind_priority=self.kind_priority)

    def build_analyzer(self) -> ContextAnalyzer:
        return ContextAnalyzer(self.context_patterns, compare_min_products=self.compare_min_products)

    def build_segmenter(self) -> SequenceSegmenter:
        return SequenceSegmenter(self.triggers, self.detector, max_lookahead=self.max_lookahead)

    def build_scorer(self) -> QualityScorer:
        return QualityScorer(
            weights=self.weights,
            domain_multipliers=self.domain_multipliers,
            min_quality_threshold=self.min_quality_threshold,
        )


def _read_yaml(path: str | Path) -> dict:
    path = Path(path)
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigurationError(f"Cannot read pipeline configuration {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in pipeline configuration {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Pipeline configuration {path} must contain a mapping")

    logger.info("Loaded pipeline configuration", path=str(path), keys=sorted(data))
    return data


def load_pipeline_config(path: str | Path, settings: Optional[Settings] = None) -> PipelineConfig:
    """Load and validate a pipeline configuration from a YAML file.

    Values in the file override the settings-derived defaults.
    """
    base = PipelineConfig.from_settings(settings) if settings is not None else PipelineConfig()
    return base.merged(_read_yaml(path)).validate()
