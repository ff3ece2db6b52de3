"""Tests for quality data models."""

import pytest

from codesight.config import ConfigurationError
from codesight.quality.models import DEFAULT_DOMAIN_MULTIPLIERS, QualityMetrics, QualityWeights


class TestQualityWeights:
    """Tests for QualityWeights."""

    def test_default_weights(self):
        """Test the v1 weights."""
        weights = QualityWeights()

        assert weights.version == "v1"
        assert weights.as_tuple() == (0.35, 0.20, 0.10, 0.20, 0.15)
        assert sum(weights.as_tuple()) == pytest.approx(1.0)

    def test_must_sum_to_one(self):
        """Test weights that do not sum to 1 are rejected."""
        with pytest.raises(ConfigurationError, match="sum to 1.0"):
            QualityWeights(selector=0.5)

    def test_negative_rejected(self):
        """Test negative weights are rejected."""
        with pytest.raises(ConfigurationError, match="non-negative"):
            QualityWeights(selector=0.55, site=-0.05)

    def test_from_mapping(self):
        """Test weights built from a mapping."""
        weights = QualityWeights.from_mapping({
            "version": "v2",
            "selector": 0.4,
            "spatial": 0.2,
            "dom": 0.1,
            "business": "0.15",
            "site": 0.15,
        })

        assert weights.version == "v2"
        assert weights.business == 0.15

    def test_from_mapping_unknown_key(self):
        """Test unknown keys are a configuration error."""
        with pytest.raises(ConfigurationError, match="freshness"):
            QualityWeights.from_mapping({"freshness": 0.1})

    def test_from_mapping_empty(self):
        """Test empty input gives the defaults."""
        assert QualityWeights.from_mapping(None) == QualityWeights()


class TestQualityMetrics:
    """Tests for QualityMetrics."""

    def test_to_dict(self):
        """Test dictionary rendering."""
        data = QualityMetrics(selector_quality=90.0, aggregate=61.5).to_dict()

        assert data["selector_quality"] == 90.0
        assert data["aggregate"] == 61.5
        assert data["weights_version"] == "v1"
        assert len(data) == 7

    def test_domain_table(self):
        """Test the default multiplier table."""
        assert DEFAULT_DOMAIN_MULTIPLIERS["nike.com"] == 1.5
        assert all(m > 0 for m in DEFAULT_DOMAIN_MULTIPLIERS.values())
