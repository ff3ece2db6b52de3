"""Shopping-sequence segmentation and product-configuration detection."""

from .models import (
    CONFIGURATION_FIELDS,
    CloseReason,
    FlowType,
    ProductConfiguration,
    SegmentationResult,
    SequenceStatus,
    ShoppingSequence,
)
from .patterns import ConfigurationDetector, NumericSizeRange, PatternFamily, TriggerPatterns
from .segmenter import SegmenterState, SequenceSegmenter, sequence_quality

__all__ = [
    # Models
    "FlowType",
    "SequenceStatus",
    "CloseReason",
    "CONFIGURATION_FIELDS",
    "ProductConfiguration",
    "ShoppingSequence",
    "SegmentationResult",
    # Patterns
    "PatternFamily",
    "TriggerPatterns",
    "NumericSizeRange",
    "ConfigurationDetector",
    # Segmenter
    "SegmenterState",
    "SequenceSegmenter",
    "sequence_quality",
]
