"""Context analysis - page type, shopping intent and funnel stage."""

from .models import FunnelStage, Intent, Level, PageCapabilities, PageContext, PageType, UserIntent
from .patterns import CompiledContextPatterns, ContextPatterns
from .analyzer import ContextAnalyzer, IntentTracker, funnel_stage_for

__all__ = [
    # Models
    "PageType",
    "Intent",
    "FunnelStage",
    "Level",
    "PageCapabilities",
    "PageContext",
    "UserIntent",
    # Patterns
    "ContextPatterns",
    "CompiledContextPatterns",
    # Analyzer
    "ContextAnalyzer",
    "IntentTracker",
    "funnel_stage_for",
]
