"""Training example synthesis - prompts, completions and batch running."""

from .models import (
    ExampleKind,
    SessionOutcome,
    SessionStatus,
    SynthesisReport,
    TrainingExample,
    dump_jsonl,
    to_jsonl,
)
from .templates import (
    BaseExampleTemplate,
    InteractionTemplate,
    InteractionView,
    SequenceStep,
    SequenceTemplate,
    SequenceView,
)
from .synthesizer import TrainingExampleSynthesizer
from .runner import PipelineRunner

__all__ = [
    # Models
    "ExampleKind",
    "TrainingExample",
    "SynthesisReport",
    "SessionStatus",
    "SessionOutcome",
    "to_jsonl",
    "dump_jsonl",
    # Templates
    "BaseExampleTemplate",
    "InteractionTemplate",
    "InteractionView",
    "SequenceStep",
    "SequenceTemplate",
    "SequenceView",
    # Synthesizer
    "TrainingExampleSynthesizer",
    "PipelineRunner",
]
