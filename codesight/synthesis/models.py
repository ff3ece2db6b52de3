"""Data models for training-example synthesis."""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import IO, Any, Iterable, Optional


class ExampleKind(str, Enum):
    INTERACTION = "interaction"
    SEQUENCE = "sequence"


class SessionStatus(str, Enum):
    OK = "ok"
    FAILED = "failed"


@dataclass(frozen=True)
class TrainingExample:
    """One (prompt, completion) pair ready for fine-tuning.

    Attributes:
        prompt: Model input text
        completion: Expected model output (JSON text)
        quality: Aggregate quality score (0-100)
        context: Structured metadata; the only place identifiers appear
    """

    prompt: str
    completion: str
    quality: float
    context: dict[str, Any] = field(default_factory=dict)

    @property
    def kind(self) -> ExampleKind:
        return ExampleKind(self.context.get("kind", ExampleKind.INTERACTION.value))

    def to_dict(self) -> dict:
        return {
            "prompt": self.prompt,
            "completion": self.completion,
            "quality": self.quality,
            "context": self.context,
        }

    def to_json_line(self) -> str:
        """Compact, key-sorted JSON (no trailing newline)."""
        return json.dumps(self.to_dict(), sort_keys=True, ensure_ascii=False, separators=(",", ":"))


def to_jsonl(examples: Iterable[TrainingExample]) -> str:
    """Render examples as JSON Lines text."""
    return "".join(example.to_json_line() + "\n" for example in examples)


def dump_jsonl(examples: Iterable[TrainingExample], stream: IO[str]) -> int:
    """Write examples to a text stream, one per line.

    Returns:
        Number of lines written
    """
    count = 0
    for example in examples:
        stream.write(example.to_json_line())
        stream.write("\n")
        count += 1
    return count


@dataclass
class SynthesisReport:
    """What synthesis produced for one session."""

    session_id: str
    examples: list[TrainingExample] = field(default_factory=list)
    candidate_count: int = 0
    dropped_below_bar: int = 0
    failed_interactions: int = 0
    processed_interactions: int = 0
    interaction_count: int = 0
    partial: bool = False

    @property
    def example_count(self) -> int:
        return len(self.examples)


@dataclass
class SessionOutcome:
    """Per-session result from the batch runner.

    A session with zero qualifying examples is OK with example_count 0;
    FAILED means the session could not be processed at all.
    """

    session_id: str
    status: SessionStatus
    examples: list[TrainingExample] = field(default_factory=list)
    candidate_count: int = 0
    dropped_below_bar: int = 0
    dropped_records: int = 0
    partial: bool = False
    error_type: Optional[str] = None
    error: Optional[str] = None
    duration_ms: int = 0

    @property
    def example_count(self) -> int:
        return len(self.examples)

    @property
    def ok(self) -> bool:
        return self.status == SessionStatus.OK

    def to_dict(self) -> dict:
        """Summary without the examples themselves."""
        return {
            "session_id": self.session_id,
            "status": self.status.value,
            "example_count": self.example_count,
            "candidate_count": self.candidate_count,
            "dropped_below_bar": self.dropped_below_bar,
            "dropped_records": self.dropped_records,
            "partial": self.partial,
            "error_type": self.error_type,
            "error": self.error,
            "duration_ms": self.duration_ms,
        }
