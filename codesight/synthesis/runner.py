"""Batch runner - synthesize many sessions on a bounded worker pool.

Each session runs in a worker thread with its own synthesizer, so no
mutable state is shared between sessions. Concurrency is capped by an
asyncio semaphore and results come back in input order.

Example usage:
    runner = PipelineRunner.from_settings()
    outcomes = await runner.run_batch(payloads)
    for outcome in outcomes:
        if outcome.ok:
            dump_jsonl(outcome.examples, sink)
"""

import asyncio
import time
from typing import Any, Callable, Iterable, Optional

import structlog

from codesight.config import ConfigurationError, Settings
from codesight.interactions.models import Session
from codesight.interactions.parser import SessionParser
from codesight.pipeline_config import PipelineConfig
from codesight.utils.logging import LogContext, log_operation, setup_logging

from .models import SessionOutcome, SessionStatus
from .synthesizer import TrainingExampleSynthesizer

logger = structlog.get_logger()

SessionInput = Session | dict | list | str


def _payload_session_id(payload: Any) -> Optional[str]:
    if isinstance(payload, Session):
        return payload.session_id
    if isinstance(payload, dict):
        for key in ("session_id", "sessionId", "id"):
            if payload.get(key):
                return str(payload[key])
    return None


class PipelineRunner:
    """Runs the synthesis pipeline over single sessions or batches.

    The configuration is validated at construction so a setup defect fails
    before any session is touched.
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize runner.

        Args:
            config: Pipeline configuration (defaults from settings)
            clock: Monotonic clock for time budgets

        Raises:
            ConfigurationError: If the configuration is invalid
        """
        self.config = (config or PipelineConfig.from_settings()).validate()
        self.clock = clock
        self.parser = SessionParser()
        self.log = logger.bind(component="pipeline_runner")

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "PipelineRunner":
        """Configure logging and build a runner from environment settings."""
        settings = settings or Settings()
        setup_logging(settings)
        return cls(PipelineConfig.from_settings(settings))

    def process_session(self, session: SessionInput, session_id: Optional[str] = None) -> SessionOutcome:
        """Synthesize one session and report the outcome.

        Zero qualifying examples is a normal OK outcome. Any unexpected
        exception yields FAILED with the exception class attached; only
        ConfigurationError propagates.
        """
        started = self.clock()
        label = session_id or _payload_session_id(session) or "unknown"

        with LogContext(session_id=label):
            try:
                if not isinstance(session, Session):
                    session = self.parser.parse(session, session_id=session_id)
                label = session.session_id

                budget = self.config.session_time_budget_seconds
                deadline = started + budget if budget else None

                synthesizer = TrainingExampleSynthesizer(self.config, clock=self.clock)
                report = synthesizer.synthesize_report(session, deadline=deadline)
            except ConfigurationError:
                raise
            except Exception as e:
                self.log.error(
                    "Session processing failed",
                    session_id=label,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                return SessionOutcome(
                    session_id=label,
                    status=SessionStatus.FAILED,
                    error_type=type(e).__name__,
                    error=str(e),
                    duration_ms=int((self.clock() - started) * 1000),
                )

        return SessionOutcome(
            session_id=label,
            status=SessionStatus.OK,
            examples=report.examples,
            candidate_count=report.candidate_count,
            dropped_below_bar=report.dropped_below_bar,
            dropped_records=int(session.metadata.get("dropped_records", 0) or 0),
            partial=report.partial,
            duration_ms=int((self.clock() - started) * 1000),
        )

    async def run_batch(self, sessions: Iterable[SessionInput]) -> list[SessionOutcome]:
        """Process sessions concurrently, at most max_workers at a time.

        Returns:
            One outcome per input session, in input order
        """
        sessions = list(sessions)
        semaphore = asyncio.Semaphore(self.config.max_workers)

        async def run_with_semaphore(session: SessionInput) -> SessionOutcome:
            async with semaphore:
                return await asyncio.to_thread(self.process_session, session)

        with log_operation(
            "run_batch",
            self.log,
            session_count=len(sessions),
            max_workers=self.config.max_workers,
        ) as op:
            outcomes = await asyncio.gather(*(run_with_semaphore(s) for s in sessions))
            op["failed"] = sum(1 for o in outcomes if not o.ok)
            op["examples"] = sum(o.example_count for o in outcomes)
            op["partial"] = sum(1 for o in outcomes if o.partial)

        return list(outcomes)
