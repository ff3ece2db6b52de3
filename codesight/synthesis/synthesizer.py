"""Training example synthesizer - turn one session into training examples.

Two modes run over every session: one example per interaction, and one
example per detected shopping flow. Candidates below the quality bar are
dropped and counted. Output order is fixed (interactions in stream order,
then flows in stream order) so identical input always gives identical
output.
"""

import time
from typing import Callable, Optional

import structlog

from codesight.config import ConfigurationError
from codesight.context.analyzer import IntentTracker
from codesight.context.models import PageContext
from codesight.interactions.models import AnyInteraction, Session
from codesight.pipeline_config import PipelineConfig
from codesight.quality.models import QualityMetrics
from codesight.selectors.models import ResolvedSelector
from codesight.sequences.models import SegmentationResult, ShoppingSequence
from codesight.utils.logging import SynthesisLogger

from .models import ExampleKind, SynthesisReport, TrainingExample
from .templates import InteractionTemplate, InteractionView, SequenceStep, SequenceTemplate, SequenceView

logger = structlog.get_logger()


class TrainingExampleSynthesizer:
    """Builds training examples from validated sessions.

    Example:
        synthesizer = TrainingExampleSynthesizer(PipelineConfig.from_settings())
        examples = synthesizer.synthesize(session)
        dump_jsonl(examples, sys.stdout)
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize synthesizer.

        Args:
            config: Pipeline configuration (validated here)
            clock: Monotonic clock used for the time budget

        Raises:
            ConfigurationError: If the configuration is invalid
        """
        self.config = (config or PipelineConfig()).validate()
        self.clock = clock

        self.resolver = self.config.build_resolver()
        self.analyzer = self.config.build_analyzer()
        self.segmenter = self.config.build_segmenter()
        self.scorer = self.config.build_scorer()

        self.interaction_template = InteractionTemplate()
        self.sequence_template = SequenceTemplate()
        self.log = logger.bind(component="synthesizer")

    def synthesize(self, session: Session) -> list[TrainingExample]:
        """Examples that meet the quality bar, in deterministic order."""
        return self.synthesize_report(session).examples

    def synthesize_report(self, session: Session, deadline: Optional[float] = None) -> SynthesisReport:
        """Synthesize with counts and optional cooperative deadline.

        Args:
            session: Validated session
            deadline: Clock value after which processing stops once the
                current interaction is finished

        Returns:
            SynthesisReport; ``partial`` is set when the deadline cut the
            session short
        """
        interactions = session.interactions
        total = len(interactions)
        report = SynthesisReport(session_id=session.session_id, interaction_count=total)
        slog = SynthesisLogger(session.session_id, total)

        segmentation = self.segmenter.segment(interactions)
        segment_of = self._segment_index(segmentation)
        slog.session_started(flow_count=len(segmentation.flows))

        tracker = self.analyzer.intent_tracker()
        resolved_steps: list[Optional[ResolvedSelector]] = [None] * total
        pages: list[Optional[PageContext]] = [None] * total
        interaction_examples: list[TrainingExample] = []

        for index, interaction in enumerate(interactions):
            try:
                example, metrics = self._interaction_example(
                    session, index, interaction, tracker, segment_of, resolved_steps, pages
                )
                report.candidate_count += 1
                if self.scorer.meets_training_bar(metrics):
                    interaction_examples.append(example)
                else:
                    report.dropped_below_bar += 1
                slog.interaction_processed(index, interaction.kind, metrics.aggregate)
            except ConfigurationError:
                raise
            except Exception as e:
                report.failed_interactions += 1
                slog.interaction_failed(index, e)

            report.processed_interactions = index + 1

            if deadline is not None and index + 1 < total and self.clock() >= deadline:
                report.partial = True
                slog.budget_exhausted(index, self.config.session_time_budget_seconds)
                break

        sequence_examples: list[TrainingExample] = []
        for flow in segmentation.flows:
            if flow.closed_at_index >= report.processed_interactions:
                continue
            try:
                example, metrics = self._sequence_example(session, flow, resolved_steps, pages)
                report.candidate_count += 1
                if self.scorer.meets_training_bar(metrics):
                    sequence_examples.append(example)
                else:
                    report.dropped_below_bar += 1
            except ConfigurationError:
                raise
            except Exception as e:
                report.failed_interactions += 1
                self.log.warning(
                    "Sequence example failed",
                    session_id=session.session_id,
                    start_index=flow.start_index,
                    error=str(e),
                    error_type=type(e).__name__,
                )

        report.examples = interaction_examples + sequence_examples
        slog.session_completed(
            emitted=report.example_count,
            dropped=report.dropped_below_bar,
            partial=report.partial,
        )
        return report

    @staticmethod
    def _segment_index(segmentation: SegmentationResult) -> dict[int, ShoppingSequence]:
        lookup = {}
        for segment in segmentation.segments:
            for index in range(segment.start_index, segment.end_index + 1):
                lookup[index] = segment
        return lookup

    def _interaction_example(
        self,
        session: Session,
        index: int,
        interaction: AnyInteraction,
        tracker: IntentTracker,
        segment_of: dict[int, ShoppingSequence],
        resolved_steps: list[Optional[ResolvedSelector]],
        pages: list[Optional[PageContext]],
    ) -> tuple[TrainingExample, QualityMetrics]:
        tracker.observe_interaction(interaction)
        intent = tracker.current()
        page = self.analyzer.classify_interaction_page(interaction)
        resolved = self.resolver.resolve(interaction.selectors, element_tag=interaction.element.tag)
        action = self.resolver.action_for(interaction.kind, resolved.primary, interaction.element.tag)
        metrics = self.scorer.score(interaction, page, resolved)

        resolved_steps[index] = resolved
        pages[index] = page

        view = InteractionView(
            interaction=interaction,
            step=index + 1,
            total_steps=len(session.interactions),
            resolved=resolved,
            action=action,
            page=page,
            intent=intent,
        )
        prompt, completion = self.interaction_template.render(view)

        segment = segment_of.get(index)
        context = {
            "kind": ExampleKind.INTERACTION.value,
            "session_id": session.session_id,
            "interaction_index": index,
            "interaction_kind": interaction.kind,
            "journey": {
                "step": index + 1,
                "total_steps": len(session.interactions),
                "funnel_stage": intent.funnel_stage.value,
                "intent": intent.to_dict(),
            },
            "page": page.to_dict(),
            "business": {
                "hostname": interaction.hostname,
                "domain_multiplier": self.scorer.domain_multiplier(interaction.hostname),
                "flow_type": segment.flow_type.value if segment else None,
            },
            "selectors": resolved.to_dict(),
            "quality": metrics.to_dict(),
            "sequence": segment.to_dict() if segment else None,
        }

        example = TrainingExample(
            prompt=prompt,
            completion=completion,
            quality=metrics.aggregate,
            context=context,
        )
        return example, metrics

    def _sequence_example(
        self,
        session: Session,
        flow: ShoppingSequence,
        resolved_steps: list[Optional[ResolvedSelector]],
        pages: list[Optional[PageContext]],
    ) -> tuple[TrainingExample, QualityMetrics]:
        step_resolved = []
        steps = []
        for offset, interaction in enumerate(flow.interactions):
            index = flow.start_index + offset
            resolved = resolved_steps[index]
            if resolved is None:
                resolved = self.resolver.resolve(interaction.selectors, element_tag=interaction.element.tag)
            page = pages[index] or self.analyzer.classify_interaction_page(interaction)
            step_resolved.append(resolved)
            steps.append(SequenceStep(
                action=self.resolver.action_for(interaction.kind, resolved.primary, interaction.element.tag),
                text=interaction.text,
                page_type=page.page_type.value,
            ))

        metrics = self.scorer.score(flow, None, step_resolved)
        view = SequenceView(sequence=flow, steps=tuple(steps), hostname=flow.interactions[0].hostname)
        prompt, completion = self.sequence_template.render(view)

        context = {
            "kind": ExampleKind.SEQUENCE.value,
            "session_id": session.session_id,
            "sequence": flow.to_dict(),
            "business": {
                "hostname": view.hostname,
                "domain_multiplier": self.scorer.domain_multiplier(view.hostname),
                "flow_type": flow.flow_type.value,
            },
            "selectors": [r.to_dict() for r in step_resolved],
            "quality": metrics.to_dict(),
        }

        example = TrainingExample(
            prompt=prompt,
            completion=completion,
            quality=metrics.aggregate,
            context=context,
        )
        return example, metrics
