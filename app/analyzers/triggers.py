"""
Trigger evaluator — decides which analyzers should run for a project.

Called after every project mutation (and after every completed run) with the
current record and the project's full run history:

    evaluator = TriggerEvaluator(DEFAULT_REGISTRY)
    evaluator.evaluate(record, runs)   # ['web_scraper', 'clarity']

Only auto-trigger analyzers are considered. Forcing a run bypasses this module
entirely (see orchestrator.force_trigger).
"""
import logging
from dataclasses import dataclass, field
from typing import Any, List, Sequence

from app.analyzers.base import COMPLETED, FAILED, IN_FLIGHT, PENDING, RUNNING, has_completed, latest_run
from app.analyzers.registry import AnalyzerRegistry
from app.foundation.completion import field_value, is_filled

logger = logging.getLogger('analyzers.triggers')


@dataclass
class TriggerResult:
    to_trigger: List[str] = field(default_factory=list)
    already_running: List[str] = field(default_factory=list)
    completed: List[str] = field(default_factory=list)
    summary: str = ''


class TriggerEvaluator:

    def __init__(self, registry: AnalyzerRegistry):
        self.registry = registry

    def evaluate(self, record: Any, runs: Sequence[Any]) -> List[str]:
        """Analyzer types eligible to start now, in registry order."""
        return self.evaluate_detailed(record, runs).to_trigger

    def evaluate_detailed(self, record: Any, runs: Sequence[Any]) -> TriggerResult:
        runs = list(runs or [])
        result = TriggerResult()

        for descriptor in self.registry.auto_trigger():
            latest = latest_run(runs, descriptor.type)
            status = latest.status if latest is not None else None

            if status in IN_FLIGHT:
                result.already_running.append(descriptor.type)
                continue
            if status == COMPLETED:
                result.completed.append(descriptor.type)

            if not descriptor.should_trigger(record, runs):
                continue

            unmet = [dep for dep in descriptor.dependencies if not has_completed(runs, dep)]
            if unmet:
                logger.debug("Skipping %s: dependencies not met (%s)", descriptor.type, ', '.join(unmet))
                continue

            if descriptor.type not in result.to_trigger:
                result.to_trigger.append(descriptor.type)

        result.summary = self._summarize(result)
        logger.info("Trigger evaluation: to_trigger=%s running=%d completed=%d",
                    result.to_trigger, len(result.already_running), len(result.completed))
        return result

    def _summarize(self, result: TriggerResult) -> str:
        if result.to_trigger:
            names = ', '.join(self.registry.get(t).display_name for t in result.to_trigger)
            return f"Triggering: {names}"
        if result.already_running:
            return f"Analyzers still running: {len(result.already_running)}"
        return "All analyzers up to date"

    def should_trigger_analyzer(self, analyzer_type: str, record: Any, runs: Sequence[Any]) -> bool:
        """Evaluate one analyzer's own predicate. Unknown types never trigger."""
        if analyzer_type not in self.registry:
            logger.warning("Unknown analyzer type: %s", analyzer_type)
            return False
        return self.registry.get(analyzer_type).should_trigger(record, list(runs or []))

    def missing_requirements(self, analyzer_type: str, record: Any) -> List[str]:
        """Labels of the inputs an analyzer still needs, for the UI."""
        if analyzer_type not in self.registry:
            return []
        descriptor = self.registry.get(analyzer_type)
        return [label for f, label in descriptor.requirements if not is_filled(field_value(record, f))]


def status_message(analyzer_type: str, runs: Sequence[Any]) -> str:
    run = latest_run(runs or [], analyzer_type)
    if run is None:
        return 'Not started'
    if run.status == PENDING:
        return 'Waiting to start...'
    if run.status == RUNNING:
        return 'Analyzing...'
    if run.status == COMPLETED:
        return 'Complete'
    if run.status == FAILED:
        return f"Failed: {run.error_message or 'Unknown error'}"
    return 'Unknown status'
