"""
Analyzer contracts.

An AnalyzerDescriptor says when an analyzer may run and how its parsed output
maps back onto the project. An AnalyzerExecutor does the actual (LLM) work and
returns an AnalysisResult. The trigger evaluator and orchestrator only see
these uniform interfaces.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

PENDING = 'pending'
RUNNING = 'running'
COMPLETED = 'completed'
FAILED = 'failed'

IN_FLIGHT = (PENDING, RUNNING)


@dataclass
class AnalysisResult:
    """Uniform output from every analyzer executor."""
    raw_analysis: str
    parsed_fields: Dict[str, Any] = field(default_factory=dict)
    confidence: Optional[float] = None


@dataclass(frozen=True)
class AnalyzerDescriptor:
    """
    Static declaration of one analyzer type.

    should_trigger(record, runs) is a pure predicate; runs is the project's
    full run history (any analyzer type). fields_to_update(parsed_fields)
    returns the whole-field replacements to apply to the project once a run
    completes.
    """
    type: str
    display_name: str
    should_trigger: Callable[[Any, Sequence[Any]], bool]
    fields_to_update: Callable[[Dict[str, Any]], Dict[str, Any]]
    description: str = ''
    auto_trigger: bool = True
    output_fields: Tuple[str, ...] = ()
    dependencies: Tuple[str, ...] = ()
    # (field, label) pairs reported by missing_requirements()
    requirements: Tuple[Tuple[str, str], ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.type,
            'name': self.display_name,
            'description': self.description,
            'auto_trigger': self.auto_trigger,
            'output_fields': list(self.output_fields),
            'dependencies': list(self.dependencies),
        }


class AnalyzerExecutor(ABC):
    """
    Base class for analyzer executors.

    Each analyzer type has one executor. It receives a record snapshot and
    returns an AnalysisResult, or raises (ideally ExecutorError). Executors
    never touch run state; the orchestrator settles the run.
    """
    analyzer_type: str = ''

    @abstractmethod
    def run(self, record: Any) -> AnalysisResult:
        ...

    def input_snapshot(self, record: Any) -> Dict[str, Any]:
        """Optional: the subset of the record sent to the model, for auditing."""
        return {}


# ── Run history helpers ──────────────────────────────────────────────────────

def latest_run(runs: Sequence[Any], analyzer_type: str) -> Optional[Any]:
    """
    Most recently created run of analyzer_type, or None.

    Ties on created_at go to the run listed later. A run without a timestamp
    is treated as older than any timestamped run.
    """
    best = None
    for run in runs:
        if run.analyzer_type != analyzer_type:
            continue
        if best is None or not _created_before(run, best):
            best = run
    return best


def _created_before(run, other) -> bool:
    a = getattr(run, 'created_at', None)
    b = getattr(other, 'created_at', None)
    if a is None or b is None:
        return a is None and b is not None
    return a < b


def latest_status(runs: Sequence[Any], analyzer_type: str) -> Optional[str]:
    run = latest_run(runs, analyzer_type)
    return run.status if run is not None else None


def is_in_flight(runs: Sequence[Any], analyzer_type: str) -> bool:
    return latest_status(runs, analyzer_type) in IN_FLIGHT


def has_completed(runs: Sequence[Any], analyzer_type: str) -> bool:
    return latest_status(runs, analyzer_type) == COMPLETED
