"""
Analyzer orchestrator — ties the catalog, registry, evaluator, lifecycle
manager and executors together.

Flow:
  project saved → trigger_analyzers() → create pending runs → RQ job per run
  worker: execute_run() → running → executor → apply fields → completed
          → trigger_analyzers() again (chaining, e.g. narrative → synthesis)
  on executor failure: mark_failed(); if the run went back to pending it is
  re-enqueued under the same run id.
"""
import logging
from typing import Any, Dict, List, Optional

from app.analyzers.base import IN_FLIGHT, PENDING, latest_run
from app.analyzers.executors import get_executor
from app.analyzers.lifecycle import RunLifecycleManager
from app.analyzers.registry import DEFAULT_REGISTRY
from app.analyzers.triggers import TriggerEvaluator, status_message
from app.config import ANALYZER_JOB_TIMEOUT, ANALYZER_QUEUE
from app.errors import DuplicateInFlightError, ProjectNotFoundError, ValidationError
from app.foundation.buckets import DEFAULT_CATALOG
from app.services.projects import load_record, save_record

logger = logging.getLogger('analyzers.orchestrator')

CATALOG = DEFAULT_CATALOG
REGISTRY = DEFAULT_REGISTRY
EVALUATOR = TriggerEvaluator(REGISTRY)
LIFECYCLE = RunLifecycleManager()


# ── Lazy RQ queue (no Redis connection at import time) ────────────────────

_queue = None

def get_queue():
    """The analyzer job queue. Shared by the API process and worker.py."""
    global _queue
    if _queue is None:
        from app.extensions import redis_client
        from rq import Queue
        _queue = Queue(ANALYZER_QUEUE, connection=redis_client)
    return _queue


def _enqueue(run_id: str):
    get_queue().enqueue(execute_run, run_id, job_timeout=ANALYZER_JOB_TIMEOUT)


def _response(triggered: List[str], message: str) -> Dict[str, Any]:
    return {'success': True, 'triggered': triggered, 'message': message}


def _display_names(types: List[str]) -> str:
    return ', '.join(REGISTRY.get(t).display_name for t in types)


def _start_run(project_id: str, record, analyzer_type: str, trigger_reason: str) -> Optional[str]:
    """Create a pending run and enqueue it. Returns the run id, or None if one is in flight."""
    executor = get_executor(analyzer_type)
    try:
        run = LIFECYCLE.create_run(project_id, analyzer_type, trigger_reason,
                                   input_snapshot=executor.input_snapshot(record))
    except DuplicateInFlightError:
        logger.info("%s already in flight for project %s, not starting another", analyzer_type, project_id)
        return None

    try:
        _enqueue(run.id)
    except Exception as e:
        # Nothing will ever pick this run up; free the in-flight slot
        logger.error("Failed to enqueue %s run %s: %s", analyzer_type, run.id, e)
        LIFECYCLE.abandon(run.id, f"Could not enqueue: {e}")
        return None

    logger.info("Enqueued %s run %s for project %s (%s)", analyzer_type, run.id, project_id, trigger_reason)
    return run.id


def _load(project_id: str):
    record = load_record(project_id)
    if record is None:
        raise ProjectNotFoundError(project_id)
    return record


# ── Trigger entry points ──────────────────────────────────────────────────

def trigger_analyzers(project_id: str, analyzer_type: Optional[str] = None) -> Dict[str, Any]:
    """
    Start whatever should run now.

    Without analyzer_type: every auto-trigger analyzer the evaluator selects.
    With analyzer_type: that one analyzer (manual or not) if its own trigger
    condition holds and it is not already in flight.

    Raises ProjectNotFoundError, or ValueError for an unknown analyzer type.
    """
    if analyzer_type is not None and analyzer_type not in REGISTRY:
        raise ValueError(f"Unknown analyzer: {analyzer_type}")

    record = _load(project_id)
    runs = LIFECYCLE.list_runs(project_id)

    if analyzer_type is not None:
        descriptor = REGISTRY.get(analyzer_type)
        latest = latest_run(runs, analyzer_type)
        if latest is not None and latest.status in IN_FLIGHT:
            return _response([], f"{descriptor.display_name} is already running")
        if not EVALUATOR.should_trigger_analyzer(analyzer_type, record, runs):
            return _response([], f"{descriptor.display_name} trigger conditions not met")
        candidates = [analyzer_type]
        reason = 'manual'
    else:
        candidates = EVALUATOR.evaluate(record, runs)
        reason = 'auto'

    if not candidates:
        return _response([], "No analyzers need to run right now")

    triggered = [t for t in candidates if _start_run(project_id, record, t, reason)]
    message = f"Started: {_display_names(triggered)}" if triggered else "No analyzers were triggered"
    return _response(triggered, message)


def force_trigger(project_id: str, analyzer_type: str) -> Dict[str, Any]:
    """
    Start analyzer_type regardless of its trigger condition or past runs.

    Run history is kept; a run already in flight is left alone.
    """
    if analyzer_type not in REGISTRY:
        raise ValueError(f"Unknown analyzer: {analyzer_type}")
    record = _load(project_id)
    descriptor = REGISTRY.get(analyzer_type)

    if _start_run(project_id, record, analyzer_type, 'force'):
        return _response([analyzer_type], f"Started: {descriptor.display_name}")
    return _response([], f"{descriptor.display_name} is already running")


def on_record_changed(project_id: str) -> Dict[str, Any]:
    """Re-evaluate auto triggers after any project mutation."""
    return trigger_analyzers(project_id)


# ── Worker job ────────────────────────────────────────────────────────────

def execute_run(run_id: str):
    """
    RQ job: run one analyzer attempt and settle the run.

    Never raises for executor failures; they become failed attempts.
    """
    run = LIFECYCLE.get_run(run_id)
    if run is None:
        logger.error("Analyzer run %s not found", run_id)
        return

    project_id, analyzer_type = run.project_id, run.analyzer_type
    record = load_record(project_id)
    if record is None:
        logger.error("Project %s for run %s no longer exists", project_id, run_id)
        LIFECYCLE.abandon(run_id, "Project not found")
        return

    executor = get_executor(analyzer_type)
    try:
        LIFECYCLE.mark_running(run_id, input_snapshot=executor.input_snapshot(record))
    except ValidationError as e:
        # Another worker got here first, or the run was settled already
        logger.warning("Skipping run %s: %s", run_id, e)
        return

    logger.info("Running %s for project %s (run %s, attempt %d)",
                analyzer_type, project_id, run_id, (run.retry_count or 0) + 1)
    try:
        result = executor.run(record)
        updates = REGISTRY.get(analyzer_type).fields_to_update(result.parsed_fields)
        if updates:
            save_record(project_id, updates, CATALOG)
    except Exception as e:
        logger.error("%s run %s failed: %s", analyzer_type, run_id, e)
        settled = LIFECYCLE.mark_failed(run_id, str(e))
        if settled.status == PENDING:
            try:
                _enqueue(run_id)
            except Exception as enqueue_error:
                # A pending row with no job would hold the in-flight slot forever
                logger.error("Failed to re-enqueue %s run %s: %s", analyzer_type, run_id, enqueue_error)
                LIFECYCLE.abandon(run_id, f"Could not re-enqueue: {enqueue_error}")
        return

    LIFECYCLE.mark_completed(run_id, result.raw_analysis, result.parsed_fields, result.confidence)
    logger.info("%s run %s completed, %d project fields updated", analyzer_type, run_id, len(updates))

    # Completion can unlock dependents (narrative → synthesis)
    chained = on_record_changed(project_id)
    if chained['triggered']:
        logger.info("Chained from %s: %s", analyzer_type, chained['triggered'])


# ── Read models ───────────────────────────────────────────────────────────

def analyzer_overview(project_id: str) -> List[Dict[str, Any]]:
    """Per-analyzer status for one project, in registry order."""
    record = _load(project_id)
    runs = LIFECYCLE.list_runs(project_id)

    overview = []
    for descriptor in REGISTRY:
        latest = latest_run(runs, descriptor.type)
        item = descriptor.to_dict()
        item.update({
            'status': latest.status if latest is not None else None,
            'status_message': status_message(descriptor.type, runs),
            'missing_requirements': EVALUATOR.missing_requirements(descriptor.type, record),
            'latest_run': latest.to_dict() if latest is not None else None,
            'run_count': sum(1 for r in runs if r.analyzer_type == descriptor.type),
        })
        overview.append(item)
    return overview
