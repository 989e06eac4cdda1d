"""
Run lifecycle manager — the only writer of analyzer_runs.

State machine:
    pending → running → completed
    pending | running → pending   (failed attempt, retries left)
    pending | running → failed    (retries exhausted, or abandon())

Every transition is a conditional UPDATE (WHERE id = ? AND status IN (...)),
so two workers racing on the same run cannot both win. Returned AnalyzerRun
objects are detached from their session; read them, don't mutate them.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError

from app.analyzers.base import COMPLETED, FAILED, IN_FLIGHT, PENDING, RUNNING
from app.config import MAX_RETRIES, TRIGGER_REASONS
from app.database import get_session
from app.errors import DuplicateInFlightError, RunNotFoundError, ValidationError
from app.models.analyzer_run import AnalyzerRun

logger = logging.getLogger('analyzers.lifecycle')


def _now():
    return datetime.now(timezone.utc)


def _detach(session, run):
    session.refresh(run)
    session.expunge(run)
    return run


class RunLifecycleManager:

    def __init__(self, session_factory=get_session, max_retries: int = MAX_RETRIES):
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.session_factory = session_factory
        self.max_retries = max_retries

    # ── Creation ──────────────────────────────────────────────────────

    def create_run(self, project_id: str, analyzer_type: str, trigger_reason: str = 'auto',
                   input_snapshot: Optional[Dict[str, Any]] = None) -> AnalyzerRun:
        """
        Insert a pending run. Raises DuplicateInFlightError if the project
        already has a pending or running run of this type.
        """
        if trigger_reason not in TRIGGER_REASONS:
            raise ValueError(f"Unknown trigger reason: {trigger_reason}")
        session = self.session_factory()
        try:
            existing = session.query(AnalyzerRun.id).filter(
                AnalyzerRun.project_id == project_id,
                AnalyzerRun.analyzer_type == analyzer_type,
                AnalyzerRun.status.in_(IN_FLIGHT),
            ).first()
            if existing is not None:
                raise DuplicateInFlightError(project_id, analyzer_type)

            run = AnalyzerRun(
                project_id=project_id,
                analyzer_type=analyzer_type,
                status=PENDING,
                trigger_reason=trigger_reason,
                input_snapshot=input_snapshot,
                retry_count=0,
            )
            session.add(run)
            try:
                session.commit()
            except IntegrityError:
                # Lost the race to a concurrent create; the partial unique index caught it
                session.rollback()
                raise DuplicateInFlightError(project_id, analyzer_type)

            logger.info("Created %s run %s for project %s (%s)", analyzer_type, run.id, project_id, trigger_reason)
            return _detach(session, run)
        finally:
            session.close()

    # ── Transitions ───────────────────────────────────────────────────

    def mark_running(self, run_id: str, input_snapshot: Optional[Dict[str, Any]] = None) -> AnalyzerRun:
        values = {'status': RUNNING, 'started_at': _now()}
        if input_snapshot is not None:
            values['input_snapshot'] = input_snapshot
        return self._transition(run_id, (PENDING,), values)

    def mark_completed(self, run_id: str, raw_analysis: str, parsed_fields: Optional[Dict[str, Any]] = None,
                       confidence_score: Optional[float] = None) -> AnalyzerRun:
        return self._transition(run_id, (RUNNING,), {
            'status': COMPLETED,
            'raw_analysis': raw_analysis,
            'parsed_fields': parsed_fields or {},
            'confidence_score': confidence_score,
            'error_message': None,
            'completed_at': _now(),
        })

    def mark_failed(self, run_id: str, error_message: str) -> AnalyzerRun:
        """
        Record a failed attempt. While attempts remain the same row goes back
        to pending; the caller re-enqueues it. The last attempt is terminal.
        """
        session = self.session_factory()
        try:
            run = session.get(AnalyzerRun, run_id)
            if run is None:
                raise RunNotFoundError(run_id)
            if run.status not in IN_FLIGHT:
                raise ValidationError(
                    f"Cannot fail run {run_id} from status '{run.status}'",
                    run_id=run_id, status=run.status,
                )

            retry_count = run.retry_count or 0
            attempt = retry_count + 1
            if attempt < self.max_retries:
                values = {
                    'status': PENDING,
                    'retry_count': attempt,
                    'error_message': f"Attempt {attempt}/{self.max_retries} failed: {error_message}",
                    'started_at': None,
                }
            else:
                values = {
                    'status': FAILED,
                    'retry_count': attempt,
                    'error_message': error_message,
                    'completed_at': _now(),
                }

            updated = session.query(AnalyzerRun).filter(
                AnalyzerRun.id == run_id,
                AnalyzerRun.status.in_(IN_FLIGHT),
                AnalyzerRun.retry_count == retry_count,
            ).update(values, synchronize_session=False)
            if updated == 0:
                session.rollback()
                raise ValidationError(f"Run {run_id} changed concurrently", run_id=run_id)
            session.commit()

            if values['status'] == PENDING:
                logger.warning("Run %s attempt %d/%d failed, will retry: %s",
                               run_id, attempt, self.max_retries, error_message)
            else:
                logger.error("Run %s failed after %d attempts: %s", run_id, attempt, error_message)
            return _detach(session, session.get(AnalyzerRun, run_id))
        finally:
            session.close()

    def abandon(self, run_id: str, error_message: str) -> AnalyzerRun:
        """Terminal failure with no retry, for runs that can never execute."""
        return self._transition(run_id, IN_FLIGHT, {
            'status': FAILED,
            'error_message': error_message,
            'completed_at': _now(),
        })

    def _transition(self, run_id: str, from_statuses, values: Dict[str, Any]) -> AnalyzerRun:
        session = self.session_factory()
        try:
            updated = session.query(AnalyzerRun).filter(
                AnalyzerRun.id == run_id,
                AnalyzerRun.status.in_(from_statuses),
            ).update(values, synchronize_session=False)

            if updated == 0:
                session.rollback()
                run = session.get(AnalyzerRun, run_id)
                if run is None:
                    raise RunNotFoundError(run_id)
                raise ValidationError(
                    f"Cannot move run {run_id} from '{run.status}' to '{values['status']}'",
                    run_id=run_id, status=run.status,
                )

            session.commit()
            logger.info("Run %s → %s", run_id, values['status'])
            return _detach(session, session.get(AnalyzerRun, run_id))
        finally:
            session.close()

    # ── Queries ───────────────────────────────────────────────────────

    def get_run(self, run_id: str) -> Optional[AnalyzerRun]:
        session = self.session_factory()
        try:
            run = session.get(AnalyzerRun, run_id)
            if run is not None:
                session.expunge(run)
            return run
        finally:
            session.close()

    def list_runs(self, project_id: str) -> List[AnalyzerRun]:
        """All runs for a project, oldest first."""
        session = self.session_factory()
        try:
            runs = session.query(AnalyzerRun).filter(
                AnalyzerRun.project_id == project_id,
            ).order_by(AnalyzerRun.created_at.asc()).all()
            session.expunge_all()
            return runs
        finally:
            session.close()

    def in_flight(self, project_id: str, analyzer_type: Optional[str] = None) -> List[AnalyzerRun]:
        session = self.session_factory()
        try:
            q = session.query(AnalyzerRun).filter(
                AnalyzerRun.project_id == project_id,
                AnalyzerRun.status.in_(IN_FLIGHT),
            )
            if analyzer_type is not None:
                q = q.filter(AnalyzerRun.analyzer_type == analyzer_type)
            runs = q.order_by(AnalyzerRun.created_at.asc()).all()
            session.expunge_all()
            return runs
        finally:
            session.close()
