"""
AnalyzerRun model — one row per analyzer execution (the audit trail).

A retry flips the same row back to pending, so retry_count records how many
attempts have failed. The partial unique index allows at most one pending or
running row per (project_id, analyzer_type).
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, Float, Text, DateTime, JSON, ForeignKey, Index, CheckConstraint, text

from app.database import Base


def _now():
    return datetime.now(timezone.utc)


IN_FLIGHT_WHERE = text("status IN ('pending', 'running')")


class AnalyzerRun(Base):
    __tablename__ = 'analyzer_runs'

    id = Column(Text, primary_key=True, default=lambda: str(uuid.uuid4()))
    project_id = Column(Text, ForeignKey('business_projects.id', ondelete='CASCADE'), nullable=False)
    analyzer_type = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default='pending')
    trigger_reason = Column(Text, nullable=False, default='auto')  # auto/manual/force
    input_snapshot = Column(JSON, nullable=True)
    raw_analysis = Column(Text, nullable=True)
    parsed_fields = Column(JSON, nullable=True)
    confidence_score = Column(Float, nullable=True)
    error_message = Column(Text, nullable=True)
    retry_count = Column(Integer, nullable=False, default=0)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)

    __table_args__ = (
        CheckConstraint("status IN ('pending', 'running', 'completed', 'failed')", name='ck_analyzer_runs_status'),
        Index('ix_analyzer_runs_project_id', 'project_id'),
        Index('ix_analyzer_runs_project_type', 'project_id', 'analyzer_type'),
        Index(
            'uq_analyzer_runs_in_flight', 'project_id', 'analyzer_type',
            unique=True,
            postgresql_where=IN_FLIGHT_WHERE,
            sqlite_where=IN_FLIGHT_WHERE,
        ),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'project_id': self.project_id,
            'analyzer_type': self.analyzer_type,
            'status': self.status,
            'trigger_reason': self.trigger_reason,
            'input_snapshot': self.input_snapshot,
            'raw_analysis': self.raw_analysis,
            'parsed_fields': self.parsed_fields,
            'confidence_score': self.confidence_score,
            'error_message': self.error_message,
            'retry_count': self.retry_count,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
