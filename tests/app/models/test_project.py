"""Tests for the Project and AnalyzerRun models."""
import pytest

from app.foundation.record import FIELD_NAMES, ProjectRecord
from app.models.analyzer_run import AnalyzerRun
from app.models.project import Project


class TestProject:
    def test_has_column_for_every_record_field(self):
        columns = set(Project.__table__.columns.keys())
        assert FIELD_NAMES <= columns

    def test_to_record(self):
        project = Project(id='p1', idea_name='TrailMix', competitors=['AllTrails'])
        record = project.to_record()
        assert isinstance(record, ProjectRecord)
        assert record.id == 'p1'
        assert record.competitors == ['AllTrails']
        assert record.one_liner is None

    def test_apply_fields(self):
        project = Project(id='p1', target_audience=['founders'])
        project.apply_fields({'target_audience': ['freelancers'], 'idea_name': 'TrailMix'})
        assert project.target_audience == ['freelancers']
        assert project.idea_name == 'TrailMix'

    def test_apply_unknown_field(self):
        with pytest.raises(ValueError, match='Unknown project fields: overall_completion'):
            Project(id='p1').apply_fields({'overall_completion': 100})

    def test_defaults_after_insert(self, db_session):
        db_session.add(Project(idea_name='TrailMix'))
        db_session.commit()
        project = db_session.query(Project).one()
        assert project.id
        assert project.overall_completion == 0
        assert project.to_dict()['created_at'] is not None


class TestRecordHelpers:
    def test_updated_rejects_unknown(self):
        with pytest.raises(ValueError):
            ProjectRecord().updated(colour='green')

    def test_get_default(self):
        record = ProjectRecord(idea_name='TrailMix')
        assert record.get('idea_name') == 'TrailMix'
        assert record.get('one_liner', 'n/a') == 'n/a'
        assert record.get('bogus') is None

    def test_from_mapping_drops_unknown_keys(self):
        record = ProjectRecord.from_mapping({'id': 'p1', 'idea_name': 'TrailMix', 'created_at': 'yesterday'})
        assert record.id == 'p1'
        assert record.idea_name == 'TrailMix'


class TestAnalyzerRun:
    def test_to_dict_unsaved(self):
        run = AnalyzerRun(id='r1', project_id='p1', analyzer_type='clarity', status='pending')
        data = run.to_dict()
        assert data['id'] == 'r1'
        assert data['started_at'] is None
        assert data['created_at'] is None

    def test_defaults_after_insert(self, db_session):
        db_session.add(Project(id='p1'))
        db_session.add(AnalyzerRun(project_id='p1', analyzer_type='clarity'))
        db_session.commit()
        run = db_session.query(AnalyzerRun).one()
        assert run.status == 'pending'
        assert run.trigger_reason == 'auto'
        assert run.retry_count == 0
        assert run.created_at is not None
