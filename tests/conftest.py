"""Shared test fixtures."""
from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest
from unittest.mock import patch, MagicMock
from sqlalchemy.orm import sessionmaker

from app.database import Base, make_engine
from app.foundation.record import ProjectRecord


@pytest.fixture
def db_engine():
    """In-memory SQLite engine with schema created."""
    engine = make_engine('sqlite:///:memory:')
    import app.models.project
    import app.models.analyzer_run
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture(autouse=True)
def patch_session_factory(db_engine):
    """Route every get_session() call to the in-memory database.

    get_session() looks up app.database.SessionLocal at call time, so patching
    the factory covers modules that imported get_session directly.
    """
    TestSession = sessionmaker(bind=db_engine)
    with patch('app.database.SessionLocal', TestSession):
        yield TestSession


@pytest.fixture
def db_session(patch_session_factory):
    """Session for arranging and inspecting rows directly."""
    session = patch_session_factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def mock_redis():
    """Mock Redis client. Returns a MagicMock with common Redis methods."""
    mock = MagicMock()
    mock.get.return_value = None
    mock.hgetall.return_value = {}
    mock.incr.return_value = 1
    with patch('app.extensions.redis_client', mock):
        yield mock


@pytest.fixture
def mock_queue():
    """Replace the RQ queue; enqueued jobs are recorded, not run."""
    queue = MagicMock()
    with patch('app.analyzers.orchestrator.get_queue', return_value=queue):
        yield queue


@pytest.fixture
def app(mock_redis):
    """Flask test app. Circuit breakers are registered against the mock Redis."""
    from app import create_app
    app = create_app()
    app.config['TESTING'] = True
    yield app


@pytest.fixture
def client(app):
    """Flask test client."""
    with app.test_client() as c:
        yield c


@pytest.fixture
def make_run():
    """Factory fixture — run-like objects for the pure trigger logic.

    Each call is one second newer than the last unless created_at is given.
    """
    clock = {'t': datetime(2026, 1, 15, 10, 0, 0), 'n': 0}

    def _make(analyzer_type, status='completed', **overrides):
        clock['t'] += timedelta(seconds=1)
        clock['n'] += 1
        defaults = dict(
            id=f'run-{clock["n"]}',
            project_id='proj-1',
            analyzer_type=analyzer_type,
            status=status,
            created_at=clock['t'],
            error_message=None,
            retry_count=0,
        )
        defaults.update(overrides)
        return SimpleNamespace(**defaults)
    return _make


@pytest.fixture
def ready_record():
    """Record that passes the readiness gate and fills market/model fields."""
    return ProjectRecord(
        id='proj-1',
        idea_name='TrailMix',
        one_liner='Group hiking trips for remote workers',
        problem_statement='Remote workers are isolated and want in-person adventure',
        target_audience=['remote workers'],
        secret_sauce='Local guides who are also remote workers',
        validation_status='interviews',
        customer_type='b2c',
        market_size_estimate='$2B',
    )
