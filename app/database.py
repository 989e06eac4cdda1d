"""
Database engine + session factory.

SQLite for local dev (DATABASE_URL default), Postgres in production.
get_session() always returns a new session from SessionLocal; callers commit
and close it themselves.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from sqlalchemy.pool import StaticPool

from app.config import DATABASE_URL


class Base(DeclarativeBase):
    pass


def make_engine(url: str):
    """Engine with the right kwargs for SQLite (incl. in-memory) or Postgres."""
    # Hosted Postgres often hands out postgres:// but SQLAlchemy 2.x requires postgresql://
    url = url.replace('postgres://', 'postgresql://', 1)

    if url.startswith('sqlite'):
        kwargs = {'connect_args': {'check_same_thread': False}}
        if ':memory:' in url or url in ('sqlite://', 'sqlite:///'):
            # One shared connection, or every session would see its own empty DB
            kwargs['poolclass'] = StaticPool
        return create_engine(url, **kwargs)
    return create_engine(url, pool_pre_ping=True, pool_size=5, max_overflow=10)


engine = make_engine(DATABASE_URL)

SessionLocal = sessionmaker(bind=engine)


def get_session():
    """Return a new DB session."""
    return SessionLocal()
