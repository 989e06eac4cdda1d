"""
Project store — load and save brand foundation projects.

save_record() is the single write path for project fields: it replaces whole
fields, recomputes bucket and overall completion, and stores both with the
row so progress reads never recompute.
"""
import logging
import typing
from typing import Any, Dict, Mapping, Optional

from app.database import get_session
from app.errors import ProjectNotFoundError
from app.foundation.buckets import BucketCatalog, DEFAULT_CATALOG
from app.foundation.completion import compute_bucket_completions, overall_completion
from app.foundation.record import FIELD_NAMES, ProjectRecord
from app.models.project import Project

logger = logging.getLogger('services.projects')

_FIELD_TYPES = {
    name: hint for name, hint in typing.get_type_hints(ProjectRecord).items() if name in FIELD_NAMES
}


def _expected_type(name: str):
    """Unwrap Optional[X] → X, then List[str] → list, Dict[...] → dict."""
    hint = _FIELD_TYPES[name]
    args = [a for a in typing.get_args(hint) if a is not type(None)]
    inner = args[0] if args else hint
    return typing.get_origin(inner) or inner


def coerce_fields(changes: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Validate incoming field values against the record schema.

    Raises ValueError for unknown field names or values of the wrong shape.
    None always clears a field. Numeric strings are accepted for numbers.
    """
    unknown = sorted(set(changes) - FIELD_NAMES)
    if unknown:
        raise ValueError(f"Unknown project fields: {', '.join(unknown)}")

    clean = {}
    for name, value in changes.items():
        if value is None:
            clean[name] = None
            continue
        expected = _expected_type(name)
        if expected is list:
            if isinstance(value, str):
                value = [value] if value.strip() else []
            if not isinstance(value, (list, tuple)):
                raise ValueError(f"Field '{name}' must be a list")
            value = list(value)
        elif expected is dict:
            if not isinstance(value, dict):
                raise ValueError(f"Field '{name}' must be an object")
        elif expected is int:
            if isinstance(value, bool):
                raise ValueError(f"Field '{name}' must be an integer")
            try:
                value = int(value)
            except (TypeError, ValueError):
                raise ValueError(f"Field '{name}' must be an integer")
        elif expected is float:
            if isinstance(value, bool):
                raise ValueError(f"Field '{name}' must be a number")
            try:
                value = float(value)
            except (TypeError, ValueError):
                raise ValueError(f"Field '{name}' must be a number")
        elif expected is str:
            if not isinstance(value, str):
                raise ValueError(f"Field '{name}' must be a string")
        clean[name] = value
    return clean


def _refresh_completion(project: Project, catalog: BucketCatalog):
    record = project.to_record()
    buckets = compute_bucket_completions(record, catalog)
    project.bucket_completion = buckets
    project.overall_completion = overall_completion(buckets, catalog)


def create_project(fields: Optional[Mapping[str, Any]] = None, catalog: BucketCatalog = DEFAULT_CATALOG) -> Dict[str, Any]:
    """INSERT a project with optional initial fields. Returns its dict form."""
    clean = coerce_fields(fields or {})
    session = get_session()
    try:
        project = Project()
        project.apply_fields(clean)
        _refresh_completion(project, catalog)
        session.add(project)
        session.commit()
        logger.info("Created project %s (overall=%d%%)", project.id, project.overall_completion)
        return project.to_dict()
    except Exception:
        session.rollback()
        logger.error("Failed to create project", exc_info=True)
        raise
    finally:
        session.close()


def load_record(project_id: str) -> Optional[ProjectRecord]:
    session = get_session()
    try:
        project = session.get(Project, project_id)
        return project.to_record() if project is not None else None
    finally:
        session.close()


def get_project(project_id: str) -> Optional[Dict[str, Any]]:
    session = get_session()
    try:
        project = session.get(Project, project_id)
        return project.to_dict() if project is not None else None
    finally:
        session.close()


def save_record(project_id: str, fields: Mapping[str, Any], catalog: BucketCatalog = DEFAULT_CATALOG) -> ProjectRecord:
    """
    Replace whole fields on a project and store the recomputed completion.

    Raises ProjectNotFoundError, or ValueError for bad field names/values.
    """
    clean = coerce_fields(fields)
    session = get_session()
    try:
        project = session.get(Project, project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        project.apply_fields(clean)
        _refresh_completion(project, catalog)
        session.commit()
        logger.info("Saved %d fields on project %s (overall=%d%%)",
                    len(clean), project_id, project.overall_completion)
        return project.to_record()
    except ProjectNotFoundError:
        raise
    except Exception:
        session.rollback()
        logger.error("Failed to save project %s", project_id, exc_info=True)
        raise
    finally:
        session.close()
