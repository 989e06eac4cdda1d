"""
Project routes — create/read/update projects, progress panel, bucket catalog.

PATCH saves fields first, then re-evaluates analyzer triggers; the response
carries both the saved project and what was triggered.
"""
import logging
from flask import Blueprint, request, jsonify

from app.analyzers import orchestrator
from app.errors import ProjectNotFoundError
from app.foundation.completion import completion_summary
from app.services.projects import create_project, get_project, load_record, save_record

logger = logging.getLogger('routes.projects')

bp = Blueprint('projects', __name__)


def _not_found(project_id):
    return jsonify({'error': f'Project {project_id} not found'}), 404


@bp.route('/api/buckets')
def list_buckets():
    """Bucket catalog: fields, weights and required fields."""
    catalog = orchestrator.CATALOG
    return jsonify({
        'buckets': catalog.to_list(),
        'total_weight': catalog.total_weight,
        'required_tier': [b.id for b in catalog.required_tier()],
    })


@bp.route('/api/projects', methods=['POST'])
def new_project():
    data = request.json or {}
    try:
        project = create_project(data.get('fields') or {})
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    return jsonify(project), 201


@bp.route('/api/projects/<project_id>')
def show_project(project_id):
    project = get_project(project_id)
    if project is None:
        return _not_found(project_id)
    return jsonify(project)


@bp.route('/api/projects/<project_id>', methods=['PATCH'])
def update_project(project_id):
    """Replace whole fields, then auto-trigger analyzers."""
    data = request.json or {}
    fields = data.get('fields')
    if not isinstance(fields, dict) or not fields:
        return jsonify({'error': 'fields must be a non-empty object'}), 400

    try:
        save_record(project_id, fields, orchestrator.CATALOG)
    except ProjectNotFoundError:
        return _not_found(project_id)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    try:
        trigger = orchestrator.on_record_changed(project_id)
    except Exception as e:
        # Fields are saved; a trigger failure must not turn the save into an error
        logger.error("Trigger evaluation failed for project %s: %s", project_id, e, exc_info=True)
        trigger = {'success': False, 'triggered': [], 'message': 'Failed to trigger analyzers'}

    return jsonify({'project': get_project(project_id), 'analyzers': trigger})


@bp.route('/api/projects/<project_id>/progress')
def progress(project_id):
    """Bucket completion, overall completion and readiness."""
    record = load_record(project_id)
    if record is None:
        return _not_found(project_id)
    summary = completion_summary(record, orchestrator.CATALOG)
    summary['project_id'] = project_id
    return jsonify(summary)
