"""
Analyzer routes — trigger API, per-project analyzer status, registry listing.
"""
import logging
from flask import Blueprint, request, jsonify

from app.analyzers import orchestrator
from app.errors import ProjectNotFoundError

logger = logging.getLogger('routes.analyzers')

bp = Blueprint('analyzers', __name__)


def _failure(message, status):
    return jsonify({'success': False, 'triggered': [], 'message': message, 'error': message}), status


@bp.route('/api/analyzers')
def list_analyzers():
    """Registered analyzers in evaluation order."""
    return jsonify({'analyzers': [d.to_dict() for d in orchestrator.REGISTRY]})


@bp.route('/api/analyzers/trigger', methods=['POST'])
def trigger():
    """
    Body: {projectId, analyzerType?, force?}
    Returns: {success, triggered, message}
    """
    data = request.json or {}
    project_id = data.get('projectId')
    analyzer_type = data.get('analyzerType') or None
    force = bool(data.get('force', False))

    if not project_id:
        return _failure('Missing projectId', 400)

    try:
        if force and analyzer_type:
            result = orchestrator.force_trigger(project_id, analyzer_type)
        else:
            result = orchestrator.trigger_analyzers(project_id, analyzer_type)
    except ProjectNotFoundError:
        return _failure('Project not found', 404)
    except ValueError as e:
        return _failure(str(e), 400)
    except Exception as e:
        logger.error("Trigger failed for project %s: %s", project_id, e, exc_info=True)
        return _failure('Failed to trigger analyzers', 500)

    logger.info("Trigger for project %s: %s", project_id, result['triggered'])
    return jsonify(result)


@bp.route('/api/projects/<project_id>/analyzers')
def project_analyzers(project_id):
    """Status, missing inputs and latest run for every analyzer."""
    try:
        overview = orchestrator.analyzer_overview(project_id)
    except ProjectNotFoundError:
        return jsonify({'error': f'Project {project_id} not found'}), 404
    return jsonify({'project_id': project_id, 'analyzers': overview})
