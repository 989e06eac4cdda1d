"""
Health routes — liveness check and circuit breaker status.
"""
import logging
from flask import Blueprint, jsonify

from app.services.circuit_breaker import get_all_breakers

logger = logging.getLogger('routes.health')

bp = Blueprint('health', __name__)


@bp.route('/health')
def health_check():
    """Health check endpoint."""
    return jsonify({"status": "healthy"}), 200


@bp.route('/api/health')
def api_health():
    """Circuit breaker state for every external service."""
    services = {name: cb.get_health() for name, cb in get_all_breakers().items()}
    return jsonify({'services': services})


@bp.route('/api/health/<service>/reset', methods=['POST'])
def reset_circuit(service):
    """Manually close a tripped circuit breaker."""
    cb = get_all_breakers().get(service)
    if cb is None:
        return jsonify({'error': f'Unknown service: {service}'}), 404
    cb.reset()
    logger.info("Circuit '%s' reset via API", service)
    return jsonify({'ok': True, 'service': service, 'state': cb.state})
