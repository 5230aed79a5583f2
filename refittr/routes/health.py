"""
Health check endpoints for monitoring the dashboard and its database.

- /health: process is up (no database round trip)
- /health/ready: database reachable, required tables present, storage configured
- /health/live: liveness probe for container restarts
"""

import os
from datetime import datetime

from flask import Blueprint, jsonify, current_app
from sqlalchemy import inspect, text

from refittr.extensions import db


health_bp = Blueprint('health', __name__)

REQUIRED_TABLES = {
    'users',
    'builders',
    'house_schemas',
    'rooms',
    'streets',
    'developments',
    'house_schema_streets',
    'mailing_list',
}

STORAGE_CREDENTIALS = {
    'supabase': ('SUPABASE_URL', 'SUPABASE_SERVICE_ROLE_KEY'),
    'cloudinary': ('CLOUDINARY_URL',),
    'local': (),
}


def _storage_status():
    backend = (current_app.config.get('STORAGE_BACKEND') or 'local').lower()
    missing = [key for key in STORAGE_CREDENTIALS.get(backend, ()) if not current_app.config.get(key)]
    # Names only; credential values never leave the server.
    return backend, missing


@health_bp.route('/health')
def health_check():
    """Lightweight check for load balancer probes."""
    return jsonify({
        'status': 'healthy',
        'timestamp': datetime.utcnow().isoformat(),
        'service': 'refittr',
    }), 200


@health_bp.route('/health/ready')
def readiness_check():
    """
    Readiness check including database connectivity.

    Returns 200 only if the database answers, every required table exists and
    the selected storage backend has its settings; 503 otherwise.
    """
    checks = {
        'application': 'healthy',
        'database': 'unknown',
        'timestamp': datetime.utcnow().isoformat(),
    }
    status_code = 200

    try:
        db.session.execute(text('SELECT 1'))
        db.session.commit()
        checks['database'] = 'healthy'
    except Exception as exc:
        db.session.rollback()
        checks['database'] = 'unhealthy'
        checks['database_error'] = str(exc)
        status_code = 503
        current_app.logger.error('Database health check failed: %s', exc, exc_info=True)

    if checks['database'] == 'healthy':
        try:
            missing = REQUIRED_TABLES - set(inspect(db.engine).get_table_names())
        except Exception as exc:
            checks['schema'] = 'unknown'
            checks['schema_error'] = str(exc)
            current_app.logger.error('Schema health check failed: %s', exc, exc_info=True)
        else:
            if missing:
                checks['schema'] = 'incomplete'
                checks['missing_tables'] = sorted(missing)
                status_code = 503
            else:
                checks['schema'] = 'complete'

    backend, missing_settings = _storage_status()
    checks['storage'] = backend
    if missing_settings:
        checks['storage_missing'] = missing_settings
        status_code = 503

    checks['overall'] = 'healthy' if status_code == 200 else 'unhealthy'
    return jsonify(checks), status_code


@health_bp.route('/health/live')
def liveness_check():
    """Liveness probe: the process is alive."""
    return jsonify({
        'status': 'alive',
        'pid': os.getpid(),
        'timestamp': datetime.utcnow().isoformat(),
    }), 200
