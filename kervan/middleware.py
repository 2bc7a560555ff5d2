from flask import request, jsonify
from flask_login import current_user
from functools import wraps
from kervan.helpers import localized
import logging

logger = logging.getLogger(__name__)

# Paths that stay reachable while the shop is in maintenance mode.
MAINTENANCE_WHITELIST_PREFIXES = (
    '/api/auth/',
    '/api/admin/',
    '/api/settings',
    '/api/health',
)


def is_maintenance_exempt(path: str) -> bool:
    if not path.startswith('/api/'):
        return True
    return path.startswith(MAINTENANCE_WHITELIST_PREFIXES)


def setup_maintenance_middleware(app):

    @app.before_request
    def check_maintenance():
        from kervan.models import Settings
        from kervan.utils import client_ip, get_request_language

        path = request.path
        if request.method == 'OPTIONS' or is_maintenance_exempt(path):
            return None

        maintenance = Settings.get_instance().section('maintenance')
        if not maintenance.get('enabled'):
            return None

        if current_user.is_authenticated and \
                current_user.role.value == 'ADMIN':
            return None

        ip = client_ip()
        if ip in (maintenance.get('allowed_ips') or []):
            return None

        message = localized(
            maintenance.get('message'),
            get_request_language()) or 'Service is under maintenance'
        logger.info("Maintenance mode blocked %s %s from %s",
                    request.method, path, ip)
        return jsonify({
            'error': message,
            'maintenance': True,
            'estimated_time': maintenance.get('estimated_time'),
        }), 503


def role_required(*allowed_roles):
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_user.is_authenticated:
                return jsonify({'error': 'Not logged in'}), 401

            # allowed_roles is a list of role names.
            if current_user.role.value not in allowed_roles:
                logger.warning(
                    "User %s attempted to access roles %s, current role: %s",
                    current_user.id,
                    allowed_roles,
                    current_user.role.value,
                )
                return jsonify({'error': 'Insufficient permissions'}), 403

            return f(*args, **kwargs)
        return decorated_function
    return decorator
