from flask import Blueprint, request, jsonify
from flask_login import login_required
from kervan.extensions import db
from kervan.middleware import role_required
from kervan.models import Settings
from kervan.services.audit_service import audit_current_user
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('settings', __name__)


@bp.route('/api/settings', methods=['GET'])
def get_public_settings():
    return jsonify({'settings': Settings.get_instance().get_public_settings()})


@bp.route('/api/settings', methods=['PUT'])
@login_required
@role_required('ADMIN')
def update_settings():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'JSON object expected'}), 400

    settings = Settings.get_instance()
    try:
        changed = settings.update_sections(data)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    if not changed:
        return jsonify({'error': 'No known settings sections supplied'}), 400
    db.session.commit()

    logger.info("Settings sections replaced: %s", changed)
    audit_current_user('SETTINGS_UPDATE', 'SETTINGS', settings.id,
                       {'sections': changed})
    return jsonify({'ok': True, 'settings': settings.to_dict()})
