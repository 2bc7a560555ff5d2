from flask import Blueprint, jsonify
from flask_login import login_required
from kervan.extensions import db
from kervan.middleware import role_required
from kervan.schemas import ShippingCalculateSchema, ShippingMethodUpdateSchema
from kervan.services import shipping_service
from kervan.services.audit_service import audit_current_user
from kervan.utils import validate_payload
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('shipping', __name__)


@bp.route('/api/shipping/methods', methods=['GET'])
def list_methods():
    return jsonify({'methods': shipping_service.get_methods()})


@bp.route('/api/shipping/calculate', methods=['POST'])
def calculate():
    payload, error = validate_payload(ShippingCalculateSchema)
    if error:
        return error

    data = payload.model_dump()
    result = shipping_service.calculate_shipping(
        data['items'], data['shipping_method'], data.get('subtotal'))
    return jsonify({
        'shipping': {
            'method': result['method'],
            'cost': float(result['cost']),
            'estimated_days': result['estimated_days'],
            'total_weight': float(result['total_weight']),
            'total_value': float(result['total_value']),
            'free_shipping_applied': result['free_shipping_applied'],
        }
    })


@bp.route('/api/shipping/track/<string:tracking_number>', methods=['GET'])
def track(tracking_number):
    return jsonify({
        'tracking': shipping_service.track_shipment(tracking_number),
    })


@bp.route('/api/shipping/methods/<string:method_id>', methods=['PUT'])
@login_required
@role_required('ADMIN')
def update_method(method_id):
    payload, error = validate_payload(ShippingMethodUpdateSchema)
    if error:
        return error

    changes = payload.model_dump(exclude_unset=True)
    method = shipping_service.update_method(method_id, changes)
    if method is None:
        return jsonify({'error': 'Shipping method not found'}), 404
    db.session.commit()

    audit_current_user(
        'SHIPPING_METHOD_UPDATE',
        'SETTINGS',
        None,
        {'method': method_id, 'fields': sorted(changes)})
    return jsonify({'ok': True, 'method': method})
