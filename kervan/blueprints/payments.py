from flask import Blueprint, jsonify
from flask_login import login_required, current_user
from kervan.extensions import db
from kervan.models import Order, PaymentMethod
from kervan.schemas import PaymentProcessSchema, PaymentVerifySchema
from kervan.services import order_service, payment_service
from kervan.services.audit_service import audit_current_user
from kervan.utils import validate_payload
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('payments', __name__)


def _load_order(order_id):
    order = db.session.get(Order, order_id)
    if order is None or not order_service.visible_to(order, current_user):
        return None
    return order


@bp.route('/api/payments/methods', methods=['GET'])
def list_methods():
    return jsonify({'methods': payment_service.get_methods()})


@bp.route('/api/payments/process', methods=['POST'])
@login_required
def process():
    payload, error = validate_payload(PaymentProcessSchema)
    if error:
        return error

    order = _load_order(payload.order_id)
    if order is None:
        return jsonify({'error': 'Order not found'}), 404

    payment = payment_service.process_payment(
        order,
        PaymentMethod(payload.payment_method),
        payload.amount,
        card_last4=payload.card_last4,
        card_brand=payload.card_brand)

    audit_current_user(
        'PAYMENT_PROCESS',
        'ORDER',
        order.id,
        {
            'method': payment['payment_method'],
            'status': payment['status'],
            'amount': payment['amount'],
        })
    return jsonify({'ok': True, 'payment': payment})


@bp.route('/api/payments/verify', methods=['POST'])
@login_required
def verify():
    payload, error = validate_payload(PaymentVerifySchema)
    if error:
        return error

    order = _load_order(payload.order_id)
    if order is None:
        return jsonify({'error': 'Order not found'}), 404

    verification = payment_service.verify_payment(
        order, payload.transaction_id)
    audit_current_user(
        'PAYMENT_VERIFY',
        'ORDER',
        order.id,
        {'verified': verification['verified']})
    return jsonify({'ok': True, 'verification': verification})
