from flask import Blueprint, request, jsonify
from flask_login import login_required, current_user
from kervan.extensions import db
from kervan.middleware import role_required
from kervan.models import Order, OrderSource, OrderStatus
from kervan.schemas import OrderCreateSchema, OrderStatusSchema
from kervan.serializers import serialize_order
from kervan.services import order_service
from kervan.services.audit_service import audit_current_user, log_audit
from kervan.utils import (
    client_ip,
    get_page_args,
    get_request_language,
    paginate_query,
    validate_payload,
)
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('orders', __name__)


def _request_meta():
    return {
        'source': OrderSource.WEBSITE,
        'user_agent': (request.headers.get('User-Agent') or '')[:500] or None,
        'ip_address': client_ip(),
        'referrer': (request.referrer or '')[:500] or None,
    }


@bp.route('/api/orders', methods=['GET'])
@login_required
def list_orders():
    page, per_page = get_page_args()
    query = Order.query.filter_by(user_id=current_user.id)

    status = request.args.get('status')
    if status:
        try:
            query = query.filter(Order.status == OrderStatus(status.upper()))
        except ValueError:
            return jsonify({'error': 'Invalid order status'}), 400

    result = paginate_query(
        query.order_by(Order.created_at.desc(), Order.id.desc()),
        page,
        per_page)
    lang = get_request_language()
    result['items'] = [serialize_order(o, lang) for o in result['items']]
    return jsonify(result)


@bp.route('/api/orders/<int:order_id>', methods=['GET'])
@login_required
def get_order(order_id):
    order = db.session.get(Order, order_id)
    if order is None or not order_service.visible_to(order, current_user):
        return jsonify({'error': 'Order not found'}), 404

    return jsonify({
        'order': serialize_order(order, get_request_language(), detail=True),
    })


@bp.route('/api/orders', methods=['POST'])
def create_order():
    payload, error = validate_payload(OrderCreateSchema)
    if error:
        return error

    user = current_user if current_user.is_authenticated else None
    order = order_service.create_order(
        payload.model_dump(exclude_unset=True), user, _request_meta())

    if user is not None:
        audit_current_user(
            'ORDER_CREATE',
            'ORDER',
            order.id,
            {'order_number': order.order_number, 'total': order.total})
    else:
        log_audit(
            action='ORDER_CREATE_GUEST',
            target_type='ORDER',
            target_id=order.id,
            payload={
                'order_number': order.order_number,
                'total': order.total,
                'email': order.guest_email,
            })

    return jsonify({
        'ok': True,
        'order': serialize_order(order, get_request_language(), detail=True),
    }), 201


@bp.route('/api/orders/<int:order_id>/cancel', methods=['POST'])
@login_required
def cancel_order(order_id):
    order = Order.query.filter_by(
        id=order_id,
        user_id=current_user.id
    ).first()
    if order is None:
        return jsonify({'error': 'Order not found'}), 404

    data = request.get_json(silent=True) or {}
    reason = (str(data.get('reason') or '')).strip()[:300] or None
    previous = order_service.cancel_order(order, current_user, reason)

    audit_current_user(
        'ORDER_CANCEL_USER',
        'ORDER',
        order.id,
        {'status_before': previous.value, 'reason': reason})
    return jsonify({'ok': True, 'new_status': order.status.value})


@bp.route('/api/orders/<int:order_id>/status', methods=['PUT'])
@login_required
@role_required('ADMIN', 'MANAGER')
def update_order_status(order_id):
    order = db.session.get(Order, order_id)
    if order is None:
        return jsonify({'error': 'Order not found'}), 404

    payload, error = validate_payload(OrderStatusSchema)
    if error:
        return error

    previous = order_service.change_status(
        order,
        OrderStatus(payload.status),
        note=payload.note,
        updated_by=current_user.id,
        tracking_number=payload.tracking_number,
        carrier=payload.carrier)

    audit_current_user(
        'ORDER_STATUS_UPDATE',
        'ORDER',
        order.id,
        {'from': previous.value, 'to': order.status.value})
    return jsonify({
        'ok': True,
        'order': serialize_order(order, get_request_language(), detail=True),
    })
