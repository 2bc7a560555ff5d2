from flask import Blueprint, request, jsonify
from flask_login import login_required, current_user
from kervan.extensions import db
from kervan.middleware import role_required
from kervan.models import (
    AuditLog,
    Category,
    Order,
    OrderItem,
    OrderStatus,
    PaymentStatus,
    Product,
    ProductStatus,
    Settings,
    User,
    UserRole,
    UserStatus,
)
from kervan.schemas import (
    OrderStatusSchema,
    RefundSchema,
    UserRoleSchema,
    UserStatusSchema,
)
from kervan.serializers import (
    serialize_category,
    serialize_order,
    serialize_product,
    serialize_user,
)
from kervan.services import order_service
from kervan.services.audit_service import audit_current_user
from kervan.services.search_service import build_product_query
from kervan.utils import (
    get_page_args,
    get_request_language,
    paginate_query,
    validate_payload,
)
from datetime import datetime, timedelta
from sqlalchemy import func, or_
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('admin', __name__)

# Orders that count towards revenue.
REVENUE_STATUSES = (
    OrderStatus.CONFIRMED,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
)

ANALYTICS_PERIODS = {
    '7d': timedelta(days=7),
    '30d': timedelta(days=30),
    '90d': timedelta(days=90),
    '1y': timedelta(days=365),
}


def _today_start():
    now = datetime.utcnow()
    return datetime(now.year, now.month, now.day)


def _parse_date(value):
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


@bp.route('/api/admin/dashboard', methods=['GET'])
@login_required
@role_required('ADMIN')
def dashboard():
    today = _today_start()
    revenue = db.session.query(
        func.coalesce(func.sum(Order.total), 0)
    ).filter(Order.status.in_(REVENUE_STATUSES)).scalar()
    today_revenue = db.session.query(
        func.coalesce(func.sum(Order.total), 0)
    ).filter(
        Order.status.in_(REVENUE_STATUSES),
        Order.created_at >= today
    ).scalar()

    low_stock_threshold = Settings.get_instance().get(
        'ecommerce.inventory.low_stock_threshold')

    stats = {
        'total_products': Product.query.filter_by(
            status=ProductStatus.ACTIVE).count(),
        'total_categories': Category.query.count(),
        'total_orders': Order.query.count(),
        'total_users': User.query.filter_by(
            status=UserStatus.ACTIVE).count(),
        'total_revenue': float(revenue or 0),
        'today_orders': Order.query.filter(
            Order.created_at >= today).count(),
        'today_users': User.query.filter(
            User.created_at >= today).count(),
        'today_revenue': float(today_revenue or 0),
        'pending_orders': Order.query.filter_by(
            status=OrderStatus.PENDING).count(),
        'low_stock_products': Product.query.filter(
            Product.track_inventory.is_(True),
            Product.stock <= low_stock_threshold
        ).count(),
    }
    return jsonify(stats)


@bp.route('/api/admin/products', methods=['GET'])
@login_required
@role_required('ADMIN')
def list_products():
    page, per_page = get_page_args()
    query = build_product_query(
        search=request.args.get('search'),
        category=request.args.get('category'),
        status=request.args.get('status', 'ALL'),
        sort=request.args.get('sort', 'newest'),
    )
    if query is None:
        return jsonify({
            'items': [], 'page': page, 'pages': 0, 'per_page': per_page,
            'total': 0, 'has_next': False, 'has_prev': False,
        })

    result = paginate_query(query, page, per_page)
    lang = get_request_language()
    result['items'] = [
        serialize_product(p, lang, detail=True) for p in result['items']
    ]
    return jsonify(result)


@bp.route('/api/admin/products/low-stock', methods=['GET'])
@login_required
@role_required('ADMIN')
def low_stock_products():
    limit = min(max(request.args.get('limit', 50, type=int) or 50, 1), 200)
    products = Product.query.filter(
        Product.track_inventory.is_(True),
        Product.stock <= Product.min_stock_level,
        Product.status != ProductStatus.DISCONTINUED
    ).order_by(Product.stock.asc(), Product.id).limit(limit).all()

    lang = get_request_language()
    return jsonify({
        'items': [serialize_product(p, lang, detail=True) for p in products],
        'total': len(products),
    })


@bp.route('/api/admin/orders', methods=['GET'])
@login_required
@role_required('ADMIN')
def list_orders():
    page, per_page = get_page_args()
    query = Order.query

    status = request.args.get('status')
    if status and status.lower() != 'all':
        try:
            query = query.filter(Order.status == OrderStatus(status.upper()))
        except ValueError:
            return jsonify({'error': 'Invalid order status'}), 400

    payment_status = request.args.get('payment_status')
    if payment_status:
        try:
            query = query.filter(
                Order.payment_status == PaymentStatus(payment_status.upper()))
        except ValueError:
            return jsonify({'error': 'Invalid payment status'}), 400

    search = (request.args.get('search') or '').strip()
    if search:
        pattern = f'%{search}%'
        query = query.outerjoin(User, Order.user_id == User.id).filter(
            or_(
                Order.order_number.ilike(pattern),
                Order.guest_email.ilike(pattern),
                Order.shipping_email.ilike(pattern),
                User.email.ilike(pattern),
            )
        )

    date_from = _parse_date(request.args.get('date_from'))
    if date_from:
        query = query.filter(Order.created_at >= date_from)
    date_to = _parse_date(request.args.get('date_to'))
    if date_to:
        query = query.filter(Order.created_at <= date_to)

    result = paginate_query(
        query.order_by(Order.created_at.desc(), Order.id.desc()),
        page,
        per_page)
    lang = get_request_language()
    result['items'] = [serialize_order(o, lang) for o in result['items']]
    return jsonify(result)


@bp.route('/api/admin/orders/<int:order_id>/status', methods=['PUT'])
@login_required
@role_required('ADMIN')
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


@bp.route('/api/admin/orders/<int:order_id>/refund', methods=['POST'])
@login_required
@role_required('ADMIN')
def refund_order(order_id):
    order = db.session.get(Order, order_id)
    if order is None:
        return jsonify({'error': 'Order not found'}), 404

    payload, error = validate_payload(RefundSchema)
    if error:
        return error

    order_service.refund_order(order, current_user, payload.reason)

    audit_current_user(
        'ORDER_REFUND',
        'ORDER',
        order.id,
        {'total': order.total, 'reason': payload.reason})
    return jsonify({
        'ok': True,
        'order': serialize_order(order, get_request_language(), detail=True),
    })


@bp.route('/api/admin/users', methods=['GET'])
@login_required
@role_required('ADMIN')
def list_users():
    page, per_page = get_page_args()
    query = User.query

    search = (request.args.get('search') or '').strip()
    if search:
        pattern = f'%{search}%'
        query = query.filter(
            or_(
                User.email.ilike(pattern),
                User.first_name.ilike(pattern),
                User.last_name.ilike(pattern),
                User.phone.ilike(pattern),
            )
        )

    role = request.args.get('role')
    if role and role.lower() != 'all':
        try:
            query = query.filter(User.role == UserRole(role.upper()))
        except ValueError:
            return jsonify({'error': 'Invalid role'}), 400

    status = request.args.get('status')
    if status and status.lower() != 'all':
        try:
            query = query.filter(User.status == UserStatus(status.upper()))
        except ValueError:
            return jsonify({'error': 'Invalid status'}), 400

    result = paginate_query(
        query.order_by(User.created_at.desc(), User.id.desc()),
        page,
        per_page)
    order_counts = dict(
        db.session.query(Order.user_id, func.count(Order.id)).filter(
            Order.user_id.in_([u.id for u in result['items']])
        ).group_by(Order.user_id).all()
    ) if result['items'] else {}

    items = []
    for user in result['items']:
        data = serialize_user(user)
        data['order_count'] = order_counts.get(user.id, 0)
        items.append(data)
    result['items'] = items
    return jsonify(result)


@bp.route('/api/admin/users/<int:user_id>/status', methods=['PUT'])
@login_required
@role_required('ADMIN')
def update_user_status(user_id):
    user = db.session.get(User, user_id)
    if user is None:
        return jsonify({'error': 'User not found'}), 404

    payload, error = validate_payload(UserStatusSchema)
    if error:
        return error

    if user.id == current_user.id:
        return jsonify({'error': 'You cannot change your own status'}), 400

    before = user.status.value
    user.status = UserStatus(payload.status)
    db.session.commit()

    audit_current_user(
        'USER_STATUS_UPDATE',
        'USER',
        user.id,
        {'from': before, 'to': user.status.value})
    return jsonify({'ok': True, 'user': serialize_user(user)})


@bp.route('/api/admin/users/<int:user_id>/role', methods=['PUT'])
@login_required
@role_required('ADMIN')
def update_user_role(user_id):
    user = db.session.get(User, user_id)
    if user is None:
        return jsonify({'error': 'User not found'}), 404

    payload, error = validate_payload(UserRoleSchema)
    if error:
        return error

    if user.id == current_user.id:
        return jsonify({'error': 'You cannot change your own role'}), 400

    before = user.role.value
    user.role = UserRole(payload.role)
    db.session.commit()

    audit_current_user(
        'USER_ROLE_UPDATE',
        'USER',
        user.id,
        {'from': before, 'to': user.role.value})
    return jsonify({'ok': True, 'user': serialize_user(user)})


@bp.route('/api/admin/settings', methods=['GET'])
@login_required
@role_required('ADMIN')
def get_settings():
    return jsonify({'settings': Settings.get_instance().to_dict()})


@bp.route('/api/admin/settings', methods=['PUT'])
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

    audit_current_user('SETTINGS_UPDATE', 'SETTINGS', settings.id,
                       {'sections': changed})
    return jsonify({'ok': True, 'settings': settings.to_dict()})


@bp.route('/api/admin/analytics', methods=['GET'])
@login_required
@role_required('ADMIN')
def analytics():
    period = request.args.get('period', '30d')
    if period not in ANALYTICS_PERIODS:
        period = '30d'
    start = datetime.utcnow() - ANALYTICS_PERIODS[period]

    total_revenue, total_orders, average = db.session.query(
        func.coalesce(func.sum(Order.total), 0),
        func.count(Order.id),
        func.coalesce(func.avg(Order.total), 0),
    ).filter(Order.created_at >= start).one()

    new_customers = User.query.filter(
        User.role == UserRole.CUSTOMER,
        User.created_at >= start
    ).count()

    sold = (
        db.session.query(
            OrderItem.product_id,
            func.sum(OrderItem.quantity).label('quantity'),
            func.sum(OrderItem.total_price).label('revenue'),
        )
        .join(Order, OrderItem.order_id == Order.id)
        .filter(
            Order.created_at >= start,
            Order.status.notin_(
                (OrderStatus.CANCELLED, OrderStatus.REFUNDED)),
            OrderItem.product_id.isnot(None),
        )
    )
    top_rows = sold.group_by(OrderItem.product_id).order_by(
        func.sum(OrderItem.quantity).desc()).limit(5).all()

    lang = get_request_language()
    top_products = []
    for product_id, quantity, revenue in top_rows:
        product = db.session.get(Product, product_id)
        if product is None:
            continue
        entry = serialize_product(product, lang)
        entry['quantity_sold'] = int(quantity or 0)
        entry['revenue'] = float(revenue or 0)
        top_products.append(entry)

    category_rows = (
        db.session.query(
            Product.category_id,
            func.sum(OrderItem.quantity),
            func.sum(OrderItem.total_price),
        )
        .join(OrderItem, OrderItem.product_id == Product.id)
        .join(Order, OrderItem.order_id == Order.id)
        .filter(
            Order.created_at >= start,
            Order.status.notin_(
                (OrderStatus.CANCELLED, OrderStatus.REFUNDED)),
        )
        .group_by(Product.category_id)
        .order_by(func.sum(OrderItem.total_price).desc())
        .limit(5)
        .all()
    )
    top_categories = []
    for category_id, quantity, revenue in category_rows:
        category = db.session.get(Category, category_id)
        if category is None:
            continue
        entry = serialize_category(category, lang)
        entry['quantity_sold'] = int(quantity or 0)
        entry['revenue'] = float(revenue or 0)
        top_categories.append(entry)

    recent = AuditLog.query.order_by(
        AuditLog.created_at.desc(), AuditLog.id.desc()).limit(10).all()

    return jsonify({
        'period': period,
        'overview': {
            'total_revenue': float(total_revenue or 0),
            'total_orders': total_orders,
            'average_order_value': round(float(average or 0), 2),
            'new_customers': new_customers,
        },
        'top_products': top_products,
        'top_categories': top_categories,
        'recent_activity': [
            {
                'action': a.action,
                'actor_id': a.actor_id,
                'actor_role': a.actor_role,
                'target_type': a.target_type,
                'target_id': a.target_id,
                'created_at': a.created_at.isoformat(),
            }
            for a in recent
        ],
    })
