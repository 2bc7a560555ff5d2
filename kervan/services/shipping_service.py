from datetime import datetime, timedelta
from decimal import Decimal
from kervan.extensions import db
from kervan.helpers import money, to_decimal
from kervan.models import Order, OrderStatus, Product, Settings
from kervan.utils import ApiError
import copy
import logging

logger = logging.getLogger(__name__)

FREE_WEIGHT_UNITS = Decimal('10')
PRICE_PER_EXTRA_UNIT = Decimal('0.5')
DEFAULT_ITEM_WEIGHT = Decimal('1')


def get_methods(enabled_only=True):
    methods = Settings.get_instance().section('shipping')['methods']
    if enabled_only:
        return [m for m in methods if m.get('enabled')]
    return methods


def find_method(method_id, enabled_only=True):
    for method in get_methods(enabled_only=enabled_only):
        if method.get('id') == method_id:
            return method
    return None


def _item_weight(item, product):
    weight = item.get('weight')
    if weight is None and product is not None:
        weight = (product.specifications or {}).get('weight')
    if weight in (None, ''):
        return DEFAULT_ITEM_WEIGHT
    return to_decimal(weight)


def _item_price(item, product):
    price = item.get('price')
    if price is None and product is not None:
        price = product.get_price_for_quantity(item['quantity'])
    return to_decimal(price)


def calculate_shipping(items, method_id, subtotal=None):
    """Price a shipment.

    ``items`` are dicts with ``quantity`` and optionally ``product_id``,
    ``weight`` and ``price``. Raises ApiError for an unknown method or a
    free method below its minimum order.
    """
    method = find_method(method_id)
    if method is None:
        raise ApiError('Invalid shipping method')

    total_weight = Decimal('0')
    total_value = Decimal('0')
    for item in items:
        product = None
        if item.get('product_id') is not None:
            product = db.session.get(Product, item['product_id'])
        quantity = item['quantity']
        total_weight += _item_weight(item, product) * quantity
        total_value += _item_price(item, product) * quantity

    if subtotal is not None:
        total_value = to_decimal(subtotal)

    minimum = method.get('minimum_order')
    if minimum is not None and total_value < to_decimal(minimum):
        raise ApiError(
            f"{method.get('name', method_id)} requires a minimum order "
            f"of {money(minimum)}")

    cost = to_decimal(method.get('cost'))
    if total_weight > FREE_WEIGHT_UNITS:
        cost += (total_weight - FREE_WEIGHT_UNITS) * PRICE_PER_EXTRA_UNIT

    threshold = to_decimal(
        Settings.get_instance().get('shipping.free_shipping_threshold'))
    free_shipping_applied = threshold > 0 and total_value >= threshold
    if free_shipping_applied:
        cost = Decimal('0')

    return {
        'method': method_id,
        'cost': money(cost),
        'estimated_days': method.get('estimated_days'),
        'total_weight': total_weight,
        'total_value': money(total_value),
        'free_shipping_applied': free_shipping_applied,
    }


def estimate_delivery(method_id, start=None):
    """Latest day of the method's delivery window."""
    method = find_method(method_id, enabled_only=False)
    days = str((method or {}).get('estimated_days') or '7')
    try:
        upper = int(days.split('-')[-1])
    except ValueError:
        upper = 7
    return (start or datetime.utcnow()) + timedelta(days=upper)


def update_method(method_id, changes):
    """Apply changes to one stored shipping method and return it."""
    settings = Settings.get_instance()
    methods = copy.deepcopy(settings.section('shipping')['methods'])
    for method in methods:
        if method.get('id') == method_id:
            for key, value in changes.items():
                if isinstance(value, Decimal):
                    value = float(value)
                method[key] = value
            settings.update_setting('shipping.methods', methods)
            logger.info("Shipping method %s updated: %s",
                        method_id, sorted(changes))
            return method
    return None


def track_shipment(tracking_number):
    # Mock carrier lookup
    logger.info(f"Tracking shipment (Mock): {tracking_number}")

    order = Order.query.filter_by(tracking_number=tracking_number).first()
    now = datetime.utcnow()
    tracking = {
        'tracking_number': tracking_number,
        'status': 'in_transit',
        'carrier': order.carrier if order else None,
        'estimated_delivery': (now + timedelta(days=3)).isoformat(),
        'events': [
            {
                'date': (now - timedelta(days=2)).isoformat(),
                'status': 'picked_up',
                'location': 'Tbilisi, Georgia',
                'description': 'Package picked up from sender',
            },
            {
                'date': (now - timedelta(days=1)).isoformat(),
                'status': 'in_transit',
                'location': 'Batumi, Georgia',
                'description': 'Package in transit',
            },
        ],
    }
    if order is not None:
        tracking['order_number'] = order.order_number
        if order.status == OrderStatus.DELIVERED:
            tracking['status'] = 'delivered'
        if order.estimated_delivery:
            tracking['estimated_delivery'] = \
                order.estimated_delivery.isoformat()
    return tracking
