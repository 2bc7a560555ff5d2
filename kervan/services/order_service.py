from datetime import datetime, timedelta
from decimal import Decimal
from kervan.extensions import db
from kervan.helpers import money, to_decimal
from kervan.models import (
    Cart,
    CartItem,
    Order,
    OrderItem,
    OrderSource,
    OrderStatus,
    OrderStatusHistory,
    PaymentMethod,
    PaymentStatus,
    Product,
    ProductStatus,
    Settings,
)
from kervan.services import email_service, shipping_service
from kervan.services.category_service import refresh_product_counts
from kervan.utils import ApiError
from sqlalchemy.exc import IntegrityError
import logging

logger = logging.getLogger(__name__)

ORDER_NUMBER_DIGITS = 4


def generate_order_number(prefix='KRV', now=None):
    """<prefix><YYMMDD><NNNN>, NNNN counting up within the calendar day.

    Not safe against concurrent creation; the unique constraint on
    order_number turns a race into an IntegrityError.
    """
    now = now or datetime.utcnow()
    day_start = datetime(now.year, now.month, now.day)
    day_end = day_start + timedelta(days=1)

    last = Order.query.filter(
        Order.created_at >= day_start,
        Order.created_at < day_end
    ).order_by(Order.created_at.desc(), Order.id.desc()).first()

    sequence = 1
    if last is not None:
        suffix = last.order_number[-ORDER_NUMBER_DIGITS:]
        if suffix.isdigit():
            sequence = int(suffix) + 1

    return (
        f"{prefix}{now.strftime('%y%m%d')}"
        f"{str(sequence).zfill(ORDER_NUMBER_DIGITS)}"
    )


def _requested_lines(payload, user):
    """(product_id, quantity) pairs from the payload or the user's cart."""
    if payload.get('items'):
        merged = {}
        for item in payload['items']:
            merged[item['product_id']] = \
                merged.get(item['product_id'], 0) + item['quantity']
        return list(merged.items()), None

    if user is None:
        raise ApiError('Order items cannot be empty')
    cart = Cart.query.filter_by(user_id=user.id).first()
    if cart is None or not cart.items.count():
        raise ApiError('Cart is empty')
    return [(i.product_id, i.quantity) for i in cart.items], cart


def _check_available(product, quantity, allow_backorders):
    if product.availability_error(quantity, allow_backorders) is None:
        return
    if product.status != ProductStatus.ACTIVE:
        raise ApiError(f'Product {product.code} is not available')
    raise ApiError(
        f'Product {product.code} has insufficient stock',
        available=product.stock)


def _enabled_payment_methods(settings):
    return {
        m.get('name') for m in settings.section('payment')['methods']
        if m.get('enabled')
    }


def create_order(payload, user=None, request_meta=None):
    settings = Settings.get_instance()
    orders_cfg = settings.get('ecommerce.orders')
    allow_backorders = settings.get('ecommerce.inventory.allow_backorders')

    if user is None and (orders_cfg.get('require_registration')
                         or not orders_cfg.get('allow_guest_checkout')):
        raise ApiError('Please log in to place an order', 401)

    if payload['payment_method'] not in _enabled_payment_methods(settings):
        raise ApiError('Payment method is not available')

    lines, cart = _requested_lines(payload, user)

    # Validate and price every line before touching stock.
    priced = []
    for product_id, quantity in lines:
        product = db.session.get(Product, product_id)
        if product is None:
            raise ApiError(f'Product {product_id} not found', 404)
        _check_available(product, quantity, allow_backorders)
        unit_price = money(product.get_price_for_quantity(quantity))
        priced.append((product, quantity, unit_price))

    subtotal = sum(
        (money(unit * qty) for _, qty, unit in priced), Decimal('0'))
    min_amount = to_decimal(settings.get('ecommerce.cart.min_order_amount'))
    if min_amount > 0 and subtotal < min_amount:
        raise ApiError(f'Minimum order amount is {money(min_amount)}')

    shipping = shipping_service.calculate_shipping(
        [
            {'product_id': p.id, 'quantity': qty, 'price': unit}
            for p, qty, unit in priced
        ],
        payload.get('shipping_method') or 'standard',
        subtotal=subtotal)

    pricing_cfg = settings.get('ecommerce.pricing')
    tax_rate = to_decimal(pricing_cfg.get('tax_rate'))
    tax_amount = Decimal('0')
    if not pricing_cfg.get('include_tax') and tax_rate > 0:
        tax_amount = money(subtotal * tax_rate / 100)

    address = payload['shipping_address']
    guest = payload.get('guest') or {}
    meta = request_meta or {}
    order = Order(
        order_number=generate_order_number(
            orders_cfg.get('order_number_prefix') or 'KRV'),
        user_id=user.id if user else None,
        is_guest=user is None,
        guest_first_name=(
            guest.get('first_name', address['first_name'])
            if user is None else None),
        guest_last_name=(
            guest.get('last_name', address['last_name'])
            if user is None else None),
        guest_email=(
            guest.get('email', address['email'])
            if user is None else None),
        guest_phone=(
            guest.get('phone', address['phone'])
            if user is None else None),
        tax_rate=tax_rate,
        tax_amount=tax_amount,
        shipping_amount=shipping['cost'],
        discount_amount=Decimal('0'),
        currency=priced[0][0].currency if priced else 'GEL',
        shipping_first_name=address['first_name'],
        shipping_last_name=address['last_name'],
        shipping_company=address.get('company'),
        shipping_street=address['street'],
        shipping_city=address['city'],
        shipping_state=address.get('state'),
        shipping_zip_code=address.get('zip_code'),
        shipping_country=address.get('country') or 'Georgia',
        shipping_phone=address['phone'],
        shipping_email=address['email'],
        shipping_method=shipping['method'],
        estimated_delivery=shipping_service.estimate_delivery(
            shipping['method']),
        payment_method=PaymentMethod(payload['payment_method']),
        payment_status=PaymentStatus.PENDING,
        status=OrderStatus.PENDING,
        customer_note=payload.get('customer_note'),
        source=meta.get('source', OrderSource.WEBSITE),
        user_agent=meta.get('user_agent'),
        ip_address=meta.get('ip_address'),
        referrer=meta.get('referrer'),
    )

    touched_categories = set()
    for product, quantity, unit_price in priced:
        line_total = money(unit_price * quantity)
        flat_total = money(product.flat_price * quantity)
        order.items.append(OrderItem(
            product_id=product.id,
            product_name=product.name,
            product_code=product.code,
            product_image=product.primary_image,
            product_specifications=product.specifications,
            quantity=quantity,
            unit_price=unit_price,
            total_price=line_total,
            applied_discount=max(flat_total - line_total, Decimal('0')),
        ))
        product.update_stock(quantity, 'subtract')
        product.total_sold = (product.total_sold or 0) + quantity
        product.revenue = to_decimal(product.revenue) + line_total
        touched_categories.update((product.category_id, product.subcategory_id))

    order.calculate_totals()
    order.status_history.append(OrderStatusHistory(
        status=OrderStatus.PENDING,
        note='Order placed',
        updated_by=user.id if user else None,
    ))
    if orders_cfg.get('auto_confirm_orders'):
        order.set_status(
            OrderStatus.CONFIRMED,
            'Order confirmed automatically',
            user.id if user else None)

    if cart is not None:
        CartItem.query.filter_by(cart_id=cart.id).delete()

    db.session.add(order)
    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        logger.warning("Order number collision on %s", order.order_number)
        raise ApiError('Order number conflict, please retry', 409)

    refresh_product_counts(*(c for c in touched_categories if c))
    db.session.commit()

    email_service.send_order_confirmation(order)
    db.session.commit()

    logger.info("Order %s created: total=%s items=%d",
                order.order_number, order.total, len(order.items))
    return order


def _restore_stock(order):
    touched = set()
    for item in order.items:
        product = item.product
        if product is None:
            continue
        product.update_stock(item.quantity, 'add')
        product.total_sold = max((product.total_sold or 0) - item.quantity, 0)
        product.revenue = max(
            to_decimal(product.revenue) - to_decimal(item.total_price),
            Decimal('0'))
        touched.update((product.category_id, product.subcategory_id))
    return touched


def change_status(
        order,
        new_status,
        note=None,
        updated_by=None,
        tracking_number=None,
        carrier=None,
        notify=True):
    """Move an order to any status, recording history.

    Entering CANCELLED restores stock for the ordered products.
    """
    previous = order.status
    touched = set()
    if new_status == OrderStatus.CANCELLED and \
            previous != OrderStatus.CANCELLED:
        touched = _restore_stock(order)
        if order.payment_status in (
                PaymentStatus.PENDING, PaymentStatus.PROCESSING):
            order.payment_status = PaymentStatus.CANCELLED

    order.set_status(new_status, note, updated_by)

    if tracking_number:
        order.tracking_number = tracking_number
    if carrier:
        order.carrier = carrier
    if new_status == OrderStatus.DELIVERED and \
            order.payment_method == PaymentMethod.CASH_ON_DELIVERY and \
            order.payment_status == PaymentStatus.PENDING:
        order.payment_status = PaymentStatus.COMPLETED
        order.payment_date = datetime.utcnow()

    db.session.flush()
    if touched:
        refresh_product_counts(*(c for c in touched if c))
    if notify:
        email_service.send_order_status_update(order, previous)
    db.session.commit()

    logger.info("Order %s status %s -> %s",
                order.order_number, previous.value, new_status.value)
    return previous


def cancel_order(order, user, reason=None):
    if not order.can_be_cancelled():
        raise ApiError('Order status does not allow cancellation')
    note = 'Cancelled by customer'
    if reason:
        note = f'{note}: {reason}'
    return change_status(order, OrderStatus.CANCELLED, note, user.id)


def refund_order(order, user, reason=None):
    if not order.can_be_refunded():
        raise ApiError('Order cannot be refunded')
    order.payment_status = PaymentStatus.REFUNDED
    note = 'Refunded'
    if reason:
        note = f'{note}: {reason}'
    return change_status(order, OrderStatus.REFUNDED, note, user.id)


def visible_to(order, user):
    if user.role.value in ('ADMIN', 'MANAGER'):
        return True
    return order.user_id == user.id
