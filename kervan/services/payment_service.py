from datetime import datetime
from kervan.extensions import db
from kervan.helpers import money
from kervan.models import PaymentMethod, PaymentStatus, Settings
from kervan.utils import ApiError
import logging
import secrets

logger = logging.getLogger(__name__)

# Methods settled by the gateway at once; the rest wait for the money to
# arrive (bank transfer) or for delivery (cash on delivery).
INSTANT_METHODS = (PaymentMethod.CREDIT_CARD, PaymentMethod.TBC_BANK)


def get_methods():
    methods = Settings.get_instance().section('payment')['methods']
    return [m for m in methods if m.get('enabled')]


def _new_transaction_id():
    return f'txn_{secrets.token_hex(8)}'


def process_payment(order, method, amount, card_last4=None, card_brand=None):
    """Run an order's payment through the mock gateway."""
    if order.payment_status in (
            PaymentStatus.COMPLETED,
            PaymentStatus.REFUNDED,
            PaymentStatus.CANCELLED):
        raise ApiError('Order payment is already settled')
    if money(amount) != money(order.total):
        raise ApiError('Payment amount does not match order total')
    if method.value not in {m.get('name') for m in get_methods()}:
        raise ApiError('Payment method is not available')

    # Mock gateway call
    logger.info("Processing payment (Mock): order=%s method=%s amount=%s",
                order.order_number, method.value, money(amount))

    order.payment_method = method
    order.transaction_id = _new_transaction_id()
    if card_last4:
        order.card_last4 = card_last4
        order.card_brand = card_brand
    if method in INSTANT_METHODS:
        order.payment_status = PaymentStatus.COMPLETED
        order.payment_date = datetime.utcnow()
    else:
        order.payment_status = PaymentStatus.PENDING
    db.session.commit()

    return {
        'order_id': order.id,
        'order_number': order.order_number,
        'amount': float(money(amount)),
        'payment_method': method.value,
        'status': order.payment_status.value,
        'transaction_id': order.transaction_id,
        'processed_at': datetime.utcnow().isoformat(),
    }


def verify_payment(order, transaction_id):
    verified = bool(order.transaction_id) and \
        secrets.compare_digest(order.transaction_id, transaction_id)
    logger.info("Verifying payment (Mock): order=%s verified=%s",
                order.order_number, verified)
    return {
        'order_id': order.id,
        'transaction_id': transaction_id,
        'verified': verified,
        'status': order.payment_status.value,
        'verified_at': datetime.utcnow().isoformat(),
    }
