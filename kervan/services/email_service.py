from email.message import EmailMessage
from flask import current_app
from kervan.helpers import localized, money
from kervan.models import (
    CommunicationStatus,
    CommunicationType,
    Settings,
)
import logging
import smtplib

logger = logging.getLogger(__name__)


def send_email(to_address, subject, body):
    """Deliver a plain-text message.

    With MAIL_ENABLED off the message is only logged. Returns True when
    the message counts as sent.
    """
    if not to_address:
        return False

    if not current_app.config.get('MAIL_ENABLED'):
        logger.info("Email (Mock): to=%s subject=%s", to_address, subject)
        return True

    smtp = Settings.get_instance().section('email')['smtp']
    if not smtp.get('host'):
        logger.warning("MAIL_ENABLED but no SMTP host configured; "
                       "dropping email to %s", to_address)
        return False

    message = EmailMessage()
    message['From'] = current_app.config['MAIL_SENDER']
    message['To'] = to_address
    message['Subject'] = subject
    message.set_content(body)

    port = smtp.get('port') or (465 if smtp.get('secure') else 25)
    smtp_class = smtplib.SMTP_SSL if smtp.get('secure') else smtplib.SMTP
    try:
        with smtp_class(smtp['host'], port, timeout=10) as server:
            if smtp.get('username'):
                server.login(smtp['username'], smtp.get('password') or '')
            server.send_message(message)
    except (smtplib.SMTPException, OSError) as e:
        logger.error("Failed to send email to %s: %s", to_address, e)
        return False

    logger.info("Email sent: to=%s subject=%s", to_address, subject)
    return True


def _template(name, lang):
    template = Settings.get_instance().get(f'email.templates.{name}') or {}
    enabled = template.get('enabled', True)
    return enabled, localized(template.get('subject'), lang)


def send_welcome_email(user):
    enabled, subject = _template('welcome_email', user.language)
    if not enabled:
        return False
    body = (
        f"Hello {user.first_name},\n\n"
        "Thank you for registering with KERVAN. You can now browse our "
        "wholesale catalog and place orders.\n"
    )
    return send_email(user.email, subject or 'Welcome to KERVAN!', body)


def send_password_reset_email(user, token):
    frontend = current_app.config['FRONTEND_URL'].rstrip('/')
    hours = current_app.config['PASSWORD_RESET_TOKEN_HOURS']
    body = (
        f"Hello {user.first_name},\n\n"
        "We received a request to reset your password. Use the link below "
        f"within {hours} hour(s):\n\n"
        f"{frontend}/reset-password/{token}\n\n"
        "If you did not request this, you can ignore this message.\n"
    )
    return send_email(user.email, 'Password Reset Request', body)


def _order_lang(order):
    if order.user is not None:
        return order.user.language
    return current_app.config['DEFAULT_LANGUAGE']


def _record(order, sent, content):
    order.add_communication(
        CommunicationType.EMAIL,
        content,
        status=CommunicationStatus.SENT if sent else CommunicationStatus.FAILED)


def send_order_confirmation(order):
    lang = _order_lang(order)
    enabled, subject = _template('order_confirmation', lang)
    if not enabled:
        return False

    lines = [
        f"- {localized(item.product_name, lang)} x {item.quantity}: "
        f"{money(item.total_price)} {order.currency}"
        for item in order.items
    ]
    body = (
        f"Thank you for your order {order.order_number}.\n\n"
        + "\n".join(lines)
        + f"\n\nTotal: {money(order.total)} {order.currency}\n"
    )
    subject = f"{subject or 'Order Confirmation'} {order.order_number}"
    sent = send_email(order.get_customer_info()['email'], subject, body)
    _record(order, sent, subject)
    return sent


def send_order_status_update(order, previous_status=None):
    lang = _order_lang(order)
    enabled, subject = _template('order_status_update', lang)
    if not enabled:
        return False

    body = f"Your order {order.order_number} is now {order.status.value}.\n"
    if previous_status is not None:
        body += f"Previous status: {previous_status.value}.\n"
    if order.tracking_number:
        body += f"Tracking number: {order.tracking_number}\n"
    subject = f"{subject or 'Order Status Update'} {order.order_number}"
    sent = send_email(order.get_customer_info()['email'], subject, body)
    _record(order, sent, subject)
    return sent
