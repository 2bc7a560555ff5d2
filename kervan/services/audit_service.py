from kervan.extensions import db
from kervan.models import AuditLog
from flask import has_request_context, request
from flask_login import current_user
from sqlalchemy.exc import SQLAlchemyError
import logging
import json

logger = logging.getLogger(__name__)
major_logger = logging.getLogger('major_events')
if not major_logger.handlers:
    handler = logging.FileHandler('major_events.log')
    formatter = logging.Formatter(
        '%(asctime)s - %(levelname)s - %(message)s')
    handler.setFormatter(formatter)
    major_logger.addHandler(handler)
    major_logger.setLevel(logging.INFO)
    major_logger.propagate = False

MAJOR_ACTION_PREFIXES = (
    'LOGIN',
    'LOGOUT',
    'REGISTER',
    'PASSWORD_',
    'ORDER_',
    'PAYMENT_',
    'USER_ROLE',
    'SETTINGS_',
)

PAYLOAD_BRIEF_LIMIT = 600


def _should_log_major(action: str) -> bool:
    if not action:
        return False
    return action.startswith(MAJOR_ACTION_PREFIXES)


def _payload_brief(payload):
    if payload is None:
        return None
    brief = json.dumps(
        payload,
        ensure_ascii=False,
        separators=(',', ':'),
        default=str)
    if len(brief) > PAYLOAD_BRIEF_LIMIT:
        brief = brief[:PAYLOAD_BRIEF_LIMIT] + '...'
    return brief


def log_audit(
        actor_id=None,
        actor_role='ANONYMOUS',
        action='',
        target_type=None,
        target_id=None,
        payload=None,
        ip=None,
        user_agent=None):
    path = None
    method = None
    if has_request_context():
        ip = ip or request.remote_addr
        user_agent = user_agent or request.headers.get('User-Agent')
        path = request.path
        method = request.method

    audit = AuditLog(
        actor_id=actor_id,
        actor_role=actor_role,
        action=action,
        target_type=target_type,
        target_id=target_id,
        ip=ip,
        user_agent=user_agent
    )
    if payload:
        audit.set_payload(payload)

    try:
        db.session.add(audit)
        db.session.commit()
    except SQLAlchemyError as e:
        logger.error(f"Failed to log audit: {e}", exc_info=True)
        db.session.rollback()
        return None

    payload_brief = _payload_brief(payload)
    logger.info(
        "AUDIT action=%s actor_role=%s actor_id=%s target_type=%s "
        "target_id=%s method=%s path=%s payload=%s",
        action,
        actor_role,
        actor_id,
        target_type,
        target_id,
        method,
        path,
        payload_brief,
    )

    if _should_log_major(action):
        major_logger.info(
            "action=%s actor_role=%s actor_id=%s target_type=%s "
            "target_id=%s method=%s path=%s payload=%s",
            action,
            actor_role,
            actor_id,
            target_type,
            target_id,
            method,
            path,
            payload_brief,
        )
    return audit


def audit_current_user(action, target_type=None, target_id=None,
                       payload=None):
    """log_audit with the actor taken from the logged-in user."""
    if current_user and current_user.is_authenticated:
        return log_audit(
            actor_id=current_user.id,
            actor_role=current_user.role.value,
            action=action,
            target_type=target_type,
            target_id=target_id,
            payload=payload,
        )
    return log_audit(
        action=action,
        target_type=target_type,
        target_id=target_id,
        payload=payload,
    )
