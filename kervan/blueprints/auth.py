from flask import Blueprint, current_app, jsonify
from flask_login import login_required, current_user
from kervan.extensions import db
from kervan.models import PasswordResetToken, User, UserRole, UserStatus
from kervan.schemas import (
    ChangePasswordSchema,
    ForgotPasswordSchema,
    LoginSchema,
    ProfileUpdateSchema,
    RegisterSchema,
    ResetPasswordSchema,
)
from kervan.serializers import serialize_user
from kervan.services import email_service
from kervan.services.audit_service import log_audit, audit_current_user
from kervan.services.token_service import create_access_token
from kervan.utils import validate_payload
from datetime import datetime
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('auth', __name__)


@bp.route('/api/auth/register', methods=['POST'])
def register():
    payload, error = validate_payload(RegisterSchema)
    if error:
        return error

    email = payload.email.lower()
    if User.query.filter_by(email=email).first():
        return jsonify({'error': 'Email is already registered'}), 400

    user = User(
        email=email,
        first_name=payload.first_name.strip(),
        last_name=payload.last_name.strip(),
        phone=payload.phone,
        company=payload.company,
        role=UserRole.CUSTOMER,
        status=UserStatus.ACTIVE,
        language=payload.language or 'ka',
    )
    user.set_password(payload.password)
    db.session.add(user)
    db.session.commit()

    log_audit(
        actor_id=user.id,
        actor_role=user.role.value,
        action='REGISTER',
        target_type='USER',
        target_id=user.id,
        payload={'email': user.email}
    )
    email_service.send_welcome_email(user)

    return jsonify({
        'ok': True,
        'token': create_access_token(user),
        'user': serialize_user(user),
    }), 201


@bp.route('/api/auth/login', methods=['POST'])
def login():
    payload, error = validate_payload(LoginSchema)
    if error:
        return error

    user = User.query.filter_by(email=payload.email.lower()).first()

    if user and user.check_password(payload.password) and user.is_active:
        user.last_login_at = datetime.utcnow()
        db.session.commit()

        log_audit(
            actor_id=user.id,
            actor_role=user.role.value,
            action='LOGIN_SUCCESS',
            target_type='USER',
            target_id=user.id,
            payload={'event': 'login_success'}
        )
        return jsonify({
            'ok': True,
            'token': create_access_token(user),
            'user': serialize_user(user),
        })

    if user and not user.is_active and user.check_password(payload.password):
        reason = 'account_' + user.status.value.lower()
    else:
        reason = 'invalid_credentials' if user else 'user_not_found'
    log_audit(
        actor_id=None,
        actor_role='ANONYMOUS',
        action='LOGIN_FAILED',
        target_type='USER',
        target_id=user.id if user else None,
        payload={'reason': reason})

    if reason.startswith('account_'):
        return jsonify({'error': 'Account is not active'}), 403
    return jsonify({'error': 'Invalid email or password'}), 401


@bp.route('/api/auth/me', methods=['GET'])
@login_required
def me():
    return jsonify({'user': serialize_user(current_user)})


@bp.route('/api/auth/profile', methods=['PUT'])
@login_required
def update_profile():
    payload, error = validate_payload(ProfileUpdateSchema)
    if error:
        return error

    changes = payload.model_dump(exclude_unset=True)
    for key, value in changes.items():
        setattr(current_user, key, value)
    db.session.commit()

    logger.info("Profile updated for user %s: %s",
                current_user.id, sorted(changes))
    return jsonify({'ok': True, 'user': serialize_user(current_user)})


@bp.route('/api/auth/change-password', methods=['PUT'])
@login_required
def change_password():
    payload, error = validate_payload(ChangePasswordSchema)
    if error:
        return error

    if not current_user.check_password(payload.current_password):
        return jsonify({'error': 'Current password is incorrect'}), 400

    current_user.set_password(payload.new_password)
    db.session.commit()

    audit_current_user('PASSWORD_CHANGE', 'USER', current_user.id)
    return jsonify({'ok': True})


@bp.route('/api/auth/logout', methods=['POST'])
@login_required
def logout():
    # Tokens are stateless; the client drops its copy.
    audit_current_user('LOGOUT', 'USER', current_user.id)
    return jsonify({'ok': True})


@bp.route('/api/auth/forgot-password', methods=['POST'])
def forgot_password():
    payload, error = validate_payload(ForgotPasswordSchema)
    if error:
        return error

    user = User.query.filter_by(email=payload.email.lower()).first()
    if user is not None and user.is_active:
        reset_token = PasswordResetToken.create_for(
            user, current_app.config['PASSWORD_RESET_TOKEN_HOURS'])
        db.session.commit()
        email_service.send_password_reset_email(user, reset_token.token)
        log_audit(
            actor_id=user.id,
            actor_role=user.role.value,
            action='PASSWORD_RESET_REQUEST',
            target_type='USER',
            target_id=user.id,
        )
    else:
        logger.info("Password reset requested for unknown email")

    # Same answer either way so the endpoint does not reveal accounts.
    return jsonify({
        'ok': True,
        'message': 'If the email exists, a reset link has been sent',
    })


@bp.route('/api/auth/reset-password/<token>', methods=['POST'])
def reset_password(token):
    payload, error = validate_payload(ResetPasswordSchema)
    if error:
        return error

    reset_token = PasswordResetToken.find_valid(token)
    if reset_token is None:
        return jsonify({'error': 'Invalid or expired reset token'}), 400

    user = reset_token.user
    user.set_password(payload.password)
    reset_token.mark_used()
    db.session.commit()

    log_audit(
        actor_id=user.id,
        actor_role=user.role.value,
        action='PASSWORD_RESET',
        target_type='USER',
        target_id=user.id,
    )
    return jsonify({'ok': True})
