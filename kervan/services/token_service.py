from datetime import datetime, timedelta
from flask import current_app
from jose import JWTError, jwt
import logging

logger = logging.getLogger(__name__)


def create_access_token(user, expires_delta=None):
    if expires_delta is None:
        expires_delta = timedelta(
            days=current_app.config['JWT_EXPIRES_DAYS'])
    now = datetime.utcnow()
    claims = {
        'sub': str(user.id),
        'role': user.role.value,
        'iat': now,
        'exp': now + expires_delta,
    }
    return jwt.encode(
        claims,
        current_app.config['JWT_SECRET_KEY'],
        algorithm=current_app.config['JWT_ALGORITHM'])


def decode_access_token(token):
    """Return the user id carried by a token, or None if it is unusable."""
    try:
        payload = jwt.decode(
            token,
            current_app.config['JWT_SECRET_KEY'],
            algorithms=[current_app.config['JWT_ALGORITHM']])
    except JWTError as e:
        logger.info("Rejected bearer token: %s", e)
        return None
    subject = payload.get('sub')
    if subject is None or not str(subject).isdigit():
        return None
    return int(subject)


def bearer_token(authorization_header):
    if not authorization_header:
        return None
    scheme, _, token = authorization_header.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None
    return token.strip()
