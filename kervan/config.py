import os
import json
from dotenv import load_dotenv

load_dotenv()


def _json_serializer(obj):
    # Keep Georgian/Turkish text readable and searchable in JSON columns.
    return json.dumps(obj, ensure_ascii=False)


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or (
        'dev-secret-key-change-in-production'
    )
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or (
        'sqlite:///kervan.db'
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {'json_serializer': _json_serializer}

    # Bearer tokens
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY') or SECRET_KEY
    JWT_ALGORITHM = 'HS256'
    JWT_EXPIRES_DAYS = int(os.environ.get('JWT_EXPIRES_DAYS', '7'))

    # Password reset link lifetime (hours)
    PASSWORD_RESET_TOKEN_HOURS = int(
        os.environ.get('PASSWORD_RESET_TOKEN_HOURS', '1'))

    # Outgoing mail. When disabled, messages are only logged.
    MAIL_ENABLED = os.environ.get('MAIL_ENABLED', 'false').lower() == 'true'
    MAIL_SENDER = os.environ.get('MAIL_SENDER', 'no-reply@kervan.ge')
    FRONTEND_URL = os.environ.get('FRONTEND_URL', 'http://localhost:3000')

    SUPPORTED_LANGUAGES = ('ka', 'en', 'tr')
    DEFAULT_LANGUAGE = os.environ.get('DEFAULT_LANGUAGE', 'en')

    # Pagination configuration
    ITEMS_PER_PAGE = int(os.environ.get('ITEMS_PER_PAGE', '20'))
    MAX_PER_PAGE = int(os.environ.get('MAX_PER_PAGE', '100'))
