from flask import current_app, jsonify, request
from flask_login import current_user
from pydantic import ValidationError
import logging

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Business-rule failure raised from services and turned into JSON."""

    def __init__(self, message, status_code=400, **extra):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.extra = extra

    def to_response(self):
        body = {'error': self.message}
        body.update(self.extra)
        return jsonify(body), self.status_code


def validation_errors(exc: ValidationError):
    errors = []
    for err in exc.errors():
        field = '.'.join(str(part) for part in err.get('loc', ())) or None
        errors.append({'field': field, 'message': err.get('msg')})
    return errors


def validate_payload(schema_class, data=None):
    """Validate the JSON body against a schema.

    Returns ``(model, None)`` on success or ``(None, response)`` where the
    response is a ready 400 reply.
    """
    if data is None:
        data = request.get_json(silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        return None, (jsonify({'error': 'JSON object expected'}), 400)
    try:
        return schema_class.model_validate(data), None
    except ValidationError as e:
        return None, (jsonify({
            'error': 'Validation failed',
            'errors': validation_errors(e),
        }), 400)


def paginate_query(query, page=1, per_page=20):
    pagination = query.paginate(
        page=page,
        per_page=per_page,
        error_out=False
    )
    return {
        'items': pagination.items,
        'page': pagination.page,
        'pages': pagination.pages,
        'per_page': pagination.per_page,
        'total': pagination.total,
        'has_next': pagination.has_next,
        'has_prev': pagination.has_prev
    }


def get_page_args():
    page = request.args.get('page', 1, type=int) or 1
    per_page = request.args.get(
        'per_page',
        current_app.config['ITEMS_PER_PAGE'],
        type=int)
    page = max(page, 1)
    per_page = min(max(per_page or 1, 1), current_app.config['MAX_PER_PAGE'])
    return page, per_page


def parse_bool(value):
    if value is None:
        return None
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')


def get_request_language():
    supported = current_app.config['SUPPORTED_LANGUAGES']
    lang = (request.args.get('lang') or '').lower()
    if lang in supported:
        return lang
    if current_user.is_authenticated and current_user.language in supported:
        return current_user.language
    best = request.accept_languages.best_match(supported)
    return best or current_app.config['DEFAULT_LANGUAGE']


def client_ip():
    forwarded = request.headers.get('X-Forwarded-For', '')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.remote_addr
