from flask import Blueprint, request, jsonify
from flask_login import login_required, current_user
from kervan.extensions import db
from kervan.middleware import role_required
from kervan.models import Category
from kervan.schemas import CategoryCreateSchema, CategoryUpdateSchema
from kervan.serializers import serialize_category
from kervan.services import category_service
from kervan.services.audit_service import audit_current_user
from kervan.utils import get_request_language, parse_bool, validate_payload
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('categories', __name__)


@bp.route('/api/categories', methods=['GET'])
def list_categories():
    include_inactive = bool(parse_bool(request.args.get('include_inactive')))
    lang = get_request_language()
    categories = category_service.list_categories(include_inactive)
    return jsonify({
        'items': [serialize_category(c, lang) for c in categories],
        'total': len(categories),
    })


@bp.route('/api/categories/<string:identifier>', methods=['GET'])
def get_category(identifier):
    if identifier.isdigit():
        category = db.session.get(Category, int(identifier))
    else:
        category = Category.query.filter_by(slug=identifier.lower()).first()
    if category is None:
        return jsonify({'error': 'Category not found'}), 404

    return jsonify({
        'category': serialize_category(
            category, get_request_language(), include_children=True),
    })


@bp.route('/api/categories', methods=['POST'])
@login_required
@role_required('ADMIN', 'MANAGER')
def create_category():
    payload, error = validate_payload(CategoryCreateSchema)
    if error:
        return error

    category = category_service.create_category(
        payload.model_dump(exclude_unset=True), current_user)

    audit_current_user(
        'CATEGORY_CREATE',
        'CATEGORY',
        category.id,
        {'slug': category.slug, 'parent_id': category.parent_id})
    return jsonify({'ok': True, 'category': serialize_category(category)}), 201


@bp.route('/api/categories/<int:category_id>', methods=['PUT'])
@login_required
@role_required('ADMIN', 'MANAGER')
def update_category(category_id):
    category = db.session.get(Category, category_id)
    if category is None:
        return jsonify({'error': 'Category not found'}), 404

    payload, error = validate_payload(CategoryUpdateSchema)
    if error:
        return error

    changes = payload.model_dump(exclude_unset=True)
    category_service.update_category(category, changes, current_user)

    audit_current_user(
        'CATEGORY_UPDATE',
        'CATEGORY',
        category.id,
        {'fields': sorted(changes)})
    return jsonify({'ok': True, 'category': serialize_category(category)})


@bp.route('/api/categories/<int:category_id>', methods=['DELETE'])
@login_required
@role_required('ADMIN')
def delete_category(category_id):
    category = db.session.get(Category, category_id)
    if category is None:
        return jsonify({'error': 'Category not found'}), 404

    slug = category.slug
    category_service.delete_category(category)

    audit_current_user('CATEGORY_DELETE', 'CATEGORY', category_id,
                       {'slug': slug})
    return jsonify({'ok': True})
