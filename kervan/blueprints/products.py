from flask import Blueprint, request, jsonify
from flask_login import login_required, current_user
from kervan.extensions import db
from kervan.middleware import role_required
from kervan.models import Product
from kervan.schemas import (
    ProductCreateSchema,
    ProductUpdateSchema,
    StockUpdateSchema,
)
from kervan.serializers import serialize_product
from kervan.services import product_service
from kervan.services.audit_service import audit_current_user
from kervan.services.search_service import build_product_query
from kervan.utils import (
    get_page_args,
    get_request_language,
    paginate_query,
    parse_bool,
    validate_payload,
)
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('products', __name__)

STAFF_ROLES = ('ADMIN', 'MANAGER')


def _is_staff():
    return current_user.is_authenticated and \
        current_user.role.value in STAFF_ROLES


def _empty_page(page, per_page):
    return {
        'items': [],
        'page': page,
        'pages': 0,
        'per_page': per_page,
        'total': 0,
        'has_next': False,
        'has_prev': False,
    }


def _find_product(identifier):
    if identifier.isdigit():
        return db.session.get(Product, int(identifier))
    return Product.query.filter_by(slug=identifier.lower()).first()


@bp.route('/api/products', methods=['GET'])
def list_products():
    page, per_page = get_page_args()
    lang = get_request_language()

    # Only staff may browse products that are not on sale.
    status = request.args.get('status', 'ACTIVE')
    if not _is_staff():
        status = 'ACTIVE'

    query = build_product_query(
        search=request.args.get('search'),
        category=request.args.get('category'),
        min_price=request.args.get('min_price'),
        max_price=request.args.get('max_price'),
        status=status,
        featured=parse_bool(request.args.get('featured')),
        tags=request.args.get('tags'),
        sort=request.args.get('sort', 'newest'),
    )
    if query is None:
        return jsonify(_empty_page(page, per_page))

    result = paginate_query(query, page, per_page)
    result['items'] = [serialize_product(p, lang) for p in result['items']]
    return jsonify(result)


@bp.route('/api/products/<string:identifier>', methods=['GET'])
def get_product(identifier):
    product = _find_product(identifier)
    if product is None:
        return jsonify({'error': 'Product not found'}), 404

    lang = get_request_language()
    data = serialize_product(product, lang, detail=True)
    data['related_products'] = [
        serialize_product(p, lang) for p in product.related_products
    ]
    return jsonify({'product': data})


@bp.route('/api/products/<int:product_id>/price', methods=['GET'])
def get_price_for_quantity(product_id):
    product = db.session.get(Product, product_id)
    if product is None:
        return jsonify({'error': 'Product not found'}), 404

    quantity = request.args.get('quantity', 1, type=int)
    if quantity is None or quantity < 1:
        return jsonify({'error': 'Quantity must be greater than 0'}), 400

    unit_price = product.get_price_for_quantity(quantity)
    return jsonify({
        'product_id': product.id,
        'quantity': quantity,
        'unit_price': float(unit_price),
        'total': float(unit_price * quantity),
        'flat_price': float(product.flat_price),
        'currency': product.currency,
    })


@bp.route('/api/products', methods=['POST'])
@login_required
@role_required('ADMIN', 'MANAGER')
def create_product():
    payload, error = validate_payload(ProductCreateSchema)
    if error:
        return error

    product = product_service.create_product(
        payload.model_dump(exclude_unset=True), current_user)

    audit_current_user(
        'PRODUCT_CREATE',
        'PRODUCT',
        product.id,
        {'code': product.code, 'slug': product.slug})
    return jsonify({
        'ok': True,
        'product': serialize_product(product, detail=True),
    }), 201


@bp.route('/api/products/<int:product_id>', methods=['PUT'])
@login_required
@role_required('ADMIN', 'MANAGER')
def update_product(product_id):
    product = db.session.get(Product, product_id)
    if product is None:
        return jsonify({'error': 'Product not found'}), 404

    payload, error = validate_payload(ProductUpdateSchema)
    if error:
        return error

    changes = payload.model_dump(exclude_unset=True)
    product_service.update_product(product, changes, current_user)

    audit_current_user(
        'PRODUCT_UPDATE',
        'PRODUCT',
        product.id,
        {'fields': sorted(changes)})
    return jsonify({
        'ok': True,
        'product': serialize_product(product, detail=True),
    })


@bp.route('/api/products/<int:product_id>/stock', methods=['PATCH'])
@login_required
@role_required('ADMIN', 'MANAGER')
def update_stock(product_id):
    product = db.session.get(Product, product_id)
    if product is None:
        return jsonify({'error': 'Product not found'}), 404

    payload, error = validate_payload(StockUpdateSchema)
    if error:
        return error

    before = product.stock
    product_service.adjust_stock(product, payload.quantity, payload.operation)

    audit_current_user(
        'PRODUCT_STOCK_UPDATE',
        'PRODUCT',
        product.id,
        {
            'operation': payload.operation,
            'quantity': payload.quantity,
            'stock_before': before,
            'stock_after': product.stock,
        })
    return jsonify({
        'ok': True,
        'stock': product.stock,
        'status': product.status.value,
    })


@bp.route('/api/products/<int:product_id>', methods=['DELETE'])
@login_required
@role_required('ADMIN')
def delete_product(product_id):
    product = db.session.get(Product, product_id)
    if product is None:
        return jsonify({'error': 'Product not found'}), 404

    code = product.code
    product_service.delete_product(product)

    audit_current_user('PRODUCT_DELETE', 'PRODUCT', product_id, {'code': code})
    return jsonify({'ok': True})
