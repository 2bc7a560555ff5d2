from kervan.extensions import db
from kervan.models import (
    Category,
    Product,
    ProductStatus,
    QuantityDiscount,
)
from kervan.services.category_service import refresh_product_counts
from kervan.utils import ApiError
import logging

logger = logging.getLogger(__name__)

SIMPLE_FIELDS = (
    'description',
    'barcode',
    'images',
    'price1',
    'price2',
    'price3',
    'active_price',
    'currency',
    'stock',
    'min_stock_level',
    'max_stock_level',
    'unit',
    'track_inventory',
    'specifications',
    'seo',
    'featured',
    'tags',
)

REQUIRED_FIELDS = (
    'images',
    'price1',
    'active_price',
    'currency',
    'stock',
    'min_stock_level',
    'unit',
    'track_inventory',
    'featured',
    'tags',
)


def _check_category(category_id, label='Category'):
    if category_id is None:
        return
    if db.session.get(Category, category_id) is None:
        raise ApiError(f'{label} not found', 404)


def _check_unique(product, field, value):
    if value is None:
        return
    query = Product.query.filter(getattr(Product, field) == value)
    if product.id is not None:
        query = query.filter(Product.id != product.id)
    if query.first() is not None:
        raise ApiError(f'Product with this {field} already exists', 409)


def _reject_nulls(data, fields):
    for key in fields:
        if key in data and data[key] is None:
            raise ApiError(f'{key} cannot be null')


def _apply(product, data):
    _reject_nulls(data, REQUIRED_FIELDS)
    if data.get('barcode') is not None:
        # Blank means no barcode.
        data['barcode'] = data['barcode'].strip() or None

    if 'code' in data and data['code'] is not None:
        code = data['code'].strip().upper()
        _check_unique(product, 'code', code)
        product.code = code
    if data.get('barcode'):
        _check_unique(product, 'barcode', data['barcode'])

    if 'category_id' in data and data['category_id'] is not None:
        _check_category(data['category_id'])
        product.category_id = data['category_id']
    if 'subcategory_id' in data:
        _check_category(data['subcategory_id'], 'Subcategory')
        product.subcategory_id = data['subcategory_id']

    if 'name' in data and data['name'] is not None:
        product.name = data['name']

    for key in SIMPLE_FIELDS:
        if key in data:
            setattr(product, key, data[key])

    if data.get('status'):
        product.status = ProductStatus(data['status'])

    if 'quantity_discounts' in data and data['quantity_discounts'] is not None:
        product.quantity_discounts = [
            QuantityDiscount(position=index, **tier)
            for index, tier in enumerate(data['quantity_discounts'])
        ]

    if 'related_product_ids' in data and \
            data['related_product_ids'] is not None:
        ids = [i for i in data['related_product_ids'] if i != product.id]
        product.related_products = (
            Product.query.filter(Product.id.in_(ids)).all() if ids else []
        )


def create_product(data, user=None):
    product = Product(images=[], tags=[])
    _apply(product, data)
    product.created_by = user.id if user else None
    product.updated_by = product.created_by
    product.assign_slug()

    db.session.add(product)
    db.session.flush()
    refresh_product_counts(product.category_id, product.subcategory_id)
    db.session.commit()

    logger.info("Product created: %s (%s)", product.code, product.slug)
    return product


def update_product(product, data, user=None):
    old_name_en = (product.name or {}).get('en')
    old_categories = (product.category_id, product.subcategory_id)

    _apply(product, data)
    if (product.name or {}).get('en') != old_name_en:
        product.assign_slug()
    product.updated_by = user.id if user else None

    db.session.flush()
    refresh_product_counts(
        *old_categories, product.category_id, product.subcategory_id)
    db.session.commit()
    return product


def adjust_stock(product, quantity, operation):
    try:
        product.update_stock(quantity, operation)
    except ValueError as e:
        raise ApiError(str(e))
    db.session.flush()
    refresh_product_counts(product.category_id, product.subcategory_id)
    db.session.commit()
    return product


def delete_product(product):
    categories = (product.category_id, product.subcategory_id)
    code = product.code
    db.session.delete(product)
    db.session.flush()
    refresh_product_counts(*categories)
    db.session.commit()
    logger.info("Product deleted: %s", code)
