from kervan.extensions import db
from kervan.models import Category, CategoryStatus
from kervan.utils import ApiError
import logging

logger = logging.getLogger(__name__)


def _ancestors(category_id):
    """Ids from category_id up to the root, stopping on a cycle."""
    ids = []
    seen = set()
    current = db.session.get(Category, category_id) if category_id else None
    while current is not None and current.id not in seen:
        seen.add(current.id)
        ids.append(current.id)
        current = (
            db.session.get(Category, current.parent_id)
            if current.parent_id else None
        )
    return ids


def refresh_product_counts(*category_ids):
    """Recount products for the given categories and all their ancestors.

    Best effort: runs after the product write is flushed, in the same
    session, and is not retried on failure.
    """
    seen = set()
    for category_id in category_ids:
        for ancestor_id in _ancestors(category_id):
            if ancestor_id in seen:
                continue
            seen.add(ancestor_id)
            db.session.get(Category, ancestor_id).update_product_count()


def _validate_parent(category, parent_id):
    if parent_id is None:
        return None
    parent = db.session.get(Category, parent_id)
    if parent is None:
        raise ApiError('Parent category not found', 404)
    if category.id is not None and category.would_create_cycle(parent_id):
        raise ApiError('A category cannot be moved under itself')
    return parent


def _apply(category, data):
    for key in ('name', 'featured', 'sort_order'):
        if key in data and data[key] is None:
            raise ApiError(f'{key} cannot be null')
    for key in (
            'name',
            'description',
            'image_url',
            'image_alt',
            'icon_name',
            'icon_color',
            'seo',
            'featured',
            'sort_order'):
        if key in data:
            setattr(category, key, data[key])
    if data.get('status'):
        category.status = CategoryStatus(data['status'])


def create_category(data, user=None):
    parent = _validate_parent(Category(), data.get('parent_id'))

    category = Category(children_ids=[])
    _apply(category, data)
    category.parent_id = parent.id if parent else None
    category.created_by = user.id if user else None
    category.updated_by = category.created_by
    category.assign_slug()

    db.session.add(category)
    db.session.flush()
    if parent is not None:
        parent.add_child(category.id)
    db.session.commit()

    logger.info("Category created: %s", category.slug)
    return category


def update_category(category, data, user=None):
    old_name_en = (category.name or {}).get('en')
    old_parent_id = category.parent_id

    if 'parent_id' in data and data['parent_id'] != old_parent_id:
        parent = _validate_parent(category, data['parent_id'])
        if old_parent_id is not None:
            old_parent = db.session.get(Category, old_parent_id)
            if old_parent is not None:
                old_parent.remove_child(category.id)
        category.parent_id = parent.id if parent else None
        if parent is not None:
            parent.add_child(category.id)

    _apply(category, data)
    if (category.name or {}).get('en') != old_name_en:
        category.assign_slug()
    category.updated_by = user.id if user else None

    db.session.flush()
    if category.parent_id != old_parent_id:
        # Moving a subtree changes the counts along both ancestor chains.
        refresh_product_counts(old_parent_id, category.id)
    db.session.commit()
    return category


def delete_category(category):
    if category.has_products():
        raise ApiError('Cannot delete a category that has products')
    if Category.query.filter_by(parent_id=category.id).count():
        raise ApiError('Cannot delete a category that has subcategories')

    if category.parent_id is not None:
        parent = db.session.get(Category, category.parent_id)
        if parent is not None:
            parent.remove_child(category.id)

    slug = category.slug
    db.session.delete(category)
    db.session.commit()
    logger.info("Category deleted: %s", slug)


def list_categories(include_inactive=False):
    query = Category.query
    if not include_inactive:
        query = query.filter_by(status=CategoryStatus.ACTIVE)
    return query.order_by(Category.sort_order, Category.id).all()
