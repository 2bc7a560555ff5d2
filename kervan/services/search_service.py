from kervan.extensions import db
from kervan.helpers import to_decimal
from kervan.models import Category, Product, ProductStatus
from sqlalchemy import or_
from decimal import InvalidOperation
import re
import logging

logger = logging.getLogger(__name__)

LANGUAGES = ('ka', 'en', 'tr')

SORT_OPTIONS = (
    'price_asc',
    'price_desc',
    'name_asc',
    'name_desc',
    'newest',
    'oldest',
    'featured',
)


def _sanitize_query(query):
    if not query:
        return None
    q = str(query).replace('\x00', '').strip()
    if not q:
        return None
    q = re.sub(r'\s+', ' ', q).strip()
    return q[:80] if len(q) > 80 else q


def _parse_price(value):
    if value in (None, ''):
        return None
    try:
        return to_decimal(value)
    except InvalidOperation:
        return None


def resolve_category(value):
    """Category by numeric id or slug."""
    if value in (None, ''):
        return None
    value = str(value).strip()
    if value.isdigit():
        return db.session.get(Category, int(value))
    return Category.query.filter_by(slug=value.lower()).first()


def _escape_like(term):
    return (
        term.replace('\\', '\\\\')
        .replace('%', '\\%')
        .replace('_', '\\_')
    )


def _text_search(term):
    pattern = f'%{_escape_like(term)}%'
    clauses = [Product.code.ilike(pattern, escape='\\')]
    for lang in LANGUAGES:
        clauses.append(Product.name[lang].as_string().ilike(
            pattern, escape='\\'))
        clauses.append(Product.description[lang].as_string().ilike(
            pattern, escape='\\'))
    clauses.append(db.cast(Product.tags, db.Text).ilike(
        pattern, escape='\\'))
    return or_(*clauses)


def _apply_sort(query, sort):
    if sort == 'price_asc':
        return query.order_by(Product.price1.asc(), Product.id)
    if sort == 'price_desc':
        return query.order_by(Product.price1.desc(), Product.id)
    if sort == 'name_asc':
        return query.order_by(Product.name['en'].as_string().asc())
    if sort == 'name_desc':
        return query.order_by(Product.name['en'].as_string().desc())
    if sort == 'oldest':
        return query.order_by(Product.created_at.asc(), Product.id.asc())
    if sort == 'featured':
        return query.order_by(
            Product.featured.desc(),
            Product.created_at.desc(),
            Product.id.desc())
    return query.order_by(Product.created_at.desc(), Product.id.desc())


def build_product_query(
        search=None,
        category=None,
        min_price=None,
        max_price=None,
        status='ACTIVE',
        featured=None,
        tags=None,
        sort='newest'):
    """Filtered, sorted product query; returns None if nothing can match.

    ``status`` of 'ALL' disables the status filter.
    """
    query = Product.query

    status = (status or 'ACTIVE').upper()
    if status != 'ALL':
        try:
            query = query.filter(Product.status == ProductStatus(status))
        except ValueError:
            return None

    if category:
        cat = resolve_category(category)
        if cat is None:
            return None
        query = query.filter(
            or_(
                Product.category_id == cat.id,
                Product.subcategory_id == cat.id,
            )
        )

    term = _sanitize_query(search)
    if term:
        query = query.filter(_text_search(term))

    low = _parse_price(min_price)
    if low is not None:
        query = query.filter(Product.price1 >= low)
    high = _parse_price(max_price)
    if high is not None:
        query = query.filter(Product.price1 <= high)

    if featured is not None:
        query = query.filter(Product.featured.is_(featured))

    if tags:
        if isinstance(tags, str):
            tags = [t.strip() for t in tags.split(',') if t.strip()]
        for tag in tags:
            query = query.filter(
                db.cast(Product.tags, db.Text).ilike(
                    f'%"{_escape_like(tag)}"%', escape='\\'))

    return _apply_sort(query, sort if sort in SORT_OPTIONS else 'newest')
