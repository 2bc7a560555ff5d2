"""
JSON views of the models.

Multilingual fields are returned whole; ``display_name`` carries the
variant for the request language.
"""
from kervan.helpers import localized, money


def _price(value):
    return float(value) if value is not None else None


def _iso(value):
    return value.isoformat() if value else None


def serialize_user(user):
    return {
        'id': user.id,
        'email': user.email,
        'first_name': user.first_name,
        'last_name': user.last_name,
        'full_name': user.full_name,
        'phone': user.phone,
        'company': user.company,
        'role': user.role.value,
        'status': user.status.value,
        'is_email_verified': user.is_email_verified,
        'address': {
            'street': user.street,
            'city': user.city,
            'state': user.state,
            'zip_code': user.zip_code,
            'country': user.country,
        },
        'preferences': {
            'language': user.language,
            'currency': user.currency,
            'notifications': {
                'email': user.notify_email,
                'sms': user.notify_sms,
                'push': user.notify_push,
            },
        },
        'created_at': _iso(user.created_at),
        'last_login_at': _iso(user.last_login_at),
    }


def serialize_category(category, lang=None, include_children=False):
    data = {
        'id': category.id,
        'name': category.name,
        'display_name': localized(category.name, lang),
        'slug': category.slug,
        'description': category.description,
        'parent_id': category.parent_id,
        'children_ids': list(category.children_ids or []),
        'image': {'url': category.image_url, 'alt': category.image_alt},
        'icon': {'name': category.icon_name, 'color': category.icon_color},
        'seo': category.seo,
        'status': category.status.value,
        'featured': category.featured,
        'sort_order': category.sort_order,
        'product_count': category.product_count,
        'created_at': _iso(category.created_at),
        'updated_at': _iso(category.updated_at),
    }
    if include_children:
        data['hierarchy'] = category.get_hierarchy()
        data['subcategory_ids'] = category.get_all_subcategories()
    return data


def serialize_quantity_discount(discount):
    return {
        'min_quantity': discount.min_quantity,
        'max_quantity': discount.max_quantity,
        'price': _price(discount.price),
        'discount_percent': _price(discount.discount_percent),
    }


def serialize_product(product, lang=None, detail=False):
    data = {
        'id': product.id,
        'name': product.name,
        'display_name': localized(product.name, lang),
        'slug': product.slug,
        'code': product.code,
        'category_id': product.category_id,
        'subcategory_id': product.subcategory_id,
        'primary_image': product.primary_image,
        'images': product.images or [],
        'price': _price(product.flat_price),
        'pricing': {
            'price1': _price(product.price1),
            'price2': _price(product.price2),
            'price3': _price(product.price3),
            'active_price': product.active_price,
            'currency': product.currency,
        },
        'quantity_discounts': [
            serialize_quantity_discount(d) for d in product.quantity_discounts
        ],
        'stock': product.stock,
        'unit': product.unit,
        'in_stock': product.is_in_stock(),
        'status': product.status.value,
        'featured': product.featured,
        'tags': product.tags or [],
        'rating': {
            'average': _price(product.rating_average),
            'count': product.rating_count,
        },
        'created_at': _iso(product.created_at),
    }
    if detail:
        data.update({
            'description': product.description,
            'display_description': localized(product.description, lang),
            'barcode': product.barcode,
            'inventory': {
                'stock': product.stock,
                'min_stock_level': product.min_stock_level,
                'max_stock_level': product.max_stock_level,
                'unit': product.unit,
                'track_inventory': product.track_inventory,
                'is_low_stock': product.is_low_stock,
            },
            'specifications': product.specifications or {},
            'seo': product.seo or {},
            'related_product_ids': [p.id for p in product.related_products],
            'sales': {
                'total_sold': product.total_sold,
                'revenue': _price(product.revenue),
            },
            'category': (
                serialize_category(product.category, lang)
                if product.category else None
            ),
            'updated_at': _iso(product.updated_at),
        })
    return data


def serialize_cart(cart, lang=None):
    items = []
    subtotal = money(0)
    for item in cart.items.all() if cart else []:
        product = item.product
        unit_price = product.get_price_for_quantity(item.quantity)
        line_total = money(unit_price * item.quantity)
        subtotal += line_total
        items.append({
            'product_id': item.product_id,
            'product': {
                'id': product.id,
                'name': product.name,
                'display_name': localized(product.name, lang),
                'code': product.code,
                'slug': product.slug,
                'image': product.primary_image,
                'stock': product.stock,
                'status': product.status.value,
            },
            'quantity': item.quantity,
            'unit_price': float(unit_price),
            'line_total': float(line_total),
        })
    return {
        'cart_id': cart.id if cart else None,
        'items': items,
        'total_items': sum(i['quantity'] for i in items),
        'subtotal': float(subtotal),
    }


def serialize_order_item(item, lang=None):
    return {
        'id': item.id,
        'product_id': item.product_id,
        'name': item.product_name,
        'display_name': localized(item.product_name, lang),
        'code': item.product_code,
        'image': item.product_image,
        'specifications': item.product_specifications,
        'quantity': item.quantity,
        'unit_price': _price(item.unit_price),
        'total_price': _price(item.total_price),
        'applied_discount': _price(item.applied_discount),
    }


def serialize_order(order, lang=None, detail=False):
    data = {
        'id': order.id,
        'order_number': order.order_number,
        'status': order.status.value,
        'payment_status': order.payment_status.value,
        'payment_method': order.payment_method.value,
        'customer': order.get_customer_info(),
        'pricing': {
            'subtotal': _price(order.subtotal),
            'tax_amount': _price(order.tax_amount),
            'tax_rate': _price(order.tax_rate),
            'shipping_amount': _price(order.shipping_amount),
            'discount_amount': _price(order.discount_amount),
            'total': _price(order.total),
            'currency': order.currency,
        },
        'item_count': sum(i.quantity for i in order.items),
        'created_at': _iso(order.created_at),
        'updated_at': _iso(order.updated_at),
    }
    if detail:
        data.update({
            'items': [serialize_order_item(i, lang) for i in order.items],
            'shipping': {
                'address': order.shipping_address,
                'method': order.shipping_method,
                'tracking_number': order.tracking_number,
                'carrier': order.carrier,
                'estimated_delivery': _iso(order.estimated_delivery),
            },
            'payment': {
                'method': order.payment_method.value,
                'status': order.payment_status.value,
                'transaction_id': order.transaction_id,
                'payment_date': _iso(order.payment_date),
                'card_last4': order.card_last4,
                'card_brand': order.card_brand,
            },
            'status_history': [
                {
                    'status': h.status.value,
                    'note': h.note,
                    'updated_by': h.updated_by,
                    'date': _iso(h.created_at),
                }
                for h in order.status_history
            ],
            'notes': {
                'customer': order.customer_note,
                'admin': order.admin_note,
            },
            'communications': [
                {
                    'type': c.type.value,
                    'content': c.content,
                    'status': c.status.value,
                    'sent_at': _iso(c.sent_at),
                }
                for c in order.communications
            ],
            'can_be_cancelled': order.can_be_cancelled(),
            'can_be_refunded': order.can_be_refunded(),
        })
    return data
