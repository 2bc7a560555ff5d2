from flask import Blueprint, jsonify
from flask_login import login_required, current_user
from kervan.extensions import db
from kervan.models import Cart, CartItem, Product, Settings
from kervan.schemas import CartItemSchema, CartItemUpdateSchema
from kervan.serializers import serialize_cart
from kervan.utils import get_request_language, validate_payload
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('cart', __name__)


def _get_or_create_cart():
    cart = Cart.query.filter_by(user_id=current_user.id).first()
    if not cart:
        cart = Cart(user_id=current_user.id)
        db.session.add(cart)
        db.session.flush()
    return cart


def _stock_error(product, quantity):
    """Error message if quantity cannot be ordered, else None."""
    return product.availability_error(
        quantity,
        Settings.get_instance().get('ecommerce.inventory.allow_backorders'))


@bp.route('/api/cart', methods=['GET'])
@login_required
def get_cart():
    cart = _get_or_create_cart()
    db.session.commit()
    return jsonify(serialize_cart(cart, get_request_language()))


@bp.route('/api/cart/items', methods=['POST'])
@login_required
def add_cart_item():
    payload, error = validate_payload(CartItemSchema)
    if error:
        return error

    product = db.session.get(Product, payload.product_id)
    if product is None:
        return jsonify({'error': 'Product not found'}), 404

    cart = _get_or_create_cart()

    # Check if already exists
    cart_item = CartItem.query.filter_by(
        cart_id=cart.id,
        product_id=product.id
    ).first()
    new_quantity = payload.quantity + (cart_item.quantity if cart_item else 0)

    message = _stock_error(product, new_quantity)
    if message:
        db.session.rollback()
        return jsonify({'error': message, 'available': product.stock}), 400

    if cart_item:
        cart_item.quantity = new_quantity
    else:
        cart_item = CartItem(
            cart_id=cart.id,
            product_id=product.id,
            quantity=new_quantity
        )
        db.session.add(cart_item)

    db.session.commit()

    return jsonify({
        'ok': True,
        'cart': serialize_cart(cart, get_request_language()),
    }), 201


@bp.route('/api/cart/items/<int:product_id>', methods=['PATCH'])
@login_required
def update_cart_item(product_id):
    payload, error = validate_payload(CartItemUpdateSchema)
    if error:
        return error

    cart = Cart.query.filter_by(user_id=current_user.id).first_or_404()
    cart_item = CartItem.query.filter_by(
        cart_id=cart.id,
        product_id=product_id
    ).first_or_404()

    message = _stock_error(cart_item.product, payload.quantity)
    if message:
        return jsonify({
            'error': message,
            'available': cart_item.product.stock,
        }), 400

    cart_item.quantity = payload.quantity
    db.session.commit()

    return jsonify({
        'ok': True,
        'cart': serialize_cart(cart, get_request_language()),
    })


@bp.route('/api/cart/items/<int:product_id>', methods=['DELETE'])
@login_required
def delete_cart_item(product_id):
    cart = Cart.query.filter_by(user_id=current_user.id).first_or_404()
    cart_item = CartItem.query.filter_by(
        cart_id=cart.id,
        product_id=product_id
    ).first_or_404()

    db.session.delete(cart_item)
    db.session.commit()

    return jsonify({
        'ok': True,
        'cart': serialize_cart(cart, get_request_language()),
    })


@bp.route('/api/cart', methods=['DELETE'])
@login_required
def clear_cart():
    cart = Cart.query.filter_by(user_id=current_user.id).first()
    if cart:
        CartItem.query.filter_by(cart_id=cart.id).delete()
        db.session.commit()
    return jsonify({'ok': True})
