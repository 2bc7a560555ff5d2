from kervan.extensions import db
from kervan.models import Product, ProductStatus


def add(client, user, product_id, quantity):
    return client.post('/api/cart/items', headers=user['headers'],
                       json={'product_id': product_id, 'quantity': quantity})


def test_empty_cart(client, customer):
    response = client.get('/api/cart', headers=customer['headers'])
    assert response.status_code == 200
    body = response.get_json()
    assert body['items'] == []
    assert body['subtotal'] == 0


def test_cart_requires_login(client):
    assert client.get('/api/cart').status_code == 401


def test_add_items_uses_tier_pricing(client, catalog, customer):
    response = add(client, customer, catalog['cup_id'], 10)
    assert response.status_code == 201
    cart = response.get_json()['cart']
    assert cart['items'][0]['unit_price'] == 0.8
    assert cart['items'][0]['line_total'] == 8.0

    cart = add(client, customer, catalog['box_id'], 2).get_json()['cart']
    assert cart['total_items'] == 12
    assert cart['subtotal'] == 13.0


def test_adding_again_merges_quantities(client, catalog, customer):
    add(client, customer, catalog['cup_id'], 30)
    cart = add(client, customer, catalog['cup_id'], 30).get_json()['cart']
    assert len(cart['items']) == 1
    assert cart['items'][0]['quantity'] == 60
    assert cart['items'][0]['unit_price'] == 0.6


def test_add_more_than_stock(client, catalog, customer):
    response = add(client, customer, catalog['box_id'], 6)
    assert response.status_code == 400
    assert response.get_json() == {'error': 'Insufficient stock', 'available': 5}


def test_add_inactive_product(client, catalog, customer):
    response = add(client, customer, catalog['hidden_id'], 1)
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Product is not available'


def test_add_unknown_product(client, catalog, customer):
    assert add(client, customer, 9999, 1).status_code == 404


def test_backorders_allow_exceeding_stock(client, catalog, customer,
                                          set_setting):
    set_setting('ecommerce.inventory.allow_backorders', True)
    assert add(client, customer, catalog['box_id'], 8).status_code == 201


def sell_out(app, product_id):
    with app.app_context():
        product = db.session.get(Product, product_id)
        product.update_stock(product.stock)
        db.session.commit()
        assert product.status == ProductStatus.OUT_OF_STOCK


def test_backorders_allow_sold_out_products(app, client, catalog, customer,
                                            set_setting, shipping_address):
    sell_out(app, catalog['box_id'])
    assert add(client, customer, catalog['box_id'], 2).status_code == 400

    set_setting('ecommerce.inventory.allow_backorders', True)
    response = add(client, customer, catalog['box_id'], 2)
    assert response.status_code == 201
    assert response.get_json()['cart']['total_items'] == 2

    response = client.post('/api/orders', headers=customer['headers'], json={
        'shipping_address': shipping_address,
        'payment_method': 'BANK_TRANSFER',
    })
    assert response.status_code == 201


def test_update_quantity(client, catalog, customer):
    add(client, customer, catalog['cup_id'], 1)
    response = client.patch(f"/api/cart/items/{catalog['cup_id']}",
                            headers=customer['headers'],
                            json={'quantity': 50})
    assert response.status_code == 200
    assert response.get_json()['cart']['subtotal'] == 30.0

    response = client.patch(f"/api/cart/items/{catalog['cup_id']}",
                            headers=customer['headers'],
                            json={'quantity': 0})
    assert response.status_code == 400


def test_update_missing_item(client, catalog, customer):
    add(client, customer, catalog['cup_id'], 1)
    response = client.patch(f"/api/cart/items/{catalog['box_id']}",
                            headers=customer['headers'],
                            json={'quantity': 2})
    assert response.status_code == 404


def test_remove_item_and_clear(client, catalog, customer):
    add(client, customer, catalog['cup_id'], 1)
    add(client, customer, catalog['box_id'], 1)

    response = client.delete(f"/api/cart/items/{catalog['cup_id']}",
                             headers=customer['headers'])
    items = response.get_json()['cart']['items']
    assert [i['product_id'] for i in items] == [catalog['box_id']]

    client.delete('/api/cart', headers=customer['headers'])
    body = client.get('/api/cart', headers=customer['headers']).get_json()
    assert body['items'] == []


def test_carts_are_per_user(client, catalog, customer, other_customer):
    add(client, customer, catalog['cup_id'], 3)
    body = client.get('/api/cart', headers=other_customer['headers'])
    assert body.get_json()['items'] == []
