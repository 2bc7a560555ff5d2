from datetime import datetime
from decimal import Decimal

from kervan.extensions import db
from kervan.models import (
    Category,
    Order,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    Product,
    ProductStatus,
)
from kervan.services.order_service import generate_order_number


def place(client, address, items=None, user=None, **extra):
    data = {
        'shipping_address': address,
        'payment_method': extra.pop('payment_method', 'BANK_TRANSFER'),
    }
    if items is not None:
        data['items'] = items
    data.update(extra)
    headers = user['headers'] if user else None
    return client.post('/api/orders', json=data, headers=headers)


def stock_of(app, product_id):
    with app.app_context():
        return db.session.get(Product, product_id).stock


def test_create_order_from_items(app, client, catalog, customer,
                                 shipping_address):
    response = place(client, shipping_address, user=customer, items=[
        {'product_id': catalog['cup_id'], 'quantity': 10},
    ])
    assert response.status_code == 201
    order = response.get_json()['order']

    today = datetime.utcnow().strftime('%y%m%d')
    assert order['order_number'] == f'KRV{today}0001'
    assert order['status'] == 'PENDING'
    assert order['payment_status'] == 'PENDING'
    assert order['pricing']['subtotal'] == 8.0
    assert order['pricing']['shipping_amount'] == 5.99
    assert order['pricing']['total'] == 13.99
    item = order['items'][0]
    assert item['unit_price'] == 0.8
    assert item['applied_discount'] == 2.0
    assert item['code'] == 'CUP-250'
    assert order['status_history'][0]['note'] == 'Order placed'
    assert order['customer']['is_guest'] is False
    assert order['communications'][0]['type'] == 'EMAIL'

    assert stock_of(app, catalog['cup_id']) == 90
    with app.app_context():
        cup = db.session.get(Product, catalog['cup_id'])
        assert cup.total_sold == 10
        assert cup.revenue == Decimal('8.00')


def test_duplicate_lines_are_merged(client, catalog, customer,
                                    shipping_address):
    response = place(client, shipping_address, user=customer, items=[
        {'product_id': catalog['cup_id'], 'quantity': 30},
        {'product_id': catalog['cup_id'], 'quantity': 30},
    ])
    order = response.get_json()['order']
    assert len(order['items']) == 1
    assert order['items'][0]['quantity'] == 60
    assert order['items'][0]['unit_price'] == 0.6


def test_heavy_order_pays_weight_surcharge(client, catalog, customer,
                                           shipping_address):
    response = place(client, shipping_address, user=customer, items=[
        {'product_id': catalog['cup_id'], 'quantity': 12},
    ])
    assert response.get_json()['order']['pricing']['shipping_amount'] == 6.99


def test_order_numbers_count_up_within_the_day(client, catalog, customer,
                                               shipping_address):
    numbers = []
    for _ in range(2):
        response = place(client, shipping_address, user=customer, items=[
            {'product_id': catalog['cup_id'], 'quantity': 1},
        ])
        numbers.append(response.get_json()['order']['order_number'])
    assert numbers[0].endswith('0001')
    assert numbers[1].endswith('0002')


def test_order_number_prefix_from_settings(client, catalog, customer,
                                           shipping_address, set_setting):
    set_setting('ecommerce.orders.order_number_prefix', 'WHS')
    response = place(client, shipping_address, user=customer, items=[
        {'product_id': catalog['cup_id'], 'quantity': 1},
    ])
    assert response.get_json()['order']['order_number'].startswith('WHS')


def test_generate_order_number_format(ctx):
    number = generate_order_number('KRV', now=datetime(2026, 3, 7, 15, 0))
    assert number == 'KRV2603070001'


def test_create_order_from_cart_clears_it(app, client, catalog, customer,
                                          shipping_address):
    client.post('/api/cart/items', headers=customer['headers'],
                json={'product_id': catalog['box_id'], 'quantity': 2})

    response = place(client, shipping_address, user=customer)
    assert response.status_code == 201
    assert response.get_json()['order']['pricing']['subtotal'] == 5.0

    cart = client.get('/api/cart', headers=customer['headers']).get_json()
    assert cart['items'] == []
    assert stock_of(app, catalog['box_id']) == 3


def test_empty_cart_is_rejected(client, catalog, customer, shipping_address):
    response = place(client, shipping_address, user=customer)
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Cart is empty'


def test_insufficient_stock_changes_nothing(app, client, catalog, customer,
                                            shipping_address):
    response = place(client, shipping_address, user=customer, items=[
        {'product_id': catalog['cup_id'], 'quantity': 5},
        {'product_id': catalog['box_id'], 'quantity': 6},
    ])
    assert response.status_code == 400
    assert response.get_json()['available'] == 5
    assert stock_of(app, catalog['cup_id']) == 100
    with app.app_context():
        assert Order.query.count() == 0


def test_unavailable_product_is_rejected(client, catalog, customer,
                                         shipping_address):
    response = place(client, shipping_address, user=customer, items=[
        {'product_id': catalog['hidden_id'], 'quantity': 1},
    ])
    assert response.status_code == 400


def test_unknown_product_is_rejected(client, catalog, customer,
                                     shipping_address):
    response = place(client, shipping_address, user=customer, items=[
        {'product_id': 9999, 'quantity': 1},
    ])
    assert response.status_code == 404


def test_selling_last_units_marks_out_of_stock(app, client, catalog, customer,
                                               shipping_address):
    place(client, shipping_address, user=customer, items=[
        {'product_id': catalog['box_id'], 'quantity': 5},
    ])
    with app.app_context():
        box = db.session.get(Product, catalog['box_id'])
        assert box.stock == 0
        assert box.status == ProductStatus.OUT_OF_STOCK
        assert db.session.get(Category, catalog['root_id']).product_count == 1


def test_disabled_payment_method(client, catalog, customer, shipping_address):
    response = place(client, shipping_address, user=customer,
                     payment_method='TBC_BANK', items=[
                         {'product_id': catalog['cup_id'], 'quantity': 1},
                     ])
    assert response.status_code == 400


def test_unknown_shipping_method(client, catalog, customer, shipping_address):
    response = place(client, shipping_address, user=customer,
                     shipping_method='teleport', items=[
                         {'product_id': catalog['cup_id'], 'quantity': 1},
                     ])
    assert response.status_code == 400


def test_free_method_below_its_minimum(client, catalog, customer,
                                       shipping_address):
    response = place(client, shipping_address, user=customer,
                     shipping_method='free', items=[
                         {'product_id': catalog['cup_id'], 'quantity': 1},
                     ])
    assert response.status_code == 400


def test_free_shipping_threshold(client, catalog, customer, shipping_address,
                                 set_setting):
    set_setting('shipping.free_shipping_threshold', 5)
    response = place(client, shipping_address, user=customer, items=[
        {'product_id': catalog['cup_id'], 'quantity': 10},
    ])
    assert response.get_json()['order']['pricing']['shipping_amount'] == 0


def test_minimum_order_amount(client, catalog, customer, shipping_address,
                              set_setting):
    set_setting('ecommerce.cart.min_order_amount', 50)
    response = place(client, shipping_address, user=customer, items=[
        {'product_id': catalog['cup_id'], 'quantity': 10},
    ])
    assert response.status_code == 400


def test_tax_added_when_prices_exclude_it(client, catalog, customer,
                                          shipping_address, set_setting):
    set_setting('ecommerce.pricing', {'include_tax': False, 'tax_rate': 18})
    response = place(client, shipping_address, user=customer, items=[
        {'product_id': catalog['cup_id'], 'quantity': 10},
    ])
    pricing = response.get_json()['order']['pricing']
    assert pricing['tax_amount'] == 1.44
    assert pricing['total'] == 15.43


def test_auto_confirm(client, catalog, customer, shipping_address,
                      set_setting):
    set_setting('ecommerce.orders.auto_confirm_orders', True)
    response = place(client, shipping_address, user=customer, items=[
        {'product_id': catalog['cup_id'], 'quantity': 1},
    ])
    order = response.get_json()['order']
    assert order['status'] == 'CONFIRMED'
    assert [h['status'] for h in order['status_history']] == \
        ['PENDING', 'CONFIRMED']


def test_guest_checkout(app, client, catalog, shipping_address):
    response = place(client, shipping_address, items=[
        {'product_id': catalog['cup_id'], 'quantity': 1},
    ], guest={'first_name': 'Ana', 'last_name': 'K',
              'email': 'ana@mail.ge'})
    assert response.status_code == 201
    customer = response.get_json()['order']['customer']
    assert customer == {
        'name': 'Ana K',
        'email': 'ana@mail.ge',
        'phone': shipping_address['phone'],
        'is_guest': True,
    }


def test_guest_checkout_needs_items(client, catalog, shipping_address):
    response = place(client, shipping_address)
    assert response.status_code == 400


def test_guest_checkout_can_be_disabled(client, catalog, shipping_address,
                                        set_setting):
    set_setting('ecommerce.orders.allow_guest_checkout', False)
    response = place(client, shipping_address, items=[
        {'product_id': catalog['cup_id'], 'quantity': 1},
    ])
    assert response.status_code == 401


def test_order_validation(client, catalog, customer):
    response = client.post('/api/orders', headers=customer['headers'], json={
        'shipping_address': {'first_name': 'Nino'},
        'payment_method': 'BARTER',
    })
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Validation failed'


def test_list_own_orders(client, catalog, customer, other_customer,
                         shipping_address):
    place(client, shipping_address, user=customer, items=[
        {'product_id': catalog['cup_id'], 'quantity': 1},
    ])
    place(client, shipping_address, user=other_customer, items=[
        {'product_id': catalog['cup_id'], 'quantity': 2},
    ])

    body = client.get('/api/orders', headers=customer['headers']).get_json()
    assert body['total'] == 1
    assert body['items'][0]['item_count'] == 1

    body = client.get('/api/orders?status=shipped',
                      headers=customer['headers']).get_json()
    assert body['total'] == 0


def test_order_visibility(client, catalog, customer, other_customer, manager,
                          shipping_address):
    order_id = place(client, shipping_address, user=customer, items=[
        {'product_id': catalog['cup_id'], 'quantity': 1},
    ]).get_json()['order']['id']

    url = f'/api/orders/{order_id}'
    assert client.get(url, headers=customer['headers']).status_code == 200
    assert client.get(url, headers=other_customer['headers']).status_code == 404
    assert client.get(url, headers=manager['headers']).status_code == 200


def test_cancel_restores_stock(app, client, catalog, customer,
                               shipping_address):
    order_id = place(client, shipping_address, user=customer, items=[
        {'product_id': catalog['box_id'], 'quantity': 5},
    ]).get_json()['order']['id']
    assert stock_of(app, catalog['box_id']) == 0

    response = client.post(f'/api/orders/{order_id}/cancel',
                           headers=customer['headers'],
                           json={'reason': 'Ordered by mistake'})
    assert response.get_json() == {'ok': True, 'new_status': 'CANCELLED'}

    with app.app_context():
        box = db.session.get(Product, catalog['box_id'])
        assert box.stock == 5
        assert box.status == ProductStatus.ACTIVE
        order = db.session.get(Order, order_id)
        assert order.payment_status == PaymentStatus.CANCELLED
        assert order.status_history[-1].note == \
            'Cancelled by customer: Ordered by mistake'


def test_cancel_refused_once_shipped(app, client, catalog, customer,
                                     shipping_address):
    order_id = place(client, shipping_address, user=customer, items=[
        {'product_id': catalog['cup_id'], 'quantity': 1},
    ]).get_json()['order']['id']
    with app.app_context():
        db.session.get(Order, order_id).status = OrderStatus.SHIPPED
        db.session.commit()

    response = client.post(f'/api/orders/{order_id}/cancel',
                           headers=customer['headers'])
    assert response.status_code == 400


def test_cancel_someone_elses_order(client, catalog, customer, other_customer,
                                    shipping_address):
    order_id = place(client, shipping_address, user=customer, items=[
        {'product_id': catalog['cup_id'], 'quantity': 1},
    ]).get_json()['order']['id']
    response = client.post(f'/api/orders/{order_id}/cancel',
                           headers=other_customer['headers'])
    assert response.status_code == 404


def test_staff_status_change_is_unguarded(client, catalog, customer, manager,
                                          shipping_address):
    order_id = place(client, shipping_address, user=customer, items=[
        {'product_id': catalog['cup_id'], 'quantity': 1},
    ]).get_json()['order']['id']
    url = f'/api/orders/{order_id}/status'

    response = client.put(url, headers=manager['headers'], json={
        'status': 'SHIPPED',
        'tracking_number': 'GE123',
        'carrier': 'Georgian Post',
    })
    order = response.get_json()['order']
    assert order['status'] == 'SHIPPED'
    assert order['shipping']['tracking_number'] == 'GE123'

    response = client.put(url, headers=manager['headers'],
                          json={'status': 'PENDING', 'note': 'Reopened'})
    order = response.get_json()['order']
    assert order['status'] == 'PENDING'
    assert order['status_history'][-1]['note'] == 'Reopened'


def test_status_change_requires_staff(client, catalog, customer,
                                      shipping_address):
    order_id = place(client, shipping_address, user=customer, items=[
        {'product_id': catalog['cup_id'], 'quantity': 1},
    ]).get_json()['order']['id']
    response = client.put(f'/api/orders/{order_id}/status',
                          headers=customer['headers'],
                          json={'status': 'DELIVERED'})
    assert response.status_code == 403


def test_cash_on_delivery_completes_on_delivery(app, client, catalog,
                                                customer, admin,
                                                shipping_address):
    order_id = place(client, shipping_address, user=customer,
                     payment_method='CASH_ON_DELIVERY', items=[
                         {'product_id': catalog['cup_id'], 'quantity': 1},
                     ]).get_json()['order']['id']
    response = client.put(f'/api/orders/{order_id}/status',
                          headers=admin['headers'],
                          json={'status': 'DELIVERED'})
    order = response.get_json()['order']
    assert order['payment_status'] == 'COMPLETED'
    assert order['can_be_refunded'] is True

    with app.app_context():
        order = db.session.get(Order, order_id)
        assert order.payment_method == PaymentMethod.CASH_ON_DELIVERY
        assert order.payment_date is not None
