from kervan.extensions import db
from kervan.models import Order, Product


def test_shipping_methods(client):
    methods = client.get('/api/shipping/methods').get_json()['methods']
    assert [m['id'] for m in methods] == \
        ['standard', 'express', 'overnight', 'free']


def calculate(client, items, method='standard', **extra):
    data = {'items': items, 'shipping_method': method}
    data.update(extra)
    return client.post('/api/shipping/calculate', json=data)


def test_calculate_light_parcel(client):
    response = calculate(client, [{'quantity': 4, 'price': '2.50'}])
    assert response.status_code == 200
    assert response.get_json()['shipping'] == {
        'method': 'standard',
        'cost': 5.99,
        'estimated_days': '5-7',
        'total_weight': 4.0,
        'total_value': 10.0,
        'free_shipping_applied': False,
    }


def test_calculate_weight_surcharge(client):
    body = calculate(client, [{'quantity': 3, 'weight': '6'}],
                     method='express').get_json()
    # 18 units: 8 over the free allowance at 0.5 each.
    assert body['shipping']['cost'] == 16.99


def test_calculate_uses_product_weight_and_price(app, client, catalog):
    with app.app_context():
        cup = db.session.get(Product, catalog['cup_id'])
        cup.specifications = {'weight': 0.5}
        db.session.commit()

    body = calculate(client, [
        {'product_id': catalog['cup_id'], 'quantity': 50},
    ]).get_json()
    assert body['shipping']['total_weight'] == 25.0
    assert body['shipping']['total_value'] == 30.0
    assert body['shipping']['cost'] == 13.49


def test_free_method_minimum(client):
    response = calculate(client, [{'quantity': 1}], method='free',
                         subtotal='99.99')
    assert response.status_code == 400

    response = calculate(client, [{'quantity': 1}], method='free',
                         subtotal='100')
    assert response.get_json()['shipping']['cost'] == 0


def test_free_shipping_threshold(client, set_setting):
    set_setting('shipping.free_shipping_threshold', 150)
    body = calculate(client, [{'quantity': 1}], subtotal='150').get_json()
    assert body['shipping']['cost'] == 0
    assert body['shipping']['free_shipping_applied'] is True


def test_calculate_unknown_method(client):
    assert calculate(client, [{'quantity': 1}], method='drone').status_code \
        == 400


def test_calculate_needs_items(client):
    assert calculate(client, []).status_code == 400


def test_update_shipping_method(client, admin):
    response = client.put('/api/shipping/methods/express',
                          headers=admin['headers'],
                          json={'cost': '9.50', 'enabled': False})
    assert response.status_code == 200
    assert response.get_json()['method']['cost'] == 9.5

    methods = client.get('/api/shipping/methods').get_json()['methods']
    assert 'express' not in [m['id'] for m in methods]
    assert calculate(client, [{'quantity': 1}],
                     method='express').status_code == 400


def test_update_unknown_shipping_method(client, admin):
    response = client.put('/api/shipping/methods/drone',
                          headers=admin['headers'], json={'cost': 1})
    assert response.status_code == 404


def test_update_shipping_method_admin_only(client, manager):
    response = client.put('/api/shipping/methods/express',
                          headers=manager['headers'], json={'cost': 1})
    assert response.status_code == 403


def test_track_shipment(client):
    tracking = client.get('/api/shipping/track/GE555').get_json()['tracking']
    assert tracking['tracking_number'] == 'GE555'
    assert tracking['status'] == 'in_transit'
    assert len(tracking['events']) == 2


def test_payment_methods_list_enabled_only(client):
    methods = client.get('/api/payments/methods').get_json()['methods']
    assert [m['name'] for m in methods] == \
        ['CREDIT_CARD', 'BANK_TRANSFER', 'CASH_ON_DELIVERY']


def order_for(client, catalog, customer, address,
              payment_method='CREDIT_CARD'):
    response = client.post('/api/orders', headers=customer['headers'], json={
        'items': [{'product_id': catalog['cup_id'], 'quantity': 10}],
        'shipping_address': address,
        'payment_method': payment_method,
    })
    return response.get_json()['order']


def pay(client, user, order, **overrides):
    data = {
        'order_id': order['id'],
        'payment_method': 'CREDIT_CARD',
        'amount': order['pricing']['total'],
        'card_last4': '4242',
        'card_brand': 'visa',
    }
    data.update(overrides)
    return client.post('/api/payments/process', headers=user['headers'],
                       json=data)


def test_card_payment_completes(app, client, catalog, customer,
                                shipping_address):
    order = order_for(client, catalog, customer, shipping_address)
    response = pay(client, customer, order)
    assert response.status_code == 200
    payment = response.get_json()['payment']
    assert payment['status'] == 'COMPLETED'
    assert payment['amount'] == 13.99
    assert payment['transaction_id'].startswith('txn_')

    with app.app_context():
        stored = db.session.get(Order, order['id'])
        assert stored.card_last4 == '4242'
        assert stored.payment_date is not None


def test_bank_transfer_stays_pending(client, catalog, customer,
                                     shipping_address):
    order = order_for(client, catalog, customer, shipping_address,
                      payment_method='BANK_TRANSFER')
    response = pay(client, customer, order, payment_method='BANK_TRANSFER',
                   card_last4=None, card_brand=None)
    assert response.get_json()['payment']['status'] == 'PENDING'


def test_payment_amount_must_match(client, catalog, customer,
                                   shipping_address):
    order = order_for(client, catalog, customer, shipping_address)
    response = pay(client, customer, order, amount=1)
    assert response.status_code == 400


def test_payment_cannot_be_repeated(client, catalog, customer,
                                    shipping_address):
    order = order_for(client, catalog, customer, shipping_address)
    pay(client, customer, order)
    assert pay(client, customer, order).status_code == 400


def test_disabled_payment_method(client, catalog, customer, shipping_address):
    order = order_for(client, catalog, customer, shipping_address)
    response = pay(client, customer, order, payment_method='TBC_BANK')
    assert response.status_code == 400


def test_payment_bad_card_digits(client, catalog, customer, shipping_address):
    order = order_for(client, catalog, customer, shipping_address)
    assert pay(client, customer, order, card_last4='42a2').status_code == 400


def test_cannot_pay_someone_elses_order(client, catalog, customer,
                                        other_customer, shipping_address):
    order = order_for(client, catalog, customer, shipping_address)
    assert pay(client, other_customer, order).status_code == 404


def test_payment_requires_login(client):
    response = client.post('/api/payments/process', json={
        'order_id': 1, 'payment_method': 'CREDIT_CARD', 'amount': 1})
    assert response.status_code == 401


def test_verify_payment(client, catalog, customer, shipping_address):
    order = order_for(client, catalog, customer, shipping_address)
    transaction_id = pay(client, customer, order).get_json()[
        'payment']['transaction_id']

    response = client.post('/api/payments/verify',
                           headers=customer['headers'],
                           json={'order_id': order['id'],
                                 'transaction_id': transaction_id})
    verification = response.get_json()['verification']
    assert verification['verified'] is True
    assert verification['status'] == 'COMPLETED'

    response = client.post('/api/payments/verify',
                           headers=customer['headers'],
                           json={'order_id': order['id'],
                                 'transaction_id': 'txn_forged'})
    assert response.get_json()['verification']['verified'] is False
