from kervan.extensions import db
from kervan.models import Category, Product


def codes(response):
    return [p['code'] for p in response.get_json()['items']]


def test_list_hides_inactive_products(client, catalog):
    response = client.get('/api/products?sort=price_asc')
    assert response.status_code == 200
    body = response.get_json()
    assert codes(response) == ['CUP-250', 'BOX-30']
    assert body['total'] == 2


def test_customer_cannot_request_other_statuses(client, catalog, customer):
    response = client.get('/api/products?status=INACTIVE',
                          headers=customer['headers'])
    assert 'TRAY-1' not in codes(response)


def test_staff_can_request_other_statuses(client, catalog, manager):
    response = client.get('/api/products?status=INACTIVE',
                          headers=manager['headers'])
    assert codes(response) == ['TRAY-1']


def test_search_matches_localized_name(client, catalog):
    response = client.get('/api/products', query_string={'search': 'ჭიქა'})
    assert codes(response) == ['CUP-250']


def test_search_matches_code_and_tags(client, catalog):
    assert codes(client.get('/api/products?search=box-30')) == ['BOX-30']
    assert codes(client.get('/api/products?tags=paper')) == ['CUP-250']


def test_filter_by_category_slug_and_subcategory(client, catalog):
    response = client.get('/api/products?category=packaging&sort=price_asc')
    assert codes(response) == ['CUP-250', 'BOX-30']
    response = client.get('/api/products?category=boxes')
    assert codes(response) == ['CUP-250']


def test_unknown_category_gives_empty_page(client, catalog):
    response = client.get('/api/products?category=nope')
    assert response.status_code == 200
    assert response.get_json()['total'] == 0


def test_price_range_and_featured_filters(client, catalog):
    assert codes(client.get('/api/products?min_price=2')) == ['BOX-30']
    assert codes(client.get('/api/products?max_price=1')) == ['CUP-250']
    assert codes(client.get('/api/products?featured=true')) == ['BOX-30']


def test_pagination(client, catalog):
    response = client.get('/api/products?per_page=1&page=2&sort=price_asc')
    body = response.get_json()
    assert codes(response) == ['BOX-30']
    assert body['pages'] == 2
    assert body['has_prev'] is True


def test_display_name_follows_language(client, catalog):
    response = client.get('/api/products/paper-cup?lang=ka')
    assert response.get_json()['product']['display_name'] == 'ქაღალდის ჭიქა'

    response = client.get('/api/products/paper-cup',
                          headers={'Accept-Language': 'tr'})
    assert response.get_json()['product']['display_name'] == 'Bardak'


def test_get_product_by_id_and_slug(client, catalog):
    by_id = client.get(f"/api/products/{catalog['cup_id']}")
    by_slug = client.get('/api/products/paper-cup')
    assert by_id.status_code == by_slug.status_code == 200
    product = by_slug.get_json()['product']
    assert product['id'] == catalog['cup_id']
    assert product['price'] == 1.0
    assert product['quantity_discounts'][0] == {
        'min_quantity': 10,
        'max_quantity': 49,
        'price': 0.8,
        'discount_percent': None,
    }
    assert product['category']['slug'] == 'packaging'
    assert product['related_products'] == []


def test_get_missing_product(client, catalog):
    assert client.get('/api/products/9999').status_code == 404
    assert client.get('/api/products/no-such-slug').status_code == 404


def test_price_for_quantity(client, catalog):
    url = f"/api/products/{catalog['cup_id']}/price"
    body = client.get(url, query_string={'quantity': 5}).get_json()
    assert body['unit_price'] == 1.0
    assert body['total'] == 5.0

    body = client.get(url, query_string={'quantity': 10}).get_json()
    assert body['unit_price'] == 0.8
    assert body['total'] == 8.0

    body = client.get(url, query_string={'quantity': 60}).get_json()
    assert body['unit_price'] == 0.6
    assert body['flat_price'] == 1.0


def test_price_for_quantity_rejects_zero(client, catalog):
    url = f"/api/products/{catalog['cup_id']}/price?quantity=0"
    assert client.get(url).status_code == 400


def new_product_payload(catalog, **overrides):
    data = {
        'name': {'en': 'Kraft Bag', 'ka': 'კრაფტის პარკი'},
        'code': 'bag-kr-1',
        'category_id': catalog['root_id'],
        'price1': '0.30',
        'stock': 500,
        'quantity_discounts': [
            {'min_quantity': 100, 'price': '0.25', 'discount_percent': 16},
        ],
        'related_product_ids': [catalog['cup_id']],
    }
    data.update(overrides)
    return data


def test_create_product(app, client, catalog, manager):
    response = client.post('/api/products', headers=manager['headers'],
                           json=new_product_payload(catalog))
    assert response.status_code == 201
    product = response.get_json()['product']
    assert product['code'] == 'BAG-KR-1'
    assert product['slug'] == 'kraft-bag'
    assert product['related_product_ids'] == [catalog['cup_id']]
    assert product['quantity_discounts'][0]['price'] == 0.25

    with app.app_context():
        assert db.session.get(
            Category, catalog['root_id']).product_count == 3


def test_create_product_slug_is_unique(client, catalog, admin):
    response = client.post(
        '/api/products', headers=admin['headers'],
        json=new_product_payload(catalog, name={'en': 'Paper Cup'}))
    assert response.get_json()['product']['slug'] == 'paper-cup-2'


def test_create_product_duplicate_code(client, catalog, admin):
    response = client.post(
        '/api/products', headers=admin['headers'],
        json=new_product_payload(catalog, code='cup-250'))
    assert response.status_code == 409


def test_create_product_unknown_category(client, catalog, admin):
    response = client.post(
        '/api/products', headers=admin['headers'],
        json=new_product_payload(catalog, category_id=9999))
    assert response.status_code == 404


def test_create_product_requires_english_name(client, catalog, admin):
    response = client.post(
        '/api/products', headers=admin['headers'],
        json=new_product_payload(catalog, name={'ka': 'პარკი'}))
    assert response.status_code == 400


def test_create_product_rejects_inverted_tier(client, catalog, admin):
    response = client.post(
        '/api/products', headers=admin['headers'],
        json=new_product_payload(catalog, quantity_discounts=[
            {'min_quantity': 50, 'max_quantity': 10, 'price': '0.2'},
        ]))
    assert response.status_code == 400


def test_customer_cannot_create_product(client, catalog, customer):
    response = client.post('/api/products', headers=customer['headers'],
                           json=new_product_payload(catalog))
    assert response.status_code == 403


def test_anonymous_cannot_create_product(client, catalog):
    response = client.post('/api/products', json=new_product_payload(catalog))
    assert response.status_code == 401


def test_update_product_renames_slug(client, catalog, manager):
    response = client.put(
        f"/api/products/{catalog['box_id']}", headers=manager['headers'],
        json={'name': {'en': 'Pizza Box Large'}, 'active_price': 'price1'})
    assert response.status_code == 200
    assert response.get_json()['product']['slug'] == 'pizza-box-large'


def test_update_product_active_price(client, catalog, manager):
    response = client.put(
        f"/api/products/{catalog['cup_id']}", headers=manager['headers'],
        json={'active_price': 'price2'})
    assert response.get_json()['product']['price'] == 0.9


def test_update_product_status_refreshes_counts(app, client, catalog, admin):
    client.put(f"/api/products/{catalog['hidden_id']}",
               headers=admin['headers'], json={'status': 'ACTIVE'})
    with app.app_context():
        assert db.session.get(
            Category, catalog['root_id']).product_count == 3


def test_stock_subtract_to_zero_and_restock(client, catalog, manager):
    url = f"/api/products/{catalog['box_id']}/stock"
    response = client.patch(url, headers=manager['headers'],
                            json={'quantity': 9, 'operation': 'subtract'})
    assert response.get_json() == {
        'ok': True, 'stock': 0, 'status': 'OUT_OF_STOCK'}

    response = client.patch(url, headers=manager['headers'],
                            json={'quantity': 20})
    assert response.get_json() == {'ok': True, 'stock': 20, 'status': 'ACTIVE'}


def test_stock_rejects_bad_operation(client, catalog, manager):
    response = client.patch(
        f"/api/products/{catalog['box_id']}/stock",
        headers=manager['headers'],
        json={'quantity': 1, 'operation': 'set'})
    assert response.status_code == 400


def test_delete_product_admin_only(app, client, catalog, manager, admin):
    url = f"/api/products/{catalog['box_id']}"
    assert client.delete(url, headers=manager['headers']).status_code == 403
    assert client.delete(url, headers=admin['headers']).status_code == 200
    with app.app_context():
        assert db.session.get(Product, catalog['box_id']) is None
        assert db.session.get(
            Category, catalog['root_id']).product_count == 1


def test_search_treats_wildcards_literally(app, client, catalog):
    with app.app_context():
        db.session.get(Product, catalog['cup_id']).code = 'CUP_250'
        db.session.commit()

    response = client.get('/api/products', query_string={'search': 'cup_250'})
    assert codes(response) == ['CUP_250']
    # "_" must not match the "-" in BOX-30.
    response = client.get('/api/products', query_string={'search': 'x_3'})
    assert codes(response) == []
    response = client.get('/api/products', query_string={'search': '%'})
    assert codes(response) == []


def test_update_product_rejects_null_for_required_fields(app, client, catalog,
                                                         manager):
    url = f"/api/products/{catalog['cup_id']}"
    for field in ('price1', 'stock', 'tags', 'images', 'featured', 'unit'):
        response = client.put(url, headers=manager['headers'],
                              json={field: None})
        assert response.status_code == 400
        assert response.get_json()['error'] == f'{field} cannot be null'

    with app.app_context():
        cup = db.session.get(Product, catalog['cup_id'])
        assert cup.price1 == 1
        assert cup.tags == ['paper', 'cup']


def test_update_product_allows_null_for_optional_fields(client, catalog,
                                                        manager):
    response = client.put(f"/api/products/{catalog['cup_id']}",
                          headers=manager['headers'],
                          json={'price2': None, 'max_stock_level': None})
    assert response.status_code == 200
    assert response.get_json()['product']['price'] == 1.0


def test_blank_barcodes_are_not_unique(app, client, catalog, admin):
    first = client.post('/api/products', headers=admin['headers'],
                        json=new_product_payload(catalog, barcode=''))
    second = client.post(
        '/api/products', headers=admin['headers'],
        json=new_product_payload(catalog, code='BAG-KR-2',
                                 name={'en': 'Kraft Bag Small'},
                                 barcode='  '))
    assert first.status_code == 201
    assert second.status_code == 201

    with app.app_context():
        for body in (first, second):
            product_id = body.get_json()['product']['id']
            assert db.session.get(Product, product_id).barcode is None


def test_duplicate_barcode(client, catalog, admin):
    client.post('/api/products', headers=admin['headers'],
                json=new_product_payload(catalog, barcode='4860001'))
    response = client.post(
        '/api/products', headers=admin['headers'],
        json=new_product_payload(catalog, code='BAG-KR-2',
                                 name={'en': 'Kraft Bag Small'},
                                 barcode='4860001'))
    assert response.status_code == 409
