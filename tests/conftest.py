from decimal import Decimal

import pytest

from kervan import create_app
from kervan.config import Config
from kervan.extensions import db
from kervan.models import (
    Category,
    Product,
    ProductStatus,
    QuantityDiscount,
    Settings,
    User,
    UserRole,
)
from kervan.services.token_service import create_access_token


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret'
    JWT_SECRET_KEY = 'test-jwt-secret'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    MAIL_ENABLED = False


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        Settings.get_instance()

    # No app context is held open here: Flask-Login caches the current
    # user on g, which lives as long as the app context.
    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield


def make_user(app, email, role=UserRole.CUSTOMER, password='secret123',
              **fields):
    with app.app_context():
        user = User(
            email=email,
            first_name=fields.pop('first_name', 'Test'),
            last_name=fields.pop('last_name', 'User'),
            role=role,
            **fields
        )
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        token = create_access_token(user)
        return {
            'id': user.id,
            'email': email,
            'password': password,
            'token': token,
            'headers': {'Authorization': f'Bearer {token}'},
        }


@pytest.fixture
def customer(app):
    return make_user(app, 'nino@kervan.ge', first_name='Nino')


@pytest.fixture
def other_customer(app):
    return make_user(app, 'giorgi@kervan.ge', first_name='Giorgi')


@pytest.fixture
def manager(app):
    return make_user(app, 'manager@kervan.ge', role=UserRole.MANAGER)


@pytest.fixture
def admin(app):
    return make_user(app, 'admin@kervan.ge', role=UserRole.ADMIN)


@pytest.fixture
def catalog(app):
    """Packaging > Boxes, a tier-priced cup and a low-stock pizza box."""
    with app.app_context():
        root = Category(
            name={'en': 'Packaging', 'ka': 'შეფუთვა', 'tr': 'Ambalaj'},
            slug='packaging',
            children_ids=[],
        )
        db.session.add(root)
        db.session.flush()
        child = Category(
            name={'en': 'Boxes', 'ka': 'ყუთები'},
            slug='boxes',
            parent_id=root.id,
            children_ids=[],
        )
        db.session.add(child)
        db.session.flush()
        root.add_child(child.id)

        cup = Product(
            name={'en': 'Paper Cup', 'ka': 'ქაღალდის ჭიქა', 'tr': 'Bardak'},
            description={'en': 'Single wall cup for hot drinks'},
            slug='paper-cup',
            code='CUP-250',
            category_id=root.id,
            subcategory_id=child.id,
            price1=Decimal('1.00'),
            price2=Decimal('0.90'),
            stock=100,
            track_inventory=True,
            status=ProductStatus.ACTIVE,
            tags=['paper', 'cup'],
            images=[{'url': '/img/cup.jpg', 'alt': 'cup', 'is_primary': True}],
        )
        cup.quantity_discounts = [
            QuantityDiscount(
                position=0,
                min_quantity=10,
                max_quantity=49,
                price=Decimal('0.80')),
            QuantityDiscount(
                position=1,
                min_quantity=50,
                max_quantity=None,
                price=Decimal('0.60')),
        ]
        box = Product(
            name={'en': 'Pizza Box'},
            slug='pizza-box',
            code='BOX-30',
            category_id=root.id,
            price1=Decimal('2.50'),
            stock=5,
            track_inventory=True,
            status=ProductStatus.ACTIVE,
            featured=True,
            tags=['box'],
            images=[],
        )
        hidden = Product(
            name={'en': 'Old Tray'},
            slug='old-tray',
            code='TRAY-1',
            category_id=root.id,
            price1=Decimal('3.00'),
            stock=40,
            track_inventory=True,
            status=ProductStatus.INACTIVE,
            tags=[],
            images=[],
        )
        db.session.add_all([cup, box, hidden])
        db.session.flush()
        child.update_product_count()
        root.update_product_count()
        db.session.commit()

        return {
            'root_id': root.id,
            'child_id': child.id,
            'cup_id': cup.id,
            'box_id': box.id,
            'hidden_id': hidden.id,
        }


@pytest.fixture
def shipping_address():
    return {
        'first_name': 'Nino',
        'last_name': 'Beridze',
        'street': '12 Rustaveli Ave',
        'city': 'Tbilisi',
        'phone': '+995555123456',
        'email': 'nino@kervan.ge',
    }


def update_settings(app, path, value):
    with app.app_context():
        settings = Settings.get_instance()
        settings.update_setting(path, value)
        db.session.commit()


@pytest.fixture
def set_setting(app):
    def _set(path, value):
        update_settings(app, path, value)
    return _set
