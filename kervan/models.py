from kervan.extensions import db
from kervan.defaults import DEFAULT_SETTINGS
from kervan.helpers import slugify, to_decimal, deep_merge, shape_mismatch
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from datetime import datetime, timedelta
from sqlalchemy import CheckConstraint, or_
from sqlalchemy.orm.attributes import flag_modified
import copy
import enum
import json
import secrets


class UserRole(enum.Enum):
    CUSTOMER = 'CUSTOMER'
    MANAGER = 'MANAGER'
    ADMIN = 'ADMIN'


class UserStatus(enum.Enum):
    ACTIVE = 'ACTIVE'
    INACTIVE = 'INACTIVE'
    SUSPENDED = 'SUSPENDED'


class CategoryStatus(enum.Enum):
    ACTIVE = 'ACTIVE'
    INACTIVE = 'INACTIVE'


class ProductStatus(enum.Enum):
    ACTIVE = 'ACTIVE'
    INACTIVE = 'INACTIVE'
    OUT_OF_STOCK = 'OUT_OF_STOCK'
    DISCONTINUED = 'DISCONTINUED'


class OrderStatus(enum.Enum):
    PENDING = 'PENDING'
    CONFIRMED = 'CONFIRMED'
    PROCESSING = 'PROCESSING'
    SHIPPED = 'SHIPPED'
    DELIVERED = 'DELIVERED'
    CANCELLED = 'CANCELLED'
    REFUNDED = 'REFUNDED'


class PaymentStatus(enum.Enum):
    PENDING = 'PENDING'
    PROCESSING = 'PROCESSING'
    COMPLETED = 'COMPLETED'
    FAILED = 'FAILED'
    REFUNDED = 'REFUNDED'
    CANCELLED = 'CANCELLED'


class PaymentMethod(enum.Enum):
    BANK_TRANSFER = 'BANK_TRANSFER'
    CREDIT_CARD = 'CREDIT_CARD'
    CASH_ON_DELIVERY = 'CASH_ON_DELIVERY'
    TBC_BANK = 'TBC_BANK'


class OrderSource(enum.Enum):
    WEBSITE = 'WEBSITE'
    ADMIN = 'ADMIN'
    API = 'API'
    IMPORT = 'IMPORT'


class CommunicationType(enum.Enum):
    EMAIL = 'EMAIL'
    SMS = 'SMS'
    CALL = 'CALL'
    NOTE = 'NOTE'


class CommunicationStatus(enum.Enum):
    SENT = 'SENT'
    DELIVERED = 'DELIVERED'
    FAILED = 'FAILED'


def unique_slug(model_class, text, current_id=None):
    base = slugify(text) or 'item'
    slug = base
    suffix = 2
    while True:
        query = model_class.query.filter(model_class.slug == slug)
        if current_id is not None:
            query = query.filter(model_class.id != current_id)
        if query.first() is None:
            return slug
        slug = f'{base}-{suffix}'
        suffix += 1


class User(UserMixin, db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    first_name = db.Column(db.String(50), nullable=False)
    last_name = db.Column(db.String(50), nullable=False)
    phone = db.Column(db.String(30), nullable=True)
    company = db.Column(db.String(120), nullable=True)
    role = db.Column(
        db.Enum(UserRole),
        nullable=False,
        default=UserRole.CUSTOMER)
    status = db.Column(
        db.Enum(UserStatus),
        nullable=False,
        default=UserStatus.ACTIVE)
    is_email_verified = db.Column(db.Boolean, default=False, nullable=False)

    # Address
    street = db.Column(db.String(200), nullable=True)
    city = db.Column(db.String(100), nullable=True)
    state = db.Column(db.String(100), nullable=True)
    zip_code = db.Column(db.String(20), nullable=True)
    country = db.Column(db.String(100), nullable=True, default='Georgia')

    # Preferences
    language = db.Column(db.String(2), nullable=False, default='ka')
    currency = db.Column(db.String(3), nullable=False, default='GEL')
    notify_email = db.Column(db.Boolean, default=True, nullable=False)
    notify_sms = db.Column(db.Boolean, default=False, nullable=False)
    notify_push = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False)
    last_login_at = db.Column(db.DateTime, nullable=True)

    # Relationships
    cart = db.relationship(
        'Cart',
        backref='user',
        uselist=False,
        cascade='all, delete-orphan')
    orders = db.relationship(
        'Order',
        backref='user',
        lazy='dynamic',
        foreign_keys='Order.user_id')
    reset_tokens = db.relationship(
        'PasswordResetToken',
        backref='user',
        lazy='dynamic',
        cascade='all, delete-orphan')

    @property
    def is_active(self):
        return self.status == UserStatus.ACTIVE

    @property
    def full_name(self):
        return f'{self.first_name} {self.last_name}'.strip()

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def __repr__(self):
        return f'<User {self.email}>'


class PasswordResetToken(db.Model):
    __tablename__ = 'password_reset_tokens'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'users.id',
            ondelete='CASCADE'),
        nullable=False,
        index=True)
    token = db.Column(db.String(64), unique=True, nullable=False, index=True)
    expires_at = db.Column(db.DateTime, nullable=False)
    used = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)

    @staticmethod
    def generate_token():
        return secrets.token_hex(32)

    @classmethod
    def create_for(cls, user, hours=1):
        reset_token = cls(
            user_id=user.id,
            token=cls.generate_token(),
            expires_at=datetime.utcnow() + timedelta(hours=hours))
        db.session.add(reset_token)
        return reset_token

    @classmethod
    def find_valid(cls, token):
        return cls.query.filter(
            cls.token == token,
            cls.expires_at > datetime.utcnow(),
            cls.used.is_(False)
        ).first()

    def mark_used(self):
        self.used = True

    @classmethod
    def cleanup_expired(cls):
        return cls.query.filter(
            or_(cls.expires_at < datetime.utcnow(), cls.used.is_(True))
        ).delete(synchronize_session=False)

    def __repr__(self):
        return f'<PasswordResetToken user={self.user_id} used={self.used}>'


class Category(db.Model):
    __tablename__ = 'categories'

    id = db.Column(db.Integer, primary_key=True)
    # {"ka": ..., "en": ..., "tr": ...}
    name = db.Column(db.JSON, nullable=False)
    slug = db.Column(db.String(150), unique=True, nullable=False, index=True)
    description = db.Column(db.JSON, nullable=True)
    parent_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'categories.id',
            ondelete='SET NULL'),
        nullable=True,
        index=True)
    # Denormalized list of direct child ids, kept in step with parent_id
    # by add_child/remove_child.
    children_ids = db.Column(db.JSON, nullable=False, default=list)
    image_url = db.Column(db.String(255), nullable=True)
    image_alt = db.Column(db.String(200), nullable=True)
    icon_name = db.Column(db.String(50), nullable=True)
    icon_color = db.Column(db.String(20), nullable=True)
    seo = db.Column(db.JSON, nullable=True)
    status = db.Column(
        db.Enum(CategoryStatus),
        default=CategoryStatus.ACTIVE,
        nullable=False,
        index=True)
    featured = db.Column(db.Boolean, default=False, nullable=False)
    sort_order = db.Column(db.Integer, default=0, nullable=False)
    product_count = db.Column(db.Integer, default=0, nullable=False)
    created_by = db.Column(
        db.Integer,
        db.ForeignKey('users.id'),
        nullable=True)
    updated_by = db.Column(
        db.Integer,
        db.ForeignKey('users.id'),
        nullable=True)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False)

    parent = db.relationship(
        'Category',
        remote_side=[id],
        foreign_keys=[parent_id])

    def assign_slug(self):
        self.slug = unique_slug(
            Category, (self.name or {}).get('en', ''), self.id)

    def add_child(self, child_id):
        current = list(self.children_ids or [])
        if child_id not in current:
            self.children_ids = current + [child_id]

    def remove_child(self, child_id):
        current = list(self.children_ids or [])
        if child_id in current:
            self.children_ids = [c for c in current if c != child_id]

    def get_hierarchy(self):
        """Breadcrumb from the root category down to this one."""
        hierarchy = []
        seen = set()
        current = self
        while current is not None and current.id not in seen:
            seen.add(current.id)
            hierarchy.insert(0, {
                'id': current.id,
                'name': current.name,
                'slug': current.slug,
            })
            current = (
                db.session.get(Category, current.parent_id)
                if current.parent_id else None
            )
        return hierarchy

    def get_all_subcategories(self):
        """Ids of every category below this one, depth first."""
        subcategories = []
        seen = {self.id}

        def collect(category_id):
            children = Category.query.filter_by(
                parent_id=category_id).order_by(Category.id).all()
            for child in children:
                if child.id in seen:
                    continue
                seen.add(child.id)
                subcategories.append(child.id)
                collect(child.id)

        collect(self.id)
        return subcategories

    def would_create_cycle(self, new_parent_id):
        if new_parent_id is None:
            return False
        if new_parent_id == self.id:
            return True
        return new_parent_id in self.get_all_subcategories()

    def has_products(self):
        return Product.query.filter(
            or_(
                Product.category_id == self.id,
                Product.subcategory_id == self.id,
            )
        ).count() > 0

    def update_product_count(self):
        ids = [self.id] + self.get_all_subcategories()
        self.product_count = Product.query.filter(
            or_(
                Product.category_id.in_(ids),
                Product.subcategory_id.in_(ids),
            ),
            Product.status == ProductStatus.ACTIVE
        ).count()
        return self.product_count

    def __repr__(self):
        return f'<Category {self.slug}>'


product_related = db.Table(
    'product_related',
    db.Column(
        'product_id',
        db.Integer,
        db.ForeignKey('products.id', ondelete='CASCADE'),
        primary_key=True),
    db.Column(
        'related_id',
        db.Integer,
        db.ForeignKey('products.id', ondelete='CASCADE'),
        primary_key=True),
)


class Product(db.Model):
    __tablename__ = 'products'

    PRICE_FIELDS = ('price1', 'price2', 'price3')

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.JSON, nullable=False)
    slug = db.Column(db.String(200), unique=True, nullable=False, index=True)
    code = db.Column(db.String(50), unique=True, nullable=False, index=True)
    barcode = db.Column(db.String(64), unique=True, nullable=True)
    description = db.Column(db.JSON, nullable=True)
    category_id = db.Column(
        db.Integer,
        db.ForeignKey('categories.id'),
        nullable=False,
        index=True)
    subcategory_id = db.Column(
        db.Integer,
        db.ForeignKey('categories.id'),
        nullable=True,
        index=True)
    # [{"url": ..., "alt": ..., "is_primary": bool}]
    images = db.Column(db.JSON, nullable=False, default=list)

    # Pricing tiers; active_price names the one shown to customers.
    price1 = db.Column(db.Numeric(10, 2), nullable=False)
    price2 = db.Column(db.Numeric(10, 2), nullable=True)
    price3 = db.Column(db.Numeric(10, 2), nullable=True)
    active_price = db.Column(db.String(10), nullable=False, default='price1')
    currency = db.Column(db.String(3), nullable=False, default='GEL')

    # Inventory
    stock = db.Column(db.Integer, nullable=False, default=0)
    min_stock_level = db.Column(db.Integer, nullable=False, default=10)
    max_stock_level = db.Column(db.Integer, nullable=True)
    unit = db.Column(db.String(20), nullable=False, default='pcs')
    track_inventory = db.Column(db.Boolean, nullable=False, default=True)

    specifications = db.Column(db.JSON, nullable=True)
    seo = db.Column(db.JSON, nullable=True)
    status = db.Column(
        db.Enum(ProductStatus),
        default=ProductStatus.ACTIVE,
        nullable=False,
        index=True)
    featured = db.Column(db.Boolean, default=False, nullable=False, index=True)
    tags = db.Column(db.JSON, nullable=False, default=list)

    rating_average = db.Column(db.Numeric(3, 2), nullable=False, default=0)
    rating_count = db.Column(db.Integer, nullable=False, default=0)
    total_sold = db.Column(db.Integer, nullable=False, default=0)
    revenue = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    created_by = db.Column(
        db.Integer,
        db.ForeignKey('users.id'),
        nullable=True)
    updated_by = db.Column(
        db.Integer,
        db.ForeignKey('users.id'),
        nullable=True)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False,
        index=True)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False)

    # Relationships
    category = db.relationship('Category', foreign_keys=[category_id])
    subcategory = db.relationship('Category', foreign_keys=[subcategory_id])
    quantity_discounts = db.relationship(
        'QuantityDiscount',
        backref='product',
        order_by='QuantityDiscount.position',
        cascade='all, delete-orphan')
    related_products = db.relationship(
        'Product',
        secondary=product_related,
        primaryjoin=(id == product_related.c.product_id),
        secondaryjoin=(id == product_related.c.related_id))
    cart_items = db.relationship(
        'CartItem',
        backref='product',
        lazy='dynamic',
        cascade='all, delete-orphan')

    __table_args__ = (
        CheckConstraint('stock >= 0', name='check_stock_non_negative'),
        CheckConstraint('price1 >= 0', name='check_price1_non_negative'),
    )

    def assign_slug(self):
        self.slug = unique_slug(
            Product, (self.name or {}).get('en', ''), self.id)

    @property
    def flat_price(self):
        field = self.active_price if self.active_price in \
            self.PRICE_FIELDS else 'price1'
        value = getattr(self, field)
        if value is None:
            value = self.price1
        return to_decimal(value)

    def get_price_for_quantity(self, quantity):
        """Unit price for an order of `quantity` units.

        The discount tier with the largest min_quantity whose range holds
        the quantity wins; ties go to the earliest tier. Without a
        matching tier the active flat price applies.
        """
        candidates = [
            d for d in self.quantity_discounts
            if quantity >= d.min_quantity and (
                d.max_quantity is None or quantity <= d.max_quantity)
        ]
        if candidates:
            best = max(candidates, key=lambda d: d.min_quantity)
            return to_decimal(best.price)
        return self.flat_price

    def is_in_stock(self, quantity=1):
        if not self.track_inventory:
            return True
        return (
            self.stock >= quantity
            and self.status == ProductStatus.ACTIVE
        )

    def availability_error(self, quantity, allow_backorders=False):
        """Why quantity cannot be ordered right now, or None."""
        if allow_backorders and self.status in (
                ProductStatus.ACTIVE, ProductStatus.OUT_OF_STOCK):
            return None
        if self.status != ProductStatus.ACTIVE:
            return 'Product is not available'
        if not self.is_in_stock(quantity):
            return 'Insufficient stock'
        return None

    def update_stock(self, quantity, operation='subtract'):
        if not self.track_inventory:
            return
        if operation == 'subtract':
            self.stock = max(0, (self.stock or 0) - quantity)
            if self.stock == 0:
                self.status = ProductStatus.OUT_OF_STOCK
        elif operation == 'add':
            self.stock = (self.stock or 0) + quantity
            if self.status == ProductStatus.OUT_OF_STOCK and self.stock > 0:
                self.status = ProductStatus.ACTIVE
        else:
            raise ValueError(f'Unknown stock operation: {operation}')

    @property
    def is_low_stock(self):
        return self.track_inventory and self.stock <= self.min_stock_level

    @property
    def primary_image(self):
        images = self.images or []
        for image in images:
            if image.get('is_primary'):
                return image.get('url')
        return images[0].get('url') if images else None

    def __repr__(self):
        return f'<Product {self.code}>'


class QuantityDiscount(db.Model):
    __tablename__ = 'product_quantity_discounts'

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'products.id',
            ondelete='CASCADE'),
        nullable=False,
        index=True)
    position = db.Column(db.Integer, nullable=False, default=0)
    min_quantity = db.Column(db.Integer, nullable=False)
    max_quantity = db.Column(db.Integer, nullable=True)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    discount_percent = db.Column(db.Numeric(5, 2), nullable=True)

    __table_args__ = (
        CheckConstraint('min_quantity > 0', name='check_min_quantity_positive'),
    )

    def __repr__(self):
        return (
            f"<QuantityDiscount product={self.product_id} "
            f"{self.min_quantity}-{self.max_quantity}>"
        )


class Cart(db.Model):
    __tablename__ = 'carts'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'users.id',
            ondelete='CASCADE'),
        unique=True,
        nullable=False)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False)

    items = db.relationship(
        'CartItem',
        backref='cart',
        lazy='dynamic',
        cascade='all, delete-orphan')

    def __repr__(self):
        return f'<Cart {self.id} for user {self.user_id}>'


class CartItem(db.Model):
    __tablename__ = 'cart_items'

    cart_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'carts.id',
            ondelete='CASCADE'),
        primary_key=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'products.id',
            ondelete='CASCADE'),
        primary_key=True)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    added_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)

    __table_args__ = (
        CheckConstraint('quantity > 0', name='check_quantity_positive'),
    )

    def __repr__(self):
        return (
            f"<CartItem cart={self.cart_id} product={self.product_id} "
            f"qty={self.quantity}>"
        )


class Order(db.Model):
    __tablename__ = 'orders'

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(
        db.String(32),
        unique=True,
        nullable=False,
        index=True)

    # Customer: registered user or guest contact
    user_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'users.id',
            ondelete='SET NULL'),
        nullable=True,
        index=True)
    is_guest = db.Column(db.Boolean, default=False, nullable=False)
    guest_first_name = db.Column(db.String(50), nullable=True)
    guest_last_name = db.Column(db.String(50), nullable=True)
    guest_email = db.Column(db.String(120), nullable=True, index=True)
    guest_phone = db.Column(db.String(30), nullable=True)

    # Pricing
    subtotal = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    tax_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    tax_rate = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    shipping_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    discount_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    discount_code = db.Column(db.String(50), nullable=True)
    discount_type = db.Column(db.String(20), nullable=True)
    total = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    currency = db.Column(db.String(3), nullable=False, default='GEL')

    # Shipping
    shipping_first_name = db.Column(db.String(50), nullable=False)
    shipping_last_name = db.Column(db.String(50), nullable=False)
    shipping_company = db.Column(db.String(120), nullable=True)
    shipping_street = db.Column(db.String(200), nullable=False)
    shipping_city = db.Column(db.String(100), nullable=False)
    shipping_state = db.Column(db.String(100), nullable=True)
    shipping_zip_code = db.Column(db.String(20), nullable=True)
    shipping_country = db.Column(
        db.String(100),
        nullable=False,
        default='Georgia')
    shipping_phone = db.Column(db.String(30), nullable=False)
    shipping_email = db.Column(db.String(120), nullable=False)
    shipping_method = db.Column(
        db.String(20),
        nullable=False,
        default='standard')
    estimated_delivery = db.Column(db.DateTime, nullable=True)
    tracking_number = db.Column(db.String(100), nullable=True, index=True)
    carrier = db.Column(db.String(50), nullable=True)
    shipping_notes = db.Column(db.Text, nullable=True)

    # Payment
    payment_method = db.Column(db.Enum(PaymentMethod), nullable=False)
    payment_status = db.Column(
        db.Enum(PaymentStatus),
        default=PaymentStatus.PENDING,
        nullable=False,
        index=True)
    transaction_id = db.Column(db.String(100), nullable=True, index=True)
    payment_date = db.Column(db.DateTime, nullable=True)
    bank_name = db.Column(db.String(100), nullable=True)
    bank_account_number = db.Column(db.String(64), nullable=True)
    bank_reference_number = db.Column(db.String(64), nullable=True)
    card_last4 = db.Column(db.String(4), nullable=True)
    card_brand = db.Column(db.String(20), nullable=True)
    card_expiry_month = db.Column(db.Integer, nullable=True)
    card_expiry_year = db.Column(db.Integer, nullable=True)

    status = db.Column(
        db.Enum(OrderStatus),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True)

    # Notes
    customer_note = db.Column(db.Text, nullable=True)
    admin_note = db.Column(db.Text, nullable=True)
    internal_note = db.Column(db.Text, nullable=True)

    # Request metadata
    source = db.Column(
        db.Enum(OrderSource),
        default=OrderSource.WEBSITE,
        nullable=False)
    user_agent = db.Column(db.String(500), nullable=True)
    ip_address = db.Column(db.String(45), nullable=True)
    referrer = db.Column(db.String(500), nullable=True)

    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False,
        index=True)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False)

    items = db.relationship(
        'OrderItem',
        backref='order',
        order_by='OrderItem.id',
        cascade='all, delete-orphan')
    status_history = db.relationship(
        'OrderStatusHistory',
        backref='order',
        order_by='OrderStatusHistory.id',
        cascade='all, delete-orphan')
    communications = db.relationship(
        'OrderCommunication',
        backref='order',
        order_by='OrderCommunication.id',
        cascade='all, delete-orphan')

    def calculate_totals(self):
        self.subtotal = sum(
            (to_decimal(item.total_price) for item in self.items),
            to_decimal(0))
        self.total = (
            self.subtotal
            + to_decimal(self.tax_amount)
            + to_decimal(self.shipping_amount)
            - to_decimal(self.discount_amount)
        )

    def can_be_cancelled(self):
        return self.status in (OrderStatus.PENDING, OrderStatus.CONFIRMED)

    def can_be_refunded(self):
        return (
            self.status == OrderStatus.DELIVERED
            and self.payment_status == PaymentStatus.COMPLETED
        )

    def set_status(self, status, note=None, updated_by=None):
        """Set a new status and append it to the history.

        Any status may follow any other; callers own the business rules.
        """
        previous = self.status
        self.status = status
        self.status_history.append(OrderStatusHistory(
            status=status,
            note=note or f'Status changed to {status.value}',
            updated_by=updated_by,
        ))
        return previous

    def add_communication(
            self,
            comm_type,
            content,
            sent_by=None,
            status=CommunicationStatus.SENT):
        entry = OrderCommunication(
            type=comm_type,
            content=content,
            sent_by=sent_by,
            status=status,
        )
        self.communications.append(entry)
        return entry

    def get_customer_info(self):
        if self.is_guest or self.user is None:
            return {
                'name': (
                    f'{self.guest_first_name or ""} '
                    f'{self.guest_last_name or ""}'
                ).strip(),
                'email': self.guest_email,
                'phone': self.guest_phone,
                'is_guest': True,
            }
        return {
            'name': self.user.full_name,
            'email': self.user.email,
            'phone': self.user.phone,
            'is_guest': False,
            'user_id': self.user.id,
        }

    @property
    def shipping_address(self):
        return {
            'first_name': self.shipping_first_name,
            'last_name': self.shipping_last_name,
            'company': self.shipping_company,
            'street': self.shipping_street,
            'city': self.shipping_city,
            'state': self.shipping_state,
            'zip_code': self.shipping_zip_code,
            'country': self.shipping_country,
            'phone': self.shipping_phone,
            'email': self.shipping_email,
        }

    def __repr__(self):
        return f'<Order {self.order_number} status={self.status}>'


class OrderItem(db.Model):
    __tablename__ = 'order_items'

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'orders.id',
            ondelete='CASCADE'),
        nullable=False,
        index=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'products.id',
            ondelete='SET NULL'),
        nullable=True,
        index=True)
    # Snapshot of the product at order time.
    product_name = db.Column(db.JSON, nullable=False)
    product_code = db.Column(db.String(50), nullable=True)
    product_image = db.Column(db.String(255), nullable=True)
    product_specifications = db.Column(db.JSON, nullable=True)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(10, 2), nullable=False)
    total_price = db.Column(db.Numeric(12, 2), nullable=False)
    applied_discount = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    product = db.relationship('Product')

    __table_args__ = (
        CheckConstraint('quantity > 0', name='check_order_quantity_positive'),
    )

    def __repr__(self):
        return (
            f"<OrderItem {self.id} order={self.order_id} "
            f"product={self.product_id}>"
        )


class OrderStatusHistory(db.Model):
    __tablename__ = 'order_status_history'

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'orders.id',
            ondelete='CASCADE'),
        nullable=False,
        index=True)
    status = db.Column(db.Enum(OrderStatus), nullable=False)
    note = db.Column(db.String(500), nullable=True)
    updated_by = db.Column(
        db.Integer,
        db.ForeignKey('users.id', ondelete='SET NULL'),
        nullable=True)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)

    def __repr__(self):
        return f'<OrderStatusHistory order={self.order_id} {self.status}>'


class OrderCommunication(db.Model):
    __tablename__ = 'order_communications'

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'orders.id',
            ondelete='CASCADE'),
        nullable=False,
        index=True)
    type = db.Column(db.Enum(CommunicationType), nullable=False)
    content = db.Column(db.Text, nullable=True)
    sent_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)
    sent_by = db.Column(
        db.Integer,
        db.ForeignKey('users.id', ondelete='SET NULL'),
        nullable=True)
    status = db.Column(
        db.Enum(CommunicationStatus),
        default=CommunicationStatus.SENT,
        nullable=False)

    def __repr__(self):
        return f'<OrderCommunication {self.id} type={self.type}>'


class Settings(db.Model):
    __tablename__ = 'settings'

    SECTIONS = tuple(DEFAULT_SETTINGS.keys())

    id = db.Column(db.Integer, primary_key=True)
    site = db.Column(db.JSON, nullable=False, default=dict)
    contact = db.Column(db.JSON, nullable=False, default=dict)
    social = db.Column(db.JSON, nullable=False, default=dict)
    homepage = db.Column(db.JSON, nullable=False, default=dict)
    ecommerce = db.Column(db.JSON, nullable=False, default=dict)
    payment = db.Column(db.JSON, nullable=False, default=dict)
    shipping = db.Column(db.JSON, nullable=False, default=dict)
    email = db.Column(db.JSON, nullable=False, default=dict)
    seo = db.Column(db.JSON, nullable=False, default=dict)
    security = db.Column(db.JSON, nullable=False, default=dict)
    maintenance = db.Column(db.JSON, nullable=False, default=dict)
    system = db.Column(db.JSON, nullable=False, default=dict)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False)

    @classmethod
    def get_instance(cls):
        """Return the single settings row, creating it on first use."""
        settings = cls.query.order_by(cls.id).first()
        if settings is None:
            settings = cls(**copy.deepcopy(DEFAULT_SETTINGS))
            db.session.add(settings)
            db.session.commit()
        return settings

    def section(self, name):
        if name not in self.SECTIONS:
            raise KeyError(name)
        return deep_merge(DEFAULT_SETTINGS[name], getattr(self, name) or {})

    def get(self, path, default=None):
        """Dotted-path lookup, e.g. get('ecommerce.orders.order_number_prefix')."""
        head, _, rest = path.partition('.')
        value = self.section(head)
        for key in rest.split('.') if rest else []:
            if not isinstance(value, dict) or key not in value:
                return default
            value = value[key]
        return value

    def update_setting(self, path, value):
        head, _, rest = path.partition('.')
        if head not in self.SECTIONS:
            raise KeyError(head)
        if not rest:
            setattr(self, head, copy.deepcopy(value))
            flag_modified(self, head)
            return
        section = copy.deepcopy(getattr(self, head) or {})
        node = section
        keys = rest.split('.')
        for key in keys[:-1]:
            if not isinstance(node.get(key), dict):
                node[key] = {}
            node = node[key]
        node[keys[-1]] = copy.deepcopy(value)
        setattr(self, head, section)
        flag_modified(self, head)

    def update_sections(self, data):
        """Replace each given section wholesale; unknown keys are ignored.

        Raises ValueError, before changing anything, when a section does
        not match the shape of its defaults.
        """
        for name, value in (data or {}).items():
            if name in self.SECTIONS:
                path = shape_mismatch(DEFAULT_SETTINGS[name], value)
                if path:
                    where = name if path == '.' else f'{name}.{path}'
                    raise ValueError(f'Invalid value for {where}')
        changed = []
        for name, value in (data or {}).items():
            if name in self.SECTIONS and isinstance(value, dict):
                setattr(self, name, copy.deepcopy(value))
                flag_modified(self, name)
                changed.append(name)
        return changed

    def to_dict(self):
        return {name: self.section(name) for name in self.SECTIONS}

    def get_public_settings(self):
        contact = self.section('contact')
        ecommerce = self.section('ecommerce')
        payment = self.section('payment')
        shipping = self.section('shipping')
        return {
            'site': self.section('site'),
            'contact': {
                'address': contact['address'],
                'phone': {
                    'primary': contact['phone'].get('primary'),
                    'whatsapp': contact['phone'].get('whatsapp'),
                    'telegram': contact['phone'].get('telegram'),
                },
                'email': {
                    'primary': contact['email'].get('primary'),
                    'support': contact['email'].get('support'),
                },
                'working_hours': contact['working_hours'],
                'location': contact['location'],
            },
            'social': self.section('social'),
            'homepage': self.section('homepage'),
            'ecommerce': {
                'inventory': {
                    'track_stock': ecommerce['inventory']['track_stock'],
                    'allow_backorders':
                        ecommerce['inventory']['allow_backorders'],
                },
                'pricing': ecommerce['pricing'],
                'orders': {
                    'require_registration':
                        ecommerce['orders']['require_registration'],
                    'allow_guest_checkout':
                        ecommerce['orders']['allow_guest_checkout'],
                    'min_order_amount': ecommerce['cart']['min_order_amount'],
                },
            },
            'payment': {
                'methods': [
                    {
                        'name': m.get('name'),
                        'display_name': m.get('display_name'),
                    }
                    for m in payment['methods'] if m.get('enabled')
                ],
            },
            'shipping': {
                'methods': [m for m in shipping['methods'] if m.get('enabled')],
                'free_shipping_threshold':
                    shipping['free_shipping_threshold'],
            },
            'seo': self.section('seo'),
            'maintenance': self.section('maintenance'),
        }

    def __repr__(self):
        return f'<Settings {self.id}>'


class AuditLog(db.Model):
    __tablename__ = 'audit_logs'

    id = db.Column(db.Integer, primary_key=True)
    actor_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'users.id',
            ondelete='SET NULL'),
        nullable=True)
    actor_role = db.Column(db.String(20), nullable=False)
    # e.g., LOGIN_SUCCESS, ORDER_CREATE, PRODUCT_UPDATE
    action = db.Column(db.String(100), nullable=False)
    # ORDER, PRODUCT, CATEGORY, USER, SETTINGS
    target_type = db.Column(db.String(50), nullable=True)
    target_id = db.Column(db.Integer, nullable=True)
    ip = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(500), nullable=True)
    # JSON format key field snapshot
    payload_json = db.Column(db.Text, nullable=True)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False,
        index=True)

    actor = db.relationship('User', foreign_keys=[actor_id])

    def set_payload(self, data):
        self.payload_json = json.dumps(data, ensure_ascii=False, default=str)

    def get_payload(self):
        if self.payload_json:
            return json.loads(self.payload_json)
        return {}

    def __repr__(self):
        return f'<AuditLog {self.id} action={self.action}>'
