"""
Request payload schemas.

Blueprints validate JSON bodies through these models; see
``kervan.utils.validate_payload`` for how failures become 400 responses.
"""
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, model_validator

LanguageCode = Literal['ka', 'en', 'tr']
ProductStatusName = Literal['ACTIVE', 'INACTIVE', 'OUT_OF_STOCK', 'DISCONTINUED']
OrderStatusName = Literal[
    'PENDING',
    'CONFIRMED',
    'PROCESSING',
    'SHIPPED',
    'DELIVERED',
    'CANCELLED',
    'REFUNDED',
]
PaymentMethodName = Literal[
    'BANK_TRANSFER',
    'CREDIT_CARD',
    'CASH_ON_DELIVERY',
    'TBC_BANK',
]


class LocalizedText(BaseModel):
    ka: Optional[str] = None
    en: Optional[str] = None
    tr: Optional[str] = None


class LocalizedName(LocalizedText):
    # Slugs are derived from the English name.
    en: str = Field(..., min_length=1, max_length=200)


# Auth

class RegisterSchema(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    phone: Optional[str] = Field(None, max_length=30)
    company: Optional[str] = Field(None, max_length=120)
    language: Optional[LanguageCode] = None


class LoginSchema(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class ProfileUpdateSchema(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(None, min_length=1, max_length=50)
    phone: Optional[str] = Field(None, max_length=30)
    company: Optional[str] = Field(None, max_length=120)
    street: Optional[str] = Field(None, max_length=200)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    zip_code: Optional[str] = Field(None, max_length=20)
    country: Optional[str] = Field(None, max_length=100)
    language: Optional[LanguageCode] = None
    currency: Optional[Literal['GEL', 'USD', 'EUR']] = None
    notify_email: Optional[bool] = None
    notify_sms: Optional[bool] = None
    notify_push: Optional[bool] = None


class ChangePasswordSchema(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=128)


class ForgotPasswordSchema(BaseModel):
    email: EmailStr


class ResetPasswordSchema(BaseModel):
    password: str = Field(..., min_length=6, max_length=128)


# Catalog

class ImageSchema(BaseModel):
    url: str = Field(..., min_length=1, max_length=255)
    alt: Optional[str] = None
    is_primary: bool = False


class QuantityDiscountSchema(BaseModel):
    min_quantity: int = Field(..., ge=1)
    max_quantity: Optional[int] = Field(None, ge=1)
    price: Decimal = Field(..., ge=0)
    discount_percent: Optional[Decimal] = Field(None, ge=0, le=100)

    @model_validator(mode='after')
    def check_range(self):
        if self.max_quantity is not None and \
                self.max_quantity < self.min_quantity:
            raise ValueError('max_quantity must not be below min_quantity')
        return self


class ProductUpdateSchema(BaseModel):
    name: Optional[LocalizedName] = None
    description: Optional[LocalizedText] = None
    code: Optional[str] = Field(None, min_length=1, max_length=50)
    barcode: Optional[str] = Field(None, max_length=64)
    category_id: Optional[int] = None
    subcategory_id: Optional[int] = None
    images: Optional[List[ImageSchema]] = None
    price1: Optional[Decimal] = Field(None, ge=0)
    price2: Optional[Decimal] = Field(None, ge=0)
    price3: Optional[Decimal] = Field(None, ge=0)
    active_price: Optional[Literal['price1', 'price2', 'price3']] = None
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    quantity_discounts: Optional[List[QuantityDiscountSchema]] = None
    stock: Optional[int] = Field(None, ge=0)
    min_stock_level: Optional[int] = Field(None, ge=0)
    max_stock_level: Optional[int] = Field(None, ge=0)
    unit: Optional[str] = Field(None, max_length=20)
    track_inventory: Optional[bool] = None
    specifications: Optional[dict] = None
    seo: Optional[dict] = None
    status: Optional[ProductStatusName] = None
    featured: Optional[bool] = None
    tags: Optional[List[str]] = None
    related_product_ids: Optional[List[int]] = None


class ProductCreateSchema(ProductUpdateSchema):
    name: LocalizedName
    code: str = Field(..., min_length=1, max_length=50)
    category_id: int
    price1: Decimal = Field(..., ge=0)


class StockUpdateSchema(BaseModel):
    quantity: int = Field(..., ge=1)
    operation: Literal['add', 'subtract'] = 'add'


class CategoryUpdateSchema(BaseModel):
    name: Optional[LocalizedName] = None
    description: Optional[LocalizedText] = None
    parent_id: Optional[int] = None
    image_url: Optional[str] = Field(None, max_length=255)
    image_alt: Optional[str] = Field(None, max_length=200)
    icon_name: Optional[str] = Field(None, max_length=50)
    icon_color: Optional[str] = Field(None, max_length=20)
    seo: Optional[dict] = None
    status: Optional[Literal['ACTIVE', 'INACTIVE']] = None
    featured: Optional[bool] = None
    sort_order: Optional[int] = None


class CategoryCreateSchema(CategoryUpdateSchema):
    name: LocalizedName


# Cart

class CartItemSchema(BaseModel):
    product_id: int
    quantity: int = Field(1, ge=1)


class CartItemUpdateSchema(BaseModel):
    quantity: int = Field(..., ge=1)


# Orders

class OrderItemSchema(BaseModel):
    product_id: int
    quantity: int = Field(..., ge=1)


class ShippingAddressSchema(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    company: Optional[str] = Field(None, max_length=120)
    street: str = Field(..., min_length=1, max_length=200)
    city: str = Field(..., min_length=1, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    zip_code: Optional[str] = Field(None, max_length=20)
    country: str = Field('Georgia', max_length=100)
    phone: str = Field(..., min_length=3, max_length=30)
    email: EmailStr


class GuestInfoSchema(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=30)


class OrderCreateSchema(BaseModel):
    # Without items the caller's cart is checked out.
    items: Optional[List[OrderItemSchema]] = None
    shipping_address: ShippingAddressSchema
    shipping_method: str = 'standard'
    payment_method: PaymentMethodName
    customer_note: Optional[str] = Field(None, max_length=1000)
    guest: Optional[GuestInfoSchema] = None


class OrderStatusSchema(BaseModel):
    status: OrderStatusName
    note: Optional[str] = Field(None, max_length=500)
    tracking_number: Optional[str] = Field(None, max_length=100)
    carrier: Optional[str] = Field(None, max_length=50)


class RefundSchema(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


# Admin

class UserStatusSchema(BaseModel):
    status: Literal['ACTIVE', 'INACTIVE', 'SUSPENDED']


class UserRoleSchema(BaseModel):
    role: Literal['CUSTOMER', 'MANAGER', 'ADMIN']


# Shipping and payments

class ShippingItemSchema(BaseModel):
    product_id: Optional[int] = None
    quantity: int = Field(1, ge=1)
    weight: Optional[Decimal] = Field(None, ge=0)
    price: Optional[Decimal] = Field(None, ge=0)


class ShippingCalculateSchema(BaseModel):
    items: List[ShippingItemSchema] = Field(..., min_length=1)
    shipping_method: str = Field(..., min_length=1)
    subtotal: Optional[Decimal] = Field(None, ge=0)


class ShippingMethodUpdateSchema(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    cost: Optional[Decimal] = Field(None, ge=0)
    estimated_days: Optional[str] = Field(None, min_length=1)
    enabled: Optional[bool] = None
    minimum_order: Optional[Decimal] = Field(None, ge=0)


class PaymentProcessSchema(BaseModel):
    order_id: int
    payment_method: PaymentMethodName
    amount: Decimal = Field(..., gt=0)
    card_last4: Optional[str] = Field(None, pattern=r'^\d{4}$')
    card_brand: Optional[str] = Field(None, max_length=20)


class PaymentVerifySchema(BaseModel):
    order_id: int
    transaction_id: str = Field(..., min_length=1)
