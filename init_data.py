from decimal import Decimal
from kervan import create_app
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
from kervan.services.category_service import refresh_product_counts
import os

app = create_app()

with app.app_context():
    settings = Settings.get_instance()
    print(f"Settings document ready (id={settings.id})")

    # Create admin account (if not exists)
    admin_email = os.environ.get("ADMIN_EMAIL", "admin@kervan.ge")
    admin_password = os.environ.get("ADMIN_PASSWORD", "admin123")
    admin = User.query.filter_by(email=admin_email).first()
    if not admin:
        admin = User(
            email=admin_email,
            first_name="Admin",
            last_name="KERVAN",
            role=UserRole.ADMIN,
            is_email_verified=True,
        )
        admin.set_password(admin_password)
        db.session.add(admin)
        db.session.flush()
        print(f"Created admin account: {admin_email} / {admin_password}")

    categories_data = [
        {
            "name": {
                "ka": "ერთჯერადი ჭურჭელი",
                "en": "Disposable Tableware",
                "tr": "Tek Kullanımlık Sofra Gereçleri",
            },
            "sort_order": 1,
            "children": [
                {
                    "name": {
                        "ka": "ჭიქები",
                        "en": "Cups",
                        "tr": "Bardaklar",
                    },
                },
                {
                    "name": {
                        "ka": "თეფშები",
                        "en": "Plates",
                        "tr": "Tabaklar",
                    },
                },
            ],
        },
        {
            "name": {
                "ka": "შეფუთვა",
                "en": "Packaging",
                "tr": "Ambalaj",
            },
            "sort_order": 2,
            "children": [
                {
                    "name": {
                        "ka": "ყუთები",
                        "en": "Boxes",
                        "tr": "Kutular",
                    },
                },
                {
                    "name": {
                        "ka": "პარკები",
                        "en": "Bags",
                        "tr": "Poşetler",
                    },
                },
            ],
        },
    ]

    categories_dict = {}

    def ensure_category(data, parent=None):
        category = Category.query.filter(
            Category.name["en"].as_string() == data["name"]["en"]
        ).first()
        if category:
            return category
        category = Category(
            name=data["name"],
            parent_id=parent.id if parent else None,
            children_ids=[],
            sort_order=data.get("sort_order", 0),
            featured=parent is None,
            created_by=admin.id,
        )
        category.assign_slug()
        db.session.add(category)
        db.session.flush()
        if parent:
            parent.add_child(category.id)
        print(f"Created category: {data['name']['en']}")
        return category

    for root_data in categories_data:
        root = ensure_category(root_data)
        categories_dict[root.slug] = root
        for child_data in root_data.get("children", []):
            child = ensure_category(child_data, root)
            categories_dict[child.slug] = child

    products_data = [
        {
            "code": "CUP-250",
            "name": {
                "ka": "ქაღალდის ჭიქა 250მლ",
                "en": "Paper Cup 250ml",
                "tr": "Karton Bardak 250ml",
            },
            "category": "disposable-tableware",
            "subcategory": "cups",
            "price1": "0.12",
            "price2": "0.10",
            "stock": 50000,
            "unit": "pcs",
            "tiers": [
                (1000, 4999, "0.10", 16),
                (5000, None, "0.08", 33),
            ],
            "tags": ["paper", "cup", "hot drinks"],
        },
        {
            "code": "PLT-22",
            "name": {
                "ka": "ქაღალდის თეფში 22სმ",
                "en": "Paper Plate 22cm",
                "tr": "Karton Tabak 22cm",
            },
            "category": "disposable-tableware",
            "subcategory": "plates",
            "price1": "0.18",
            "stock": 20000,
            "unit": "pcs",
            "tiers": [(500, None, "0.15", 16)],
            "tags": ["paper", "plate"],
        },
        {
            "code": "BOX-PZ30",
            "name": {
                "ka": "პიცის ყუთი 30სმ",
                "en": "Pizza Box 30cm",
                "tr": "Pizza Kutusu 30cm",
            },
            "category": "packaging",
            "subcategory": "boxes",
            "price1": "0.65",
            "stock": 8000,
            "unit": "pcs",
            "tiers": [(200, 999, "0.58", 10), (1000, None, "0.52", 20)],
            "tags": ["cardboard", "pizza", "box"],
        },
        {
            "code": "BAG-KR-M",
            "name": {
                "ka": "კრაფტის პარკი საშუალო",
                "en": "Kraft Bag Medium",
                "tr": "Kraft Poşet Orta",
            },
            "category": "packaging",
            "subcategory": "bags",
            "price1": "0.30",
            "stock": 0,
            "unit": "pcs",
            "tiers": [],
            "tags": ["kraft", "bag"],
        },
    ]

    for product_data in products_data:
        if Product.query.filter_by(code=product_data["code"]).first():
            continue
        category = categories_dict[product_data["category"]]
        subcategory = categories_dict.get(product_data["subcategory"])
        product = Product(
            code=product_data["code"],
            name=product_data["name"],
            category_id=category.id,
            subcategory_id=subcategory.id if subcategory else None,
            price1=Decimal(product_data["price1"]),
            price2=(
                Decimal(product_data["price2"])
                if product_data.get("price2") else None
            ),
            stock=product_data["stock"],
            unit=product_data["unit"],
            tags=product_data["tags"],
            images=[],
            status=(
                ProductStatus.ACTIVE if product_data["stock"] > 0
                else ProductStatus.OUT_OF_STOCK
            ),
            created_by=admin.id,
            updated_by=admin.id,
        )
        product.quantity_discounts = [
            QuantityDiscount(
                position=index,
                min_quantity=low,
                max_quantity=high,
                price=Decimal(price),
                discount_percent=Decimal(percent),
            )
            for index, (low, high, price, percent)
            in enumerate(product_data["tiers"])
        ]
        product.assign_slug()
        db.session.add(product)
        db.session.flush()
        print(f"  Created product: {product_data['name']['en']}")

    refresh_product_counts(*[c.id for c in categories_dict.values()])
    db.session.commit()
    print("Data initialization completed!")
