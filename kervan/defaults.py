# Default shape of the global settings document. Stored sections are
# merged over these on read, so new keys appear without a migration.

DEFAULT_SHIPPING_METHODS = [
    {
        'id': 'standard',
        'name': 'Standard Shipping',
        'description': 'Delivery within 5-7 business days',
        'cost': 5.99,
        'estimated_days': '5-7',
        'enabled': True,
    },
    {
        'id': 'express',
        'name': 'Express Shipping',
        'description': 'Delivery within 2-3 business days',
        'cost': 12.99,
        'estimated_days': '2-3',
        'enabled': True,
    },
    {
        'id': 'overnight',
        'name': 'Overnight Shipping',
        'description': 'Next business day delivery',
        'cost': 24.99,
        'estimated_days': '1',
        'enabled': True,
    },
    {
        'id': 'free',
        'name': 'Free Shipping',
        'description': 'Free delivery for orders over 100',
        'cost': 0,
        'estimated_days': '7-10',
        'enabled': True,
        'minimum_order': 100,
    },
]

DEFAULT_PAYMENT_METHODS = [
    {
        'name': 'CREDIT_CARD',
        'display_name': {
            'ka': 'საბანკო ბარათი',
            'en': 'Credit/Debit Card',
            'tr': 'Kredi/Banka Kartı',
        },
        'description': 'Pay with your credit or debit card',
        'enabled': True,
        'settings': {},
    },
    {
        'name': 'BANK_TRANSFER',
        'display_name': {
            'ka': 'საბანკო გადარიცხვა',
            'en': 'Bank Transfer',
            'tr': 'Banka Havalesi',
        },
        'description': 'Transfer money directly from your bank account',
        'enabled': True,
        'settings': {},
    },
    {
        'name': 'CASH_ON_DELIVERY',
        'display_name': {
            'ka': 'ნაღდი ანგარიშსწორება მიტანისას',
            'en': 'Cash on Delivery',
            'tr': 'Kapıda Ödeme',
        },
        'description': 'Pay when you receive your order',
        'enabled': True,
        'settings': {},
    },
    {
        'name': 'TBC_BANK',
        'display_name': {'ka': 'TBC ბანკი', 'en': 'TBC Bank', 'tr': 'TBC Bank'},
        'description': 'Online payment through TBC Bank',
        'enabled': False,
        'settings': {},
    },
]

DEFAULT_SETTINGS = {
    'site': {
        'name': {'ka': 'კერვანი', 'en': 'KERVAN', 'tr': 'KERVAN'},
        'tagline': {
            'ka': 'საბითუმო შეფუთვის გაყიდვები',
            'en': 'Wholesale Packaging Sales',
            'tr': 'Toptan Ambalaj Satışları',
        },
        'description': {},
        'logo': {'url': None, 'alt': None},
        'favicon': None,
        'default_language': 'ka',
        'available_languages': [
            {'code': 'ka', 'name': 'ქართული', 'flag': 'ge', 'enabled': True},
            {'code': 'en', 'name': 'English', 'flag': 'gb', 'enabled': True},
            {'code': 'tr', 'name': 'Türkçe', 'flag': 'tr', 'enabled': True},
        ],
        'currency': {
            'primary': 'GEL',
            'symbol': '₾',
            'supported': ['GEL', 'USD', 'EUR'],
        },
    },
    'contact': {
        'address': {},
        'phone': {
            'primary': None,
            'secondary': None,
            'whatsapp': None,
            'telegram': None,
        },
        'email': {
            'primary': None,
            'support': None,
            'orders': None,
            'admin': None,
        },
        'working_hours': {},
        'location': {
            'latitude': None,
            'longitude': None,
            'google_maps_url': None,
            'address': None,
        },
    },
    'social': {
        'facebook': None,
        'instagram': None,
        'twitter': None,
        'linkedin': None,
        'youtube': None,
        'tiktok': None,
    },
    'homepage': {
        'hero': {'slides': []},
        'featured_categories': {'enabled': True, 'title': {}, 'max_items': 8},
        'featured_products': {'enabled': True, 'title': {}, 'max_items': 12},
        'benefits': [],
    },
    'ecommerce': {
        'inventory': {
            'track_stock': True,
            'allow_backorders': False,
            'low_stock_threshold': 10,
        },
        'pricing': {
            'include_tax': True,
            'tax_rate': 0,
            'show_prices_with_tax': True,
        },
        'orders': {
            'require_registration': False,
            'allow_guest_checkout': True,
            'auto_confirm_orders': False,
            'order_number_prefix': 'KRV',
        },
        'cart': {
            'persist_cart': True,
            'cart_expiration': 30,  # days
            'min_order_amount': 0,
        },
    },
    'payment': {
        'methods': DEFAULT_PAYMENT_METHODS,
        'tbc_bank': {
            'enabled': False,
            'merchant_id': None,
            'api_key': None,
            'secret_key': None,
            'test_mode': True,
        },
        'bank_transfer': {
            'enabled': True,
            'bank_details': {
                'bank_name': None,
                'account_number': None,
                'account_holder': None,
                'iban': None,
                'swift': None,
            },
            'instructions': {},
        },
    },
    'shipping': {
        'methods': DEFAULT_SHIPPING_METHODS,
        'free_shipping_threshold': 0,
        'courier_apis': [],
    },
    'email': {
        'smtp': {
            'host': None,
            'port': None,
            'secure': True,
            'username': None,
            'password': None,
        },
        'templates': {
            'order_confirmation': {
                'enabled': True,
                'subject': {
                    'ka': 'შეკვეთის დადასტურება',
                    'en': 'Order Confirmation',
                    'tr': 'Sipariş Onayı',
                },
            },
            'order_status_update': {
                'enabled': True,
                'subject': {
                    'ka': 'შეკვეთის სტატუსი განახლდა',
                    'en': 'Order Status Update',
                    'tr': 'Sipariş Durumu Güncellendi',
                },
            },
            'welcome_email': {
                'enabled': True,
                'subject': {
                    'ka': 'კეთილი იყოს თქვენი მობრძანება KERVAN-ში!',
                    'en': 'Welcome to KERVAN!',
                    'tr': "KERVAN'a Hoş Geldiniz!",
                },
            },
        },
    },
    'seo': {
        'meta_title': {},
        'meta_description': {},
        'keywords': [],
        'google_analytics': None,
        'google_tag_manager': None,
        'facebook_pixel': None,
        'structured_data': {'organization': None, 'website': None},
    },
    'security': {
        'rate_limit': {'window_ms': 900000, 'max': 100},
        'cors': {'origins': [], 'credentials': True},
        'jwt': {'expires_in': '7d', 'refresh_expires_in': '30d'},
    },
    'maintenance': {
        'enabled': False,
        'message': {},
        'allowed_ips': [],
        'estimated_time': None,
    },
    'system': {
        'version': '1.0.0',
        'last_backup': None,
        'backup_frequency': 'daily',
        'log_level': 'info',
    },
}
