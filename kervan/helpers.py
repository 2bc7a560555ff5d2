"""
General-purpose helpers shared by models, services and blueprints.
"""
import copy
import re
import unicodedata
from decimal import Decimal, ROUND_HALF_UP

LANGUAGE_FALLBACK = ('en', 'ka', 'tr')

CENT = Decimal('0.01')


def slugify(text: str) -> str:
    """Convert a string to a URL-friendly slug."""
    text = unicodedata.normalize('NFKD', text or '')
    text = text.encode('ascii', 'ignore').decode('ascii')
    text = text.lower().strip()
    text = re.sub(r"[^\w\s-]", "", text)
    text = re.sub(r"[\s_-]+", "-", text)
    return text.strip('-')


def localized(value, lang=None) -> str:
    """Pick one language out of a {"ka", "en", "tr"} text object.

    Falls back to English, then Georgian, then Turkish.
    """
    if not value:
        return ''
    if isinstance(value, str):
        return value
    if lang and value.get(lang):
        return value[lang]
    for code in LANGUAGE_FALLBACK:
        if value.get(code):
            return value[code]
    return ''


def to_decimal(value) -> Decimal:
    if value is None:
        return Decimal('0')
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def money(value) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def deep_merge(base: dict, override: dict) -> dict:
    """Return a copy of base with override applied recursively.

    Lists and scalars in override replace the base value wholesale.
    """
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def shape_mismatch(default, value, path=''):
    """First dotted path where value does not fit the type of default.

    Keys missing from default and defaults of None accept anything.
    Returns None when value fits.
    """
    if default is None:
        return None
    if isinstance(default, dict):
        if not isinstance(value, dict):
            return path or '.'
        for key, item in value.items():
            if key in default:
                found = shape_mismatch(
                    default[key], item, f'{path}.{key}' if path else key)
                if found:
                    return found
        return None
    if isinstance(default, list):
        if not isinstance(value, list):
            return path
        if default and isinstance(default[0], dict) and \
                not all(isinstance(item, dict) for item in value):
            return path
        return None
    if isinstance(default, bool):
        return None if isinstance(value, bool) else path
    if isinstance(default, (int, float)):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return path
        return None
    if isinstance(default, str):
        return None if isinstance(value, str) else path
    return None
