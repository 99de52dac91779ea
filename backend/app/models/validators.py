"""Model-level validation utilities for data integrity.

Reusable validators that enforce business rules at the ORM level, so invalid
data never reaches the store regardless of which route or service writes it.
"""

from decimal import Decimal, InvalidOperation


def _as_decimal(key: str, value) -> Decimal:
    try:
        return value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{key} must be numeric, got {value!r}")


def non_negative(key: str, value):
    """Validate that a numeric value is >= 0."""
    if value is not None and _as_decimal(key, value) < 0:
        raise ValueError(f"{key} cannot be negative, got {value}")
    return value


def positive(key: str, value):
    """Validate that a numeric value is > 0."""
    if value is not None and _as_decimal(key, value) <= 0:
        raise ValueError(f"{key} must be positive, got {value}")
    return value


def one_of(key: str, value, allowed):
    """Validate that a string value is in an allowed set."""
    if value is not None and value not in allowed:
        raise ValueError(f"{key} must be one of {sorted(allowed)}, got {value!r}")
    return value


def validate_variants(key: str, value):
    """Validate a variants JSON column: a list of {"name": str, "price": number}.

    Names must be unique within the list; the order is kept because the
    first variant provides the item's default price.
    """
    if value is None:
        return value
    if not isinstance(value, list):
        raise ValueError(f"{key} must be a list, got {type(value).__name__}")
    seen = set()
    for i, variant in enumerate(value):
        if not isinstance(variant, dict):
            raise ValueError(f"{key}[{i}] must be a dict, got {type(variant).__name__}")
        name = variant.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValueError(f"{key}[{i}] needs a non-empty name")
        if name in seen:
            raise ValueError(f"{key} has duplicate variant name {name!r}")
        seen.add(name)
        non_negative(f"{key}[{i}].price", variant.get("price", 0))
    return value
