from labloan.errors import InvalidQuantity


def parse_quantity(value, minimum: int = 1, field: str = "quantity") -> int:
    """
    Whole-number count from JSON or form input. Integral floats (``2.0``) and
    digit strings are accepted; fractions are refused, never truncated.
    """
    if isinstance(value, bool):
        raise InvalidQuantity(f"{field} must be a whole number, got {value!r}")
    if isinstance(value, float):
        if not value.is_integer():
            raise InvalidQuantity(f"{field} must be a whole number, got {value!r}")
        value = int(value)
    elif isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            raise InvalidQuantity(f"{field} must be a whole number, got {value!r}")
    elif not isinstance(value, int):
        raise InvalidQuantity(f"{field} must be a whole number, got {value!r}")

    if value < minimum:
        raise InvalidQuantity(f"{field} must be at least {minimum}")
    return value
