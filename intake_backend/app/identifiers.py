"""Stored-file identifiers.

An identifier is a short random alphanumeric prefix followed by the current
time in milliseconds, base-36 encoded.  Two identifiers can only collide if
their random prefixes match within the same millisecond; the placer still
refuses to publish over an existing name.
"""
import secrets
import string
import time

ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits
_BASE36_DIGITS = string.digits + string.ascii_lowercase


def to_base36(value: int) -> str:
    """Encode a non-negative integer the way ``Number.toString(36)`` does."""
    if value < 0:
        raise ValueError("base36 encoding expects a non-negative integer")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def new_identifier(random_length: int = 8) -> str:
    if random_length < 1:
        raise ValueError("random_length must be at least 1")
    prefix = "".join(secrets.choice(ALPHABET) for _ in range(random_length))
    return prefix + to_base36(time.time_ns() // 1_000_000)
