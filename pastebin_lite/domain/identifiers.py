from __future__ import annotations

import random
import secrets
import string


ALPHABET = string.digits + string.ascii_lowercase
TIME_PREFIX_LENGTH = 8
DEFAULT_RANDOM_LENGTH = 8

_system_random = secrets.SystemRandom()


def to_base36(value: int) -> str:
    """Encode a non-negative integer in lowercase base36."""
    if value < 0:
        raise ValueError("value must be non-negative")
    if value == 0:
        return "0"
    digits: list[str] = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(ALPHABET[remainder])
    return "".join(reversed(digits))


def generate_paste_id(
    now_ms: int,
    *,
    random_length: int = DEFAULT_RANDOM_LENGTH,
    rng: random.Random = _system_random,
) -> str:
    """
    Generate a short, URL-safe paste identifier.

    The id is the creation time in base36 (last ``TIME_PREFIX_LENGTH`` digits,
    zero-padded) followed by ``random_length`` random base36 characters, so
    its length is fixed for a given ``random_length``. Uniqueness is enforced
    by the store's primary key; callers retry on a duplicate.
    """
    prefix = to_base36(now_ms).rjust(TIME_PREFIX_LENGTH, "0")[-TIME_PREFIX_LENGTH:]
    suffix = "".join(rng.choice(ALPHABET) for _ in range(random_length))
    return prefix + suffix
