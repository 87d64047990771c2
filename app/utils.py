"""Utility helpers for the media tracker service."""

from __future__ import annotations

from werkzeug.security import check_password_hash, generate_password_hash

from .catalog_kinds import CATEGORY_VALUES
from .errors import InvalidCategoryError


DEFAULT_PASSWORD_ITERATIONS = 390_000


def hash_password(password: str, *, iterations: int = DEFAULT_PASSWORD_ITERATIONS) -> str:
    """Return a salted ``pbkdf2:sha256:<iterations>$salt$digest`` hash."""

    return generate_password_hash(password, method=f"pbkdf2:sha256:{iterations}")


def verify_password(password: str, encoded: str) -> bool:
    """Check ``password`` against a value produced by :func:`hash_password`."""

    try:
        return check_password_hash(encoded, password)
    except ValueError:
        # Unknown hash method or a non-numeric iteration count.
        return False


def normalise_category(value: str | None, *, strict: bool) -> str:
    """Return the stored form of a list category or raise ``InvalidCategoryError``.

    Strict mode only admits the known categories (case-insensitively and
    ignoring surrounding whitespace); lax mode keeps any non-blank string
    verbatim.
    """

    if value is None or not value.strip():
        raise InvalidCategoryError("List category is required")
    if not strict:
        return value
    raw = value.strip()
    category = raw.lower()
    if category not in CATEGORY_VALUES:
        allowed = ", ".join(sorted(CATEGORY_VALUES))
        raise InvalidCategoryError(
            f"Unknown list category '{raw}'. Available: {allowed}"
        )
    return category
