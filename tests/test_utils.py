import pytest

from app.errors import InvalidCategoryError
from app.utils import hash_password, normalise_category, verify_password


def test_hash_password_round_trips_and_salts():
    first = hash_password("hunter2", iterations=10_000)
    second = hash_password("hunter2", iterations=10_000)

    assert first != second
    assert first.startswith("pbkdf2:sha256:10000$")
    assert "hunter2" not in first
    assert verify_password("hunter2", first)
    assert verify_password("hunter2", second)
    assert not verify_password("hunter3", first)


def test_verify_password_rejects_malformed_hashes():
    assert not verify_password("secret", "secret")
    assert not verify_password("secret", "md5$abc$def")
    assert not verify_password("secret", "pbkdf2:sha256:many$abc$def")


def test_normalise_category_strict_accepts_known_values():
    assert normalise_category("watchlist", strict=True) == "watchlist"
    assert normalise_category(" Favourites ", strict=True) == "favourites"


def test_normalise_category_strict_rejects_unknown_values():
    with pytest.raises(InvalidCategoryError, match="Unknown list category 'later'"):
        normalise_category("later", strict=True)


def test_normalise_category_lax_keeps_free_form_values():
    assert normalise_category("Rewatch-Soon", strict=False) == "Rewatch-Soon"
    assert normalise_category(" Rewatch ", strict=False) == " Rewatch "


def test_normalise_category_requires_a_value():
    with pytest.raises(InvalidCategoryError):
        normalise_category("   ", strict=False)
    with pytest.raises(InvalidCategoryError):
        normalise_category(None, strict=True)
