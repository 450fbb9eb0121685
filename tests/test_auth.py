import pytest

from services.auth import (
    DEFAULT_PASSWORD,
    DEFAULT_USERNAME,
    authenticate,
    create_user,
    ensure_default_user,
    hash_password,
    verify_password,
)
from services.errors import PersistenceError
from services.reference_data import fetch_settings


def test_hash_and_verify():
    stored = hash_password("segreto", iterations=1000)
    assert stored.startswith("pbkdf2_sha256$1000$")
    assert verify_password("segreto", stored)
    assert not verify_password("sbagliata", stored)
    assert not verify_password("segreto", "garbage")
    assert hash_password("segreto") != hash_password("segreto")


def test_authenticate(ctx):
    logged = authenticate("MARIO", "segreto")
    assert logged == ctx
    assert authenticate("mario", "sbagliata") is None
    assert authenticate("nessuno", "segreto") is None
    assert authenticate("", "") is None


def test_new_user_gets_settings(ctx):
    settings = fetch_settings(ctx)
    assert settings.next_quote_number == 1
    assert settings.default_vat == 22.0


def test_duplicate_username(ctx):
    with pytest.raises(PersistenceError):
        create_user("mario", "altra")


def test_default_user_created_once(engine):
    created = ensure_default_user()
    assert created is not None
    assert created.username == DEFAULT_USERNAME
    assert authenticate(DEFAULT_USERNAME, DEFAULT_PASSWORD) == created
    assert ensure_default_user() is None
