import pytest

from db import init_db
from db.session import DATABASE_URL_ENV, configure_engine
from paths import HOME_ENV
from services.auth import create_user
from ui.i18n import set_language


@pytest.fixture(autouse=True)
def portable_home(tmp_path, monkeypatch):
    monkeypatch.setenv(HOME_ENV, str(tmp_path))
    monkeypatch.delenv(DATABASE_URL_ENV, raising=False)
    return tmp_path


@pytest.fixture(autouse=True)
def italian():
    set_language("it")
    yield
    set_language("it")


@pytest.fixture
def engine():
    engine = configure_engine("sqlite://")
    init_db()
    yield engine
    engine.dispose()


@pytest.fixture
def ctx(engine):
    return create_user("mario", "segreto", "Mario Rossi")
