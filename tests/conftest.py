import pytest

from dynrecord import Database, DatabaseSettings
from dynrecord.events import clear_handlers

DB_VARS = ("DB_TYPE", "DB_PATH", "DB_HOST", "DB_PORT", "DB_NAME", "DB_USERNAME", "DB_PASSWORD")


@pytest.fixture(autouse=True)
def isolated(monkeypatch):
    """No DB_* leakage from the host and no state carried between tests."""
    for var in DB_VARS:
        monkeypatch.delenv(var, raising=False)
    Database.reset()
    yield
    Database.reset()
    clear_handlers()


@pytest.fixture()
def db_path(tmp_path):
    return tmp_path / "data" / "testdb.sqlite"


@pytest.fixture()
def sqlite_db(db_path):
    db_path.parent.mkdir()
    Database.configure(DatabaseSettings(db_type="sqlite", db_path=str(db_path)))
    yield db_path
    Database.disconnect()
