import pytest
from fastapi.testclient import TestClient

from gasy_hub.core.settings import settings
from gasy_hub.db import database
from gasy_hub.services.geocoding import reset_geocoding_provider
from gasy_hub.services.user_service import UserService


@pytest.fixture(autouse=True)
def db_engine(tmp_path, monkeypatch):
    """Fresh in-memory database and upload dir for every test."""
    # The /uploads static mount resolves the relative UPLOAD_DIR against the cwd
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(settings, "UPLOAD_DIR", "./uploads")
    monkeypatch.setattr(settings, "GEOCODING_ENABLED", False)
    monkeypatch.setattr(settings, "CONFIRMATION_THRESHOLD", 3)
    monkeypatch.setattr(settings, "REJECTION_THRESHOLD", 2)
    monkeypatch.setattr(settings, "ALLOW_PENDING_RESOLUTION", True)
    reset_geocoding_provider()

    database.dispose_database()
    engine = database.initialize_database("sqlite://")
    database.Base.metadata.drop_all(bind=engine)
    database.Base.metadata.create_all(bind=engine)
    yield engine
    database.dispose_database()
    reset_geocoding_provider()


@pytest.fixture
def db(db_engine):
    session = database.new_session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db_engine):
    from gasy_hub.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_user(db):
    """Create users directly through the service: make_user("u1", is_admin=True)."""
    counter = {"n": 0}

    def _make(user_id=None, **kwargs):
        counter["n"] += 1
        kwargs.setdefault("phone", f"03400000{counter['n']:02d}")
        kwargs.setdefault("name", f"User {counter['n']}")
        return UserService(db).create_user(user_id=user_id, **kwargs)

    return _make
