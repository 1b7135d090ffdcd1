import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from habitflow import crud
from habitflow.db import get_db
from habitflow.main import create_app
from habitflow.models.base import Base
from habitflow.settings import settings


def make_session():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture()
def session_factory():
    return make_session()


@pytest.fixture()
def test_app(session_factory):
    app = create_app()

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    return app, session_factory


@pytest.fixture()
def client(test_app):
    app, _ = test_app
    return TestClient(app)


@pytest.fixture(autouse=True)
def api_key_settings(monkeypatch):
    monkeypatch.setattr(settings, "API_KEY_SECRET", "test-secret")
    monkeypatch.setattr(settings, "API_KEY", None)
    monkeypatch.setattr(settings, "TZ", "UTC")


def _headers_for(session_factory, external_id: str) -> dict:
    with session_factory() as db:
        user = crud.get_or_create_user(db, external_id=external_id)
        token = crud.rotate_user_api_key(db, user.id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def auth_headers(test_app):
    _, session_factory = test_app
    return _headers_for(session_factory, "test")


@pytest.fixture()
def other_headers(test_app):
    _, session_factory = test_app
    return _headers_for(session_factory, "other")
