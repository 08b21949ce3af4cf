import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from task_manager.config import Settings
from task_manager.database import build_engine, create_db_and_tables
from task_manager.main import create_app
from task_manager.services.auth import AuthService
from task_manager.services.tasks import TaskService


@pytest.fixture()
def settings() -> Settings:
    """Settings for tests: in-memory database and the cheapest bcrypt cost."""
    return Settings(
        environment="test",
        database_url="sqlite://",
        jwt_secret="test-access-secret",
        jwt_refresh_secret="test-refresh-secret",
        bcrypt_rounds=4,
        log_level="WARNING",
    )


@pytest.fixture()
def engine(settings):
    engine = build_engine(settings)
    create_db_and_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture()
def auth_service(session, settings) -> AuthService:
    return AuthService(session, settings)


@pytest.fixture()
def task_service(session) -> TaskService:
    return TaskService(session)


@pytest.fixture()
def ann(auth_service):
    """A registered user; returns the AuthResult."""
    return auth_service.register("Ann", "ann@x.com", "password123")


@pytest.fixture()
def bob(auth_service):
    return auth_service.register("Bob", "bob@example.com", "hunter2hunter2")


@pytest.fixture()
def client(settings):
    app = create_app(settings)
    with TestClient(app) as client:
        yield client


def register_user(client, name="Ann", email="ann@x.com", password="password123"):
    """Register through the API and return ``data``; cookies are dropped so
    later requests authenticate only with the header they pass."""
    response = client.post("/api/auth/register", json={"name": name, "email": email, "password": password})
    assert response.status_code == 201, response.text
    client.cookies.clear()
    return response.json()["data"]


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
