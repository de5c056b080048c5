"""
Shared pytest fixtures.

Settings are read once (lru_cache), so the environment below must be in place
before anything from codescore is imported. Each test gets fresh tables in a
temporary SQLite file.
"""
import os
import tempfile
from pathlib import Path
from unittest.mock import MagicMock

import httpx
import pytest

_tmp_dir = Path(tempfile.mkdtemp(prefix="codescore-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_tmp_dir / 'test.db'}"
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only"
os.environ["SWEEP_ENABLED"] = "false"
os.environ["DEEPSEEK_API_KEY"] = "test-deepseek-key"
os.environ["SMTP_HOST"] = ""
os.environ["REDIS_URL"] = ""
os.environ["ADMIN_EMAIL"] = "admin@example.com"
os.environ["ADMIN_PASSWORD"] = ""
os.environ["FRONTEND_URL"] = "http://frontend.test"
os.environ["PUBLIC_BASE_URL"] = "http://api.test"

from fastapi.testclient import TestClient  # noqa: E402

from codescore.auth import create_access_token, hash_password  # noqa: E402
from codescore.database import Base, SessionLocal, engine  # noqa: E402
from codescore.main import app  # noqa: E402
from codescore.models.user import User, UserRole  # noqa: E402
from codescore.services import review_service  # noqa: E402
from codescore.services.notifications import NotificationDispatcher, get_dispatcher  # noqa: E402


# ==============================================================================
# Database
# ==============================================================================

@pytest.fixture(autouse=True)
def tables():
    """Fresh schema for every test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    """Factory: create an account directly in the users table."""
    def _make(email="user@example.com", password="secret1", role=UserRole.USER.value):
        user = User(email=email, password=hash_password(password), role=role)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.email)}"}


# ==============================================================================
# External collaborators
# ==============================================================================

@pytest.fixture
def dispatcher():
    """Notification dispatcher that records calls instead of sending email."""
    return MagicMock(spec=NotificationDispatcher)


@pytest.fixture
def client(dispatcher):
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    test_client = TestClient(app)
    yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def ai_provider(monkeypatch):
    """
    Install a handler for the AI provider HTTP calls.
    Usage: ai_provider(lambda request: httpx.Response(200, json=...)).
    Returns the list of requests seen.
    """
    seen = []

    def install(handler):
        def recording_handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return handler(request)
        monkeypatch.setattr(
            review_service,
            "_http_client",
            httpx.Client(transport=httpx.MockTransport(recording_handler)),
        )
        return seen

    return install


def completion(content: str) -> httpx.Response:
    return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": content}}]})
