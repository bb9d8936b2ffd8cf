"""
Pytest configuration and fixtures
"""
import os
import sys
import tempfile
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

# Settings are cached on first use; the test environment must be in place before app imports
_db_dir = tempfile.mkdtemp(prefix="crm-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{Path(_db_dir) / 'test.db'}"
os.environ["JWT_SECRET"] = "test-secret-key-for-jwt-signing-only"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RATE_LIMIT_CLEANUP_ENABLED"] = "false"
os.environ["LOG_FILE_ENABLED"] = "false"
os.environ["LOG_FORMAT"] = "text"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["EMAIL_HOST"] = "smtp.test.invalid"
os.environ["EMAIL_PORT"] = "587"
os.environ["FRONTEND_URL"] = "http://frontend.test"

from sqlalchemy.orm import Session

from app.core.database import Base, get_engine, get_session_local
from app.core.tokens import get_reset_rate_limiter


@pytest.fixture(scope="function")
def db() -> Session:
    """Create a database session on a freshly created schema"""
    import app.models  # noqa: F401

    engine = get_engine()
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    session = get_session_local()()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    """The reset limiter is process-wide; start every test with it empty"""
    limiter = get_reset_rate_limiter()
    limiter.reset()
    yield limiter
    limiter.reset()


@pytest.fixture(autouse=True)
def smtp():
    """Replace SMTP delivery; the mock is the connection used inside `with`"""
    with patch("app.services.email_service.smtplib.SMTP") as smtp_cls:
        connection = MagicMock()
        smtp_cls.return_value.__enter__.return_value = connection
        yield connection


@pytest.fixture(scope="function")
def client(db: Session):
    """Create test client with database dependency override"""
    from fastapi.testclient import TestClient

    from app.core.database import get_db
    from main import app

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    test_client = TestClient(app)
    yield test_client
    app.dependency_overrides.clear()


def _register(client, email: str, password: str = "s3cret-pass", name: str = "Test User"):
    response = client.post(
        "/api/auth/register",
        json={"email": email, "password": password, "name": name},
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def user(client):
    """Registered user: {id, email, name, token}"""
    return _register(client, "owner@example.com", name="Owner")


@pytest.fixture
def other_user(client):
    return _register(client, "other@example.com", name="Other")


@pytest.fixture
def auth_headers(user):
    return {"Authorization": f"Bearer {user['token']}"}


@pytest.fixture
def other_headers(other_user):
    return {"Authorization": f"Bearer {other_user['token']}"}


@pytest.fixture
def admin_headers(client, db):
    """Headers for an ADMIN account created outside the API"""
    from app.models.user import UserRole
    from app.services.auth_service import AuthService

    service = AuthService(db)
    admin = service.register_user("admin@example.com", "admin-pass", name="Admin", role=UserRole.ADMIN.value)
    return {"Authorization": f"Bearer {service.issue_token(admin)}"}
