import os

# Settings are read at import time; point them at an in-memory database first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-the-suite")

import pytest
from types import SimpleNamespace
from typing import AsyncGenerator, Callable, Dict, Iterable, Optional
from unittest.mock import patch
from fakeredis import FakeAsyncRedis, FakeServer
from httpx import ASGITransport, AsyncClient

from app.main import app
from app.api.deps import get_storage_backend
from app.core.session import SessionRegistry, session_registry
from app.infrastructure.database import Base, SessionLocal, engine, get_db
from app.infrastructure.redis import SessionStore
from app.infrastructure.storage import StorageBackend
from app.domain.auth.models import UserAccount
from app.domain.auth.service import AuthService
from app.domain.profiles.models import Profile, UserRole
from app.domain import models as registered_models  # noqa: F401

TEST_PASSWORD = "Password123"


class InMemoryStorage(StorageBackend):
    """Storage backend keeping files in a dict"""

    def __init__(self):
        self.files: Dict[str, bytes] = {}
        self.fail_remove = False

    def upload(self, path: str, data: bytes, content_type: Optional[str] = None,
               private: bool = True) -> str:
        self.files[path] = data
        return path

    def remove(self, paths: Iterable[str]) -> None:
        if self.fail_remove:
            from app.core.exceptions import ExternalServiceError
            raise ExternalServiceError("storage down")
        for path in paths:
            self.files.pop(path, None)

    def signed_url(self, path: str, expires_in: Optional[int] = None) -> str:
        return f"https://files.test/{path}?expires={expires_in or 3600}"

    def public_url(self, path: str) -> str:
        return f"https://files.test/public/{path}"


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def storage() -> InMemoryStorage:
    return InMemoryStorage()


def make_store(**kwargs) -> SessionStore:
    """Session store over an in-process Redis server of its own"""
    return SessionStore(FakeAsyncRedis(server=FakeServer(), decode_responses=True), **kwargs)


@pytest.fixture(autouse=True)
def session_store():
    """Give the shared registry a fresh store for each test."""
    session_registry.store = make_store()
    yield session_registry.store
    session_registry.store = None


@pytest.fixture(autouse=True)
def queued_emails():
    """Capture e-mail tasks instead of running them."""
    with patch("app.workers.tasks.send_notification_email.delay") as notification_delay, \
            patch("app.workers.tasks.send_password_reset.delay") as reset_delay:
        yield SimpleNamespace(notification=notification_delay, password_reset=reset_delay)


@pytest.fixture(scope="function")
async def client(db_session, storage) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with database and storage overrides."""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage_backend] = lambda: storage

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    await session_registry.shutdown()


@pytest.fixture(scope="function")
def make_user(db_session) -> Callable[..., Profile]:
    """Factory creating an account and its profile."""

    def _make_user(
        email: str,
        role: Optional[UserRole] = UserRole.PATIENT,
        full_name: Optional[str] = None,
        onboarded: bool = True,
        onboarding_step=None,
    ) -> Profile:
        account = UserAccount(email=email)
        account.set_password(TEST_PASSWORD)
        db_session.add(account)
        db_session.flush()
        profile = Profile(
            id=account.id,
            email=email,
            full_name=full_name,
            role=role,
            onboarding_completed=onboarded,
            onboarding_step=onboarding_step,
        )
        db_session.add(profile)
        db_session.commit()
        return profile

    return _make_user


@pytest.fixture(scope="function")
def patient(make_user) -> Profile:
    return make_user("ana@example.com", UserRole.PATIENT, "Ana López")


@pytest.fixture(scope="function")
def other_patient(make_user) -> Profile:
    return make_user("luis@example.com", UserRole.PATIENT, "Luis Pérez")


@pytest.fixture(scope="function")
def doctor(make_user) -> Profile:
    return make_user("dra.ruiz@example.com", UserRole.DOCTOR, "Dra. Marta Ruiz")


@pytest.fixture(scope="function")
async def registry() -> AsyncGenerator[SessionRegistry, None]:
    """Session registry private to one test."""
    registry = SessionRegistry(store=make_store())
    yield registry
    await registry.shutdown()


@pytest.fixture(scope="function")
def login(db_session):
    """Sign a user in and return bearer headers plus the token response."""

    async def _login(profile: Profile):
        tokens = await AuthService(db_session).sign_in(profile.email, TEST_PASSWORD)
        headers = {"Authorization": f"Bearer {tokens.access_token}"}
        return headers, tokens

    return _login


@pytest.fixture(scope="function")
async def patient_headers(client, patient, login) -> Dict[str, str]:
    headers, _ = await login(patient)
    return headers


@pytest.fixture(scope="function")
async def doctor_headers(client, doctor, login) -> Dict[str, str]:
    headers, _ = await login(doctor)
    return headers


@pytest.fixture(scope="function")
def sample_pdf() -> bytes:
    return b"%PDF-1.4\n1 0 obj<<>>endobj\ntrailer<<>>\n%%EOF"


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "auth: mark test as authentication related"
    )
    config.addinivalue_line(
        "markers", "appointments: mark test as appointment scheduling related"
    )
    config.addinivalue_line(
        "markers", "documents: mark test as document library related"
    )
    config.addinivalue_line(
        "markers", "chat: mark test as messaging or presence related"
    )
