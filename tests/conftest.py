# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Generator, Iterator
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["AUTO_CREATE_TABLES"] = "false"
os.environ["EMAIL_NOTIFICATIONS_ENABLED"] = "false"
os.environ["TRUST_PROXY_HEADERS"] = "false"

from helpdesk.core.security import create_access_token, hash_password  # noqa: E402
from helpdesk.core.settings import Settings  # noqa: E402
from helpdesk.db.session import Base  # noqa: E402
from helpdesk.db.session import get_db as app_get_session  # noqa: E402
from helpdesk.main import app as fastapi_app  # noqa: E402
from helpdesk.models import User  # noqa: E402
from helpdesk.models.user import ROLE_ADMIN, ROLE_USER  # noqa: E402
from helpdesk.services.captcha import CaptchaStore, get_captcha_store  # noqa: E402
from helpdesk.services.email import EmailService, get_email_service  # noqa: E402
from helpdesk.services.rate_limit import SubmissionRateLimiter, get_rate_limiter  # noqa: E402

TEST_DB_URL = "sqlite://"
TEST_PASSWORD = "correct-horse-battery"

# bcrypt is deliberately slow; hash once per session.
_PASSWORD_HASH = hash_password(TEST_PASSWORD)


class FakeClock:
    """Manually advanced wall clock for time-dependent gate tests."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    TestingSession = sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = TestingSession()
    try:
        yield session
    finally:
        session.rollback()
        session.close()

        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def captcha_store(clock: FakeClock) -> CaptchaStore:
    return CaptchaStore(
        ttl_seconds=15 * 60,
        max_failures=3,
        block_seconds=10 * 60,
        failure_reset_seconds=30 * 60,
        clock=clock,
    )


@pytest.fixture()
def rate_limiter(clock: FakeClock) -> SubmissionRateLimiter:
    return SubmissionRateLimiter(
        max_attempts=3,
        window_seconds=15 * 60,
        cooldown_seconds=10 * 60,
        clock=clock,
    )


def build_settings(**overrides: Any) -> Settings:
    """Return Settings built from the test environment plus alias overrides."""
    return Settings(**overrides)


@pytest.fixture()
def email_service() -> EmailService:
    """Email service with notifications disabled."""
    return EmailService(build_settings(EMAIL_NOTIFICATIONS_ENABLED=False))


@pytest.fixture()
def enabled_email_service() -> EmailService:
    """Email service that believes SMTP is configured."""
    return EmailService(
        build_settings(
            EMAIL_NOTIFICATIONS_ENABLED=True,
            SMTP_USER="helpdesk@example.com",
            SMTP_PASSWORD="app-password",
            SMTP_HOST="smtp.example.com",
        )
    )


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_dependencies(
    app: FastAPI,
    db_session: Session,
    captcha_store: CaptchaStore,
    rate_limiter: SubmissionRateLimiter,
    email_service: EmailService,
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    app.dependency_overrides[get_captcha_store] = lambda: captcha_store
    app.dependency_overrides[get_rate_limiter] = lambda: rate_limiter
    app.dependency_overrides[get_email_service] = lambda: email_service
    try:
        yield
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


def _create_user(db: Session, *, name: str, email: str, role: str) -> User:
    user = User(
        name=name,
        email=email,
        password_hash=_PASSWORD_HASH,
        department="Information and Communications Technology Unit",
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture()
def admin_user(db_session: Session) -> User:
    return _create_user(db_session, name="Ada Admin", email="admin@example.com", role=ROLE_ADMIN)


@pytest.fixture()
def regular_user(db_session: Session) -> User:
    return _create_user(db_session, name="Rita Regular", email="rita@example.com", role=ROLE_USER)


@pytest.fixture()
def admin_headers(admin_user: User) -> dict[str, str]:
    token = create_access_token(admin_user.id, {"role": admin_user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def user_headers(regular_user: User) -> dict[str, str]:
    token = create_access_token(regular_user.id, {"role": regular_user.role})
    return {"Authorization": f"Bearer {token}"}


def _troubleshooting_form(**overrides: Any) -> dict[str, Any]:
    form: dict[str, Any] = {
        "name": "Juan Dela Cruz",
        "email": "Juan.DelaCruz@Example.com",
        "department": "Legal Services Unit",
        "priority": "HIGH",
        "locationType": "OFFICE",
        "dateOfRequest": "2025-03-07",
        "typeOfEquipment": "Printer",
        "modelOfEquipment": "LaserJet 4000",
        "serialNo": "SN-12345",
        "specificProblem": "Paper jam on every print job",
    }
    form.update(overrides)
    return form


@pytest.fixture()
def troubleshooting_form():
    """Return a factory for a valid troubleshooting submission body."""
    return _troubleshooting_form


@pytest.fixture()
def issue_captcha(client: TestClient):
    """Return a callable that fetches a fresh challenge as request fields."""

    def _issue() -> dict[str, str]:
        response = client.get("/api/v1/tickets/generate-captcha")
        assert response.status_code == 200
        data = response.json()
        return {"captchaId": data["captchaId"], "captchaCode": data["captchaCode"]}

    return _issue
