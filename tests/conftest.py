from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from auth_api.core.config import Settings
from auth_api.crud.user import user_crud
from auth_api.db.base import Base
from auth_api.db.init_db import init_db
from auth_api.main import create_app
from auth_api.services.notifier import Notifier

PASSWORD = "Password123!"


class FrozenClock:
    def __init__(self, start=None):
        self.current = start or datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)

    def now(self):
        return self.current

    def advance(self, **kwargs):
        self.current += timedelta(**kwargs)


class RecordingNotifier(Notifier):
    def __init__(self):
        self.sent = []

    def send_verification(self, email, token, name):
        self.sent.append(("verification", email, token))

    def send_password_reset(self, email, token, name):
        self.sent.append(("reset", email, token))

    def send_welcome(self, email, name):
        self.sent.append(("welcome", email, None))

    def send_password_changed(self, email, name):
        self.sent.append(("password_changed", email, None))

    def kinds(self, email=None):
        return [k for k, e, _ in self.sent if email is None or e == email]

    def last_token(self, kind, email):
        for k, e, token in reversed(self.sent):
            if k == kind and e == email:
                return token
        raise AssertionError(f"no {kind} notification for {email}")


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def settings():
    return Settings(
        DATABASE_URL="sqlite://",
        SECRET_KEY="test-secret",
        BCRYPT_ROUNDS=4,
        RUN_MIGRATIONS_ON_STARTUP=False,
        CLEANUP_INTERVAL_SECONDS=0,
        METRICS_ENABLED=False,
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def app(settings, notifier, clock):
    api = create_app(settings, notifier=notifier, clock=clock)
    Base.metadata.create_all(api.state.engine)
    with api.state.session_factory() as db:
        init_db(db, api.state.auth_service.hasher)
    yield api
    api.state.engine.dispose()


@pytest.fixture
def auth(app):
    return app.state.auth_service


@pytest.fixture
def db(app):
    session = app.state.session_factory()
    yield session
    session.close()


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_user(db, auth):
    def _make(email="a@x.com", password=PASSWORD, verified=True, active=True, roles=None):
        user = user_crud.create(db, {
            "email": email,
            "password_hash": auth.hasher.hash(password),
            "first_name": "Test",
            "last_name": "User",
            "roles": roles or ["user"],
            "is_email_verified": verified,
            "is_active": active,
        })
        db.commit()
        return user
    return _make


@pytest.fixture
def admin_headers(client, make_user):
    make_user(email="admin@x.com", roles=["admin", "user"])
    r = client.post("/api/v1/auth/login", json={"email": "admin@x.com", "password": PASSWORD})
    assert r.status_code == 200
    return {"Authorization": f"Bearer {r.json()['accessToken']}"}
