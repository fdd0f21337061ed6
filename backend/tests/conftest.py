"""Test fixtures for Observach: temp SQLite database, store/engine and API client."""
from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Callable, Dict

import pytest

# Configure the app before anything imports observach.config.
_TMP_DIR = Path(tempfile.mkdtemp(prefix="observach-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP_DIR / 'test.sqlite'}"
os.environ["UPLOAD_DIR"] = str(_TMP_DIR / "uploads")
os.environ["APP_ENV"] = "test"
os.environ["AUTH_RATE_LIMIT"] = "1000/minute"
os.environ["ADMIN_EMAIL"] = "admin@observach.test"
os.environ["ADMIN_PASSWORD"] = "admin-pass-123"

from fastapi.testclient import TestClient  # noqa: E402

from observach.database import Base, SessionLocal, engine  # noqa: E402
from observach.models import Role, User  # noqa: E402
from observach.moderation import Actor, ModerationEngine  # noqa: E402
from observach.store import ContentStore  # noqa: E402

ADMIN_EMAIL = os.environ["ADMIN_EMAIL"]
ADMIN_PASSWORD = os.environ["ADMIN_PASSWORD"]

OBSERVATION_FIELDS = {
    "popular_name": "Lobo-guará",
    "scientific_name": "Chrysocyon brachyurus",
    "group": "mammal",
    "location": "Serra da Canastra",
    "sex": "unknown",
    "observed_at": "2024-05-01T07:30:00Z",
    "photo_ref": "/uploads/lobo.jpg",
}

# 1x1 transparent PNG
PNG_BYTES = bytes.fromhex(
    "89504e470d0a1a0a0000000d49484452000000010000000108060000001f15c489"
    "0000000d49444154789c63000100000500010d0a2db40000000049454e44ae426082"
)


@pytest.fixture(autouse=True)
def fresh_schema():
    """Every test starts from empty tables."""
    import observach.models  # noqa: F401

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def observation_fields() -> Dict[str, str]:
    return dict(OBSERVATION_FIELDS)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(db) -> ContentStore:
    return ContentStore(db)


@pytest.fixture
def moderation(store: ContentStore) -> ModerationEngine:
    return ModerationEngine(store)


@pytest.fixture
def make_user(store: ContentStore) -> Callable[..., User]:
    counter = {"n": 0}

    def _make(name: str | None = None, role: Role = Role.USER) -> User:
        counter["n"] += 1
        name = name or f"User {counter['n']}"
        # store-level tests don't need a real bcrypt hash
        return store.create_user(name, f"user{counter['n']}@example.org", "not-a-real-hash", role)

    return _make


@pytest.fixture
def actor_for() -> Callable[[User], Actor]:
    return lambda user: Actor(id=user.id, role=Role(user.role))


@pytest.fixture
def submit(moderation: ModerationEngine) -> Callable[..., int]:
    def _submit(actor: Actor, **overrides) -> int:
        fields = {**OBSERVATION_FIELDS, **overrides}
        return moderation.submit_observation(actor, fields).id

    return _submit


# ── API fixtures ──────────────────────────────────────────────

@pytest.fixture
def client() -> TestClient:
    from observach.main import app

    with TestClient(app) as c:
        yield c


def _auth(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(client: TestClient) -> Dict[str, str]:
    """Login as the seeded admin and return auth headers."""
    resp = client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert resp.status_code == 200, f"Admin login failed: {resp.text}"
    return _auth(resp.json()["token"])


@pytest.fixture
def register(client: TestClient) -> Callable[[str], Dict[str, str]]:
    """Register a regular user and return {"headers", "id"}."""

    def _register(name: str) -> Dict:
        email = f"{name.lower().replace(' ', '.')}@example.org"
        resp = client.post(
            "/api/auth/register",
            json={"name": name, "email": email, "password": "secret-123"},
        )
        assert resp.status_code == 200, f"Registration failed: {resp.text}"
        data = resp.json()
        return {"headers": _auth(data["token"]), "id": data["user"]["id"]}

    return _register


@pytest.fixture
def post_observation(client: TestClient) -> Callable[..., int]:
    def _post(headers: Dict[str, str], **overrides) -> int:
        form = {
            "popularName": "Tucano-toco",
            "scientificName": "Ramphastos toco",
            "group": "bird",
            "location": "Pantanal",
            "sex": "female",
            "observedAt": "2024-06-10",
        }
        form.update(overrides)
        resp = client.post(
            "/api/observations",
            data=form,
            files={"photo": ("tucano.png", PNG_BYTES, "image/png")},
            headers=headers,
        )
        assert resp.status_code == 201, resp.text
        return resp.json()["id"]

    return _post


@pytest.fixture
def photo_file():
    return ("tucano.png", PNG_BYTES, "image/png")
