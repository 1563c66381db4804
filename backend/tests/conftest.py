import os

# Settings are read when lexcanada.core.config is first imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "false"
os.environ["SECRET_KEY"] = "lexcanada-test-secret-key-0123456789abcdef"
for _key in (
    "STRIPE_SECRET_KEY",
    "STRIPE_WEBHOOK_SECRET",
    "DOCUSEAL_API_KEY",
    "DOCUSEAL_TEMPLATE_ID",
    "DEEPSEEK_API_KEY",
    "ANTHROPIC_API_KEY",
    "OPENAI_API_KEY",
    "GEMINI_API_KEY",
    "SMTP_USERNAME",
    "SMTP_PASSWORD",
):
    os.environ[_key] = ""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from lexcanada.core.database import SessionLocal, create_tables, drop_tables
from lexcanada.core.rate_limiter import rate_limiter
from lexcanada.core.security import create_access_token, get_password_hash
from lexcanada.main import app
from lexcanada.models import User
from lexcanada.services import llm_client
from lexcanada.services.llm_client import LLMClient, LLMCompletion

TEST_PASSWORD = "Sup3rSecret!"


@pytest.fixture(autouse=True)
def database():
    create_tables()
    rate_limiter.reset()
    yield
    drop_tables()


@pytest.fixture(autouse=True)
def no_llm_providers(monkeypatch):
    """By default no provider is configured, so AI features use their fallbacks."""
    monkeypatch.setattr(llm_client, "_llm_client", LLMClient([]))


@pytest.fixture
def fake_llm(monkeypatch):
    fake = MagicMock(spec=LLMClient)
    fake.complete.return_value = LLMCompletion(text="Here is some legal information.", provider="deepseek")
    fake.complete_json.return_value = {}
    monkeypatch.setattr(llm_client, "_llm_client", fake)
    return fake


@pytest.fixture
def db(database):
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def client():
    return TestClient(app)


def make_user(db, username="alice", email=None, role="user", preferred_language="en"):
    user = User(
        username=username,
        full_name=username.capitalize(),
        email=email or f"{username}@example.ca",
        hashed_password=get_password_hash(TEST_PASSWORD),
        preferred_language=preferred_language,
        is_active=True,
        is_email_verified=True,
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers_for(user):
    token = create_access_token(data={"sub": user.username, "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user(db):
    return make_user(db)


@pytest.fixture
def auth_headers(user):
    return auth_headers_for(user)


@pytest.fixture
def other_user(db):
    return make_user(db, username="bob")


@pytest.fixture
def other_headers(other_user):
    return auth_headers_for(other_user)


@pytest.fixture
def admin_headers(db):
    return auth_headers_for(make_user(db, username="admin", role="admin"))


DISPUTE = {
    "title": "Unreturned security deposit",
    "description": "My landlord kept the $1,200 deposit after I moved out and left the unit clean.",
    "parties": "Alice (tenant), Gestion Roy (landlord)",
    "dispute_type": "landlord_tenant",
}


def create_dispute(client, headers, **overrides):
    response = client.post("/api/v1/disputes", json={**DISPUTE, **overrides}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]
