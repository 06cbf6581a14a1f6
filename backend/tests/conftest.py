from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import pytest

# Make backend modules importable when running tests from the repo root.
BACKEND = Path(__file__).resolve().parents[1]
if str(BACKEND) not in sys.path:
    sys.path.insert(0, str(BACKEND))

from config import settings  # noqa: E402
from database.connection import init_db, close_db, get_db  # noqa: E402
from glossary.models import Term, Category  # noqa: E402

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "admin-password"


def make_term(term_id: str, **overrides) -> Term:
    fields = {
        "id": term_id,
        "term": term_id.upper(),
        "czech_name": f"{term_id} cz",
        "description": f"Description of {term_id}",
        "practical_example": f"Example for {term_id}",
        "difficulty": "🌱",
        "category": "tools",
        "related_terms": [],
        "tags": [],
    }
    fields.update(overrides)
    return Term(**fields)


@pytest.fixture
def sample_terms():
    return [
        make_term("api", term="API", category="tools", difficulty="🌱", related_terms=["rest", "missing", "json"]),
        make_term("rag", term="RAG", category="architecture", difficulty="🚀"),
        make_term("rest", term="REST", category="architecture", difficulty="🚀", tags=["http", "web"]),
        make_term("json", term="JSON", category="data", difficulty="🌱"),
        make_term("xss", term="XSS", category="security", difficulty="🔥"),
    ]


@pytest.fixture
def sample_categories():
    return [
        Category(id="tools", name="Nástroje", icon="wrench", color="green"),
        Category(id="architecture", name="Architektura", icon="building", color="blue"),
        Category(id="data", name="Data", icon="database", color="teal"),
    ]


@pytest.fixture
def database_url(tmp_path, monkeypatch):
    url = f"sqlite+aiosqlite:///{tmp_path / 'glossa.db'}"
    monkeypatch.setattr(settings, "DATABASE_URL", url)
    return url


@pytest.fixture
def run_db(database_url):
    """Run `fn(session)` against a fresh database inside one event loop."""

    def run(fn):
        async def scenario():
            await init_db()
            try:
                async with get_db() as session:
                    return await fn(session)
            finally:
                await close_db()

        return asyncio.run(scenario())

    return run


@pytest.fixture
def client(database_url, monkeypatch):
    from fastapi.testclient import TestClient
    from api.main import app, limiter

    monkeypatch.setattr(settings, "ADMIN_EMAIL", ADMIN_EMAIL)
    monkeypatch.setattr(limiter, "enabled", False)

    with TestClient(app) as test_client:
        yield test_client


def login(client, email: str, password: str) -> dict:
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def admin_headers(client):
    response = client.post("/api/auth/register", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert response.status_code == 201, response.text
    return login(client, ADMIN_EMAIL, ADMIN_PASSWORD)


@pytest.fixture
def reader_headers(client):
    response = client.post("/api/auth/register", json={"email": "reader@example.com", "password": "reader-password"})
    assert response.status_code == 201, response.text
    return login(client, "reader@example.com", "reader-password")
