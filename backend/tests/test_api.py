from __future__ import annotations

import json

import httpx

from conftest import ADMIN_EMAIL

CATEGORIES = [
    {"id": "tools", "name": "Nástroje", "icon": "wrench", "color": "green"},
    {"id": "architecture", "name": "Architektura", "icon": "building", "color": "blue"},
]

TERMS = [
    {
        "id": "api",
        "term": "API",
        "czechName": "Rozhraní",
        "description": "Contract between two programs",
        "practicalExample": "Weather service",
        "relatedTerms": ["rag", "missing"],
        "difficulty": "🌱",
        "category": "tools",
        "tags": ["web"],
    },
    {
        "id": "rag",
        "term": "RAG",
        "czechName": "Generování s vyhledáváním",
        "description": "Retrieval augmented generation",
        "practicalExample": "Chatbot over company docs",
        "difficulty": "🚀",
        "category": "architecture",
        "tags": ["llm"],
    },
]

NEW_TERM = {
    "term": "  Caching ",
    "czech_name": "Ukládání do mezipaměti",
    "description": "Keeping results for reuse",
    "practical_example": "Memoized search results",
    "difficulty": "intermediate",
    "category": "tools",
    "tags": ["speed", " speed ", ""],
}


def seed(client, admin_headers):
    payload = {"format": "json", "data": json.dumps({"categories": CATEGORIES, "terms": TERMS})}
    response = client.post("/api/admin/import", json=payload, headers=admin_headers)
    assert response.status_code == 200, response.text
    assert response.json()["success"] is True


def term_ids(response):
    return [t["id"] for t in response.json()["terms"]]


def test_root_and_health(client):
    assert client.get("/").json()["status"] == "ok"
    health = client.get("/api/health").json()
    assert health["database"] == "ok"
    assert health["terms"] == 0


def test_empty_glossary(client):
    response = client.get("/api/terms", params={"query": "api"})
    assert response.status_code == 200
    assert response.json()["total"] == 0


def test_search_and_filters(client, admin_headers):
    seed(client, admin_headers)

    assert term_ids(client.get("/api/terms")) == ["api", "rag"]
    assert term_ids(client.get("/api/terms", params={"query": "api"})) == ["api"]
    assert term_ids(client.get("/api/terms", params={"category": "architecture"})) == ["rag"]
    assert term_ids(client.get("/api/terms", params={"query": "api", "category": "architecture"})) == []
    assert term_ids(client.get("/api/terms", params={"difficulty": "intermediate"})) == ["rag"]
    assert term_ids(client.get("/api/terms", params={"query": "   "})) == ["api", "rag"]

    body = client.get("/api/terms", params={"difficulty": "beginner"}).json()
    assert body["filters"] == {"query": "", "category": "all", "difficulty": "🌱"}
    assert body["terms"][0]["difficulty_label"] == "Začátečník"
    assert body["terms"][0]["category_name"] == "Nástroje"


def test_term_detail_with_related(client, admin_headers):
    seed(client, admin_headers)

    detail = client.get("/api/terms/api").json()
    assert detail["term"]["czech_name"] == "Rozhraní"
    assert [t["id"] for t in detail["related"]] == ["rag"]

    by_label = client.get("/api/terms/RAG")
    assert by_label.status_code == 200
    assert by_label.json()["term"]["id"] == "rag"

    assert [t["id"] for t in client.get("/api/terms/api/related").json()] == ["rag"]
    assert client.get("/api/terms/nothing").status_code == 404
    assert client.get("/api/terms/nothing/related").status_code == 404


def test_categories_and_difficulties(client, admin_headers):
    seed(client, admin_headers)

    categories = {c["id"]: c for c in client.get("/api/categories").json()}
    assert categories["tools"]["term_count"] == 1
    assert categories["architecture"]["name"] == "Architektura"

    difficulties = client.get("/api/difficulties").json()
    assert [d["id"] for d in difficulties] == ["🌱", "🚀", "🔥"]
    assert difficulties[2]["name"] == "advanced"


def test_auth_flow(client, admin_headers, reader_headers):
    me = client.get("/api/auth/me", headers=admin_headers).json()
    assert me["email"] == ADMIN_EMAIL
    assert me["role"] == "admin"
    assert client.get("/api/auth/me", headers=reader_headers).json()["role"] == "reader"

    assert client.get("/api/auth/me").status_code == 401
    assert client.get("/api/auth/me", headers={"Authorization": "Bearer junk"}).status_code == 401
    assert client.get("/api/auth/me", headers={"Authorization": "Basic YWRtaW46YWRtaW4="}).status_code == 401

    bad_login = client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": "nope-nope"})
    assert bad_login.status_code == 401

    duplicate = client.post("/api/auth/register", json={"email": ADMIN_EMAIL, "password": "whatever-long"})
    assert duplicate.status_code == 400


def test_admin_endpoints_require_admin(client, reader_headers):
    assert client.post("/api/admin/terms", json=NEW_TERM).status_code == 401
    assert client.post("/api/admin/terms", json=NEW_TERM, headers=reader_headers).status_code == 403
    assert client.delete("/api/admin/terms/api", headers=reader_headers).status_code == 403
    assert client.get("/api/admin/users", headers=reader_headers).status_code == 403
    assert client.get("/api/admin/export", headers=reader_headers).status_code == 403


def test_create_update_delete_term(client, admin_headers):
    seed(client, admin_headers)

    created = client.post("/api/admin/terms", json=NEW_TERM, headers=admin_headers)
    assert created.status_code == 201, created.text
    body = created.json()
    assert body["id"] == "caching"
    assert body["term"] == "Caching"
    assert body["difficulty"] == "🚀"
    assert body["tags"] == ["speed"]

    # The public list reflects the write immediately
    assert "caching" in term_ids(client.get("/api/terms", params={"query": "caching"}))

    duplicate = client.post("/api/admin/terms", json=dict(NEW_TERM, id="caching"), headers=admin_headers)
    assert duplicate.status_code == 409

    updated = client.put("/api/admin/terms/caching", json={"difficulty": "🔥"}, headers=admin_headers)
    assert updated.status_code == 200
    assert updated.json()["difficulty"] == "🔥"
    assert updated.json()["description"] == NEW_TERM["description"]
    assert term_ids(client.get("/api/terms", params={"difficulty": "🔥"})) == ["caching"]

    assert client.put("/api/admin/terms/caching", json={}, headers=admin_headers).status_code == 400

    null_difficulty = client.put("/api/admin/terms/caching", json={"difficulty": None}, headers=admin_headers)
    assert null_difficulty.status_code == 422
    assert "difficulty" in null_difficulty.json()["detail"]

    cleared = client.put("/api/admin/terms/caching", json={"tags": None, "related_terms": None}, headers=admin_headers)
    assert cleared.status_code == 200
    assert cleared.json()["tags"] == []
    assert cleared.json()["related_terms"] == []
    assert cleared.json()["difficulty"] == "🔥"

    assert client.put("/api/admin/terms/nothing", json={"term": "X"}, headers=admin_headers).status_code == 404

    deleted = client.delete("/api/admin/terms/caching", headers=admin_headers)
    assert deleted.status_code == 200
    assert client.get("/api/terms/caching").status_code == 404
    assert client.delete("/api/admin/terms/caching", headers=admin_headers).status_code == 404


def test_term_validation(client, admin_headers):
    blank = client.post("/api/admin/terms", json=dict(NEW_TERM, czech_name="   "), headers=admin_headers)
    assert blank.status_code == 422
    assert "czech_name" in blank.json()["detail"]

    unknown = client.post("/api/admin/terms", json=dict(NEW_TERM, difficulty="legendary"), headers=admin_headers)
    assert unknown.status_code == 422
    assert "difficulty" in unknown.json()["detail"]

    missing = {k: v for k, v in NEW_TERM.items() if k != "description"}
    assert client.post("/api/admin/terms", json=missing, headers=admin_headers).status_code == 422


def test_category_management(client, admin_headers):
    seed(client, admin_headers)

    created = client.post(
        "/api/admin/categories",
        json={"id": "security", "name": "Bezpečnost", "icon": "shield"},
        headers=admin_headers,
    )
    assert created.status_code == 201
    assert created.json()["term_count"] == 0

    assert client.post("/api/admin/categories", json={"id": "security", "name": "X"}, headers=admin_headers).status_code == 409
    assert client.post("/api/admin/categories", json={"name": "No id"}, headers=admin_headers).status_code == 422

    renamed = client.put("/api/admin/categories/tools", json={"name": "Tools"}, headers=admin_headers)
    assert renamed.status_code == 200
    assert client.get("/api/terms/api").json()["term"]["category_name"] == "Tools"

    assert client.delete("/api/admin/categories/tools", headers=admin_headers).status_code == 200
    # Terms keep the raw key, which is then shown as the label
    assert client.get("/api/terms/api").json()["term"]["category_name"] == "tools"
    assert client.put("/api/admin/categories/tools", json={"name": "Tools"}, headers=admin_headers).status_code == 404


def test_user_role_management(client, admin_headers, reader_headers):
    users = client.get("/api/admin/users", headers=admin_headers).json()
    reader = next(u for u in users if u["email"] == "reader@example.com")

    invalid = client.put(f"/api/admin/users/{reader['id']}/role", json={"role": "owner"}, headers=admin_headers)
    assert invalid.status_code == 400

    promoted = client.put(f"/api/admin/users/{reader['id']}/role", json={"role": "admin"}, headers=admin_headers)
    assert promoted.json()["role"] == "admin"
    assert client.get("/api/admin/users", headers=reader_headers).status_code == 200

    missing = client.put("/api/admin/users/nobody/role", json={"role": "reader"}, headers=admin_headers)
    assert missing.status_code == 404


def test_import_errors_and_export(client, admin_headers):
    assert client.post("/api/admin/import", json={"format": "xml", "data": ""}, headers=admin_headers).status_code == 400

    broken = client.post("/api/admin/import", json={"format": "json", "data": "{not json"}, headers=admin_headers)
    assert broken.status_code == 200
    assert broken.json()["success"] is False

    null_terms = client.post("/api/admin/import", json={"format": "json", "data": "{\"terms\": null}"}, headers=admin_headers)
    assert null_terms.status_code == 200
    assert null_terms.json()["success"] is False

    partial = {"format": "json", "data": json.dumps(TERMS + [{"id": "broken"}])}
    result = client.post("/api/admin/import", json=partial, headers=admin_headers).json()
    assert result["success"] is True
    assert result["imported_count"] == 2
    assert result["skipped_count"] == 1

    exported = client.get("/api/admin/export", headers=admin_headers).json()
    assert {t["id"] for t in exported["terms"]} == {"api", "rag"}

    csv_export = client.get("/api/admin/export", params={"format": "csv"}, headers=admin_headers)
    assert csv_export.headers["content-type"].startswith("text/csv")
    assert csv_export.text.splitlines()[0].startswith("id,term,czech_name")

    csv_import = client.post("/api/admin/import", json={"format": "csv", "data": csv_export.text}, headers=admin_headers)
    assert csv_import.json()["imported_count"] == 2

    assert client.get("/api/admin/export", params={"format": "xml"}, headers=admin_headers).status_code == 400


def test_chat_endpoint(client, monkeypatch):
    import chat_relay as chat_module

    monkeypatch.setattr(chat_module.chat_relay, "webhook_url", None)
    assert client.post("/api/chat", json={"message": "Co je API?"}).status_code == 503
    assert client.post("/api/chat", json={"message": "  "}).status_code == 400

    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"output": "Rozhraní."}))
    monkeypatch.setattr(chat_module.chat_relay, "webhook_url", "https://chat.example.com/hook")
    monkeypatch.setattr(chat_module.chat_relay, "_transport", transport)

    reply = client.post("/api/chat", json={"message": "Co je API?", "session_id": "s-9"})
    assert reply.status_code == 200
    assert reply.json() == {"reply": "Rozhraní.", "session_id": "s-9"}
