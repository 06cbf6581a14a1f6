from __future__ import annotations

import csv
import json
from io import StringIO
from pathlib import Path

import pytest

from glossary.models import CategoryKey, GlossaryValidationError
from glossary.transfer import CSV_COLUMNS, export_csv, export_json, import_csv, import_json, parse_csv

SEED_DIR = Path(__file__).resolve().parents[2] / "data"

CSV_CONTENT = (
    "id,term,czech_name,description,practical_example,difficulty,category,tags,related_terms,ai_tip,learn_more\n"
    "api,API,Rozhraní,Interface,Weather API,beginner,tools,web|http,rest|json,,\n"
    "rag,RAG,Vyhledávání,Retrieval,Chatbot,🚀,architecture,llm,,Ask for sources,https://example.com\n"
)


def test_parse_csv_splits_lists_and_blanks():
    records = parse_csv(CSV_CONTENT)
    assert [r["id"] for r in records] == ["api", "rag"]
    assert records[0]["tags"] == ["web", "http"]
    assert records[0]["related_terms"] == ["rest", "json"]
    assert records[0]["ai_tip"] is None
    assert records[1]["related_terms"] == []
    assert records[1]["learn_more"] == "https://example.com"


def test_parse_csv_skips_header_after_blank_lines():
    records = parse_csv("\n\n" + CSV_CONTENT)
    assert [r["id"] for r in records] == ["api", "rag"]


def test_parse_csv_without_header_pads_short_rows():
    records = parse_csv("json,JSON,JSON,Format,Config file,,data\n\n")
    assert len(records) == 1
    assert records[0]["difficulty"] is None
    assert records[0]["tags"] == []


def test_import_seed_files(run_db):
    data = {
        "categories": json.loads((SEED_DIR / "categories.json").read_text(encoding="utf-8")),
        "terms": json.loads((SEED_DIR / "terms.json").read_text(encoding="utf-8")),
    }

    async def scenario(session):
        return await import_json(session, data)

    result = run_db(scenario)
    assert {c["id"] for c in data["categories"]} == {key.value for key in CategoryKey}
    assert {t["category"] for t in data["terms"]} <= {key.value for key in CategoryKey}
    assert result.skipped == 0
    assert result.categories == len(data["categories"])
    assert result.terms == len(data["terms"])


def test_import_json_skips_invalid_rows(run_db):
    data = [
        {"id": "api", "term": "API", "czechName": "Rozhraní", "description": "Interface",
         "practicalExample": "Weather API", "difficulty": "🌱", "category": "tools"},
        {"id": "broken", "term": "Broken"},
        "not an object",
    ]

    async def scenario(session):
        return await import_json(session, data)

    result = run_db(scenario)
    assert result.terms == 1
    assert result.skipped == 2
    assert result.imported_count == 1
    assert result.errors[0].startswith("term #2")


def test_import_json_rejects_other_shapes(run_db):
    async def scenario(session):
        await import_json(session, "terms")

    with pytest.raises(GlossaryValidationError):
        run_db(scenario)


@pytest.mark.parametrize("data", [{"terms": None}, {"terms": 5}, {"categories": "tools"}])
def test_import_json_rejects_non_list_sections(run_db, data):
    async def scenario(session):
        await import_json(session, data)

    with pytest.raises(GlossaryValidationError) as exc_info:
        run_db(scenario)
    assert exc_info.value.field_name in ("terms", "categories")


def test_import_is_an_upsert(run_db):
    async def scenario(session):
        await import_csv(session, CSV_CONTENT)
        changed = CSV_CONTENT.replace("Interface", "Application interface")
        second = await import_csv(session, changed)
        exported = await export_json(session)
        return second, exported

    second, exported = run_db(scenario)
    assert second.terms == 2
    assert len(exported["terms"]) == 2
    api = next(t for t in exported["terms"] if t["id"] == "api")
    assert api["description"] == "Application interface"
    assert api["difficulty"] == "🌱"


def test_export_csv_uses_storage_words(run_db):
    async def scenario(session):
        await import_csv(session, CSV_CONTENT)
        return await export_csv(session)

    rows = list(csv.reader(StringIO(run_db(scenario))))
    assert rows[0] == CSV_COLUMNS
    by_id = {row[0]: row for row in rows[1:]}
    assert by_id["rag"][5] == "intermediate"
    assert by_id["api"][7] == "web|http"
    assert by_id["api"][9] == ""
