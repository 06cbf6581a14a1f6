"""
Glossary Import / Export

Moves terms and categories between the database and JSON or CSV
documents. Imports upsert by id; rows that fail validation are skipped.
"""
import csv
from dataclasses import dataclass, field
from io import StringIO
from typing import Any, Dict, List, Union

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from database.repository import TermRepository, CategoryRepository
from .models import Term, Category, GlossaryValidationError, difficulty_to_storage

CSV_COLUMNS = [
    "id",
    "term",
    "czech_name",
    "description",
    "practical_example",
    "difficulty",
    "category",
    "tags",
    "related_terms",
    "ai_tip",
    "learn_more",
]

LIST_SEPARATOR = "|"


@dataclass
class ImportResult:
    """Outcome of an import"""
    terms: int = 0
    categories: int = 0
    skipped: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def imported_count(self) -> int:
        return self.terms + self.categories

    def to_dict(self) -> Dict[str, Any]:
        return {
            "terms": self.terms,
            "categories": self.categories,
            "skipped": self.skipped,
            "errors": self.errors,
        }


def _term_fields(term: Term) -> Dict[str, Any]:
    return {
        "term": term.term,
        "czech_name": term.czech_name,
        "description": term.description,
        "practical_example": term.practical_example,
        "related_terms": term.related_terms,
        "difficulty": term.difficulty,
        "category": term.category,
        "ai_tip": term.ai_tip,
        "tags": term.tags,
        "learn_more": term.learn_more,
    }


async def _import_term_records(session: AsyncSession, records: List[Any], result: ImportResult):
    repo = TermRepository(session)
    for position, record in enumerate(records):
        try:
            term = Term.from_record(record)
        except GlossaryValidationError as e:
            result.skipped += 1
            result.errors.append(f"term #{position + 1}: {e}")
            logger.warning(f"Skipping term #{position + 1}: {e}")
            continue
        await repo.upsert(term.id, **_term_fields(term))
        result.terms += 1


async def _import_category_records(session: AsyncSession, records: List[Any], result: ImportResult):
    repo = CategoryRepository(session)
    for position, record in enumerate(records):
        try:
            category = Category.from_record(record)
        except GlossaryValidationError as e:
            result.skipped += 1
            result.errors.append(f"category #{position + 1}: {e}")
            logger.warning(f"Skipping category #{position + 1}: {e}")
            continue
        await repo.upsert(
            category.id,
            name=category.name,
            description=category.description,
            icon=category.icon,
            color=category.color,
        )
        result.categories += 1


async def import_json(session: AsyncSession, data: Union[Dict[str, Any], List[Any]]) -> ImportResult:
    """
    Import from JSON data.

    Accepts a bare list of terms, or an object with "terms" and/or
    "categories" lists. Categories are written first.
    """
    result = ImportResult()

    if isinstance(data, list):
        term_records, category_records = data, []
    elif isinstance(data, dict):
        term_records = data.get("terms", [])
        category_records = data.get("categories", [])
    else:
        raise GlossaryValidationError("Import data must be a list or an object")

    if not isinstance(term_records, list):
        raise GlossaryValidationError("Field terms must be a list", "terms")
    if not isinstance(category_records, list):
        raise GlossaryValidationError("Field categories must be a list", "categories")

    await _import_category_records(session, category_records, result)
    await _import_term_records(session, term_records, result)

    logger.info(
        f"Imported {result.categories} categories and {result.terms} terms "
        f"({result.skipped} skipped)"
    )
    return result


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(LIST_SEPARATOR) if item.strip()]


def parse_csv(csv_content: str) -> List[Dict[str, Any]]:
    """
    Parse CSV content into term records.

    Columns follow CSV_COLUMNS; a header row (the first non-empty row,
    starting with "id") is detected and skipped.
    """
    records = []
    reader = csv.reader(StringIO(csv_content))
    header_checked = False

    for row in reader:
        if not row or not any(cell.strip() for cell in row):
            continue
        if not header_checked:
            header_checked = True
            if row[0].strip().lower() == "id":
                continue

        padded = row + [""] * (len(CSV_COLUMNS) - len(row))
        record = dict(zip(CSV_COLUMNS, padded))
        record["tags"] = _split_list(record["tags"])
        record["related_terms"] = _split_list(record["related_terms"])
        for optional in ("ai_tip", "learn_more", "difficulty"):
            if not record[optional]:
                record[optional] = None
        records.append(record)

    return records


async def import_csv(session: AsyncSession, csv_content: str) -> ImportResult:
    """Import terms from CSV content"""
    result = ImportResult()
    await _import_term_records(session, parse_csv(csv_content), result)
    logger.info(f"Imported {result.terms} terms from CSV ({result.skipped} skipped)")
    return result


async def export_json(session: AsyncSession) -> Dict[str, Any]:
    """Export categories and terms as JSON-ready data"""
    terms = await TermRepository(session).get_all()
    categories = await CategoryRepository(session).get_all()
    return {
        "categories": [c.to_category().to_dict() for c in categories],
        "terms": [t.to_term().to_dict() for t in terms],
    }


async def export_csv(session: AsyncSession) -> str:
    """Export terms as CSV (difficulty as storage word)"""
    terms = await TermRepository(session).get_all()
    output = StringIO()
    writer = csv.writer(output)

    writer.writerow(CSV_COLUMNS)
    for row in terms:
        term = row.to_term()
        writer.writerow([
            term.id,
            term.term,
            term.czech_name,
            term.description,
            term.practical_example,
            difficulty_to_storage(term.difficulty),
            term.category,
            LIST_SEPARATOR.join(term.tags),
            LIST_SEPARATOR.join(term.related_terms),
            term.ai_tip or "",
            term.learn_more or "",
        ])

    return output.getvalue()
