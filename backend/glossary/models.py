"""
Glossary Data Structures

Defines terms, categories and the parsing step that turns raw records
(database rows, imported documents, API payloads) into them.
"""
from enum import Enum
from typing import List, Optional, Dict, Any, Iterable
from dataclasses import dataclass, field


class GlossaryError(Exception):
    """Base error for glossary operations"""


class GlossaryValidationError(GlossaryError):
    """Raised when a raw record cannot be turned into a glossary object"""

    def __init__(self, message: str, field_name: Optional[str] = None):
        super().__init__(message)
        self.field_name = field_name


class Difficulty(str, Enum):
    """Learning-curve tier of a term"""
    BEGINNER = "🌱"
    INTERMEDIATE = "🚀"
    ADVANCED = "🔥"

    @property
    def word(self) -> str:
        return _DIFFICULTY_WORDS[self]

    @property
    def label(self) -> str:
        return _DIFFICULTY_LABELS[self]


_DIFFICULTY_WORDS = {
    Difficulty.BEGINNER: "beginner",
    Difficulty.INTERMEDIATE: "intermediate",
    Difficulty.ADVANCED: "advanced",
}

_DIFFICULTY_LABELS = {
    Difficulty.BEGINNER: "Začátečník",
    Difficulty.INTERMEDIATE: "Pokročilý",
    Difficulty.ADVANCED: "Expert",
}

_WORD_TO_DIFFICULTY = {word: d for d, word in _DIFFICULTY_WORDS.items()}


class CategoryKey(str, Enum):
    """Canonical category keys"""
    VIBE_CODING = "vibe-coding"
    ARCHITECTURE = "architecture"
    SECURITY = "security"
    PERFORMANCE = "performance"
    TOOLS = "tools"
    DATA = "data"


def difficulty_from_storage(value: Optional[str]) -> str:
    """Map a stored difficulty word to its emoji; unknown words fall back to beginner"""
    if value in _WORD_TO_DIFFICULTY:
        return _WORD_TO_DIFFICULTY[value].value
    if value in {d.value for d in Difficulty}:
        return value
    return Difficulty.BEGINNER.value


def difficulty_to_storage(value: str) -> str:
    """Map an emoji (or word) difficulty to its storage word"""
    if value in _WORD_TO_DIFFICULTY:
        return value
    try:
        return Difficulty(value).word
    except ValueError:
        return Difficulty.ADVANCED.word


def normalize_difficulty(value: Optional[str]) -> Optional[str]:
    """
    Accept a difficulty as emoji or word and return the emoji.

    Unknown values are returned unchanged so that they behave as an
    ordinary (non-matching) filter value.
    """
    if value is None:
        return None
    stripped = value.strip()
    word = stripped.lower()
    if word in _WORD_TO_DIFFICULTY:
        return _WORD_TO_DIFFICULTY[word].value
    return stripped


def _pick(record: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in record and record[key] is not None:
            return record[key]
    return default


def _require_text(record: Dict[str, Any], name: str, *keys: str) -> str:
    value = _pick(record, *keys)
    if value is None:
        raise GlossaryValidationError(f"Missing required field: {name}", name)
    if not isinstance(value, str):
        raise GlossaryValidationError(f"Field {name} must be a string", name)
    return value


def _optional_text(record: Dict[str, Any], name: str, *keys: str) -> Optional[str]:
    value = _pick(record, *keys)
    if value is None:
        return None
    if not isinstance(value, str):
        raise GlossaryValidationError(f"Field {name} must be a string", name)
    return value


def _string_list(record: Dict[str, Any], name: str, *keys: str) -> List[str]:
    value = _pick(record, *keys, default=[])
    if not isinstance(value, (list, tuple)):
        raise GlossaryValidationError(f"Field {name} must be a list", name)
    for item in value:
        if not isinstance(item, str):
            raise GlossaryValidationError(f"Field {name} must contain only strings", name)
    return list(value)


@dataclass
class Term:
    """A single glossary entry with bilingual labels"""
    id: str
    term: str  # English term
    czech_name: str  # Czech label
    description: str
    practical_example: str
    difficulty: str
    category: str
    related_terms: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    ai_tip: Optional[str] = None  # How to talk about it with an AI assistant
    learn_more: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "term": self.term,
            "czech_name": self.czech_name,
            "description": self.description,
            "practical_example": self.practical_example,
            "related_terms": list(self.related_terms),
            "difficulty": self.difficulty,
            "category": self.category,
            "ai_tip": self.ai_tip,
            "tags": list(self.tags),
            "learn_more": self.learn_more,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Term":
        """
        Parse a raw record into a Term.

        Accepts snake_case (database) and camelCase (document) keys, and
        difficulty as either emoji or storage word.

        Raises:
            GlossaryValidationError: on missing or mistyped fields
        """
        if not isinstance(record, dict):
            raise GlossaryValidationError("Term record must be an object")

        raw_difficulty = _pick(record, "difficulty")
        if raw_difficulty is not None and not isinstance(raw_difficulty, str):
            raise GlossaryValidationError("Field difficulty must be a string", "difficulty")

        return cls(
            id=_require_text(record, "id", "id"),
            term=_require_text(record, "term", "term"),
            czech_name=_require_text(record, "czech_name", "czech_name", "czechName"),
            description=_require_text(record, "description", "description"),
            practical_example=_require_text(
                record, "practical_example", "practical_example", "practicalExample"
            ),
            difficulty=difficulty_from_storage(raw_difficulty),
            category=_require_text(record, "category", "category"),
            related_terms=_string_list(record, "related_terms", "related_terms", "relatedTerms"),
            tags=_string_list(record, "tags", "tags"),
            ai_tip=_optional_text(record, "ai_tip", "ai_tip", "aiTip"),
            learn_more=_optional_text(record, "learn_more", "learn_more", "learnMore"),
        )


@dataclass
class Category:
    """A closed grouping label for terms, with display metadata"""
    id: str
    name: str
    description: str = ""
    icon: str = ""
    color: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "icon": self.icon,
            "color": self.color,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Category":
        if not isinstance(record, dict):
            raise GlossaryValidationError("Category record must be an object")
        return cls(
            id=_require_text(record, "id", "id"),
            name=_require_text(record, "name", "name"),
            description=_optional_text(record, "description", "description") or "",
            icon=_optional_text(record, "icon", "icon") or "",
            color=_optional_text(record, "color", "color") or "",
        )


def category_label(category_id: str, categories: Iterable[Category]) -> str:
    """Display name for a category id, falling back to the raw id"""
    for category in categories:
        if category.id == category_id:
            return category.name
    return category_id
