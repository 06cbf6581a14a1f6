"""
Glossary Domain

Terms, categories and the conversion of raw records into them.
"""
from .models import (
    Category,
    CategoryKey,
    Difficulty,
    GlossaryError,
    GlossaryValidationError,
    Term,
    category_label,
    difficulty_from_storage,
    difficulty_to_storage,
    normalize_difficulty,
)

__all__ = [
    "Category",
    "CategoryKey",
    "Difficulty",
    "GlossaryError",
    "GlossaryValidationError",
    "Term",
    "category_label",
    "difficulty_from_storage",
    "difficulty_to_storage",
    "normalize_difficulty",
]
