"""
Term Search

Fuzzy full-text matching plus category/difficulty filtering over the
loaded glossary.
"""
from .fuzzy import FuzzyPattern, FuzzyMatch
from .index import FuzzyIndex, IndexKey, SearchHit, TERM_KEYS
from .engine import ALL, FilterState, SearchEngine, build_index, filter_terms, resolve_related_terms

__all__ = [
    "ALL",
    "FilterState",
    "FuzzyIndex",
    "FuzzyMatch",
    "FuzzyPattern",
    "IndexKey",
    "SearchEngine",
    "SearchHit",
    "TERM_KEYS",
    "build_index",
    "filter_terms",
    "resolve_related_terms",
]
