"""
Search/Filter Engine

Derives the visible term list from the loaded collection and the current
filter state (free-text query, category, difficulty). All three filters are
ANDed. The text query decides membership only: results always keep the
order of the collection.
"""
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Sequence, Tuple

from loguru import logger

from glossary.models import Term
from .index import FuzzyIndex, TERM_KEYS

ALL = "all"

DEFAULT_THRESHOLD = 0.3
DEFAULT_DISTANCE = 100


@dataclass(frozen=True)
class FilterState:
    """Serializable filter state: (query, category, difficulty)"""
    query: str = ""
    category: str = ALL
    difficulty: str = ALL

    @property
    def normalized_query(self) -> str:
        return self.query.strip()

    @property
    def is_active(self) -> bool:
        return bool(self.normalized_query) or self.category != ALL or self.difficulty != ALL

    def with_query(self, query: str) -> "FilterState":
        return replace(self, query=query)

    def with_category(self, category: str) -> "FilterState":
        return replace(self, category=category)

    def with_difficulty(self, difficulty: str) -> "FilterState":
        return replace(self, difficulty=difficulty)

    def to_dict(self) -> Dict[str, str]:
        return {
            "query": self.query,
            "category": self.category,
            "difficulty": self.difficulty,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "FilterState":
        data = data or {}
        return cls(
            query=data.get("query") or "",
            category=data.get("category") or ALL,
            difficulty=data.get("difficulty") or ALL,
        )


def build_index(
    terms: Sequence[Term],
    threshold: float = DEFAULT_THRESHOLD,
    distance: int = DEFAULT_DISTANCE,
) -> FuzzyIndex:
    """Build the fuzzy index used for free-text queries"""
    return FuzzyIndex(terms, keys=TERM_KEYS, threshold=threshold, distance=distance)


def filter_terms(
    terms: Sequence[Term],
    state: FilterState,
    index: Optional[FuzzyIndex] = None,
) -> List[Term]:
    """
    Apply the filter state to a term collection.

    Args:
        terms: Full loaded collection
        state: Filters to apply
        index: Fuzzy index over the same collection (built on demand if omitted)

    Returns:
        Matching terms in collection order
    """
    results = list(terms)

    if state.category != ALL:
        results = [t for t in results if t.category == state.category]

    if state.difficulty != ALL:
        results = [t for t in results if t.difficulty == state.difficulty]

    if state.normalized_query:
        if index is None:
            index = build_index(terms)
        # Search the whole collection, then intersect; relevance order is dropped
        matched_ids = {hit.item.id for hit in index.search(state.query)}
        results = [t for t in results if t.id in matched_ids]

    return results


def resolve_related_terms(term: Term, terms: Sequence[Term]) -> List[Term]:
    """Resolve a term's related ids to terms, dropping ids that do not exist"""
    resolved = []
    for related_id in term.related_terms:
        for candidate in terms:
            if candidate.id == related_id:
                resolved.append(candidate)
                break
    return resolved


class SearchEngine:
    """
    Stateful wrapper around filter_terms.

    Holds the collection and the three filters; the fuzzy index is rebuilt
    when the collection object changes and the filtered list is memoized
    against (collection, query, category, difficulty).
    """

    def __init__(self, terms: Optional[Sequence[Term]] = None, threshold: float = DEFAULT_THRESHOLD):
        self.threshold = threshold
        self._terms: Sequence[Term] = terms if terms is not None else []
        self._state = FilterState()
        self._index: Optional[FuzzyIndex] = None
        self._cache_key: Optional[Tuple[int, FilterState]] = None
        self._cache: List[Term] = []

    # ---- collection ----

    @property
    def terms(self) -> Sequence[Term]:
        return self._terms

    def set_terms(self, terms: Sequence[Term]):
        """Replace the collection wholesale (a fresh load)"""
        if terms is self._terms:
            return
        self._terms = terms
        self._index = None
        self._cache_key = None
        logger.debug(f"Search engine received {len(terms)} terms")

    @property
    def index(self) -> FuzzyIndex:
        if self._index is None or self._index.items is not self._terms:
            self._index = build_index(self._terms, self.threshold)
        return self._index

    # ---- filters ----

    @property
    def state(self) -> FilterState:
        return self._state

    @property
    def query(self) -> str:
        return self._state.query

    def set_query(self, query: str):
        self._state = self._state.with_query(query)

    @property
    def selected_category(self) -> str:
        return self._state.category

    def set_selected_category(self, category: str):
        self._state = self._state.with_category(category)

    @property
    def selected_difficulty(self) -> str:
        return self._state.difficulty

    def set_selected_difficulty(self, difficulty: str):
        self._state = self._state.with_difficulty(difficulty)

    def reset_filters(self):
        self._state = FilterState()

    # ---- output ----

    @property
    def filtered_terms(self) -> List[Term]:
        key = (id(self._terms), self._state)
        if self._cache_key != key:
            index = self.index if self._state.normalized_query else None
            self._cache = filter_terms(self._terms, self._state, index)
            self._cache_key = key
        return list(self._cache)

    def related_terms(self, term: Term) -> List[Term]:
        return resolve_related_terms(term, self._terms)
