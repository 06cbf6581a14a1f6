"""
Glossary Store

Holds the currently loaded glossary snapshot (terms, categories and the
fuzzy index) and answers search queries against it.

Provides:
- Wholesale reload from the database
- Latest-load-wins sequencing for overlapping reloads
- Memoized search results per snapshot and filter state
"""
import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Tuple
from loguru import logger

from config import settings
from glossary.models import Term, Category, GlossaryValidationError, category_label
from search import FilterState, FuzzyIndex, build_index, filter_terms, resolve_related_terms

# Fetches the full collection: (term records, category records)
Fetcher = Callable[[], Awaitable[Tuple[List[Term], List[Category]]]]

MAX_CACHED_QUERIES = 256


@dataclass
class GlossarySnapshot:
    """An immutable view of one load cycle"""
    terms: Tuple[Term, ...] = ()
    categories: Tuple[Category, ...] = ()
    index: Optional[FuzzyIndex] = None
    version: int = 0
    loaded_at: Optional[datetime] = None
    by_id: Dict[str, Term] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        terms: Sequence[Term],
        categories: Sequence[Category],
        version: int,
        threshold: float,
        distance: int,
    ) -> "GlossarySnapshot":
        terms = tuple(terms)
        return cls(
            terms=terms,
            categories=tuple(categories),
            index=build_index(terms, threshold=threshold, distance=distance),
            version=version,
            loaded_at=datetime.now(),
            by_id={t.id: t for t in terms},
        )


async def fetch_from_database() -> Tuple[List[Term], List[Category]]:
    """Read every term and category; rows that fail validation are skipped"""
    from database import get_db, TermRepository, CategoryRepository

    terms: List[Term] = []
    categories: List[Category] = []

    async with get_db() as session:
        term_rows = await TermRepository(session).get_all()
        category_rows = await CategoryRepository(session).get_all()

    for row in term_rows:
        try:
            terms.append(row.to_term())
        except GlossaryValidationError as e:
            logger.warning(f"Skipping invalid term row {row.id}: {e}")

    for row in category_rows:
        try:
            categories.append(row.to_category())
        except GlossaryValidationError as e:
            logger.warning(f"Skipping invalid category row {row.id}: {e}")

    return terms, categories


class GlossaryStore:
    """
    Current glossary snapshot plus search.

    Every reload is tagged with a sequence number; a load that finishes
    after a newer one was issued is discarded.
    """

    def __init__(
        self,
        fetcher: Optional[Fetcher] = None,
        threshold: Optional[float] = None,
        distance: Optional[int] = None,
    ):
        self._fetcher = fetcher or fetch_from_database
        self.threshold = settings.SEARCH_THRESHOLD if threshold is None else threshold
        self.distance = settings.SEARCH_DISTANCE if distance is None else distance

        self._snapshot = GlossarySnapshot()
        self._issued = 0
        self._applied = 0
        self._cache: Dict[Tuple[int, FilterState], List[Term]] = {}
        self._background: set = set()
        self.last_error: Optional[str] = None

    @property
    def snapshot(self) -> GlossarySnapshot:
        return self._snapshot

    @property
    def terms(self) -> Tuple[Term, ...]:
        return self._snapshot.terms

    @property
    def categories(self) -> Tuple[Category, ...]:
        return self._snapshot.categories

    @property
    def version(self) -> int:
        return self._snapshot.version

    @property
    def is_loaded(self) -> bool:
        return self._applied > 0

    def set_fetcher(self, fetcher: Fetcher):
        """Replace the collection source"""
        self._fetcher = fetcher

    async def reload(self) -> bool:
        """
        Fetch the full collection and replace the snapshot.

        Returns:
            True if this load was applied, False if it failed or was superseded
        """
        self._issued += 1
        sequence = self._issued

        try:
            terms, categories = await self._fetcher()
        except Exception as e:
            self.last_error = str(e)
            logger.error(f"Glossary load #{sequence} failed: {e}")
            return False

        if sequence != self._issued:
            logger.warning(
                f"Discarding stale glossary load #{sequence} (latest issued #{self._issued})"
            )
            return False

        self._snapshot = GlossarySnapshot.build(
            terms, categories, version=sequence, threshold=self.threshold, distance=self.distance
        )
        self._applied = sequence
        self._cache.clear()
        self.last_error = None
        logger.info(
            f"Loaded glossary #{sequence}: {len(self._snapshot.terms)} terms, "
            f"{len(self._snapshot.categories)} categories"
        )
        return True

    def schedule_reload(self) -> asyncio.Task:
        """Fire-and-forget reload on the running loop"""
        task = asyncio.get_running_loop().create_task(self.reload())
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    def search(self, state: FilterState) -> List[Term]:
        """Filtered terms for the current snapshot"""
        snapshot = self._snapshot
        key = (snapshot.version, state)
        cached = self._cache.get(key)
        if cached is None:
            cached = filter_terms(snapshot.terms, state, snapshot.index)
            if len(self._cache) >= MAX_CACHED_QUERIES:
                self._cache.clear()
            self._cache[key] = cached
            logger.debug(f"Search {state.to_dict()} -> {len(cached)} terms")
        return list(cached)

    def get_term(self, term_id: str) -> Optional[Term]:
        """Term by id, falling back to an exact label match"""
        term = self._snapshot.by_id.get(term_id)
        if term is not None:
            return term
        for candidate in self._snapshot.terms:
            if candidate.term == term_id:
                return candidate
        return None

    def related(self, term: Term) -> List[Term]:
        return resolve_related_terms(term, self._snapshot.terms)

    def category_label(self, category_id: str) -> str:
        return category_label(category_id, self._snapshot.categories)


# Global instance
glossary_store = GlossaryStore()
