"""
Weighted Fuzzy Index

Indexes a list of records over several weighted fields and runs fuzzy
queries against them. A record matches when any of its field values
matches; the relevance score combines the per-field scores by weight and
field length.
"""
import math
import sys
from dataclasses import dataclass
from typing import Any, Generic, List, Optional, Sequence, Tuple, TypeVar

from .fuzzy import FuzzyPattern

T = TypeVar("T")


@dataclass(frozen=True)
class IndexKey:
    """A searchable field and its relative weight"""
    name: str
    weight: float = 1.0


# Field weights for glossary terms
TERM_KEYS: Tuple[IndexKey, ...] = (
    IndexKey("term", 0.3),
    IndexKey("czech_name", 0.3),
    IndexKey("description", 0.2),
    IndexKey("tags", 0.1),
    IndexKey("practical_example", 0.1),
)


@dataclass
class SearchHit(Generic[T]):
    """A matched record with its position in the indexed list and relevance score"""
    item: T
    index: int
    score: float


def field_norm(value: str, mantissa: int = 3) -> float:
    """Length normalization: shorter fields weigh more"""
    num_tokens = len([token for token in value.split(" ") if token])
    factor = 10 ** mantissa
    return math.floor((1 / math.sqrt(num_tokens)) * factor + 0.5) / factor


def _is_blank(value: str) -> bool:
    return not value.strip()


class FuzzyIndex(Generic[T]):
    """
    Fuzzy search index over a fixed list of records.

    The record list is captured at construction time; build a new index
    when the collection changes.
    """

    def __init__(
        self,
        items: Sequence[T],
        keys: Sequence[IndexKey] = TERM_KEYS,
        threshold: float = 0.3,
        distance: int = 100,
    ):
        self.items = items
        self.threshold = threshold
        self.distance = distance

        total_weight = sum(key.weight for key in keys) or 1.0
        self.keys = [IndexKey(key.name, key.weight / total_weight) for key in keys]

        # Per record, per key: list of (value, norm)
        self._records: List[List[List[Tuple[str, float]]]] = [
            [self._extract(item, key.name) for key in self.keys] for item in items
        ]

    @staticmethod
    def _extract(item: Any, name: str) -> List[Tuple[str, float]]:
        value = item.get(name) if isinstance(item, dict) else getattr(item, name, None)
        if value is None:
            return []
        values = value if isinstance(value, (list, tuple)) else [value]
        return [(v, field_norm(v)) for v in values if isinstance(v, str) and not _is_blank(v)]

    def __len__(self) -> int:
        return len(self.items)

    def search(self, query: str, limit: Optional[int] = None) -> List[SearchHit[T]]:
        """
        Return matching records ordered by relevance (best first).

        Ties keep the original record order.
        """
        pattern = FuzzyPattern(query, threshold=self.threshold, distance=self.distance)
        hits: List[SearchHit[T]] = []

        for position, fields in enumerate(self._records):
            total_score = 1.0
            matched = False
            for key, values in zip(self.keys, fields):
                for value, norm in values:
                    result = pattern.search_in(value)
                    if not result.is_match:
                        continue
                    matched = True
                    score = sys.float_info.epsilon if result.score == 0 and key.weight else result.score
                    total_score *= math.pow(score, (key.weight or 1) * norm)
            if matched:
                hits.append(SearchHit(item=self.items[position], index=position, score=total_score))

        hits.sort(key=lambda hit: (hit.score, hit.index))
        if limit is not None:
            hits = hits[:limit]
        return hits
