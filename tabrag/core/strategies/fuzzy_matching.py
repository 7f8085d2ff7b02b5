"""Typo-tolerant lexical matching over scanned rows."""

import logging
from dataclasses import dataclass
from difflib import SequenceMatcher

from ..models.document import StoredRow, metadata_text

logger = logging.getLogger(__name__)

# Stand-in for a perfect field score so the weighted product stays > 0.
EPSILON = 2.220446049250313e-16


@dataclass
class FuzzyMatch:
    """Row matched by the fuzzy branch; ``score`` 0 = exact, 1 = no match."""
    row: StoredRow
    score: float


def searchable_text(row: StoredRow) -> str:
    """Row text plus every string-typed metadata value."""
    parts = [row.text]
    parts.extend(v for v in row.metadata.values() if isinstance(v, str))
    return " ".join(p for p in parts if p)


class FuzzyMatcher:
    """Weighted fuzzy search over ``text``, searchable text and a name field.

    Each field is scored by the best similarity between the query and a
    window of the field starting at a word boundary. Fields scoring above
    ``threshold`` do not count; matching fields combine as a weighted
    product, so agreement across fields lowers the score.
    """

    FIELD_WEIGHTS = {"text": 0.4, "search_text": 0.4, "name": 0.2}

    def __init__(
        self,
        name_field: str = "nama_produk",
        threshold: float = 0.4,
        min_match_length: int = 2,
    ):
        """Initialize matcher.

        Args:
            name_field: Metadata key holding the item name.
            threshold: Max field score (0..1) that still counts as a match.
            min_match_length: Shorter queries and windows are ignored.
        """
        self._name_field = name_field
        self._threshold = threshold
        self._min_length = min_match_length

    def search(self, query: str, rows: list[StoredRow], limit: int) -> list[FuzzyMatch]:
        """Return up to ``limit`` matches, best (lowest score) first."""
        pattern = " ".join(query.lower().split())
        if len(pattern) < self._min_length:
            return []

        matcher = SequenceMatcher(autojunk=False)
        matcher.set_seq2(pattern)

        matches = []
        for row in rows:
            score = self._score_row(matcher, pattern, row)
            if score is not None:
                matches.append(FuzzyMatch(row=row, score=score))

        matches.sort(key=lambda m: m.score)
        logger.debug(f"Fuzzy: {len(matches)}/{len(rows)} rows matched '{query[:50]}'")
        return matches[:limit]

    def _score_row(self, matcher: SequenceMatcher, pattern: str, row: StoredRow) -> float | None:
        fields = {
            "text": row.text,
            "search_text": searchable_text(row),
            "name": metadata_text(row.metadata, self._name_field),
        }

        total = 1.0
        matched = False
        for name, weight in self.FIELD_WEIGHTS.items():
            score = self._field_score(matcher, pattern, fields[name].lower())
            if score > self._threshold:
                continue
            matched = True
            total *= max(score, EPSILON) ** weight

        return total if matched else None

    def _field_score(self, matcher: SequenceMatcher, pattern: str, value: str) -> float:
        if not value:
            return 1.0
        if pattern in value:
            return 0.0

        size = len(pattern)
        lengths = sorted({max(size - 1, self._min_length), size, size + 1})
        starts = [0] + [i + 1 for i, ch in enumerate(value) if ch.isspace()]

        best = 0.0
        for start in starts:
            for length in lengths:
                window = value[start : start + length]
                if len(window) < self._min_length:
                    continue
                matcher.set_seq1(window)
                if matcher.quick_ratio() <= best:
                    continue
                best = max(best, matcher.ratio())
        return 1.0 - best
