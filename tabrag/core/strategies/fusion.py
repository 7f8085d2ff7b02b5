"""Score fusion for the vector and fuzzy retrieval branches."""

import logging
from dataclasses import dataclass, replace

from ..models.document import SearchResult
from .fuzzy_matching import FuzzyMatch

logger = logging.getLogger(__name__)

VECTOR_WEIGHT = 0.6
FUZZY_WEIGHT = 0.4
POSITION_WEIGHT = 0.1
HYBRID_BONUS = 0.1


def position_bonus(rank: int, window: int) -> float:
    """Bonus decaying linearly from 0.1 at rank 0 to 0 at ``window``."""
    return POSITION_WEIGHT * (1 - rank / window)


def vector_contribution(distance: float, rank: int, window: int) -> float:
    return (1 - distance) * VECTOR_WEIGHT + position_bonus(rank, window)


def fuzzy_contribution(score: float, rank: int, window: int) -> float:
    return (1 - score) * FUZZY_WEIGHT + position_bonus(rank, window)


@dataclass
class _Candidate:
    result: SearchResult
    fused: float
    order: int


def fuse_results(
    vector_results: list[SearchResult],
    fuzzy_matches: list[FuzzyMatch],
    limit: int,
) -> list[SearchResult]:
    """Merge both branches into one ranked list of ``limit`` results.

    Each branch is expected to hold at most ``2 * limit`` items in rank
    order. An id seen in both branches sums its contributions plus
    ``HYBRID_BONUS``. Equal fused scores keep first-seen order: vector
    rank, then fuzzy rank. Returned scores are ``1 - fused`` so lower
    stays better.
    """
    if limit <= 0:
        return []

    window = 2 * limit
    combined: dict[str, _Candidate] = {}

    for rank, result in enumerate(vector_results):
        if result.id in combined:
            continue
        combined[result.id] = _Candidate(
            result=replace(result, source="vector"),
            fused=vector_contribution(result.score, rank, window),
            order=len(combined),
        )

    for rank, match in enumerate(fuzzy_matches):
        contribution = fuzzy_contribution(match.score, rank, window)
        existing = combined.get(match.row.id)

        if existing is None:
            combined[match.row.id] = _Candidate(
                result=SearchResult(
                    id=match.row.id,
                    text=match.row.text,
                    score=match.score,
                    metadata=match.row.metadata,
                    source="fuzzy",
                ),
                fused=contribution,
                order=len(combined),
            )
        elif existing.result.source == "vector":
            existing.fused += contribution + HYBRID_BONUS
            existing.result.source = "hybrid"
            logger.debug(f"Hybrid boost: {match.row.id} found in both branches")

    ranked = sorted(combined.values(), key=lambda c: (-c.fused, c.order))[:limit]
    return [replace(c.result, score=1 - c.fused) for c in ranked]
