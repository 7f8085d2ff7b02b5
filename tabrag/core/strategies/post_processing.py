
import logging
from abc import ABC, abstractmethod

from ..models.document import SourceDocument, metadata_number
from ..models.query import (
    COMPARISON_OPERATORS,
    SORT_OPERATORS,
    ExtractedQuery,
    Operator,
    QueryIntent,
)

logger = logging.getLogger(__name__)

_COMPARATORS = {
    Operator.LTE: lambda a, b: a <= b,
    Operator.GTE: lambda a, b: a >= b,
    Operator.LT: lambda a, b: a < b,
    Operator.GT: lambda a, b: a > b,
    Operator.EQ: lambda a, b: a == b,
}


class ResultStrategy(ABC):
    """Base class for intent-specific result handling."""

    @abstractmethod
    def applies_to(self, intent: ExtractedQuery) -> bool:
        """Whether this strategy handles the intent."""
        ...

    @abstractmethod
    def apply(
        self, intent: ExtractedQuery, sources: list[SourceDocument]
    ) -> list[SourceDocument]:
        """Apply strategy to candidates."""
        ...


class SuperlativeSortStrategy(ResultStrategy):
    """Sort by a numeric attribute and keep the top ``limit`` (default 1)."""

    def applies_to(self, intent: ExtractedQuery) -> bool:
        return (
            intent.intent == QueryIntent.SUPERLATIVE
            and bool(intent.attribute)
            and intent.operator in SORT_OPERATORS
        )

    def apply(
        self, intent: ExtractedQuery, sources: list[SourceDocument]
    ) -> list[SourceDocument]:
        ordered = sorted(
            sources,
            key=lambda s: metadata_number(s.metadata, intent.attribute),
            reverse=intent.operator == Operator.MAX,
        )
        limit = intent.limit or 1
        logger.info(
            f"Sorted by {intent.attribute} {intent.operator.value}, "
            f"limit {limit} ({len(sources)} candidates)"
        )
        return ordered[:limit]


class BudgetFilterStrategy(ResultStrategy):
    """Keep candidates within the numeric bound, in relevance order."""

    def applies_to(self, intent: ExtractedQuery) -> bool:
        return (
            intent.intent == QueryIntent.BUDGET
            and bool(intent.attribute)
            and intent.operator in COMPARISON_OPERATORS
            and intent.value is not None
        )

    def apply(
        self, intent: ExtractedQuery, sources: list[SourceDocument]
    ) -> list[SourceDocument]:
        compare = _COMPARATORS[intent.operator]
        filtered = [
            s for s in sources
            if compare(metadata_number(s.metadata, intent.attribute), intent.value)
        ]
        limit = intent.limit or 5
        logger.info(
            f"Budget filter {intent.attribute} {intent.operator.value} {intent.value}: "
            f"{len(sources)} → {len(filtered)}, limit {limit}"
        )
        return filtered[:limit]


class ResultPostProcessor:
    """Route candidates through the first strategy matching the intent."""

    DEFAULT_LIMIT = 5

    def __init__(self, strategies: list[ResultStrategy] | None = None):
        self._strategies = strategies or [
            SuperlativeSortStrategy(),
            BudgetFilterStrategy(),
        ]

    def apply(
        self, intent: ExtractedQuery, candidates: list[SourceDocument]
    ) -> list[SourceDocument]:
        for strategy in self._strategies:
            if strategy.applies_to(intent):
                return strategy.apply(intent, candidates)
        return candidates[: intent.limit or self.DEFAULT_LIMIT]
