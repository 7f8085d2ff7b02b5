"""Query intent models."""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class QueryIntent(str, Enum):
    """Kind of question the user asked."""
    SUPERLATIVE = "superlative_query"    # ter-, paling: sort + limit
    COMPARISON = "comparison_query"
    AGGREGATION = "aggregation_query"    # total, rata-rata, jumlah
    BUDGET = "budget_query"              # numeric bound on an attribute
    FILTER = "filter_query"
    SIMPLE_SEARCH = "simple_search"
    GENERAL_CHAT = "general_chat"        # no data needed


class Operator(str, Enum):
    """Sort, comparison and aggregate operators."""
    MIN = "MIN"
    MAX = "MAX"
    LTE = "LTE"
    GTE = "GTE"
    LT = "LT"
    GT = "GT"
    EQ = "EQ"
    SUM = "SUM"
    AVG = "AVG"
    COUNT = "COUNT"


SORT_OPERATORS = frozenset({Operator.MIN, Operator.MAX})
COMPARISON_OPERATORS = frozenset(
    {Operator.LTE, Operator.GTE, Operator.LT, Operator.GT, Operator.EQ}
)


@dataclass
class ExtractedQuery:
    """Intent and parameters pulled from one user message."""
    intent: QueryIntent
    confidence: float
    raw_query: str
    entity: Optional[str] = None
    attribute: Optional[str] = None
    operator: Optional[Operator] = None
    value: Optional[float] = None
    limit: Optional[int] = None

    @classmethod
    def safe_default(cls, raw_query: str) -> "ExtractedQuery":
        return cls(
            intent=QueryIntent.SIMPLE_SEARCH, confidence=0.5, raw_query=raw_query
        )

    def to_dict(self) -> dict:
        data = {
            "intent": self.intent.value,
            "entity": self.entity,
            "attribute": self.attribute,
            "operator": self.operator.value if self.operator else None,
            "value": self.value,
            "limit": self.limit,
            "confidence": self.confidence,
            "rawQuery": self.raw_query,
        }
        return {k: v for k, v in data.items() if v is not None}


@dataclass
class ExtractionOutcome:
    """Result of parsing a model reply: either ``query`` or ``error``."""
    query: Optional[ExtractedQuery] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.query is not None

    @classmethod
    def failure(cls, reason: str) -> "ExtractionOutcome":
        return cls(error=reason)
