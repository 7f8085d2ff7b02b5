"""Matching, fusion and post-processing strategies."""
from .fusion import fuse_results
from .fuzzy_matching import FuzzyMatch, FuzzyMatcher
from .post_processing import (
    BudgetFilterStrategy,
    ResultPostProcessor,
    ResultStrategy,
    SuperlativeSortStrategy,
)

__all__ = [
    "fuse_results",
    "FuzzyMatch",
    "FuzzyMatcher",
    "BudgetFilterStrategy",
    "ResultPostProcessor",
    "ResultStrategy",
    "SuperlativeSortStrategy",
]
