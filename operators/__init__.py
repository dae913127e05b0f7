"""Scoring operator pack.

BUILTIN_OPERATORS is the complete, closed operator set. The registry is
built from this tuple and nothing else.
"""

from operators.base import OperatorError, OperatorParameters, ScoringOperator
from operators.boolean_penalty import BooleanPenaltyOperator
from operators.enum_mapping import EnumMappingOperator
from operators.threshold_score import ThresholdScoreOperator
from operators.weighted_category_sum import WeightedCategorySumOperator

BUILTIN_OPERATORS: tuple[ScoringOperator, ...] = (
    ThresholdScoreOperator(),
    WeightedCategorySumOperator(),
    BooleanPenaltyOperator(),
    EnumMappingOperator(),
)

__all__ = [
    "BUILTIN_OPERATORS",
    "OperatorError",
    "OperatorParameters",
    "ScoringOperator",
    "ThresholdScoreOperator",
    "WeightedCategorySumOperator",
    "BooleanPenaltyOperator",
    "EnumMappingOperator",
]
