"""WEIGHTED_CATEGORY_SUM operator: scores COUNTABLE_CATEGORY signals.

Example parameters for bugs by severity:
    {
        "weights": {"CRITICAL": -20, "HIGH": -10, "MEDIUM": -5, "LOW": -1},
        "baseScore": 100,
        "minScore": 0,
        "maxScore": 100
    }

score = baseScore + sum(weight[c] * count[c]) over categories present in both
the signal and the weight table, then clamped to [minScore, maxScore].
Categories with no weight are ignored rather than penalized.
"""

from decimal import Decimal

from pydantic import Field, model_validator

from operators.base import OperatorParameters, ScoringOperator
from schemas.signal import CanonicalForm


class WeightedCategorySumParameters(OperatorParameters):
    weights: dict[str, Decimal] = Field(min_length=1)
    base_score: Decimal = Decimal("100")
    min_score: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    max_score: Decimal = Field(default=Decimal("100"), ge=0, le=100)

    @model_validator(mode="after")
    def _check_bounds(self) -> "WeightedCategorySumParameters":
        if self.min_score > self.max_score:
            raise ValueError("minScore must not exceed maxScore")
        return self


class WeightedCategorySumOperator(ScoringOperator):
    """Base score adjusted by weighted category counts, clamped."""

    operator_id = "WEIGHTED_CATEGORY_SUM"
    supported_forms = frozenset({CanonicalForm.COUNTABLE_CATEGORY})
    parameters_model = WeightedCategorySumParameters

    def _score(self, value: dict[str, int], params: WeightedCategorySumParameters) -> Decimal:
        score = params.base_score

        for category, count in value.items():
            weight = params.weights.get(category)
            if weight is None or count is None:
                continue
            score += weight * count

        return max(params.min_score, min(score, params.max_score))
