"""THRESHOLD_SCORE operator: scores SCALAR signals by range.

Example parameters for code coverage:
    {
        "thresholds": [
            {"min": 80, "max": 100,   "score": 100},
            {"min": 60, "max": 79.99, "score": 75},
            {"min": 0,  "max": 59.99, "score": 50}
        ],
        "defaultScore": 0
    }

Bands are inclusive at both ends and checked in list order. The first band
containing the value wins, so overlapping bands resolve to whichever the
configuration lists first.
"""

from decimal import Decimal

from pydantic import Field

from operators.base import OperatorParameters, ScoringOperator
from schemas.signal import CanonicalForm


class ThresholdBand(OperatorParameters):
    """One inclusive [min, max] range and the score it maps to."""

    minimum: Decimal = Field(alias="min")
    maximum: Decimal = Field(alias="max")
    score: Decimal = Field(ge=0, le=100)

    def contains(self, value: Decimal) -> bool:
        return self.minimum <= value <= self.maximum


class ThresholdScoreParameters(OperatorParameters):
    thresholds: list[ThresholdBand] = Field(min_length=1)
    default_score: Decimal = Field(default=Decimal("0"), ge=0, le=100)


class ThresholdScoreOperator(ScoringOperator):
    """First-match range lookup over a SCALAR value."""

    operator_id = "THRESHOLD_SCORE"
    supported_forms = frozenset({CanonicalForm.SCALAR})
    parameters_model = ThresholdScoreParameters

    def _score(self, value: Decimal, params: ThresholdScoreParameters) -> Decimal:
        for band in params.thresholds:
            if band.contains(value):
                return band.score
        return params.default_score
