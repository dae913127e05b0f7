"""BOOLEAN_PENALTY operator: scores BOOLEAN signals.

Example parameters for "has CI/CD pipeline":
    {"trueScore": 100, "falseScore": 0}

Both parameters are optional. With none configured a true signal scores 100
and a false one scores 0.
"""

from decimal import Decimal

from pydantic import Field

from operators.base import OperatorParameters, ScoringOperator
from schemas.signal import CanonicalForm


class BooleanPenaltyParameters(OperatorParameters):
    true_score: Decimal = Field(default=Decimal("100"), ge=0, le=100)
    false_score: Decimal = Field(default=Decimal("0"), ge=0, le=100)


class BooleanPenaltyOperator(ScoringOperator):
    """Direct lookup of the configured score for True or False."""

    operator_id = "BOOLEAN_PENALTY"
    supported_forms = frozenset({CanonicalForm.BOOLEAN})
    parameters_model = BooleanPenaltyParameters

    def _score(self, value: bool, params: BooleanPenaltyParameters) -> Decimal:
        return params.true_score if value else params.false_score
