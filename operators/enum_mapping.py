"""ENUM_MAPPING operator: scores ENUM signals by exact-match lookup.

Example parameters for risk level:
    {
        "mapping": {"LOW": 100, "MEDIUM": 60, "HIGH": 30, "CRITICAL": 0},
        "defaultScore": 50
    }

Enum signals are upper-cased at adaptation time, so mapping keys should be
upper-case too. Values missing from the mapping get defaultScore (0 unless
configured).
"""

from decimal import Decimal
from typing import Annotated

from pydantic import Field

from operators.base import OperatorParameters, ScoringOperator
from schemas.signal import CanonicalForm

Score = Annotated[Decimal, Field(ge=0, le=100)]


class EnumMappingParameters(OperatorParameters):
    mapping: dict[str, Score] = Field(min_length=1)
    default_score: Score = Decimal("0")


class EnumMappingOperator(ScoringOperator):
    """Maps an enum token to its configured score."""

    operator_id = "ENUM_MAPPING"
    supported_forms = frozenset({CanonicalForm.ENUM})
    parameters_model = EnumMappingParameters

    def _score(self, value: str, params: EnumMappingParameters) -> Decimal:
        return params.mapping.get(value, params.default_score)
