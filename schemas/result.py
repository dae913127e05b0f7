"""Result schemas.

Defines the outputs of the scoring pipeline: one SignalScoreResult per
scored signal, one DebtContribution per debt-relevant signal, and the
HealthScore record that crosses the engine boundary to the caller and the
record store.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from schemas.signal import CanonicalForm, Signal

COMPUTATION_VERSION = "1.0.0"


class SignalScoreResult(BaseModel):
    """Score for a single signal under its configured rule.

    Ephemeral: recomputed on every scoring pass and never persisted on its
    own. Two passes over the same signals and configuration produce equal
    results.

    Attributes:
        signal_id: ID of the scored signal.
        metric_key: Metric key of the scored signal.
        canonical_form: Form of the scored signal.
        operator: Operator identifier that produced the score.
        dimension: Dimension from the scoring rule.
        score: Operator output, 0-100, two decimal places.
        weight: Rule weight inside the dimension, 0-1.
        weighted_score: score * weight, unrounded.
    """

    model_config = ConfigDict(frozen=True)

    signal_id: str
    metric_key: str
    canonical_form: CanonicalForm
    operator: str
    dimension: str
    score: Decimal = Field(ge=0, le=100)
    weight: Decimal
    weighted_score: Decimal

    @classmethod
    def of(cls, signal: Signal, operator: str, dimension: str, score: Decimal, weight: Decimal) -> "SignalScoreResult":
        """Build a result for a signal, deriving the weighted score."""
        return cls(
            signal_id=signal.id,
            metric_key=signal.metric_key,
            canonical_form=signal.canonical_form,
            operator=operator,
            dimension=dimension,
            score=score,
            weight=weight,
            weighted_score=score * weight,
        )


class DebtContribution(BaseModel):
    """How much one signal contributes to technical debt.

    Derived independently of scoring: a signal may carry debt without
    having a scoring rule, and the other way round.

    Attributes:
        signal_id: ID of the contributing signal.
        metric_key: Metric key of the contributing signal.
        dimension: Dimension from the debt rule.
        contribution: Magnitude of the contribution.
        severity: CRITICAL, HIGH, MEDIUM, LOW, or an enum token for ENUM
            signals.
        description: Rendered from the rule's description template.
    """

    model_config = ConfigDict(frozen=True)

    signal_id: str
    metric_key: str
    dimension: str
    contribution: Decimal
    severity: str
    description: str


class HealthScore(BaseModel):
    """Computed health of one entity at one point in time.

    Created once per compute call and never mutated. The record store keeps
    every record as append-only history; the latest is found by computed_at.

    Attributes:
        id: Auto-generated UUID for this computation.
        entity_type: Type of the scored entity (e.g. "project").
        entity_id: Identifier of the scored entity.
        overall_score: Weighted score across dimensions, 0-100.
        dimension_scores: Dimension name to dimension score, in the order
            dimensions were first produced.
        debt_contributions: Empty on the engine's record. Callers attach
            debt contributions from the DebtService to a copy.
        computed_at: UTC timestamp of the computation.
        computation_version: Algorithm version tag for forward compatibility.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    entity_type: str
    entity_id: str
    overall_score: Decimal = Field(ge=0, le=100)
    dimension_scores: dict[str, Decimal] = Field(default_factory=dict)
    debt_contributions: list[DebtContribution] = Field(default_factory=list)
    computed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    computation_version: str = COMPUTATION_VERSION
