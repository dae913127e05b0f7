"""Health score engine.

Aggregates per-signal scores into dimension scores and one overall score
for an entity, then persists the result as a new history record.

Aggregation happens in two layers:

    dimension_score = sum(weighted_score) / sum(weight)   per dimension
    overall_score   = sum(dimension_score * dimension_weight) / sum(dimension_weight)

When no dimension weights are configured for the entity type, the overall
score falls back to the unweighted mean of the dimensions that produced a
score. Both layers round to two places half-up and never divide by zero.

Debt contributions are NOT computed here. The engine's record always starts
with an empty debt list; the caller attaches DebtService output to a copy.
"""

import logging
from decimal import Decimal

from core.store import ConfigSource, RecordStore
from schemas.config import DimensionWeight, weights_balanced
from schemas.result import HealthScore, SignalScoreResult
from schemas.signal import Signal
from scoring.signal_scorer import SignalScoringService
from utils.numeric import ZERO, quantize_score, safe_divide

logger = logging.getLogger(__name__)


class HealthScoreEngine:
    """Computes and persists one HealthScore per call."""

    def __init__(
        self,
        scoring_service: SignalScoringService,
        config: ConfigSource,
        records: RecordStore,
    ) -> None:
        self._scoring = scoring_service
        self._config = config
        self._records = records

    def compute_health_score(self, entity_type: str, entity_id: str, signals: list[Signal]) -> HealthScore:
        """Score all signals for an entity and persist the aggregated result.

        Args:
            entity_type: Type of the entity (selects the dimension weights).
            entity_id: Identifier of the entity.
            signals: Every signal to include. Signals without an enabled
                rule, or whose rule can't be applied, are left out.

        Returns:
            The newly persisted HealthScore with a fresh id and timestamp.
        """
        results = self._scoring.score_signals(signals)
        dimension_scores = self.dimension_scores(results)

        weights = self._config.find_dimension_weights(entity_type)
        if not weights_balanced(weights):
            logger.warning(
                "Dimension weights for entity type '%s' sum to %s, not 1.0 — "
                "overall score is normalized by their total.",
                entity_type,
                sum((w.weight for w in weights), ZERO),
            )

        overall = self.overall_score(dimension_scores, weights)

        health_score = HealthScore(
            entity_type=entity_type,
            entity_id=entity_id,
            overall_score=overall,
            dimension_scores=dimension_scores,
        )
        self._records.save_health_score(health_score)

        logger.info(
            "Computed health score %s for %s/%s from %d of %d signals.",
            overall, entity_type, entity_id, len(results), len(signals),
        )
        return health_score

    @staticmethod
    def dimension_scores(results: list[SignalScoreResult]) -> dict[str, Decimal]:
        """Group results by dimension and take the weight-normalized mean.

        A dimension whose results all carry zero weight scores 0.00.
        """
        weighted: dict[str, Decimal] = {}
        totals: dict[str, Decimal] = {}
        for result in results:
            weighted[result.dimension] = weighted.get(result.dimension, ZERO) + result.weighted_score
            totals[result.dimension] = totals.get(result.dimension, ZERO) + result.weight

        return {dim: safe_divide(weighted[dim], totals[dim]) for dim in weighted}

    @staticmethod
    def overall_score(dimension_scores: dict[str, Decimal], weights: list[DimensionWeight]) -> Decimal:
        """Combine dimension scores using configured weights.

        With weights configured, every configured dimension counts; one
        that produced no score counts as 0. Without any, the unweighted mean
        of produced dimension scores is used.
        """
        if not weights:
            if not dimension_scores:
                return quantize_score(ZERO)
            return safe_divide(sum(dimension_scores.values(), ZERO), Decimal(len(dimension_scores)))

        numerator = ZERO
        denominator = ZERO
        for weight in weights:
            numerator += dimension_scores.get(weight.dimension, ZERO) * weight.weight
            denominator += weight.weight
        return safe_divide(numerator, denominator)
