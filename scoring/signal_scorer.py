"""Signal scoring service.

Turns one signal into one SignalScoreResult by way of its scoring rule and
the operator that rule names. Nothing here raises to the caller: every
failure is logged and becomes "no result" for that signal.

Checks run in a fixed order and stop at the first failure:
1. The signal's canonical form matches the rule's required form
2. The rule's operator ID resolves in the registry
3. The operator supports the signal's form
4. The rule's parameters pass the operator's validation
5. The computation itself succeeds
"""

import logging
from decimal import Decimal

from core.registry import OperatorRegistry
from core.store import ConfigSource
from schemas.config import ScoringRule
from schemas.result import SignalScoreResult
from schemas.signal import Signal

logger = logging.getLogger(__name__)


class SignalScoringService:
    """Scores signals against their configured rules.

    Rules are looked up per call, never cached.

    Attributes:
        _registry: Operator lookup.
        _config: Source of scoring rules.
    """

    def __init__(self, registry: OperatorRegistry, config: ConfigSource) -> None:
        self._registry = registry
        self._config = config

    def score_signal(self, signal: Signal) -> SignalScoreResult | None:
        """Score a signal using the enabled rule for its metric key.

        Returns None when no enabled rule exists or the rule can't be applied.
        """
        rule = self._config.find_scoring_rule(signal.metric_key)
        if rule is None:
            logger.debug("No enabled scoring rule for metric '%s'.", signal.metric_key)
            return None
        return self.score_signal_with_rule(signal, rule)

    def score_signal_with_rule(self, signal: Signal, rule: ScoringRule) -> SignalScoreResult | None:
        """Score a signal against a specific rule.

        Args:
            signal: The signal to score.
            rule: The rule to apply. Its enabled flag is not checked here.

        Returns:
            The score result, or None if any of the five checks fails.
        """
        if signal.canonical_form != rule.required_canonical_form:
            logger.warning(
                "Form mismatch for metric '%s': signal is %s, rule requires %s.",
                signal.metric_key,
                signal.canonical_form.value,
                rule.required_canonical_form.value,
            )
            return None

        operator = self._registry.get(rule.operator)
        if operator is None:
            logger.warning(
                "Unknown operator '%s' in rule for metric '%s'. Available: %s",
                rule.operator, signal.metric_key, ", ".join(self._registry.available_ids()),
            )
            return None

        if not operator.supports(signal.canonical_form):
            logger.warning(
                "Operator %s does not support %s signals (metric '%s').",
                operator.operator_id, signal.canonical_form.value, signal.metric_key,
            )
            return None

        params = operator.parse_parameters(rule.parameters)
        if params is None:
            logger.warning(
                "Invalid parameters for operator %s on metric '%s': %r",
                operator.operator_id, signal.metric_key, rule.parameters,
            )
            return None

        try:
            score = operator.compute(signal, params)
        except Exception as exc:
            logger.error(
                "Operator %s failed on metric '%s' — skipping. Error: %s",
                operator.operator_id, signal.metric_key, exc,
            )
            return None

        return SignalScoreResult.of(
            signal,
            operator=operator.operator_id,
            dimension=rule.dimension,
            score=score,
            weight=Decimal(rule.weight),
        )

    def score_signals(self, signals: list[Signal]) -> list[SignalScoreResult]:
        """Score a batch, dropping signals that produce no result."""
        results = []
        for signal in signals:
            result = self.score_signal(signal)
            if result is not None:
                results.append(result)

        logger.debug("Scored %d of %d signals.", len(results), len(signals))
        return results
