"""Debt service.

Derives technical-debt contributions from signals using DebtContributionRule
configuration. Independent of scoring: it never consults scoring rules or
operator output, and its results are reported alongside a health score
rather than fed back into it.

Each signal yields zero or one contribution, decided by its canonical form:

    SCALAR              severity from critical/high/medium thresholds
                        (value <= threshold, checked in that order);
                        contribution = 100/80/60 - value
    COUNTABLE_CATEGORY  contribution = total count; severity = first
                        non-zero of CRITICAL, HIGH, MEDIUM, else LOW
    BOOLEAN             False only; contribution 1, severity MEDIUM
    ENUM                value listed in the thresholds only;
                        contribution 1, severity = the value
"""

import logging
from decimal import Decimal
from enum import Enum
from typing import assert_never

from core.store import ConfigSource
from schemas.config import DebtContributionRule
from schemas.result import DebtContribution
from schemas.signal import CanonicalForm, Signal
from utils.numeric import is_number, to_decimal

logger = logging.getLogger(__name__)


class Severity(str, Enum):
    """Debt severity levels, most severe first."""

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


# Baseline each scalar contribution is measured from, per severity.
SCALAR_BASELINES: dict[Severity, Decimal] = {
    Severity.CRITICAL: Decimal("100"),
    Severity.HIGH: Decimal("80"),
    Severity.MEDIUM: Decimal("60"),
}

_COUNT_PRIORITY = (Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM)


class DebtService:
    """Computes debt contributions for a batch of signals."""

    def __init__(self, config: ConfigSource) -> None:
        self._config = config

    def compute_debt_contributions(self, signals: list[Signal]) -> list[DebtContribution]:
        """Return one contribution per debt-relevant signal, in input order.

        Signals without an enabled debt rule, or whose value doesn't cross
        any configured threshold, contribute nothing.
        """
        contributions = []
        for signal in signals:
            rule = self._config.find_debt_rule(signal.metric_key)
            if rule is None:
                continue
            contribution = self.contribution_for(signal, rule)
            if contribution is not None:
                contributions.append(contribution)

        logger.debug("Computed %d debt contributions from %d signals.", len(contributions), len(signals))
        return contributions

    def contribution_for(self, signal: Signal, rule: DebtContributionRule) -> DebtContribution | None:
        """Apply one debt rule to one signal."""
        form = signal.canonical_form
        match form:
            case CanonicalForm.SCALAR:
                found = self._scalar_debt(signal, rule)
            case CanonicalForm.COUNTABLE_CATEGORY:
                found = self._countable_debt(signal)
            case CanonicalForm.BOOLEAN:
                found = self._boolean_debt(signal)
            case CanonicalForm.ENUM:
                found = self._enum_debt(signal, rule)
            case _:
                assert_never(form)

        if found is None:
            return None

        contribution, severity, display_value = found
        return DebtContribution(
            signal_id=signal.id,
            metric_key=signal.metric_key,
            dimension=rule.dimension,
            contribution=contribution,
            severity=severity,
            description=render_description(rule.description_template, display_value, signal.metric_key),
        )

    # ── Per-form rules ────────────────────────────────────────────────────────

    def _scalar_debt(self, signal: Signal, rule: DebtContributionRule) -> tuple[Decimal, str, str] | None:
        value = signal.scalar_value
        if value is None:
            return None

        severity = scalar_severity(value, rule.severity_thresholds)
        if severity is None:
            return None
        return SCALAR_BASELINES[severity] - value, severity.value, str(value)

    def _countable_debt(self, signal: Signal) -> tuple[Decimal, str, str] | None:
        counts = signal.countable_value or {}
        total = sum(counts.values())
        if total == 0:
            return None

        severity = next(
            (level for level in _COUNT_PRIORITY if counts.get(level.value, 0) > 0),
            Severity.LOW,
        )
        return Decimal(total), severity.value, str(total)

    def _boolean_debt(self, signal: Signal) -> tuple[Decimal, str, str] | None:
        # Only an explicit False is debt; True and None are not.
        if signal.boolean_value is not False:
            return None
        return Decimal("1"), Severity.MEDIUM.value, "false"

    def _enum_debt(self, signal: Signal, rule: DebtContributionRule) -> tuple[Decimal, str, str] | None:
        value = signal.enum_value
        if value is None or value not in rule.severity_thresholds:
            return None
        return Decimal("1"), value, value


def scalar_severity(value: Decimal, thresholds: dict) -> Severity | None:
    """Return the first severity whose threshold the value is at or under.

    Checked CRITICAL, HIGH, MEDIUM in that order. Missing or non-numeric
    thresholds are ignored. No match returns None, never LOW.
    """
    for severity in SCALAR_BASELINES:
        raw = thresholds.get(severity.value.lower())
        limit = to_decimal(raw) if is_number(raw) else None
        if limit is not None and value <= limit:
            return severity
    return None


def render_description(template: str | None, value: str, metric_key: str) -> str:
    """Fill {value} and {metricKey} by literal replacement.

    Other braces in the template are left alone. A blank template falls
    back to a generic sentence.
    """
    if template is None or not template.strip():
        return f"Debt contribution from {metric_key}"
    return template.replace("{value}", value).replace("{metricKey}", metric_key)
