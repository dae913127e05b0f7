"""Operator tests.

Covers the four built-in scoring operators: parameter validation, the
form contract, rounding, and the worked examples for each operator.
"""

from decimal import Decimal

import pytest

from operators import (
    BooleanPenaltyOperator,
    EnumMappingOperator,
    OperatorError,
    ThresholdScoreOperator,
    WeightedCategorySumOperator,
)
from schemas.signal import CanonicalForm, Signal


# ── Helpers ───────────────────────────────────────────────────────────────────

def scalar(value) -> Signal:
    return Signal(id="s", source_type="t", source_id="x", metric_key="m",
                  canonical_form=CanonicalForm.SCALAR, scalar_value=Decimal(str(value)))


def countable(counts: dict) -> Signal:
    return Signal(id="s", source_type="t", source_id="x", metric_key="m",
                  canonical_form=CanonicalForm.COUNTABLE_CATEGORY, countable_value=counts)


def boolean(value: bool) -> Signal:
    return Signal(id="s", source_type="t", source_id="x", metric_key="m",
                  canonical_form=CanonicalForm.BOOLEAN, boolean_value=value)


def enum(value: str) -> Signal:
    return Signal(id="s", source_type="t", source_id="x", metric_key="m",
                  canonical_form=CanonicalForm.ENUM, enum_value=value)


COVERAGE_BANDS = {
    "thresholds": [
        {"min": 80, "max": 100, "score": 100},
        {"min": 60, "max": 79.99, "score": 75},
        {"min": 0, "max": 59.99, "score": 50},
    ],
}

SEVERITY_WEIGHTS = {"weights": {"CRITICAL": -20, "HIGH": -10, "MEDIUM": -5}, "baseScore": 100}

RISK_MAPPING = {"mapping": {"LOW": 100, "MEDIUM": 60, "HIGH": 30, "CRITICAL": 0}}


# ── Shared contract ───────────────────────────────────────────────────────────

class TestOperatorContract:
    @pytest.mark.parametrize("operator, form", [
        (ThresholdScoreOperator(), CanonicalForm.SCALAR),
        (WeightedCategorySumOperator(), CanonicalForm.COUNTABLE_CATEGORY),
        (BooleanPenaltyOperator(), CanonicalForm.BOOLEAN),
        (EnumMappingOperator(), CanonicalForm.ENUM),
    ])
    def test_supports_exactly_one_form(self, operator, form):
        assert operator.supported_forms == frozenset({form})
        assert all(operator.supports(f) == (f is form) for f in CanonicalForm)

    def test_wrong_form_raises_operator_error(self):
        with pytest.raises(OperatorError, match="THRESHOLD_SCORE"):
            ThresholdScoreOperator().compute(boolean(True), COVERAGE_BANDS)

    def test_missing_value_raises_operator_error(self):
        empty = Signal(id="s", source_type="t", source_id="x", metric_key="m",
                       canonical_form=CanonicalForm.SCALAR)
        with pytest.raises(OperatorError):
            ThresholdScoreOperator().compute(empty, COVERAGE_BANDS)

    def test_invalid_parameters_raise_at_compute(self):
        with pytest.raises(OperatorError):
            EnumMappingOperator().compute(enum("HIGH"), {"mapping": {}})

    @pytest.mark.parametrize("raw", ["not a mapping", 42, ["mapping"]])
    def test_validate_never_raises_on_garbage(self, raw):
        assert ThresholdScoreOperator().validate_parameters(raw) is False

    def test_parsed_parameters_accepted_directly(self):
        operator = EnumMappingOperator()
        params = operator.parse_parameters(RISK_MAPPING)
        assert operator.compute(enum("LOW"), params) == Decimal("100.00")


# ── THRESHOLD_SCORE ───────────────────────────────────────────────────────────

class TestThresholdScore:
    op = ThresholdScoreOperator()

    def test_coverage_example(self):
        assert self.op.compute(scalar("85.0"), COVERAGE_BANDS) == Decimal("100.00")

    def test_bands_are_inclusive(self):
        assert self.op.compute(scalar("80"), COVERAGE_BANDS) == Decimal("100.00")
        assert self.op.compute(scalar("79.99"), COVERAGE_BANDS) == Decimal("75.00")
        assert self.op.compute(scalar("0"), COVERAGE_BANDS) == Decimal("50.00")

    def test_gap_falls_back_to_default(self):
        params = {**COVERAGE_BANDS, "defaultScore": 10}
        assert self.op.compute(scalar("79.995"), params) == Decimal("10.00")

    def test_no_match_without_default_scores_zero(self):
        assert self.op.compute(scalar("150"), COVERAGE_BANDS) == Decimal("0.00")

    def test_overlapping_bands_first_listed_wins(self):
        params = {"thresholds": [
            {"min": 0, "max": 100, "score": 40},
            {"min": 50, "max": 100, "score": 90},
        ]}
        assert self.op.compute(scalar("75"), params) == Decimal("40.00")

    @pytest.mark.parametrize("value", ["-1000", "0", "33.3", "59.99", "60", "99.5", "100"])
    def test_score_comes_from_containing_band(self, value):
        bands = {"thresholds": [
            {"min": -1e9, "max": 0, "score": 0},
            {"min": 0, "max": 60, "score": 60},
            {"min": 60, "max": 1e9, "score": 100},
        ]}
        score = self.op.compute(scalar(value), bands)
        band = next(b for b in bands["thresholds"] if b["min"] <= float(value) <= b["max"])
        assert score == Decimal(band["score"]).quantize(Decimal("0.01"))

    def test_result_has_two_decimal_places(self):
        params = {"thresholds": [{"min": 0, "max": 100, "score": "66.665"}]}
        assert str(self.op.compute(scalar("1"), params)) == "66.67"

    @pytest.mark.parametrize("params", [
        {},
        {"thresholds": []},
        {"thresholds": [{"min": 0, "score": 10}]},
        {"thresholds": [{"min": 0, "max": 10, "score": 101}]},
        {"thresholds": [{"min": "low", "max": 10, "score": 10}]},
        {"thresholds": COVERAGE_BANDS["thresholds"], "defaultScore": -5},
    ])
    def test_invalid_parameters(self, params):
        assert self.op.validate_parameters(params) is False

    def test_valid_parameters(self):
        assert self.op.validate_parameters(COVERAGE_BANDS) is True


# ── WEIGHTED_CATEGORY_SUM ─────────────────────────────────────────────────────

class TestWeightedCategorySum:
    op = WeightedCategorySumOperator()

    def test_severity_example_clamps_to_zero(self):
        signal = countable({"CRITICAL": 2, "HIGH": 5, "MEDIUM": 10})
        assert self.op.compute(signal, SEVERITY_WEIGHTS) == Decimal("0.00")

    def test_partial_penalty(self):
        assert self.op.compute(countable({"HIGH": 1, "MEDIUM": 2}), SEVERITY_WEIGHTS) == Decimal("80.00")

    def test_unweighted_categories_ignored(self):
        assert self.op.compute(countable({"LOW": 50}), SEVERITY_WEIGHTS) == Decimal("100.00")

    def test_clamped_to_max(self):
        params = {"weights": {"FIXED": 10}, "baseScore": 50, "maxScore": 90}
        assert self.op.compute(countable({"FIXED": 10}), params) == Decimal("90.00")

    @pytest.mark.parametrize("counts", [
        {"CRITICAL": 10_000},
        {"BONUS": 10_000},
        {"CRITICAL": 0, "BONUS": 0},
        {"CRITICAL": 3, "BONUS": 7},
    ])
    def test_never_leaves_bounds(self, counts):
        params = {"weights": {"CRITICAL": -1000, "BONUS": 1000}, "baseScore": 50,
                  "minScore": 20, "maxScore": 70}
        assert Decimal("20") <= self.op.compute(countable(counts), params) <= Decimal("70")

    @pytest.mark.parametrize("params", [
        {},
        {"weights": {}},
        {"weights": {"HIGH": "heavy"}},
        {"weights": {"HIGH": -1}, "minScore": 80, "maxScore": 20},
        {"weights": {"HIGH": -1}, "maxScore": 120},
    ])
    def test_invalid_parameters(self, params):
        assert self.op.validate_parameters(params) is False


# ── BOOLEAN_PENALTY ───────────────────────────────────────────────────────────

class TestBooleanPenalty:
    op = BooleanPenaltyOperator()

    def test_false_with_defaults_scores_zero(self):
        assert self.op.compute(boolean(False), {}) == Decimal("0.00")

    def test_true_with_defaults_scores_hundred(self):
        assert self.op.compute(boolean(True), None) == Decimal("100.00")

    def test_scores_are_independent(self):
        params = {"trueScore": 90}
        assert self.op.compute(boolean(True), params) == Decimal("90.00")
        assert self.op.compute(boolean(False), params) == Decimal("0.00")

    def test_snake_case_parameters_accepted(self):
        assert self.op.compute(boolean(False), {"false_score": 25}) == Decimal("25.00")

    def test_out_of_range_score_invalid(self):
        assert self.op.validate_parameters({"falseScore": -10}) is False


# ── ENUM_MAPPING ──────────────────────────────────────────────────────────────

class TestEnumMapping:
    op = EnumMappingOperator()

    def test_risk_example(self):
        assert self.op.compute(enum("HIGH"), RISK_MAPPING) == Decimal("30.00")

    def test_unmapped_value_gets_default(self):
        assert self.op.compute(enum("UNKNOWN"), {**RISK_MAPPING, "defaultScore": 50}) == Decimal("50.00")

    def test_unmapped_value_without_default_scores_zero(self):
        assert self.op.compute(enum("UNKNOWN"), RISK_MAPPING) == Decimal("0.00")

    def test_lookup_is_exact_match(self):
        assert self.op.compute(enum("High"), RISK_MAPPING) == Decimal("0.00")

    @pytest.mark.parametrize("params", [
        {},
        {"mapping": {}},
        {"mapping": {"LOW": 150}},
        {"mapping": "LOW=100"},
    ])
    def test_invalid_parameters(self, params):
        assert self.op.validate_parameters(params) is False
