"""Schema tests.

Covers the canonical signal model, its persisted document form, the
configuration documents and the configuration parser. No I/O beyond
tmp_path files.
"""

import json
from decimal import Decimal

import pytest
from pydantic import ValidationError

from schemas.config import (
    ConfigBundle,
    DimensionWeight,
    ExtractionDefinition,
    ScoringRule,
    weights_balanced,
)
from schemas.result import COMPUTATION_VERSION, HealthScore
from schemas.signal import CanonicalForm, Signal
from utils.numeric import quantize_score, safe_divide, to_decimal
from utils.parse import ConfigParseError, load_config_bundle, parse_document, parse_documents


# ── Helpers ───────────────────────────────────────────────────────────────────

def make_signal(form=CanonicalForm.SCALAR, **slots) -> Signal:
    return Signal(
        id="sig-001",
        source_type="sonarqube",
        source_id="payments-service",
        metric_key="metric",
        canonical_form=form,
        metadata={"entity_type": "project", "entity_id": "payments-service"},
        **slots,
    )


# ── Signal ────────────────────────────────────────────────────────────────────

class TestSignal:
    def test_scalar_with_value_is_valid(self):
        assert make_signal(scalar_value=Decimal("12.5")).is_valid()

    def test_declared_slot_empty_is_invalid(self):
        assert not make_signal(CanonicalForm.SCALAR).is_valid()

    def test_wrong_slot_populated_is_invalid(self):
        assert not make_signal(CanonicalForm.SCALAR, boolean_value=True).is_valid()

    def test_two_slots_populated_is_invalid(self):
        signal = make_signal(CanonicalForm.SCALAR, scalar_value=Decimal("1"), enum_value="HIGH")
        assert not signal.is_valid()

    def test_empty_categories_invalid(self):
        assert not make_signal(CanonicalForm.COUNTABLE_CATEGORY, countable_value={}).is_valid()

    def test_negative_count_invalid(self):
        signal = make_signal(CanonicalForm.COUNTABLE_CATEGORY, countable_value={"HIGH": -1})
        assert not signal.is_valid()

    def test_blank_enum_invalid(self):
        assert not make_signal(CanonicalForm.ENUM, enum_value="   ").is_valid()

    def test_false_boolean_is_valid(self):
        assert make_signal(CanonicalForm.BOOLEAN, boolean_value=False).is_valid()

    def test_value_returns_declared_slot(self):
        signal = make_signal(CanonicalForm.ENUM, enum_value="HIGH")
        assert signal.value() == "HIGH"

    def test_signal_is_frozen(self):
        signal = make_signal(scalar_value=Decimal("1"))
        with pytest.raises(ValidationError):
            signal.metric_key = "other"

    def test_entity_properties_read_metadata(self):
        signal = make_signal(scalar_value=Decimal("1"))
        assert signal.entity_type == "project"
        assert signal.entity_id == "payments-service"


# ── Document form ─────────────────────────────────────────────────────────────

class TestSignalDocument:
    def test_countable_document_nests_categories(self):
        doc = make_signal(CanonicalForm.COUNTABLE_CATEGORY, countable_value={"HIGH": 2}).to_document()
        assert doc["value"] == {"categories": {"HIGH": 2}}
        assert doc["canonical_form"] == "COUNTABLE_CATEGORY"

    def test_scalar_stored_as_exact_string(self):
        doc = make_signal(scalar_value=Decimal("79.990")).to_document()
        assert doc["value"] == {"value": "79.990"}

    def test_document_carries_entity_keys(self):
        doc = make_signal(scalar_value=Decimal("1")).to_document()
        assert doc["entity_type"] == "project"
        assert doc["entity_id"] == "payments-service"

    @pytest.mark.parametrize("form, slots", [
        (CanonicalForm.SCALAR, {"scalar_value": Decimal("85.10")}),
        (CanonicalForm.COUNTABLE_CATEGORY, {"countable_value": {"CRITICAL": 1, "LOW": 4}}),
        (CanonicalForm.BOOLEAN, {"boolean_value": False}),
        (CanonicalForm.ENUM, {"enum_value": "MEDIUM"}),
    ])
    def test_round_trip_preserves_value_and_form(self, form, slots):
        original = make_signal(form, **slots)
        rebuilt = Signal.from_document(original.to_document())
        assert rebuilt.canonical_form == original.canonical_form
        assert rebuilt.value() == original.value()
        assert rebuilt == original

    def test_round_trip_scalar_keeps_exponent(self):
        rebuilt = Signal.from_document(make_signal(scalar_value=Decimal("85.10")).to_document())
        assert str(rebuilt.scalar_value) == "85.10"


# ── Configuration documents ───────────────────────────────────────────────────

class TestConfigDocuments:
    def test_camel_case_keys_accepted(self):
        rule = ScoringRule.model_validate({
            "metricKey": "code_coverage",
            "requiredCanonicalForm": "SCALAR",
            "operator": "THRESHOLD_SCORE",
            "weight": 0.6,
            "dimension": "quality",
        })
        assert rule.metric_key == "code_coverage"
        assert rule.required_canonical_form is CanonicalForm.SCALAR
        assert rule.weight == Decimal("0.6")
        assert rule.enabled is True

    def test_snake_case_keys_accepted(self):
        definition = ExtractionDefinition(
            source_type="sonarqube",
            metric_key="code_coverage",
            canonical_form=CanonicalForm.SCALAR,
            extraction_path="metrics.coverage",
        )
        assert definition.category_mappings == {}
        assert definition.transformation is None

    def test_rule_weight_above_one_rejected(self):
        with pytest.raises(ValidationError):
            ScoringRule(
                metric_key="m", required_canonical_form="SCALAR",
                operator="THRESHOLD_SCORE", weight=Decimal("1.5"), dimension="d",
            )

    def test_unknown_canonical_form_rejected(self):
        with pytest.raises(ValidationError):
            ExtractionDefinition(source_type="s", metric_key="m", canonical_form="HISTOGRAM")


class TestWeightsBalanced:
    def _weights(self, *values):
        return [DimensionWeight(entity_type="project", dimension=f"d{i}", weight=Decimal(v))
                for i, v in enumerate(values)]

    def test_exact_sum_is_balanced(self):
        assert weights_balanced(self._weights("0.5", "0.3", "0.2"))

    def test_within_tolerance_is_balanced(self):
        assert weights_balanced(self._weights("0.5", "0.5005"))

    def test_outside_tolerance_is_not_balanced(self):
        assert not weights_balanced(self._weights("0.5", "0.4"))

    def test_empty_is_balanced(self):
        assert weights_balanced([])


# ── Results ───────────────────────────────────────────────────────────────────

class TestHealthScore:
    def test_defaults(self):
        score = HealthScore(entity_type="project", entity_id="p1", overall_score=Decimal("50.00"))
        assert score.debt_contributions == []
        assert score.computation_version == COMPUTATION_VERSION == "1.0.0"
        assert score.computed_at.tzinfo is not None

    def test_fresh_id_per_record(self):
        a = HealthScore(entity_type="project", entity_id="p1", overall_score=Decimal("1"))
        b = HealthScore(entity_type="project", entity_id="p1", overall_score=Decimal("1"))
        assert a.id != b.id

    def test_overall_score_above_hundred_rejected(self):
        with pytest.raises(ValidationError):
            HealthScore(entity_type="project", entity_id="p1", overall_score=Decimal("100.01"))


# ── Decimal helpers ───────────────────────────────────────────────────────────

class TestNumeric:
    def test_float_converted_through_str(self):
        assert to_decimal(85.1) == Decimal("85.1")

    @pytest.mark.parametrize("value", [True, "abc", float("nan"), float("inf"), None, [1]])
    def test_non_numbers_rejected(self, value):
        assert to_decimal(value) is None

    def test_quantize_rounds_half_up(self):
        assert quantize_score(Decimal("2.345")) == Decimal("2.35")
        assert quantize_score(Decimal("2.344")) == Decimal("2.34")

    def test_safe_divide_by_zero_is_zero(self):
        assert safe_divide(Decimal("10"), Decimal("0")) == Decimal("0.00")


# ── Config parser ─────────────────────────────────────────────────────────────

class TestConfigParser:
    def test_mongo_id_mapped_to_id(self):
        weight = parse_document(
            {"_id": "dw-1", "_class": "x", "entityType": "project", "dimension": "quality", "weight": 1},
            DimensionWeight,
        )
        assert weight.id == "dw-1"

    def test_non_dict_raises_with_raw(self):
        with pytest.raises(ConfigParseError) as exc_info:
            parse_document(["not", "a", "dict"], DimensionWeight)
        assert exc_info.value.raw == ["not", "a", "dict"]

    def test_invalid_document_raises(self):
        with pytest.raises(ConfigParseError):
            parse_document({"entityType": "project"}, DimensionWeight)

    def test_parse_documents_skips_invalid(self):
        docs = [
            {"entityType": "project", "dimension": "quality", "weight": 0.5},
            {"entityType": "project"},
            "garbage",
            {"entityType": "project", "dimension": "security", "weight": 0.5},
        ]
        parsed = parse_documents(docs, DimensionWeight)
        assert [w.dimension for w in parsed] == ["quality", "security"]

    def test_load_bundle_from_dict(self):
        bundle = load_config_bundle({"scoring_rules": [{"metricKey": "m"}]})
        assert isinstance(bundle, ConfigBundle)
        assert bundle.scoring_rules == [{"metricKey": "m"}]
        assert bundle.debt_rules == []

    def test_load_bundle_from_json_text(self):
        bundle = load_config_bundle('{"debtRules": [{"metricKey": "m"}]}')
        assert bundle.debt_rules == [{"metricKey": "m"}]

    def test_load_bundle_from_path(self, tmp_path):
        path = tmp_path / "bundle.json"
        path.write_text(json.dumps({"dimension_weights": []}))
        assert load_config_bundle(path).dimension_weights == []
        assert load_config_bundle(str(path)).dimension_weights == []

    def test_invalid_json_raises(self):
        with pytest.raises(ConfigParseError):
            load_config_bundle("{not json")

    def test_malformed_lists_raise(self):
        with pytest.raises(ConfigParseError):
            load_config_bundle({"scoring_rules": "oops"})
