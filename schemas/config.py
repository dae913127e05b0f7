"""Configuration document schemas.

Everything that gives a signal business meaning lives in configuration, not
code: where to find a value in a tool payload, which operator scores it, how
dimensions are weighted, and when it counts as debt. These models are the
read-only shapes the core receives from the configuration store.

Documents are accepted in snake_case or camelCase ("metric_key" or
"metricKey") so bundles exported from a document database load
unchanged.
"""

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from schemas.signal import CanonicalForm


class ConfigDocument(BaseModel):
    """Base for all configuration documents: frozen, camelCase-tolerant."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class TransformationConfig(ConfigDocument):
    """Post-extraction transformation for SCALAR values.

    Attributes:
        type: "percentage" (identity), "invert" (100 - value), "scale"
            (value * factor). Any other value, or None, leaves the value
            unchanged.
        factor: Multiplier for "scale". Ignored by the other types.
    """

    type: str | None = None
    factor: Decimal | None = None


class ExtractionDefinition(ConfigDocument):
    """How to pull one signal out of a source tool's normalized payload.

    Attributes:
        source_type: Tool this definition applies to (e.g. "sonarqube").
        metric_key: Metric name given to the produced signal.
        canonical_form: Form the extracted value is normalized into.
        extraction_path: Dot path into the payload (e.g. "metrics.coverage").
        category_mappings: Optional key remapping for COUNTABLE_CATEGORY
            values (e.g. {"BLOCKER": "CRITICAL"}).
        transformation: Optional SCALAR transformation.
        enabled: Disabled definitions are never returned by the store.
        description: Documentation only.
    """

    id: str | None = None
    source_type: str
    metric_key: str
    canonical_form: CanonicalForm
    extraction_path: str | None = None
    category_mappings: dict[str, str] = Field(default_factory=dict)
    transformation: TransformationConfig | None = None
    enabled: bool = True
    description: str | None = None


class ScoringRule(ConfigDocument):
    """Binds a metric key to an operator, its parameters and a dimension.

    Attributes:
        metric_key: Metric this rule scores.
        required_canonical_form: Signals of any other form are skipped.
        operator: Operator identifier resolved through the OperatorRegistry
            (e.g. "THRESHOLD_SCORE").
        parameters: Untyped operator parameters. Each operator converts them
            into its own parameter model before computing.
        weight: Weight of this signal inside its dimension, 0.0-1.0.
        dimension: Dimension the score contributes to (e.g. "reliability").
        enabled: Disabled rules are never returned by the store.
    """

    id: str | None = None
    metric_key: str
    required_canonical_form: CanonicalForm
    operator: str
    parameters: dict[str, Any] = Field(default_factory=dict)
    weight: Decimal = Field(ge=0, le=1)
    dimension: str
    enabled: bool = True


class DimensionWeight(ConfigDocument):
    """Weight of one dimension in the overall score for an entity type.

    Weights for one entity type are expected to sum to 1.0. The engine logs
    a warning when they don't but still normalizes by their total.
    """

    id: str | None = None
    entity_type: str
    dimension: str
    weight: Decimal = Field(ge=0)
    display_order: int = 0
    description: str | None = None


class DebtContributionRule(ConfigDocument):
    """When and how a metric contributes to technical debt.

    Attributes:
        metric_key: Metric this rule applies to.
        dimension: Dimension the debt is reported under.
        severity_thresholds: Shape depends on the signal's form. For SCALAR
            signals: {"critical": 20, "high": 50, "medium": 70}. For ENUM
            signals: the keys are the enum values that count as debt.
        description_template: Text with {value} and {metricKey} placeholders.
        enabled: Disabled rules are never returned by the store.
    """

    id: str | None = None
    metric_key: str
    dimension: str
    severity_thresholds: dict[str, Any] = Field(default_factory=dict)
    description_template: str | None = None
    enabled: bool = True


class ConfigBundle(ConfigDocument):
    """A full configuration snapshot, as loaded from a JSON file or the API.

    Entries are kept as raw documents so the store can validate them one by
    one and skip invalid ones without rejecting the whole bundle.
    """

    extraction_definitions: list[dict[str, Any]] = Field(default_factory=list)
    scoring_rules: list[dict[str, Any]] = Field(default_factory=list)
    dimension_weights: list[dict[str, Any]] = Field(default_factory=list)
    debt_rules: list[dict[str, Any]] = Field(default_factory=list)


WEIGHT_SUM_TOLERANCE = Decimal("0.001")


def weights_balanced(weights: list[DimensionWeight]) -> bool:
    """Return True if the weights sum to 1.0 within WEIGHT_SUM_TOLERANCE.

    An empty list is balanced: it means "no weights configured", which the
    engine handles with an unweighted mean.
    """
    if not weights:
        return True
    total = sum((w.weight for w in weights), Decimal("0"))
    return abs(total - Decimal("1")) <= WEIGHT_SUM_TOLERANCE
