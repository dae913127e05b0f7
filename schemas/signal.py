"""Signal schema.

Signals are normalized observations produced by the Signal Adapter from raw
tool data. Every signal takes exactly one of four canonical forms, and every
downstream consumer (operators, scoring, debt) branches over those four
forms. The set is closed: a fifth form is a code change, never configuration.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, assert_never

from pydantic import BaseModel, ConfigDict, Field


class CanonicalForm(str, Enum):
    """The four value shapes a signal may take.

    Extends str so values serialize to plain strings ("SCALAR") in documents
    and API responses.

    Values:
        COUNTABLE_CATEGORY: Mapping of category name to non-negative count,
            e.g. {"CRITICAL": 2, "HIGH": 5}.
        SCALAR: A single decimal number, e.g. 85.5 (coverage percentage).
        BOOLEAN: A flag, e.g. True (has a CI pipeline).
        ENUM: An upper-case token, e.g. "HIGH" (risk level).
    """

    COUNTABLE_CATEGORY = "COUNTABLE_CATEGORY"
    SCALAR = "SCALAR"
    BOOLEAN = "BOOLEAN"
    ENUM = "ENUM"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Signal(BaseModel):
    """A single normalized observation about an entity.

    Created by the SignalAdapter, immutable afterwards. Only the value slot
    matching canonical_form is meaningful; the other three stay None.

    Attributes:
        id: Unique identifier (UUID string) assigned at adaptation time.
        source_type: Tool that produced the raw data (e.g. "sonarqube").
        source_id: Identifier of the data within the source tool
            (e.g. a SonarQube component key).
        metric_key: Configured metric name (e.g. "code_coverage"). Scoring
            rules and debt rules are looked up by this key.
        canonical_form: Which of the four shapes the value takes.
        countable_value: Category counts for COUNTABLE_CATEGORY signals.
        scalar_value: Decimal value for SCALAR signals.
        boolean_value: Flag for BOOLEAN signals.
        enum_value: Upper-case token for ENUM signals.
        timestamp: Capture time (UTC).
        metadata: Free-form context. Always carries "entity_type" and
            "entity_id" for adapted signals.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    source_type: str
    source_id: str
    metric_key: str
    canonical_form: CanonicalForm
    countable_value: dict[str, int] | None = None
    scalar_value: Decimal | None = None
    boolean_value: bool | None = None
    enum_value: str | None = None
    timestamp: datetime = Field(default_factory=_utcnow)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def entity_type(self) -> str | None:
        return self.metadata.get("entity_type")

    @property
    def entity_id(self) -> str | None:
        return self.metadata.get("entity_id")

    def value(self) -> Any:
        """Return whichever value slot matches the declared canonical form."""
        match self.canonical_form:
            case CanonicalForm.COUNTABLE_CATEGORY:
                return self.countable_value
            case CanonicalForm.SCALAR:
                return self.scalar_value
            case CanonicalForm.BOOLEAN:
                return self.boolean_value
            case CanonicalForm.ENUM:
                return self.enum_value
            case _:
                assert_never(self.canonical_form)

    def is_valid(self) -> bool:
        """Check that exactly the declared slot is populated and non-empty.

        Categories must be a non-empty map of non-negative counts; enum
        tokens must be non-blank; scalar and boolean values must be set.
        """
        populated = sum(
            slot is not None
            for slot in (self.countable_value, self.scalar_value, self.boolean_value, self.enum_value)
        )
        if populated != 1:
            return False

        match self.canonical_form:
            case CanonicalForm.COUNTABLE_CATEGORY:
                return bool(self.countable_value) and all(
                    count >= 0 for count in self.countable_value.values()
                )
            case CanonicalForm.SCALAR:
                return self.scalar_value is not None
            case CanonicalForm.BOOLEAN:
                return self.boolean_value is not None
            case CanonicalForm.ENUM:
                return self.enum_value is not None and bool(self.enum_value.strip())
            case _:
                assert_never(self.canonical_form)

    # ── Document form ─────────────────────────────────────────────────────────

    def to_document(self) -> dict:
        """Serialize to the persisted document shape.

        The value is nested under "categories" for countable signals and
        under "value" for the other forms. Scalars are stored as their exact
        decimal string so reconstruction yields the identical Decimal.
        """
        match self.canonical_form:
            case CanonicalForm.COUNTABLE_CATEGORY:
                value = {"categories": dict(self.countable_value or {})}
            case CanonicalForm.SCALAR:
                value = {"value": None if self.scalar_value is None else str(self.scalar_value)}
            case CanonicalForm.BOOLEAN:
                value = {"value": self.boolean_value}
            case CanonicalForm.ENUM:
                value = {"value": self.enum_value}
            case _:
                assert_never(self.canonical_form)

        return {
            "id": self.id,
            "source_type": self.source_type,
            "source_id": self.source_id,
            "metric_key": self.metric_key,
            "canonical_form": self.canonical_form.value,
            "value": value,
            "timestamp": self.timestamp.isoformat(),
            "metadata": dict(self.metadata),
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
        }

    @classmethod
    def from_document(cls, doc: dict) -> "Signal":
        """Rebuild a read-only Signal from its persisted document."""
        form = CanonicalForm(doc["canonical_form"])
        value = doc.get("value") or {}
        slots: dict[str, Any] = {}

        match form:
            case CanonicalForm.COUNTABLE_CATEGORY:
                slots["countable_value"] = value.get("categories")
            case CanonicalForm.SCALAR:
                raw = value.get("value")
                slots["scalar_value"] = None if raw is None else Decimal(str(raw))
            case CanonicalForm.BOOLEAN:
                slots["boolean_value"] = value.get("value")
            case CanonicalForm.ENUM:
                slots["enum_value"] = value.get("value")
            case _:
                assert_never(form)

        metadata = dict(doc.get("metadata") or {})
        if doc.get("entity_type") is not None:
            metadata.setdefault("entity_type", doc["entity_type"])
        if doc.get("entity_id") is not None:
            metadata.setdefault("entity_id", doc["entity_id"])

        return cls(
            id=doc["id"],
            source_type=doc["source_type"],
            source_id=doc["source_id"],
            metric_key=doc["metric_key"],
            canonical_form=form,
            timestamp=doc["timestamp"],
            metadata=metadata,
            **slots,
        )
