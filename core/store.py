"""Configuration and record storage.

The core never talks to a database directly. It reads configuration through
ConfigSource and writes signals and health scores through RecordStore. Both
are Protocols so a document database, SQL or anything else can stand behind
them.

InMemoryStore implements both for the API server, the CLI and the tests:
- Configuration is replaced wholesale by load_config() and read fresh on
  every lookup, so a reload applies to the next call without a restart.
- Records are append-only. Signals and health scores are stored as plain
  documents and rebuilt read-only on every read, the same round trip a real
  store would force.

It is not a database. Nothing persists between processes.
"""

import logging
import pathlib
from typing import Protocol

from schemas.config import (
    ConfigBundle,
    DebtContributionRule,
    DimensionWeight,
    ExtractionDefinition,
    ScoringRule,
    weights_balanced,
)
from schemas.result import HealthScore
from schemas.signal import Signal
from utils.parse import load_config_bundle, parse_documents

logger = logging.getLogger(__name__)


class ConfigSource(Protocol):
    """Read-only configuration lookups used by the core services."""

    def find_extraction_definitions(self, source_type: str) -> list[ExtractionDefinition]:
        """Enabled extraction definitions for a source type, in configured order."""
        ...

    def find_scoring_rule(self, metric_key: str) -> ScoringRule | None:
        """The enabled scoring rule for a metric key, or None."""
        ...

    def find_dimension_weights(self, entity_type: str) -> list[DimensionWeight]:
        """Dimension weights for an entity type, ordered by display_order."""
        ...

    def find_debt_rule(self, metric_key: str) -> DebtContributionRule | None:
        """The enabled debt contribution rule for a metric key, or None."""
        ...


class RecordStore(Protocol):
    """Append-only storage for signals and health scores."""

    def save_signal(self, signal: Signal) -> None:
        ...

    def find_signals(self, entity_type: str, entity_id: str) -> list[Signal]:
        ...

    def save_health_score(self, score: HealthScore) -> None:
        ...

    def latest_health_score(self, entity_type: str, entity_id: str) -> HealthScore | None:
        ...

    def health_score_history(self, entity_type: str, entity_id: str) -> list[HealthScore]:
        ...


class InMemoryStore:
    """In-RAM ConfigSource and RecordStore.

    Attributes:
        _definitions: Parsed extraction definitions.
        _rules: Parsed scoring rules.
        _weights: Parsed dimension weights.
        _debt_rules: Parsed debt contribution rules.
        _signal_docs: Append-only list of signal documents.
        _score_docs: Append-only list of health score documents.
    """

    def __init__(self) -> None:
        """Initialise an empty store. No configuration, no records."""
        self._definitions: tuple[ExtractionDefinition, ...] = ()
        self._rules: tuple[ScoringRule, ...] = ()
        self._weights: tuple[DimensionWeight, ...] = ()
        self._debt_rules: tuple[DebtContributionRule, ...] = ()
        self._signal_docs: list[dict] = []
        self._score_docs: list[dict] = []

    @classmethod
    def from_config(cls, source: ConfigBundle | dict | str | pathlib.Path) -> "InMemoryStore":
        """Create a store preloaded with a configuration bundle."""
        store = cls()
        store.load_config(source)
        return store

    # ── Configuration ─────────────────────────────────────────────────────────

    def load_config(self, source: ConfigBundle | dict | str | pathlib.Path) -> dict[str, int]:
        """Replace the whole configuration with a new bundle.

        Invalid documents are logged and skipped; the rest of the bundle
        still loads. Dimension weights that don't sum to 1.0 per entity type
        are logged as a warning but kept.

        Args:
            source: A ConfigBundle, a decoded dict, a JSON string or a path.

        Returns:
            How many documents of each kind were loaded.

        Raises:
            ConfigParseError: If the bundle itself cannot be parsed.
        """
        bundle = source if isinstance(source, ConfigBundle) else load_config_bundle(source)

        definitions = tuple(parse_documents(bundle.extraction_definitions, ExtractionDefinition))
        rules = tuple(parse_documents(bundle.scoring_rules, ScoringRule))
        weights = tuple(parse_documents(bundle.dimension_weights, DimensionWeight))
        debt_rules = tuple(parse_documents(bundle.debt_rules, DebtContributionRule))

        for entity_type in sorted({w.entity_type for w in weights}):
            group = [w for w in weights if w.entity_type == entity_type]
            if not weights_balanced(group):
                logger.warning(
                    "Dimension weights for entity type '%s' sum to %s, not 1.0.",
                    entity_type,
                    sum(w.weight for w in group),
                )

        # Swap all four at once so a concurrent reader never sees a mix.
        self._definitions, self._rules, self._weights, self._debt_rules = (
            definitions, rules, weights, debt_rules,
        )
        logger.info(
            "Loaded configuration: %d extraction definitions, %d scoring rules, "
            "%d dimension weights, %d debt rules.",
            len(definitions), len(rules), len(weights), len(debt_rules),
        )
        return {
            "extraction_definitions": len(definitions),
            "scoring_rules": len(rules),
            "dimension_weights": len(weights),
            "debt_rules": len(debt_rules),
        }

    def find_extraction_definitions(self, source_type: str) -> list[ExtractionDefinition]:
        return [d for d in self._definitions if d.source_type == source_type and d.enabled]

    def find_scoring_rule(self, metric_key: str) -> ScoringRule | None:
        return next((r for r in self._rules if r.metric_key == metric_key and r.enabled), None)

    def find_dimension_weights(self, entity_type: str) -> list[DimensionWeight]:
        matching = [w for w in self._weights if w.entity_type == entity_type]
        return sorted(matching, key=lambda w: w.display_order)

    def find_debt_rule(self, metric_key: str) -> DebtContributionRule | None:
        return next((r for r in self._debt_rules if r.metric_key == metric_key and r.enabled), None)

    # ── Records ───────────────────────────────────────────────────────────────

    def save_signal(self, signal: Signal) -> None:
        """Append a signal as a document."""
        self._signal_docs.append(signal.to_document())

    def find_signals(self, entity_type: str, entity_id: str) -> list[Signal]:
        """Rebuild all stored signals for an entity, oldest first."""
        return [
            Signal.from_document(doc)
            for doc in self._signal_docs
            if doc.get("entity_type") == entity_type and doc.get("entity_id") == entity_id
        ]

    def signal_documents(self, entity_type: str, entity_id: str) -> list[dict]:
        """Return copies of the raw stored documents for an entity."""
        return [
            dict(doc)
            for doc in self._signal_docs
            if doc.get("entity_type") == entity_type and doc.get("entity_id") == entity_id
        ]

    def save_health_score(self, score: HealthScore) -> None:
        """Append a health score record. Earlier records are never touched."""
        self._score_docs.append(score.model_dump(mode="json"))

    def latest_health_score(self, entity_type: str, entity_id: str) -> HealthScore | None:
        history = self.health_score_history(entity_type, entity_id)
        return history[0] if history else None

    def health_score_history(self, entity_type: str, entity_id: str) -> list[HealthScore]:
        """Return every stored score for an entity, newest first."""
        scores = [
            HealthScore.model_validate(doc)
            for doc in self._score_docs
            if doc["entity_type"] == entity_type and doc["entity_id"] == entity_id
        ]
        # Stable sort: records with equal timestamps keep newest-appended first.
        scores.reverse()
        scores.sort(key=lambda s: s.computed_at, reverse=True)
        return scores
