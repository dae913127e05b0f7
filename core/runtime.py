"""Health score platform: the top-level entry point.

HealthScorePlatform wires the core services together and is the only object
the API and the CLI talk to. It exposes the three core operations plus a
convenience evaluate() that runs the whole pipeline for an entity's stored
signals:

    adapt_to_signals            raw payload -> signals (persisted)
    compute_health_score        signals -> HealthScore (persisted)
    compute_debt_contributions  signals -> debt contributions
    evaluate                    stored signals -> HealthScore with debt

The platform holds no mutable state of its own. Configuration and records
live in the store passed at construction; the operator registry is
read-only.
"""

import logging

from aggregation.health_engine import HealthScoreEngine
from core.registry import DEFAULT_REGISTRY, OperatorRegistry
from core.store import ConfigSource, InMemoryStore, RecordStore
from debt.debt_service import DebtService
from schemas.result import DebtContribution, HealthScore
from schemas.signal import Signal
from scoring.signal_scorer import SignalScoringService
from signals.signal_adapter import SignalAdapter

logger = logging.getLogger(__name__)


class HealthScorePlatform:
    """Orchestrates adaptation, scoring, aggregation and debt for entities.

    Attributes:
        config: Configuration lookups shared by every service.
        records: Where signals and health scores are written.
        registry: Operator lookup used by the scoring service.
    """

    def __init__(
        self,
        config: ConfigSource,
        records: RecordStore,
        registry: OperatorRegistry = DEFAULT_REGISTRY,
    ) -> None:
        self.config = config
        self.records = records
        self.registry = registry

        self._adapter = SignalAdapter(config)
        self._scoring = SignalScoringService(registry, config)
        self._engine = HealthScoreEngine(self._scoring, config, records)
        self._debt = DebtService(config)

    @classmethod
    def in_memory(cls, config_source=None) -> "HealthScorePlatform":
        """Build a platform backed by a single InMemoryStore.

        Args:
            config_source: Optional bundle (path, JSON text, dict or
                ConfigBundle) to preload. None starts with no configuration.
        """
        store = InMemoryStore.from_config(config_source) if config_source is not None else InMemoryStore()
        return cls(config=store, records=store)

    @property
    def scoring(self) -> SignalScoringService:
        return self._scoring

    def adapt_to_signals(
        self,
        source_type: str,
        source_id: str,
        entity_type: str,
        entity_id: str,
        raw_data: dict,
    ) -> list[Signal]:
        """Adapt a payload into signals and persist each one."""
        signals = self._adapter.adapt_to_signals(source_type, source_id, entity_type, entity_id, raw_data)
        for signal in signals:
            self.records.save_signal(signal)

        logger.info(
            "Ingested %d signals for %s/%s from '%s'.",
            len(signals), entity_type, entity_id, source_type,
        )
        return signals

    def compute_health_score(self, entity_type: str, entity_id: str, signals: list[Signal]) -> HealthScore:
        """Compute and persist a health score. Its debt list is empty."""
        return self._engine.compute_health_score(entity_type, entity_id, signals)

    def compute_debt_contributions(self, signals: list[Signal]) -> list[DebtContribution]:
        return self._debt.compute_debt_contributions(signals)

    def evaluate(self, entity_type: str, entity_id: str) -> HealthScore | None:
        """Score an entity from its stored signals and attach debt.

        The persisted record keeps an empty debt list; the returned copy
        carries the contributions.

        Returns:
            The health score with debt attached, or None if the entity has
            no stored signals.
        """
        signals = self.records.find_signals(entity_type, entity_id)
        if not signals:
            logger.info("No stored signals for %s/%s — nothing to evaluate.", entity_type, entity_id)
            return None

        health_score = self.compute_health_score(entity_type, entity_id, signals)
        debt = self.compute_debt_contributions(signals)
        return health_score.model_copy(update={"debt_contributions": debt})
