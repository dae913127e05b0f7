"""Signal adapter: raw tool payloads into canonical signals.

The adapter is entirely configuration-driven. It knows nothing about
SonarQube, Jira or any other tool; each ExtractionDefinition says where to
find one value in the payload and which canonical form to normalize it to.
It never scores anything and never assigns business meaning.

For every enabled definition of the source type, in configured order:
1. Resolve the extraction path against the payload
2. Normalize the value into the declared canonical form
3. Build a Signal with a fresh UUID and the entity in its metadata
4. Keep it only if it passes Signal.is_valid()

A definition that fails at any step is skipped. Partial output is the
normal case, not an error.
"""

import logging
import uuid
from collections import Counter
from datetime import datetime, timezone
from typing import Any, assert_never

from core.store import ConfigSource
from schemas.config import ExtractionDefinition
from schemas.signal import CanonicalForm, Signal
from signals.normalizers import resolve_path, to_boolean, to_countable, to_enum, to_scalar

logger = logging.getLogger(__name__)


class SignalAdapter:
    """Turns one raw payload into a list of validated signals.

    Definitions are fetched from the config source on every call, so a
    configuration reload applies to the next payload.
    """

    def __init__(self, config: ConfigSource) -> None:
        self._config = config

    def adapt_to_signals(
        self,
        source_type: str,
        source_id: str,
        entity_type: str,
        entity_id: str,
        raw_data: dict[str, Any],
    ) -> list[Signal]:
        """Adapt a normalized tool payload into canonical signals.

        Args:
            source_type: Tool that produced the payload (e.g. "sonarqube").
            source_id: Identifier of the payload within the tool.
            entity_type: Entity the signals describe (e.g. "project").
            entity_id: Identifier of the entity.
            raw_data: Nested payload as produced by a tool parser.

        Returns:
            Valid signals in definition order. Empty when no definitions are
            configured for the source type or nothing could be extracted.
        """
        definitions = self._config.find_extraction_definitions(source_type)
        if not definitions:
            logger.warning("No extraction definitions configured for source type '%s'.", source_type)
            return []

        duplicates = [key for key, n in Counter(d.metric_key for d in definitions).items() if n > 1]
        if duplicates:
            logger.warning(
                "Source type '%s' has several definitions for metric key(s) %s; "
                "each produces its own signal.",
                source_type,
                ", ".join(sorted(duplicates)),
            )

        signals: list[Signal] = []
        for definition in definitions:
            try:
                signal = self._adapt_one(definition, source_id, entity_type, entity_id, raw_data)
            except Exception as exc:
                logger.error(
                    "Error adapting metric '%s' from '%s': %s",
                    definition.metric_key, source_type, exc,
                    exc_info=True,
                )
                continue

            if signal is None:
                continue
            if not signal.is_valid():
                logger.info(
                    "Discarding invalid %s signal for metric '%s'.",
                    signal.canonical_form.value, signal.metric_key,
                )
                continue
            signals.append(signal)

        logger.debug(
            "Adapted %d of %d definitions for %s/%s from '%s'.",
            len(signals), len(definitions), entity_type, entity_id, source_type,
        )
        return signals

    # ── Private ───────────────────────────────────────────────────────────────

    def _adapt_one(
        self,
        definition: ExtractionDefinition,
        source_id: str,
        entity_type: str,
        entity_id: str,
        raw_data: dict[str, Any],
    ) -> Signal | None:
        extracted = resolve_path(raw_data, definition.extraction_path)
        if extracted is None:
            logger.debug(
                "No value for metric '%s' at path '%s'.",
                definition.metric_key, definition.extraction_path,
            )
            return None

        slots = self._normalize(definition, extracted)
        if slots is None:
            logger.debug(
                "Value %r for metric '%s' is not a valid %s.",
                extracted, definition.metric_key, definition.canonical_form.value,
            )
            return None

        return Signal(
            id=str(uuid.uuid4()),
            source_type=definition.source_type,
            source_id=source_id,
            metric_key=definition.metric_key,
            canonical_form=definition.canonical_form,
            timestamp=datetime.now(timezone.utc),
            metadata={"entity_type": entity_type, "entity_id": entity_id},
            **slots,
        )

    def _normalize(self, definition: ExtractionDefinition, value: object) -> dict[str, Any] | None:
        """Return the Signal value slot for the declared form, or None."""
        form = definition.canonical_form
        match form:
            case CanonicalForm.COUNTABLE_CATEGORY:
                # Empty counts still build a signal; is_valid() rejects it.
                return {"countable_value": to_countable(value, definition.category_mappings)}
            case CanonicalForm.SCALAR:
                scalar = to_scalar(value, definition.transformation)
                return None if scalar is None else {"scalar_value": scalar}
            case CanonicalForm.BOOLEAN:
                flag = to_boolean(value)
                return None if flag is None else {"boolean_value": flag}
            case CanonicalForm.ENUM:
                token = to_enum(value)
                return None if token is None else {"enum_value": token}
            case _:
                assert_never(form)
