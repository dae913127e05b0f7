"""Base scoring operator definition.

Defines the contract every scoring operator must satisfy. Operators are the
fixed, code-defined half of scoring: they decide HOW a canonical value turns
into a 0-100 score. Configuration decides WHAT numbers they use.

Operators are deliberately pure:
- They hold no state between calls
- They never look anything up in configuration themselves
- They accept exactly the canonical forms they declare and reject the rest

The operator set is closed. A new operator is a new subclass registered in
operators/__init__.py, never a configuration entry.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from schemas.signal import CanonicalForm, Signal
from utils.numeric import quantize_score


class OperatorError(ValueError):
    """Raised when an operator is invoked outside its contract.

    A signal of the wrong canonical form, a signal with no value in its
    declared slot, or parameters that fail validation at compute time. These
    are programming or configuration errors, not "nothing to score": the
    SignalScoringService catches them and skips the signal.
    """


class OperatorParameters(BaseModel):
    """Base for operator parameter models.

    Parameters arrive from configuration as untyped mappings with camelCase
    keys ("defaultScore"). Each operator converts them once into its own
    frozen model; snake_case keys are accepted too.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class ScoringOperator(ABC):
    """Abstract base class for all scoring operators.

    Subclasses declare operator_id, supported_forms and parameters_model as
    class attributes, and implement _score(). Everything else (form checks,
    parameter conversion, rounding) lives here so every operator enforces
    the same contract.

    Example:
        class BooleanPenaltyOperator(ScoringOperator):
            operator_id = "BOOLEAN_PENALTY"
            supported_forms = frozenset({CanonicalForm.BOOLEAN})
            parameters_model = BooleanPenaltyParameters

            def _score(self, value, params):
                return params.true_score if value else params.false_score
    """

    parameters_model: type[OperatorParameters]

    @property
    @abstractmethod
    def operator_id(self) -> str:
        """Unique identifier referenced by scoring rules (e.g. "THRESHOLD_SCORE").

        Implement by declaring a class-level attribute on the subclass.
        """
        ...

    @property
    @abstractmethod
    def supported_forms(self) -> frozenset[CanonicalForm]:
        """Canonical forms this operator accepts."""
        ...

    def supports(self, form: CanonicalForm) -> bool:
        """Return True if signals of this form can be scored by this operator."""
        return form in self.supported_forms

    def parse_parameters(self, parameters: Any) -> OperatorParameters | None:
        """Convert raw configuration parameters into this operator's model.

        Never raises. Returns None for structurally invalid input: missing
        required keys, wrong types, scores outside 0-100. The caller treats
        None as "skip this rule".

        Args:
            parameters: The rule's parameter mapping, an already-parsed
                parameter model, or None.

        Returns:
            The validated parameter model, or None if invalid.
        """
        if isinstance(parameters, self.parameters_model):
            return parameters
        if parameters is None:
            parameters = {}
        if not isinstance(parameters, Mapping):
            return None
        try:
            return self.parameters_model.model_validate(dict(parameters))
        except ValidationError:
            return None

    def validate_parameters(self, parameters: Any) -> bool:
        """Return True if the parameters are structurally valid for this operator."""
        return self.parse_parameters(parameters) is not None

    def compute(self, signal: Signal, parameters: Any) -> Decimal:
        """Score a signal, returning a value rounded to two places half-up.

        Args:
            signal: The signal to score. Must be of a supported form and
                carry a value in its declared slot.
            parameters: Raw parameter mapping or a parsed parameter model.

        Returns:
            The score as a Decimal with two decimal places.

        Raises:
            OperatorError: If the signal's form is not supported, its value
                slot is empty, or the parameters are invalid.
        """
        if not self.supports(signal.canonical_form):
            raise OperatorError(
                f"{self.operator_id} requires a {self._forms_label()} signal, "
                f"got {signal.canonical_form.value} for '{signal.metric_key}'."
            )

        value = signal.value()
        if value is None:
            raise OperatorError(
                f"{self.operator_id} requires a {self._forms_label()} signal with a value; "
                f"'{signal.metric_key}' has none."
            )

        params = self.parse_parameters(parameters)
        if params is None:
            raise OperatorError(f"Invalid parameters for {self.operator_id}: {parameters!r}")

        return quantize_score(self._score(value, params))

    @abstractmethod
    def _score(self, value: Any, params: OperatorParameters) -> Decimal:
        """Compute the unrounded score for a validated value and parameters."""
        ...

    def _forms_label(self) -> str:
        return "/".join(sorted(form.value for form in self.supported_forms))

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.operator_id}>"
