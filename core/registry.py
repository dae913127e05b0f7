"""Operator registry.

OperatorRegistry is the only indirection between configuration and code: a
scoring rule names an operator by string, and the registry resolves that
string to an operator instance. It is built once at process start from the
fixed operator pack, never from configuration, and is read-only afterwards.

The registry enforces one invariant: operator IDs must be unique. Two
operators with the same ID would make every rule using that ID ambiguous,
so duplicates are rejected at construction.
"""

from collections.abc import Iterable
from types import MappingProxyType

from operators import BUILTIN_OPERATORS
from operators.base import ScoringOperator


class OperatorRegistry:
    """Resolves operator IDs to operator instances.

    Used by SignalScoringService for every scored signal. Internally backed
    by a read-only mapping keyed on operator_id, so concurrent lookups from
    parallel scoring calls are safe.

    Attributes:
        _operators: Read-only mapping of operator ID to operator instance.
    """

    def __init__(self, operators: Iterable[ScoringOperator] = BUILTIN_OPERATORS) -> None:
        """Build the registry from a fixed set of operators.

        Args:
            operators: Operator instances to register. Defaults to the
                complete built-in operator set.

        Raises:
            ValueError: If two operators share an operator_id. This is always
                a programming error, not a recoverable condition.
        """
        table: dict[str, ScoringOperator] = {}
        for operator in operators:
            if operator.operator_id in table:
                raise ValueError(
                    f"Operator '{operator.operator_id}' is already registered. "
                    "Each operator must have a unique ID."
                )
            table[operator.operator_id] = operator
        self._operators = MappingProxyType(table)

    def get(self, operator_id: str | None) -> ScoringOperator | None:
        """Look up an operator by ID.

        Returns None rather than raising if the ID is unknown, because a
        stale or mistyped rule is a configuration problem to skip, not a
        reason to stop scoring. The caller decides how to report it.

        Args:
            operator_id: The ID from a scoring rule (e.g. "ENUM_MAPPING").

        Returns:
            The operator instance, or None if no operator has that ID.
        """
        if operator_id is None:
            return None
        return self._operators.get(operator_id)

    def has(self, operator_id: str) -> bool:
        """Return True if an operator with this ID is registered."""
        return operator_id in self._operators

    def available_ids(self) -> list[str]:
        """Return all registered operator IDs, sorted."""
        return sorted(self._operators)

    def __len__(self) -> int:
        return len(self._operators)


DEFAULT_REGISTRY = OperatorRegistry()
