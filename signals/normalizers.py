"""Value normalizers: one raw tool value in, one canonical value out.

Each normalizer handles exactly one canonical form and returns None when the
raw value can't be expressed in that form. None means "no signal": the
adapter skips the definition rather than guessing.

These are pure functions with no configuration lookups, so each one can be
tested in isolation with plain Python values.
"""

import logging
from collections.abc import Mapping, Sequence
from decimal import Decimal

from schemas.config import TransformationConfig
from utils.numeric import HUNDRED, is_number, to_decimal

logger = logging.getLogger(__name__)

_SCALAR_TYPES = (str, int, float, Decimal, bool)


def resolve_path(data: object, path: str | None) -> object | None:
    """Walk a dot path ("metrics.coverage") through nested mappings.

    Only mappings are descended into. A list index like "issues.0" is not
    supported; any non-mapping intermediate value ends the walk.

    Args:
        data: The normalized payload from a tool parser.
        path: Dot-separated key path. Blank or None resolves to nothing.

    Returns:
        The value at the path, or None if any segment is missing.
    """
    if path is None or not path.strip():
        return None

    current = data
    for part in path.split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(part)
        if current is None:
            return None
    return current


def to_countable(value: object, mappings: Mapping[str, str] | None = None) -> dict[str, int]:
    """Normalize a mapping of counts or a list of category labels.

    Mapping input ({"BLOCKER": 1, "MAJOR": 4}) is treated as pre-counted:
    numeric entries are copied, negative and non-numeric ones dropped. List
    input (["MAJOR", "MAJOR", "MINOR"]) is counted per label. Keys are
    remapped through mappings first; two keys remapped onto the same category
    are summed.

    Any other shape yields an empty dict, which fails signal validation.
    """
    mappings = mappings or {}
    counts: dict[str, int] = {}

    if isinstance(value, Mapping):
        for key, raw in value.items():
            number = to_decimal(raw) if is_number(raw) else None
            if number is None or number < 0:
                continue
            count = int(number)
            category = mappings.get(str(key), str(key))
            counts[category] = counts.get(category, 0) + count

    elif isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        for item in value:
            if item is None or not isinstance(item, _SCALAR_TYPES):
                continue
            label = str(item)
            category = mappings.get(label, label)
            counts[category] = counts.get(category, 0) + 1

    return counts


def to_scalar(value: object, transformation: TransformationConfig | None = None) -> Decimal | None:
    """Normalize a number or numeric string, then apply the transformation.

    Booleans are not numbers here: True is not 1.0 coverage.
    """
    decimal = to_decimal(value)
    if decimal is None:
        return None
    return apply_transformation(decimal, transformation)


def apply_transformation(value: Decimal, transformation: TransformationConfig | None) -> Decimal:
    """Apply a configured SCALAR transformation.

    Supported types:
        percentage: value unchanged (already a percentage).
        invert: 100 - value.
        scale: value * factor, or unchanged when no factor is configured.

    Unknown types leave the value unchanged.
    """
    if transformation is None or transformation.type is None:
        return value

    match transformation.type:
        case "percentage":
            return value
        case "invert":
            return HUNDRED - value
        case "scale":
            return value if transformation.factor is None else value * transformation.factor
        case _:
            logger.debug("Unknown transformation type '%s' — value left unchanged.", transformation.type)
            return value


def to_boolean(value: object) -> bool | None:
    """Normalize bools, "true"/"false" strings and numbers (non-zero is True)."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        token = value.strip().lower()
        if token == "true":
            return True
        if token == "false":
            return False
        return None
    if is_number(value):
        return value != 0
    return None


def to_enum(value: object) -> str | None:
    """Stringify and upper-case any non-None value."""
    if value is None:
        return None
    return str(value).upper()
