"""
Property flattening and merging.

Every property layer (global implicit, tracker implicit, category implicit,
event implicit, explicit) is flattened on its own first: nested mappings are
expanded into ``parent_child`` keys until every value is a scalar. Only then
are the layers unioned, later layers overwriting earlier ones. Overriding one
nested implicit value therefore means supplying its flattened key, e.g.
``{"a_b": ...}`` rather than ``{"a": {"b": ...}}`` when ``a`` also has ``d``.
"""

import math
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from .errors import InvalidPropertyValue, PropertyCollision

PROPERTY_SEPARATOR = "_"

SCALAR_TYPES = (str, int, float, bool, type(None))


def _normalize_key(key: Any) -> str:
    if isinstance(key, Enum):
        return str(key.value)
    return str(key)


def normalize_value(value: Any, key: str = "") -> Any:
    """Convert a property value to something JSON-encodable.

    Scalars pass through; dates become ISO 8601 strings, enums their value,
    decimals floats; lists and tuples are normalized element by element.

    Raises:
        InvalidPropertyValue: For anything else (objects, sets, bytes...)
    """
    if isinstance(value, float) and not math.isfinite(value):
        raise InvalidPropertyValue(f"Property {key!r} is {value!r}, which JSON cannot represent")
    if isinstance(value, SCALAR_TYPES):
        return value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Enum):
        return normalize_value(value.value, key)
    if isinstance(value, Decimal):
        return normalize_value(float(value), key)
    if isinstance(value, (list, tuple)):
        normalized: List[Any] = []
        for item in value:
            if isinstance(item, (Mapping, list, tuple)):
                raise InvalidPropertyValue(f"Property {key!r} contains a nested {type(item).__name__}; lists must hold scalars")
            normalized.append(normalize_value(item, key))
        return normalized
    raise InvalidPropertyValue(f"Property {key!r} has unsupported value {value!r} of type {type(value).__name__}")


def flatten_properties(properties: Optional[Mapping[str, Any]], separator: str = PROPERTY_SEPARATOR) -> Dict[str, Any]:
    """Flatten nested mappings into ``parent{separator}child`` keys.

    Example:
        >>> flatten_properties({"a": {"b": "c", "d": "e"}})
        {'a_b': 'c', 'a_d': 'e'}

    Raises:
        PropertyCollision: If two keys in this mapping flatten to the same name
        InvalidPropertyValue: If the layer is not a mapping or a leaf value cannot be normalized
    """
    out: Dict[str, Any] = {}
    if properties is None:
        return out
    if not isinstance(properties, Mapping):
        raise InvalidPropertyValue(f"Properties must be a mapping, got {type(properties).__name__}: {properties!r}")

    def _walk(mapping: Mapping[Any, Any], prefix: str) -> None:
        for raw_key, value in mapping.items():
            key = _normalize_key(raw_key)
            if prefix:
                key = f"{prefix}{separator}{key}"
            if isinstance(value, Mapping):
                _walk(value, key)
                continue
            if key in out:
                raise PropertyCollision(f"Property {key!r} is defined more than once after flattening")
            out[key] = normalize_value(value, key)

    _walk(properties, "")
    return out


def merge_properties(*layers: Optional[Mapping[str, Any]], separator: str = PROPERTY_SEPARATOR) -> Dict[str, Any]:
    """Flatten each layer, then union them with later layers taking precedence.

    Args:
        *layers: Property mappings in increasing precedence; None is skipped

    Returns:
        A new flat dictionary with no mapping values
    """
    merged: Dict[str, Any] = {}
    for layer in layers:
        if layer is None:
            continue
        merged.update(flatten_properties(layer, separator))
    return merged
