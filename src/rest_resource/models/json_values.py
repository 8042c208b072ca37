"""Tagged classification of decoded JSON values.

``json.loads`` hands back plain Python objects. The drift comparator and
the response projector both need to branch on what kind of JSON value they
are looking at, so every value is first mapped onto a closed set of kinds
and the callers dispatch on that kind instead of chaining ``isinstance``
checks.
"""

import math
from enum import Enum
from typing import Any


class JsonKind(str, Enum):
    """Kinds of JSON values."""

    STRING = "string"
    NUMBER = "number"
    BOOL = "bool"
    OBJECT = "object"
    ARRAY = "array"
    NULL = "null"


def json_kind(value: Any) -> JsonKind:
    """Classify a decoded JSON value.

    ``bool`` is checked before numbers because it subclasses ``int``.

    :param value: Value produced by a JSON decoder
    :type value: Any
    :return: The kind of the value
    :rtype: JsonKind
    :raises TypeError: If the value is not a JSON value
    """
    if value is None:
        return JsonKind.NULL
    if isinstance(value, bool):
        return JsonKind.BOOL
    if isinstance(value, (int, float)):
        return JsonKind.NUMBER
    if isinstance(value, str):
        return JsonKind.STRING
    if isinstance(value, dict):
        return JsonKind.OBJECT
    if isinstance(value, (list, tuple)):
        return JsonKind.ARRAY
    raise TypeError(f"Not a JSON value: {type(value).__name__}")


def is_whole_number(value: float) -> bool:
    """Return True for finite numbers without a fractional part."""
    if isinstance(value, int):
        return True
    return math.isfinite(value) and float(value).is_integer()
