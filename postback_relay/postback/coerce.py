"""
Value coercion shared by the template engine, extractors and relay mapping.

Values arriving in postbacks are mostly strings; these helpers convert them
the way the outbound payloads expect (integral numbers render without a
fractional part, booleans render lowercase).
"""
from typing import Any, Optional, Union
import json
import math

Number = Union[int, float]


def _normalize(number: float) -> Number:
    if isinstance(number, float) and number.is_integer():
        return int(number)
    return number


def to_number(value: Any) -> Optional[Number]:
    """Return value as an int/float, or None when it is not numeric."""
    if value is None:
        return None
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        if isinstance(value, float) and math.isnan(value):
            return None
        return _normalize(value)
    text = str(value).strip()
    if not text:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return _normalize(number)


def to_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return str(_normalize(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


def is_blank(value: Any) -> bool:
    return value is None or value == ""
