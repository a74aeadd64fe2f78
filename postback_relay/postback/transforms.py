"""
Named value transforms.

``TRANSFORMERS`` applies to inbound field mapping on template-less
endpoints; ``RELAY_TRANSFORMS`` applies to outbound relay mapping.
"""
from datetime import datetime, timezone
from typing import Any, Callable, Dict
from urllib.parse import urlparse
import json
import math
import re

from .coerce import to_number, to_str
from .exceptions import TransformError

_LEADING_FLOAT = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def _to_number(value):
    number = to_number(value)
    return 0 if number is None else number


def _to_float(value):
    match = _LEADING_FLOAT.match(to_str(value))
    if not match:
        return 0
    number = round(float(match.group(1)), 2)
    return int(number) if number.is_integer() else number


def _to_boolean(value):
    if isinstance(value, bool):
        return value
    return to_str(value).lower() in ("true", "1", "yes")


def _parse_json(value):
    try:
        return json.loads(to_str(value))
    except ValueError:
        return value


def _from_timestamp(seconds):
    if seconds is None:
        return None
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def _timestamp_to_date(value):
    return _from_timestamp(to_number(value))


def _timestamp_ms_to_date(value):
    number = to_number(value)
    return _from_timestamp(None if number is None else number / 1000)


def _absolute_url(value):
    parsed = urlparse(to_str(value))
    if not parsed.scheme or not parsed.netloc:
        return None
    return parsed


def _extract_domain(value):
    parsed = _absolute_url(value)
    return parsed.hostname if parsed else value


def _extract_path(value):
    parsed = _absolute_url(value)
    return (parsed.path or "/") if parsed else value


TRANSFORMERS: Dict[str, Callable[[Any], Any]] = {
    "toString": to_str,
    "toNumber": _to_number,
    "toFloat": _to_float,
    "toBoolean": _to_boolean,
    "toLowerCase": lambda value: to_str(value).lower(),
    "toUpperCase": lambda value: to_str(value).upper(),
    "trim": lambda value: to_str(value).strip(),
    "parseJson": _parse_json,
    "timestampToDate": _timestamp_to_date,
    "timestampMsToDate": _timestamp_ms_to_date,
    "extractDomain": _extract_domain,
    "extractPath": _extract_path,
}


def apply_transform(name: str, value: Any) -> Any:
    try:
        return TRANSFORMERS[name](value)
    except (ValueError, TypeError, OverflowError, OSError) as e:
        raise TransformError(f"{name}: {e}") from e


def _rounding(func):
    def apply(value):
        number = to_number(value)
        return None if number is None else int(func(number))

    return apply


RELAY_TRANSFORMS: Dict[str, Callable[[Any], Any]] = {
    "string": to_str,
    "number": to_number,
    "boolean": bool,
    "uppercase": lambda value: to_str(value).upper(),
    "lowercase": lambda value: to_str(value).lower(),
    "trim": lambda value: to_str(value).strip(),
    "round": _rounding(lambda number: math.floor(number + 0.5)),
    "floor": _rounding(math.floor),
    "ceil": _rounding(math.ceil),
}
