from typing import Any, Callable, Dict, Mapping, Optional

from .coerce import to_number, to_str
from .fieldpath import get_path


def _numeric(compare: Callable[[float, float], bool]) -> Callable[[Any, Any], bool]:
    def apply(left, right):
        left_number = to_number(left)
        right_number = to_number(right)
        if left_number is None or right_number is None:
            return False
        return compare(left_number, right_number)

    return apply


OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "eq": lambda left, right: left == right,
    "neq": lambda left, right: left != right,
    "gt": _numeric(lambda left, right: left > right),
    "gte": _numeric(lambda left, right: left >= right),
    "lt": _numeric(lambda left, right: left < right),
    "lte": _numeric(lambda left, right: left <= right),
    "contains": lambda left, right: to_str(right) in to_str(left),
    "startsWith": lambda left, right: to_str(left).startswith(to_str(right)),
    "endsWith": lambda left, right: to_str(left).endswith(to_str(right)),
    "exists": lambda left, right: left is not None,
    "notExists": lambda left, right: left is None,
}


def evaluate_rule(rule: Mapping[str, Any], data: Mapping[str, Any]) -> bool:
    operator = OPERATORS.get(rule.get("operator"))
    if operator is None:
        return False
    return operator(get_path(data, rule["field"]), rule.get("value"))


def evaluate_conditions(conditions: Optional[Mapping[str, Any]], data: Mapping[str, Any]) -> bool:
    """True when the relay should fire. No rules means always."""
    rules = (conditions or {}).get("rules") or []
    if not rules:
        return True

    results = (evaluate_rule(rule, data) for rule in rules)
    if str(conditions.get("logic") or "and").lower() == "or":
        return any(results)
    return all(results)
