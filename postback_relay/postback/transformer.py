"""
Field extraction.

Receive templates map well-known network parameters onto canonical field
names. Template-less endpoints use the ``fieldMapping`` list from their
config, or pass the merged query and body through untouched.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional
import logging

from .coerce import to_number, to_str
from .parser import ParsedRequest, extract_value, get_request_value
from .templates import ReceiveTemplate
from .exceptions import TransformError
from .transforms import TRANSFORMERS, apply_transform

logger = logging.getLogger(__name__)


def convert_type(value: Any, type_name: Optional[str]) -> Any:
    if type_name == "number":
        number = to_number(value)
        return value if number is None else number
    if type_name == "boolean":
        return value is True or to_str(value).lower() in ("true", "1")
    return to_str(value)


def extract_with_template(template: ReceiveTemplate, parsed: ParsedRequest) -> Dict[str, Any]:
    """
    Mappings are applied in order and several may share a target (``payout``
    and ``revenue`` both feed ``revenue``), so the last one that yields a
    value wins. A mapping whose source is absent writes its default as is.
    """
    result: Dict[str, Any] = {}

    for mapping in template.field_mappings:
        value = get_request_value(parsed, mapping.source)
        if value is not None:
            result[mapping.target] = convert_type(value, mapping.type)
        elif mapping.default is not None:
            result[mapping.target] = mapping.default

    return result


def transform_fields(parsed: ParsedRequest, field_mapping: Optional[List[Mapping[str, Any]]]) -> Dict[str, Any]:
    if field_mapping is None:
        return parsed.merged()

    result: Dict[str, Any] = {}
    for mapping in field_mapping:
        target = mapping["targetField"]
        value = extract_value(parsed, mapping["source"], mapping["sourcePath"])
        if value is None:
            value = mapping.get("defaultValue")
        if value is None:
            continue

        transform = mapping.get("transform")
        if transform and transform in TRANSFORMERS:
            try:
                value = apply_transform(transform, value)
            except TransformError as e:
                logger.error(f"Transform {transform} failed for {target}: {e}")
                continue

        if value is not None:
            result[target] = value

    return result


def extract_fields(
    parsed: ParsedRequest,
    config: Mapping[str, Any],
    template: Optional[ReceiveTemplate] = None,
) -> Dict[str, Any]:
    if template is not None:
        return extract_with_template(template, parsed)
    return transform_fields(parsed, config.get("fieldMapping"))


@dataclass(frozen=True)
class RevenueExtraction:
    revenue: float
    currency: str

    def to_dict(self) -> Dict[str, Any]:
        return {"revenue": self.revenue, "currency": self.currency}


def extract_revenue(data: Mapping[str, Any], event_config: Optional[Mapping[str, Any]]) -> Optional[RevenueExtraction]:
    if not event_config or not event_config.get("recordRevenue"):
        return None

    revenue_field = event_config.get("revenueField") or "revenue"
    currency_field = event_config.get("currencyField") or "currency"

    revenue = to_number(data.get(revenue_field))
    if revenue is None or revenue <= 0:
        return None

    currency = data.get(currency_field)
    return RevenueExtraction(revenue=revenue, currency=to_str(currency) if currency else "USD")
