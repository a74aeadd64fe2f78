"""
Tests for field extraction, named transforms and revenue extraction.
"""
from datetime import datetime, timezone

import pytest

from postback_relay.postback.parser import ParsedRequest
from postback_relay.postback.templates import FieldMapping, ReceiveTemplate, get_receive_template
from postback_relay.postback.transformer import (
    convert_type,
    extract_fields,
    extract_revenue,
    extract_with_template,
    transform_fields,
)
from postback_relay.postback.exceptions import TransformError
from postback_relay.postback.transforms import RELAY_TRANSFORMS, TRANSFORMERS, apply_transform


def make_template(*mappings):
    return ReceiveTemplate(id="t", name="T", description="", source="T", field_mappings=mappings)


# Template extraction

def test_query_value_wins_over_body_value():
    template = make_template(FieldMapping("cid", "clickId", "string"))
    parsed = ParsedRequest(method="POST", query={"cid": "A"}, body={"cid": "B"})

    assert extract_with_template(template, parsed) == {"clickId": "A"}


def test_last_mapping_with_a_value_wins():
    template = get_receive_template("generic")
    parsed = ParsedRequest(method="GET", query={"revenue": "5", "payout": "7", "click_id": "A", "cid": "C"})

    fields = extract_with_template(template, parsed)

    assert fields["revenue"] == 7
    assert fields["clickId"] == "C"


def test_defaults_apply_in_mapping_order():
    template = make_template(
        FieldMapping("ccy", "currency", "string"),
        FieldMapping("currency", "currency", "string", default="USD"),
    )

    assert extract_with_template(template, ParsedRequest(method="GET", query={"currency": "EUR"})) == {"currency": "EUR"}
    assert extract_with_template(template, ParsedRequest(method="GET", query={"ccy": "GBP"})) == {"currency": "USD"}
    assert extract_with_template(template, ParsedRequest(method="GET")) == {"currency": "USD"}


def test_defaults_are_kept_as_declared():
    template = make_template(FieldMapping("qty", "quantity", "string", default=1))

    assert extract_with_template(template, ParsedRequest(method="GET")) == {"quantity": 1}


def test_missing_values_are_omitted():
    template = make_template(FieldMapping("click_id", "clickId"), FieldMapping("revenue", "revenue", "number"))

    assert extract_with_template(template, ParsedRequest(method="GET", query={"click_id": "K1"})) == {
        "clickId": "K1"
    }


def test_convert_type():
    assert convert_type("12.5", "number") == 12.5
    assert convert_type("10", "number") == 10
    assert convert_type("n/a", "number") == "n/a"
    assert convert_type("1", "boolean") is True
    assert convert_type("TRUE", "boolean") is True
    assert convert_type("yes", "boolean") is False
    assert convert_type(5, "string") == "5"
    assert convert_type(5, None) == "5"


# Legacy transform

def test_no_field_mapping_merges_query_and_body():
    parsed = ParsedRequest(method="POST", query={"a": "1", "b": "q"}, body={"b": "body"})

    assert transform_fields(parsed, None) == {"a": "1", "b": "body"}


def test_field_mapping_extracts_defaults_and_transforms():
    parsed = ParsedRequest(
        method="POST",
        query={"amt": "12.3456"},
        body={"order": {"status": " APPROVED "}},
        headers={"x-source": "Network"},
    )
    mapping = [
        {"source": "query", "sourcePath": "amt", "targetField": "revenue", "transform": "toFloat"},
        {"source": "body", "sourcePath": "order.status", "targetField": "status", "transform": "trim"},
        {"source": "header", "sourcePath": "X-Source", "targetField": "network", "transform": "toLowerCase"},
        {"source": "query", "sourcePath": "currency", "targetField": "currency", "defaultValue": "USD"},
        {"source": "query", "sourcePath": "missing", "targetField": "missing"},
    ]

    assert transform_fields(parsed, mapping) == {
        "revenue": 12.35,
        "status": "APPROVED",
        "network": "network",
        "currency": "USD",
    }


def test_failed_transform_skips_the_field():
    parsed = ParsedRequest(method="GET", query={"ts": "1e300"})
    mapping = [{"source": "query", "sourcePath": "ts", "targetField": "at", "transform": "timestampToDate"}]

    assert transform_fields(parsed, mapping) == {}


def test_apply_transform_wraps_conversion_errors():
    with pytest.raises(TransformError):
        apply_transform("timestampToDate", "1e300")


def test_extract_fields_prefers_template():
    parsed = ParsedRequest(method="GET", query={"click_id": "K1", "other": "x"})

    assert extract_fields(parsed, {}, get_receive_template("generic")) == {"clickId": "K1"}
    assert extract_fields(parsed, {}) == {"click_id": "K1", "other": "x"}


@pytest.mark.parametrize("name, value, expected", [
    ("toString", 5, "5"),
    ("toNumber", "42", 42),
    ("toNumber", "abc", 0),
    ("toFloat", "3.14159", 3.14),
    ("toFloat", "7.5 USD", 7.5),
    ("toFloat", "abc", 0),
    ("toBoolean", "yes", True),
    ("toBoolean", "1", True),
    ("toBoolean", "no", False),
    ("toUpperCase", "abc", "ABC"),
    ("parseJson", '{"a": 1}', {"a": 1}),
    ("parseJson", "{bad", "{bad"),
    ("timestampToDate", "0", datetime(1970, 1, 1, tzinfo=timezone.utc)),
    ("timestampMsToDate", "1000", datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc)),
    ("timestampToDate", "abc", None),
    ("extractDomain", "https://shop.example.com/a/b?c=1", "shop.example.com"),
    ("extractDomain", "not a url", "not a url"),
    ("extractPath", "https://shop.example.com/a/b?c=1", "/a/b"),
    ("extractPath", "https://shop.example.com", "/"),
])
def test_named_transforms(name, value, expected):
    assert TRANSFORMERS[name](value) == expected


@pytest.mark.parametrize("name, value, expected", [
    ("string", 1.0, "1"),
    ("number", "2.5", 2.5),
    ("number", "abc", None),
    ("boolean", "false", True),
    ("boolean", "", False),
    ("uppercase", "usd", "USD"),
    ("round", "2.5", 3),
    ("round", "-2.5", -2),
    ("floor", "2.9", 2),
    ("ceil", "2.1", 3),
])
def test_relay_transforms(name, value, expected):
    assert RELAY_TRANSFORMS[name](value) == expected


# Revenue

def test_revenue_requires_record_revenue():
    assert extract_revenue({"revenue": 10}, None) is None
    assert extract_revenue({"revenue": 10}, {"recordRevenue": False}) is None


def test_revenue_defaults_currency_to_usd():
    revenue = extract_revenue({"revenue": "12.5"}, {"recordRevenue": True})

    assert revenue.to_dict() == {"revenue": 12.5, "currency": "USD"}


def test_revenue_custom_fields():
    data = {"payout": "3", "ccy": "EUR"}
    revenue = extract_revenue(data, {"recordRevenue": True, "revenueField": "payout", "currencyField": "ccy"})

    assert revenue.to_dict() == {"revenue": 3, "currency": "EUR"}


@pytest.mark.parametrize("value", [None, "abc", "0", "-5"])
def test_revenue_ignores_non_positive_or_invalid_values(value):
    assert extract_revenue({"revenue": value}, {"recordRevenue": True}) is None
