"""
Tests for request body decoding and field lookup.
"""
from postback_relay.postback.parser import (
    ParsedRequest,
    client_ip,
    extract_value,
    get_request_value,
    parse_body,
)


def test_json_content_type_decodes_object():
    assert parse_body('{"a": 1}', "application/json") == {"a": 1}


def test_invalid_json_is_swallowed():
    assert parse_body("{not json", "application/json") is None


def test_json_array_is_not_a_body():
    assert parse_body("[1, 2]", "application/json") is None


def test_form_content_type_decodes_pairs():
    body = parse_body("a=1&b=two", "application/x-www-form-urlencoded")
    assert body == {"a": "1", "b": "two"}


def test_xml_is_kept_raw():
    assert parse_body("<a>1</a>", "text/xml") == {"_xml": "<a>1</a>"}


def test_auto_sniffs_json_then_form_then_raw():
    assert parse_body('{"a": 1}', None) == {"a": 1}
    assert parse_body("a=1&b=2", "text/plain") == {"a": "1", "b": "2"}
    assert parse_body("just some text", "text/plain") == {"raw": "just some text"}


def test_explicit_input_format_overrides_content_type():
    assert parse_body('{"a": 1}', "text/plain", "json") == {"a": 1}
    assert parse_body("a=1", "application/json", "form") == {"a": "1"}
    assert parse_body('{"a": 1}', "application/json", "query") is None


def test_empty_body_is_none():
    assert parse_body("", "application/json") is None
    assert parse_body(None, None) is None


def _parsed(**kwargs):
    return ParsedRequest(method="POST", **kwargs)


def test_request_value_prefers_query_over_body():
    parsed = _parsed(query={"cid": "A"}, body={"cid": "B"})
    assert get_request_value(parsed, "cid") == "A"


def test_request_value_falls_back_to_body_path_then_headers():
    parsed = _parsed(
        body={"data": {"user": {"id": "u1"}}},
        headers={"x-click-id": "h1"},
    )

    assert get_request_value(parsed, "data.user.id") == "u1"
    assert get_request_value(parsed, "X-Click-Id") == "h1"
    assert get_request_value(parsed, "missing") is None


def test_merged_lets_body_win():
    parsed = _parsed(query={"a": "q", "b": "q"}, body={"a": "b"})
    assert parsed.merged() == {"a": "b", "b": "q"}


def test_extract_value_by_source():
    parsed = _parsed(
        query={"q": "1"},
        body={"order": {"total": 10}},
        headers={"x-sig": "abc"},
        path="/x/shop",
        path_params={"slug": "shop"},
    )

    assert extract_value(parsed, "query", "q") == "1"
    assert extract_value(parsed, "body", "order.total") == 10
    assert extract_value(parsed, "header", "X-Sig") == "abc"
    assert extract_value(parsed, "path", "slug") == "shop"
    assert extract_value(parsed, "path", "path") == "/x/shop"
    assert extract_value(parsed, "cookie", "a") is None


def test_client_ip_uses_first_forwarded_address():
    assert client_ip(_parsed(headers={"x-forwarded-for": "1.2.3.4, 10.0.0.1"})) == "1.2.3.4"
    assert client_ip(_parsed(headers={"x-real-ip": "5.6.7.8"})) == "5.6.7.8"
    assert client_ip(_parsed(), "9.9.9.9") == "9.9.9.9"
