"""
Tests for template checksum validation and the legacy validators.
"""
import hashlib
import hmac
import json

import pytest

from postback_relay.postback.parser import ParsedRequest
from postback_relay.postback.templates import ReceiveTemplate, ValidationConfig, get_receive_template
from postback_relay.postback.validation import validate_postback


def md5(text):
    return hashlib.md5(text.encode()).hexdigest()


def chaturbate_request(checksum, **extra):
    query = {"log_id": "7", "attempt": "1", "checksum": checksum}
    query.update(extra)
    return ParsedRequest(method="GET", query=query)


# Template path

def test_chaturbate_formula_checksum_is_accepted():
    template = get_receive_template("chaturbate")
    result = validate_postback(chaturbate_request(md5("s71")), {"validationSalt": "s"}, template)

    assert result.valid
    assert result.details["expected"] == md5("s71")


def test_template_checksum_compare_ignores_case():
    template = get_receive_template("chaturbate")
    result = validate_postback(chaturbate_request(md5("s71").upper()), {"validationSalt": "s"}, template)

    assert result.valid


def test_template_checksum_mismatch():
    template = get_receive_template("chaturbate")
    result = validate_postback(chaturbate_request("deadbeef"), {"validationSalt": "s"}, template)

    assert not result.valid
    assert result.error == "Checksum mismatch"
    assert result.to_dict()["details"]["received"] == "deadbeef"


def test_template_missing_checksum_field():
    template = get_receive_template("chaturbate")
    parsed = ParsedRequest(method="GET", query={"log_id": "7"})
    result = validate_postback(parsed, {"validationSalt": "s"}, template)

    assert not result.valid
    assert result.error == 'Checksum field "checksum" not found in request'


def test_template_missing_salt_is_a_configuration_error():
    template = get_receive_template("chaturbate")
    result = validate_postback(chaturbate_request(md5("s71")), {}, template)

    assert not result.valid
    assert "validationSalt" in result.error


def test_template_without_validation_always_passes():
    template = get_receive_template("generic")
    assert validate_postback(ParsedRequest(method="GET"), {}, template).valid


@pytest.mark.parametrize("hash_type, digest", [
    ("md5", lambda payload, salt: hashlib.md5(payload.encode()).hexdigest()),
    ("sha256", lambda payload, salt: hashlib.sha256(payload.encode()).hexdigest()),
    ("hmac-sha256", lambda payload, salt: hmac.new(salt.encode(), payload.encode(), hashlib.sha256).hexdigest()),
])
def test_template_fields_are_concatenated_after_salt(hash_type, digest):
    template = ReceiveTemplate(
        id="custom",
        name="Custom",
        description="",
        source="Custom",
        field_mappings=(),
        validation=ValidationConfig(
            type=hash_type,
            fields=("order", "amount"),
            checksum_field="sig",
            salt_config_key="secret",
        ),
    )
    parsed = ParsedRequest(method="POST", query={"order": "o1"}, body={"amount": "5", "sig": digest("ko15", "k")})

    assert validate_postback(parsed, {"secret": "k"}, template).valid


# Legacy path

def legacy(validation_type, **config):
    return {"validation": {"type": validation_type, "config": config}}


def test_no_validation_block_passes():
    assert validate_postback(ParsedRequest(method="GET"), {}).valid
    assert validate_postback(ParsedRequest(method="GET"), {"validation": {"type": "none"}}).valid


def test_legacy_checksum():
    expected = hashlib.sha512("o15secret".encode()).hexdigest()
    parsed = ParsedRequest(method="GET", query={"order": "o1", "amount": "5", "checksum": expected})
    config = legacy("checksum", secret="secret", fields=["order", "amount"])

    assert validate_postback(parsed, config).valid


def test_legacy_checksum_is_case_sensitive():
    expected = hashlib.sha512("o1secret".encode()).hexdigest()
    parsed = ParsedRequest(method="GET", query={"order": "o1", "checksum": expected.upper()})
    result = validate_postback(parsed, legacy("checksum", secret="secret", fields=["order"]))

    assert not result.valid
    assert result.error == "Checksum validation failed"


def test_legacy_checksum_configurable_algorithm():
    expected = hashlib.md5("o1secret".encode()).hexdigest()
    parsed = ParsedRequest(method="GET", query={"order": "o1", "checksum": expected})
    config = legacy("checksum", secret="secret", fields=["order"], algorithm="md5")

    assert validate_postback(parsed, config).valid


def test_legacy_checksum_requires_secret_and_field():
    parsed = ParsedRequest(method="GET", query={})

    assert validate_postback(parsed, legacy("checksum")).error == "Checksum validation requires secret"
    assert validate_postback(parsed, legacy("checksum", secret="x")).error == "Missing checksum parameter"


def test_legacy_hmac_over_raw_body():
    raw = '{"order":"o1"}'
    signature = hmac.new(b"secret", raw.encode(), hashlib.sha256).hexdigest()
    parsed = ParsedRequest(
        method="POST",
        body=json.loads(raw),
        raw_body=raw,
        headers={"x-signature": signature},
    )
    config = legacy("hmac", secret="secret", signatureField="X-Signature")

    assert validate_postback(parsed, config).valid

    parsed.headers["x-signature"] = "0" * 64
    assert validate_postback(parsed, config).error == "HMAC validation failed"


def test_legacy_hmac_over_query_when_no_body():
    signature = hmac.new(b"secret", b'{"order":"o1"}', hashlib.sha256).hexdigest()
    parsed = ParsedRequest(method="GET", query={"order": "o1"}, headers={"signature": signature})

    assert validate_postback(parsed, legacy("hmac", secret="secret")).valid


def test_legacy_hmac_errors():
    parsed = ParsedRequest(method="POST")

    assert validate_postback(parsed, legacy("hmac")).error == "HMAC validation requires secret"
    assert validate_postback(parsed, legacy("hmac", secret="x")).error == "Missing signature"


def test_legacy_api_key_header_and_bearer():
    config = legacy("apiKey", apiKey="k1")

    assert validate_postback(ParsedRequest(method="GET", headers={"api_key": "k1"}), config).valid
    assert validate_postback(ParsedRequest(method="GET", headers={"authorization": "Bearer k1"}), config).valid
    result = validate_postback(ParsedRequest(method="GET", headers={"api_key": "k2"}), config)
    assert result.error == "Invalid API key"


def test_legacy_api_key_in_query():
    config = legacy("apiKey", apiKey="k1", apiKeyLocation="query", apiKeyField="key")

    assert validate_postback(ParsedRequest(method="GET", query={"key": "k1"}), config).valid
    assert validate_postback(ParsedRequest(method="GET"), config).error == "Missing key"
    assert validate_postback(ParsedRequest(method="GET"), legacy("apiKey")).error == (
        "API key validation requires apiKey"
    )


def test_legacy_ip_allowlist():
    config = legacy("ipAllowlist", allowedIps=["1.2.3.4"])

    allowed = ParsedRequest(method="GET", headers={"x-forwarded-for": "1.2.3.4, 10.0.0.1"})
    assert validate_postback(allowed, config).valid

    denied = validate_postback(ParsedRequest(method="GET", headers={"x-real-ip": "5.6.7.8"}), config)
    assert denied.error == "IP not in allowlist"
    assert denied.details == {"clientIp": "5.6.7.8"}

    unknown = validate_postback(ParsedRequest(method="GET"), config)
    assert unknown.error == "Could not determine client IP"
