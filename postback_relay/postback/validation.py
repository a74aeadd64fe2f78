"""
Postback validation.

Endpoints with a receive template are checked against the template's
checksum definition; template-less endpoints use the legacy
``config.validation`` block (checksum, hmac, apiKey or ipAllowlist).
Validators raise ``ValidationFailure``/``ConfigurationError`` and
``validate_postback`` turns those into a ``ValidationResult``.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional
import hashlib
import hmac
import json
import logging

from .coerce import to_str
from .exceptions import ConfigurationError, ValidationFailure
from .parser import ParsedRequest, client_ip, get_request_value
from .templates import ReceiveTemplate
from .templating import compile_template

logger = logging.getLogger(__name__)

LEGACY_HASH_ALGORITHMS = ("md5", "sha1", "sha256", "sha512")


@dataclass
class ValidationResult:
    valid: bool
    error: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"valid": self.valid}
        if self.error:
            result["error"] = self.error
        if self.details:
            result["details"] = self.details
        return result


def _digest(algorithm: str, payload: str, secret: Optional[str] = None) -> str:
    data = payload.encode("utf-8")
    if algorithm == "hmac-sha256":
        return hmac.new((secret or "").encode("utf-8"), data, hashlib.sha256).hexdigest()
    if algorithm in ("md5", "sha256"):
        return hashlib.new(algorithm, data).hexdigest()
    raise ConfigurationError(f"Unsupported validation type: {algorithm}")


# Template validation

def build_checksum_payload(template: ReceiveTemplate, parsed: ParsedRequest, salt: str) -> str:
    rules = template.validation
    if rules.formula:
        values = {"salt": salt}

        def lookup(name):
            if name in values:
                return values[name]
            return get_request_value(parsed, name)

        return compile_template(rules.formula).render(lookup)

    parts = [salt]
    for name in rules.fields:
        parts.append(to_str(get_request_value(parsed, name)))
    return "".join(parts)


def validate_with_template(
    template: ReceiveTemplate, parsed: ParsedRequest, config: Mapping[str, Any]
) -> ValidationResult:
    rules = template.validation
    if rules is None or rules.type == "none":
        return ValidationResult(valid=True)

    received = get_request_value(parsed, rules.checksum_field)
    if received is None or received == "":
        raise ValidationFailure(f'Checksum field "{rules.checksum_field}" not found in request')

    salt = ""
    if rules.salt_config_key:
        salt = to_str(config.get(rules.salt_config_key))
        if not salt:
            raise ConfigurationError(f'Missing "{rules.salt_config_key}" in endpoint config')

    expected = _digest(rules.type, build_checksum_payload(template, parsed, salt), secret=salt)
    received = to_str(received)
    details = {"expected": expected, "received": received}

    if expected.lower() != received.lower():
        return ValidationResult(valid=False, error="Checksum mismatch", details=details)
    return ValidationResult(valid=True, details=details)


# Legacy validation

def _legacy_hash(algorithm: str, payload: str) -> str:
    if algorithm not in LEGACY_HASH_ALGORITHMS:
        raise ConfigurationError(f"Unsupported checksum algorithm: {algorithm}")
    return hashlib.new(algorithm, payload.encode("utf-8")).hexdigest()


def validate_checksum(parsed: ParsedRequest, config: Mapping[str, Any]) -> ValidationResult:
    checksum_field = config.get("checksumField") or "checksum"
    secret = config.get("secret")
    if not secret:
        raise ConfigurationError("Checksum validation requires secret")

    data = parsed.merged()
    received = data.get(checksum_field)
    if not received:
        raise ValidationFailure(f"Missing {checksum_field} parameter")

    parts = [to_str(data[name]) for name in config.get("fields") or [] if data.get(name) is not None]
    parts.append(secret)
    expected = _legacy_hash(config.get("algorithm") or "sha512", "".join(parts))

    if to_str(received) != expected:
        raise ValidationFailure("Checksum validation failed")
    return ValidationResult(valid=True)


def validate_hmac(parsed: ParsedRequest, config: Mapping[str, Any]) -> ValidationResult:
    signature_field = config.get("signatureField") or "signature"
    secret = config.get("secret")
    location = config.get("signatureLocation") or "header"
    if not secret:
        raise ConfigurationError("HMAC validation requires secret")

    if location == "header":
        signature = parsed.headers.get(signature_field.lower())
    else:
        signature = parsed.query.get(signature_field) or (parsed.body or {}).get(signature_field)
    if not signature:
        raise ValidationFailure(f"Missing {signature_field}")

    algorithm = config.get("algorithm") or "sha256"
    if algorithm not in LEGACY_HASH_ALGORITHMS:
        raise ConfigurationError(f"Unsupported HMAC algorithm: {algorithm}")

    payload = parsed.raw_body or json.dumps(parsed.query, separators=(",", ":"))
    expected = hmac.new(secret.encode("utf-8"), payload.encode("utf-8"), algorithm).hexdigest()

    if not hmac.compare_digest(to_str(signature).encode("utf-8"), expected.encode("utf-8")):
        raise ValidationFailure("HMAC validation failed")
    return ValidationResult(valid=True)


def validate_api_key(parsed: ParsedRequest, config: Mapping[str, Any]) -> ValidationResult:
    key_field = config.get("apiKeyField") or "api_key"
    api_key = config.get("apiKey")
    location = config.get("apiKeyLocation") or "header"
    if not api_key:
        raise ConfigurationError("API key validation requires apiKey")

    if location == "header":
        received = parsed.headers.get(key_field.lower())
        if not received:
            authorization = parsed.headers.get("authorization") or ""
            if authorization[:7].lower() == "bearer ":
                received = authorization[7:].lstrip()
    else:
        received = parsed.query.get(key_field) or (parsed.body or {}).get(key_field)

    if not received:
        raise ValidationFailure(f"Missing {key_field}")
    if received != api_key:
        raise ValidationFailure("Invalid API key")
    return ValidationResult(valid=True)


def validate_ip_allowlist(parsed: ParsedRequest, config: Mapping[str, Any]) -> ValidationResult:
    allowed = config.get("allowedIps") or []
    ip = client_ip(parsed)
    if not ip:
        raise ValidationFailure("Could not determine client IP")
    if ip not in allowed:
        return ValidationResult(valid=False, error="IP not in allowlist", details={"clientIp": ip})
    return ValidationResult(valid=True)


LEGACY_VALIDATORS = {
    "checksum": validate_checksum,
    "hmac": validate_hmac,
    "apiKey": validate_api_key,
    "ipAllowlist": validate_ip_allowlist,
}


def validate_legacy(parsed: ParsedRequest, validation: Optional[Mapping[str, Any]]) -> ValidationResult:
    if not validation or validation.get("type") in (None, "none"):
        return ValidationResult(valid=True)
    validator = LEGACY_VALIDATORS.get(validation["type"])
    if validator is None:
        return ValidationResult(valid=True)
    return validator(parsed, validation.get("config") or {})


def validate_postback(
    parsed: ParsedRequest,
    config: Mapping[str, Any],
    template: Optional[ReceiveTemplate] = None,
) -> ValidationResult:
    """
    Run the template checks when a receive template is given, the legacy
    ``validation`` block otherwise. Never raises for a rejected request.
    """
    try:
        if template is not None:
            return validate_with_template(template, parsed, config)
        return validate_legacy(parsed, config.get("validation"))
    except ConfigurationError as e:
        logger.warning(f"Endpoint validation is misconfigured: {e}")
        return ValidationResult(valid=False, error=str(e))
    except ValidationFailure as e:
        return ValidationResult(valid=False, error=str(e))


__all__ = [
    "ValidationResult",
    "build_checksum_payload",
    "validate_api_key",
    "validate_checksum",
    "validate_hmac",
    "validate_ip_allowlist",
    "validate_legacy",
    "validate_postback",
    "validate_with_template",
]
