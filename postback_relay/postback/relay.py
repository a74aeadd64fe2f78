"""
Outbound relay delivery.

Two modes share this module:

* template relay: one call formatted from a ``RelayTemplate``; the outcome
  is written onto the audit row, no retries.
* multi-relay: every active ``Relay`` of the endpoint runs concurrently on a
  bounded thread pool. Each one checks its conditions, maps the fields and
  retries with exponential backoff, logging every attempt as a ``RelayLog``.

``dispatch_relays`` is the single entrypoint used by both the FastAPI
background task and the Celery worker.
"""
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit
import logging
import time

import requests

from ..config import settings
from ..database import SessionLocal, json_dumps
from ..models import Endpoint, PostbackRequest, PostbackStatus
from .audit import create_relay_log, update_postback_request
from .coerce import to_str
from .conditions import evaluate_conditions
from .exceptions import RelayDeliveryError
from .fieldpath import get_path, set_path
from .templates import RelayTemplate, get_relay_template
from .templating import chain_lookup, compile_template, render_structure
from .transforms import RELAY_TRANSFORMS

logger = logging.getLogger(__name__)

DEFAULT_RETRY_CONFIG = {
    "maxAttempts": 3,
    "initialDelayMs": 1000,
    "maxDelayMs": 30000,
    "backoffMultiplier": 2,
}

BODYLESS_METHODS = ("GET", "HEAD")
RESPONSE_BODY_LIMIT = 1000

_executor = ThreadPoolExecutor(max_workers=settings.RELAY_MAX_WORKERS, thread_name_prefix="relay")


@dataclass
class RelayTarget:
    """Detached copy of a ``Relay`` row, safe to hand to worker threads."""

    id: str
    name: str
    target_url: str
    method: str = "POST"
    format: str = "json"
    mapping: Dict[str, Any] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    conditions: Optional[Dict[str, Any]] = None
    retry_config: Optional[Dict[str, Any]] = None

    @classmethod
    def from_model(cls, relay) -> "RelayTarget":
        return cls(
            id=relay.id,
            name=relay.name,
            target_url=relay.target_url,
            method=(relay.method or "POST").upper(),
            format=relay.format or "json",
            mapping=relay.mapping or {},
            headers=relay.headers or {},
            conditions=relay.conditions,
            retry_config=relay.retry_config,
        )


@dataclass
class DeliveryResult:
    status_code: int
    request_body: Any
    response_body: str
    duration_ms: int


# Backoff

def retry_settings(retry_config: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    return {**DEFAULT_RETRY_CONFIG, **(retry_config or {})}


def backoff_delay(retry_config: Mapping[str, Any], attempt: int) -> float:
    """Delay in ms after the given (1-based) failed attempt."""
    config = retry_settings(retry_config)
    delay = config["initialDelayMs"] * config["backoffMultiplier"] ** (attempt - 1)
    return min(delay, config["maxDelayMs"])


def backoff_delays(retry_config: Optional[Mapping[str, Any]]) -> List[float]:
    config = retry_settings(retry_config)
    return [backoff_delay(config, attempt) for attempt in range(1, config["maxAttempts"])]


# Payload shaping

def apply_mapping(data: Mapping[str, Any], mapping: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    fields = (mapping or {}).get("fields") or []
    if not fields:
        return dict(data)

    result: Dict[str, Any] = {}
    for rule in fields:
        if rule.get("staticValue") is not None:
            value = rule["staticValue"]
        else:
            value = get_path(data, rule["source"]) if rule.get("source") else None
            if value is None:
                value = rule.get("defaultValue")
            transform = RELAY_TRANSFORMS.get(rule.get("transform") or "")
            if value is not None and transform is not None:
                value = transform(value)

        if value is not None:
            set_path(result, rule["target"], value)
    return result


def _query_pairs(data: Any) -> List[Tuple[str, str]]:
    if not isinstance(data, Mapping):
        return []
    return [(key, to_str(value)) for key, value in data.items() if value is not None]


def build_query_url(base_url: str, data: Mapping[str, Any]) -> str:
    """Set each value as a query parameter, replacing any existing one."""
    parts = urlsplit(base_url)
    params = dict(parse_qsl(parts.query, keep_blank_values=True))
    params.update(_query_pairs(data))
    return urlunsplit(parts._replace(query=urlencode(params)))


def encode_body(body: Any, format: str) -> Tuple[str, str]:
    """Return (content type, encoded body) for json, query or form output."""
    if format in ("query", "form"):
        return "application/x-www-form-urlencoded", urlencode(_query_pairs(body))
    return "application/json", json_dumps(body)


def build_headers(content_type: str, extra: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    return {
        "Content-Type": content_type,
        "User-Agent": settings.RELAY_USER_AGENT,
        **(extra or {}),
    }


def _send(method: str, url: str, headers: Dict[str, str], data: Optional[str]) -> requests.Response:
    return requests.request(
        method,
        url,
        data=None if method in BODYLESS_METHODS else data,
        headers=headers,
        timeout=settings.RELAY_TIMEOUT_SECONDS,
    )


def _succeeded(response) -> bool:
    return 200 <= response.status_code < 300


# Multi-relay

def send_relay_request(relay: RelayTarget, data: Mapping[str, Any]) -> DeliveryResult:
    start = time.monotonic()
    payload = apply_mapping(data, relay.mapping)

    url = relay.target_url
    if relay.format == "query":
        url = build_query_url(relay.target_url, payload)
        content_type, body = "text/plain", None
    else:
        content_type, body = encode_body(payload, relay.format)

    try:
        response = _send(relay.method, url, build_headers(content_type, relay.headers), body)
    except requests.RequestException as e:
        raise RelayDeliveryError(f"Relay request error: {e}")

    duration_ms = int((time.monotonic() - start) * 1000)
    if not _succeeded(response):
        raise RelayDeliveryError(
            f"Relay failed: {response.status_code} {response.text}",
            status_code=response.status_code,
            response_body=response.text,
        )

    return DeliveryResult(
        status_code=response.status_code,
        request_body=payload,
        response_body=response.text,
        duration_ms=duration_ms,
    )


def _log_attempt(session_factory, **fields):
    db = session_factory()
    try:
        create_relay_log(db, **fields)
    finally:
        db.close()


def execute_relay(
    relay: RelayTarget,
    data: Mapping[str, Any],
    request_id: Optional[str] = None,
    session_factory: Callable = SessionLocal,
) -> Dict[str, Any]:
    """
    Deliver one relay with retries. Returns a summary; failures are logged
    and summarised, never raised.
    """
    if relay.conditions and not evaluate_conditions(relay.conditions, data):
        return {"relayId": relay.id, "name": relay.name, "skipped": True}

    config = retry_settings(relay.retry_config)
    max_attempts = config["maxAttempts"]
    last_error = None

    for attempt in range(1, max_attempts + 1):
        try:
            result = send_relay_request(relay, data)
        except RelayDeliveryError as e:
            last_error = e
            exhausted = attempt >= max_attempts
            if request_id:
                _log_attempt(
                    session_factory,
                    relay_id=relay.id,
                    request_id=request_id,
                    attempt=attempt,
                    status="failed" if exhausted else "retrying",
                    status_code=e.status_code,
                    error=str(e),
                )
            if not exhausted:
                delay = backoff_delay(config, attempt)
                logger.info(f"Relay {relay.name} attempt {attempt} failed, retrying in {delay}ms: {e}")
                time.sleep(delay / 1000)
            continue

        if request_id:
            _log_attempt(
                session_factory,
                relay_id=relay.id,
                request_id=request_id,
                attempt=attempt,
                status="success",
                status_code=result.status_code,
                request_body=result.request_body,
                response_body=result.response_body,
                duration_ms=result.duration_ms,
            )
        return {
            "relayId": relay.id,
            "name": relay.name,
            "success": True,
            "attempts": attempt,
            "statusCode": result.status_code,
        }

    logger.error(f"Relay {relay.name} failed after {max_attempts} attempts: {last_error}")
    return {
        "relayId": relay.id,
        "name": relay.name,
        "success": False,
        "attempts": max_attempts,
        "error": str(last_error),
    }


def relay_to_targets(
    relays: List[RelayTarget],
    data: Mapping[str, Any],
    request_id: Optional[str] = None,
    session_factory: Callable = SessionLocal,
) -> List[Dict[str, Any]]:
    """Run every relay concurrently; one relay failing never affects another."""
    futures = [
        _executor.submit(execute_relay, relay, data, request_id, session_factory)
        for relay in relays
    ]
    results = []
    for relay, future in zip(relays, futures):
        try:
            results.append(future.result())
        except Exception as e:
            logger.exception(f"Relay {relay.name} crashed")
            results.append({"relayId": relay.id, "name": relay.name, "success": False, "error": str(e)})
    return results


# Template relay

@dataclass
class FormattedRelay:
    url: str
    method: str
    headers: Dict[str, str]
    body: Any


def format_relay_payload(
    fields: Mapping[str, Any], template: RelayTemplate, config: Mapping[str, Any]
) -> FormattedRelay:
    enriched = dict(fields)
    if not enriched.get("timestamp"):
        enriched["timestamp"] = int(time.time())

    lookup = chain_lookup(enriched, config)
    return FormattedRelay(
        url=compile_template(template.url_template).render(lookup),
        method=template.method.upper(),
        headers={key: compile_template(value).render(lookup) for key, value in template.headers.items()},
        body=render_structure(template.body_template, enriched, config),
    )


def execute_template_relay(
    template: RelayTemplate,
    target_url: Optional[str],
    fields: Mapping[str, Any],
    config: Mapping[str, Any],
) -> Dict[str, Any]:
    start = time.monotonic()
    formatted = format_relay_payload(fields, template, config)

    url = formatted.url
    if target_url:
        url = compile_template(target_url).render(chain_lookup(fields, config)) or url
    if not url:
        return {"success": False, "error": "No relay target URL", "duration": 0}

    content_type, body = encode_body(formatted.body, template.format)
    if template.format == "query":
        url = build_query_url(url, formatted.body)
        body = None

    try:
        response = _send(formatted.method, url, build_headers(content_type, formatted.headers), body)
    except requests.RequestException as e:
        logger.error(f"Template relay {template.id} error: {e}")
        return {
            "success": False,
            "url": url,
            "method": formatted.method,
            "error": str(e),
            "duration": int((time.monotonic() - start) * 1000),
        }

    if not _succeeded(response):
        logger.error(f"Template relay {template.id} failed: {response.status_code} {response.text[:200]}")

    return {
        "success": _succeeded(response),
        "url": url,
        "method": formatted.method,
        "body": formatted.body,
        "statusCode": response.status_code,
        "responseBody": response.text[:RESPONSE_BODY_LIMIT],
        "duration": int((time.monotonic() - start) * 1000),
    }


# Dispatch

def dispatch_relays(request_id: str, session_factory: Callable = SessionLocal) -> Optional[Dict[str, Any]]:
    """
    Deliver a recorded postback and write the outcome onto its audit row.
    Returns the relay result, or None when nothing was sent.
    """
    db = session_factory()
    try:
        record = db.get(PostbackRequest, request_id)
        if record is None or record.status != PostbackStatus.RECORDED:
            logger.warning(f"Skipping relay dispatch for postback request {request_id}")
            return None

        endpoint = db.get(Endpoint, record.endpoint_id)
        fields = record.parsed_fields or {}
        config = endpoint.settings.lookup_values()

        template = get_relay_template(endpoint.relay_template_id)
        if template is not None:
            result = execute_template_relay(template, endpoint.relay_target_url, fields, config)
            status = PostbackStatus.RELAYED if result["success"] else PostbackStatus.RELAY_FAILED
            update_postback_request(db, record, status=status, relay_result=result)
            return result

        relays = [RelayTarget.from_model(relay) for relay in endpoint.relays if relay.is_active]
        if not relays:
            return None

        outcomes = relay_to_targets(relays, fields, record.id, session_factory)
        result = {"relays": outcomes}
        executed = [outcome for outcome in outcomes if not outcome.get("skipped")]
        if not executed:
            update_postback_request(db, record, relay_result=result)
            return result

        if all(outcome["success"] for outcome in executed):
            status = PostbackStatus.RELAYED
        else:
            status = PostbackStatus.RELAY_FAILED
        update_postback_request(db, record, status=status, relay_result=result)
        return result
    finally:
        db.close()
