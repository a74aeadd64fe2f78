"""
Request parsing for postback ingestion.

Turns an inbound HTTP request into a ``ParsedRequest``: flat query map,
lowercased headers and a body decoded from JSON, XML (kept raw) or
form-urlencoded input.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from urllib.parse import parse_qsl
import json
import logging

from starlette.requests import Request

from .fieldpath import get_path

logger = logging.getLogger(__name__)

BODY_METHODS = ("POST", "PUT", "PATCH")


@dataclass
class ParsedRequest:
    method: str
    query: Dict[str, Any] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[Dict[str, Any]] = None
    raw_body: Optional[str] = None
    content_type: Optional[str] = None
    path: str = ""
    path_params: Dict[str, str] = field(default_factory=dict)

    def merged(self) -> Dict[str, Any]:
        """Query and body in one map; body wins on key collision."""
        return {**self.query, **(self.body or {})}


def _parse_json_object(raw: str) -> Optional[Dict[str, Any]]:
    value = json.loads(raw)
    if not isinstance(value, dict):
        raise ValueError("JSON body is not an object")
    return value


def _parse_form(raw: str, strict: bool = False) -> Dict[str, Any]:
    return dict(parse_qsl(raw, keep_blank_values=True, strict_parsing=strict))


def parse_body(raw: Optional[str], content_type: Optional[str], input_format: str = "auto"):
    """
    Decode a request body.

    Explicit formats force their parser (``query`` means the payload lives in
    the query string only). ``auto`` follows the content type when it names
    JSON, XML or form data, and otherwise tries a JSON object, then strict
    form decoding, then falls back to ``{"raw": text}``.

    Returns None when there is no body or it cannot be decoded.
    """
    if not raw:
        return None

    fmt = (input_format or "auto").lower()
    ctype = (content_type or "").lower()

    try:
        if fmt == "query":
            return None
        if fmt == "json" or (fmt == "auto" and "application/json" in ctype):
            return _parse_json_object(raw)
        if fmt == "xml" or (fmt == "auto" and ("application/xml" in ctype or "text/xml" in ctype)):
            # XML is kept raw; the template layer reads from query/headers for these sources
            return {"_xml": raw}
        if fmt == "form" or (fmt == "auto" and "x-www-form-urlencoded" in ctype):
            return _parse_form(raw)
    except ValueError as e:
        logger.warning(f"Body parse error ({fmt}, {ctype or 'no content type'}): {e}")
        return None

    try:
        return _parse_json_object(raw)
    except ValueError:
        pass
    try:
        return _parse_form(raw, strict=True)
    except ValueError:
        return {"raw": raw}


async def parse_postback_request(
    request: Request,
    input_format: str = "auto",
    path_params: Optional[Dict[str, str]] = None,
) -> ParsedRequest:
    method = request.method.upper()
    content_type = request.headers.get("content-type")

    query = dict(request.query_params)
    headers = {key.lower(): value for key, value in request.headers.items()}

    raw_body = None
    body = None
    if method in BODY_METHODS:
        try:
            raw_body = (await request.body()).decode("utf-8", errors="replace")
        except Exception as e:
            logger.warning(f"Could not read request body: {e}")
        body = parse_body(raw_body, content_type, input_format)

    return ParsedRequest(
        method=method,
        query=query,
        headers=headers,
        body=body,
        raw_body=raw_body,
        content_type=content_type,
        path=request.url.path,
        path_params=dict(path_params or {}),
    )


def extract_value(parsed: ParsedRequest, source: str, path: str) -> Any:
    """Read a dot-path from one bucket: body, query, header or path."""
    if source == "body":
        data = parsed.body or {}
    elif source == "query":
        data = parsed.query
    elif source == "header":
        data = parsed.headers
        path = path.lower()
    elif source == "path":
        data = {"path": parsed.path, **parsed.path_params}
    else:
        return None
    return get_path(data, path)


def get_request_value(parsed: ParsedRequest, name: str) -> Any:
    """
    Look a field up across the request in priority order: query, body key,
    body dot-path, then headers (case-insensitive).
    """
    if name in parsed.query:
        return parsed.query[name]

    if parsed.body:
        if name in parsed.body:
            return parsed.body[name]
        value = get_path(parsed.body, name)
        if value is not None:
            return value

    lowered = name.lower()
    for key, value in parsed.headers.items():
        if key.lower() == lowered:
            return value

    return None


def client_ip(parsed: ParsedRequest, fallback: Optional[str] = None) -> Optional[str]:
    forwarded = parsed.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return parsed.headers.get("x-real-ip") or fallback
