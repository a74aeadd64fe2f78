"""
Ingestion pipeline: validate, extract, attribute and record one postback.

Relay delivery is not part of this; the caller schedules
``relay.dispatch_relays`` once the request is recorded.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional
import logging
import uuid

from sqlalchemy.orm import Session

from ..models import ConversionEvent, Endpoint, PostbackRequest, PostbackStatus, Revenue
from .audit import create_postback_request, update_postback_request
from .clickmatch import ClickMatch, match_click
from .parser import ParsedRequest
from .templates import get_receive_template
from .transformer import RevenueExtraction, extract_fields, extract_revenue
from .validation import validate_postback

logger = logging.getLogger(__name__)


@dataclass
class IngestOutcome:
    record: PostbackRequest
    accepted: bool
    error: Optional[str] = None
    event_id: Optional[str] = None
    fields: Optional[Dict[str, Any]] = None
    revenue: Optional[RevenueExtraction] = None


def find_active_endpoint(db: Session, slug: str) -> Optional[Endpoint]:
    endpoint = db.query(Endpoint).filter(Endpoint.slug == slug).first()
    if endpoint is None or not endpoint.is_active or endpoint.deleted_at is not None:
        return None
    return endpoint


def _session_id(endpoint: Endpoint, match: ClickMatch, ip: Optional[str], user_agent: Optional[str]) -> str:
    if match.link_click is not None and match.link_click.session_id:
        return match.link_click.session_id
    return str(uuid.uuid5(uuid.NAMESPACE_URL, f"{endpoint.id}:{ip or ''}:{user_agent or ''}"))


def save_conversion_event(
    db: Session,
    endpoint: Endpoint,
    event_name: str,
    event_data: Dict[str, Any],
    session_id: str,
    url_query: str = "",
    client_ip: Optional[str] = None,
    user_agent: Optional[str] = None,
    revenue: Optional[RevenueExtraction] = None,
) -> str:
    event = ConversionEvent(
        endpoint_id=endpoint.id,
        session_id=session_id,
        event_name=event_name,
        event_data=event_data,
        url_path=f"/x/{endpoint.slug}",
        url_query=url_query,
        client_ip=client_ip,
        user_agent=user_agent,
    )
    db.add(event)
    db.flush()

    if revenue is not None:
        db.add(
            Revenue(
                endpoint_id=endpoint.id,
                event_id=event.id,
                event_name=event_name,
                revenue=Decimal(str(revenue.revenue)),
                currency=revenue.currency,
            )
        )

    db.commit()
    return event.id


def ingest_postback(
    db: Session,
    endpoint: Endpoint,
    parsed: ParsedRequest,
    client_ip: Optional[str] = None,
    user_agent: Optional[str] = None,
    url_query: str = "",
) -> IngestOutcome:
    config = endpoint.settings.lookup_values()
    template = get_receive_template(endpoint.receive_template_id)

    record = create_postback_request(db, endpoint.id, parsed, client_ip=client_ip, user_agent=user_agent)

    fields = extract_fields(parsed, config, template)

    validation = validate_postback(parsed, config, template)
    if not validation.valid:
        logger.info(f"Postback rejected for endpoint {endpoint.slug}: {validation.error}")
        update_postback_request(
            db, record, status=PostbackStatus.FAILED, parsed_fields=fields, validation=validation.to_dict()
        )
        return IngestOutcome(record=record, accepted=False, error=validation.error or "Validation failed", fields=fields)

    match = match_click(db, parsed.merged())
    event_data = {
        **fields,
        **match.attribution(),
        "matchedClickId": match.click_id,
        "hasAttribution": match.matched,
    }

    event_config = config.get("eventConfig") or {}
    event_name = event_config.get("eventName") or "conversion"
    revenue = extract_revenue(fields, event_config)

    event_id = save_conversion_event(
        db,
        endpoint,
        event_name,
        event_data,
        session_id=_session_id(endpoint, match, client_ip, user_agent),
        url_query=url_query,
        client_ip=client_ip,
        user_agent=user_agent,
        revenue=revenue,
    )

    update_postback_request(
        db,
        record,
        status=PostbackStatus.RECORDED,
        parsed_fields=fields,
        validation=validation.to_dict(),
        event_id=event_id,
        link_click_id=match.link_click.id if match.link_click is not None else None,
        redirect_click_id=match.redirect_click.id if match.redirect_click is not None else None,
    )
    return IngestOutcome(record=record, accepted=True, event_id=event_id, fields=fields, revenue=revenue)
