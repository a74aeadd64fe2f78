"""
Audit trail for inbound postbacks.

Each inbound call gets one ``PostbackRequest`` row that is created as
``received`` and then moved forward at most twice: once after validation
and once after relay delivery.
"""
from typing import Any, List, Optional
import logging

from sqlalchemy.orm import Session

from ..models import PostbackRequest, PostbackStatus, RelayLog
from .exceptions import StatusTransitionError
from .parser import ParsedRequest

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    PostbackStatus.RECEIVED: {PostbackStatus.FAILED, PostbackStatus.RECORDED},
    PostbackStatus.RECORDED: {PostbackStatus.RELAYED, PostbackStatus.RELAY_FAILED},
}


def can_transition(current: str, new: str) -> bool:
    return new in ALLOWED_TRANSITIONS.get(current, set())


def create_postback_request(
    db: Session,
    endpoint_id: str,
    parsed: ParsedRequest,
    client_ip: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> PostbackRequest:
    record = PostbackRequest(
        endpoint_id=endpoint_id,
        method=parsed.method,
        path=parsed.path,
        query=parsed.query,
        headers=parsed.headers,
        body=parsed.body,
        body_raw=parsed.raw_body,
        content_type=parsed.content_type,
        client_ip=client_ip,
        user_agent=user_agent,
        status=PostbackStatus.RECEIVED,
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def update_postback_request(
    db: Session,
    record: PostbackRequest,
    status: Optional[str] = None,
    **fields: Any,
) -> PostbackRequest:
    if status is not None and status != record.status:
        if not can_transition(record.status, status):
            raise StatusTransitionError(
                f"Postback request {record.id} cannot move from {record.status} to {status}"
            )
        record.status = status

    for name, value in fields.items():
        setattr(record, name, value)

    db.commit()
    db.refresh(record)
    return record


def create_relay_log(db: Session, **fields: Any) -> RelayLog:
    log = RelayLog(**fields)
    db.add(log)
    db.commit()
    return log


def find_postback_requests(db: Session, endpoint_id: str, limit: int = 100, offset: int = 0) -> List[PostbackRequest]:
    return (
        db.query(PostbackRequest)
        .filter(PostbackRequest.endpoint_id == endpoint_id)
        .order_by(PostbackRequest.created_at.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


def clear_postback_requests(db: Session, endpoint_id: str) -> int:
    deleted = (
        db.query(PostbackRequest)
        .filter(PostbackRequest.endpoint_id == endpoint_id)
        .delete(synchronize_session=False)
    )
    db.commit()
    logger.info(f"Cleared {deleted} postback requests for endpoint {endpoint_id}")
    return deleted
