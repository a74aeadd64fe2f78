from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy import func
from sqlalchemy.orm import Session
from datetime import timedelta
from typing import List
import logging

from ..config import settings
from ..database import get_db, utcnow
from ..models import Endpoint, PostbackRequest, PostbackStatus, Revenue
from ..postback.audit import clear_postback_requests, find_postback_requests
from ..schemas import (
    EndpointCreate,
    EndpointResponse,
    EndpointUpdate,
    PostbackRequestResponse,
    PostbackStats,
)
from ..security import get_api_key

router = APIRouter(prefix="/api/postbacks", tags=["endpoints"])

logger = logging.getLogger(__name__)

SUCCESSFUL_STATUSES = (PostbackStatus.RECORDED, PostbackStatus.RELAYED, PostbackStatus.RELAY_FAILED)
STATS_WINDOW_DAYS = 30


def get_owned_endpoint(db: Session, endpoint_id: str, owner: str) -> Endpoint:
    endpoint = db.query(Endpoint).filter(
        Endpoint.id == endpoint_id,
        Endpoint.user_id == owner,
        Endpoint.deleted_at.is_(None)
    ).first()
    if not endpoint:
        raise HTTPException(status_code=404, detail="Endpoint not found")
    return endpoint


@router.post("", response_model=EndpointResponse, status_code=201)
def create_endpoint(
    payload: EndpointCreate,
    db: Session = Depends(get_db),
    owner: str = Depends(get_api_key)
):
    """Create a postback endpoint"""
    if db.query(Endpoint).filter(Endpoint.slug == payload.slug).first():
        raise HTTPException(status_code=409, detail="Slug already in use")

    endpoint = Endpoint(
        name=payload.name,
        slug=payload.slug,
        user_id=owner,
        team_id=payload.team_id,
        receive_template_id=payload.receive_template_id,
        relay_template_id=payload.relay_template_id,
        relay_target_url=payload.relay_target_url,
        config=payload.config.to_storage(),
        is_active=payload.is_active,
    )
    db.add(endpoint)
    db.commit()
    db.refresh(endpoint)
    logger.info(f"Created postback endpoint {endpoint.slug} for {owner}")
    return endpoint


@router.get("", response_model=List[EndpointResponse])
def list_endpoints(db: Session = Depends(get_db), owner: str = Depends(get_api_key)):
    return db.query(Endpoint).filter(
        Endpoint.user_id == owner,
        Endpoint.deleted_at.is_(None)
    ).order_by(Endpoint.created_at.desc()).all()


@router.get("/stats", response_model=PostbackStats)
def get_stats(db: Session = Depends(get_db), owner: str = Depends(get_api_key)):
    """Request and revenue totals over the last 30 days"""
    since = utcnow() - timedelta(days=STATS_WINDOW_DAYS)
    endpoint_ids = [row.id for row in db.query(Endpoint.id).filter(Endpoint.user_id == owner)]

    requests = db.query(PostbackRequest).filter(
        PostbackRequest.endpoint_id.in_(endpoint_ids),
        PostbackRequest.created_at >= since
    )
    total = requests.count()
    successful = requests.filter(PostbackRequest.status.in_(SUCCESSFUL_STATUSES)).count()
    failed = requests.filter(PostbackRequest.status == PostbackStatus.FAILED).count()

    revenue = db.query(func.sum(Revenue.revenue)).filter(
        Revenue.endpoint_id.in_(endpoint_ids),
        Revenue.created_at >= since
    ).scalar()

    return PostbackStats(total=total, successful=successful, failed=failed, revenue=float(revenue or 0))


@router.get("/{endpoint_id}", response_model=EndpointResponse)
def get_endpoint(endpoint_id: str, db: Session = Depends(get_db), owner: str = Depends(get_api_key)):
    return get_owned_endpoint(db, endpoint_id, owner)


@router.put("/{endpoint_id}", response_model=EndpointResponse)
def update_endpoint(
    endpoint_id: str,
    payload: EndpointUpdate,
    db: Session = Depends(get_db),
    owner: str = Depends(get_api_key)
):
    endpoint = get_owned_endpoint(db, endpoint_id, owner)

    changes = payload.model_dump(exclude_unset=True)
    if "config" in changes:
        changes["config"] = payload.config.to_storage() if payload.config else {}
    for name, value in changes.items():
        setattr(endpoint, name, value)

    db.commit()
    db.refresh(endpoint)
    return endpoint


@router.delete("/{endpoint_id}")
def delete_endpoint(endpoint_id: str, db: Session = Depends(get_db), owner: str = Depends(get_api_key)):
    """Soft delete; the slug stops resolving immediately"""
    endpoint = get_owned_endpoint(db, endpoint_id, owner)
    endpoint.deleted_at = utcnow()
    db.commit()
    logger.info(f"Deleted postback endpoint {endpoint.slug}")
    return {"ok": True}


# Request audit

@router.get("/{endpoint_id}/requests", response_model=List[PostbackRequestResponse])
def list_requests(
    endpoint_id: str,
    limit: int = Query(100, ge=1, le=settings.REQUESTS_PAGE_LIMIT_MAX),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    owner: str = Depends(get_api_key)
):
    endpoint = get_owned_endpoint(db, endpoint_id, owner)
    return find_postback_requests(db, endpoint.id, limit=limit, offset=offset)


@router.get("/{endpoint_id}/requests/{request_id}", response_model=PostbackRequestResponse)
def get_request(
    endpoint_id: str,
    request_id: str,
    db: Session = Depends(get_db),
    owner: str = Depends(get_api_key)
):
    endpoint = get_owned_endpoint(db, endpoint_id, owner)
    record = db.query(PostbackRequest).filter(
        PostbackRequest.id == request_id,
        PostbackRequest.endpoint_id == endpoint.id
    ).first()
    if not record:
        raise HTTPException(status_code=404, detail="Request not found")
    return record


@router.post("/{endpoint_id}/requests/clear")
def clear_requests(endpoint_id: str, db: Session = Depends(get_db), owner: str = Depends(get_api_key)):
    endpoint = get_owned_endpoint(db, endpoint_id, owner)
    deleted = clear_postback_requests(db, endpoint.id)
    return {"ok": True, "deleted": deleted}
