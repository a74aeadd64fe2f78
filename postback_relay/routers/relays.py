from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy.orm import Session
from typing import List

from ..database import get_db
from ..models import Relay, RelayLog
from ..schemas import RelayCreate, RelayLogResponse, RelayResponse, RelayUpdate
from ..security import get_api_key
from .endpoints import get_owned_endpoint

router = APIRouter(prefix="/api/postbacks/{endpoint_id}/relays", tags=["relays"])

# Nested config objects are stored the way they are posted: camelCase JSON
JSON_FIELDS = ("mapping", "conditions", "retry_config")


def _relay_values(payload, exclude_unset=False) -> dict:
    values = payload.model_dump(exclude_unset=exclude_unset)
    for name in JSON_FIELDS:
        if name in values:
            nested = getattr(payload, name)
            values[name] = nested.model_dump(by_alias=True, exclude_none=True) if nested is not None else None
    return values


def get_endpoint_relay(db: Session, endpoint_id: str, relay_id: str) -> Relay:
    relay = db.query(Relay).filter(Relay.id == relay_id, Relay.endpoint_id == endpoint_id).first()
    if not relay:
        raise HTTPException(status_code=404, detail="Relay not found")
    return relay


@router.get("", response_model=List[RelayResponse])
def list_relays(endpoint_id: str, db: Session = Depends(get_db), owner: str = Depends(get_api_key)):
    endpoint = get_owned_endpoint(db, endpoint_id, owner)
    return db.query(Relay).filter(Relay.endpoint_id == endpoint.id).order_by(Relay.created_at).all()


@router.post("", response_model=RelayResponse, status_code=201)
def create_relay(
    endpoint_id: str,
    payload: RelayCreate,
    db: Session = Depends(get_db),
    owner: str = Depends(get_api_key)
):
    endpoint = get_owned_endpoint(db, endpoint_id, owner)
    relay = Relay(endpoint_id=endpoint.id, **_relay_values(payload))
    db.add(relay)
    db.commit()
    db.refresh(relay)
    return relay


@router.get("/{relay_id}", response_model=RelayResponse)
def get_relay(endpoint_id: str, relay_id: str, db: Session = Depends(get_db), owner: str = Depends(get_api_key)):
    endpoint = get_owned_endpoint(db, endpoint_id, owner)
    return get_endpoint_relay(db, endpoint.id, relay_id)


@router.put("/{relay_id}", response_model=RelayResponse)
def update_relay(
    endpoint_id: str,
    relay_id: str,
    payload: RelayUpdate,
    db: Session = Depends(get_db),
    owner: str = Depends(get_api_key)
):
    endpoint = get_owned_endpoint(db, endpoint_id, owner)
    relay = get_endpoint_relay(db, endpoint.id, relay_id)
    for name, value in _relay_values(payload, exclude_unset=True).items():
        setattr(relay, name, value)
    db.commit()
    db.refresh(relay)
    return relay


@router.delete("/{relay_id}")
def delete_relay(endpoint_id: str, relay_id: str, db: Session = Depends(get_db), owner: str = Depends(get_api_key)):
    endpoint = get_owned_endpoint(db, endpoint_id, owner)
    relay = get_endpoint_relay(db, endpoint.id, relay_id)
    db.delete(relay)
    db.commit()
    return {"ok": True}


@router.get("/{relay_id}/logs", response_model=List[RelayLogResponse])
def list_relay_logs(
    endpoint_id: str,
    relay_id: str,
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    owner: str = Depends(get_api_key)
):
    endpoint = get_owned_endpoint(db, endpoint_id, owner)
    relay = get_endpoint_relay(db, endpoint.id, relay_id)
    return db.query(RelayLog).filter(
        RelayLog.relay_id == relay.id
    ).order_by(RelayLog.created_at.desc()).limit(limit).all()
