from sqlalchemy import Column, String, DateTime, ForeignKey, JSON, Text
import uuid

from ..database import Base, utcnow


class PostbackStatus:
    RECEIVED = "received"
    FAILED = "failed"
    RECORDED = "recorded"
    RELAYED = "relayed"
    RELAY_FAILED = "relay_failed"


class PostbackRequest(Base):
    __tablename__ = "postback_requests"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    endpoint_id = Column(String(36), ForeignKey("postback_endpoints.id"), index=True, nullable=False)
    method = Column(String(10), nullable=False)
    path = Column(String(500), nullable=False)
    query = Column(JSON, nullable=True)
    headers = Column(JSON, nullable=True)
    body = Column(JSON, nullable=True)
    body_raw = Column(Text, nullable=True)
    content_type = Column(String(200), nullable=True)
    client_ip = Column(String(45), nullable=True)
    user_agent = Column(String(500), nullable=True)
    status = Column(String(20), nullable=False, default=PostbackStatus.RECEIVED, index=True)
    parsed_fields = Column(JSON, nullable=True)
    validation = Column(JSON, nullable=True)
    relay_result = Column(JSON, nullable=True)
    event_id = Column(String(36), nullable=True)
    link_click_id = Column(String(36), nullable=True)
    redirect_click_id = Column(String(36), nullable=True)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
