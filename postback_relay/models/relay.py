from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, JSON, Text
from sqlalchemy.orm import relationship
import uuid

from ..database import Base, utcnow


class Relay(Base):
    __tablename__ = "postback_relays"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    endpoint_id = Column(String(36), ForeignKey("postback_endpoints.id"), index=True, nullable=False)
    name = Column(String(100), nullable=False)
    target_url = Column(String(1000), nullable=False)
    method = Column(String(10), nullable=False, default="POST")
    format = Column(String(10), nullable=False, default="json")
    mapping = Column(JSON, nullable=False, default=dict)
    headers = Column(JSON, nullable=True)
    conditions = Column(JSON, nullable=True)
    retry_config = Column(JSON, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow)

    endpoint = relationship("Endpoint", back_populates="relays")
    logs = relationship("RelayLog", back_populates="relay", cascade="all, delete-orphan")


class RelayLog(Base):
    __tablename__ = "postback_relay_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    relay_id = Column(String(36), ForeignKey("postback_relays.id"), index=True, nullable=False)
    request_id = Column(String(36), index=True, nullable=True)
    attempt = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False)
    status_code = Column(Integer, nullable=True)
    request_body = Column(JSON, nullable=True)
    response_body = Column(Text, nullable=True)
    duration_ms = Column(Integer, nullable=True)
    error = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    relay = relationship("Relay", back_populates="logs")
