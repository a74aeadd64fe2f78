from sqlalchemy import Column, String, DateTime, ForeignKey, JSON, Numeric
import uuid

from ..database import Base, utcnow


class ConversionEvent(Base):
    __tablename__ = "conversion_events"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    endpoint_id = Column(String(36), ForeignKey("postback_endpoints.id"), index=True, nullable=False)
    session_id = Column(String(36), nullable=True)
    event_name = Column(String(50), nullable=False)
    event_data = Column(JSON, nullable=True)
    url_path = Column(String(500), nullable=True)
    url_query = Column(String(2000), nullable=True)
    client_ip = Column(String(45), nullable=True)
    user_agent = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=utcnow, index=True)


class Revenue(Base):
    __tablename__ = "revenue"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    endpoint_id = Column(String(36), ForeignKey("postback_endpoints.id"), index=True, nullable=False)
    event_id = Column(String(36), index=True, nullable=False)
    event_name = Column(String(50), nullable=False)
    revenue = Column(Numeric(19, 4), nullable=False)
    currency = Column(String(10), nullable=False, default="USD")
    created_at = Column(DateTime, default=utcnow, index=True)
