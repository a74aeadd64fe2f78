from sqlalchemy import Column, String, Boolean, DateTime, JSON
from sqlalchemy.orm import relationship
import uuid

from ..database import Base, utcnow


class Endpoint(Base):
    __tablename__ = "postback_endpoints"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(100), nullable=False)
    slug = Column(String(100), unique=True, index=True, nullable=False)
    user_id = Column(String(100), index=True, nullable=True)
    team_id = Column(String(100), index=True, nullable=True)
    receive_template_id = Column(String(50), nullable=True)
    relay_template_id = Column(String(50), nullable=True)
    relay_target_url = Column(String(1000), nullable=True)
    # EndpointConfig dumped with camelCase keys
    config = Column(JSON, nullable=False, default=dict)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    deleted_at = Column(DateTime, nullable=True)

    relays = relationship("Relay", back_populates="endpoint", cascade="all, delete-orphan")

    @property
    def settings(self):
        from ..schemas import EndpointConfig

        return EndpointConfig.model_validate(self.config or {})
