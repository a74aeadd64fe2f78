from sqlalchemy import Column, String, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
import uuid

from ..database import Base, utcnow


class Link(Base):
    __tablename__ = "links"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(100), nullable=False)
    slug = Column(String(100), unique=True, index=True, nullable=False)
    url = Column(String(1000), nullable=False)
    created_at = Column(DateTime, default=utcnow)

    clicks = relationship("LinkClick", back_populates="link")


class LinkClick(Base):
    __tablename__ = "link_clicks"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    link_id = Column(String(36), ForeignKey("links.id"), index=True, nullable=True)
    click_id = Column(String(100), unique=True, index=True, nullable=False)
    session_id = Column(String(36), nullable=True)

    gclid = Column(String(255), nullable=True)
    fbclid = Column(String(255), nullable=True)
    msclkid = Column(String(255), nullable=True)
    ttclid = Column(String(255), nullable=True)

    utm_source = Column(String(255), nullable=True)
    utm_medium = Column(String(255), nullable=True)
    utm_campaign = Column(String(255), nullable=True)
    utm_content = Column(String(255), nullable=True)
    utm_term = Column(String(255), nullable=True)

    country = Column(String(2), nullable=True)
    region = Column(String(20), nullable=True)
    city = Column(String(50), nullable=True)

    created_at = Column(DateTime, default=utcnow)
    converted_at = Column(DateTime, nullable=True)

    link = relationship("Link", back_populates="clicks")


class Redirect(Base):
    __tablename__ = "redirects"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(100), nullable=False)
    slug = Column(String(100), unique=True, index=True, nullable=False)
    target_url = Column(String(1000), nullable=False)
    created_at = Column(DateTime, default=utcnow)

    clicks = relationship("RedirectClick", back_populates="redirect")


class RedirectClick(Base):
    __tablename__ = "redirect_clicks"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    redirect_id = Column(String(36), ForeignKey("redirects.id"), index=True, nullable=True)
    # Token appended to the target URL as _ct
    click_token = Column(String(50), unique=True, index=True, nullable=False)
    external_click_id = Column(String(255), index=True, nullable=True)

    gclid = Column(String(255), nullable=True)
    fbclid = Column(String(255), nullable=True)
    msclkid = Column(String(255), nullable=True)
    ttclid = Column(String(255), nullable=True)
    twclid = Column(String(255), nullable=True)

    utm_source = Column(String(255), nullable=True)
    utm_medium = Column(String(255), nullable=True)
    utm_campaign = Column(String(255), nullable=True)
    utm_content = Column(String(255), nullable=True)
    utm_term = Column(String(255), nullable=True)

    country = Column(String(2), nullable=True)
    region = Column(String(20), nullable=True)
    city = Column(String(50), nullable=True)

    captured_params = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    converted_at = Column(DateTime, nullable=True)

    redirect = relationship("Redirect", back_populates="clicks")
