"""
Click attribution.

A postback usually echoes back the click id we handed the network. Redirect
clicks are matched by our own token first, then by the network's external
click id; legacy link clicks are the fallback. A matched click is stamped
with ``converted_at`` every time it is seen.
"""
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional
import logging

from sqlalchemy.orm import Session

from ..database import utcnow
from ..models import LinkClick, RedirectClick

logger = logging.getLogger(__name__)

CLICK_ID_PARAMS = (
    "click_id",
    "clickId",
    "clickid",
    "cid",
    "subid",
    "sub1",
    "transaction_id",
    "tid",
    "aff_sub",
    "_ct",  # redirect click token
)

_TRAFFIC_FIELDS = ("gclid", "fbclid", "msclkid", "ttclid")
_UTM_FIELDS = (
    ("utmSource", "utm_source"),
    ("utmMedium", "utm_medium"),
    ("utmCampaign", "utm_campaign"),
    ("utmContent", "utm_content"),
    ("utmTerm", "utm_term"),
)
_GEO_FIELDS = ("country", "region", "city")


@dataclass
class ClickMatch:
    click_id: Optional[str] = None
    link_click: Optional[LinkClick] = None
    redirect_click: Optional[RedirectClick] = None

    @property
    def matched(self) -> bool:
        return self.link_click is not None or self.redirect_click is not None

    def attribution(self) -> Dict[str, Any]:
        if self.redirect_click is not None:
            return redirect_click_attribution(self.redirect_click)
        if self.link_click is not None:
            return link_click_attribution(self.link_click)
        return {}


def find_click_id(data: Mapping[str, Any]) -> Optional[str]:
    for param in CLICK_ID_PARAMS:
        value = data.get(param)
        if isinstance(value, str) and value:
            return value
    return None


def match_click(db: Session, data: Mapping[str, Any]) -> ClickMatch:
    click_id = find_click_id(data)
    if not click_id:
        return ClickMatch()

    redirect_click = db.query(RedirectClick).filter(RedirectClick.click_token == click_id).first()
    if redirect_click is None:
        redirect_click = (
            db.query(RedirectClick)
            .filter(RedirectClick.external_click_id == click_id)
            .order_by(RedirectClick.created_at.desc())
            .first()
        )

    if redirect_click is not None:
        redirect_click.converted_at = utcnow()
        db.commit()
        logger.info(f"Postback matched redirect click {redirect_click.id} ({click_id})")
        return ClickMatch(click_id=click_id, redirect_click=redirect_click)

    link_click = db.query(LinkClick).filter(LinkClick.click_id == click_id).first()
    if link_click is not None:
        link_click.converted_at = utcnow()
        db.commit()
        logger.info(f"Postback matched link click {link_click.id} ({click_id})")

    return ClickMatch(click_id=click_id, link_click=link_click)


def _common_attribution(click) -> Dict[str, Any]:
    created_at = click.created_at
    attribution: Dict[str, Any] = {
        "clickedAt": created_at.isoformat() if created_at else None,
        "timeToConversion": (
            int((utcnow() - created_at).total_seconds() * 1000) if created_at else None
        ),
    }
    for name in _TRAFFIC_FIELDS:
        attribution[name] = getattr(click, name)
    for key, column in _UTM_FIELDS:
        attribution[key] = getattr(click, column)
    for name in _GEO_FIELDS:
        attribution[name] = getattr(click, name)
    return attribution


def link_click_attribution(click: LinkClick) -> Dict[str, Any]:
    link = click.link
    return {
        "originalClickId": click.click_id,
        **_common_attribution(click),
        "linkId": link.id if link else None,
        "linkName": link.name if link else None,
        "linkSlug": link.slug if link else None,
    }


def redirect_click_attribution(click: RedirectClick) -> Dict[str, Any]:
    redirect = click.redirect
    return {
        "originalClickToken": click.click_token,
        "externalClickId": click.external_click_id,
        **_common_attribution(click),
        "twclid": click.twclid,
        "redirectId": redirect.id if redirect else None,
        "redirectName": redirect.name if redirect else None,
        "redirectSlug": redirect.slug if redirect else None,
        "capturedParams": click.captured_params,
    }
