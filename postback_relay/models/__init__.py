from .endpoint import Endpoint
from .relay import Relay, RelayLog
from .postback_request import PostbackRequest, PostbackStatus
from .click import Link, LinkClick, Redirect, RedirectClick
from .event import ConversionEvent, Revenue

__all__ = [
    "Endpoint",
    "Relay",
    "RelayLog",
    "PostbackRequest",
    "PostbackStatus",
    "Link",
    "LinkClick",
    "Redirect",
    "RedirectClick",
    "ConversionEvent",
    "Revenue",
]
