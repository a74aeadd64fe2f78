# postback_relay/routers/__init__.py
from .ingest import router as ingest_router
from .endpoints import router as endpoints_router
from .relays import router as relays_router
from .templates import router as templates_router

__all__ = ["ingest_router", "endpoints_router", "relays_router", "templates_router"]
