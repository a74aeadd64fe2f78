from fastapi import FastAPI
import logging

from .config import settings
from .database import Base, engine
from . import models  # noqa: F401  registers tables on Base
from .routers import endpoints_router, ingest_router, relays_router, templates_router

# Configure logging
logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
logger = logging.getLogger(__name__)

# Initialize FastAPI
app = FastAPI(title="Postback Relay Service")

# Create tables
Base.metadata.create_all(bind=engine)

app.include_router(ingest_router)
app.include_router(templates_router)
app.include_router(endpoints_router)
app.include_router(relays_router)


# Health check endpoint (unauthenticated)
@app.get("/health")
async def health_check():
    return {"status": "healthy"}
