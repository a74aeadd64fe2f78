from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from datetime import date, datetime, timezone
import json

from .config import settings


def _json_default(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def json_dumps(value) -> str:
    return json.dumps(value, default=_json_default)


def utcnow() -> datetime:
    """Naive UTC timestamp, matching what SQLite hands back."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


engine = create_engine(
    settings.DATABASE_URL,
    json_serializer=json_dumps,
    connect_args={"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {},
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


# Database dependency
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
