from celery import Celery
import logging

from ..config import settings
from ..database import SessionLocal
from ..postback.relay import dispatch_relays

logger = logging.getLogger(__name__)

celery_app = Celery('postback_relay', broker_url=settings.CELERY_BROKER_URL)


@celery_app.task(bind=True, max_retries=3)
def dispatch_relays_task(self, request_id):
    """Deliver a recorded postback; each relay retries on its own schedule."""
    try:
        return dispatch_relays(request_id, session_factory=SessionLocal)
    except Exception as e:
        # Only infrastructure errors land here (database unavailable and the like)
        logger.error(f"Relay dispatch for {request_id} failed: {e}")
        raise self.retry(exc=e, countdown=min(10 * (2 ** self.request.retries), 900))
