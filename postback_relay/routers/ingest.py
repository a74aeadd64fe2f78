from fastapi import APIRouter, BackgroundTasks, HTTPException, Request, Depends
from fastapi.responses import JSONResponse, Response
from sqlalchemy.orm import Session
from datetime import datetime, timezone
import logging
import traceback

from ..config import settings
from ..database import get_db
from ..postback.parser import client_ip, parse_postback_request
from ..postback.pipeline import find_active_endpoint, ingest_postback
from ..postback.relay import dispatch_relays

router = APIRouter(tags=["ingest"])

logger = logging.getLogger(__name__)

INGEST_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


def serialize_error(error: Exception) -> dict:
    return {
        "name": type(error).__name__,
        "message": str(error),
        "stack": "".join(traceback.format_exception(type(error), error, error.__traceback__)),
    }


def schedule_relays(background_tasks: BackgroundTasks, request_id: str):
    if settings.use_celery:
        from ..workers.celery_worker import dispatch_relays_task

        try:
            dispatch_relays_task.delay(request_id)
        except Exception as e:
            # Already recorded; the record stays recorded and the caller still gets its ack
            logger.error(f"Could not queue relay dispatch for postback request {request_id}: {serialize_error(e)}")
            return
        logger.info(f"Queued relay dispatch for postback request {request_id}")
    else:
        background_tasks.add_task(dispatch_relays, request_id)


@router.api_route("/x/{slug}", methods=INGEST_METHODS)
async def receive_postback(
    slug: str,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db)
):
    """
    Receive a postback, record it and schedule relay delivery
    """
    try:
        endpoint = find_active_endpoint(db, slug)
        if endpoint is None:
            raise HTTPException(status_code=404, detail="Endpoint not found")

        config = endpoint.settings
        if request.method.upper() not in config.allowed_methods:
            raise HTTPException(status_code=400, detail="Method not allowed")

        parsed = await parse_postback_request(request, config.input_format, {"slug": slug})
        outcome = ingest_postback(
            db,
            endpoint,
            parsed,
            client_ip=client_ip(parsed, request.client.host if request.client else None),
            user_agent=parsed.headers.get("user-agent"),
            url_query=request.url.query,
        )
        if not outcome.accepted:
            raise HTTPException(status_code=400, detail=outcome.error)

        schedule_relays(background_tasks, outcome.record.id)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Postback ingestion error: {serialize_error(e)}")
        raise HTTPException(status_code=500, detail="Internal server error")

    response = config.response
    if response is None or response.mode == "minimal":
        return Response(status_code=response.success_code if response else 200)

    return JSONResponse(
        content={
            "status": "ok",
            "eventId": outcome.event_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
    )
