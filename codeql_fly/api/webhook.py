import json
import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse

from codeql_fly.api.deps import get_dispatcher
from codeql_fly.config import settings
from codeql_fly.services.dispatcher import EventDispatcher
from codeql_fly.services.events import MalformedEventError, parse_event
from codeql_fly.services.github import verify_signature

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


@router.post("/github", status_code=status.HTTP_200_OK)
async def github_webhook(
    request: Request,
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    """Handle GitHub webhook events."""
    signatures = request.headers.getlist("x-hub-signature-256")
    if not signatures:
        return PlainTextResponse("No signature", status_code=status.HTTP_400_BAD_REQUEST)

    # Signature is computed over the unparsed bytes
    body = await request.body()
    if not verify_signature(body, signatures, settings.GITHUB_WEBHOOK_SECRET):
        return PlainTextResponse(
            "Invalid signature", status_code=status.HTTP_401_UNAUTHORIZED
        )

    event_name = request.headers.get("x-github-event")
    try:
        payload = json.loads(body)
        event = parse_event(event_name, payload)
    except (ValueError, MalformedEventError) as exc:
        logger.warning("Rejected %s webhook: %s", event_name, exc)
        return PlainTextResponse(str(exc), status_code=status.HTTP_400_BAD_REQUEST)

    logger.info(
        "Webhook event %s %s",
        event_name,
        payload.get("action"),
        extra={"delivery": request.headers.get("x-github-delivery")},
    )
    try:
        result = await dispatcher.dispatch(event)
    except Exception as exc:
        logger.exception("Webhook error while handling %s", event.kind)
        return PlainTextResponse(
            str(exc) or "Internal error",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    return JSONResponse(result)
