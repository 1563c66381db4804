import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Header, Request
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from lexcanada.core.database import get_db
from lexcanada.services.docuseal_service import SignatureService
from lexcanada.services.stripe_webhook_service import StripeWebhookService, parse_event

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="stripe-signature"),
    db: Session = Depends(get_db)
):
    """Stripe events; the raw body is needed for signature verification."""
    payload = await request.body()
    event = parse_event(payload, stripe_signature)
    await run_in_threadpool(StripeWebhookService(db).handle_event, event)
    return {"received": True}


@router.post("/docuseal")
def docuseal_webhook(
    body: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db)
):
    SignatureService(db).handle_webhook(body.get("event") or body.get("event_type"), body.get("data") or {})
    return {"status": "success"}
