# ========================================
# skillhire/routes/webhooks.py
# ========================================

from fastapi import APIRouter, Depends, Request
from motor.motor_asyncio import AsyncIOMotorDatabase

from skillhire.database import get_db
from skillhire.payments.lemonsqueezy import LemonSqueezyGateway, get_lemonsqueezy
from skillhire.payments.stripe_gateway import StripeGateway, get_stripe
from skillhire.services import payments as payment_service
from skillhire.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/webhooks", tags=["Webhooks"])


# Signatures are checked against the raw body before anything is parsed or written.
@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    db: AsyncIOMotorDatabase = Depends(get_db),
    gateway: StripeGateway = Depends(get_stripe),
):
    payload = await request.body()
    event = gateway.construct_event(payload, request.headers.get("stripe-signature"))

    logger.info("stripe_webhook_received", event_type=event.get("type"), event_id=event.get("id"))
    await payment_service.handle_stripe_event(db, event)
    return {"received": True}


@router.post("/lemonsqueezy")
async def lemonsqueezy_webhook(
    request: Request,
    db: AsyncIOMotorDatabase = Depends(get_db),
    gateway: LemonSqueezyGateway = Depends(get_lemonsqueezy),
):
    body = await request.body()
    event = gateway.parse_webhook(body, request.headers.get("x-signature"))

    logger.info("lemonsqueezy_webhook_received", event_name=(event.get("meta") or {}).get("event_name"))
    await payment_service.handle_lemonsqueezy_event(db, event)
    return {"received": True}
