# ========================================
# skillhire/routes/payments.py
# ========================================

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from skillhire.database import get_db
from skillhire.payments.lemonsqueezy import LemonSqueezyGateway, get_lemonsqueezy
from skillhire.payments.stripe_gateway import StripeGateway, get_stripe
from skillhire.schemas.payment import CheckoutRequest, CheckoutSessionResponse, LemonSqueezyCheckoutResponse
from skillhire.services import payments as payment_service
from skillhire.utils.auth import require_employer

router = APIRouter(prefix="/api/payments", tags=["Payments"])


# ✅ 1. STRIPE CHECKOUT
@router.post("/create-checkout-session", response_model=CheckoutSessionResponse)
async def create_checkout_session(
    payload: CheckoutRequest,
    employer: dict = Depends(require_employer),
    db: AsyncIOMotorDatabase = Depends(get_db),
    gateway: StripeGateway = Depends(get_stripe),
):
    return await payment_service.create_checkout_session(
        db, gateway, employer, payload.job_id, payload.plan_type, payload.amount
    )


# ✅ 2. LEMON SQUEEZY CHECKOUT
@router.post("/create-checkout", response_model=LemonSqueezyCheckoutResponse)
async def create_checkout(
    payload: CheckoutRequest,
    employer: dict = Depends(require_employer),
    db: AsyncIOMotorDatabase = Depends(get_db),
    gateway: LemonSqueezyGateway = Depends(get_lemonsqueezy),
):
    return await payment_service.create_lemonsqueezy_checkout(
        db, gateway, employer, payload.job_id, payload.plan_type, payload.amount
    )
