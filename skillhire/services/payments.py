"""
Checkout creation and payment reconciliation.

Checkouts only record a ``pending`` Payment; a job is activated exclusively
by a verified provider webhook (or the test-mode activation endpoint). Every
webhook handler here is idempotent: replaying an event changes nothing.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from skillhire.database import PAYMENTS, parse_object_id
from skillhire.models.job import PAYMENT_STATUS_PAID
from skillhire.models.payment import (
    CURRENCY,
    PLAN_PRICES,
    PROVIDER_LEMONSQUEEZY,
    PROVIDER_STRIPE,
    STATUS_COMPLETED,
    STATUS_FAILED,
    STATUS_PENDING,
    build_payment_document,
)
from skillhire.payments.lemonsqueezy import LemonSqueezyGateway, custom_data_from_event
from skillhire.payments.stripe_gateway import StripeGateway
from skillhire.services.jobs import ensure_owner, get_job
from skillhire.services.lifecycle import activate_paid_job
from skillhire.utils.errors import BadRequestException
from skillhire.utils.logging import get_logger

logger = get_logger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ===========================
# CHECKOUT
# ===========================

async def _checkout_target(
    db: AsyncIOMotorDatabase,
    employer_id: str,
    job_id: Optional[str],
    plan_type: Optional[str],
    amount: Optional[int],
) -> dict:
    """Validate a checkout request and return the job being paid for."""
    if not job_id or not plan_type or amount is None:
        raise BadRequestException("Job ID, plan type, and amount are required")
    if plan_type not in PLAN_PRICES:
        raise BadRequestException("plan_type must be one of: basic, premium")
    if amount != PLAN_PRICES[plan_type]:
        raise BadRequestException(f"Amount does not match the {plan_type} plan price")

    job = await get_job(db, job_id)
    ensure_owner(job, employer_id)

    if job.get("payment_status") == PAYMENT_STATUS_PAID:
        raise BadRequestException("This job has already been paid for")
    return job


async def create_checkout_session(
    db: AsyncIOMotorDatabase,
    gateway: StripeGateway,
    employer: dict,
    job_id: Optional[str],
    plan_type: Optional[str],
    amount: Optional[int],
) -> Dict[str, str]:
    """Stripe checkout for one of the employer's unpaid jobs."""
    employer_id = employer["clerk_id"]
    job = await _checkout_target(db, employer_id, job_id, plan_type, amount)

    session = await gateway.create_checkout_session(
        job=job,
        plan_type=plan_type,
        amount=PLAN_PRICES[plan_type],
        currency=CURRENCY,
        user_id=employer_id,
        customer_email=employer.get("email"),
    )

    doc = build_payment_document(
        employer_id, str(job["_id"]), plan_type, PROVIDER_STRIPE, session["session_id"], utcnow()
    )
    result = await db[PAYMENTS].insert_one(doc)

    logger.info(
        "checkout_created",
        provider=PROVIDER_STRIPE,
        payment_id=str(result.inserted_id),
        job_id=str(job["_id"]),
        plan_type=plan_type,
    )
    return {
        "payment_id": str(result.inserted_id),
        "session_id": session["session_id"],
        "checkout_url": session["checkout_url"],
    }


async def create_lemonsqueezy_checkout(
    db: AsyncIOMotorDatabase,
    gateway: LemonSqueezyGateway,
    employer: dict,
    job_id: Optional[str],
    plan_type: Optional[str],
    amount: Optional[int],
) -> Dict[str, str]:
    """
    Lemon Squeezy checkout for one of the employer's unpaid jobs.

    The Payment ID is minted before the checkout so it can ride along as
    custom data and come back on the order webhook.
    """
    employer_id = employer["clerk_id"]
    job = await _checkout_target(db, employer_id, job_id, plan_type, amount)

    payment_id = ObjectId()
    checkout = await gateway.create_checkout(
        job=job,
        plan_type=plan_type,
        amount=PLAN_PRICES[plan_type],
        custom_data={
            "payment_id": str(payment_id),
            "user_id": employer_id,
            "job_id": str(job["_id"]),
            "plan_type": plan_type,
        },
        customer_email=employer.get("email"),
    )

    doc = build_payment_document(
        employer_id,
        str(job["_id"]),
        plan_type,
        PROVIDER_LEMONSQUEEZY,
        checkout["checkout_id"],
        utcnow(),
        payment_id=payment_id,
    )
    await db[PAYMENTS].insert_one(doc)

    logger.info(
        "checkout_created",
        provider=PROVIDER_LEMONSQUEEZY,
        payment_id=str(payment_id),
        job_id=str(job["_id"]),
        plan_type=plan_type,
    )
    return {
        "payment_id": str(payment_id),
        "checkout_id": checkout["checkout_id"],
        "checkout_url": checkout["checkout_url"],
    }


# ===========================
# RECONCILIATION
# ===========================

async def complete_payment(
    db: AsyncIOMotorDatabase,
    lookup: Dict[str, Any],
    *,
    transaction_id: Optional[str] = None,
    payment_intent_id: Optional[str] = None,
    order_id: Optional[str] = None,
) -> bool:
    """
    Mark the Payment matching ``lookup`` completed and activate its job.

    Returns False (after logging) when no Payment matches. Both writes are
    conditional, so calling this again for the same Payment is a no-op.
    """
    payment = await db[PAYMENTS].find_one(lookup)
    if not payment:
        logger.warning("payment_not_found", lookup={k: str(v) for k, v in lookup.items()})
        return False

    now = utcnow()
    payment_updates: Dict[str, Any] = {"status": STATUS_COMPLETED, "paid_at": now, "updated_at": now}
    if transaction_id:
        payment_updates["transaction_id"] = transaction_id
    if payment_intent_id:
        payment_updates["stripe_payment_intent_id"] = payment_intent_id

    completed = await db[PAYMENTS].update_one(
        {"_id": payment["_id"], "status": {"$ne": STATUS_COMPLETED}},
        {"$set": payment_updates},
    )

    job_extra: Dict[str, Any] = {}
    if payment.get("provider") == PROVIDER_STRIPE:
        job_extra["stripe_session_id"] = payment.get("provider_session_id")
        if payment_intent_id:
            job_extra["stripe_payment_intent_id"] = payment_intent_id
    elif order_id:
        job_extra["lemonsqueezy_order_id"] = order_id

    job_object_id = parse_object_id(payment.get("job_id"))
    activated = False
    if job_object_id is not None:
        activated = await activate_paid_job(db, job_object_id, payment.get("plan_type"), now, job_extra)
    else:
        logger.error("payment_job_id_invalid", payment_id=str(payment["_id"]), job_id=payment.get("job_id"))

    logger.info(
        "payment_completed",
        payment_id=str(payment["_id"]),
        job_id=payment.get("job_id"),
        provider=payment.get("provider"),
        payment_changed=completed.modified_count > 0,
        job_activated=activated,
    )
    return True


async def fail_payment(db: AsyncIOMotorDatabase, lookup: Dict[str, Any]) -> bool:
    """A pending Payment becomes failed; its job is left alone."""
    payment = await db[PAYMENTS].find_one(lookup)
    if not payment:
        logger.warning("payment_not_found", lookup={k: str(v) for k, v in lookup.items()})
        return False

    result = await db[PAYMENTS].update_one(
        {"_id": payment["_id"], "status": STATUS_PENDING},
        {"$set": {"status": STATUS_FAILED, "updated_at": utcnow()}},
    )
    logger.info("payment_failed", payment_id=str(payment["_id"]), changed=result.modified_count > 0)
    return True


async def handle_stripe_event(db: AsyncIOMotorDatabase, event: Dict[str, Any]) -> None:
    event_type = event.get("type")
    session = (event.get("data") or {}).get("object") or {}
    session_id = session.get("id")
    lookup = {"provider": PROVIDER_STRIPE, "provider_session_id": session_id}

    if event_type == "checkout.session.completed":
        if session.get("payment_status") != "paid":
            logger.info("stripe_session_awaiting_payment", session_id=session_id)
            return
        await complete_payment(
            db,
            lookup,
            transaction_id=session.get("payment_intent"),
            payment_intent_id=session.get("payment_intent"),
        )
    elif event_type == "checkout.session.async_payment_succeeded":
        await complete_payment(
            db,
            lookup,
            transaction_id=session.get("payment_intent"),
            payment_intent_id=session.get("payment_intent"),
        )
    elif event_type == "checkout.session.async_payment_failed":
        await fail_payment(db, lookup)
    else:
        logger.info("stripe_event_ignored", event_type=event_type)


async def handle_lemonsqueezy_event(db: AsyncIOMotorDatabase, event: Dict[str, Any]) -> None:
    event_name = (event.get("meta") or {}).get("event_name")
    if event_name != "order_created":
        logger.info("lemonsqueezy_event_ignored", event_name=event_name)
        return

    order = event.get("data") or {}
    order_status = (order.get("attributes") or {}).get("status")
    custom = custom_data_from_event(event)

    payment_id = parse_object_id(custom.get("payment_id"))
    if payment_id is None:
        logger.warning("lemonsqueezy_order_without_payment", order_id=order.get("id"), custom_data=custom)
        return

    lookup = {"_id": payment_id}
    if order_status == "paid":
        order_id = str(order.get("id")) if order.get("id") is not None else None
        await complete_payment(db, lookup, transaction_id=order_id, order_id=order_id)
    elif order_status == "failed":
        await fail_payment(db, lookup)
    else:
        logger.info("lemonsqueezy_order_ignored", order_id=order.get("id"), status=order_status)
