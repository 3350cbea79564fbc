from datetime import datetime
from typing import Any, Dict, Optional

STATUS_PENDING = "pending"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"
STATUS_REFUNDED = "refunded"

PROVIDER_STRIPE = "stripe"
PROVIDER_LEMONSQUEEZY = "lemonsqueezy"

CURRENCY = "usd"

# Minor currency units
PLAN_PRICES = {
    "basic": 9900,
    "premium": 12800,
}


def build_payment_document(
    user_id: str,
    job_id: str,
    plan_type: str,
    provider: str,
    provider_session_id: str,
    now: datetime,
    payment_id: Optional[Any] = None,
) -> Dict[str, Any]:
    doc = {
        "user_id": user_id,
        "job_id": job_id,
        "plan_type": plan_type,
        "amount": PLAN_PRICES[plan_type],
        "currency": CURRENCY,
        "status": STATUS_PENDING,
        "provider": provider,
        "provider_session_id": provider_session_id,
        "stripe_payment_intent_id": None,
        "transaction_id": None,
        "paid_at": None,
        "created_at": now,
        "updated_at": now,
    }
    if payment_id is not None:
        doc["_id"] = payment_id
    return doc
