from typing import Literal, Optional

from pydantic import BaseModel


class CheckoutRequest(BaseModel):
    job_id: Optional[str] = None
    plan_type: Optional[Literal["basic", "premium"]] = None
    amount: Optional[int] = None  # minor units; must match the plan price


class CheckoutSessionResponse(BaseModel):
    payment_id: str
    session_id: str
    checkout_url: str


class LemonSqueezyCheckoutResponse(BaseModel):
    payment_id: str
    checkout_id: str
    checkout_url: str
