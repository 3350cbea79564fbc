"""
Stripe checkout sessions and webhook verification.

The ``stripe`` SDK is synchronous; calls that hit the network run in a worker
thread so the event loop is never blocked.
"""
import asyncio
import json
from typing import Any, Dict, Optional

import stripe
from fastapi import Request

from skillhire.config import Settings
from skillhire.utils.errors import ExternalServiceException, SignatureInvalidException
from skillhire.utils.logging import get_logger

logger = get_logger(__name__)

PLAN_LABELS = {
    "basic": "Basic Job Posting",
    "premium": "Premium Job Posting",
}


class StripeGateway:
    """Thin wrapper around the Stripe SDK bound to one set of credentials."""

    def __init__(self, settings: Settings):
        self.secret_key = settings.stripe_secret_key
        self.webhook_secret = settings.stripe_webhook_secret
        self.app_url = settings.app_url.rstrip("/")

    @property
    def configured(self) -> bool:
        return bool(self.secret_key)

    async def create_checkout_session(
        self,
        *,
        job: Dict[str, Any],
        plan_type: str,
        amount: int,
        currency: str,
        user_id: str,
        customer_email: Optional[str] = None,
    ) -> Dict[str, str]:
        """Create a one-off card checkout for a job posting: ``{"session_id", "checkout_url"}``."""
        if not self.configured:
            logger.error("stripe_not_configured")
            raise ExternalServiceException("stripe")

        job_id = str(job["_id"])
        params = {
            "mode": "payment",
            "payment_method_types": ["card"],
            "line_items": [
                {
                    "price_data": {
                        "currency": currency,
                        "unit_amount": amount,
                        "product_data": {
                            "name": f"{PLAN_LABELS.get(plan_type, 'Job Posting')} - {job.get('title', '')}",
                            "description": f"{plan_type.capitalize()} plan for {job.get('company_name', '')}",
                        },
                    },
                    "quantity": 1,
                }
            ],
            "success_url": f"{self.app_url}/employer/dashboard?payment=success&job_id={job_id}",
            "cancel_url": f"{self.app_url}/employer/dashboard?payment=cancelled&job_id={job_id}",
            "metadata": {
                "user_id": user_id,
                "job_id": job_id,
                "plan_type": plan_type,
            },
        }
        if customer_email:
            params["customer_email"] = customer_email

        try:
            session = await asyncio.to_thread(stripe.checkout.Session.create, api_key=self.secret_key, **params)
        except stripe.StripeError:
            logger.exception("stripe_checkout_failed", job_id=job_id, plan_type=plan_type)
            raise ExternalServiceException("stripe")

        return {"session_id": session["id"], "checkout_url": session["url"]}

    def construct_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """
        Verify ``Stripe-Signature`` against the raw body and return the event.

        Raises:
            SignatureInvalidException: header missing, payload malformed or signature wrong (400).
        """
        if not signature:
            raise SignatureInvalidException("Missing stripe-signature header", status_code=400)
        if not self.webhook_secret:
            logger.error("stripe_webhook_secret_missing")
            raise SignatureInvalidException("Webhook secret not configured", status_code=400)

        try:
            stripe.WebhookSignature.verify_header(
                payload.decode("utf-8"), signature, self.webhook_secret, stripe.Webhook.DEFAULT_TOLERANCE
            )
            return json.loads(payload)
        except ValueError:
            raise SignatureInvalidException("Invalid payload", status_code=400)
        except stripe.SignatureVerificationError:
            raise SignatureInvalidException("Invalid signature", status_code=400)


def get_stripe(request: Request) -> StripeGateway:
    return request.app.state.stripe
