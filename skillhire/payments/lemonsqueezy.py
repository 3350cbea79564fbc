"""
Lemon Squeezy checkouts (JSON:API over httpx) and webhook verification.

Webhooks carry an ``X-Signature`` header: the hex HMAC-SHA256 of the raw
request body keyed with the store's signing secret.
"""
import hashlib
import hmac
import json
from typing import Any, Dict, Optional

import httpx
from fastapi import Request

from skillhire.config import Settings
from skillhire.utils.errors import BadRequestException, ExternalServiceException, SignatureInvalidException
from skillhire.utils.logging import get_logger

logger = get_logger(__name__)

API_URL = "https://api.lemonsqueezy.com/v1"
JSON_API = "application/vnd.api+json"


def compute_signature(secret: str, body: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


class LemonSqueezyGateway:
    def __init__(self, settings: Settings, http_client: Optional[httpx.AsyncClient] = None):
        self.api_key = settings.lemonsqueezy_api_key
        self.store_id = settings.lemonsqueezy_store_id
        self.webhook_secret = settings.lemonsqueezy_webhook_secret
        self.variants = {
            "basic": settings.lemonsqueezy_basic_variant_id,
            "premium": settings.lemonsqueezy_premium_variant_id,
        }
        self.test_mode = settings.payments_test_mode
        self.app_url = settings.app_url.rstrip("/")
        self._client = http_client or httpx.AsyncClient(base_url=API_URL, timeout=10.0)

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.store_id)

    async def create_checkout(
        self,
        *,
        job: Dict[str, Any],
        plan_type: str,
        amount: int,
        custom_data: Dict[str, str],
        customer_email: Optional[str] = None,
    ) -> Dict[str, str]:
        """Create a hosted checkout for ``plan_type``: ``{"checkout_id", "checkout_url"}``."""
        variant_id = self.variants.get(plan_type)
        if not variant_id:
            raise BadRequestException(f"No Lemon Squeezy variant configured for plan: {plan_type}")
        if not self.configured:
            logger.error("lemonsqueezy_not_configured")
            raise ExternalServiceException("lemonsqueezy")

        job_id = str(job["_id"])
        checkout_data: Dict[str, Any] = {"custom": custom_data}
        if customer_email:
            checkout_data["email"] = customer_email

        body = {
            "data": {
                "type": "checkouts",
                "attributes": {
                    "custom_price": amount,
                    "product_options": {
                        "name": f"{plan_type.capitalize()} Job Posting - {job.get('title', '')}",
                        "redirect_url": f"{self.app_url}/employer/dashboard?payment=success&job_id={job_id}",
                    },
                    "checkout_data": checkout_data,
                    "test_mode": self.test_mode,
                },
                "relationships": {
                    "store": {"data": {"type": "stores", "id": str(self.store_id)}},
                    "variant": {"data": {"type": "variants", "id": str(variant_id)}},
                },
            }
        }

        try:
            response = await self._client.post(
                "/checkouts",
                json=body,
                headers={
                    "Accept": JSON_API,
                    "Content-Type": JSON_API,
                    "Authorization": f"Bearer {self.api_key}",
                },
            )
            response.raise_for_status()
            data = response.json()["data"]
            return {"checkout_id": str(data["id"]), "checkout_url": data["attributes"]["url"]}
        except (httpx.HTTPError, KeyError, ValueError):
            logger.exception("lemonsqueezy_checkout_failed", job_id=job_id, plan_type=plan_type)
            raise ExternalServiceException("lemonsqueezy")

    def parse_webhook(self, body: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """
        Verify the ``X-Signature`` header and decode the event.

        Raises:
            SignatureInvalidException: header missing (400) or digest mismatch (401).
            BadRequestException: body is not JSON.
        """
        if not signature:
            raise SignatureInvalidException("No signature provided", status_code=400)
        if not self.webhook_secret:
            logger.error("lemonsqueezy_webhook_secret_missing")
            raise SignatureInvalidException("Invalid signature", status_code=401)

        expected = compute_signature(self.webhook_secret, body)
        if not hmac.compare_digest(expected, signature.strip()):
            raise SignatureInvalidException("Invalid signature", status_code=401)

        try:
            return json.loads(body)
        except ValueError:
            raise BadRequestException("Invalid payload")

    async def aclose(self) -> None:
        await self._client.aclose()


def custom_data_from_event(event: Dict[str, Any]) -> Dict[str, Any]:
    """Checkout custom data, from ``meta.custom_data`` or the order attributes."""
    custom = (event.get("meta") or {}).get("custom_data")
    if not custom:
        custom = ((event.get("data") or {}).get("attributes") or {}).get("custom_data")
    if isinstance(custom, str):
        try:
            custom = json.loads(custom)
        except ValueError:
            custom = None
    return custom if isinstance(custom, dict) else {}


def get_lemonsqueezy(request: Request) -> LemonSqueezyGateway:
    return request.app.state.lemonsqueezy
