"""Tests for checkout creation and webhook reconciliation."""

import json
from unittest.mock import patch

import stripe

from skillhire.database import JOBS, PAYMENTS, parse_object_id

from tests.conftest import (
    EMPLOYER_ID,
    OTHER_EMPLOYER_ID,
    auth_headers,
    lemonsqueezy_signature,
    seed_job,
    stripe_signature,
)


def fake_session(session_id="cs_test_123"):
    return {"id": session_id, "url": f"https://checkout.stripe.com/c/pay/{session_id}"}


def stripe_event(event_type, session_id="cs_test_123", payment_status="paid"):
    return {
        "id": "evt_test_1",
        "object": "event",
        "type": event_type,
        "data": {
            "object": {
                "id": session_id,
                "object": "checkout.session",
                "payment_status": payment_status,
                "payment_intent": "pi_test_1",
            }
        },
    }


def post_stripe_event(client, event, signature=None):
    payload = json.dumps(event).encode("utf-8")
    headers = {"Content-Type": "application/json"}
    headers["Stripe-Signature"] = signature if signature is not None else stripe_signature(payload)
    return client.post("/api/webhooks/stripe", content=payload, headers=headers)


def post_lemonsqueezy_event(client, event, signature=None):
    payload = json.dumps(event).encode("utf-8")
    headers = {"Content-Type": "application/json"}
    if signature is not False:
        headers["X-Signature"] = signature or lemonsqueezy_signature(payload)
    return client.post("/api/webhooks/lemonsqueezy", content=payload, headers=headers)


async def paused_job(db, **overrides):
    return await seed_job(db, EMPLOYER_ID, status="paused", payment_status="pending", plan_type="premium", paid_at=None, activated_at=None, **overrides)


class TestStripeCheckout:
    """Tests for POST /api/payments/create-checkout-session."""

    async def test_creates_pending_payment_and_leaves_job_alone(self, client, db, employer):
        job = await paused_job(db)

        with patch("stripe.checkout.Session.create", return_value=fake_session()) as create:
            response = client.post(
                "/api/payments/create-checkout-session",
                json={"job_id": str(job["_id"]), "plan_type": "premium", "amount": 12800},
                headers=auth_headers(EMPLOYER_ID),
            )

        assert response.status_code == 200
        data = response.json()
        assert data["session_id"] == "cs_test_123"
        assert data["checkout_url"].startswith("https://checkout.stripe.com/")

        kwargs = create.call_args.kwargs
        assert kwargs["metadata"] == {"user_id": EMPLOYER_ID, "job_id": str(job["_id"]), "plan_type": "premium"}
        assert kwargs["line_items"][0]["price_data"]["unit_amount"] == 12800
        assert kwargs["line_items"][0]["price_data"]["currency"] == "usd"

        payment = await db[PAYMENTS].find_one({"provider_session_id": "cs_test_123"})
        assert payment["status"] == "pending"
        assert payment["amount"] == 12800
        assert str(payment["_id"]) == data["payment_id"]

        stored = await db[JOBS].find_one({"_id": job["_id"]})
        assert stored["status"] == "paused"
        assert stored["payment_status"] == "pending"

    async def test_missing_amount_is_rejected(self, client, db, employer):
        job = await paused_job(db)

        response = client.post(
            "/api/payments/create-checkout-session",
            json={"job_id": str(job["_id"]), "plan_type": "basic"},
            headers=auth_headers(EMPLOYER_ID),
        )
        assert response.status_code == 400
        assert await db[PAYMENTS].count_documents({}) == 0

    async def test_amount_must_match_plan_price(self, client, db, employer):
        job = await paused_job(db)

        response = client.post(
            "/api/payments/create-checkout-session",
            json={"job_id": str(job["_id"]), "plan_type": "basic", "amount": 1},
            headers=auth_headers(EMPLOYER_ID),
        )
        assert response.status_code == 400

    async def test_not_owner_is_forbidden(self, client, db, employer, other_employer):
        job = await paused_job(db)

        response = client.post(
            "/api/payments/create-checkout-session",
            json={"job_id": str(job["_id"]), "plan_type": "basic", "amount": 9900},
            headers=auth_headers(OTHER_EMPLOYER_ID),
        )
        assert response.status_code == 403

    async def test_already_paid_job_is_rejected(self, client, db, employer):
        job = await seed_job(db, EMPLOYER_ID)

        response = client.post(
            "/api/payments/create-checkout-session",
            json={"job_id": str(job["_id"]), "plan_type": "basic", "amount": 9900},
            headers=auth_headers(EMPLOYER_ID),
        )
        assert response.status_code == 400

    async def test_provider_failure_is_a_generic_500(self, client, db, employer):
        job = await paused_job(db)

        with patch("stripe.checkout.Session.create", side_effect=stripe.APIConnectionError("network down")):
            response = client.post(
                "/api/payments/create-checkout-session",
                json={"job_id": str(job["_id"]), "plan_type": "basic", "amount": 9900},
                headers=auth_headers(EMPLOYER_ID),
            )

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}
        assert await db[PAYMENTS].count_documents({}) == 0


class TestStripeWebhook:
    """Tests for POST /api/webhooks/stripe."""

    async def checkout(self, client, db):
        job = await paused_job(db)
        with patch("stripe.checkout.Session.create", return_value=fake_session()):
            client.post(
                "/api/payments/create-checkout-session",
                json={"job_id": str(job["_id"]), "plan_type": "premium", "amount": 12800},
                headers=auth_headers(EMPLOYER_ID),
            )
        return job

    async def test_completed_checkout_activates_job(self, client, db, employer):
        job = await self.checkout(client, db)

        response = post_stripe_event(client, stripe_event("checkout.session.completed"))
        assert response.status_code == 200
        assert response.json() == {"received": True}

        stored = await db[JOBS].find_one({"_id": job["_id"]})
        assert stored["status"] == "active"
        assert stored["payment_status"] == "paid"
        assert stored["plan_type"] == "premium"
        assert stored["stripe_session_id"] == "cs_test_123"
        assert stored["stripe_payment_intent_id"] == "pi_test_1"
        assert stored["activated_at"] is not None

        payment = await db[PAYMENTS].find_one({"provider_session_id": "cs_test_123"})
        assert payment["status"] == "completed"
        assert payment["stripe_payment_intent_id"] == "pi_test_1"
        assert payment["paid_at"] is not None

    async def test_replayed_event_changes_nothing(self, client, db, employer):
        job = await self.checkout(client, db)
        event = stripe_event("checkout.session.completed")

        post_stripe_event(client, event)
        first_job = await db[JOBS].find_one({"_id": job["_id"]})
        first_payment = await db[PAYMENTS].find_one({"provider_session_id": "cs_test_123"})

        response = post_stripe_event(client, event)
        assert response.status_code == 200

        assert await db[JOBS].find_one({"_id": job["_id"]}) == first_job
        assert await db[PAYMENTS].find_one({"provider_session_id": "cs_test_123"}) == first_payment

    async def test_bad_signature_is_rejected_without_side_effects(self, client, db, employer):
        job = await self.checkout(client, db)
        event = stripe_event("checkout.session.completed")
        payload = json.dumps(event).encode("utf-8")

        response = post_stripe_event(client, event, signature=stripe_signature(payload, secret="whsec_wrong"))
        assert response.status_code == 400

        stored = await db[JOBS].find_one({"_id": job["_id"]})
        assert stored["status"] == "paused"
        payment = await db[PAYMENTS].find_one({"provider_session_id": "cs_test_123"})
        assert payment["status"] == "pending"

    async def test_missing_signature_is_rejected(self, client, db):
        response = post_stripe_event(client, stripe_event("checkout.session.completed"), signature="")
        assert response.status_code == 400

    async def test_unpaid_completed_session_is_not_activation(self, client, db, employer):
        job = await self.checkout(client, db)

        post_stripe_event(client, stripe_event("checkout.session.completed", payment_status="unpaid"))
        stored = await db[JOBS].find_one({"_id": job["_id"]})
        assert stored["status"] == "paused"

    async def test_failed_payment_leaves_job_paused(self, client, db, employer):
        job = await self.checkout(client, db)

        response = post_stripe_event(client, stripe_event("checkout.session.async_payment_failed"))
        assert response.status_code == 200

        payment = await db[PAYMENTS].find_one({"provider_session_id": "cs_test_123"})
        assert payment["status"] == "failed"
        stored = await db[JOBS].find_one({"_id": job["_id"]})
        assert stored["status"] == "paused"
        assert stored["payment_status"] == "pending"

    async def test_unknown_session_is_acknowledged(self, client, db):
        response = post_stripe_event(client, stripe_event("checkout.session.completed", session_id="cs_unknown"))
        assert response.status_code == 200
        assert response.json() == {"received": True}

    async def test_unrelated_event_is_acknowledged(self, client, db):
        event = {"id": "evt_2", "object": "event", "type": "customer.created", "data": {"object": {"id": "cus_1"}}}
        response = post_stripe_event(client, event)
        assert response.status_code == 200


class TestLemonSqueezy:
    """Tests for the Lemon Squeezy checkout and webhook."""

    async def checkout(self, client, db):
        job = await paused_job(db)
        response = client.post(
            "/api/payments/create-checkout",
            json={"job_id": str(job["_id"]), "plan_type": "basic", "amount": 9900},
            headers=auth_headers(EMPLOYER_ID),
        )
        assert response.status_code == 200
        return job, response.json()

    def order_event(self, payment_id, job_id, status="paid", order_id=4242):
        return {
            "meta": {
                "event_name": "order_created",
                "custom_data": {"payment_id": payment_id, "user_id": EMPLOYER_ID, "job_id": job_id, "plan_type": "basic"},
            },
            "data": {"type": "orders", "id": str(order_id), "attributes": {"status": status}},
        }

    async def test_checkout_sends_payment_id_as_custom_data(self, client, db, employer):
        job, data = await self.checkout(client, db)

        assert data["checkout_id"] == f"chk_{job['_id']}"
        assert data["payment_id"] in data["checkout_url"]

        payment = await db[PAYMENTS].find_one({"provider": "lemonsqueezy"})
        assert str(payment["_id"]) == data["payment_id"]
        assert payment["provider_session_id"] == data["checkout_id"]
        assert payment["status"] == "pending"

    async def test_paid_order_activates_job_and_replay_is_idempotent(self, client, db, employer):
        job, data = await self.checkout(client, db)
        event = self.order_event(data["payment_id"], str(job["_id"]))

        assert post_lemonsqueezy_event(client, event).status_code == 200
        first = await db[JOBS].find_one({"_id": job["_id"]})
        assert first["status"] == "active"
        assert first["payment_status"] == "paid"
        assert first["lemonsqueezy_order_id"] == "4242"

        assert post_lemonsqueezy_event(client, event).status_code == 200
        assert await db[JOBS].find_one({"_id": job["_id"]}) == first

        payment = await db[PAYMENTS].find_one({"_id": parse_object_id(data["payment_id"])})
        assert payment["status"] == "completed"
        assert payment["transaction_id"] == "4242"

    async def test_missing_signature_is_400(self, client, db, employer):
        job, data = await self.checkout(client, db)

        response = post_lemonsqueezy_event(client, self.order_event(data["payment_id"], str(job["_id"])), signature=False)
        assert response.status_code == 400

    async def test_wrong_signature_is_401(self, client, db, employer):
        job, data = await self.checkout(client, db)

        response = post_lemonsqueezy_event(client, self.order_event(data["payment_id"], str(job["_id"])), signature="deadbeef")
        assert response.status_code == 401
        stored = await db[JOBS].find_one({"_id": job["_id"]})
        assert stored["status"] == "paused"

    async def test_failed_order_marks_payment_failed(self, client, db, employer):
        job, data = await self.checkout(client, db)

        post_lemonsqueezy_event(client, self.order_event(data["payment_id"], str(job["_id"]), status="failed"))
        payment = await db[PAYMENTS].find_one({"provider": "lemonsqueezy"})
        assert payment["status"] == "failed"
        stored = await db[JOBS].find_one({"_id": job["_id"]})
        assert stored["status"] == "paused"

    async def test_other_events_are_acknowledged(self, client, db):
        event = {"meta": {"event_name": "subscription_created"}, "data": {"id": "1"}}
        assert post_lemonsqueezy_event(client, event).status_code == 200
