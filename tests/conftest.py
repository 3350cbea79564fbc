"""Pytest configuration and fixtures."""

import hashlib
import hmac
import json
import time
from datetime import datetime, timezone

import httpx
import pytest
from fastapi.testclient import TestClient
from jose import jwt
from mongomock_motor import AsyncMongoMockClient

from skillhire.config import Settings
from skillhire.database import JOBS, USERS, ensure_indexes
from skillhire.main import create_app
from skillhire.models.job import build_job_document
from skillhire.models.user import build_person_document
from skillhire.payments.lemonsqueezy import LemonSqueezyGateway
from skillhire.payments.stripe_gateway import StripeGateway
from skillhire.services.remote_jobs import RemoteJobsFeed
from skillhire.utils.auth import ClerkIdentity
from skillhire.utils.errors import NotFoundException

TEST_JWT_SECRET = "test-only-clerk-signing-secret"
STRIPE_WEBHOOK_SECRET = "whsec_test_secret"
LEMONSQUEEZY_WEBHOOK_SECRET = "ls_test_signing_secret"

EMPLOYER_ID = "user_employer_1"
OTHER_EMPLOYER_ID = "user_employer_2"
CANDIDATE_ID = "user_candidate_1"

# Profiles the fake Clerk Backend API knows about.
CLERK_USERS = {
    EMPLOYER_ID: {"email": "hr@acme.io", "first_name": "Ada", "last_name": "Lovelace"},
    OTHER_EMPLOYER_ID: {"email": "jobs@globex.com", "first_name": "Hank", "last_name": "Scorpio"},
    CANDIDATE_ID: {"email": "sam@gmail.com", "first_name": "Sam", "last_name": "Taylor"},
    "user_new_candidate": {"email": "newbie@gmail.com", "first_name": "New", "last_name": "Person"},
    "user_new_employer": {"email": "founder@startup.dev", "first_name": "Grace", "last_name": "Hopper"},
}


def clerk_handler(request: httpx.Request) -> httpx.Response:
    user_id = request.url.path.rsplit("/", 1)[-1]
    user = CLERK_USERS.get(user_id)
    if not user:
        return httpx.Response(404, json={"errors": [{"code": "resource_not_found"}]})
    return httpx.Response(
        200,
        json={
            "id": user_id,
            "first_name": user["first_name"],
            "last_name": user["last_name"],
            "image_url": f"https://img.clerk.test/{user_id}.png",
            "primary_email_address_id": "idn_1",
            "email_addresses": [{"id": "idn_1", "email_address": user["email"]}],
        },
    )


def lemonsqueezy_handler(request: httpx.Request) -> httpx.Response:
    body = json.loads(request.content)
    custom = body["data"]["attributes"]["checkout_data"]["custom"]
    return httpx.Response(
        201,
        json={
            "data": {
                "type": "checkouts",
                "id": f"chk_{custom['job_id']}",
                "attributes": {"url": f"https://skillhire.lemonsqueezy.com/checkout/{custom['payment_id']}"},
            }
        },
    )


REMOTE_JOBS = {
    "job-count": 1,
    "jobs": [{"id": 1901, "title": "Senior Python Developer", "company_name": "Doist", "candidate_required_location": "Worldwide"}],
}


def remote_jobs_handler(request: httpx.Request) -> httpx.Response:
    if request.headers.get("user-agent") != "SkillHire/1.0":
        return httpx.Response(403, json={"error": "missing user agent"})
    return httpx.Response(200, json=REMOTE_JOBS)


class FakeStorage:
    """In-memory stand-in for the GridFS object store."""

    def __init__(self, public_base_url: str = "http://testserver"):
        self.public_base_url = public_base_url
        self.objects = {}

    async def put_object(self, bucket, key, data, content_type, metadata=None):
        file_id = f"{len(self.objects) + 1:024x}"
        self.objects[(bucket, file_id)] = (data, content_type, key)
        return f"{self.public_base_url}/files/{bucket}/{file_id}"

    async def open_object(self, bucket, file_id):
        if (bucket, file_id) not in self.objects:
            raise NotFoundException("File not found")
        return self.objects[(bucket, file_id)]


def make_token(user_id: str, **claims) -> str:
    return jwt.encode({"sub": user_id, **claims}, TEST_JWT_SECRET, algorithm="HS256")


def auth_headers(user_id: str, **claims) -> dict:
    return {"Authorization": f"Bearer {make_token(user_id, **claims)}"}


def stripe_signature(payload: bytes, secret: str = STRIPE_WEBHOOK_SECRET, timestamp: int = None) -> str:
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.".encode("utf-8") + payload
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def lemonsqueezy_signature(payload: bytes, secret: str = LEMONSQUEEZY_WEBHOOK_SECRET) -> str:
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


async def seed_person(db, clerk_id: str, role: str, email: str = None, profile: dict = None) -> dict:
    clerk_user = CLERK_USERS.get(clerk_id, {})
    email = email or clerk_user["email"]
    profile = {
        "first_name": clerk_user.get("first_name", ""),
        "last_name": clerk_user.get("last_name", ""),
        **(profile or {}),
    }
    doc = build_person_document(clerk_id, email, role, profile, datetime.now(timezone.utc))
    result = await db[USERS].insert_one(doc)
    doc["_id"] = result.inserted_id
    return doc


async def seed_job(db, company_id: str = EMPLOYER_ID, **overrides) -> dict:
    """A live (active, paid) job unless ``overrides`` say otherwise."""
    now = datetime.now(timezone.utc)
    commercial = {
        "plan_type": "basic",
        "payment_status": "paid",
        "status": "active",
        "paid_at": now,
        "activated_at": now,
    }
    fields = {"title": "Backend Engineer", "description": "Build APIs", "category": "engineering"}
    doc = build_job_document(fields, company_id, "Acme", commercial, now)
    doc.update(overrides)
    result = await db[JOBS].insert_one(doc)
    doc["_id"] = result.inserted_id
    return doc


@pytest.fixture
def settings():
    return Settings(
        environment="test",
        mongo_uri="mongodb://localhost:27017",
        database_name="skillhire_test",
        app_url="http://localhost:3000",
        public_base_url="http://testserver",
        clerk_jwt_key=TEST_JWT_SECRET,
        clerk_jwt_algorithm="HS256",
        clerk_secret_key="sk_test_clerk",
        clerk_api_url="https://api.clerk.test/v1",
        stripe_secret_key="sk_test_stripe",
        stripe_webhook_secret=STRIPE_WEBHOOK_SECRET,
        lemonsqueezy_api_key="ls_test_key",
        lemonsqueezy_store_id="1234",
        lemonsqueezy_webhook_secret=LEMONSQUEEZY_WEBHOOK_SECRET,
        lemonsqueezy_basic_variant_id="111",
        lemonsqueezy_premium_variant_id="222",
        payments_test_mode=True,
    )


@pytest.fixture
async def db():
    database = AsyncMongoMockClient()["skillhire_test"]
    await ensure_indexes(database)
    return database


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def identity(settings):
    http = httpx.AsyncClient(transport=httpx.MockTransport(clerk_handler), base_url=settings.clerk_api_url)
    return ClerkIdentity(settings, http_client=http)


@pytest.fixture
def lemonsqueezy(settings):
    http = httpx.AsyncClient(
        transport=httpx.MockTransport(lemonsqueezy_handler),
        base_url="https://api.lemonsqueezy.test/v1",
    )
    return LemonSqueezyGateway(settings, http_client=http)


@pytest.fixture
def remote_jobs(settings):
    http = httpx.AsyncClient(transport=httpx.MockTransport(remote_jobs_handler))
    return RemoteJobsFeed(settings, http_client=http)


@pytest.fixture
def app(settings, db, storage, identity, lemonsqueezy, remote_jobs):
    return create_app(
        settings,
        db=db,
        storage=storage,
        identity=identity,
        stripe_gateway=StripeGateway(settings),
        lemonsqueezy_gateway=lemonsqueezy,
        remote_jobs=remote_jobs,
    )


@pytest.fixture
def client(app):
    """Create a test client."""
    return TestClient(app)


@pytest.fixture
async def employer(db):
    return await seed_person(db, EMPLOYER_ID, "employer", profile={"employer_profile": {"company_name": "Acme"}})


@pytest.fixture
async def other_employer(db):
    return await seed_person(db, OTHER_EMPLOYER_ID, "employer", profile={"employer_profile": {"company_name": "Globex"}})


@pytest.fixture
async def candidate(db):
    return await seed_person(db, CANDIDATE_ID, "candidate", profile={"candidate_profile": {"skills": ["python"]}})
