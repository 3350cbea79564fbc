# ========================================
# skillhire/database.py
# ========================================

from typing import Any, Dict, Optional, Tuple

from bson import ObjectId
from fastapi import Request
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from skillhire.config import Settings
from skillhire.utils.logging import get_logger

logger = get_logger(__name__)

# ===========================
# COLLECTIONS
# ===========================

JOBS = "jobs"
APPLICATIONS = "applications"
USERS = "users"
PAYMENTS = "payments"


async def connect_to_mongo(settings: Settings) -> Tuple[AsyncIOMotorClient, AsyncIOMotorDatabase]:
    """Open the shared client, ping the server and hand back (client, db)."""

    if not settings.mongo_uri:
        raise ValueError("MONGO_URI environment variable is not set! Check your .env file.")

    client = AsyncIOMotorClient(settings.mongo_uri)
    db = client[settings.database_name]
    await client.admin.command("ping")

    if "mongodb+srv" in settings.mongo_uri:
        logger.info("mongo_connected", target="atlas", database=settings.database_name)
    else:
        logger.info("mongo_connected", target="local", database=settings.database_name)

    return client, db


async def close_mongo_connection(client: Optional[AsyncIOMotorClient]) -> None:
    if client:
        client.close()


async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    """Indexes backing the lookups the services run on every request."""

    await db[JOBS].create_index([("company_id", ASCENDING)])
    await db[JOBS].create_index([("status", ASCENDING), ("payment_status", ASCENDING), ("posted_at", DESCENDING)])
    await db[JOBS].create_index([("category", ASCENDING)])
    await db[JOBS].create_index([("tags", ASCENDING)])

    await db[APPLICATIONS].create_index([("job_id", ASCENDING), ("candidate_id", ASCENDING)], unique=True)
    await db[APPLICATIONS].create_index([("candidate_id", ASCENDING)])
    await db[APPLICATIONS].create_index([("status", ASCENDING)])

    await db[USERS].create_index([("clerk_id", ASCENDING)], unique=True)
    await db[USERS].create_index([("email", ASCENDING)], unique=True)
    await db[USERS].create_index([("role", ASCENDING)])

    await db[PAYMENTS].create_index([("provider_session_id", ASCENDING)])
    await db[PAYMENTS].create_index([("user_id", ASCENDING), ("status", ASCENDING)])
    await db[PAYMENTS].create_index([("job_id", ASCENDING)])


# ===========================
# DEPENDENCY
# ===========================

def get_db(request: Request) -> AsyncIOMotorDatabase:
    """FastAPI dependency: the database handle built at startup."""
    return request.app.state.db


# ===========================
# DOCUMENT HELPERS
# ===========================

def parse_object_id(value: Any) -> Optional[ObjectId]:
    """ObjectId for a valid id string, None otherwise."""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


def serialize_doc(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Copy of a Mongo document with ``_id`` exposed as a string ``id``."""
    if doc is None:
        return None

    result = {}
    for key, value in doc.items():
        if key == "_id":
            result["id"] = str(value)
        elif isinstance(value, ObjectId):
            result[key] = str(value)
        else:
            result[key] = value
    return result
