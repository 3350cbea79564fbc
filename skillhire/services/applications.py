# ========================================
# skillhire/services/applications.py
# ========================================

import math
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from skillhire.database import APPLICATIONS, JOBS, parse_object_id
from skillhire.models.application import (
    STATUS_SHORTLISTED,
    build_application_document,
    shortlist_delta,
)
from skillhire.models.job import is_publicly_visible
from skillhire.utils.errors import (
    ApplicationNotFoundException,
    BadRequestException,
    ForbiddenException,
    JobNotFoundException,
)
from skillhire.utils.logging import get_logger

logger = get_logger(__name__)

ALREADY_APPLIED = "You have already applied to this job"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def _find_job(db: AsyncIOMotorDatabase, job_id: str) -> Optional[dict]:
    object_id = parse_object_id(job_id)
    if object_id is None:
        return None
    return await db[JOBS].find_one({"_id": object_id})


# ===========================
# CANDIDATE SIDE
# ===========================

async def apply_to_job(db: AsyncIOMotorDatabase, job_id: str, candidate_id: str, payload: Dict[str, Any]) -> dict:
    """
    Submit ``candidate_id``'s application to a publicly visible job.

    Raises:
        BadRequestException: missing cover letter or projects, or a repeat application.
        JobNotFoundException: unknown job, or one that is not live.
    """
    if not job_id:
        raise BadRequestException("Job ID is required")
    if not (payload.get("cover_letter") or "").strip():
        raise BadRequestException("Cover letter is required")
    if not payload.get("projects"):
        raise BadRequestException("At least one project is required")

    job = await _find_job(db, job_id)
    if not is_publicly_visible(job):
        raise JobNotFoundException()

    job_id = str(job["_id"])
    existing = await db[APPLICATIONS].find_one({"job_id": job_id, "candidate_id": candidate_id})
    if existing:
        raise BadRequestException(ALREADY_APPLIED)

    doc = build_application_document(job_id, candidate_id, payload, utcnow())
    try:
        result = await db[APPLICATIONS].insert_one(doc)
    except DuplicateKeyError:
        raise BadRequestException(ALREADY_APPLIED)
    doc["_id"] = result.inserted_id

    try:
        await increment_total_applications(db, job["_id"])
    except PyMongoError:
        logger.exception("application_counter_update_failed", job_id=job_id, application_id=str(result.inserted_id))

    logger.info("application_submitted", application_id=str(result.inserted_id), job_id=job_id, candidate_id=candidate_id)
    return doc


async def increment_total_applications(db: AsyncIOMotorDatabase, job_object_id) -> None:
    await db[JOBS].update_one({"_id": job_object_id}, {"$inc": {"total_applications": 1}})


async def list_candidate_applications(
    db: AsyncIOMotorDatabase,
    candidate_id: str,
    status: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> Dict[str, Any]:
    """The candidate's applications, newest first, each with a summary of its job."""
    page = max(1, page)
    limit = min(max(1, limit), 100)

    query: Dict[str, Any] = {"candidate_id": candidate_id}
    if status:
        query["status"] = status

    cursor = db[APPLICATIONS].find(query).sort("submitted_at", -1).skip((page - 1) * limit).limit(limit)
    applications = await cursor.to_list(limit)
    total = await db[APPLICATIONS].count_documents(query)

    job_ids = [oid for oid in (parse_object_id(a["job_id"]) for a in applications) if oid is not None]
    jobs = await db[JOBS].find({"_id": {"$in": job_ids}}).to_list(len(job_ids) or 1)
    jobs_by_id = {str(job["_id"]): job for job in jobs}

    for application in applications:
        job = jobs_by_id.get(application["job_id"])
        application["job"] = {
            "id": application["job_id"],
            "title": job.get("title"),
            "company_name": job.get("company_name"),
            "company_logo": job.get("company_logo"),
            "location": job.get("location"),
            "job_type": job.get("job_type"),
            "status": job.get("status"),
        } if job else None

    return {
        "applications": applications,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit),
        },
    }


# ===========================
# SHARED / EMPLOYER SIDE
# ===========================

async def get_application(db: AsyncIOMotorDatabase, application_id: str, viewer_id: str) -> dict:
    """The application, if ``viewer_id`` is its candidate or owns its job."""
    object_id = parse_object_id(application_id)
    application = await db[APPLICATIONS].find_one({"_id": object_id}) if object_id else None
    if not application:
        raise ApplicationNotFoundException()

    if application.get("candidate_id") == viewer_id:
        return application

    job = await _find_job(db, application["job_id"])
    if job and job.get("company_id") == viewer_id:
        return application

    raise ForbiddenException("Unauthorized")


async def list_job_applications(db: AsyncIOMotorDatabase, job: dict, status: Optional[str] = None) -> list:
    query: Dict[str, Any] = {"job_id": str(job["_id"])}
    if status:
        query["status"] = status
    return await db[APPLICATIONS].find(query).sort("submitted_at", -1).to_list(None)


async def change_status(db: AsyncIOMotorDatabase, application_id: str, employer_id: str, new_status: str) -> dict:
    """
    Move an application to ``new_status`` on behalf of the job's owner.

    The previous status is read atomically with the write, and the job's
    ``shortlisted_applications`` moves by exactly one when the application
    enters or leaves the shortlist. The counter is a cache of the
    applications themselves: if adjusting it fails, the status change stands.
    """
    if not new_status:
        raise BadRequestException("Status is required")

    object_id = parse_object_id(application_id)
    application = await db[APPLICATIONS].find_one({"_id": object_id}) if object_id else None
    if not application:
        raise ApplicationNotFoundException()

    job = await _find_job(db, application["job_id"])
    if not job or job.get("company_id") != employer_id:
        raise ForbiddenException("Unauthorized")

    now = utcnow()
    updates: Dict[str, Any] = {"status": new_status, "reviewed_at": now, "updated_at": now}
    if new_status == STATUS_SHORTLISTED:
        updates["shortlisted_at"] = now

    previous = await db[APPLICATIONS].find_one_and_update(
        {"_id": object_id},
        {"$set": updates},
        return_document=ReturnDocument.BEFORE,
    )
    if previous is None:
        raise ApplicationNotFoundException()

    delta = shortlist_delta(previous.get("status"), new_status)
    if delta:
        try:
            await adjust_shortlisted(db, job["_id"], delta)
        except PyMongoError:
            logger.exception(
                "shortlist_counter_update_failed",
                application_id=application_id,
                job_id=str(job["_id"]),
                delta=delta,
            )

    logger.info(
        "application_status_changed",
        application_id=application_id,
        job_id=str(job["_id"]),
        previous_status=previous.get("status"),
        status=new_status,
    )

    return {**previous, **updates}


async def adjust_shortlisted(db: AsyncIOMotorDatabase, job_object_id, delta: int) -> None:
    """``$inc`` the shortlist counter; a decrement never takes it below zero."""
    query: Dict[str, Any] = {"_id": job_object_id}
    if delta < 0:
        query["shortlisted_applications"] = {"$gt": 0}
    await db[JOBS].update_one(query, {"$inc": {"shortlisted_applications": delta}})


async def delete_for_job(db: AsyncIOMotorDatabase, job_id: str) -> int:
    result = await db[APPLICATIONS].delete_many({"job_id": job_id})
    return result.deleted_count


async def application_stats(db: AsyncIOMotorDatabase, query: Dict[str, Any]) -> Dict[str, int]:
    """Application counts grouped by status for ``query``, plus ``total``."""
    rows = await db[APPLICATIONS].aggregate([
        {"$match": query},
        {"$group": {"_id": "$status", "count": {"$sum": 1}}},
    ]).to_list(None)

    stats = {row["_id"]: row["count"] for row in rows if row["_id"]}
    stats["total"] = sum(row["count"] for row in rows)
    return stats
