# ========================================
# skillhire/services/jobs.py
# ========================================

import math
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from skillhire.database import JOBS, parse_object_id
from skillhire.models.job import (
    JOB_STATUS_ACTIVE,
    JOB_STATUSES,
    PAYMENT_STATUS_PAID,
    PROTECTED_FIELDS,
    is_publicly_visible,
    visible_filter,
)
from skillhire.services import applications as application_service
from skillhire.services.lifecycle import job_metrics
from skillhire.utils.errors import BadRequestException, ForbiddenException, JobNotFoundException
from skillhire.utils.logging import get_logger

logger = get_logger(__name__)

MAX_PAGE_SIZE = 100


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def pagination(page: int, limit: int, total: int) -> Dict[str, int]:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if limit else 0,
    }


def _clamp(page: int, limit: int):
    return max(1, page), min(max(1, limit), MAX_PAGE_SIZE)


# ===========================
# PUBLIC DISCOVERY
# ===========================

def public_job_query(
    category: Optional[str] = None,
    search: Optional[str] = None,
    remote: Optional[bool] = None,
    job_type: Optional[str] = None,
    technologies: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """
    Mongo filter for public job discovery.

    The visibility clause is applied last so no search parameter can widen it.
    """
    query: Dict[str, Any] = {}

    if category:
        query["category"] = category

    if search:
        pattern = re.escape(search)
        query["$or"] = [
            {"title": {"$regex": pattern, "$options": "i"}},
            {"description": {"$regex": pattern, "$options": "i"}},
            {"company_name": {"$regex": pattern, "$options": "i"}},
            {"tags": {"$regex": pattern, "$options": "i"}},
        ]

    if remote is not None:
        query["remote"] = remote

    if job_type:
        query["job_type"] = job_type

    if technologies:
        query["required_skills"] = {"$in": technologies}

    query.update(visible_filter())
    return query


async def list_public_jobs(
    db: AsyncIOMotorDatabase,
    category: Optional[str] = None,
    search: Optional[str] = None,
    remote: Optional[bool] = None,
    job_type: Optional[str] = None,
    technologies: Optional[List[str]] = None,
    page: int = 1,
    limit: int = 10,
) -> Dict[str, Any]:
    page, limit = _clamp(page, limit)
    query = public_job_query(category, search, remote, job_type, technologies)

    cursor = db[JOBS].find(query).sort("posted_at", -1).skip((page - 1) * limit).limit(limit)
    jobs = await cursor.to_list(limit)
    total = await db[JOBS].count_documents(query)

    return {"jobs": jobs, "pagination": pagination(page, limit, total)}


async def get_job(db: AsyncIOMotorDatabase, job_id: str) -> dict:
    object_id = parse_object_id(job_id)
    if object_id is None:
        raise JobNotFoundException()

    job = await db[JOBS].find_one({"_id": object_id})
    if not job:
        raise JobNotFoundException()
    return job


async def get_visible_job(db: AsyncIOMotorDatabase, job_id: str, viewer_id: Optional[str] = None) -> dict:
    """
    Job detail for ``viewer_id`` (None for anonymous callers).

    Owners see their jobs in any state. Everyone else gets a 404 for jobs
    that are not publicly visible, and each such view is counted.
    """
    job = await get_job(db, job_id)

    if viewer_id and job.get("company_id") == viewer_id:
        return job

    if not is_publicly_visible(job):
        raise JobNotFoundException()

    updated = await db[JOBS].find_one_and_update(
        {"_id": job["_id"]},
        {"$inc": {"views": 1}},
        return_document=ReturnDocument.AFTER,
    )
    return updated or job


# ===========================
# OWNER OPERATIONS
# ===========================

def ensure_owner(job: dict, employer_id: str) -> None:
    if job.get("company_id") != employer_id:
        raise ForbiddenException("Unauthorized - not your job")


async def update_job(db: AsyncIOMotorDatabase, job: dict, employer_id: str, changes: Dict[str, Any]) -> dict:
    """
    Apply the owner's edits.

    Commercial state, counters and ownership are silently kept; a job can be
    switched back to ``active`` only once it is paid.
    """
    ensure_owner(job, employer_id)

    updates = {key: value for key, value in changes.items() if key not in PROTECTED_FIELDS}

    new_status = updates.get("status")
    if new_status is not None:
        if new_status not in JOB_STATUSES:
            raise BadRequestException("status must be one of: active, paused, closed")
        if new_status == JOB_STATUS_ACTIVE and job.get("payment_status") != PAYMENT_STATUS_PAID:
            raise BadRequestException("Payment required before activating this job")

    updates["updated_at"] = utcnow()

    updated = await db[JOBS].find_one_and_update(
        {"_id": job["_id"]},
        {"$set": updates},
        return_document=ReturnDocument.AFTER,
    )
    logger.info("job_updated", job_id=str(job["_id"]), fields=sorted(k for k in updates if k != "updated_at"))
    return updated


async def delete_job(db: AsyncIOMotorDatabase, job: dict, employer_id: str) -> int:
    """Delete the job and every application to it; returns the number of applications removed."""
    ensure_owner(job, employer_id)

    removed = await application_service.delete_for_job(db, str(job["_id"]))
    await db[JOBS].delete_one({"_id": job["_id"]})

    logger.info("job_deleted", job_id=str(job["_id"]), applications_deleted=removed)
    return removed


async def list_employer_jobs(
    db: AsyncIOMotorDatabase,
    employer_id: str,
    status: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> Dict[str, Any]:
    """
    The employer's own jobs, any state, newest first.

    Application counters are recomputed from the applications and overlaid on
    the stored values, so stale counters never reach the dashboard.
    """
    page, limit = _clamp(page, limit)

    query: Dict[str, Any] = {"company_id": employer_id}
    if status:
        query["status"] = status

    cursor = db[JOBS].find(query).sort("created_at", -1).skip((page - 1) * limit).limit(limit)
    jobs = await cursor.to_list(limit)
    total = await db[JOBS].count_documents(query)

    metrics = await job_metrics(db, [str(job["_id"]) for job in jobs])
    for job in jobs:
        job.update(metrics[str(job["_id"])])

    return {"jobs": jobs, "pagination": pagination(page, limit, total)}
