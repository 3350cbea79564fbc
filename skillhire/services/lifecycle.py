"""
Job lifecycle: free-tier activation, paid activation and live metrics.

An employer's first ``FREE_JOB_LIMIT`` jobs go live immediately on the basic
plan. Every later job starts paused until a verified payment activates it.
The count includes every job the employer ever created (any status), so it
only grows and a job never loses its free status after creation.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from skillhire.config import Settings
from skillhire.database import APPLICATIONS, JOBS
from skillhire.models.application import STATUS_SHORTLISTED
from skillhire.models.job import (
    JOB_STATUS_ACTIVE,
    JOB_STATUS_PAUSED,
    PAYMENT_STATUS_PAID,
    PAYMENT_STATUS_PENDING,
    PLAN_BASIC,
    PLAN_TYPES,
    build_job_document,
)
from skillhire.models.user import PROFILE_KEY_BY_ROLE
from skillhire.utils.errors import BadRequestException, ForbiddenException
from skillhire.utils.logging import get_logger
from skillhire.utils.roles import EMPLOYER

logger = get_logger(__name__)

FREE_JOB_LIMIT = 20


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def initial_commercial_state(existing_jobs: int, requested_plan: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Commercial fields for a new job, given how many jobs the employer already has."""
    now = now or utcnow()
    if existing_jobs < FREE_JOB_LIMIT:
        return {
            "plan_type": PLAN_BASIC,
            "payment_status": PAYMENT_STATUS_PAID,
            "status": JOB_STATUS_ACTIVE,
            "paid_at": now,
            "activated_at": now,
        }

    return {
        "plan_type": requested_plan,
        "payment_status": PAYMENT_STATUS_PENDING,
        "status": JOB_STATUS_PAUSED,
        "paid_at": None,
        "activated_at": None,
    }


async def count_employer_jobs(db: AsyncIOMotorDatabase, employer_id: str) -> int:
    return await db[JOBS].count_documents({"company_id": employer_id})


async def free_jobs_summary(db: AsyncIOMotorDatabase, employer_id: str) -> Dict[str, Any]:
    total = await count_employer_jobs(db, employer_id)
    remaining = max(0, FREE_JOB_LIMIT - total)
    return {
        "free_jobs_remaining": remaining,
        "total_jobs_posted": total,
        "is_eligible_for_free": remaining > 0,
    }


async def create_job(db: AsyncIOMotorDatabase, employer: dict, fields: Dict[str, Any]) -> dict:
    """
    Insert a job for ``employer``, free-tier active or paused awaiting payment.

    Raises:
        ForbiddenException: ``company_id`` names someone other than the caller.
        BadRequestException: unknown plan type.
    """
    employer_id = employer["clerk_id"]

    requested_company = fields.get("company_id")
    if requested_company and requested_company != employer_id:
        raise ForbiddenException("You can only post jobs for your own company")

    requested_plan = fields.get("plan_type") or PLAN_BASIC
    if requested_plan not in PLAN_TYPES:
        raise BadRequestException("plan_type must be one of: basic, premium")

    employer_profile = (employer.get("profile") or {}).get(PROFILE_KEY_BY_ROLE[EMPLOYER]) or {}
    company_name = fields.get("company_name") or employer_profile.get("company_name") or "Your Company"
    if not fields.get("company_logo") and employer_profile.get("company_logo"):
        fields = {**fields, "company_logo": employer_profile["company_logo"]}

    now = utcnow()
    existing = await count_employer_jobs(db, employer_id)
    commercial = initial_commercial_state(existing, requested_plan, now)

    doc = build_job_document(fields, employer_id, company_name, commercial, now)
    result = await db[JOBS].insert_one(doc)
    doc["_id"] = result.inserted_id

    logger.info(
        "job_created",
        job_id=str(result.inserted_id),
        employer_id=employer_id,
        existing_jobs=existing,
        status=doc["status"],
        payment_status=doc["payment_status"],
        plan_type=doc["plan_type"],
    )
    return doc


async def activate_paid_job(
    db: AsyncIOMotorDatabase,
    job_id,
    plan_type: Optional[str],
    paid_at: datetime,
    extra: Optional[Dict[str, Any]] = None,
) -> bool:
    """
    Flip a job to active/paid after a confirmed payment.

    Jobs that are already paid are skipped, so a replayed confirmation
    leaves every field (``activated_at`` included) untouched, and a paid job
    its owner has since paused stays paused.
    Returns True when the job changed.
    """
    updates = {
        "status": JOB_STATUS_ACTIVE,
        "payment_status": PAYMENT_STATUS_PAID,
        "paid_at": paid_at,
        "activated_at": utcnow(),
        "updated_at": utcnow(),
    }
    if plan_type in PLAN_TYPES:
        updates["plan_type"] = plan_type
    updates.update(extra or {})

    result = await db[JOBS].update_one(
        {"_id": job_id, "payment_status": {"$ne": PAYMENT_STATUS_PAID}},
        {"$set": updates},
    )
    return result.modified_count > 0


async def activate_job_manually(db: AsyncIOMotorDatabase, settings: Settings, job: dict, employer_id: str) -> bool:
    """Test-mode shortcut that activates a job without a payment."""
    if job.get("company_id") != employer_id:
        raise ForbiddenException("Unauthorized - not your job")
    if not settings.payments_test_mode:
        raise ForbiddenException("Manual activation is only available in test mode")

    now = utcnow()
    changed = await activate_paid_job(
        db,
        job["_id"],
        None,
        now,
        extra={"lemonsqueezy_order_id": f"test-mode-{int(now.timestamp())}"},
    )
    logger.info("job_manually_activated", job_id=str(job["_id"]), employer_id=employer_id, changed=changed)
    return changed


async def job_metrics(db: AsyncIOMotorDatabase, job_ids: Iterable[str]) -> Dict[str, Dict[str, int]]:
    """
    Application counts per job, computed from the applications themselves.

    Returns ``{job_id: {"total_applications": n, "shortlisted_applications": m}}``
    with zeros for jobs that have no applications.
    """
    job_ids = [str(job_id) for job_id in job_ids]
    metrics = {job_id: {"total_applications": 0, "shortlisted_applications": 0} for job_id in job_ids}
    if not job_ids:
        return metrics

    totals = await db[APPLICATIONS].aggregate([
        {"$match": {"job_id": {"$in": job_ids}}},
        {"$group": {"_id": "$job_id", "count": {"$sum": 1}}},
    ]).to_list(len(job_ids))

    shortlisted = await db[APPLICATIONS].aggregate([
        {"$match": {"job_id": {"$in": job_ids}, "status": STATUS_SHORTLISTED}},
        {"$group": {"_id": "$job_id", "count": {"$sum": 1}}},
    ]).to_list(len(job_ids))

    for row in totals:
        metrics[row["_id"]]["total_applications"] = row["count"]
    for row in shortlisted:
        metrics[row["_id"]]["shortlisted_applications"] = row["count"]

    return metrics
