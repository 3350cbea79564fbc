# ========================================
# skillhire/routes/jobs.py
# ========================================

from typing import Optional

from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from skillhire.config import Settings, get_settings
from skillhire.database import get_db, serialize_doc
from skillhire.schemas.job import JobCreate, JobUpdate
from skillhire.services import jobs as job_service
from skillhire.services import lifecycle
from skillhire.utils.auth import get_optional_user_id, require_employer

router = APIRouter(prefix="/api/jobs", tags=["Jobs"])


def _split(value: Optional[str]):
    if not value:
        return None
    return [item.strip() for item in value.split(",") if item.strip()]


# ===========================
# PUBLIC ENDPOINTS
# ===========================

# ✅ 1. LIST / SEARCH LIVE JOBS
@router.get("")
async def list_jobs(
    category: Optional[str] = Query(None),
    search: Optional[str] = Query(None, description="Search in title, company, description and tags"),
    remote: Optional[bool] = Query(None),
    job_type: Optional[str] = Query(None),
    technologies: Optional[str] = Query(None, description="Comma-separated required skills"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    """Jobs that are active and paid, newest first. Nothing else is ever listed here."""
    result = await job_service.list_public_jobs(
        db,
        category=category,
        search=search,
        remote=remote,
        job_type=job_type,
        technologies=_split(technologies),
        page=page,
        limit=limit,
    )
    return {
        "jobs": [serialize_doc(job) for job in result["jobs"]],
        "pagination": result["pagination"],
    }


# ✅ 2. JOB DETAIL
@router.get("/{job_id}")
async def get_job(
    job_id: str,
    viewer_id: Optional[str] = Depends(get_optional_user_id),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    job = await job_service.get_visible_job(db, job_id, viewer_id)
    return {"job": serialize_doc(job)}


# ===========================
# EMPLOYER ENDPOINTS
# ===========================

# ✅ 3. POST A JOB
@router.post("", status_code=201)
async def create_job(
    payload: JobCreate,
    employer: dict = Depends(require_employer),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    job = await lifecycle.create_job(db, employer, payload.model_dump(exclude_none=True))
    return {"job": serialize_doc(job)}


# ✅ 4. EDIT A JOB
@router.put("/{job_id}")
async def update_job(
    job_id: str,
    payload: JobUpdate,
    employer: dict = Depends(require_employer),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    job = await job_service.get_job(db, job_id)
    updated = await job_service.update_job(db, job, employer["clerk_id"], payload.model_dump(exclude_unset=True))
    return {"job": serialize_doc(updated)}


# ✅ 5. DELETE A JOB (and its applications)
@router.delete("/{job_id}")
async def delete_job(
    job_id: str,
    employer: dict = Depends(require_employer),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    job = await job_service.get_job(db, job_id)
    removed = await job_service.delete_job(db, job, employer["clerk_id"])
    return {"message": "Job deleted successfully", "applications_deleted": removed}


# ✅ 6. TEST-MODE ACTIVATION
@router.post("/{job_id}/activate")
async def activate_job(
    job_id: str,
    employer: dict = Depends(require_employer),
    db: AsyncIOMotorDatabase = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    job = await job_service.get_job(db, job_id)
    await lifecycle.activate_job_manually(db, settings, job, employer["clerk_id"])
    job = await job_service.get_job(db, job_id)
    return {"message": "Job activated successfully", "job": serialize_doc(job)}
