# ========================================
# skillhire/routes/employer.py
# ========================================

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from motor.motor_asyncio import AsyncIOMotorDatabase

from skillhire.database import USERS, get_db, serialize_doc
from skillhire.schemas.job import FreeJobsCount
from skillhire.services import applications as application_service
from skillhire.services import candidates as candidate_service
from skillhire.services import jobs as job_service
from skillhire.services import lifecycle
from skillhire.utils.auth import require_employer
from skillhire.utils.export import create_csv_response_headers, export_applications_to_csv

router = APIRouter(prefix="/api/employer", tags=["Employer"])


async def _candidates_by_id(db: AsyncIOMotorDatabase, applications: list) -> dict:
    candidate_ids = list({app["candidate_id"] for app in applications})
    if not candidate_ids:
        return {}
    people = await db[USERS].find({"clerk_id": {"$in": candidate_ids}}).to_list(len(candidate_ids))
    return {person["clerk_id"]: person for person in people}


# ✅ 1. MY JOBS (any state, live metrics)
@router.get("/jobs")
async def my_jobs(
    status: Optional[str] = Query(None, description="Filter by status: active, paused, closed"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    employer: dict = Depends(require_employer),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    result = await job_service.list_employer_jobs(db, employer["clerk_id"], status, page, limit)
    return {
        "jobs": [serialize_doc(job) for job in result["jobs"]],
        "pagination": result["pagination"],
    }


# ✅ 2. APPLICATIONS TO ONE OF MY JOBS
@router.get("/jobs/{job_id}/applications")
async def job_applications(
    job_id: str,
    status: Optional[str] = Query(None),
    employer: dict = Depends(require_employer),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    job = await job_service.get_job(db, job_id)
    job_service.ensure_owner(job, employer["clerk_id"])

    applications = await application_service.list_job_applications(db, job, status)
    candidates = await _candidates_by_id(db, applications)

    result = []
    for app in applications:
        item = serialize_doc(app)
        person = candidates.get(app["candidate_id"])
        if person:
            profile = person.get("profile") or {}
            item["candidate"] = {
                "id": str(person["_id"]),
                "email": person.get("email"),
                "first_name": profile.get("first_name", ""),
                "last_name": profile.get("last_name", ""),
                "profile_picture": profile.get("profile_picture"),
            }
        result.append(item)

    return {
        "job": {"id": str(job["_id"]), "title": job.get("title"), "status": job.get("status")},
        "applications": result,
    }


# ✅ 3. CSV EXPORT
@router.get("/jobs/{job_id}/applications/export")
async def export_job_applications(
    job_id: str,
    employer: dict = Depends(require_employer),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    job = await job_service.get_job(db, job_id)
    job_service.ensure_owner(job, employer["clerk_id"])

    applications = await application_service.list_job_applications(db, job)
    candidates = await _candidates_by_id(db, applications)
    csv_data = export_applications_to_csv(job, applications, candidates)

    return Response(
        content=csv_data,
        media_type="text/csv",
        headers=create_csv_response_headers(f"applications_{job_id}"),
    )


# ✅ 4. FREE-TIER ALLOWANCE
@router.get("/free-jobs-count", response_model=FreeJobsCount)
async def free_jobs_count(
    employer: dict = Depends(require_employer),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return await lifecycle.free_jobs_summary(db, employer["clerk_id"])


# ✅ 5. CANDIDATES WHO APPLIED TO MY JOBS
@router.get("/candidates")
async def my_candidates(
    page: int = Query(1, ge=1),
    limit: int = Query(candidate_service.DEFAULT_LIMIT, ge=1, le=100),
    employer: dict = Depends(require_employer),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return await candidate_service.list_employer_candidates(db, employer["clerk_id"], page, limit)


# ✅ 6. ONE CANDIDATE (by Clerk ID)
@router.get("/candidates/{candidate_id}")
async def my_candidate(
    candidate_id: str,
    employer: dict = Depends(require_employer),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    candidate = await candidate_service.get_employer_candidate(db, employer["clerk_id"], candidate_id)
    return {"candidate": candidate}
