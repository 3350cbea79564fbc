# ========================================
# skillhire/routes/pages.py
# ========================================

from typing import Optional

from fastapi import APIRouter, Depends, Response
from fastapi.responses import RedirectResponse
from motor.motor_asyncio import AsyncIOMotorDatabase

from skillhire.database import JOBS, get_db
from skillhire.middleware import remember_role
from skillhire.services import lifecycle
from skillhire.services.applications import application_stats
from skillhire.utils.auth import get_optional_person, require_candidate, require_employer
from skillhire.utils.errors import NotFoundException
from skillhire.utils.roles import ROLE_CONFIG, ROLES, get_role_dashboard_path

router = APIRouter(tags=["Pages"])


def _role_summary(role: str) -> dict:
    config = ROLE_CONFIG[role]
    return {
        "role": role,
        "name": config["name"],
        "description": config["description"],
        "dashboard_path": config["dashboard_path"],
    }


# ✅ 1. ROLE-AWARE ENTRY POINT
@router.get("/dashboard")
async def dashboard(person: Optional[dict] = Depends(get_optional_person)):
    if not person or not person.get("role"):
        return RedirectResponse("/onboarding")
    redirect = RedirectResponse(get_role_dashboard_path(person["role"]))
    remember_role(redirect, person["role"])
    return redirect


# ✅ 2. EMPLOYER DASHBOARD
@router.get("/employer/dashboard")
async def employer_dashboard(
    employer: dict = Depends(require_employer),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    employer_id = employer["clerk_id"]

    rows = await db[JOBS].aggregate([
        {"$match": {"company_id": employer_id}},
        {"$group": {"_id": "$status", "count": {"$sum": 1}}},
    ]).to_list(None)
    jobs_by_status = {row["_id"]: row["count"] for row in rows if row["_id"]}

    job_ids = [str(job["_id"]) for job in await db[JOBS].find({"company_id": employer_id}, {"_id": 1}).to_list(None)]
    applications = await application_stats(db, {"job_id": {"$in": job_ids}})

    return {
        "role": employer["role"],
        "jobs": {
            "total": sum(jobs_by_status.values()),
            "by_status": jobs_by_status,
        },
        "applications": applications,
        "free_jobs": await lifecycle.free_jobs_summary(db, employer_id),
    }


# ✅ 3. CANDIDATE DASHBOARD
@router.get("/candidate/dashboard")
async def candidate_dashboard(
    candidate: dict = Depends(require_candidate),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return {
        "role": candidate["role"],
        "applications": await application_stats(db, {"candidate_id": candidate["clerk_id"]}),
    }


# ✅ 4. ONBOARDING
@router.get("/onboarding")
async def onboarding(response: Response, person: Optional[dict] = Depends(get_optional_person)):
    if person and person.get("role"):
        remember_role(response, person["role"])
        return {
            "completed": True,
            "role": person["role"],
            "redirect": get_role_dashboard_path(person["role"]),
        }
    return {"completed": False, "roles": [_role_summary(role) for role in ROLES]}


@router.get("/onboarding/{role}")
async def onboarding_role(role: str, response: Response, person: Optional[dict] = Depends(get_optional_person)):
    if role not in ROLES:
        raise NotFoundException("Page not found")
    if person and person.get("role"):
        remember_role(response, person["role"])
        return {
            "completed": True,
            "role": person["role"],
            "redirect": get_role_dashboard_path(person["role"]),
        }
    return {"completed": False, **_role_summary(role)}
