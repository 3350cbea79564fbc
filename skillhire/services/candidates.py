# ========================================
# skillhire/services/candidates.py
# ========================================

from typing import Any, Dict, List

from motor.motor_asyncio import AsyncIOMotorDatabase

from skillhire.database import APPLICATIONS, JOBS, USERS, parse_object_id
from skillhire.services.jobs import _clamp, pagination
from skillhire.utils.errors import NotFoundException
from skillhire.utils.roles import CANDIDATE

DEFAULT_LIMIT = 20

EMPTY_CANDIDATE_PROFILE = {
    "skills": [],
    "experience": None,
    "availability": "flexible",
    "location": "",
    "portfolio": [],
}


async def _employer_job_ids(db: AsyncIOMotorDatabase, employer_id: str) -> List[str]:
    jobs = await db[JOBS].find({"company_id": employer_id}, {"_id": 1}).to_list(None)
    return [str(job["_id"]) for job in jobs]


def _candidate_view(person: dict) -> Dict[str, Any]:
    profile = person.get("profile") or {}
    return {
        "id": str(person["_id"]),
        "clerk_id": person["clerk_id"],
        "email": person.get("email"),
        "first_name": profile.get("first_name", ""),
        "last_name": profile.get("last_name", ""),
        "profile_picture": profile.get("profile_picture"),
        "role": person.get("role"),
        "candidate_profile": profile.get("candidate_profile") or dict(EMPTY_CANDIDATE_PROFILE),
        "applications": [],
    }


def _application_summary(application: dict, job_titles: Dict[str, str]) -> Dict[str, Any]:
    return {
        "id": str(application["_id"]),
        "job_id": application["job_id"],
        "job_title": job_titles.get(application["job_id"]),
        "status": application.get("status"),
        "evaluation": application.get("evaluation"),
        "submitted_at": application.get("submitted_at"),
    }


async def _job_titles(db: AsyncIOMotorDatabase, job_ids: List[str]) -> Dict[str, str]:
    object_ids = [oid for oid in (parse_object_id(job_id) for job_id in job_ids) if oid is not None]
    jobs = await db[JOBS].find({"_id": {"$in": object_ids}}, {"title": 1}).to_list(None)
    return {str(job["_id"]): job.get("title") for job in jobs}


async def list_employer_candidates(
    db: AsyncIOMotorDatabase,
    employer_id: str,
    page: int = 1,
    limit: int = DEFAULT_LIMIT,
) -> Dict[str, Any]:
    """
    Every candidate who applied to one of the employer's jobs, once each.

    Candidates are ordered by their most recent application; each carries a
    summary of all their applications to this employer.
    """
    page, limit = _clamp(page, limit)

    job_ids = await _employer_job_ids(db, employer_id)
    if not job_ids:
        return {"candidates": [], "pagination": pagination(page, limit, 0)}

    applications = await db[APPLICATIONS].find({"job_id": {"$in": job_ids}}).sort("submitted_at", -1).to_list(None)
    candidate_ids = list(dict.fromkeys(app["candidate_id"] for app in applications))

    people = await db[USERS].find({"clerk_id": {"$in": candidate_ids}, "role": CANDIDATE}).to_list(None)
    by_clerk_id = {person["clerk_id"]: _candidate_view(person) for person in people}

    titles = await _job_titles(db, job_ids)
    for application in applications:
        candidate = by_clerk_id.get(application["candidate_id"])
        if candidate:
            candidate["applications"].append(_application_summary(application, titles))

    ordered = [by_clerk_id[clerk_id] for clerk_id in candidate_ids if clerk_id in by_clerk_id]
    start = (page - 1) * limit
    return {
        "candidates": ordered[start:start + limit],
        "pagination": pagination(page, limit, len(ordered)),
    }


async def get_employer_candidate(db: AsyncIOMotorDatabase, employer_id: str, candidate_id: str) -> Dict[str, Any]:
    """
    One candidate, by Clerk ID, with their applications to the employer's jobs.

    Raises:
        NotFoundException: unknown candidate, or one who never applied to this employer.
    """
    person = await db[USERS].find_one({"clerk_id": candidate_id, "role": CANDIDATE})
    job_ids = await _employer_job_ids(db, employer_id)

    applications = []
    if person and job_ids:
        applications = await db[APPLICATIONS].find(
            {"candidate_id": candidate_id, "job_id": {"$in": job_ids}}
        ).sort("submitted_at", -1).to_list(None)

    if not applications:
        raise NotFoundException("Candidate not found")

    titles = await _job_titles(db, job_ids)
    candidate = _candidate_view(person)
    for application in applications:
        summary = _application_summary(application, titles)
        summary.update({
            "cover_letter": application.get("cover_letter"),
            "projects": application.get("projects", []),
            "skills": application.get("skills"),
            "experience": application.get("experience"),
        })
        candidate["applications"].append(summary)
    return candidate
