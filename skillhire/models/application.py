from datetime import datetime
from typing import Any, Dict

# Open set; only "shortlisted" drives a counter.
STATUS_SUBMITTED = "submitted"
STATUS_UNDER_REVIEW = "under_review"
STATUS_SHORTLISTED = "shortlisted"
STATUS_INTERVIEW = "interview"
STATUS_REJECTED = "rejected"
STATUS_HIRED = "hired"


def shortlist_delta(previous_status: str, new_status: str) -> int:
    """+1 entering the shortlist, -1 leaving it, 0 otherwise."""
    was_shortlisted = previous_status == STATUS_SHORTLISTED
    is_shortlisted = new_status == STATUS_SHORTLISTED
    if is_shortlisted and not was_shortlisted:
        return 1
    if was_shortlisted and not is_shortlisted:
        return -1
    return 0


def build_application_document(job_id: str, candidate_id: str, payload: Dict[str, Any], now: datetime) -> Dict[str, Any]:
    return {
        "job_id": job_id,
        "candidate_id": candidate_id,
        "cover_letter": payload.get("cover_letter") or "",
        "resume_url": payload.get("resume_url"),
        "projects": payload.get("projects") or [],
        "skills": payload.get("skills") or {"technical": [], "soft": []},
        "experience": payload.get("experience") or {"total_years": 0, "relevant_years": 0, "previous_roles": []},
        "evaluation": payload.get("evaluation"),
        "status": STATUS_SUBMITTED,
        "submitted_at": now,
        "reviewed_at": None,
        "shortlisted_at": None,
        "updated_at": now,
    }
