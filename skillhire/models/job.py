from datetime import datetime
from typing import Any, Dict, Optional

# Job lifecycle
JOB_STATUS_ACTIVE = "active"
JOB_STATUS_PAUSED = "paused"
JOB_STATUS_CLOSED = "closed"
JOB_STATUSES = (JOB_STATUS_ACTIVE, JOB_STATUS_PAUSED, JOB_STATUS_CLOSED)

# Commercial state
PAYMENT_STATUS_PENDING = "pending"
PAYMENT_STATUS_PAID = "paid"
PAYMENT_STATUS_COMPLETED = "completed"
PAYMENT_STATUS_FAILED = "failed"
PAYMENT_STATUS_REFUNDED = "refunded"

PLAN_BASIC = "basic"
PLAN_PREMIUM = "premium"
PLAN_TYPES = (PLAN_BASIC, PLAN_PREMIUM)

# Fields only the lifecycle/reconciliation code may write.
PROTECTED_FIELDS = frozenset([
    "company_id",
    "plan_type",
    "payment_status",
    "stripe_session_id",
    "stripe_payment_intent_id",
    "lemonsqueezy_order_id",
    "paid_at",
    "activated_at",
    "total_applications",
    "shortlisted_applications",
    "views",
    "posted_at",
    "created_at",
])

DEFAULT_EXPERIENCE = {"min": 0, "max": 10, "level": "mid"}
DEFAULT_SALARY = {"min": 0, "max": 0, "currency": "USD"}
DEFAULT_EVALUATION_CRITERIA = {
    "required_project_types": [],
    "minimum_project_complexity": "medium",
    "required_technologies": [],
    "preferred_project_features": [],
    "project_scale": "medium",
}


def is_publicly_visible(job: Optional[Dict[str, Any]]) -> bool:
    """A job shows up in discovery only once it is both active and paid."""
    if not job:
        return False
    return job.get("status") == JOB_STATUS_ACTIVE and job.get("payment_status") == PAYMENT_STATUS_PAID


def visible_filter() -> Dict[str, str]:
    return {"status": JOB_STATUS_ACTIVE, "payment_status": PAYMENT_STATUS_PAID}


def build_job_document(
    fields: Dict[str, Any],
    company_id: str,
    company_name: str,
    commercial: Dict[str, Any],
    now: datetime,
) -> Dict[str, Any]:
    """New job document: descriptive fields from the employer, commercial state from the lifecycle."""
    doc = {
        "title": fields["title"],
        "description": fields["description"],
        "category": fields["category"],
        "company_id": company_id,
        "company_name": company_name,
        "company_logo": fields.get("company_logo"),
        "requirements": fields.get("requirements") or [],
        "preferred_skills": fields.get("preferred_skills") or [],
        "required_skills": fields.get("required_skills") or [],
        "experience": fields.get("experience") or dict(DEFAULT_EXPERIENCE),
        "location": fields.get("location") or "Remote",
        "remote": fields.get("remote") if fields.get("remote") is not None else True,
        "job_type": fields.get("job_type") or "full-time",
        "salary": fields.get("salary") or dict(DEFAULT_SALARY),
        "benefits": fields.get("benefits") or [],
        "tags": fields.get("tags") or [],
        "project_evaluation_criteria": fields.get("project_evaluation_criteria") or dict(DEFAULT_EVALUATION_CRITERIA),
        "career_site_url": fields.get("career_site_url") or "",
        "use_career_site": bool(fields.get("use_career_site")),
        "total_applications": 0,
        "shortlisted_applications": 0,
        "views": 0,
        "posted_at": now,
        "created_at": now,
        "updated_at": now,
    }
    doc.update(commercial)
    return doc
