# ========================================
# skillhire/routes/applications.py
# ========================================

from typing import Optional

from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from skillhire.database import get_db, serialize_doc
from skillhire.schemas.application import ApplicationCreate, ApplicationStatusUpdate
from skillhire.services import applications as application_service
from skillhire.services.users import ensure_candidate
from skillhire.utils.auth import ClerkIdentity, get_current_user_id, get_identity, require_employer

router = APIRouter(prefix="/api/applications", tags=["Applications"])


# ===========================
# CANDIDATE ENDPOINTS
# ===========================

# ✅ 1. APPLY FOR A JOB
@router.post("", status_code=201)
async def apply(
    payload: ApplicationCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncIOMotorDatabase = Depends(get_db),
    identity: ClerkIdentity = Depends(get_identity),
):
    """Submit an application. First-time candidates get their record created here."""
    candidate = await ensure_candidate(db, identity, user_id)
    application = await application_service.apply_to_job(
        db,
        payload.job_id,
        candidate["clerk_id"],
        payload.model_dump(exclude={"job_id"}, exclude_none=True),
    )
    return {"message": "Application submitted successfully", "application": serialize_doc(application)}


# ✅ 2. MY APPLICATIONS
@router.get("")
async def my_applications(
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    result = await application_service.list_candidate_applications(db, user_id, status, page, limit)
    return {
        "applications": [serialize_doc(app) for app in result["applications"]],
        "pagination": result["pagination"],
    }


# ===========================
# SHARED ENDPOINTS
# ===========================

# ✅ 3. ONE APPLICATION (candidate or owning employer)
@router.get("/{application_id}")
async def get_application(
    application_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    application = await application_service.get_application(db, application_id, user_id)
    return {"application": serialize_doc(application)}


# ✅ 4. CHANGE STATUS (owning employer)
@router.patch("/{application_id}")
async def update_status(
    application_id: str,
    payload: ApplicationStatusUpdate,
    employer: dict = Depends(require_employer),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    application = await application_service.change_status(db, application_id, employer["clerk_id"], payload.status)
    return {"message": "Application status updated", "application": serialize_doc(application)}
