# ========================================
# skillhire/routes/users.py
# ========================================

from typing import Optional

from fastapi import APIRouter, Depends, Response
from motor.motor_asyncio import AsyncIOMotorDatabase

from skillhire.database import get_db, serialize_doc
from skillhire.middleware import remember_role
from skillhire.schemas.user import CheckEmailRequest, CreateEmployerRequest, UserCreate, UserUpdate
from skillhire.services import users as user_service
from skillhire.utils.auth import (
    ClerkIdentity,
    get_current_person,
    get_current_user_id,
    get_identity,
    get_optional_person,
)

router = APIRouter(tags=["Users"])


# ===========================
# CURRENT USER
# ===========================

# ✅ 1. WHO AM I
@router.get("/api/users/me")
async def get_me(person: Optional[dict] = Depends(get_optional_person)):
    """The caller's record; ``user`` is null until they finish onboarding."""
    return {"user": serialize_doc(person)}


# ✅ 2. REGISTER / ONBOARD
@router.post("/api/users")
async def register(
    payload: UserCreate,
    response: Response,
    user_id: str = Depends(get_current_user_id),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    profile = payload.profile.model_dump(exclude_none=True) if payload.profile else None
    result = await user_service.register_person(db, user_id, payload.email, payload.role, profile)
    remember_role(response, result["person"]["role"])
    message = "User created successfully" if result["created"] else "User updated successfully"
    return {"message": message, "user": serialize_doc(result["person"])}


# ✅ 3. UPDATE MY PROFILE
@router.put("/api/users/me")
async def update_me(
    payload: UserUpdate,
    person: dict = Depends(get_current_person),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    changes = payload.model_dump(exclude_unset=True)
    if payload.profile is not None:
        changes["profile"] = payload.profile.model_dump(exclude_unset=True)
    updated = await user_service.update_profile(db, person, changes)
    return {"message": "Profile updated successfully", "user": serialize_doc(updated)}


# ✅ 4. DELETE MY ACCOUNT
@router.delete("/api/users/me")
async def delete_me(
    person: dict = Depends(get_current_person),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    await user_service.delete_person(db, person)
    return {"message": "User deleted successfully"}


# ✅ 5. SOMEONE ELSE'S PUBLIC PROFILE
@router.get("/api/users/{user_id}")
async def get_user(
    user_id: str,
    _: str = Depends(get_current_user_id),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    person = await user_service.get_person(db, user_id)
    return {"user": user_service.public_profile(person)}


# ===========================
# SIGN-UP HELPERS
# ===========================

# ✅ 6. EMPLOYER SIGN-UP
@router.post("/api/auth/create-employer")
async def create_employer(
    payload: CreateEmployerRequest,
    response: Response,
    user_id: str = Depends(get_current_user_id),
    db: AsyncIOMotorDatabase = Depends(get_db),
    identity: ClerkIdentity = Depends(get_identity),
):
    person = await user_service.create_employer(db, identity, user_id, payload.email)
    remember_role(response, person["role"])
    return {"success": True, "user": serialize_doc(person)}


# ✅ 7. EMAIL PRE-CHECK (public)
@router.post("/api/check-email")
async def check_email(payload: CheckEmailRequest, db: AsyncIOMotorDatabase = Depends(get_db)):
    return await user_service.check_email(db, payload.email, payload.role)
