"""
User directory: Person records keyed by Clerk user ID.

A Person's role is assigned once. Re-registering the same Clerk ID or e-mail
with the other role is refused on every path, never applied.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from skillhire.database import USERS, parse_object_id
from skillhire.models.user import PROFILE_KEY_BY_ROLE, build_person_document, build_profile
from skillhire.utils.email_validation import get_company_email_error_message, is_company_email
from skillhire.utils.errors import (
    BadRequestException,
    ConflictException,
    ForbiddenException,
    RoleChangeException,
    UserNotFoundException,
)
from skillhire.utils.logging import get_logger
from skillhire.utils.roles import CANDIDATE, EMPLOYER, ROLES

logger = get_logger(__name__)

EMAIL_TAKEN = "This email is already registered to another account"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def get_by_clerk_id(db: AsyncIOMotorDatabase, clerk_id: str) -> Optional[dict]:
    return await db[USERS].find_one({"clerk_id": clerk_id})


async def get_by_email(db: AsyncIOMotorDatabase, email: str) -> Optional[dict]:
    if not email:
        return None
    return await db[USERS].find_one({"email": email.lower()})


async def relink_clerk_id(db: AsyncIOMotorDatabase, person: dict, clerk_id: str) -> dict:
    """Point an existing Person at a new Clerk user ID (same e-mail, new Clerk account)."""
    updated = await db[USERS].find_one_and_update(
        {"_id": person["_id"]},
        {"$set": {"clerk_id": clerk_id, "updated_at": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    logger.info("person_relinked", person_id=str(person["_id"]), previous_clerk_id=person.get("clerk_id"), clerk_id=clerk_id)
    return updated


async def resolve_person(db: AsyncIOMotorDatabase, identity, clerk_id: str) -> Optional[dict]:
    """
    Find the Person behind a Clerk user ID.

    Falls back to the Clerk profile's e-mail so that a user who re-created
    their Clerk account keeps their SkillHire record.
    """
    person = await get_by_clerk_id(db, clerk_id)
    if person:
        return person

    profile = await identity.fetch_profile(clerk_id)
    if not profile or not profile.get("email"):
        return None

    person = await get_by_email(db, profile["email"])
    if not person:
        return None
    return await relink_clerk_id(db, person, clerk_id)


def _check_role_unchanged(person: Optional[dict], role: str) -> None:
    if person and person.get("role") and person["role"] != role:
        raise RoleChangeException(person["role"])


async def _check_email_available(db: AsyncIOMotorDatabase, email: str, own: Optional[dict], role: str) -> None:
    holder = await get_by_email(db, email)
    if not holder or (own and holder["_id"] == own["_id"]):
        return
    _check_role_unchanged(holder, role)
    raise ConflictException(EMAIL_TAKEN)


async def register_person(
    db: AsyncIOMotorDatabase,
    clerk_id: str,
    email: str,
    role: str,
    profile: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Create a Person, or update the profile of the existing one.

    Returns ``{"person": doc, "created": bool}``.

    Only the caller's own record is ever updated. An e-mail held by another
    Person is refused; reclaiming a record under a new Clerk account goes
    through ``resolve_person``, which trusts Clerk's e-mail, not the body's.

    Raises:
        BadRequestException: unknown role, or an employer without a company e-mail.
        RoleChangeException: the Clerk ID or e-mail already belongs to the other role.
        ConflictException: the e-mail belongs to another Person.
    """
    if role not in ROLES:
        raise BadRequestException("Invalid role")

    if role == EMPLOYER and not is_company_email(email):
        raise BadRequestException(get_company_email_error_message(email))

    existing = await get_by_clerk_id(db, clerk_id)
    _check_role_unchanged(existing, role)
    await _check_email_available(db, email, existing, role)

    now = utcnow()

    if existing:
        updates = {
            "clerk_id": clerk_id,
            "email": email.lower(),
            "updated_at": now,
        }
        if profile is not None:
            key = PROFILE_KEY_BY_ROLE[role]
            merged = dict(profile)
            if merged.get(key) is None and (existing.get("profile") or {}).get(key) is not None:
                merged[key] = existing["profile"][key]
            updates["profile"] = build_profile(role, merged)

        try:
            person = await db[USERS].find_one_and_update(
                {"_id": existing["_id"]},
                {"$set": updates},
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            raise ConflictException(EMAIL_TAKEN)
        return {"person": person, "created": False}

    doc = build_person_document(clerk_id, email, role, profile, now)
    try:
        result = await db[USERS].insert_one(doc)
    except DuplicateKeyError:
        raise ConflictException(EMAIL_TAKEN)
    doc["_id"] = result.inserted_id
    logger.info("person_created", person_id=str(result.inserted_id), role=role)
    return {"person": doc, "created": True}


async def create_employer(db: AsyncIOMotorDatabase, identity, clerk_id: str, email: str) -> dict:
    """Employer sign-up: company e-mail required, name and avatar pulled from Clerk."""
    if not email or not is_company_email(email):
        raise BadRequestException("Invalid company email")

    existing = await get_by_clerk_id(db, clerk_id)
    _check_role_unchanged(existing, EMPLOYER)
    await _check_email_available(db, email, existing, EMPLOYER)
    if existing:
        return existing

    clerk_profile = await identity.fetch_profile(clerk_id) or {}
    result = await register_person(
        db,
        clerk_id,
        email,
        EMPLOYER,
        {
            "first_name": clerk_profile.get("first_name", ""),
            "last_name": clerk_profile.get("last_name", ""),
            "profile_picture": clerk_profile.get("avatar_url", ""),
            "bio": "",
            "employer_profile": {},
        },
    )
    return result["person"]


async def ensure_candidate(db: AsyncIOMotorDatabase, identity, clerk_id: str) -> dict:
    """
    The candidate behind ``clerk_id``, created on first touch when unknown.

    Raises:
        ForbiddenException: the user is already an employer.
        UserNotFoundException: Clerk has no profile (or no e-mail) for this ID.
    """
    person = await resolve_person(db, identity, clerk_id)
    if person:
        if person.get("role") != CANDIDATE:
            raise ForbiddenException("Only candidates can apply to jobs")
        return person

    clerk_profile = await identity.fetch_profile(clerk_id)
    if not clerk_profile or not clerk_profile.get("email"):
        raise UserNotFoundException()

    result = await register_person(
        db,
        clerk_id,
        clerk_profile["email"],
        CANDIDATE,
        {
            "first_name": clerk_profile.get("first_name", ""),
            "last_name": clerk_profile.get("last_name", ""),
            "profile_picture": clerk_profile.get("avatar_url", ""),
            "candidate_profile": {},
        },
    )
    return result["person"]


async def update_profile(db: AsyncIOMotorDatabase, person: dict, changes: Dict[str, Any]) -> dict:
    """
    Merge profile changes into an existing Person.

    ``role`` may be repeated with its current value but never changed.
    """
    role = changes.get("role")
    if role is not None:
        _check_role_unchanged(person, role)

    updates: Dict[str, Any] = {"updated_at": utcnow()}

    if changes.get("email"):
        email = changes["email"]
        if person["role"] == EMPLOYER and not is_company_email(email):
            raise BadRequestException(get_company_email_error_message(email))
        await _check_email_available(db, email, person, person["role"])
        updates["email"] = email.lower()

    profile_changes = changes.get("profile") or {}
    other_key = PROFILE_KEY_BY_ROLE[CANDIDATE if person["role"] == EMPLOYER else EMPLOYER]
    for key, value in profile_changes.items():
        if key == other_key:
            continue
        if key == PROFILE_KEY_BY_ROLE[person["role"]] and isinstance(value, dict):
            for sub_key, sub_value in value.items():
                updates[f"profile.{key}.{sub_key}"] = sub_value
        else:
            updates[f"profile.{key}"] = value

    if "onboarding_completed" in changes and changes["onboarding_completed"] is not None:
        updates["onboarding_completed"] = bool(changes["onboarding_completed"])

    try:
        return await db[USERS].find_one_and_update(
            {"_id": person["_id"]},
            {"$set": updates},
            return_document=ReturnDocument.AFTER,
        )
    except DuplicateKeyError:
        raise ConflictException(EMAIL_TAKEN)


async def set_profile_field(db: AsyncIOMotorDatabase, person: dict, field: str, value: Any) -> None:
    """Write a single dotted profile field, e.g. ``employer_profile.company_logo``."""
    await db[USERS].update_one(
        {"_id": person["_id"]},
        {"$set": {f"profile.{field}": value, "updated_at": utcnow()}},
    )


async def get_person(db: AsyncIOMotorDatabase, person_id: str) -> dict:
    object_id = parse_object_id(person_id)
    person = await db[USERS].find_one({"_id": object_id}) if object_id else None
    if not person:
        raise UserNotFoundException()
    return person


async def delete_person(db: AsyncIOMotorDatabase, person: dict) -> None:
    await db[USERS].delete_one({"_id": person["_id"]})
    logger.info("person_deleted", person_id=str(person["_id"]))


async def check_email(db: AsyncIOMotorDatabase, email: str, role: str) -> Dict[str, Any]:
    """Whether ``email`` may sign up as ``role``: ``{"valid": bool, "error": str?}``."""
    if role == EMPLOYER and not is_company_email(email):
        return {"valid": False, "error": get_company_email_error_message(email)}

    existing = await get_by_email(db, email)
    if existing and existing.get("role") != role:
        existing_role = existing.get("role")
        return {
            "valid": False,
            "error": (
                f"This email is already registered as a {existing_role}. "
                f"Please use a different email or sign in as {existing_role}."
            ),
        }
    return {"valid": True}


def public_profile(person: dict) -> Dict[str, Any]:
    """What one user may see of another."""
    profile = person.get("profile") or {}
    result = {
        "id": str(person["_id"]),
        "role": person.get("role"),
        "profile": {
            "first_name": profile.get("first_name", ""),
            "last_name": profile.get("last_name", ""),
            "profile_picture": profile.get("profile_picture"),
            "bio": profile.get("bio"),
        },
    }

    candidate = profile.get("candidate_profile")
    if person.get("role") == CANDIDATE and candidate:
        result["profile"]["candidate_profile"] = {
            "skills": candidate.get("skills", []),
            "experience": candidate.get("experience"),
            "availability": candidate.get("availability"),
            "location": candidate.get("location"),
            "languages": candidate.get("languages", []),
        }

    employer = profile.get("employer_profile")
    if person.get("role") == EMPLOYER and employer:
        result["profile"]["employer_profile"] = {
            "company_name": employer.get("company_name"),
            "company_size": employer.get("company_size"),
            "industry": employer.get("industry"),
            "company_description": employer.get("company_description"),
            "location": employer.get("location"),
            "company_logo": employer.get("company_logo"),
        }

    return result
