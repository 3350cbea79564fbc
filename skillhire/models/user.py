from datetime import datetime
from typing import Any, Dict, Optional

from skillhire.utils.roles import CANDIDATE, EMPLOYER

PROFILE_KEY_BY_ROLE = {
    CANDIDATE: "candidate_profile",
    EMPLOYER: "employer_profile",
}

DEFAULT_EMPLOYER_PROFILE = {
    "company_name": "",
    "company_size": "1-10",
    "industry": "",
    "website": "",
    "company_description": "",
    "location": "",
}


def build_profile(role: str, profile: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Common profile fields plus only the sub-profile matching ``role``."""
    profile = profile or {}
    result = {
        "first_name": profile.get("first_name") or "",
        "last_name": profile.get("last_name") or "",
        "profile_picture": profile.get("profile_picture"),
        "bio": profile.get("bio"),
    }

    key = PROFILE_KEY_BY_ROLE[role]
    sub_profile = profile.get(key)
    if role == EMPLOYER:
        sub_profile = {**DEFAULT_EMPLOYER_PROFILE, **(sub_profile or {})}
        if not sub_profile.get("company_size"):
            sub_profile["company_size"] = "1-10"
    if sub_profile is not None:
        result[key] = sub_profile
    return result


def build_person_document(
    clerk_id: str,
    email: str,
    role: str,
    profile: Optional[Dict[str, Any]],
    now: datetime,
) -> Dict[str, Any]:
    return {
        "clerk_id": clerk_id,
        "email": email.lower(),
        "role": role,
        "onboarding_completed": False,
        "profile": build_profile(role, profile),
        "created_at": now,
        "updated_at": now,
    }
