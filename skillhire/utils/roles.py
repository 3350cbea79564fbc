from typing import Optional

EMPLOYER = "employer"
CANDIDATE = "candidate"
ROLES = (EMPLOYER, CANDIDATE)

ROLE_CONFIG = {
    EMPLOYER: {
        "name": "Employer",
        "description": "Hire talent through project-based evaluation",
        "dashboard_path": "/employer/dashboard",
        "allowed_routes": [
            "/employer",
            "/jobs",
            "/dashboard",
            "/messages",
            "/profile",
            "/settings",
            "/onboarding",
        ],
        "restricted_routes": ["/candidate"],
    },
    CANDIDATE: {
        "name": "Candidate",
        "description": "Find opportunities through hands-on projects",
        "dashboard_path": "/candidate/dashboard",
        "allowed_routes": [
            "/candidate",
            "/jobs",
            "/dashboard",
            "/messages",
            "/profile",
            "/settings",
            "/onboarding",
        ],
        "restricted_routes": ["/employer"],
    },
}


def matches_prefix(pathname: str, route: str) -> bool:
    """``/employer`` matches ``/employer`` and ``/employer/...`` but not ``/employers``."""
    return pathname == route or pathname.startswith(route.rstrip("/") + "/")


def is_route_allowed(role: str, pathname: str) -> bool:
    config = ROLE_CONFIG[role]
    allowed = any(matches_prefix(pathname, route) for route in config["allowed_routes"])
    restricted = any(matches_prefix(pathname, route) for route in config["restricted_routes"])
    return allowed and not restricted


def get_role_dashboard_path(role: str) -> str:
    return ROLE_CONFIG[role]["dashboard_path"]


def normalize_role(value) -> Optional[str]:
    if isinstance(value, str) and value.strip().lower() in ROLES:
        return value.strip().lower()
    return None
