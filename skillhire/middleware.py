"""
Route-level access control.

Runs in front of every request. Public routes pass untouched. Other API routes
only need a valid session here (the endpoints enforce roles themselves). Page
routes additionally get the sign-in, onboarding and wrong-dashboard redirects.
"""
import re
from typing import Any, Dict, Optional
from urllib.parse import urlencode, urlparse

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse, Response

from skillhire.utils.logging import get_logger
from skillhire.utils.roles import ROLE_CONFIG, ROLES, get_role_dashboard_path, matches_prefix, normalize_role

logger = get_logger(__name__)

ROLE_INTENT_COOKIE = "role_intent"
ROLE_INTENT_MAX_AGE = 60 * 60 * 24 * 30

PUBLIC_ROUTES = [
    re.compile(pattern)
    for pattern in (
        r"^/$",
        r"^/sign-in(/.*)?$",
        r"^/sign-up(/.*)?$",
        r"^/candidate$",
        r"^/employer$",
        r"^/jobs$",
        r"^/jobs/.*$",
        r"^/remote-jobs$",
        r"^/sso-callback.*$",
        r"^/health$",
        r"^/docs.*$",
        r"^/redoc$",
        r"^/openapi\.json$",
        r"^/files/.*$",
        r"^/api/webhooks.*$",
        r"^/api/auth.*$",
    )
]

PUBLIC_API_ROUTES = {
    "GET": re.compile(r"^/api/(jobs(/[^/]+)?|remote-jobs)/?$"),
    "POST": re.compile(r"^/api/check-email/?$"),
}

ONBOARDING_PATH = "/onboarding"
SIGN_IN_PATH = "/sign-in"


def is_public_route(method: str, path: str) -> bool:
    if any(pattern.match(path) for pattern in PUBLIC_ROUTES):
        return True
    api_pattern = PUBLIC_API_ROUTES.get(method.upper())
    return bool(api_pattern and api_pattern.match(path))


def role_from_claims(claims: Optional[Dict[str, Any]]) -> Optional[str]:
    if not claims:
        return None
    for source in (claims, claims.get("public_metadata"), claims.get("metadata")):
        if isinstance(source, dict):
            role = normalize_role(source.get("role"))
            if role:
                return role
    return None


def role_from_referrer(referrer: Optional[str]) -> Optional[str]:
    """``/sign-up/employer``, ``/onboarding/candidate`` and friends name the role."""
    if not referrer:
        return None
    path = urlparse(referrer).path
    for role in ROLES:
        for prefix in ("/sign-up", "/sign-in", "/onboarding"):
            if matches_prefix(path, f"{prefix}/{role}"):
                return role
    return None


def resolve_role(request: Request, claims: Optional[Dict[str, Any]]) -> Optional[str]:
    """Best-effort role without touching the database: token, then cookie, then referrer."""
    return (
        role_from_claims(claims)
        or normalize_role(request.cookies.get(ROLE_INTENT_COOKIE))
        or role_from_referrer(request.headers.get("referer"))
    )


def remember_role(response: Response, role: str) -> None:
    """Pin the stored role in the ``role_intent`` cookie read by ``resolve_role``."""
    response.set_cookie(ROLE_INTENT_COOKIE, role, max_age=ROLE_INTENT_MAX_AGE, httponly=True, samesite="lax")


def page_redirect(path: str, role: Optional[str]) -> Optional[str]:
    """Where an authenticated caller on page ``path`` must be sent, if anywhere."""
    if role is None:
        if matches_prefix(path, ONBOARDING_PATH):
            return None
        return ONBOARDING_PATH

    restricted = ROLE_CONFIG[role]["restricted_routes"]
    if any(matches_prefix(path, route) for route in restricted):
        return get_role_dashboard_path(role)
    return None


class RoleAccessMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        if request.method == "OPTIONS" or is_public_route(request.method, path):
            return await call_next(request)

        identity = request.app.state.identity
        claims = identity.claims_for_request(request)
        user_id = claims.get("sub") if claims else None

        if path.startswith("/api/"):
            if not user_id:
                return JSONResponse({"error": "Unauthorized"}, status_code=401)
            return await call_next(request)

        if not user_id:
            query = urlencode({"redirect_url": path})
            return RedirectResponse(f"{SIGN_IN_PATH}?{query}")

        target = page_redirect(path, resolve_role(request, claims))
        if target and target != path:
            logger.debug("page_redirect", path=path, target=target)
            return RedirectResponse(target)

        return await call_next(request)
