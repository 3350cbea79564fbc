"""
Clerk session handling.

Clerk signs a short-lived session JWT for every signed-in browser. We verify it
locally with python-jose (no network round trip) and only call the Clerk
Backend API when we need profile data for a user we have not stored yet.
"""
from typing import Any, Dict, Optional

import httpx
from fastapi import Depends, Request
from jose import JWTError, jwt
from motor.motor_asyncio import AsyncIOMotorDatabase

from skillhire.config import Settings
from skillhire.database import get_db
from skillhire.services.users import resolve_person
from skillhire.utils.errors import (
    ExternalServiceException,
    ForbiddenException,
    UnauthorizedException,
    UserNotFoundException,
)
from skillhire.utils.logging import get_logger
from skillhire.utils.roles import CANDIDATE, EMPLOYER

logger = get_logger(__name__)

SESSION_COOKIE = "__session"


class ClerkIdentity:
    """Resolves requests to Clerk user IDs and looks up Clerk profiles."""

    def __init__(self, settings: Settings, http_client: Optional[httpx.AsyncClient] = None):
        self.jwt_key = settings.clerk_jwt_key
        self.algorithm = settings.clerk_jwt_algorithm
        self.secret_key = settings.clerk_secret_key
        self.http = http_client or httpx.AsyncClient(base_url=settings.clerk_api_url, timeout=10.0)

    @staticmethod
    def token_from_request(request: Request) -> Optional[str]:
        """Bearer header first (API clients), then Clerk's ``__session`` cookie (browsers)."""
        header = request.headers.get("Authorization", "")
        scheme, _, token = header.partition(" ")
        if scheme.lower() == "bearer" and token.strip():
            return token.strip()
        return request.cookies.get(SESSION_COOKIE) or None

    def decode_session_token(self, token: str) -> Optional[Dict[str, Any]]:
        if not token or not self.jwt_key:
            return None
        try:
            return jwt.decode(
                token,
                self.jwt_key,
                algorithms=[self.algorithm],
                options={"verify_aud": False},
            )
        except JWTError:
            return None

    def claims_for_request(self, request: Request) -> Optional[Dict[str, Any]]:
        token = self.token_from_request(request)
        if not token:
            return None
        return self.decode_session_token(token)

    def resolve_current_user_id(self, request: Request) -> Optional[str]:
        claims = self.claims_for_request(request)
        if not claims:
            return None
        return claims.get("sub") or None

    async def fetch_profile(self, user_id: str) -> Optional[Dict[str, str]]:
        """Name, e-mail and avatar for a Clerk user; None if Clerk does not know them."""
        try:
            response = await self.http.get(
                f"/users/{user_id}",
                headers={"Authorization": f"Bearer {self.secret_key or ''}"},
            )
        except httpx.HTTPError as exc:
            logger.error("clerk_profile_fetch_failed", user_id=user_id, error=str(exc))
            raise ExternalServiceException("clerk") from exc

        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            logger.error("clerk_profile_fetch_failed", user_id=user_id, status=response.status_code)
            raise ExternalServiceException("clerk")

        data = response.json()
        primary_id = data.get("primary_email_address_id")
        addresses = data.get("email_addresses") or []
        email = ""
        for address in addresses:
            if address.get("id") == primary_id:
                email = address.get("email_address", "")
                break
        if not email and addresses:
            email = addresses[0].get("email_address", "")

        return {
            "email": email,
            "first_name": data.get("first_name") or "",
            "last_name": data.get("last_name") or "",
            "avatar_url": data.get("image_url") or "",
        }

    async def aclose(self) -> None:
        await self.http.aclose()


# ===========================
# DEPENDENCIES
# ===========================

def get_identity(request: Request) -> ClerkIdentity:
    return request.app.state.identity


def get_optional_user_id(
    request: Request,
    identity: ClerkIdentity = Depends(get_identity),
) -> Optional[str]:
    return identity.resolve_current_user_id(request)


def get_current_user_id(
    request: Request,
    identity: ClerkIdentity = Depends(get_identity),
) -> str:
    user_id = identity.resolve_current_user_id(request)
    if not user_id:
        raise UnauthorizedException()
    return user_id


async def get_optional_person(
    user_id: str = Depends(get_current_user_id),
    db: AsyncIOMotorDatabase = Depends(get_db),
    identity: ClerkIdentity = Depends(get_identity),
) -> Optional[dict]:
    return await resolve_person(db, identity, user_id)


async def get_current_person(person: Optional[dict] = Depends(get_optional_person)) -> dict:
    if person is None:
        raise UserNotFoundException()
    return person


async def require_employer(person: Optional[dict] = Depends(get_optional_person)) -> dict:
    if person is None or person.get("role") != EMPLOYER:
        raise ForbiddenException("Only employers can access this endpoint")
    return person


async def require_candidate(person: Optional[dict] = Depends(get_optional_person)) -> dict:
    if person is None or person.get("role") != CANDIDATE:
        raise ForbiddenException("Only candidates can access this endpoint")
    return person
