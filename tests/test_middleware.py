"""Tests for the route-level access middleware."""

import pytest

from skillhire.middleware import is_public_route, page_redirect, role_from_claims, role_from_referrer
from skillhire.utils.roles import is_route_allowed

from tests.conftest import CANDIDATE_ID, EMPLOYER_ID, auth_headers


@pytest.mark.parametrize(
    "method,path",
    [
        ("GET", "/"),
        ("GET", "/sign-in"),
        ("GET", "/sign-up/employer"),
        ("GET", "/jobs/123"),
        ("GET", "/health"),
        ("POST", "/api/webhooks/stripe"),
        ("GET", "/api/jobs"),
        ("GET", "/api/jobs/65a1b2c3d4e5f60718293a4b"),
        ("POST", "/api/check-email"),
        ("GET", "/api/remote-jobs"),
    ],
)
def test_public_routes(method, path):
    assert is_public_route(method, path)


@pytest.mark.parametrize(
    "method,path",
    [
        ("POST", "/api/jobs"),
        ("GET", "/api/jobs/123/applications"),
        ("GET", "/api/employer/jobs"),
        ("GET", "/api/employer/candidates"),
        ("GET", "/employer/dashboard"),
        ("GET", "/employers"),
    ],
)
def test_protected_routes(method, path):
    assert not is_public_route(method, path)


def test_role_from_claims_checks_metadata():
    assert role_from_claims({"role": "employer"}) == "employer"
    assert role_from_claims({"public_metadata": {"role": "Candidate"}}) == "candidate"
    assert role_from_claims({"metadata": {"role": "candidate"}}) == "candidate"
    assert role_from_claims({"role": "admin"}) is None
    assert role_from_claims(None) is None


def test_role_from_referrer():
    assert role_from_referrer("http://localhost:3000/sign-up/employer") == "employer"
    assert role_from_referrer("http://localhost:3000/onboarding/candidate?step=2") == "candidate"
    assert role_from_referrer("http://localhost:3000/jobs") is None


def test_page_redirect_rules():
    assert page_redirect("/employer/dashboard", None) == "/onboarding"
    assert page_redirect("/onboarding/employer", None) is None
    assert page_redirect("/candidate/dashboard", "employer") == "/employer/dashboard"
    assert page_redirect("/employer/dashboard", "employer") is None
    assert page_redirect("/employer/jobs", "candidate") == "/candidate/dashboard"


class TestPages:
    """Browser-facing redirects."""

    def test_unauthenticated_page_goes_to_sign_in(self, client):
        response = client.get("/employer/dashboard", follow_redirects=False)
        assert response.status_code == 307
        assert response.headers["location"] == "/sign-in?redirect_url=%2Femployer%2Fdashboard"

    def test_user_without_role_goes_to_onboarding(self, client):
        response = client.get("/employer/dashboard", headers=auth_headers("user_new_employer"), follow_redirects=False)
        assert response.status_code == 307
        assert response.headers["location"] == "/onboarding"

    def test_onboarding_is_reachable_without_role(self, client):
        response = client.get("/onboarding/employer", headers=auth_headers("user_new_employer"), follow_redirects=False)
        assert response.status_code == 200
        assert response.json()["completed"] is False
        assert response.json()["dashboard_path"] == "/employer/dashboard"

    def test_wrong_dashboard_redirects_to_own(self, client):
        response = client.get(
            "/candidate/dashboard",
            headers=auth_headers(EMPLOYER_ID, role="employer"),
            follow_redirects=False,
        )
        assert response.status_code == 307
        assert response.headers["location"] == "/employer/dashboard"

    def test_role_intent_cookie(self, client):
        client.cookies.set("role_intent", "candidate")
        response = client.get("/employer/dashboard", headers=auth_headers("user_new_candidate"), follow_redirects=False)
        assert response.headers["location"] == "/candidate/dashboard"

    def test_referrer_names_the_role(self, client):
        response = client.get(
            "/candidate/dashboard",
            headers={**auth_headers("user_new_employer"), "Referer": "http://localhost:3000/sign-up/employer"},
            follow_redirects=False,
        )
        assert response.headers["location"] == "/employer/dashboard"

    async def test_employer_dashboard(self, client, db, employer):
        response = client.get("/employer/dashboard", headers=auth_headers(EMPLOYER_ID, role="employer"))
        assert response.status_code == 200
        data = response.json()
        assert data["role"] == "employer"
        assert data["free_jobs"]["free_jobs_remaining"] == 20

    async def test_new_employer_reaches_dashboard_after_registering(self, client, db):
        headers = auth_headers("user_new_employer")
        response = client.post("/api/users", json={"email": "founder@startup.dev", "role": "employer"}, headers=headers)
        assert response.status_code == 200

        response = client.get("/employer/dashboard", headers=headers, follow_redirects=False)
        assert response.status_code == 200
        assert response.json()["role"] == "employer"

    async def test_onboarding_pins_stored_role(self, client, employer):
        headers = auth_headers(EMPLOYER_ID)
        response = client.get("/onboarding", headers=headers, follow_redirects=False)
        assert response.json()["completed"] is True
        assert response.cookies["role_intent"] == "employer"

        assert client.get("/employer/dashboard", headers=headers, follow_redirects=False).status_code == 200

    async def test_dashboard_entry_point_follows_stored_role(self, client, candidate):
        response = client.get(
            "/dashboard",
            headers=auth_headers(CANDIDATE_ID, role="candidate"),
            follow_redirects=False,
        )
        assert response.status_code == 307
        assert response.headers["location"] == "/candidate/dashboard"


class TestApi:
    """API routes answer with JSON, never redirects."""

    def test_protected_api_without_session(self, client):
        response = client.get("/api/employer/jobs", follow_redirects=False)
        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    def test_invalid_token_is_unauthorized(self, client):
        response = client.get("/api/employer/jobs", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_public_api_without_session(self, client):
        assert client.get("/api/jobs").status_code == 200
        assert client.get("/health").status_code == 200

    def test_session_cookie_is_accepted(self, client):
        client.cookies.set("__session", auth_headers("user_nobody")["Authorization"].split(" ", 1)[1])
        response = client.get("/api/users/me")
        assert response.status_code == 200
        assert response.json() == {"user": None}

    def test_request_id_is_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"


def test_is_route_allowed():
    assert is_route_allowed("employer", "/employer/jobs")
    assert is_route_allowed("candidate", "/jobs/123")
    assert not is_route_allowed("candidate", "/employer/dashboard")
    assert not is_route_allowed("employer", "/admin")
