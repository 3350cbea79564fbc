"""Tests for the employer's candidate directory."""

from datetime import datetime, timedelta, timezone

from skillhire.database import APPLICATIONS
from skillhire.models.application import build_application_document

from tests.conftest import CANDIDATE_ID, EMPLOYER_ID, OTHER_EMPLOYER_ID, auth_headers, seed_job, seed_person


async def seed_application(db, job, candidate_id=CANDIDATE_ID, minutes_ago=0, **overrides):
    submitted = datetime.now(timezone.utc) - timedelta(minutes=minutes_ago)
    payload = {"cover_letter": "Hello", "projects": [{"title": "Ledger"}], **overrides}
    doc = build_application_document(str(job["_id"]), candidate_id, payload, submitted)
    result = await db[APPLICATIONS].insert_one(doc)
    doc["_id"] = result.inserted_id
    return doc


class TestCandidateList:
    """Tests for GET /api/employer/candidates."""

    async def test_candidates_are_listed_once_with_their_applications(self, client, db, employer, candidate):
        first = await seed_job(db, title="Backend Engineer")
        second = await seed_job(db, title="Data Engineer")
        await seed_application(db, first, minutes_ago=10)
        await seed_application(db, second, minutes_ago=5)

        response = client.get("/api/employer/candidates", headers=auth_headers(EMPLOYER_ID))
        assert response.status_code == 200
        data = response.json()
        assert data["pagination"] == {"page": 1, "limit": 20, "total": 1, "pages": 1}

        listed = data["candidates"][0]
        assert listed["clerk_id"] == CANDIDATE_ID
        assert listed["first_name"] == "Sam"
        assert [app["job_title"] for app in listed["applications"]] == ["Data Engineer", "Backend Engineer"]

    async def test_other_employers_applicants_are_not_listed(self, client, db, employer, other_employer, candidate):
        await seed_application(db, await seed_job(db, OTHER_EMPLOYER_ID))

        response = client.get("/api/employer/candidates", headers=auth_headers(EMPLOYER_ID))
        assert response.json()["candidates"] == []
        assert response.json()["pagination"]["total"] == 0

    async def test_most_recent_applicant_comes_first_and_pages(self, client, db, employer, candidate):
        newcomer = await seed_person(db, "user_new_candidate", "candidate")
        job = await seed_job(db)
        await seed_application(db, job, minutes_ago=30)
        await seed_application(db, job, candidate_id=newcomer["clerk_id"], minutes_ago=1)

        response = client.get("/api/employer/candidates?limit=1", headers=auth_headers(EMPLOYER_ID))
        data = response.json()
        assert data["pagination"] == {"page": 1, "limit": 1, "total": 2, "pages": 2}
        assert data["candidates"][0]["clerk_id"] == "user_new_candidate"

        response = client.get("/api/employer/candidates?limit=1&page=2", headers=auth_headers(EMPLOYER_ID))
        assert response.json()["candidates"][0]["clerk_id"] == CANDIDATE_ID

    async def test_candidates_cannot_browse_the_directory(self, client, candidate):
        response = client.get("/api/employer/candidates", headers=auth_headers(CANDIDATE_ID))
        assert response.status_code == 403


class TestCandidateDetail:
    """Tests for GET /api/employer/candidates/{candidate_id}."""

    async def test_detail_includes_application_content(self, client, db, employer, candidate):
        job = await seed_job(db)
        await seed_application(db, job, cover_letter="I built three payment systems.")

        response = client.get(f"/api/employer/candidates/{CANDIDATE_ID}", headers=auth_headers(EMPLOYER_ID))
        assert response.status_code == 200
        detail = response.json()["candidate"]
        assert detail["email"] == "sam@gmail.com"
        assert detail["candidate_profile"]["skills"] == ["python"]
        assert detail["applications"][0]["cover_letter"] == "I built three payment systems."

    async def test_candidate_who_never_applied_is_hidden(self, client, db, employer, other_employer, candidate):
        await seed_application(db, await seed_job(db, OTHER_EMPLOYER_ID))

        response = client.get(f"/api/employer/candidates/{CANDIDATE_ID}", headers=auth_headers(EMPLOYER_ID))
        assert response.status_code == 404
        assert response.json() == {"error": "Candidate not found"}

    async def test_unknown_candidate(self, client, employer):
        response = client.get("/api/employer/candidates/user_nobody", headers=auth_headers(EMPLOYER_ID))
        assert response.status_code == 404
