"""Tests for the public remote jobs feed."""

import httpx

from skillhire.config import Settings
from skillhire.services.remote_jobs import RemoteJobsFeed

from tests.conftest import REMOTE_JOBS


def test_feed_is_public_and_cacheable(client):
    response = client.get("/api/remote-jobs")
    assert response.status_code == 200
    assert response.json() == REMOTE_JOBS
    assert response.headers["cache-control"] == "public, s-maxage=300, stale-while-revalidate=600"


def test_upstream_failure_is_a_generic_error(app, client):
    broken = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(502, text="Bad Gateway")))
    app.state.remote_jobs = RemoteJobsFeed(Settings(), http_client=broken)

    response = client.get("/api/remote-jobs")
    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}


def test_non_json_upstream_is_a_generic_error(app, client):
    garbled = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html>")))
    app.state.remote_jobs = RemoteJobsFeed(Settings(), http_client=garbled)

    assert client.get("/api/remote-jobs").status_code == 500
