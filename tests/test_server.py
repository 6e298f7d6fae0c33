from datetime import datetime, timezone

import httpx
import pytest

from app.web.server import create_app

ENDPOINT = "/api/meli-scan-worker"


@pytest.fixture
def api(session_factory, ml):
    app = create_app(session_factory=session_factory, transport=ml.transport)
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://worker.test")


async def test_healthz(api):
    async with api:
        r = await api.get("/healthz")
    assert r.json() == {"ok": True}


@pytest.mark.parametrize("method", ["GET", "PUT", "DELETE", "PATCH", "OPTIONS"])
async def test_non_post_is_rejected(api, db, method):
    await db.add_jobs({"id": 1, "site_id": "MLC", "category_id": "MLC1"})
    async with api:
        r = await api.request(method, ENDPOINT)
    assert r.status_code == 405
    assert r.json() == {"ok": False, "error": "Method not allowed"}
    assert (await db.job(1)).status == "pending"


async def test_post_without_body_uses_defaults(api):
    async with api:
        r = await api.post(ENDPOINT)
    assert r.status_code == 200
    assert r.json() == {"ok": True, "msg": "no_jobs", "site_id": "MLC", "batch": 5, "limit": 50}


async def test_invalid_body_is_a_bad_request(api):
    async with api:
        r = await api.post(ENDPOINT, json={"batch": "lots"})
    assert r.status_code == 400
    assert r.json()["ok"] is False


async def test_post_runs_batch_with_header_token(api, db, ml):
    await db.add_token(user_id="1", access_token="db-token", refresh_token="r-1",
                       updated_at=datetime(2026, 10, 18, tzinfo=timezone.utc))
    await db.add_jobs({"id": 7, "site_id": "MLC", "category_id": "MLC1234"})
    ml.on("/sites/MLC/search", httpx.Response(200, json={"results": [{"id": "MLC111", "title": "X"}]}))

    async with api:
        r = await api.post(ENDPOINT, json={"site_id": "MLC", "limit": 10}, headers={"Authorization": "Bearer hdr"})

    body = r.json()
    assert r.status_code == 200
    assert body["token_source"] == "header"
    assert body["token_len"] == 3
    assert body["results"] == [{"job_id": 7, "category": "MLC1234", "ok": True, "items": 1, "mode": "category_public"}]
    assert ml.requests[0].url.params["limit"] == "10"


async def test_invocation_failure_is_a_server_error(api, db):
    await db.add_jobs({"id": 1, "site_id": "MLC", "category_id": "MLC1"})
    async with api:
        r = await api.post(ENDPOINT, json={})
    assert r.status_code == 500
    assert r.json()["ok"] is False


async def test_head_is_rejected_like_other_methods(api, db):
    await db.add_jobs({"id": 1, "site_id": "MLC", "category_id": "MLC1"})
    async with api:
        r = await api.head(ENDPOINT)
    assert r.status_code == 405
    assert (await db.job(1)).status == "pending"
