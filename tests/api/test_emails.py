from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError


async def _submit(client, email, source=None, **context):
    payload = {"email": email}
    if source:
        payload["source"] = source
    if context:
        payload["context"] = context
    return await client.post("/api/emails", json=payload)


@pytest.mark.asyncio
async def test_submit_normalizes_and_uses_hero_copy(client, admin_headers):
    resp = await client.post(
        "/api/emails",
        json={"email": "  TEST@Example.COM ", "source": "hero-section"},
        headers={"x-forwarded-for": "198.51.100.4, 10.0.0.1", "user-agent": "pytest-agent"},
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert "journey" in body["message"]
    assert body["data"]["email"] == "test@example.com"
    assert body["data"]["duplicate"] is False
    assert "timestamp" in body

    listing = await client.get("/api/emails", headers=admin_headers)
    stored = listing.json()["data"]["emails"][0]
    assert stored["email"] == "test@example.com"
    assert stored["source"] == "hero-section"
    assert stored["engagementData"]["ipAddress"] == "198.51.100.4"
    assert stored["engagementData"]["userAgent"] == "pytest-agent"
    assert stored["engagementData"]["sourceContext"]["fromHero"] is True


@pytest.mark.asyncio
async def test_default_source_and_real_ip_fallback(client, admin_headers):
    resp = await client.post("/api/emails", json={"email": "a@example.com"}, headers={"x-real-ip": "192.0.2.9"})
    assert resp.status_code == 201
    assert resp.json()["data"]["source"] == "landing-page"

    listing = await client.get("/api/emails", headers=admin_headers)
    assert listing.json()["data"]["emails"][0]["engagementData"]["ipAddress"] == "192.0.2.9"


@pytest.mark.asyncio
async def test_unknown_ip_when_no_forwarding_headers(client, admin_headers):
    await client.post("/api/emails", json={"email": "b@example.com"})
    listing = await client.get("/api/emails", headers=admin_headers)
    assert listing.json()["data"]["emails"][0]["engagementData"]["ipAddress"] == "unknown"


@pytest.mark.asyncio
@pytest.mark.parametrize("email", ["not-an-email", "", "user@nodot", "two words@example.com"])
async def test_invalid_email_is_rejected(client, email):
    resp = await client.post("/api/emails", json={"email": email})
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["error"] == "invalid_format"


@pytest.mark.asyncio
async def test_missing_email_is_rejected(client):
    resp = await client.post("/api/emails", json={"source": "hero-section"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid_format"


@pytest.mark.asyncio
async def test_unknown_source_is_rejected(client):
    resp = await client.post("/api/emails", json={"email": "c@example.com", "source": "spam-bot"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid_source"


@pytest.mark.asyncio
async def test_typo_domain_returns_suggestion(client):
    resp = await client.post("/api/emails", json={"email": "jane@gmal.com"})
    assert resp.status_code == 201
    assert resp.json()["data"]["suggestions"] == ["jane@gmail.com"]


@pytest.mark.asyncio
async def test_duplicate_submission_returns_200_without_new_row(client, admin_headers):
    first = await _submit(client, "repeat@example.com", "landing-page")
    second = await _submit(client, "  REPEAT@example.com", "landing-page")

    assert first.status_code == 201
    assert second.status_code == 200
    body = second.json()
    assert body["success"] is True
    assert body["data"]["duplicate"] is True
    assert body["data"]["updated"] is False
    assert body["data"]["id"] == first.json()["data"]["id"]
    assert "already" in body["message"]

    listing = await client.get("/api/emails", headers=admin_headers)
    assert listing.json()["data"]["pagination"]["total"] == 1


@pytest.mark.asyncio
async def test_platform_change_appends_one_history_entry(client, admin_headers):
    first = await _submit(client, "p@example.com", "hero-section", platformPreference="ios", location="hero")
    second = await _submit(client, "p@example.com", "hero-section", platformPreference="android", location="bottom")

    assert second.status_code == 200
    data = second.json()["data"]
    assert data["updated"] is True
    assert data["platformPreference"] == "android"
    assert data["updatedAt"] != first.json()["data"]["updatedAt"]
    assert "Android" in second.json()["message"]

    listing = await client.get("/api/emails", headers=admin_headers)
    blob = listing.json()["data"]["emails"][0]["engagementData"]
    assert blob["platformPreference"] == "android"
    assert len(blob["updateHistory"]) == 1
    entry = blob["updateHistory"][0]
    assert entry["action"] == "platform_preference_updated"
    assert entry["platformPreference"] == "android"
    assert entry["location"] == "bottom"
    assert entry["source"] == "hero-section"


@pytest.mark.asyncio
async def test_same_platform_does_not_update(client, admin_headers):
    first = await _submit(client, "same@example.com", platformPreference="android")
    second = await _submit(client, "same@example.com", platformPreference="android")
    third = await _submit(client, "same@example.com")

    assert second.json()["data"]["updated"] is False
    assert third.json()["data"]["updated"] is False
    assert third.json()["data"]["updatedAt"] == first.json()["data"]["updatedAt"]

    listing = await client.get("/api/emails", headers=admin_headers)
    assert "updateHistory" not in listing.json()["data"]["emails"][0]["engagementData"]


@pytest.mark.asyncio
async def test_database_error_is_generic(client):
    failure = OperationalError("INSERT INTO emails", {}, Exception("connection reset"))
    with patch("sqlalchemy.ext.asyncio.AsyncSession.commit", new=AsyncMock(side_effect=failure)):
        resp = await _submit(client, "down@example.com")

    assert resp.status_code == 500
    body = resp.json()
    assert body["error"] == "database_error"
    assert body["message"] == "An error occurred, please try again"
    assert "connection reset" not in resp.text


# --- listing


@pytest.mark.asyncio
async def test_list_requires_auth(client, admin_headers):
    assert (await client.get("/api/emails")).status_code == 401
    assert (await client.get("/api/emails", headers={"Authorization": "Basic abc"})).status_code == 401

    wrong = await client.get("/api/emails", headers={"Authorization": "Bearer nope"})
    assert wrong.status_code == 403
    assert wrong.json()["error"] == "forbidden"

    assert (await client.get("/api/emails", headers=admin_headers)).status_code == 200


@pytest.mark.asyncio
async def test_pagination_metadata(client, admin_headers):
    for i in range(5):
        await _submit(client, f"user{i}@example.com")

    first = (await client.get("/api/emails?page=1&limit=2", headers=admin_headers)).json()["data"]
    assert first["pagination"]["totalPages"] == 3
    assert first["pagination"]["hasNext"] is True
    assert first["pagination"]["hasPrev"] is False
    assert len(first["emails"]) == 2
    # newest first
    assert first["emails"][0]["email"] == "user4@example.com"

    last = (await client.get("/api/emails?page=3&limit=2", headers=admin_headers)).json()["data"]
    assert last["pagination"]["hasNext"] is False
    assert last["pagination"]["hasPrev"] is True
    assert [e["email"] for e in last["emails"]] == ["user0@example.com"]


@pytest.mark.asyncio
async def test_filters_and_page_statistics(client, admin_headers):
    await _submit(client, "h1@example.com", "hero-section", platformPreference="android", location="hero",
                  sessionTime=30, breathInteractions=2, scrollDepth=40)
    await _submit(client, "h2@example.com", "hero-section", platformPreference="ios", location="hero",
                  sessionTime=90, breathInteractions=4, scrollDepth=80)
    await _submit(client, "o1@example.com", "orb-interaction", location="bottom", breathInteractions=7)
    await _submit(client, "l1@example.com")

    everything = (await client.get("/api/emails", headers=admin_headers)).json()["data"]["analytics"]
    assert everything["platformStats"] == {"android": 1, "ios": 1, "unspecified": 2}
    assert everything["sourceStats"]["hero-section"] == 2
    assert everything["sourceStats"]["orb-interaction"] == 1
    assert everything["sourceStats"]["landing-page"] == 1
    assert everything["locationStats"] == {"hero": 2, "bottom": 1, "unknown": 1}
    assert everything["conversionMetrics"]["totalInteractions"] == 13
    assert everything["conversionMetrics"]["avgSessionTime"] == 30

    hero = (await client.get("/api/emails?source=hero-section", headers=admin_headers)).json()["data"]
    assert hero["pagination"]["total"] == 2
    assert hero["analytics"]["conversionMetrics"]["avgSessionTime"] == 60

    android = (await client.get("/api/emails?platform=android", headers=admin_headers)).json()["data"]
    assert [e["email"] for e in android["emails"]] == ["h1@example.com"]

    bottom = (await client.get("/api/emails?location=bottom", headers=admin_headers)).json()["data"]
    assert [e["email"] for e in bottom["emails"]] == ["o1@example.com"]

    unknown = (await client.get("/api/emails?location=unknown", headers=admin_headers)).json()["data"]
    assert [e["email"] for e in unknown["emails"]] == ["l1@example.com"]


@pytest.mark.asyncio
async def test_empty_page_statistics(client, admin_headers):
    resp = await client.get("/api/emails?page=4", headers=admin_headers)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["emails"] == []
    assert data["analytics"]["conversionMetrics"]["avgSessionTime"] == 0
    assert data["analytics"]["conversionMetrics"]["avgScrollDepth"] == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("value", ["Infinity", "-Infinity", "NaN", "1e999"])
async def test_non_finite_context_numbers_keep_listing_working(client, admin_headers, value):
    resp = await _submit(client, "odd@example.com", sessionTime=value, scrollDepth=value, breathInteractions=value)
    assert resp.status_code == 201
    await _submit(client, "fine@example.com", sessionTime=40, scrollDepth=50, breathInteractions=2)

    listing = await client.get("/api/emails", headers=admin_headers)
    assert listing.status_code == 200
    data = listing.json()["data"]
    odd = next(e for e in data["emails"] if e["email"] == "odd@example.com")
    assert odd["engagementData"]["sessionMetrics"] == {"timeSpent": 0, "breathInteractions": 0, "scrollDepth": 0}
    metrics = data["analytics"]["conversionMetrics"]
    assert metrics["avgSessionTime"] == 20
    assert metrics["totalInteractions"] == 2


@pytest.mark.asyncio
@pytest.mark.parametrize("page", ["1000001", "99999999999999999999"])
async def test_unreachable_page_is_rejected(client, admin_headers, page):
    resp = await client.get(f"/api/emails?page={page}", headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["error"] == "validation_error"


@pytest.mark.asyncio
async def test_out_of_range_page_and_limit_are_clamped(client, admin_headers):
    for i in range(3):
        await _submit(client, f"clamp{i}@example.com")

    data = (await client.get("/api/emails?page=-7&limit=-1", headers=admin_headers)).json()["data"]
    assert data["pagination"]["page"] == 1
    assert data["pagination"]["limit"] == 50
    assert len(data["emails"]) == 3

    data = (await client.get("/api/emails?limit=99999999999999999999", headers=admin_headers)).json()["data"]
    assert data["pagination"]["limit"] == 200

    data = (await client.get("/api/emails?page=1000000", headers=admin_headers)).json()["data"]
    assert data["emails"] == []
    assert data["pagination"]["hasNext"] is False
