from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from conftest import add_business_category, add_business_image, add_greeting, add_subscription, add_template, add_video
from database import get_db, get_session_maker
from main import app
from services.content_store import SqlContentStore
from services.session_token import create_session_token


TEST_USER_ID = "feed-user"
SUBSCRIBER_ID = "feed-subscriber"
TEST_AUTH_HEADER = {"Authorization": f"Bearer {create_session_token(TEST_USER_ID)['token']}"}
SUBSCRIBER_AUTH_HEADER = {"Authorization": f"Bearer {create_session_token(SUBSCRIBER_ID)['token']}"}


@pytest_asyncio.fixture
async def feed_client(session_maker):
    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_maker] = lambda: session_maker
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        setattr(client, "_session_maker", session_maker)
        yield client

    app.dependency_overrides.pop(get_db, None)
    app.dependency_overrides.pop(get_session_maker, None)


async def _seed_catalog(session_maker):
    ids = {
        "diwali": await add_template(session_maker, "Diwali Lights", "Festival", likes=9, tags=["diwali", "lights"]),
        "holi": await add_template(session_maker, "Holi Colors", "Festival", likes=4),
        "premium": await add_video(session_maker, "Wedding Reel", "Wedding", likes=7, is_premium=True),
        "morning": await add_greeting(session_maker, "Good Morning Sunrise", "Good Morning", likes=2),
    }
    motivational = await add_business_category(session_maker, "Motivational")
    ids["quote"] = await add_business_image(session_maker, "Quote 12", motivational, likes=1)
    return ids


@pytest.mark.asyncio
async def test_feed_returns_balanced_envelope_for_anonymous_requester(feed_client):
    ids = await _seed_catalog(feed_client._session_maker)

    response = await feed_client.get("/feed", params={"page_size": 10})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    data = body["data"]
    assert [item["id"] for item in data["items"]] == [
        ids["diwali"],
        ids["morning"],
        ids["quote"],
        ids["premium"],
        ids["holi"],
    ]
    assert data["categories_represented"] == ["Festival", "Good Morning", "Motivational", "Wedding"]
    assert data["pagination"] == {"page": 1, "page_size": 10, "total_estimate": 5, "has_more": False}
    premium = next(item for item in data["items"] if item["id"] == ids["premium"])
    assert premium["is_locked"] is True
    assert premium["preview_only"] is True
    assert premium["asset_url"] == "/static/premium-locked.png"
    assert all(item["is_liked"] is False for item in data["items"])


@pytest.mark.asyncio
async def test_feed_search_accepts_double_encoded_terms(feed_client):
    ids = await _seed_catalog(feed_client._session_maker)

    morning = await feed_client.get("/feed", params={"search": "good%20morning"})
    motivational = await feed_client.get("/feed", params={"search": "motivational"})

    assert [item["id"] for item in morning.json()["data"]["items"]] == [ids["morning"]]
    assert [item["title"] for item in motivational.json()["data"]["items"]] == ["Quote 12"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "params",
    [
        {"page": 0},
        {"page_size": 101},
        {"types": "podcasts"},
        {"sort": "shuffle"},
        {"page": "abc"},
    ],
)
async def test_feed_rejects_invalid_queries_with_envelope(feed_client, params):
    response = await feed_client.get("/feed", params=params)

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["data"] is None
    assert body["message"]


@pytest.mark.asyncio
async def test_feed_reports_503_when_every_source_fails(feed_client):
    with patch.object(SqlContentStore, "query_source", new=AsyncMock(side_effect=ConnectionError("db down"))):
        response = await feed_client.get("/feed")

    assert response.status_code == 503
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_like_toggle_is_reflected_in_feed_and_listing(feed_client):
    ids = await _seed_catalog(feed_client._session_maker)

    toggled = await feed_client.post("/likes/toggle", json={"resource_id": ids["holi"]}, headers=TEST_AUTH_HEADER)
    assert toggled.status_code == 200
    assert toggled.json()["data"]["liked"] is True

    feed = await feed_client.get("/feed", headers=TEST_AUTH_HEADER)
    liked = {item["id"]: item["is_liked"] for item in feed.json()["data"]["items"]}
    assert liked[ids["holi"]] is True
    assert liked[ids["diwali"]] is False

    listing = await feed_client.get("/likes", params={"type": "templates"}, headers=TEST_AUTH_HEADER)
    assert [entry["resource_id"] for entry in listing.json()["data"]["likes"]] == [ids["holi"]]

    repeat = await feed_client.post("/likes", json={"resource_id": ids["holi"]}, headers=TEST_AUTH_HEADER)
    assert repeat.json()["data"]["created"] is False

    removed = await feed_client.delete("/likes", params={"resource_id": ids["holi"]}, headers=TEST_AUTH_HEADER)
    assert removed.json()["data"]["removed"] is True


@pytest.mark.asyncio
async def test_engagement_endpoints_require_authentication(feed_client):
    ids = await _seed_catalog(feed_client._session_maker)

    response = await feed_client.post("/likes", json={"resource_id": ids["holi"]})

    assert response.status_code == 401
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_engagement_is_attributed_to_token_subject_only(feed_client):
    ids = await _seed_catalog(feed_client._session_maker)

    response = await feed_client.post(
        "/likes",
        json={"resource_id": ids["holi"], "user_id": "someone-else"},
        headers=TEST_AUTH_HEADER,
    )
    mine = await feed_client.get("/likes", headers=TEST_AUTH_HEADER)
    other = await feed_client.get(
        "/likes",
        headers={"Authorization": f"Bearer {create_session_token('someone-else')['token']}"},
    )

    assert response.status_code == 200
    assert [entry["resource_id"] for entry in mine.json()["data"]["likes"]] == [ids["holi"]]
    assert other.json()["data"]["likes"] == []


@pytest.mark.asyncio
async def test_invalid_session_token_is_rejected_even_for_feed(feed_client):
    response = await feed_client.get("/feed", headers={"Authorization": "Bearer not-a-token"})

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid or expired session token."


@pytest.mark.asyncio
async def test_like_unknown_resource_returns_404(feed_client):
    response = await feed_client.post("/likes", json={"resource_id": "missing"}, headers=TEST_AUTH_HEADER)

    assert response.status_code == 404
    assert response.json() == {"success": False, "data": None, "message": "Resource missing not found."}


@pytest.mark.asyncio
async def test_download_tracking_respects_subscription(feed_client):
    session_maker = feed_client._session_maker
    ids = await _seed_catalog(session_maker)
    await add_subscription(session_maker, SUBSCRIBER_ID)

    blocked = await feed_client.post(
        "/downloads/track",
        json={"resource_id": ids["premium"]},
        headers=TEST_AUTH_HEADER,
    )
    first = await feed_client.post(
        "/downloads/track",
        json={"resource_id": ids["premium"]},
        headers=SUBSCRIBER_AUTH_HEADER,
    )
    second = await feed_client.post(
        "/downloads/track",
        json={"resource_id": ids["premium"]},
        headers=SUBSCRIBER_AUTH_HEADER,
    )

    assert blocked.json()["data"]["download_eligible"] is False
    assert first.json()["data"] == {
        "resource_id": ids["premium"],
        "is_first_download": True,
        "download_eligible": True,
    }
    assert second.json()["data"]["is_first_download"] is False

    feed = await feed_client.get("/feed", headers=SUBSCRIBER_AUTH_HEADER)
    premium = next(item for item in feed.json()["data"]["items"] if item["id"] == ids["premium"])
    assert premium["is_locked"] is False
    assert premium["is_downloaded"] is True

    history = await feed_client.get("/downloads", headers=SUBSCRIBER_AUTH_HEADER)
    assert history.json()["data"]["statistics"]["total"] == 2


@pytest.mark.asyncio
async def test_catalog_endpoints(feed_client):
    await _seed_catalog(feed_client._session_maker)

    categories = await feed_client.get("/catalog/categories", params={"refresh": True})
    suggestions = await feed_client.get("/catalog/suggestions", params={"q": "diw"})
    stats = await feed_client.get("/catalog/stats")

    names = [entry["name"] for entry in categories.json()["data"]["categories"]]
    assert names == ["Festival", "Good Morning", "Motivational", "Wedding"]
    festival = categories.json()["data"]["categories"][0]
    assert festival["count"] == 2
    assert festival["by_type"]["TEMPLATE"] == 2

    assert suggestions.json()["data"]["suggestions"] == [
        {"text": "Diwali Lights", "type": "TEMPLATE"},
        {"text": "diwali", "type": "TAG"},
    ]

    totals = stats.json()["data"]["total_content"]
    assert totals["total"] == 5
    assert totals["BUSINESS_CATEGORY_IMAGE"] == 1
    assert stats.json()["data"]["category_distribution"][0] == {"category": "Festival", "count": 2}


@pytest.mark.asyncio
async def test_liveness_probe(feed_client):
    response = await feed_client.get("/health/live")

    assert response.json() == {"success": True, "data": {"alive": True}, "message": None}
