"""Tests for the HTTP routes."""

from datetime import timedelta

import pytest

from shortlinks.core.config import settings
from shortlinks.models.link import utcnow
from tests.utils import IPHONE_UA, WINDOWS_CHROME_UA, create_test_click, random_url

ALICE = {settings.USER_ID_HEADER: "alice"}
MALLORY = {settings.USER_ID_HEADER: "mallory"}


@pytest.mark.api
class TestShortenRoutes:

    @pytest.mark.asyncio
    async def test_shorten(self, client):
        url = random_url()

        response = await client.post("/api/shorten", json={"original_url": url}, headers=ALICE)

        assert response.status_code == 201
        body = response.json()
        assert body["original_url"] == url
        assert len(body["short_code"]) == 8
        assert body["short_url"] == f"{settings.BASE_URL}/{body['short_code']}"
        assert body["is_active"] is True

    @pytest.mark.asyncio
    async def test_shorten_invalid_url(self, client):
        response = await client.post("/api/shorten", json={"original_url": "nope"})

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_shorten_invalid_alias(self, client):
        response = await client.post(
            "/api/shorten", json={"original_url": random_url(), "custom_alias": "no spaces"}
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_shorten_alias_taken(self, client):
        payload = {"original_url": random_url(), "custom_alias": "foo"}
        assert (await client.post("/api/shorten", json=payload)).status_code == 201

        response = await client.post("/api/shorten", json={**payload, "original_url": random_url()})

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_bulk_preserves_order(self, client):
        items = [
            {"original_url": "https://one.example/"},
            {"original_url": "https://two.example/"},
            {"original_url": "not-a-url"},
            {"original_url": "https://three.example/"},
        ]

        response = await client.post("/api/shorten/bulk", json={"items": items})

        assert response.status_code == 200
        results = response.json()["results"]
        assert [r["original_url"] for r in results] == [i["original_url"] for i in items]
        assert ["error" in r for r in results] == [False, False, True, False]
        assert all("short_code" in r and "id" in r for i, r in enumerate(results) if i != 2)

    @pytest.mark.asyncio
    async def test_bulk_null_url_fails_only_its_item(self, client):
        items = [
            {"original_url": "https://one.example/"},
            {"original_url": None},
            {"original_url": "https://two.example/"},
        ]

        response = await client.post("/api/shorten/bulk", json={"items": items}, headers=ALICE)

        assert response.status_code == 200
        results = response.json()["results"]
        assert ["error" in r for r in results] == [False, True, False]
        assert results[1]["original_url"] is None
        links = (await client.get("/api/links", headers=ALICE)).json()["links"]
        assert sorted(link["original_url"] for link in links) == ["https://one.example/", "https://two.example/"]

    @pytest.mark.asyncio
    async def test_bulk_item_expiration_is_applied(self, client):
        items = [{"original_url": random_url(), "expiration_days": 1}]

        await client.post("/api/shorten/bulk", json={"items": items}, headers=ALICE)

        links = (await client.get("/api/links", headers=ALICE)).json()["links"]
        assert links[0]["expires_at"] is not None

    @pytest.mark.asyncio
    async def test_shorten_rejects_embedded_tab(self, client):
        response = await client.post("/api/shorten", json={"original_url": "  https://exa\tmple.com/x  "})

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_shorten_trims_url_before_redirect(self, client):
        link = (await client.post("/api/shorten", json={"original_url": "  https://example.com/x  "})).json()

        response = await client.get(f"/{link['short_code']}")

        assert link["original_url"] == "https://example.com/x"
        assert response.headers["location"] == "https://example.com/x"

    @pytest.mark.asyncio
    async def test_empty_alias_means_generated_code(self, client):
        response = await client.post("/api/shorten", json={"original_url": random_url(), "custom_alias": ""})

        assert response.status_code == 201
        assert response.json()["custom_alias"] is None
        assert len(response.json()["short_code"]) == 8

    @pytest.mark.asyncio
    async def test_alias_availability(self, client):
        before = await client.get("/api/aliases/summer/available")
        await client.post("/api/shorten", json={"original_url": random_url(), "custom_alias": "summer"})
        after = await client.get("/api/aliases/summer/available")

        assert before.json() == {"alias": "summer", "available": True}
        assert after.json() == {"alias": "summer", "available": False}


@pytest.mark.api
class TestLinkRoutes:

    @pytest.mark.asyncio
    async def test_list_requires_user(self, client):
        response = await client.get("/api/links")

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_list_links_with_click_counts(self, client):
        first = (await client.post("/api/shorten", json={"original_url": random_url()}, headers=ALICE)).json()
        second = (await client.post("/api/shorten", json={"original_url": random_url()}, headers=ALICE)).json()
        await client.get(f"/{first['short_code']}")

        response = await client.get("/api/links", headers=ALICE)

        links = response.json()["links"]
        assert [link["id"] for link in links] == [second["id"], first["id"]]
        assert [link["click_count"] for link in links] == [0, 1]

    @pytest.mark.asyncio
    async def test_update_alias(self, client):
        link = (await client.post("/api/shorten", json={"original_url": random_url()}, headers=ALICE)).json()

        response = await client.patch(
            f"/api/links/{link['id']}", json={"custom_alias": "renamed"}, headers=ALICE
        )

        assert response.status_code == 200
        assert response.json()["custom_alias"] == "renamed"
        assert (await client.get("/renamed")).status_code == 307

    @pytest.mark.asyncio
    async def test_update_by_other_user_forbidden(self, client):
        link = (await client.post("/api/shorten", json={"original_url": random_url()}, headers=ALICE)).json()

        response = await client.patch(
            f"/api/links/{link['id']}", json={"custom_alias": "stolen"}, headers=MALLORY
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_delete_then_redirect_404(self, client):
        link = (await client.post("/api/shorten", json={"original_url": random_url()}, headers=ALICE)).json()

        first = await client.delete(f"/api/links/{link['id']}", headers=ALICE)
        second = await client.delete(f"/api/links/{link['id']}", headers=ALICE)
        redirect = await client.get(f"/{link['short_code']}")

        assert first.status_code == 204
        assert second.status_code == 204
        assert redirect.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_unknown_link(self, client):
        response = await client.delete("/api/links/999999", headers=ALICE)

        assert response.status_code == 404


@pytest.mark.api
class TestRedirectRoute:

    @pytest.mark.asyncio
    async def test_redirect(self, client):
        url = "https://example.com/landing?utm=1"
        link = (await client.post("/api/shorten", json={"original_url": url})).json()

        response = await client.get(f"/{link['short_code']}")

        assert response.status_code == 307
        assert response.headers["location"] == url

    @pytest.mark.asyncio
    async def test_redirect_unknown_code(self, client):
        response = await client.get("/doesnotexist")

        assert response.status_code == 404


@pytest.mark.api
class TestAnalyticsRoutes:

    @pytest.mark.asyncio
    async def test_click_is_recorded_and_aggregated(self, client):
        link = (await client.post("/api/shorten", json={"original_url": random_url()}, headers=ALICE)).json()

        await client.get(
            f"/{link['short_code']}",
            headers={"user-agent": IPHONE_UA, "referer": "https://news.example/"},
        )
        await client.get(f"/{link['short_code']}", headers={"user-agent": WINDOWS_CHROME_UA})

        devices = (await client.get(f"/api/analytics/{link['id']}/devices", headers=ALICE)).json()
        referers = (await client.get(f"/api/analytics/{link['id']}/referers", headers=ALICE)).json()
        geo = (await client.get(f"/api/analytics/{link['id']}/geo", headers=ALICE)).json()
        trends = (await client.get(f"/api/analytics/{link['id']}/trends", headers=ALICE)).json()
        clicks = (await client.get(f"/api/analytics/{link['id']}/clicks", headers=ALICE)).json()

        assert devices == [{"device": "desktop", "clicks": 1}, {"device": "mobile", "clicks": 1}]
        assert referers == [{"referer": "direct", "clicks": 1}, {"referer": "https://news.example/", "clicks": 1}]
        assert geo == [{"country": "unknown", "clicks": 2}]
        assert len(trends) == 1 and trends[0]["clicks"] == 2
        assert len(clicks) == 2

    @pytest.mark.asyncio
    async def test_summary(self, client, test_db):
        first = (await client.post("/api/shorten", json={"original_url": random_url()}, headers=ALICE)).json()
        await client.post("/api/shorten", json={"original_url": random_url()}, headers=ALICE)
        now = utcnow()
        for days_ago in (1, 2, 40, 50, 60):
            await create_test_click(test_db, first["id"], clicked_at=now - timedelta(days=days_ago))

        response = await client.get("/api/analytics/summary", headers=ALICE)

        assert response.json() == {"total_links": 2, "total_clicks": 5, "clicks_this_month": 2}

    @pytest.mark.asyncio
    async def test_analytics_of_foreign_link_forbidden(self, client):
        link = (await client.post("/api/shorten", json={"original_url": random_url()}, headers=ALICE)).json()

        response = await client.get(f"/api/analytics/{link['id']}/geo", headers=MALLORY)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_analytics_require_user(self, client):
        response = await client.get("/api/analytics/summary")

        assert response.status_code == 401


@pytest.mark.api
@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/api/health")

    assert response.status_code == 200
    assert response.json()["components"]["database"]["status"] == "healthy"
