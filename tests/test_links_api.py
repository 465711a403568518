"""
Тесты API коротких ссылок: создание, список, обновление, статистика.
"""

from decimal import Decimal

from unittest.mock import patch

from src.core.exceptions import AllocationExhausted
from fakes import MOBILE_UA


def money(value) -> Decimal:
    return Decimal(str(value))


def create_user(client, email="links@linkgate.io") -> dict:
    response = client.post("/api/v1/user", json={"email": email, "name": "Links Owner"})
    assert response.status_code == 201
    return response.json()["data"]


def create_link(client, **payload) -> dict:
    payload.setdefault("original_url", "https://example.com/articles/42")
    response = client.post("/api/v1/links", json=payload)
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestCreateLink:

    def test_create_owned_link(self, client):
        owner = create_user(client)

        link = create_link(client, user_id=owner["id"], title="Article")

        assert len(link["short_id"]) == 6
        assert link["short_url"].endswith(f"/{link['short_id']}")
        assert link["original_url"] == "https://example.com/articles/42"
        assert link["title"] == "Article"
        assert link["user_id"] == owner["id"]
        assert link["clicks"] == 0
        assert link["is_active"] is True

    def test_create_anonymous_link(self, client):
        link = create_link(client)
        assert link["user_id"] is None

    def test_unknown_owner(self, client):
        response = client.post("/api/v1/links", json={"original_url": "https://example.com/x", "user_id": 999})

        assert response.status_code == 404
        assert response.json()["status"] == "error"

    def test_relative_url_is_rejected(self, client):
        response = client.post("/api/v1/links", json={"original_url": "/just/a/path"})
        assert response.status_code == 422

    def test_allocation_exhausted(self, client):
        with patch("src.api.v1.links.ShortIdAllocator.allocate", side_effect=AllocationExhausted()):
            response = client.post("/api/v1/links", json={"original_url": "https://example.com/x"})

        assert response.status_code == 500
        assert response.json() == {"status": "error", "message": "Failed to generate unique ID"}


class TestListAndUpdate:

    def test_owner_links_newest_first(self, client):
        owner = create_user(client)
        first = create_link(client, user_id=owner["id"], title="first")
        second = create_link(client, user_id=owner["id"], title="second")
        create_link(client)

        response = client.get(f"/api/v1/links/user/{owner['id']}")

        assert response.status_code == 200
        assert [link["short_id"] for link in response.json()["data"]] == [second["short_id"], first["short_id"]]

    def test_pagination(self, client):
        owner = create_user(client)
        for i in range(3):
            create_link(client, user_id=owner["id"], title=f"link {i}")

        response = client.get(f"/api/v1/links/user/{owner['id']}", params={"page": 2, "limit": 2})

        assert [link["title"] for link in response.json()["data"]] == ["link 0"]
        assert response.json()["meta"] == {"page": 2, "limit": 2}

    def test_rename_and_pause(self, client):
        link = create_link(client, title="old")

        response = client.patch(f"/api/v1/links/{link['short_id']}", json={"title": "new", "is_active": False})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["title"] == "new"
        assert data["is_active"] is False
        assert data["short_id"] == link["short_id"]

    def test_update_missing_link(self, client):
        response = client.patch("/api/v1/links/nope00", json={"title": "x"})
        assert response.status_code == 404


class TestLinkStats:

    def test_stats_after_visits(self, client):
        owner = create_user(client)
        link = create_link(client, user_id=owner["id"])
        short_id = link["short_id"]

        client.get(f"/api/v1/gate/{short_id}", headers={"X-Forwarded-For": "8.8.8.8"})
        client.get(f"/api/v1/gate/{short_id}", headers={"X-Forwarded-For": "200.160.2.3", "User-Agent": MOBILE_UA})
        client.get(f"/api/v1/gate/{short_id}", headers={"X-Forwarded-For": "8.8.8.8", "User-Agent": MOBILE_UA})

        response = client.get(f"/api/v1/links/{short_id}/stats", params={"days": 7})

        assert response.status_code == 200
        stats = response.json()["data"]
        assert stats["days"] == 7
        assert stats["link"]["clicks"] == 3
        assert money(stats["link"]["total_earnings"]) == Decimal("0.006")
        assert stats["device_stats"]["mobile"] == 2
        assert stats["country_stats"] == {"US": 2, "BR": 1}
        assert len(stats["daily_stats"]) == 1
        assert stats["daily_stats"][0]["clicks"] == 3
        assert stats["daily_stats"][0]["countries"] == {"US": 2, "BR": 1}
        assert [click["country"] for click in stats["recent_clicks"]] == ["US", "BR", "US"]

    def test_stats_of_missing_link(self, client):
        response = client.get("/api/v1/links/nope00/stats")
        assert response.status_code == 404

    def test_days_must_be_positive(self, client):
        link = create_link(client)
        response = client.get(f"/api/v1/links/{link['short_id']}/stats", params={"days": 0})
        assert response.status_code == 422
