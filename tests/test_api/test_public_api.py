"""Tests for the unauthenticated feed, the dashboard and health."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from backend.services.datetime_service import now_ms
from tests.conftest import OTHER_CLIENT_TOKEN, auth_headers, create_test_client

if TYPE_CHECKING:
    from httpx import AsyncClient

    from backend.config import Settings


class TestHealth:
    @pytest.mark.asyncio
    async def test_health_reports_database_and_time(self, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["database"] == "ok"
        assert data["version"] == "0.1.0"
        assert data["server_time"] > 0

    @pytest.mark.asyncio
    async def test_security_headers_present(self, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/health")
        assert resp.headers["X-Content-Type-Options"] == "nosniff"
        assert resp.headers["X-Frame-Options"] == "DENY"


class TestPublicFeed:
    @pytest.mark.asyncio
    async def test_empty_deployment_is_offline(self, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/public/feed")
        assert resp.status_code == 200
        data = resp.json()
        assert data["primary_status"]["source"] == "system"
        assert data["primary_status"]["status"] == "Offline"
        assert data["primary_status"]["offline"] is True
        assert data["posts"] == []
        assert data["profile"] is None

    @pytest.mark.asyncio
    async def test_feed_shows_most_active_owner(self, client: AsyncClient) -> None:
        await client.post(
            "/api/v1/posts",
            json={"content": "Old owner post"},
            headers=auth_headers(OTHER_CLIENT_TOKEN),
        )
        await client.post(
            "/api/v1/status",
            json={"source": "manual", "status": "Writing"},
            headers=auth_headers(),
        )
        await client.post(
            "/api/v1/posts",
            json={"content": "Private note", "is_public": False},
            headers=auth_headers(),
        )
        await client.post(
            "/api/v1/posts", json={"content": "Hello world"}, headers=auth_headers()
        )

        data = (await client.get("/api/v1/public/feed")).json()
        assert data["primary_status"]["status"] == "Writing"
        assert [p["content"] for p in data["posts"]] == ["Hello world"]
        assert data["profile"]["display_name"] == "Life App User"

    @pytest.mark.asyncio
    async def test_configured_feed_owner_wins(self, test_settings: Settings) -> None:
        test_settings.feed_owner_token = OTHER_CLIENT_TOKEN
        async with create_test_client(test_settings) as client:
            await client.post(
                "/api/v1/status",
                json={"source": "manual", "status": "Theirs"},
                headers=auth_headers(OTHER_CLIENT_TOKEN),
            )
            await client.post(
                "/api/v1/status",
                json={"source": "manual", "status": "Mine"},
                headers=auth_headers(),
            )
            data = (await client.get("/api/v1/public/feed")).json()
        assert data["primary_status"]["status"] == "Theirs"

    @pytest.mark.asyncio
    async def test_feed_needs_no_credentials(self, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/public/feed", headers={"X-Client-Token": "ignored"})
        assert resp.status_code == 200


class TestDashboard:
    @pytest.mark.asyncio
    async def test_only_public_tasks_with_stats(self, client: AsyncClient) -> None:
        now = now_ms()
        tasks = [
            {
                "id": "pub-overdue",
                "title": "Overdue",
                "is_public": True,
                "deadline": now - 3_600_000,
            },
            {
                "id": "pub-done",
                "title": "Done",
                "is_public": True,
                "is_completed": True,
                "completed_at": now,
            },
            {"id": "private", "title": "Secret", "is_public": False},
        ]
        resp = await client.post("/api/v1/sync", json={"tasks": tasks}, headers=auth_headers())
        assert resp.status_code == 200

        data = (await client.get("/api/v1/public/dashboard")).json()
        assert {t["id"] for t in data["public_tasks"]} == {"pub-overdue", "pub-done"}
        assert data["stats"] == {"total_public_tasks": 2, "active_tasks": 1, "overdue_count": 1}
        assert all("owner_token" not in t for t in data["public_tasks"])
