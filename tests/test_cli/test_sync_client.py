"""Tests for CLI sync client."""

from __future__ import annotations

import itertools
from typing import TYPE_CHECKING
from unittest.mock import MagicMock, patch

import httpx
import pytest
from fastapi.testclient import TestClient

from backend.config import Settings
from backend.main import create_app
from cli.local_store import LocalTaskStore
from cli.sync_client import (
    SyncClient,
    SyncRejectedError,
    SyncTransportError,
    validate_server_url,
)
from tests.conftest import TEST_CLIENT_TOKEN, TEST_SERVER_PASSWORD

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

T0 = 1_760_000_000_000


class TestValidateServerUrl:
    def test_rejects_insecure_http_for_remote_hosts(self) -> None:
        with pytest.raises(ValueError, match="HTTPS is required"):
            validate_server_url("http://example.com")

    def test_allows_https_for_remote_hosts(self) -> None:
        assert validate_server_url("https://example.com/") == "https://example.com"

    def test_allows_http_for_localhost(self) -> None:
        assert validate_server_url("http://localhost:8000") == "http://localhost:8000"

    def test_allows_insecure_http_when_flag_enabled(self) -> None:
        assert (
            validate_server_url("http://example.com:8000", allow_insecure_http=True)
            == "http://example.com:8000"
        )

    def test_rejects_missing_scheme(self) -> None:
        with pytest.raises(ValueError, match="scheme"):
            validate_server_url("example.com")


def _response(status_code: int, body: object, method: str = "POST") -> httpx.Response:
    return httpx.Response(
        status_code, json=body, request=httpx.Request(method, "https://example.com")
    )


@pytest.fixture
def store(tmp_path: Path) -> Iterator[LocalTaskStore]:
    with LocalTaskStore(tmp_path / "device.db") as s:
        yield s


@pytest.fixture
def sync_client() -> Iterator[SyncClient]:
    with SyncClient("https://example.com", "tok", "pw") as c:
        yield c


class TestSyncRequests:
    def test_sync_posts_full_state_and_cursor(
        self, store: LocalTaskStore, sync_client: SyncClient
    ) -> None:
        task = store.add_task("Local", now=T0)
        store.apply_sync_result([], T0 + 10)
        remote = {"id": "r1", "title": "From server", "created_at": T0, "updated_at": T0 + 20}

        fake = MagicMock()
        fake.request.return_value = _response(
            200, {"server_time": T0 + 30, "updated_tasks": [remote]}
        )
        sync_client.client = fake

        report = sync_client.sync(store)

        method, path = fake.request.call_args.args
        kwargs = fake.request.call_args.kwargs
        assert (method, path) == ("POST", "/api/v1/sync")
        assert kwargs["headers"] == {"X-Client-Token": "tok", "X-Server-Password": "pw"}
        assert kwargs["json"]["last_sync"] == T0 + 10
        assert [t["id"] for t in kwargs["json"]["tasks"]] == [task.id]
        assert "profile" not in kwargs["json"]

        assert report.pushed == 1
        assert report.pulled == 1
        assert store.get_cursor() == T0 + 30
        assert store.get_task("r1").title == "From server"
        assert store.get_task(task.id).synced_at is not None

    def test_public_only_and_profile(self, store: LocalTaskStore, sync_client: SyncClient) -> None:
        store.add_task("Private")
        public = store.add_task("Public", is_public=True)
        fake = MagicMock()
        fake.request.return_value = _response(200, {"server_time": T0, "updated_tasks": []})
        sync_client.client = fake

        sync_client.sync(store, public_only=True, profile={"display_name": "Ada"})

        body = fake.request.call_args.kwargs["json"]
        assert [t["id"] for t in body["tasks"]] == [public.id]
        assert body["profile"] == {"display_name": "Ada"}
        assert body["last_sync"] is None

    def test_rejection_leaves_cursor(self, store: LocalTaskStore, sync_client: SyncClient) -> None:
        store.apply_sync_result([], T0)
        fake = MagicMock()
        fake.request.return_value = _response(403, {"detail": "Invalid server password"})
        sync_client.client = fake

        with pytest.raises(SyncRejectedError) as exc_info:
            sync_client.sync(store)

        assert exc_info.value.status_code == 403
        assert exc_info.value.detail == "Invalid server password"
        assert store.get_cursor() == T0

    def test_transport_error_is_wrapped(
        self, store: LocalTaskStore, sync_client: SyncClient
    ) -> None:
        fake = MagicMock()
        fake.request.side_effect = httpx.ConnectError("connection refused")
        sync_client.client = fake

        with pytest.raises(SyncTransportError, match="connection refused"):
            sync_client.sync(store)
        assert store.get_cursor() is None

    def test_publish_status_with_ttl_uses_server_clock(self, sync_client: SyncClient) -> None:
        fake = MagicMock()
        fake.request.side_effect = [
            _response(200, {"status": "ok", "server_time": T0}, method="GET"),
            _response(200, {"event": {"source": "manual"}}),
        ]
        sync_client.client = fake

        sync_client.publish_status("Reading", ttl_seconds=60)

        body = fake.request.call_args.kwargs["json"]
        assert body == {
            "source": "manual",
            "status": "Reading",
            "observed_at": T0,
            "expires_at": T0 + 60_000,
        }


@pytest.fixture
def live_client(tmp_path: Path) -> Iterator[TestClient]:
    settings = Settings(
        _env_file=None,
        server_password=TEST_SERVER_PASSWORD,
        debug=True,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'server.db'}",
    )
    clock = itertools.count(T0, 1000)
    with (
        patch("backend.services.sync_service.now_ms", side_effect=lambda: next(clock)),
        TestClient(create_app(settings)) as test_client,
    ):
        yield test_client


def _device(test_client: TestClient) -> SyncClient:
    client = SyncClient("http://testserver", TEST_CLIENT_TOKEN, TEST_SERVER_PASSWORD)
    client.client.close()
    client.client = test_client
    return client


class TestSyncAgainstServer:
    def test_edit_propagates_between_devices(self, tmp_path: Path, live_client: TestClient) -> None:
        laptop_client = _device(live_client)
        phone_client = _device(live_client)

        with (
            LocalTaskStore(tmp_path / "laptop.db") as laptop,
            LocalTaskStore(tmp_path / "phone.db") as phone,
        ):
            task = laptop.add_task("Plan trip", is_public=True)
            first = laptop_client.sync(laptop)
            assert (first.pushed, first.pulled) == (1, 0)

            # First sync of the second device pushes nothing and pulls nothing.
            phone_client.sync(phone)
            assert phone.list_tasks() == []

            laptop.complete_task(task.id)
            laptop_client.sync(laptop)

            report = phone_client.sync(phone)
            assert report.pulled == 1
            pulled = phone.get_task(task.id)
            assert pulled.title == "Plan trip"
            assert pulled.is_completed is True
            assert pulled.updated_at is not None
            assert phone.get_cursor() == report.server_time

    def test_wrong_password_is_rejected(self, tmp_path: Path, live_client: TestClient) -> None:
        client = _device(live_client)
        client.server_password = "wrong"
        with LocalTaskStore(tmp_path / "device.db") as store:
            with pytest.raises(SyncRejectedError) as exc_info:
                client.sync(store)
        assert exc_info.value.status_code == 403

    def test_status_and_posts_round_trip(self, live_client: TestClient) -> None:
        client = _device(live_client)

        client.publish_status("Deep work")
        current = client.current_status()
        assert current["primary"]["status"] == "Deep work"
        assert current["primary"]["source"] == "manual"

        created = client.publish_post("Shipped the release", tags="work")
        post_id = created["post"]["id"]
        assert [p["id"] for p in client.list_posts()] == [post_id]

        client.delete_post(post_id)
        assert client.list_posts() == []
        with pytest.raises(SyncRejectedError) as exc_info:
            client.delete_post(post_id)
        assert exc_info.value.status_code == 404
