"""HTTP client for the Lifecast server."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from urllib.parse import urlparse

import httpx

if TYPE_CHECKING:
    from cli.local_store import LocalTaskStore

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
_LOCALHOST_HOSTS = {"localhost", "127.0.0.1", "::1"}


class SyncTransportError(Exception):
    """The server could not be reached or did not answer in time."""


class SyncRejectedError(Exception):
    """The server answered with a non-2xx status."""

    def __init__(self, status_code: int, detail: object) -> None:
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"Server rejected request ({status_code}): {detail}")


@dataclass(frozen=True)
class SyncReport:
    pushed: int
    pulled: int
    server_time: int


def validate_server_url(server_url: str, allow_insecure_http: bool = False) -> str:
    """Validate server URL and enforce HTTPS for non-localhost hosts by default."""
    normalized = server_url.strip().rstrip("/")
    parsed = urlparse(normalized)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError("Server URL must include scheme and host (e.g. https://example.com)")

    hostname = parsed.hostname
    if parsed.scheme == "http" and not allow_insecure_http and hostname not in _LOCALHOST_HOSTS:
        raise ValueError(
            "HTTPS is required for non-localhost servers. "
            "Use --allow-insecure-http only on trusted networks."
        )

    return normalized


class SyncClient:
    """Authenticated calls against one server for one client token."""

    def __init__(
        self,
        server_url: str,
        client_token: str,
        server_password: str,
        *,
        timeout: float = 60.0,
    ) -> None:
        self.server_url = server_url.rstrip("/")
        self.client_token = client_token
        self.server_password = server_password
        self.client = httpx.Client(base_url=self.server_url, timeout=timeout)

    def close(self) -> None:
        """Close the HTTP client."""
        self.client.close()

    def __enter__(self) -> SyncClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    @property
    def auth_headers(self) -> dict[str, str]:
        return {
            "X-Client-Token": self.client_token,
            "X-Server-Password": self.server_password,
        }

    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            resp = self.client.request(
                method, f"{API_PREFIX}{path}", headers=self.auth_headers, **kwargs
            )
        except httpx.TransportError as exc:
            raise SyncTransportError(f"{method} {path} failed: {exc}") from exc

        if resp.status_code >= 400:
            try:
                detail = resp.json().get("detail", resp.text)
            except ValueError:
                detail = resp.text
            raise SyncRejectedError(resp.status_code, detail)
        result: dict[str, Any] = resp.json()
        return result

    def sync(
        self,
        store: LocalTaskStore,
        *,
        public_only: bool = False,
        profile: dict[str, str] | None = None,
    ) -> SyncReport:
        """Push every local task, pull the delta and apply it.

        The cursor only advances once the response has been applied; a
        transport or server error leaves local state untouched.
        """
        tasks = store.push_payload(public_only=public_only)
        payload: dict[str, Any] = {"tasks": tasks, "last_sync": store.get_cursor()}
        if profile is not None:
            payload["profile"] = profile

        data = self._request("POST", "/sync", json=payload)
        server_time = int(data["server_time"])
        updated: list[dict[str, Any]] = data.get("updated_tasks", [])
        store.apply_sync_result(updated, server_time, pushed_ids=[t["id"] for t in tasks])
        logger.info("Synced: pushed=%d pulled=%d", len(tasks), len(updated))
        return SyncReport(pushed=len(tasks), pulled=len(updated), server_time=server_time)

    def publish_status(
        self,
        status: str,
        *,
        source: str = "manual",
        ttl_seconds: int | None = None,
        observed_at: int | None = None,
        meta: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"source": source, "status": status}
        if observed_at is not None:
            body["observed_at"] = observed_at
        if ttl_seconds is not None:
            start = observed_at if observed_at is not None else self.server_time()
            body["observed_at"] = start
            body["expires_at"] = start + ttl_seconds * 1000
        if meta is not None:
            body["meta"] = meta
        return self._request("POST", "/status", json=body)

    def current_status(self) -> dict[str, Any]:
        return self._request("GET", "/status")

    def publish_post(
        self,
        content: str,
        *,
        tags: str | None = None,
        location: str | None = None,
        is_public: bool = True,
    ) -> dict[str, Any]:
        body = {"content": content, "tags": tags, "location": location, "is_public": is_public}
        return self._request("POST", "/posts", json=body)

    def list_posts(self) -> list[dict[str, Any]]:
        posts: list[dict[str, Any]] = self._request("GET", "/posts")["posts"]
        return posts

    def delete_post(self, post_id: str) -> None:
        self._request("DELETE", f"/posts/{post_id}")

    def get_profile(self) -> dict[str, Any]:
        return self._request("GET", "/profile")

    def update_profile(
        self,
        *,
        display_name: str | None = None,
        motto: str | None = None,
        status: str | None = None,
    ) -> dict[str, Any]:
        body = {"display_name": display_name, "motto": motto, "status": status}
        return self._request("PUT", "/profile", json=body)

    def get_timeline(self) -> dict[str, Any]:
        return self._request("GET", "/timeline")

    def get_feed(self) -> dict[str, Any]:
        return self._request("GET", "/public/feed")

    def server_time(self) -> int:
        return int(self._request("GET", "/health")["server_time"])
