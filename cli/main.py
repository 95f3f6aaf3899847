"""Command line front end: local tasks, sync, status and posts."""

from __future__ import annotations

import argparse
import asyncio
import logging
import secrets
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pendulum

from cli.local_store import DEFAULT_DB_FILE, TASK_VIEWS, LocalTaskStore, TaskNotFoundError
from cli.network import make_network_check
from cli.preferences import SyncPreferences, load_preferences, save_preferences
from cli.scheduler import SyncScheduler
from cli.sync_client import (
    SyncClient,
    SyncRejectedError,
    SyncTransportError,
    validate_server_url,
)
from cli.sync_lock import sync_lock

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from cli.local_store import LocalTask
    from cli.sync_client import SyncReport

logger = logging.getLogger(__name__)


def _parse_when(value: str | None) -> int | None:
    """Parse a user-supplied date or datetime into epoch milliseconds."""
    if value is None:
        return None
    try:
        parsed = pendulum.parse(value, tz=pendulum.local_timezone())
    except ValueError as exc:
        raise ValueError(f"Invalid date: {value}") from exc
    if isinstance(parsed, pendulum.Date) and not isinstance(parsed, pendulum.DateTime):
        parsed = pendulum.datetime(parsed.year, parsed.month, parsed.day, tz="local")
    if not isinstance(parsed, pendulum.DateTime):
        raise ValueError(f"Invalid date: {value}")
    return int(parsed.timestamp() * 1000)


def _format_ms(value: int | None) -> str:
    if value is None:
        return "-"
    return pendulum.from_timestamp(value / 1000, tz="local").format("YYYY-MM-DD HH:mm")


def _print_task(task: LocalTask) -> None:
    mark = "x" if task.is_completed else " "
    visibility = "public" if task.is_public else "private"
    print(
        f"[{mark}] {task.id[:8]}  {task.title}  "
        f"(p{task.priority}, {int(task.progress * 100)}%, due {_format_ms(task.deadline)}, "
        f"{visibility})"
    )


def _resolve_task_id(store: LocalTaskStore, prefix: str) -> str:
    matches = [t.id for t in store.list_tasks() if t.id.startswith(prefix)]
    if len(matches) != 1:
        raise TaskNotFoundError(prefix)
    return matches[0]


def _make_client(prefs: SyncPreferences, allow_insecure_http: bool) -> SyncClient:
    if not prefs.is_configured:
        print("Error: Sync is not configured. Run 'lifecast init --server <url>' first.")
        sys.exit(1)
    server_url = validate_server_url(str(prefs.server_url), allow_insecure_http)
    return SyncClient(server_url, str(prefs.client_token), str(prefs.server_password))


def _cmd_init(args: argparse.Namespace, data_dir: Path) -> None:
    if not args.server:
        print("Error: --server required for init")
        sys.exit(1)
    prefs = load_preferences(data_dir)
    prefs.server_url = validate_server_url(args.server, args.allow_insecure_http)
    prefs.client_token = args.token or prefs.client_token or secrets.token_urlsafe(24)
    if args.password:
        prefs.server_password = args.password
    if args.auto_sync is not None:
        prefs.auto_sync_enabled = args.auto_sync
    if args.interval is not None:
        prefs.sync_interval_minutes = args.interval
    path = save_preferences(data_dir, prefs)
    print(f"Initialized sync config in {path}")


def _run_store_command(args: argparse.Namespace, store: LocalTaskStore) -> None:
    if args.command == "add":
        task = store.add_task(
            args.title,
            description=args.description,
            deadline=_parse_when(args.deadline),
            start_time=_parse_when(args.start),
            priority=args.priority,
            is_public=args.public,
            tags=args.tags,
        )
        print(f"Added {task.id[:8]}: {task.title}")
    elif args.command == "list":
        tasks = store.list_tasks(args.view)
        if not tasks:
            print("No tasks.")
        for task in tasks:
            _print_task(task)
    elif args.command == "done":
        task = store.complete_task(_resolve_task_id(store, args.task_id))
        print(f"Completed {task.id[:8]}: {task.title}")
    elif args.command == "progress":
        task = store.set_progress(_resolve_task_id(store, args.task_id), args.value / 100)
        print(f"{task.title}: {int(task.progress * 100)}%")
    elif args.command == "delete":
        task_id = _resolve_task_id(store, args.task_id)
        store.delete_task(task_id)
        print(f"Deleted {task_id[:8]} locally (the server copy is kept)")


def _run_remote_command(
    args: argparse.Namespace, client: SyncClient, store: LocalTaskStore, prefs: SyncPreferences
) -> None:
    if args.command == "sync":
        scheduler = SyncScheduler(
            _locked_sync(client, store, args.dir_path, public_only=args.public_only),
            lambda: prefs,
        )
        result = asyncio.run(scheduler.trigger_manual())
        if not result.ok:
            print(f"Error: {result.message}")
            sys.exit(1)
        print(
            f"Sync complete. Pushed {result.pushed_count} task(s), pulled {result.synced_count}; "
            f"cursor {result.server_time}."
        )
    elif args.command == "status":
        if args.text:
            ttl = args.ttl * 60 if args.ttl is not None else None
            client.publish_status(args.text, source=args.source, ttl_seconds=ttl)
            print(f"Status published ({args.source}): {args.text}")
        else:
            data = client.current_status()
            primary = data["primary"]
            print(f"Status: {primary['status']} [{primary['source']}]")
            for source in data.get("sources", []):
                print(
                    f"  {source['source']}: {source['status']} "
                    f"(until {_format_ms(source.get('expires_at'))})"
                )
    elif args.command == "post":
        data = client.publish_post(
            args.content, tags=args.tags, location=args.location, is_public=not args.private
        )
        print(f"Posted {data['post']['id']}")
    elif args.command == "posts":
        if args.delete:
            client.delete_post(args.delete)
            print(f"Deleted post {args.delete}")
            return
        for post in client.list_posts():
            visibility = "" if post["is_public"] else " (private)"
            print(f"{post['id']}  {_format_ms(post['created_at'])}  {post['content']}{visibility}")
    elif args.command == "feed":
        _print_feed(client.get_feed())
    elif args.command == "profile":
        if args.name or args.motto or args.mood:
            client.update_profile(display_name=args.name, motto=args.motto, status=args.mood)
            print("Profile updated")
        data = client.get_profile()
        profile, stats = data["profile"], data["stats"]
        print(f"{profile['display_name']}: {profile['motto']} ({profile['status']})")
        print(
            f"  active {stats['active_tasks']}, completed {stats['completed_tasks']}, "
            f"today {stats['completed_today']}"
        )
    elif args.command == "daemon":
        _run_daemon(client, store, prefs, args.dir_path, metered=args.metered)


def _print_feed(feed: dict[str, Any]) -> None:
    primary = feed["primary_status"]
    profile = feed.get("profile") or {}
    if profile:
        print(f"{profile['display_name']}: {primary['status']}")
    else:
        print(primary["status"])
    for post in feed.get("posts", []):
        print(f"  {_format_ms(post['created_at'])}  {post['content']}")


def _locked_sync(
    client: SyncClient, store: LocalTaskStore, data_dir: Path, *, public_only: bool = False
) -> Callable[[], Awaitable[SyncReport]]:
    """Sync coroutine that holds the data directory's sync lock while it runs."""

    def sync_under_lock() -> SyncReport:
        with sync_lock(data_dir):
            return client.sync(store, public_only=public_only)

    async def do_sync() -> SyncReport:
        return await asyncio.to_thread(sync_under_lock)

    return do_sync


def _run_daemon(
    client: SyncClient,
    store: LocalTaskStore,
    prefs: SyncPreferences,
    data_dir: Path,
    *,
    metered: bool = False,
) -> None:
    if not prefs.auto_sync_enabled:
        print("Auto sync is disabled; enable it with 'lifecast init --auto-sync'.")
        return
    print(f"Syncing every {prefs.sync_interval_minutes} minute(s). Press Ctrl+C to stop.")
    scheduler = SyncScheduler(
        _locked_sync(client, store, data_dir),
        lambda: load_preferences(data_dir),
        make_network_check(str(prefs.server_url), metered=metered),
    )

    async def run() -> None:
        scheduler.wake()
        await scheduler.run()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        scheduler.stop()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lifecast",
        description="Manage local tasks and sync them with a Lifecast server",
    )
    parser.add_argument("--dir", "-d", default=".", help="Data directory (default: current)")
    parser.add_argument(
        "--allow-insecure-http",
        action="store_true",
        help="Allow http:// server URLs for non-localhost hosts",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Log debug output")

    subparsers = parser.add_subparsers(dest="command")

    init = subparsers.add_parser("init", help="Configure the server and credentials")
    init.add_argument("--server", "-s", help="Server URL")
    init.add_argument("--token", help="Client token (generated when omitted)")
    init.add_argument("--password", help="Shared server password")
    init.add_argument("--auto-sync", dest="auto_sync", action="store_true", default=None)
    init.add_argument("--no-auto-sync", dest="auto_sync", action="store_false")
    init.add_argument("--interval", type=int, help="Background sync interval in minutes")

    add = subparsers.add_parser("add", help="Add a task")
    add.add_argument("title")
    add.add_argument("--description")
    add.add_argument("--deadline", help="Due date, e.g. 2026-05-01 or 2026-05-01T17:00")
    add.add_argument("--start", help="Start time")
    add.add_argument("--priority", type=int, choices=(1, 2, 3), default=1)
    add.add_argument("--public", action="store_true", help="Show on the public dashboard")
    add.add_argument("--tags")

    lst = subparsers.add_parser("list", help="List tasks")
    lst.add_argument("view", nargs="?", choices=TASK_VIEWS, default="active")

    done = subparsers.add_parser("done", help="Mark a task completed")
    done.add_argument("task_id", help="Task id or unique prefix")

    progress = subparsers.add_parser("progress", help="Set task progress in percent")
    progress.add_argument("task_id")
    progress.add_argument("value", type=int)

    delete = subparsers.add_parser("delete", help="Delete a task on this device")
    delete.add_argument("task_id")

    sync = subparsers.add_parser("sync", help="Sync tasks now")
    sync.add_argument("--public-only", action="store_true", help="Push only public tasks")

    status = subparsers.add_parser("status", help="Publish or show the current status")
    status.add_argument("text", nargs="?", help="Status text to publish")
    status.add_argument("--source", default="manual")
    status.add_argument("--ttl", type=int, help="Minutes until the status expires")

    post = subparsers.add_parser("post", help="Publish a short post")
    post.add_argument("content")
    post.add_argument("--tags")
    post.add_argument("--location")
    post.add_argument("--private", action="store_true")

    posts = subparsers.add_parser("posts", help="List your posts")
    posts.add_argument("--delete", metavar="POST_ID", help="Delete one post")

    subparsers.add_parser("feed", help="Show the public feed")

    profile = subparsers.add_parser("profile", help="Show or update the profile")
    profile.add_argument("--name")
    profile.add_argument("--motto")
    profile.add_argument("--mood", help="Profile status line")

    daemon = subparsers.add_parser("daemon", help="Run background sync until interrupted")
    daemon.add_argument(
        "--metered",
        action="store_true",
        help="Treat the connection as metered (no sync while wifi-only is set)",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )
    data_dir = Path(args.dir).resolve()
    args.dir_path = data_dir

    if args.command is None:
        parser.print_help()
        return

    try:
        if args.command == "init":
            _cmd_init(args, data_dir)
            return

        with LocalTaskStore(data_dir / DEFAULT_DB_FILE) as store:
            if args.command in {"add", "list", "done", "progress", "delete"}:
                _run_store_command(args, store)
                return

            prefs = load_preferences(data_dir)
            with _make_client(prefs, args.allow_insecure_http) as client:
                _run_remote_command(args, client, store, prefs)
    except TaskNotFoundError as exc:
        print(f"Error: No unique task matches '{exc.args[0]}'")
        sys.exit(1)
    except (ValueError, SyncTransportError, SyncRejectedError) as exc:
        print(f"Error: {exc}")
        sys.exit(1)


if __name__ == "__main__":
    main()
