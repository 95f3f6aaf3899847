"""Status source store and aggregation.

Each owner has at most one live row per source name; publishing the same
source again overwrites it, and every publish also lands in an append-only
event log. The "current status" is never stored: :func:`aggregate_status`
recomputes it from the rows and a caller-supplied ``now`` on every read.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from backend.models.status import StatusEvent, StatusSource
from backend.services.datetime_service import MAX_TIMESTAMP_MS, now_ms

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

MANUAL_SOURCE = "manual"
SYSTEM_SOURCE = "system"
OFFLINE_STATUS_TEXT = "Offline"


@dataclass(frozen=True)
class StatusSnapshot:
    """One observation as seen by the aggregator."""

    source: str
    status: str
    observed_at: int | None
    expires_at: int | None
    meta: dict[str, Any] | None = None
    offline: bool = False

    @classmethod
    def from_row(cls, row: StatusSource) -> StatusSnapshot:
        return cls(
            source=row.source,
            status=row.status,
            observed_at=row.observed_at,
            expires_at=row.expires_at,
            meta=row.meta,
        )


OFFLINE = StatusSnapshot(
    source=SYSTEM_SOURCE,
    status=OFFLINE_STATUS_TEXT,
    observed_at=None,
    expires_at=None,
    offline=True,
)


@dataclass(frozen=True)
class AggregatedStatus:
    """Primary status plus every live signal it was chosen from."""

    primary: StatusSnapshot
    sources: list[StatusSnapshot] = field(default_factory=list)


def normalize_source(source: str) -> str:
    normalized = source.strip().lower()
    if not normalized:
        raise ValueError("source must not be empty")
    return normalized


def aggregate_status(rows: Iterable[StatusSnapshot], now: int) -> AggregatedStatus:
    """Pick the primary status among rows still live at ``now``.

    A row is live while ``expires_at > now`` (an expiry equal to ``now`` is
    already expired). Live rows are ordered most recently observed first. A
    live ``manual`` row always wins; otherwise the most recent row does; with
    no live rows the result is the ``system``/``Offline`` sentinel.
    """
    live = [r for r in rows if r.expires_at is not None and r.expires_at > now]
    live.sort(key=lambda r: (-(r.observed_at or 0), r.source))

    primary = next((r for r in live if r.source == MANUAL_SOURCE), None)
    if primary is None:
        primary = live[0] if live else OFFLINE
    return AggregatedStatus(primary=primary, sources=live)


async def load_status_sources(session: AsyncSession, owner_token: str) -> list[StatusSnapshot]:
    """Every stored source row for an owner, live or not."""
    stmt = (
        select(StatusSource)
        .where(StatusSource.owner_token == owner_token)
        .execution_options(populate_existing=True)
    )
    result = await session.execute(stmt)
    return [StatusSnapshot.from_row(row) for row in result.scalars().all()]


async def get_current_status(
    session: AsyncSession, owner_token: str, now: int | None = None
) -> AggregatedStatus:
    """Aggregate the owner's sources as of ``now`` (defaults to the wall clock)."""
    rows = await load_status_sources(session, owner_token)
    return aggregate_status(rows, now_ms() if now is None else now)


async def publish_status(
    session: AsyncSession,
    owner_token: str,
    *,
    source: str,
    status: str,
    observed_at: int | None = None,
    expires_at: int | None = None,
    meta: dict[str, Any] | None = None,
    default_ttl_seconds: int = 900,
    now: int | None = None,
) -> StatusSnapshot:
    """Upsert the (owner, source) row and append the observation to the event log.

    ``observed_at`` defaults to now and ``expires_at`` to ``observed_at`` plus
    the default TTL. Raises ``ValueError`` before writing anything if the
    expiry is not strictly after the observation.
    """
    current = now_ms() if now is None else now
    source_key = normalize_source(source)
    if source_key == SYSTEM_SOURCE:
        raise ValueError(f"'{SYSTEM_SOURCE}' is a reserved source name")
    text = status.strip()
    if not text:
        raise ValueError("status must not be empty")

    observed = current if observed_at is None else observed_at
    expires = observed + default_ttl_seconds * 1000 if expires_at is None else expires_at
    if expires <= observed:
        raise ValueError("expires_at must be after observed_at")
    if expires > MAX_TIMESTAMP_MS:
        raise ValueError("expires_at is out of range")

    values = {
        "owner_token": owner_token,
        "source": source_key,
        "status": text,
        "observed_at": observed,
        "expires_at": expires,
        "meta": meta,
    }
    stmt = sqlite_insert(StatusSource).values(values)
    stmt = stmt.on_conflict_do_update(
        index_elements=[StatusSource.owner_token, StatusSource.source],
        set_={
            "status": stmt.excluded.status,
            "observed_at": stmt.excluded.observed_at,
            "expires_at": stmt.excluded.expires_at,
            "meta": stmt.excluded.meta,
        },
    )
    try:
        await session.execute(stmt)
        session.add(StatusEvent(**values, recorded_at=current))
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    logger.info("Status published: source=%s expires_at=%d", source_key, expires)
    return StatusSnapshot(
        source=source_key,
        status=text,
        observed_at=observed,
        expires_at=expires,
        meta=meta,
    )
