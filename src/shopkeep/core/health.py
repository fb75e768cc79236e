"""Health reporting for the database session and the event channel.

Health is data, not an error: ``health_check()`` on a channel or session
returns a :class:`Health` even when the dependency is down, so readiness
probes can report *why* without wrapping every call in ``try``.

Quick start::

    from shopkeep.core.health import aggregate_health, check_session

    db = check_session(session)
    bus = await channel.health_check()
    overall = aggregate_health("shopkeep", [db, bus])
"""

from __future__ import annotations

import time
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

from shopkeep.core.errors import ShopkeepError

if TYPE_CHECKING:
    from shopkeep.core.protocols import Session

# Module-level start time, set when the service first imports this module.
_START_TIME = time.monotonic()


class HealthStatus(str, Enum):
    """Status of a single dependency."""

    UP = "UP"
    DOWN = "DOWN"
    DEGRADED = "DEGRADED"


class Health(BaseModel):
    """Health of one dependency (or an aggregate of several).

    Fields
    ──────
    name      : Dependency name (``sqlite``, ``cassandra``, ``redis`` …)
    status    : ``UP`` | ``DOWN`` | ``DEGRADED``
    host      : Where the dependency lives, when known
    details   : Implementation-defined extras (error text, lag, topics)
    checked_at: ISO-8601 UTC
    """

    name: str
    status: HealthStatus = HealthStatus.UP
    host: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)
    checked_at: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())

    @property
    def is_up(self) -> bool:
        return self.status == HealthStatus.UP


def down(name: str, error: Exception | str, **details: Any) -> Health:
    """Build a ``DOWN`` health carrying the error text."""
    return Health(
        name=name,
        status=HealthStatus.DOWN,
        details={"error": str(error)[:200], **details},
    )


def check_session(session: Session) -> Health:
    """Probe a database session with a trivial statement.

    Never raises; a closed or broken session yields ``DOWN``.
    """
    name = session.dialect.name
    if session.closed:
        return down(name, "session closed")

    start = time.monotonic()
    try:
        session.execute(session.dialect.probe_statement())
    except ShopkeepError as exc:
        return down(name, exc)
    elapsed = (time.monotonic() - start) * 1000
    return Health(name=name, details={"latency_ms": round(elapsed, 2)})


def aggregate_health(name: str, parts: list[Health]) -> Health:
    """Combine dependency health into one status.

    ``UP`` if all parts are up, ``DOWN`` if all are down, otherwise
    ``DEGRADED``.
    """
    if not parts or all(p.is_up for p in parts):
        status = HealthStatus.UP
    elif all(p.status == HealthStatus.DOWN for p in parts):
        status = HealthStatus.DOWN
    else:
        status = HealthStatus.DEGRADED

    return Health(
        name=name,
        status=status,
        details={
            "uptime_s": round(time.monotonic() - _START_TIME, 1),
            "checks": {p.name: p.model_dump() for p in parts},
        },
    )


__all__ = [
    "Health",
    "HealthStatus",
    "aggregate_health",
    "check_session",
    "down",
]
