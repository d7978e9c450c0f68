"""Pull-based reconciliation of the two-phase session timer.

The countdown itself runs in the clients and is reported through timer
updates. The server only keeps the last snapshot and, when a session is
listed or rejoined, subtracts the wall-clock time that passed since that
snapshot was stamped from whichever phase is live.
"""
from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Optional

from .models import TimerSnapshot


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def elapsed_seconds(since: Optional[datetime], now: datetime) -> int:
    """Whole seconds between ``since`` and ``now``; zero when unset or negative."""

    if since is None:
        return 0
    delta = (_as_utc(now) - _as_utc(since)).total_seconds()
    if delta <= 0:
        return 0
    return int(math.floor(delta))


def reconcile(snapshot: TimerSnapshot, now: Optional[datetime] = None) -> TimerSnapshot:
    """Return ``snapshot`` with the live phase reduced by the elapsed time.

    The phase flag is never flipped here; switching from instructions to
    coding is decided by the client and arrives as a timer update.
    """

    if snapshot.last_reconciled_at is None:
        return snapshot.model_copy()

    current = now or utc_now()
    elapsed = elapsed_seconds(snapshot.last_reconciled_at, current)
    if snapshot.is_instruction_phase:
        remaining = max(0, snapshot.instruction_seconds_remaining - elapsed)
        return snapshot.model_copy(update={"instruction_seconds_remaining": remaining})
    remaining = max(0, snapshot.coding_seconds_remaining - elapsed)
    return snapshot.model_copy(update={"coding_seconds_remaining": remaining})


def restamp(snapshot: TimerSnapshot, now: Optional[datetime] = None) -> TimerSnapshot:
    """Reconcile ``snapshot`` and move its stamp forward by the seconds charged.

    The sub-second remainder stays on the clock so repeated rejoins never
    lose time. An unstamped snapshot is stamped with ``now``.
    """

    current = now or utc_now()
    since = snapshot.last_reconciled_at
    if since is None:
        return snapshot.model_copy(update={"last_reconciled_at": _as_utc(current)})
    elapsed = elapsed_seconds(since, current)
    reconciled = reconcile(snapshot, current)
    stamp = _as_utc(since) + timedelta(seconds=elapsed)
    return reconciled.model_copy(update={"last_reconciled_at": stamp})


__all__ = ["elapsed_seconds", "reconcile", "restamp", "utc_now"]
