"""Subscription Service: CRUD and derived views, scoped to one user.

Every write goes through `_save`, which validates the full candidate and
applies `prepare_for_save` before touching the database. Subscriptions that
belong to someone else are reported as not found.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from subscription_tracker.config import Config
from subscription_tracker.db import connect
from subscription_tracker.errors import ForbiddenError, NotFoundError, ValidationFailure
from subscription_tracker.util.time import utcnow, utcnow_iso

from .crud import (
    delete_subscription_row,
    get_subscription_by_id,
    insert_subscription,
    list_renewals_between,
    list_subscriptions_for_user,
    public_subscription,
    update_subscription_row,
)
from .lifecycle import RENEWAL_PERIOD_DAYS, prepare_for_save, validate_subscription

# Fields a client may set on create/update. Renewal date and cancellation
# bookkeeping are derived.
EDITABLE_FIELDS = (
    "name",
    "price",
    "currency",
    "frequency",
    "category",
    "payment_method",
    "status",
    "start_date",
    "end_date",
)

MAX_LOOKAHEAD_DAYS = 365


def _debug(msg: str) -> None:
    print(f"[subscriptions] {msg}")


def _save(conn: Any, candidate: Dict[str, Any], *, now: datetime) -> int:
    validate_subscription(candidate)
    prepare_for_save(candidate, now=now)
    now_iso = utcnow_iso()
    if candidate.get("subscription_id") is None:
        return insert_subscription(conn, candidate, now_iso=now_iso)
    update_subscription_row(conn, candidate, now_iso=now_iso)
    return int(candidate["subscription_id"])


def _get_owned(conn: Any, user_id: int, subscription_id: int) -> Dict[str, Any]:
    rec = get_subscription_by_id(conn, subscription_id)
    if rec is None or int(rec["user_id"]) != int(user_id):
        raise NotFoundError("Subscription not found")
    return rec


def create_subscription(
    cfg: Config,
    *,
    user_id: int,
    fields: Dict[str, Any],
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    candidate: Dict[str, Any] = {"status": "active", "renewal_date": None}
    candidate.update({k: v for k, v in fields.items() if k in EDITABLE_FIELDS and v is not None})
    candidate["user_id"] = int(user_id)
    if isinstance(candidate.get("name"), str):
        candidate["name"] = candidate["name"].strip()

    with connect(cfg.DB_DSN) as conn:
        subscription_id = _save(conn, candidate, now=now or utcnow())
        rec = _get_owned(conn, user_id, subscription_id)
    _debug(f"created subscription_id={subscription_id} user_id={user_id} status={rec['status']}")
    return public_subscription(rec)


def get_subscription(cfg: Config, *, user_id: int, subscription_id: int) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        return public_subscription(_get_owned(conn, user_id, subscription_id))


def list_subscriptions(cfg: Config, *, user_id: int) -> List[Dict[str, Any]]:
    with connect(cfg.DB_DSN) as conn:
        return [public_subscription(r) for r in list_subscriptions_for_user(conn, user_id)]


def update_subscription(
    cfg: Config,
    *,
    user_id: int,
    subscription_id: int,
    changes: Dict[str, Any],
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Partial update. The stored renewal date is kept as-is."""
    with connect(cfg.DB_DSN) as conn:
        candidate = _get_owned(conn, user_id, subscription_id)
        candidate.update({k: v for k, v in changes.items() if k in EDITABLE_FIELDS and v is not None})
        if isinstance(candidate.get("name"), str):
            candidate["name"] = candidate["name"].strip()
        _save(conn, candidate, now=now or utcnow())
        rec = _get_owned(conn, user_id, subscription_id)
    return public_subscription(rec)


def cancel_subscription(
    cfg: Config,
    *,
    user_id: int,
    subscription_id: int,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        candidate = _get_owned(conn, user_id, subscription_id)
        # A lapsed subscription is stored as inactive even after a cancel.
        if candidate["status"] == "cancelled" or candidate.get("cancelled_at"):
            raise ValidationFailure(["subscription is already cancelled"])
        candidate["status"] = "cancelled"
        candidate["cancelled_at"] = utcnow_iso()
        candidate["cancellation_reason"] = (reason or "").strip() or None
        _save(conn, candidate, now=now or utcnow())
        rec = _get_owned(conn, user_id, subscription_id)
    _debug(f"cancelled subscription_id={subscription_id} user_id={user_id}")
    return public_subscription(rec)


def delete_subscription(cfg: Config, *, user_id: int, subscription_id: int) -> None:
    with connect(cfg.DB_DSN) as conn:
        _get_owned(conn, user_id, subscription_id)
        delete_subscription_row(conn, subscription_id)
    _debug(f"deleted subscription_id={subscription_id} user_id={user_id}")


def upcoming_renewals(
    cfg: Config,
    *,
    user_id: int,
    days: int,
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """Active subscriptions renewing between today and today + `days`, nearest first."""
    if days < 1 or days > MAX_LOOKAHEAD_DAYS:
        raise ValidationFailure([f"days must be between 1 and {MAX_LOOKAHEAD_DAYS}"])
    today = (now or utcnow()).date()
    with connect(cfg.DB_DSN) as conn:
        rows = list_renewals_between(conn, user_id, start=today, end=today + timedelta(days=days))
    return [public_subscription(r) for r in rows]


def renewal_totals(renewals: List[Dict[str, Any]]) -> Dict[str, float]:
    """Amount due per currency for a list of public subscriptions (one renewal each)."""
    totals: Dict[str, float] = {}
    for s in renewals:
        totals[s["currency"]] = totals.get(s["currency"], 0.0) + s["price"]
    return {k: round(v, 2) for k, v in sorted(totals.items())}


def summarize(subscriptions: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Spend overview for a list of public subscriptions.

    Totals only count active subscriptions and are grouped by currency
    (amounts in different currencies are never added together).
    """
    active = [s for s in subscriptions if s["status"] == "active"]
    monthly: Dict[str, float] = {}
    yearly: Dict[str, float] = {}
    for s in active:
        period = RENEWAL_PERIOD_DAYS[s["frequency"]]
        cur = s["currency"]
        monthly[cur] = monthly.get(cur, 0.0) + s["price"] * 30 / period
        yearly[cur] = yearly.get(cur, 0.0) + s["price"] * 365 / period

    return {
        "totalMonthly": {k: round(v, 2) for k, v in sorted(monthly.items())},
        "totalYearly": {k: round(v, 2) for k, v in sorted(yearly.items())},
        "activeCount": len(active),
        "categories": sorted({s["category"] for s in subscriptions}),
    }


def user_subscriptions(cfg: Config, *, viewer_id: int, user_id: int) -> Dict[str, Any]:
    """All subscriptions of `user_id` plus a summary. Users may only view their own."""
    if int(viewer_id) != int(user_id):
        raise ForbiddenError("You can only view your own subscriptions")
    subs = list_subscriptions(cfg, user_id=user_id)
    return {"subscriptions": subs, "summary": summarize(subs)}
