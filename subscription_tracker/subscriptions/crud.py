from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

from subscription_tracker.util.time import parse_iso_date

# Columns a caller may write (everything else is owned by the service).
WRITABLE_FIELDS = (
    "name",
    "price",
    "currency",
    "frequency",
    "category",
    "payment_method",
    "status",
    "start_date",
    "end_date",
    "renewal_date",
    "cancelled_at",
    "cancellation_reason",
)

_DATE_FIELDS = ("start_date", "end_date", "renewal_date")


def row_to_record(row: Any) -> Dict[str, Any]:
    """DB row -> in-memory record (ISO date strings become `date`s)."""
    d = dict(row)
    for k in _DATE_FIELDS:
        d[k] = parse_iso_date(d.get(k))
    d["price"] = float(d["price"])
    return d


def _iso(v: Optional[date]) -> Optional[str]:
    return v.isoformat() if v is not None else None


def public_subscription(rec: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": rec["subscription_id"],
        "user": rec["user_id"],
        "name": rec["name"],
        "price": rec["price"],
        "currency": rec["currency"],
        "frequency": rec["frequency"],
        "category": rec["category"],
        "paymentMethod": rec["payment_method"],
        "status": rec["status"],
        "startDate": _iso(rec["start_date"]),
        "endDate": _iso(rec["end_date"]),
        "renewalDate": _iso(rec.get("renewal_date")),
        "cancelledAt": rec.get("cancelled_at"),
        "cancellationReason": rec.get("cancellation_reason"),
        "createdAt": rec["created_at"],
        "updatedAt": rec["updated_at"],
    }


def _column_value(rec: Dict[str, Any], k: str) -> Any:
    return _iso(rec.get(k)) if k in _DATE_FIELDS else rec.get(k)


def insert_subscription(conn: Any, rec: Dict[str, Any], *, now_iso: str) -> int:
    cols = ["user_id", *WRITABLE_FIELDS, "created_at", "updated_at"]
    values = [int(rec["user_id"]), *[_column_value(rec, k) for k in WRITABLE_FIELDS], now_iso, now_iso]
    placeholders = ",".join("?" for _ in cols)
    # fetchall() so the RETURNING statement is fully stepped before commit.
    rows = conn.execute(
        f"INSERT INTO subscriptions ({', '.join(cols)}) VALUES ({placeholders}) RETURNING subscription_id",
        values,
    ).fetchall()
    return int(rows[0]["subscription_id"])


def update_subscription_row(conn: Any, rec: Dict[str, Any], *, now_iso: str) -> None:
    sets = ", ".join(f"{k}=?" for k in WRITABLE_FIELDS)
    params = [_column_value(rec, k) for k in WRITABLE_FIELDS] + [now_iso, int(rec["subscription_id"])]
    conn.execute(
        f"UPDATE subscriptions SET {sets}, updated_at=? WHERE subscription_id=?",
        params,
    )


def get_subscription_by_id(conn: Any, subscription_id: int) -> Optional[Dict[str, Any]]:
    row = conn.execute(
        "SELECT * FROM subscriptions WHERE subscription_id=?",
        (int(subscription_id),),
    ).fetchone()
    return row_to_record(row) if row is not None else None


def list_subscriptions_for_user(conn: Any, user_id: int) -> List[Dict[str, Any]]:
    rows = conn.execute(
        "SELECT * FROM subscriptions WHERE user_id=? ORDER BY created_at DESC, subscription_id DESC",
        (int(user_id),),
    ).fetchall()
    return [row_to_record(r) for r in rows]


def list_renewals_between(conn: Any, user_id: int, *, start: date, end: date) -> List[Dict[str, Any]]:
    """Active subscriptions whose renewal date falls in [start, end], nearest first."""
    rows = conn.execute(
        """
        SELECT * FROM subscriptions
        WHERE user_id=?
          AND status='active'
          AND renewal_date IS NOT NULL
          AND renewal_date >= ?
          AND renewal_date <= ?
        ORDER BY renewal_date ASC, subscription_id ASC
        """,
        (int(user_id), start.isoformat(), end.isoformat()),
    ).fetchall()
    return [row_to_record(r) for r in rows]


def delete_subscription_row(conn: Any, subscription_id: int) -> int:
    cur = conn.execute("DELETE FROM subscriptions WHERE subscription_id=?", (int(subscription_id),))
    return int(cur.rowcount or 0)
