from __future__ import annotations

from datetime import date, datetime, time, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def utcnow_iso() -> str:
    """Current UTC time as ISO-8601 string with Z."""
    return utcnow().replace(microsecond=0).isoformat().replace("+00:00", "Z")


def start_of_day_utc(d: date) -> datetime:
    """Midnight (UTC) at the beginning of the given calendar day."""
    return datetime.combine(d, time.min, tzinfo=timezone.utc)


def parse_iso_date(s: str | date | None) -> date | None:
    if s is None or s == "":
        return None
    if isinstance(s, datetime):
        return s.date()
    if isinstance(s, date):
        return s
    return date.fromisoformat(str(s)[:10])
