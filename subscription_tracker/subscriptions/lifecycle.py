"""Subscription entity rules: validation and the pre-persist derivation.

A subscription is handled as a plain dict keyed by column name
(`name`, `price`, `frequency`, `start_date`, ...). Dates are `datetime.date`
objects while in memory.

The Subscription Service runs, in this order, before every write:

1. `validate_subscription(candidate)` - all field and cross-field checks
   over the whole in-memory candidate.
2. `prepare_for_save(candidate, now=...)` - assign the renewal date once,
   then downgrade lapsed subscriptions to inactive.
"""

from __future__ import annotations

import math
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from subscription_tracker.errors import ValidationFailure
from subscription_tracker.util.time import start_of_day_utc, utcnow

NAME_MIN_LEN = 3
NAME_MAX_LEN = 20

FREQUENCIES = ("daily", "weekly", "monthly", "yearly")
CATEGORIES = ("food", "entertainment", "shopping", "health", "education", "other")
STATUSES = ("active", "inactive", "cancelled")

CURRENCIES = (
    "USD", "EUR", "GBP", "CAD", "AUD", "CHF", "JPY", "CNY", "INR", "BRL",
    "MXN", "ARS", "CLP", "COP", "PEN", "NZD", "HKD", "SGD", "THB", "MYR",
    "PHP", "IDR", "VND", "KRW", "TRY", "RUB", "ZAR", "SEK", "NOK", "DKK",
    "PLN", "CZK", "HUF", "RON", "BGN", "HRK", "ISK", "JOD", "KWD", "QAR",
    "SAR", "AED", "BHD", "OMR",
)

# Days added to start_date to get the first renewal date.
RENEWAL_PERIOD_DAYS: Dict[str, int] = {
    "daily": 1,
    "weekly": 7,
    "monthly": 30,
    "yearly": 365,
}


def renewal_offset(frequency: str) -> timedelta:
    return timedelta(days=RENEWAL_PERIOD_DAYS[frequency])


def validate_subscription(candidate: Dict[str, Any]) -> None:
    """Check every constraint; raise one ValidationFailure listing all problems."""
    errors: List[str] = []

    name = (candidate.get("name") or "").strip()
    if not name:
        errors.append("name is required")
    elif len(name) < NAME_MIN_LEN:
        errors.append(f"name must be at least {NAME_MIN_LEN} characters long")
    elif len(name) > NAME_MAX_LEN:
        errors.append(f"name must be at most {NAME_MAX_LEN} characters long")

    price = candidate.get("price")
    if price is None:
        errors.append("price is required")
    elif not math.isfinite(price):
        errors.append("price must be a finite number")
    elif price < 0:
        errors.append("price must be greater than or equal to 0")

    currency = candidate.get("currency")
    if not currency:
        errors.append("currency is required")
    elif currency not in CURRENCIES:
        errors.append(f"`{currency}` is not a valid currency")

    frequency = candidate.get("frequency")
    if not frequency:
        errors.append("frequency is required")
    elif frequency not in FREQUENCIES:
        errors.append(f"`{frequency}` is not a valid frequency")

    category = candidate.get("category")
    if not category:
        errors.append("category is required")
    elif category not in CATEGORIES:
        errors.append(f"`{category}` is not a valid category")

    if not (candidate.get("payment_method") or "").strip():
        errors.append("payment method is required")

    status = candidate.get("status")
    if not status:
        errors.append("status is required")
    elif status not in STATUSES:
        errors.append(f"`{status}` is not a valid status")

    if candidate.get("user_id") is None:
        errors.append("user is required")

    start: Optional[date] = candidate.get("start_date")
    end: Optional[date] = candidate.get("end_date")
    if start is None:
        errors.append("start date is required")
    if end is None:
        errors.append("end date is required")
    if start is not None and end is not None and not start < end:
        errors.append("start date must be before end date")
        errors.append("end date must be after start date")
    if start is not None and frequency in FREQUENCIES and candidate.get("renewal_date") is None:
        try:
            start + renewal_offset(frequency)
        except OverflowError:
            errors.append("start date is out of range")

    if errors:
        raise ValidationFailure(errors)


def is_lapsed(renewal_date: Optional[date], *, now: datetime) -> bool:
    """True when the renewal day started strictly before `now`."""
    if renewal_date is None:
        return False
    return start_of_day_utc(renewal_date) < now


def prepare_for_save(candidate: Dict[str, Any], *, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Apply the derived-field rules in place and return the candidate.

    - renewal_date is computed from start_date + frequency only when it is
      missing; an existing renewal date is never moved.
    - status becomes "inactive" whenever renewal_date has already passed,
      including on the save that just computed it.
    """
    now = now or utcnow()

    if candidate.get("renewal_date") is None:
        candidate["renewal_date"] = candidate["start_date"] + renewal_offset(candidate["frequency"])

    if is_lapsed(candidate["renewal_date"], now=now):
        candidate["status"] = "inactive"

    return candidate
