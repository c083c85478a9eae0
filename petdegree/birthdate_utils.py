# petdegree/birthdate_utils.py
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

# Missing birth dates sort after every real date.
MISSING_BIRTH_DATE_SENTINEL = date.max


def parse_birth_date(value: Any) -> Optional[date]:
    """
    Best-effort conversion of an upstream birth date to a date.

    Accepts date / datetime objects and ISO strings ("2020-06-01",
    "2020-06-01T08:00:00Z"). Anything unparseable is treated as missing.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    s = value.strip()
    if len(s) < 10:
        return None
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        return None


def age_in_years(birth_date: Optional[date], today: date) -> int:
    """
    Completed years between birth_date and today. Missing -> 0.
    """
    if birth_date is None:
        return 0
    years = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        years -= 1
    return max(0, years)


def birth_sort_key(birth_date: Optional[date]) -> date:
    return birth_date if birth_date is not None else MISSING_BIRTH_DATE_SENTINEL
