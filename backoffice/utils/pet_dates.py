"""
Birthday/age helpers for pets.

The pet form asks for an age ("3 years", "5 months") while the backend
stores a birthday.  These helpers convert between both representations
and produce the short age label shown in the pets table.
"""
from __future__ import annotations

import calendar
import math
from datetime import date, datetime
from typing import Optional, Union

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

AGE_UNITS = ('years', 'months')


def _today() -> date:
    return timezone.localdate()


def _parse_age(value) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        age = float(value)
    else:
        try:
            age = float(str(value).strip())
        except ValueError:
            return None
    if math.isnan(age) or math.isinf(age) or age <= 0:
        return None
    return age


def subtract_months(day: date, months: int) -> date:
    """Move ``day`` back ``months`` calendar months, clamping the day."""
    index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(index, 12)
    month += 1
    last = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last))


def parse_birthday(value: Union[str, date, datetime, None]) -> Optional[date]:
    """Accept ``YYYY-MM-DD`` strings, ISO datetimes and date objects."""
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        parsed = parse_date(text)
        if parsed is None:
            stamp = parse_datetime(text)
            parsed = stamp.date() if stamp else None
    except ValueError:
        # well formed but impossible, e.g. 2024-02-31
        return None
    return parsed


def calculate_birthday(age_value, age_unit: str, today: Optional[date] = None) -> Optional[str]:
    """Infer a ``YYYY-MM-DD`` birthday from an age.

    Returns ``None`` when the age is not a positive number or reaches back
    past year 1.  Fractional years are counted in whole months, so ``1.5``
    years is 18 months.
    """
    age = _parse_age(age_value)
    if age is None:
        return None
    if age_unit not in AGE_UNITS:
        return None
    today = today or _today()
    try:
        months = int(age * 12) if age_unit == 'years' else int(age)
        return subtract_months(today, months).isoformat()
    except (ValueError, OverflowError):
        # further back than the calendar goes
        return None


def _differences(birthday: date, today: date) -> tuple[int, int]:
    years = today.year - birthday.year
    months = years * 12 + (today.month - birthday.month)
    return years, months


def calculate_age_from_birthday(birthday, today: Optional[date] = None) -> Optional[dict]:
    """Return ``{'value': n, 'unit': 'years'|'months'}`` for a birthday.

    Pets one calendar year old or more are expressed in years; younger
    pets in months, never less than one.
    """
    born = parse_birthday(birthday)
    if born is None:
        return None
    years, months = _differences(born, today or _today())
    if years >= 1:
        return {'value': years, 'unit': 'years'}
    return {'value': months if months > 0 else 1, 'unit': 'months'}


def format_age_from_birthday(birthday=None, today: Optional[date] = None) -> Optional[str]:
    age = calculate_age_from_birthday(birthday, today=today)
    if age is None:
        return None
    value = age['value']
    if age['unit'] == 'years':
        return f"{value} {'año' if value == 1 else 'años'}"
    return f"{value} {'mes' if value == 1 else 'meses'}"
