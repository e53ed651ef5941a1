"""
Cash movements report: daily entries, outputs and running balance of a
veterinary between two dates.
"""
from __future__ import annotations

import calendar
import logging
from datetime import date
from typing import Optional

from django.utils import timezone

from backoffice.services.api_client import BackendClient, BackendError, unwrap
from backoffice.services.dashboard import Section
from backoffice.utils.formatting import format_amount, format_long_date, to_number

logger = logging.getLogger(__name__)

DEFAULT_ERROR = 'Error al cargar datos'


def month_bounds(today: Optional[date] = None) -> tuple[date, date]:
    """First and last day of the month ``today`` falls in."""
    today = today or timezone.localdate()
    last_day = calendar.monthrange(today.year, today.month)[1]
    return today.replace(day=1), today.replace(day=last_day)


def _amount(value) -> dict:
    number = to_number(value)
    return {'text': format_amount(number), 'negative': number < 0}


def movement_rows(payload) -> list[dict]:
    payload = unwrap(payload)
    days = payload.get('daily_totals') if isinstance(payload, dict) else None
    return [{
        'date': format_long_date(day.get('movement_date')),
        'entries': format_amount(day.get('total_entry')),
        'outputs': format_amount(day.get('total_output')),
        'daily_balance': _amount(day.get('daily_balance')),
        'accumulated_balance': _amount(day.get('accumulated_balance')),
    } for day in days or [] if isinstance(day, dict)]


def movements_report(client: BackendClient, veterinary_id, start: date, end: date) -> Section:
    try:
        payload = client.fetch('movements-analytics', default_error=DEFAULT_ERROR,
                               start=start.isoformat(), end=end.isoformat(), veterinary_id=veterinary_id)
    except BackendError as exc:
        logger.warning('movements for veterinary %s failed: %s', veterinary_id, exc.message)
        return Section(error=exc.message)
    body = unwrap(payload)
    total = body.get('total_accumulated') if isinstance(body, dict) else None
    return Section(data={'rows': movement_rows(body), 'total': _amount(total)})
