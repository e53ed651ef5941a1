"""
Dashboard assembly.

Every section of the dashboard comes from its own backend endpoint and is
loaded independently: a failing section carries its error message and
the others still render.  Raw payloads are cached per user, veterinary,
section and period for ``DASHBOARD_CACHE_TTL`` seconds.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Callable, Optional

from django.conf import settings
from django.core.cache import cache
from django.utils import timezone

from backoffice.services.api_client import BackendClient, BackendError
from backoffice.services.pagination import items_from_payload
from backoffice.utils.formatting import (
    average_ticket,
    calculate_change,
    chart_label,
    format_currency,
    format_number,
    format_relative_date,
    initials,
    percentage_of,
    species_type,
    to_number,
)

logger = logging.getLogger(__name__)

PERIODS = ('week', 'month', 'year')
DEFAULT_PERIOD = 'month'


@dataclass
class Section:
    data: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def normalize_period(value: Optional[str]) -> str:
    return value if value in PERIODS else DEFAULT_PERIOD


def date_range(period: str, today: Optional[date] = None) -> tuple[date, date]:
    today = today or timezone.localdate()
    if period == 'week':
        return today - timedelta(days=7), today
    if period == 'year':
        return today.replace(month=1, day=1), today
    return today.replace(day=1), today


def cache_key(user_id, veterinary_id, section: str, period: str = '') -> str:
    return f'dashboard:u={user_id}:v={veterinary_id}:s={section}:p={period}'


def _load(client: BackendClient, user_id, veterinary_id, section: str, default_error: str,
          period: str = '', **query) -> Section:
    key = cache_key(user_id, veterinary_id, section, period)
    ttl = settings.DASHBOARD_CACHE_TTL
    if ttl > 0:
        cached = cache.get(key)
        if cached is not None:
            return Section(data=cached)
    try:
        payload = client.fetch(section, default_error=default_error, veterinary_id=veterinary_id, **query)
    except BackendError as exc:
        logger.warning('dashboard section %s failed for veterinary %s: %s', section, veterinary_id, exc.message)
        return Section(error=exc.message)
    if ttl > 0 and payload is not None:
        cache.set(key, payload, ttl)
    return Section(data=payload)


def _transform(section: Section, builder: Callable[[Any], Any]) -> Section:
    if not section.ok:
        return section
    return Section(data=builder(section.data))


def _dict(value) -> dict:
    return value if isinstance(value, dict) else {}


def _records(payload) -> list[dict]:
    return [item for item in items_from_payload(payload) if isinstance(item, dict)]


# ---------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------
def kpi_cards(payload) -> list[dict]:
    payload = _dict(payload)
    consultations = _dict(payload.get('consultations'))
    sales = _dict(payload.get('sales'))
    sales_today, sales_yesterday = _dict(sales.get('today')), _dict(sales.get('yesterday'))
    earnings = _dict(payload.get('earnings'))

    ticket_today = average_ticket(sales_today.get('amount'), sales_today.get('count'))
    ticket_yesterday = average_ticket(sales_yesterday.get('amount'), sales_yesterday.get('count'))

    cards = [
        ('Consultas del día', format_number(to_number(consultations.get('today'))),
         calculate_change(consultations.get('today'), consultations.get('yesterday'))),
        ('Ventas del día', format_number(to_number(sales_today.get('count'))),
         calculate_change(sales_today.get('count'), sales_yesterday.get('count'))),
        ('Ticket promedio del día', format_currency(ticket_today),
         calculate_change(ticket_today, ticket_yesterday)),
        ('Ganancias del día', format_currency(earnings.get('today')),
         calculate_change(earnings.get('today'), earnings.get('yesterday'))),
    ]
    return [{'title': title, 'value': value, 'change': change, 'positive': not change.startswith('-')}
            for title, value, change in cards]


def recent_patient_rows(payload, now=None) -> list[dict]:
    rows = []
    for item in _records(payload):
        owner = f"{item.get('client_name') or ''} {item.get('client_last_name') or ''}".strip()
        rows.append({
            'pet_name': item.get('pet_name') or '',
            'initials': initials(item.get('pet_name')),
            'owner': owner,
            'when': format_relative_date(item.get('date'), now=now),
            'species': species_type(item.get('species')),
        })
    return rows


def top_product_rows(payload) -> list[dict]:
    return [{
        'rank': index,
        'name': item.get('name') or '',
        'code': item.get('code') or '',
        'quantity': format_number(item.get('total_quantity_sold')),
        'earnings': format_currency(item.get('total_earnings')),
    } for index, item in enumerate(_records(payload), start=1)]


def frequent_consultation_rows(payload) -> list[dict]:
    items = _records(payload)
    total = sum(to_number(item.get('count')) for item in items)
    return [{
        'rank': index,
        'reason': item.get('reason') or '',
        'count': format_number(item.get('count')),
        'percentage': percentage_of(item.get('count'), total),
    } for index, item in enumerate(items, start=1)]


def critical_inventory(payload) -> dict:
    payload = _dict(payload)
    return {
        'low_stock': [{'name': p.get('name') or '', 'stock': format_number(p.get('stock'))}
                      for p in payload.get('low_stock') or [] if isinstance(p, dict)],
        'out_of_stock': [{'name': p.get('name') or ''}
                         for p in payload.get('out_of_stock') or [] if isinstance(p, dict)],
    }


def sales_series(payload) -> list[dict]:
    return [{'name': chart_label(item.get('date')), 'ventas': to_number(item.get('total_amount'))}
            for item in _records(payload)]


def consultation_series(payload) -> list[dict]:
    items = _dict(payload).get('consultations_by_date') or []
    return [{'name': chart_label(item.get('date')), 'consultas': to_number(item.get('total_consultations'))}
            for item in items if isinstance(item, dict)]


def build_dashboard(client: BackendClient, user_id, veterinary_id, period: str = DEFAULT_PERIOD,
                    today: Optional[date] = None) -> dict:
    period = normalize_period(period)
    start, end = date_range(period, today)
    dates = {'start_date': start.isoformat(), 'end_date': end.isoformat()}
    series_key = f"{period}:{end.isoformat()}"

    def load(section, default_error, **kwargs):
        return _load(client, user_id, veterinary_id, section, default_error, **kwargs)

    return {
        'period': period,
        'start_date': start,
        'end_date': end,
        'kpis': _transform(load('kpi-summary', 'Error al obtener resumen de KPIs'), kpi_cards),
        'recent_patients': _transform(load('recent-patients', 'Error al obtener pacientes recientes'),
                                      recent_patient_rows),
        'top_products': _transform(load('top-selling-products', 'Error al obtener productos más vendidos'),
                                   top_product_rows),
        'frequent_consultations': _transform(
            load('frequent-consultations', 'Error al obtener consultas frecuentes'), frequent_consultation_rows),
        'critical_inventory': _transform(load('critical-inventory', 'Error al obtener inventario crítico'),
                                         critical_inventory),
        'sales': _transform(load('sales-analytics', 'Error al cargar analytics de ventas', period=series_key, **dates),
                            sales_series),
        'consultations': _transform(
            load('consultations-analytics', 'Error al cargar analytics de consultas', period=series_key, **dates),
            consultation_series),
    }
