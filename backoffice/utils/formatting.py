"""
Display helpers for the dashboard and the report screens.

Numbers follow the Spanish (es-ES) conventions the clinic staff is used
to: ``.`` as thousands separator (only from five integer digits on, as
es-ES does), ``,`` as decimal separator and the ``bs/`` currency prefix.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Union

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

Number = Union[int, float, Decimal, str]

SHORT_WEEKDAYS = ('lun', 'mar', 'mié', 'jue', 'vie', 'sáb', 'dom')
SHORT_MONTHS = ('ene', 'feb', 'mar', 'abr', 'may', 'jun', 'jul', 'ago', 'sept', 'oct', 'nov', 'dic')
MONTHS = ('enero', 'febrero', 'marzo', 'abril', 'mayo', 'junio', 'julio', 'agosto',
          'septiembre', 'octubre', 'noviembre', 'diciembre')
CANINE_MARKERS = ('perro', 'canino', 'dog')


def to_decimal(value: Optional[Number]) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite():
        return None
    return number


def to_number(value: Optional[Number]) -> float:
    """Lenient float conversion; anything unparsable counts as 0."""
    number = to_decimal(value)
    return float(number) if number is not None else 0.0


def _group_thousands(digits: str) -> str:
    if len(digits) < 5:
        return digits
    head = len(digits) % 3 or 3
    groups = [digits[:head]] + [digits[i:i + 3] for i in range(head, len(digits), 3)]
    return '.'.join(groups)


def _rounded(value: Optional[Number], places: int) -> Optional[Decimal]:
    number = to_decimal(value)
    if number is None:
        return None
    try:
        return number.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # more digits than the decimal context holds
        return None


def format_number(value: Optional[Number], max_decimals: int = 3) -> str:
    number = _rounded(value, max_decimals)
    if number is None:
        return '0'
    sign = '-' if number < 0 else ''
    integer, _, fraction = format(abs(number), 'f').partition('.')
    fraction = fraction.rstrip('0')
    text = _group_thousands(integer)
    if fraction:
        text = f'{text},{fraction}'
    return sign + text


def format_currency(amount: Optional[Number]) -> str:
    number = _rounded(amount, 2)
    return 'bs/' + format_number(number if number is not None else 0)


def format_amount(amount: Optional[Number]) -> str:
    """Money with exactly two decimals, e.g. ``$12.345,50``."""
    number = _rounded(amount, 2)
    if number is None:
        number = Decimal('0.00')
    sign = '-' if number < 0 else ''
    integer, _, fraction = format(abs(number), 'f').partition('.')
    return f'{sign}${_group_thousands(integer)},{fraction}'


def calculate_change(today: Optional[Number], yesterday: Optional[Number]) -> str:
    """Percentage change against the previous day, e.g. ``+12.5%``."""
    current = to_number(today)
    previous = to_number(yesterday)
    if previous == 0:
        return '+100%' if current > 0 else '0%'
    change = (current - previous) / previous * 100
    sign = '+' if change >= 0 else ''
    return f'{sign}{change:.1f}%'


def average_ticket(amount: Optional[Number], count: Optional[Number]) -> float:
    sales = to_number(count)
    if sales <= 0:
        return 0.0
    return to_number(amount) / sales


def percentage_of(count: Optional[Number], total: Optional[Number]) -> int:
    whole = to_number(total)
    if whole == 0:
        return 0
    share = Decimal(str(to_number(count) / whole * 100))
    return int(share.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def parse_moment(value) -> Optional[datetime]:
    """Parse backend timestamps (``2025-01-05 10:00:00``, ISO, plain dates)."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, date):
        moment = datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        try:
            moment = parse_datetime(text)
            if moment is None:
                day = parse_date(text)
                moment = datetime(day.year, day.month, day.day) if day else None
        except ValueError:
            return None
        if moment is None:
            return None
    if timezone.is_naive(moment):
        moment = timezone.make_aware(moment, timezone.get_current_timezone())
    return moment


def format_relative_date(value, now: Optional[datetime] = None) -> str:
    moment = parse_moment(value)
    if moment is None:
        return ''
    now = now or timezone.now()
    elapsed = now - moment
    minutes = int(elapsed.total_seconds() // 60)
    hours = int(elapsed.total_seconds() // 3600)
    days = elapsed // timedelta(days=1)

    if minutes < 1:
        return 'Hace menos de un minuto'
    if minutes < 60:
        return f"Hace {minutes} {'minuto' if minutes == 1 else 'minutos'}"
    if hours < 24:
        return f"Hace {hours} {'hora' if hours == 1 else 'horas'}"
    if days == 1:
        return 'Ayer'
    if days < 7:
        return f'Hace {days} días'
    local = timezone.localtime(moment)
    return f'{local.day} {SHORT_MONTHS[local.month - 1]}'


def format_short_date(value) -> Optional[str]:
    moment = parse_moment(value)
    return timezone.localtime(moment).strftime('%d/%m/%Y') if moment else None


def format_long_date(value) -> str:
    """Calendar day spelled out, e.g. ``15 de mayo de 2024``."""
    try:
        day = parse_date(str(value or '').strip()[:10])
    except ValueError:
        day = None
    if day is None:
        return str(value or '')
    return f'{day.day} de {MONTHS[day.month - 1]} de {day.year}'


def species_type(species: Optional[str]) -> str:
    lowered = (species or '').lower()
    return 'Canino' if any(marker in lowered for marker in CANINE_MARKERS) else 'Felino'


def chart_label(value) -> str:
    """Axis label for a daily data point: short weekday and day number."""
    if isinstance(value, datetime):
        day = value.date()
    elif isinstance(value, date):
        day = value
    else:
        moment = parse_moment(value)
        if moment is None:
            return str(value or '')
        # plain dates must keep their calendar day
        day = parse_date(str(value).strip()[:10]) or timezone.localtime(moment).date()
    return f'{SHORT_WEEKDAYS[day.weekday()]} {day.day}'


def initials(name: Optional[str]) -> str:
    return (name or '')[:2].upper()
