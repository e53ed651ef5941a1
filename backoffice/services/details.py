"""
Client and pet detail pages.

A detail page is the record itself plus related lists fetched without
pagination.  A failing related list carries its error message and the
rest of the page still renders; a failing record raises.
"""
from __future__ import annotations

import logging
from typing import Optional

from backoffice.resources import GENDER_CHOICES
from backoffice.services.api_client import BackendClient, BackendError, unwrap
from backoffice.services.dashboard import Section
from backoffice.services.pagination import items_from_payload
from backoffice.utils.formatting import format_short_date
from backoffice.utils.pet_dates import format_age_from_birthday

logger = logging.getLogger(__name__)


def full_name(person) -> str:
    if not isinstance(person, dict):
        return ''
    return f"{person.get('name') or ''} {person.get('last_name') or ''}".strip()


def _nested(item: dict, key: str) -> dict:
    value = item.get(key)
    return value if isinstance(value, dict) else {}


def _record(client: BackendClient, path: str, pk, default_error: str) -> dict:
    item = unwrap(client.get(path, pk, default_error=default_error))
    if not isinstance(item, dict):
        raise BackendError(default_error, 404)
    return item


def _related(client: BackendClient, path: str, default_error: str, builder, **query) -> Section:
    try:
        payload = client.list(path, default_error=default_error, paginate='false', **query)
    except BackendError as exc:
        logger.warning('related %s for %s failed: %s', path, query, exc.message)
        return Section(data=[], error=exc.message)
    return Section(data=builder([item for item in items_from_payload(payload) if isinstance(item, dict)]))


def _when(item: dict) -> str:
    return format_short_date(item.get('date')) or format_short_date(item.get('created_at')) or '-'


def pet_rows(items: list[dict]) -> list[dict]:
    return [{
        'id': item.get('id'),
        'name': item.get('name') or '-',
        'race': _nested(item, 'race').get('name') or '-',
        'gender': dict(GENDER_CHOICES).get(item.get('gender'), item.get('gender') or '-'),
    } for item in items]


def consultation_rows(items: list[dict]) -> list[dict]:
    return [{'id': item.get('id'), 'when': _when(item), 'description': item.get('description') or '-'}
            for item in items]


def vaccine_rows(items: list[dict]) -> list[dict]:
    return [{'id': item.get('id'), 'when': _when(item), 'name': item.get('name') or '-'} for item in items]


def client_detail(client: BackendClient, pk) -> dict:
    item = _record(client, 'clients', pk, 'Cliente no encontrado')
    veterinaries = [v.get('name') for v in item.get('veterinaries') or [] if isinstance(v, dict)]
    if not veterinaries and _nested(item, 'veterinary').get('name'):
        veterinaries = [item['veterinary']['name']]
    return {
        'client': item,
        'full_name': full_name(item),
        'phone': item.get('phone') or 'No especificado',
        'address': item.get('address') or 'No especificada',
        'veterinaries': veterinaries,
        'pets': _related(client, 'pets', 'Error al cargar mascotas', pet_rows, client_id=pk),
    }


def pet_detail(client: BackendClient, pk) -> dict:
    item = _record(client, 'pets', pk, 'Error al cargar mascota')
    race = _nested(item, 'race')
    owner: Optional[dict] = _nested(item, 'client') or None
    return {
        'pet': item,
        'species': _nested(race, 'type_pet').get('name') or '-',
        'race': race.get('name') or '-',
        'color': item.get('color') or '-',
        'gender': dict(GENDER_CHOICES).get(item.get('gender'), item.get('gender') or '-'),
        'age': format_age_from_birthday(item.get('birthday')) or '-',
        'owner': full_name(owner) if owner else f"Cliente ID: {item.get('client_id')}",
        'consultations': _related(client, 'consultations', 'Error al cargar consultas',
                                  consultation_rows, pet_id=pk),
        'vaccines': _related(client, 'vaccines', 'Error al cargar vacunas', vaccine_rows, pet_id=pk),
    }
