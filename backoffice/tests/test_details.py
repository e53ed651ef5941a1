from datetime import date

import pytest
from django.contrib.messages import get_messages

from backoffice.services.movements import month_bounds, movement_rows
from backoffice.utils.pet_dates import calculate_birthday

from conftest import CENTRAL

pytestmark = pytest.mark.django_db

CLIENT = {'id': 7, 'name': 'Ana', 'last_name': 'Pérez', 'ci': '123456', 'phone': None, 'address': '',
          'veterinaries': [CENTRAL, {'id': 4, 'name': 'Norte'}]}
PET = {'id': 1, 'name': 'Luna', 'color': 'Negro', 'gender': 'female', 'birthday': calculate_birthday(3, 'years'),
       'client_id': 7, 'client': {'id': 7, 'name': 'Ana', 'last_name': 'Pérez'},
       'race': {'id': 5, 'name': 'Labrador', 'type_pet': {'id': 1, 'name': 'Perro'}}}


def test_client_detail_shows_profile_and_pets(client, backend, login):
    login(client)
    backend.add('GET', 'clients/7', {'data': CLIENT})
    backend.add('GET', 'pets', {'data': [{'id': 1, 'name': 'Luna', 'gender': 'female', 'race': {'name': 'Labrador'}}]})

    resp = client.get('/clients/7/')

    body = resp.content.decode()
    assert resp.status_code == 200
    assert 'Ana Pérez' in body
    assert 'No especificado' in body and 'No especificada' in body
    assert 'Central' in body and 'Norte' in body
    assert 'Labrador' in body and 'Hembra' in body
    assert '/pets/1/' in body
    assert backend.last('pets')['params'] == {'paginate': 'false', 'client_id': 7}


def test_client_detail_keeps_rendering_when_pets_fail(client, backend, login):
    login(client)
    backend.add('GET', 'clients/7', {'data': CLIENT})
    backend.add('GET', 'pets', {'message': 'Servicio caído'}, status=500)

    resp = client.get('/clients/7/')

    assert resp.status_code == 200
    assert 'Servicio caído' in resp.content.decode()
    assert resp.context['pets'].data == []


def test_missing_client_is_404(client, backend, login):
    login(client)
    backend.add('GET', 'clients/99', {'message': 'No encontrado'}, status=404)
    assert client.get('/clients/99/').status_code == 404


def test_client_detail_backend_failure_goes_back_to_list(client, backend, login):
    login(client)
    backend.add('GET', 'clients/7', {'message': 'Servicio caído'}, status=500)

    resp = client.get('/clients/7/')

    assert resp.status_code == 302
    assert resp['Location'] == '/clients/'
    assert 'Servicio caído' in [str(m) for m in get_messages(resp.wsgi_request)]


def test_pet_detail_shows_consultations(client, backend, login):
    login(client)
    backend.add('GET', 'pets/1', {'data': PET})
    backend.add('GET', 'consultations', {'data': [
        {'id': 1, 'date': '2024-05-15', 'description': 'Control anual'},
        {'id': 2, 'created_at': '2024-04-02 10:00:00', 'description': ''},
    ]})
    backend.add('GET', 'vaccines', {'data': [{'id': 3, 'name': 'Rabia'}]})

    resp = client.get('/pets/1/')

    body = resp.content.decode()
    assert resp.status_code == 200
    assert 'Perro' in body and 'Labrador' in body and '3 años' in body
    assert 'Ana Pérez' in body
    assert 'Consultas (2)' in body and 'Vacunas (1)' in body
    assert '15/05/2024' in body and 'Control anual' in body
    assert '02/04/2024' in body
    assert backend.last('consultations')['params'] == {'paginate': 'false', 'pet_id': 1}
    assert backend.last('vaccines')['params'] == {'paginate': 'false', 'pet_id': 1}


def test_pet_detail_vaccines_tab(client, backend, login):
    login(client)
    backend.add('GET', 'pets/1', {'data': PET})
    backend.add('GET', 'consultations', {'message': 'Sin acceso'}, status=403)

    resp = client.get('/pets/1/?tab=vaccines')

    body = resp.content.decode()
    assert resp.context['tab'] == 'vaccines'
    assert 'Esta mascota no tiene vacunas registradas.' in body
    assert resp.context['consultations'].error == 'Sin acceso'


def test_missing_pet_is_404(client, backend, login):
    login(client)
    backend.add('GET', 'pets/99', {}, status=404)
    assert client.get('/pets/99/').status_code == 404


def test_lists_link_to_detail_pages(client, backend, login):
    login(client)
    backend.add('GET', 'clients', {'data': [CLIENT]})
    backend.add('GET', 'plans', {'data': [{'id': 2, 'name': 'Oro'}]})

    assert 'href="/clients/7/"' in client.get('/clients/').content.decode()
    assert 'Ver</a>' not in client.get('/plans/').content.decode()


def test_month_bounds():
    assert month_bounds(date(2024, 2, 10)) == (date(2024, 2, 1), date(2024, 2, 29))
    assert month_bounds(date(2023, 12, 31)) == (date(2023, 12, 1), date(2023, 12, 31))


def test_movement_rows():
    rows = movement_rows({'daily_totals': [
        {'movement_date': '2024-05-15', 'total_entry': '15000', 'total_output': 250.5,
         'daily_balance': 14749.5, 'accumulated_balance': -300},
    ], 'total_accumulated': 100})

    assert rows == [{
        'date': '15 de mayo de 2024',
        'entries': '$15.000,00',
        'outputs': '$250,50',
        'daily_balance': {'text': '$14.749,50', 'negative': False},
        'accumulated_balance': {'text': '-$300,00', 'negative': True},
    }]
    assert movement_rows(None) == []


def test_movements_screen_defaults_to_current_month(client, backend, login):
    login(client, selected=CENTRAL)
    backend.add('GET', 'movements-analytics', {'daily_totals': [], 'total_accumulated': '1250.5'})

    resp = client.get('/movements-analytics/')

    body = resp.content.decode()
    first_day, last_day = month_bounds()
    assert resp.status_code == 200
    assert backend.last('movements-analytics')['params'] == {
        'start': first_day.isoformat(), 'end': last_day.isoformat(), 'veterinary_id': 3,
    }
    assert '$1250,50' in body
    assert 'No hay datos disponibles para el período seleccionado.' in body


def test_movements_screen_uses_chosen_dates(client, backend, login):
    login(client, selected=CENTRAL)
    client.get('/movements-analytics/', {'start': '2024-01-01', 'end': '2024-01-31'})
    params = backend.last('movements-analytics')['params']
    assert (params['start'], params['end']) == ('2024-01-01', '2024-01-31')


def test_movements_screen_rejects_inverted_range(client, backend, login):
    login(client, selected=CENTRAL)

    resp = client.get('/movements-analytics/', {'start': '2024-02-01', 'end': '2024-01-01'})

    assert resp.status_code == 400
    assert 'end' in resp.context['form'].errors
    assert backend.requests_to('movements-analytics') == []


def test_movements_screen_shows_backend_error(client, backend, login):
    login(client, selected=CENTRAL)
    backend.add('GET', 'movements-analytics', {}, status=500)

    resp = client.get('/movements-analytics/')

    assert 'Error al cargar datos' in resp.content.decode()


def test_movements_screen_needs_a_veterinary(client, backend, login):
    login(client)
    resp = client.get('/movements-analytics/')
    assert 'Selecciona una veterinaria' in resp.content.decode()
    assert backend.requests_to('movements-analytics') == []
