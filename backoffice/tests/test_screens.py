import pytest
from django.contrib.messages import get_messages
from django.core.files.uploadedfile import SimpleUploadedFile

from backoffice.utils.pet_dates import calculate_birthday

from conftest import CENTRAL

pytestmark = pytest.mark.django_db

PET_OPTIONS = {
    'type-pets': {'data': [{'id': 1, 'name': 'Perro'}, {'id': 2, 'name': 'Gato'}]},
    'races': {'data': [{'id': 5, 'name': 'Labrador', 'type_pet_id': 1}, {'id': 6, 'name': 'Siamés', 'type_pet_id': 2}]},
    'clients': {'data': [{'id': 9, 'name': 'Ana', 'last_name': 'Pérez'}]},
}


def _messages(resp):
    return [str(m) for m in get_messages(resp.wsgi_request)]


def _pet_options(backend):
    for path, payload in PET_OPTIONS.items():
        backend.add('GET', path, payload)


def test_list_renders_columns_and_rows(client, backend, login):
    login(client)
    backend.add('GET', 'races', {'data': [{'id': 5, 'name': 'Labrador', 'type_pet': {'id': 1, 'name': 'Perro'}}],
                                 'meta': {'total': 1, 'last_page': 1, 'current_page': 1}})

    resp = client.get('/races/')

    body = resp.content.decode()
    assert resp.status_code == 200
    assert 'Tipo de Mascota' in body
    assert 'Labrador' in body and 'Perro' in body
    assert '/races/5/edit' in body
    assert backend.last('races')['params'] == {'page': 1, 'per_page': 10}


def test_list_pagination_links(client, backend, login):
    login(client)
    backend.add('GET', 'plans', {'data': [{'id': 1, 'name': 'Oro', 'type': 'premium'}],
                                 'total': 25, 'last_page': 3, 'current_page': 2})

    resp = client.get('/plans/?page=2')

    body = resp.content.decode()
    assert backend.last('plans')['params']['page'] == 2
    assert '?page=1' in body and '?page=3' in body
    assert 'Premium' in body


def test_clients_are_filtered_by_selected_veterinary(client, backend, login):
    login(client, roles=('admin',), selected=CENTRAL)
    client.get('/clients/')
    assert backend.last('clients')['params']['veterinary_id'] == 3


def test_pets_are_filtered_only_for_veterinary_role(client, backend, login):
    login(client, roles=('admin',), selected=CENTRAL)
    client.get('/pets/')
    assert 'veterinary_id' not in backend.last('pets')['params']

    login(client, roles=('veterinary',), selected=CENTRAL)
    client.get('/pets/')
    assert backend.last('pets')['params']['veterinary_id'] == 3


def test_pet_ages_are_shown_from_birthday(client, backend, login):
    login(client)
    birthday = calculate_birthday(3, 'years')
    backend.add('GET', 'pets', {'data': [
        {'id': 1, 'name': 'Luna', 'birthday': birthday, 'gender': 'female',
         'race': {'name': 'Labrador'}, 'client': {'name': 'Ana', 'last_name': 'Pérez'}},
        {'id': 2, 'name': 'Toby', 'birthday': None, 'gender': 'male', 'race_id': 6, 'client_id': 9},
    ]})

    body = client.get('/pets/').content.decode()

    assert '3 años' in body
    assert 'Hembra' in body and 'Macho' in body
    assert 'Ana Pérez' in body
    assert 'Raza ID: 6' in body and 'Cliente ID: 9' in body


def test_list_backend_failure_is_shown_on_page(client, backend, login):
    login(client)
    backend.add('GET', 'clients', {'message': 'Servicio en mantenimiento'}, status=503)

    resp = client.get('/clients/')

    assert resp.status_code == 200
    assert 'Servicio en mantenimiento' in resp.content.decode()


def test_create_plan(client, backend, login):
    login(client)
    backend.add('POST', 'plans', {'data': {'id': 3}}, status=201)

    resp = client.post('/plans/new', {'name': 'Oro <b>plus</b>', 'description': '', 'type': 'premium'})

    assert resp.status_code == 302
    assert resp['Location'] == '/plans/'
    assert backend.last('plans', 'POST')['json'] == {'name': 'Oro plus', 'description': '', 'type': 'premium'}
    assert 'Plan creado correctamente' in _messages(resp)


def test_create_client_keeps_ampersands_and_drops_markup(client, backend, login):
    login(client, roles=('veterinary',), selected=CENTRAL)
    backend.add('POST', 'clients', {'data': {'id': 1}}, status=201)

    resp = client.post('/clients/new', {'name': '<script>alert(1)</script>Ana', 'last_name': 'Pérez',
                                        'address': 'Calle 5 & 6 <i>esquina</i>'})

    assert resp.status_code == 302
    body = backend.last('clients', 'POST')['json']
    assert body['address'] == 'Calle 5 & 6 esquina'
    assert body['name'] == 'alert(1)Ana'


def test_create_attaches_backend_field_errors(client, backend, login):
    login(client)
    backend.add('POST', 'type-pets', {'message': 'Datos inválidos',
                                      'errors': {'name': ['El nombre ya existe'], 'code': ['Código inválido']}},
                status=422)

    resp = client.post('/type-pets/new', {'name': 'Perro'})

    body = resp.content.decode()
    assert resp.status_code == 400
    assert 'El nombre ya existe' in body
    assert 'Código inválido' in body
    assert resp.context['form'].errors['name'] == ['El nombre ya existe']


def test_create_backend_error_without_fields_becomes_form_error(client, backend, login):
    login(client)
    backend.add('POST', 'type-pets', {}, status=500)
    resp = client.post('/type-pets/new', {'name': 'Perro'})
    assert resp.context['form'].non_field_errors() == ['Error al crear tipo de mascota']


def test_create_pet_sends_age_and_birthday(client, backend, login):
    login(client)
    _pet_options(backend)

    resp = client.post('/pets/new', {'name': 'Luna', 'type_pet_id': '1', 'race_id': '5', 'client_id': '9',
                                     'color': 'Negro', 'gender': 'female', 'age': '2', 'age_unit': 'years'})

    assert resp.status_code == 302
    assert backend.last('pets', 'POST')['json'] == {
        'name': 'Luna', 'race_id': 5, 'client_id': 9, 'color': 'Negro', 'gender': 'female',
        'age': 2, 'birthday': calculate_birthday(2, 'years'),
    }
    assert 'Mascota creada correctamente' in _messages(resp)


def test_pet_race_must_match_type(client, backend, login):
    login(client)
    _pet_options(backend)

    resp = client.post('/pets/new', {'name': 'Luna', 'type_pet_id': '1', 'race_id': '6', 'client_id': '9',
                                     'gender': 'female', 'age': '2', 'age_unit': 'years'})

    assert resp.status_code == 400
    assert 'race_id' in resp.context['form'].errors
    assert backend.requests_to('pets', 'POST') == []


def test_pet_age_must_be_positive(client, backend, login):
    login(client)
    _pet_options(backend)
    resp = client.post('/pets/new', {'name': 'Luna', 'race_id': '5', 'client_id': '9',
                                     'gender': 'female', 'age': '0', 'age_unit': 'years'})
    assert resp.context['form'].errors['age'] == ['La edad debe ser un número positivo']


@pytest.mark.parametrize('age, unit', [('3000', 'years'), ('1e308', 'years'), ('1201', 'months')])
def test_pet_age_has_an_upper_limit(client, backend, login, age, unit):
    login(client)
    _pet_options(backend)

    resp = client.post('/pets/new', {'name': 'Luna', 'race_id': '5', 'client_id': '9',
                                     'gender': 'female', 'age': age, 'age_unit': unit})

    assert resp.status_code == 400
    assert resp.context['form'].errors['age'] == ['La edad no puede superar 100 años']
    assert backend.requests_to('pets', 'POST') == []


def _pet_post(**extra):
    data = {'name': 'Luna', 'race_id': '5', 'client_id': '9', 'color': 'Negro',
            'gender': 'female', 'age': '2', 'age_unit': 'years'}
    data.update(extra)
    return data


def test_create_pet_with_image_goes_multipart(client, backend, login):
    login(client)
    _pet_options(backend)
    image = SimpleUploadedFile('luna.png', b'\x89PNG\r\n\x1a\nfake', content_type='image/png')

    resp = client.post('/pets/new', _pet_post(image=image))

    assert resp.status_code == 302
    call = backend.last('pets', 'POST')
    assert call['json'] is None
    assert ('name', 'Luna') in call['data']
    assert ('age', 2) in call['data']
    assert ('birthday', calculate_birthday(2, 'years')) in call['data']
    name, upload, content_type = call['files']['image']
    assert (name, content_type) == ('luna.png', 'image/png')


def test_update_pet_with_image_spoofs_patch_in_form_fields(client, backend, login):
    login(client)
    _pet_options(backend)
    backend.add('GET', 'pets/1', {'data': {'id': 1, 'name': 'Luna'}})
    image = SimpleUploadedFile('luna.jpg', b'jpeg-bytes', content_type='image/jpeg')

    resp = client.post('/pets/1/edit', _pet_post(image=image))

    assert resp.status_code == 302
    call = backend.last('pets/1', 'POST')
    assert ('_method', 'PATCH') in call['data']
    assert call['files']['image'][0] == 'luna.jpg'


def test_pet_image_must_be_an_image(client, backend, login):
    login(client)
    _pet_options(backend)
    notes = SimpleUploadedFile('notas.txt', b'hola', content_type='text/plain')

    resp = client.post('/pets/new', _pet_post(image=notes))

    assert resp.status_code == 400
    assert resp.context['form'].errors['image'] == ['El archivo debe ser una imagen']
    assert backend.requests_to('pets', 'POST') == []


def test_pet_image_size_is_limited(client, backend, login, settings):
    settings.UPLOAD_MAX_MB = 1
    login(client)
    _pet_options(backend)
    big = SimpleUploadedFile('luna.png', b'0' * (1024 * 1024 + 1), content_type='image/png')

    resp = client.post('/pets/new', _pet_post(image=big))

    assert resp.status_code == 400
    assert resp.context['form'].errors['image'] == ['La imagen no debe superar 1 MB']
    assert backend.requests_to('pets', 'POST') == []


def test_pet_edit_prefills_age_from_birthday(client, backend, login):
    login(client)
    _pet_options(backend)
    backend.add('GET', 'pets/1', {'data': {'id': 1, 'name': 'Luna', 'race_id': 5, 'client_id': 9,
                                           'race': {'id': 5, 'type_pet_id': 1},
                                           'gender': 'female', 'birthday': calculate_birthday(3, 'years')}})

    resp = client.get('/pets/1/edit')

    form = resp.context['form']
    assert form.initial['age'] == 3
    assert form.initial['age_unit'] == 'years'
    assert form.initial['type_pet_id'] == 1


def test_pet_update_spoofs_patch(client, backend, login):
    login(client)
    _pet_options(backend)
    backend.add('GET', 'pets/1', {'data': {'id': 1, 'name': 'Luna'}})

    resp = client.post('/pets/1/edit', {'name': 'Luna', 'race_id': '5', 'client_id': '9',
                                        'gender': 'female', 'age': '1.5', 'age_unit': 'years'})

    assert resp.status_code == 302
    body = backend.last('pets/1', 'POST')['json']
    assert body['_method'] == 'PATCH'
    assert body['age'] == 1.5
    assert body['birthday'] == calculate_birthday(18, 'months')
    assert 'Mascota actualizada correctamente' in _messages(resp)


def test_client_form_uses_selected_veterinary_for_non_admins(client, backend, login):
    login(client, roles=('veterinary',), selected=CENTRAL)
    backend.add('POST', 'clients', {'data': {'id': 1}}, status=201)

    resp = client.post('/clients/new', {'name': 'Ana', 'last_name': 'Pérez'})

    assert resp.status_code == 302
    assert backend.last('clients', 'POST')['json']['veterinary_id'] == [3]
    assert backend.requests_to('veterinaries') == []


def test_client_form_lets_admins_pick_veterinaries(client, backend, login):
    login(client, roles=('admin',))
    backend.add('GET', 'veterinaries', {'data': [CENTRAL, {'id': 4, 'name': 'Norte'}]})

    resp = client.post('/clients/new', {'name': 'Ana', 'last_name': 'Pérez', 'veterinary_id': ['3', '4']})

    assert resp.status_code == 302
    assert backend.last('clients', 'POST')['json']['veterinary_id'] == [3, 4]


def test_user_password_rules(client, backend, login):
    login(client)
    resp = client.post('/users/new', {'name': 'Bo', 'email': 'bo@vet.test', 'password': ''})
    assert resp.context['form'].errors['password'] == ['La contraseña es requerida']

    resp = client.post('/users/new', {'name': 'Bo', 'email': 'bo@vet.test', 'password': 'short'})
    assert 'password' in resp.context['form'].errors
    assert backend.requests_to('users', 'POST') == []


def test_user_update_omits_empty_password(client, backend, login):
    login(client)
    backend.add('GET', 'users/2', {'data': {'id': 2, 'name': 'Bo', 'email': 'bo@vet.test'}})

    resp = client.post('/users/2/edit', {'name': 'Bo', 'email': 'bo@vet.test', 'password': ''})

    assert resp.status_code == 302
    assert backend.last('users/2', 'POST')['json'] == {'name': 'Bo', 'email': 'bo@vet.test', '_method': 'PATCH'}


def test_users_screens_are_admin_only(client, backend, login):
    login(client, roles=('veterinary',), selected=CENTRAL)
    assert client.get('/users/').status_code == 403


def test_unknown_screen_is_404(client, backend, login):
    login(client)
    assert client.get('/spaceships/').status_code == 404
    assert client.get('/veterinaries/').status_code == 404


def test_delete_confirmation_and_delete(client, backend, login):
    login(client)
    backend.add('GET', 'races/5', {'data': {'id': 5, 'name': 'Labrador'}})
    backend.add('DELETE', 'races/5', status=204)

    resp = client.get('/races/5/delete')
    assert resp.status_code == 200
    assert 'Labrador' in resp.content.decode()

    resp = client.post('/races/5/delete')
    assert resp.status_code == 302
    assert backend.last('races/5', 'DELETE')
    assert 'Raza eliminada correctamente' in _messages(resp)


def test_delete_failure_is_flashed(client, backend, login):
    login(client)
    backend.add('DELETE', 'races/5', {'message': 'La raza tiene mascotas asociadas'}, status=409)

    resp = client.post('/races/5/delete')

    assert resp.status_code == 302
    assert 'La raza tiene mascotas asociadas' in _messages(resp)
