"""
Django forms behind the create/edit screens.

Forms validate what the browser sends before anything reaches the
backend and know how to turn their cleaned data into the payload the
backend expects.  Option lists (races, clients, veterinaries...) come
from the backend and are loaded by :meth:`ResourceForm.load_options`.
"""
from __future__ import annotations

import html
import logging
from typing import Optional

import bleach
from django import forms
from django.conf import settings

from backoffice.resources import GENDER_CHOICES, PLAN_TYPE_CHOICES
from backoffice.services.pagination import items_from_payload
from backoffice.utils.pet_dates import calculate_age_from_birthday, calculate_birthday

logger = logging.getLogger(__name__)

AGE_UNIT_CHOICES = (('years', 'Años'), ('months', 'Meses'))
MAX_AGE_MONTHS = 100 * 12
EMPTY_CHOICE = [('', '---------')]


class BleachedCharField(forms.CharField):
    """CharField whose value is stripped of any markup.

    Every tag is dropped; entities bleach escapes on the way out are turned
    back into plain text, so "Calle 5 & 6" reaches the backend unchanged.
    """

    def to_python(self, value):
        value = super().to_python(value)
        return html.unescape(bleach.clean(value, tags=set(), strip=True)) if value else value


def _choices(client, path: str, default_error: str, label=None, **query) -> list[tuple]:
    label = label or (lambda item: item.get('name') or f"#{item['id']}")
    payload = client.list(path, default_error=default_error, **query)
    return [(item['id'], label(item)) for item in items_from_payload(payload)
            if isinstance(item, dict) and item.get('id') is not None]


def _id_of(value) -> Optional[int]:
    if isinstance(value, dict):
        value = value.get('id')
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class ResourceForm(forms.Form):
    file_fields: tuple = ()

    def __init__(self, *args, user=None, selected_veterinary=None, instance=None, options=None, **kwargs):
        self.user = user
        self.selected_veterinary = selected_veterinary
        self.instance = instance
        if instance is not None and 'initial' not in kwargs:
            kwargs['initial'] = self.initial_from(instance)
        super().__init__(*args, **kwargs)
        self.set_options(options or {})

    @property
    def is_update(self) -> bool:
        return self.instance is not None

    @classmethod
    def load_options(cls, client, user, selected_veterinary) -> dict:
        return {}

    def set_options(self, options: dict) -> None:
        for name, choices in options.items():
            if name in self.fields:
                self.fields[name].choices = EMPTY_CHOICE + list(choices)

    def initial_from(self, item: dict) -> dict:
        return {name: item.get(name) for name in self.base_fields if name not in self.file_fields}

    def payload(self) -> dict:
        return {name: value for name, value in self.cleaned_data.items() if name not in self.file_fields}

    def files_payload(self) -> dict:
        return {name: self.cleaned_data[name] for name in self.file_fields if self.cleaned_data.get(name)}


class ClientForm(ResourceForm):
    name = BleachedCharField(label='Nombre', max_length=255)
    last_name = BleachedCharField(label='Apellido', max_length=255)
    ci = BleachedCharField(label='CI', max_length=50, required=False)
    phone = BleachedCharField(label='Teléfono', max_length=50, required=False)
    address = BleachedCharField(label='Dirección', max_length=255, required=False)
    veterinary_id = forms.TypedMultipleChoiceField(label='Veterinarias', coerce=int, required=False)

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # only admins pick veterinaries; others work inside the selected one
        if not (self.user and self.user.is_admin):
            del self.fields['veterinary_id']

    @classmethod
    def load_options(cls, client, user, selected_veterinary) -> dict:
        if not user.is_admin:
            return {}
        return {'veterinary_id': _choices(client, 'veterinaries', 'Error al cargar veterinarias',
                                          page=1, per_page=100)}

    def set_options(self, options: dict) -> None:
        if 'veterinary_id' in self.fields:
            self.fields['veterinary_id'].choices = list(options.get('veterinary_id', []))

    def initial_from(self, item: dict) -> dict:
        initial = super().initial_from(item)
        veterinaries = item.get('veterinaries') or []
        if veterinaries:
            initial['veterinary_id'] = [v for v in (_id_of(v) for v in veterinaries) if v is not None]
        elif item.get('veterinary_id') is not None:
            raw = item['veterinary_id']
            initial['veterinary_id'] = [_id_of(v) for v in raw] if isinstance(raw, list) else [_id_of(raw)]
        return initial

    def payload(self) -> dict:
        data = super().payload()
        veterinary_ids = data.get('veterinary_id') or []
        if not veterinary_ids and self.selected_veterinary:
            veterinary_ids = [self.selected_veterinary['id']]
        data['veterinary_id'] = veterinary_ids
        return data


class PetForm(ResourceForm):
    name = BleachedCharField(label='Nombre', max_length=255)
    type_pet_id = forms.TypedChoiceField(label='Tipo de mascota', coerce=int, required=False, empty_value=None)
    race_id = forms.TypedChoiceField(label='Raza', coerce=int, empty_value=None)
    client_id = forms.TypedChoiceField(label='Cliente', coerce=int, empty_value=None)
    color = BleachedCharField(label='Color', max_length=100, required=False)
    gender = forms.ChoiceField(label='Género', choices=EMPTY_CHOICE + list(GENDER_CHOICES))
    age = forms.FloatField(label='Edad')
    age_unit = forms.ChoiceField(label='Unidad', choices=AGE_UNIT_CHOICES, initial='years')
    image = forms.FileField(label='Imagen', required=False)

    file_fields = ('image',)

    def __init__(self, *args, **kwargs):
        self.race_types: dict = {}
        super().__init__(*args, **kwargs)

    @classmethod
    def load_options(cls, client, user, selected_veterinary) -> dict:
        clients_query = {'paginate': 'false'}
        if user.is_veterinary and selected_veterinary:
            clients_query['veterinary_id'] = selected_veterinary['id']
        races = items_from_payload(client.list('races', default_error='Error al cargar razas', paginate='false'))
        return {
            'type_pet_id': _choices(client, 'type-pets', 'Error al cargar tipos de mascota', paginate='false'),
            'races': [r for r in races if isinstance(r, dict) and r.get('id') is not None],
            'client_id': _choices(client, 'clients', 'Error al cargar clientes',
                                  label=lambda c: f"{c.get('name', '')} {c.get('last_name') or ''}".strip(),
                                  **clients_query),
        }

    def set_options(self, options: dict) -> None:
        races = options.get('races', [])
        self.race_types = {race['id']: _id_of(race.get('type_pet_id') or race.get('type_pet')) for race in races}
        super().set_options({
            'type_pet_id': options.get('type_pet_id', []),
            'race_id': [(race['id'], race.get('name') or f"#{race['id']}") for race in races],
            'client_id': options.get('client_id', []),
        })

    def initial_from(self, item: dict) -> dict:
        initial = super().initial_from(item)
        race = item.get('race') if isinstance(item.get('race'), dict) else {}
        initial['type_pet_id'] = _id_of(race.get('type_pet_id') or race.get('type_pet'))
        age = calculate_age_from_birthday(item.get('birthday'))
        if age:
            initial['age'] = age['value']
            initial['age_unit'] = age['unit']
        return initial

    def clean_age(self):
        age = self.cleaned_data['age']
        if age is None or age <= 0:
            raise forms.ValidationError('La edad debe ser un número positivo')
        return age

    def clean_image(self):
        image = self.cleaned_data.get('image')
        if not image:
            return image
        content_type = getattr(image, 'content_type', '') or ''
        if not any(content_type.startswith(t.strip()) for t in settings.ALLOWED_UPLOAD_TYPES if t.strip()):
            raise forms.ValidationError('El archivo debe ser una imagen')
        if image.size > settings.UPLOAD_MAX_MB * 1024 * 1024:
            raise forms.ValidationError(f'La imagen no debe superar {settings.UPLOAD_MAX_MB} MB')
        return image

    def clean(self):
        cleaned = super().clean()
        type_pet_id = cleaned.get('type_pet_id')
        race_id = cleaned.get('race_id')
        if type_pet_id and race_id and self.race_types.get(race_id) not in (None, type_pet_id):
            self.add_error('race_id', 'La raza no corresponde al tipo de mascota')
        age, unit = cleaned.get('age'), cleaned.get('age_unit')
        if age and unit:
            months = age * 12 if unit == 'years' else age
            if months > MAX_AGE_MONTHS:
                self.add_error('age', f'La edad no puede superar {MAX_AGE_MONTHS // 12} años')
        return cleaned

    def payload(self) -> dict:
        data = super().payload()
        age = data.pop('age')
        unit = data.pop('age_unit')
        data.pop('type_pet_id', None)
        data['age'] = int(age) if float(age).is_integer() else age
        data['birthday'] = calculate_birthday(age, unit)
        return data


class PlanForm(ResourceForm):
    name = BleachedCharField(label='Nombre', max_length=255)
    description = BleachedCharField(label='Descripción', required=False, widget=forms.Textarea(attrs={'rows': 3}))
    type = forms.ChoiceField(label='Tipo', choices=EMPTY_CHOICE + list(PLAN_TYPE_CHOICES))


class RaceForm(ResourceForm):
    name = BleachedCharField(label='Nombre', max_length=255)
    type_pet_id = forms.TypedChoiceField(label='Tipo de mascota', coerce=int, empty_value=None)

    @classmethod
    def load_options(cls, client, user, selected_veterinary) -> dict:
        return {'type_pet_id': _choices(client, 'type-pets', 'Error al cargar tipos de mascota', paginate='false')}

    def initial_from(self, item: dict) -> dict:
        initial = super().initial_from(item)
        initial['type_pet_id'] = _id_of(item.get('type_pet_id') or item.get('type_pet'))
        return initial


class TypePetForm(ResourceForm):
    name = BleachedCharField(label='Nombre', max_length=255)


class UserForm(ResourceForm):
    name = BleachedCharField(label='Nombre', max_length=255)
    email = forms.EmailField(label='Email')
    password = forms.CharField(label='Contraseña', required=False, min_length=8,
                               widget=forms.PasswordInput(render_value=False))

    def initial_from(self, item: dict) -> dict:
        return {'name': item.get('name'), 'email': item.get('email')}

    def clean_password(self):
        password = self.cleaned_data.get('password')
        if not password and not self.is_update:
            raise forms.ValidationError('La contraseña es requerida')
        return password

    def payload(self) -> dict:
        data = super().payload()
        if not data.get('password'):
            data.pop('password', None)
        return data


class MovementsFilterForm(forms.Form):
    start = forms.DateField(label='Fecha Inicial', widget=forms.DateInput(attrs={'type': 'date'}))
    end = forms.DateField(label='Fecha Final', widget=forms.DateInput(attrs={'type': 'date'}))

    def clean(self):
        cleaned = super().clean()
        start, end = cleaned.get('start'), cleaned.get('end')
        if start and end and end < start:
            self.add_error('end', 'La fecha final no puede ser anterior a la inicial')
        return cleaned


FORMS = {
    'clients': ClientForm,
    'pets': PetForm,
    'plans': PlanForm,
    'races': RaceForm,
    'type-pets': TypePetForm,
    'users': UserForm,
}


def apply_backend_errors(form: forms.Form, errors: dict) -> None:
    """Attach backend field errors (``{field: [messages]}``) to the form."""
    for key, messages in (errors or {}).items():
        name = str(key).split('.')[0]
        target = name if name in form.fields else None
        if not isinstance(messages, (list, tuple)):
            messages = [messages]
        for message in messages:
            form.add_error(target, str(message))
