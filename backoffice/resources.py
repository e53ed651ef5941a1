"""
Registry of the backend collections managed from the back-office.

Each :class:`Resource` knows its backend path, the Spanish labels used in
titles and flash messages, the table columns and a few behaviour flags.
Screens and the JSON proxy are driven entirely by this registry.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional

from backoffice.utils.formatting import format_short_date
from backoffice.utils.pet_dates import format_age_from_birthday

LIST_PARAMS = ('sort_by', 'filter', 'veterinary_id', 'paginate', 'type_pet_id')

GENDER_CHOICES = (('male', 'Macho'), ('female', 'Hembra'))
PLAN_TYPE_CHOICES = (
    ('basic', 'Básico'),
    ('premium', 'Premium'),
    ('enterprise', 'Enterprise'),
    ('custom', 'Personalizado'),
)

# only the veterinary role sees its own clinic data filtered
SCOPE_ALWAYS = 'always'
SCOPE_VETERINARY_ROLE = 'veterinary'


@dataclass(frozen=True)
class Column:
    field: str
    header: str
    display: Optional[Callable[[dict], object]] = None

    def value(self, item: dict):
        if self.display is not None:
            value = self.display(item)
        else:
            value = item.get(self.field)
        return '-' if value in (None, '') else value


@dataclass(frozen=True)
class Resource:
    key: str
    path: str
    label: str
    label_plural: str
    columns: tuple = ()
    feminine: bool = False
    scope: Optional[str] = None
    multipart: bool = False
    has_detail: bool = True
    has_screens: bool = True
    admin_only: bool = False
    detail_url: Optional[str] = None
    list_params: tuple = field(default=LIST_PARAMS)

    def _agree(self, word: str) -> str:
        return word[:-1] + 'a' if self.feminine else word

    def message(self, action: str) -> str:
        label = self.label.lower()
        if action == 'list':
            return f'Error al obtener {self.label_plural.lower()}'
        if action == 'detail':
            return f"{self.label} {self._agree('no encontrado')}"
        if action in ('create', 'update', 'delete'):
            verb = {'create': 'crear', 'update': 'actualizar', 'delete': 'eliminar'}[action]
            return f'Error al {verb} {label}'
        if action in ('created', 'updated', 'deleted'):
            participle = {'created': 'creado', 'updated': 'actualizado', 'deleted': 'eliminado'}[action]
            return f'{self.label} {self._agree(participle)} correctamente'
        raise KeyError(action)

    def veterinary_filter(self, user, selected: Optional[dict]) -> Optional[int]:
        if not selected or self.scope is None:
            return None
        if self.scope == SCOPE_VETERINARY_ROLE and not user.is_veterinary:
            return None
        return selected['id']

    def visible_to(self, user) -> bool:
        return not self.admin_only or bool(user and user.is_admin)


def _choice_label(choices, value):
    return dict(choices).get(value, value)


def _client_veterinaries(item: dict) -> str:
    veterinaries = item.get('veterinaries') or []
    if veterinaries:
        return ', '.join(v.get('name', '') for v in veterinaries)
    if isinstance(item.get('veterinary'), dict):
        return item['veterinary'].get('name')
    return ''


def _pet_client(item: dict) -> str:
    client = item.get('client')
    if isinstance(client, dict):
        return f"{client.get('name', '')} {client.get('last_name') or ''}".strip()
    return f"Cliente ID: {item.get('client_id')}"


def _nested_name(key: str, fallback: str):
    def display(item: dict):
        nested = item.get(key)
        if isinstance(nested, dict) and nested.get('name'):
            return nested['name']
        return f'{fallback}: {item.get(key + "_id")}'
    return display


RESOURCES = {
    'clients': Resource(
        key='clients', path='clients', label='Cliente', label_plural='Clientes',
        scope=SCOPE_ALWAYS,
        detail_url='client_detail',
        columns=(
            Column('id', 'ID'),
            Column('name', 'Nombre'),
            Column('last_name', 'Apellido'),
            Column('ci', 'CI'),
            Column('phone', 'Teléfono'),
            Column('address', 'Dirección'),
            Column('veterinaries', 'Veterinaria', _client_veterinaries),
        ),
    ),
    'pets': Resource(
        key='pets', path='pets', label='Mascota', label_plural='Mascotas', feminine=True,
        scope=SCOPE_VETERINARY_ROLE, multipart=True,
        detail_url='pet_detail',
        columns=(
            Column('id', 'ID'),
            Column('name', 'Nombre'),
            Column('race', 'Raza', _nested_name('race', 'Raza ID')),
            Column('client', 'Cliente', _pet_client),
            Column('color', 'Color'),
            Column('gender', 'Género', lambda item: _choice_label(GENDER_CHOICES, item.get('gender'))),
            Column('birthday', 'Edad', lambda item: format_age_from_birthday(item.get('birthday'))),
        ),
    ),
    'plans': Resource(
        key='plans', path='plans', label='Plan', label_plural='Planes',
        columns=(
            Column('id', 'ID'),
            Column('name', 'Nombre'),
            Column('description', 'Descripción'),
            Column('type', 'Tipo', lambda item: _choice_label(PLAN_TYPE_CHOICES, item.get('type'))),
        ),
    ),
    'races': Resource(
        key='races', path='races', label='Raza', label_plural='Razas', feminine=True,
        columns=(
            Column('id', 'ID'),
            Column('name', 'Nombre'),
            Column('type_pet', 'Tipo de Mascota', _nested_name('type_pet', 'Tipo ID')),
        ),
    ),
    'type-pets': Resource(
        key='type-pets', path='type-pets', label='Tipo de mascota', label_plural='Tipos de mascota',
        columns=(
            Column('id', 'ID'),
            Column('name', 'Nombre'),
        ),
    ),
    'users': Resource(
        key='users', path='users', label='Usuario', label_plural='Usuarios', admin_only=True,
        columns=(
            Column('id', 'ID'),
            Column('name', 'Nombre'),
            Column('email', 'Email'),
            Column('email_verified_at', 'Email Verificado',
                   lambda item: format_short_date(item.get('email_verified_at')) or 'No verificado'),
            Column('created_at', 'Fecha de Creación', lambda item: format_short_date(item.get('created_at'))),
        ),
    ),
    'veterinaries': Resource(
        key='veterinaries', path='veterinaries', label='Veterinaria', label_plural='Veterinarias',
        feminine=True, has_detail=False, has_screens=False,
        columns=(
            Column('id', 'ID'),
            Column('name', 'Nombre'),
        ),
    ),
}


def get_resource(key: str) -> Optional[Resource]:
    return RESOURCES.get(key)


def navigation(user) -> list[Resource]:
    return [r for r in RESOURCES.values() if r.has_screens and r.visible_to(user)]
