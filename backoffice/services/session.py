"""
Server-side session for the back-office.

The backend bearer token never reaches the browser: after a successful
login it is stored in the Django session together with the user's roles,
permissions and veterinaries.  The veterinary currently being worked on
("selected veterinary") lives in the session as well.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Iterable, Optional

from django.conf import settings
from django.core.cache import cache

from backoffice.services.api_client import (
    BackendClient,
    BackendError,
    BackendUnavailable,
    LOGIN_ERROR_MESSAGE,
)
from backoffice.services.audit import log_action
from backoffice.services.pagination import items_from_payload

logger = logging.getLogger(__name__)

AUTH_SESSION_KEY = 'backend_auth'
SELECTED_VETERINARY_KEY = 'selected_veterinary'

ROLE_ADMIN = 'admin'
ROLE_VETERINARY = 'veterinary'


class SignInError(Exception):
    def __init__(self, message: str, field_errors: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.field_errors = field_errors or {}


def _veterinary(data: dict) -> Optional[dict]:
    if not isinstance(data, dict) or data.get('id') in (None, ''):
        return None
    try:
        vid = int(data['id'])
    except (TypeError, ValueError):
        return None
    return {'id': vid, 'slug': data.get('slug') or '', 'name': data.get('name') or ''}


def _veterinaries(items: Iterable) -> list[dict]:
    return [v for v in (_veterinary(item) for item in items or []) if v]


@dataclass
class SessionUser:
    id: int
    token: str
    name: str = ''
    email: str = ''
    last_name: str = ''
    phone: str = ''
    roles: list = field(default_factory=list)
    permissions: list = field(default_factory=list)
    veterinaries: list = field(default_factory=list)

    @property
    def pk(self):
        return self.id

    @property
    def is_authenticated(self) -> bool:
        return True

    @property
    def is_anonymous(self) -> bool:
        return False

    @property
    def full_name(self) -> str:
        return ' '.join(p for p in (self.name, self.last_name) if p) or self.email

    def has_role(self, role: str) -> bool:
        return role in self.roles

    def has_roles(self, roles: Iterable[str]) -> bool:
        return any(role in self.roles for role in roles)

    def has_permission(self, permission: str) -> bool:
        return permission in self.permissions

    def has_permissions(self, permissions: Iterable[str]) -> bool:
        return all(p in self.permissions for p in permissions)

    @property
    def is_admin(self) -> bool:
        return self.has_role(ROLE_ADMIN)

    @property
    def is_veterinary(self) -> bool:
        return self.has_role(ROLE_VETERINARY)

    def to_session(self) -> dict:
        return asdict(self)

    @classmethod
    def from_session(cls, data: dict) -> 'SessionUser':
        return cls(
            id=data.get('id'),
            token=data.get('token'),
            name=data.get('name') or '',
            email=data.get('email') or '',
            last_name=data.get('last_name') or '',
            phone=data.get('phone') or '',
            roles=list(data.get('roles') or []),
            permissions=list(data.get('permissions') or []),
            veterinaries=list(data.get('veterinaries') or []),
        )


def current_user(request) -> Optional[SessionUser]:
    data = request.session.get(AUTH_SESSION_KEY)
    if not data or not data.get('token'):
        return None
    return SessionUser.from_session(data)


def backend_client(request) -> BackendClient:
    user = getattr(request, 'backend_user', None) or current_user(request)
    return BackendClient(token=user.token if user else None)


def sign_in(request, email: str, password: str, *, client: Optional[BackendClient] = None) -> SessionUser:
    email = (email or '').strip()
    if not email or not password:
        raise SignInError('Email y contraseña son requeridos')

    client = client or BackendClient()
    try:
        payload = client.login(email, password)
    except BackendUnavailable as exc:
        raise SignInError(exc.message) from exc
    except BackendError as exc:
        message = exc.message
        if exc.status_code in (401, 422) and message == LOGIN_ERROR_MESSAGE:
            message = 'Credenciales inválidas.'
        log_action(user=None, action='login', object_type='user',
                   detail={'result': 'fail', 'email': email, 'status': exc.status_code})
        raise SignInError(message, exc.errors) from exc

    payload = payload if isinstance(payload, dict) else {}
    token = payload.get('token') or payload.get('access_token')
    user = payload.get('user') or payload
    if not token or not isinstance(user, dict) or not user.get('id'):
        logger.warning('login for %s returned no token or user id', email)
        raise SignInError('Respuesta inválida del servidor')

    data = {
        'id': user['id'],
        'token': token,
        'name': user.get('name') or user.get('email') or 'Usuario',
        'email': user.get('email') or email,
        'last_name': user.get('last_name') or '',
        'phone': user.get('phone') or '',
        'roles': [],
        'permissions': [],
        'veterinaries': [],
    }

    client.token = token
    try:
        profile = client.me() or {}
    except BackendError as exc:
        logger.warning('could not load profile for %s: %s', email, exc.message)
        profile = {}
    if isinstance(profile, dict):
        me = profile.get('user') if isinstance(profile.get('user'), dict) else {}
        for key in ('name', 'email', 'last_name', 'phone'):
            if me.get(key):
                data[key] = me[key]
        data['roles'] = list(profile.get('roles') or [])
        data['permissions'] = list(profile.get('permissions') or [])
        data['veterinaries'] = _veterinaries(profile.get('veterinaries'))

    request.session.cycle_key()
    request.session[AUTH_SESSION_KEY] = data
    request.session.pop(SELECTED_VETERINARY_KEY, None)
    session_user = SessionUser.from_session(data)
    log_action(user=session_user, action='login', object_type='user', object_id=session_user.id,
               detail={'result': 'ok', 'roles': session_user.roles})
    return session_user


def sign_out(request) -> None:
    user = current_user(request)
    if user:
        BackendClient(token=user.token).logout()
        log_action(user=user, action='logout', object_type='user', object_id=user.id)
    request.session.flush()


# ---------------------------------------------------------------------
# Selected veterinary
# ---------------------------------------------------------------------
def selected_veterinary(request) -> Optional[dict]:
    return _veterinary(request.session.get(SELECTED_VETERINARY_KEY))


def available_veterinaries(request, user: Optional[SessionUser] = None) -> list[dict]:
    """Veterinaries the user may switch between.

    Taken from the login profile; when it listed none the backend catalogue
    is fetched once and remembered in the session.  A failed fetch is not
    retried for ``VETERINARIES_RETRY_SECONDS``.
    """
    user = user or current_user(request)
    if not user:
        return []
    if user.veterinaries:
        return user.veterinaries
    data = request.session.get(AUTH_SESSION_KEY) or {}
    if data.get('veterinaries_loaded'):
        return list(data.get('veterinaries') or [])
    unavailable_key = f'veterinaries-unavailable:u={user.id}'
    if cache.get(unavailable_key):
        return []
    try:
        payload = BackendClient(token=user.token).list(
            'veterinaries', per_page=100, default_error='Error al cargar veterinarias')
        veterinaries = _veterinaries(items_from_payload(payload))
    except BackendError as exc:
        logger.warning('could not load veterinaries for user %s: %s', user.id, exc.message)
        cache.set(unavailable_key, True, settings.VETERINARIES_RETRY_SECONDS)
        return []
    data['veterinaries'] = veterinaries
    data['veterinaries_loaded'] = True
    request.session[AUTH_SESSION_KEY] = data
    user.veterinaries = veterinaries
    return veterinaries


def select_veterinary(request, veterinary_id) -> dict:
    user = current_user(request)
    try:
        wanted = int(veterinary_id)
    except (TypeError, ValueError):
        raise ValueError('veterinaria inválida')
    for veterinary in available_veterinaries(request, user):
        if veterinary['id'] == wanted:
            request.session[SELECTED_VETERINARY_KEY] = veterinary
            log_action(user=user, action='select_veterinary', object_type='veterinary', object_id=wanted)
            return veterinary
    raise ValueError('veterinaria inválida')


def ensure_selected_veterinary(request, user: SessionUser) -> Optional[dict]:
    """Veterinary-role users always work inside one clinic: pick the first."""
    selected = selected_veterinary(request)
    if selected or not user.is_veterinary:
        return selected
    veterinaries = available_veterinaries(request, user)
    if not veterinaries:
        return None
    request.session[SELECTED_VETERINARY_KEY] = veterinaries[0]
    logger.info('auto-selected veterinary %s for user %s', veterinaries[0]['id'], user.id)
    return veterinaries[0]
