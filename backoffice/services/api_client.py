"""
HTTP client for the clinic REST backend (Laravel).

Every screen and proxy endpoint goes through :class:`BackendClient`.  It
attaches the bearer token kept in the session, decodes JSON answers and
turns failures into :class:`BackendError` subclasses carrying the status
and the message the UI should display.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable, Optional, Union

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

UNAVAILABLE_MESSAGE = 'No se pudo conectar con el servidor. Verifica que la API esté corriendo.'
INVALID_RESPONSE_MESSAGE = 'Respuesta inválida del servidor'
DEFAULT_ERROR_MESSAGE = 'Error al comunicarse con el servidor'
LOGIN_ERROR_MESSAGE = 'Error al iniciar sesión'

FormFields = Union[dict, Iterable[tuple]]


class BackendError(Exception):
    """The backend answered with a non-2xx status."""

    default_status = 500

    def __init__(self, message: str, status_code: Optional[int] = None, errors: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code or self.default_status
        self.errors = errors or {}

    def as_payload(self) -> dict:
        payload: dict[str, Any] = {'error': self.message}
        if self.errors:
            payload['errors'] = self.errors
        return payload

    def flat_message(self) -> str:
        parts: list[str] = []
        for messages in self.errors.values():
            if isinstance(messages, (list, tuple)):
                parts.extend(str(m) for m in messages)
            else:
                parts.append(str(messages))
        return ', '.join(parts) or self.message


class BackendUnavailable(BackendError):
    default_status = 503

    def __init__(self, message: str = UNAVAILABLE_MESSAGE):
        super().__init__(message, self.default_status)


class InvalidBackendResponse(BackendError):
    default_status = 500

    def __init__(self, message: str = INVALID_RESPONSE_MESSAGE, status_code: Optional[int] = None):
        super().__init__(message, status_code or self.default_status)


def _error_details(payload: Any, default_error: str) -> tuple[str, dict]:
    if not isinstance(payload, dict):
        return default_error, {}
    message = payload.get('message') or payload.get('error') or default_error
    errors = payload.get('errors')
    return str(message), errors if isinstance(errors, dict) else {}


def clean_params(params: Optional[dict]) -> dict:
    return {k: v for k, v in (params or {}).items() if v is not None and v != ''}


def form_fields(payload: FormFields) -> list[tuple[str, Any]]:
    """Flatten a payload for multipart bodies (lists become ``key[]``)."""
    if not isinstance(payload, dict):
        return list(payload)
    fields: list[tuple[str, Any]] = []
    for key, value in payload.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            fields.extend((f'{key}[]', item) for item in value)
        else:
            fields.append((key, value))
    return fields


def uploads(files: dict) -> dict:
    """Wrap Django uploaded files as ``requests`` multipart tuples."""
    return {name: (f.name, f, getattr(f, 'content_type', None)) for name, f in files.items()}


def unwrap(payload: Any) -> Any:
    """Strip the ``{"data": {...}}`` envelope Laravel resources use."""
    if isinstance(payload, dict) and isinstance(payload.get('data'), dict):
        return payload['data']
    return payload


class BackendClient:
    def __init__(self, token: Optional[str] = None, *, base_url: Optional[str] = None,
                 timeout: Optional[float] = None, verify: Optional[bool] = None,
                 session: Optional[requests.Session] = None):
        self.token = token
        self.base_url = (base_url or settings.VET_API_URL).rstrip('/')
        self.timeout = settings.VET_API_TIMEOUT if timeout is None else timeout
        self.verify = settings.VET_API_VERIFY_SSL if verify is None else verify
        self.http = session or requests.Session()

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def headers(self) -> dict:
        headers = {'Accept': 'application/json'}
        if self.token:
            headers['Authorization'] = f'Bearer {self.token}'
        return headers

    def request(self, method: str, path: str, *, params: Optional[dict] = None, json: Any = None,
                data: Optional[FormFields] = None, files: Optional[dict] = None,
                default_error: str = DEFAULT_ERROR_MESSAGE) -> Any:
        try:
            resp = self.http.request(
                method, self.url(path),
                params=clean_params(params), json=json, data=data, files=files,
                headers=self.headers(), timeout=self.timeout, verify=self.verify,
            )
        except requests.RequestException as exc:
            logger.error('backend %s %s unreachable: %s', method, path, exc)
            raise BackendUnavailable() from exc

        if not resp.content:
            if resp.ok:
                return None
            logger.warning('backend %s %s -> %s (empty body)', method, path, resp.status_code)
            raise BackendError(default_error, resp.status_code)

        try:
            payload = resp.json()
        except ValueError as exc:
            logger.warning('backend %s %s -> %s (not JSON)', method, path, resp.status_code)
            raise InvalidBackendResponse() from exc

        if not resp.ok:
            message, errors = _error_details(payload, default_error)
            logger.warning('backend %s %s -> %s: %s', method, path, resp.status_code, message)
            raise BackendError(message, resp.status_code, errors)
        return payload

    # -- authentication ----------------------------------------------------
    def login(self, email: str, password: str) -> dict:
        return self.request('POST', 'login', json={'email': email, 'password': password},
                            default_error=LOGIN_ERROR_MESSAGE)

    def me(self) -> dict:
        return self.request('GET', 'users/me', default_error='Error al obtener el usuario')

    def logout(self) -> None:
        try:
            self.request('POST', 'logout', default_error='Error al cerrar sesión')
        except BackendError as exc:
            logger.info('backend logout failed: %s', exc.message)

    # -- resources ---------------------------------------------------------
    def list(self, path: str, *, default_error: str = DEFAULT_ERROR_MESSAGE, **query) -> Any:
        return self.request('GET', path, params=query, default_error=default_error)

    def get(self, path: str, pk, *, default_error: str = DEFAULT_ERROR_MESSAGE) -> Any:
        return self.request('GET', f'{path}/{pk}', default_error=default_error)

    def create(self, path: str, payload: FormFields, *, files: Optional[dict] = None,
               default_error: str = DEFAULT_ERROR_MESSAGE) -> Any:
        if files:
            return self.request('POST', path, data=form_fields(payload), files=files,
                                default_error=default_error)
        return self.request('POST', path, json=payload, default_error=default_error)

    def update(self, path: str, pk, payload: FormFields, *, files: Optional[dict] = None,
               default_error: str = DEFAULT_ERROR_MESSAGE) -> Any:
        # Laravel only parses multipart bodies on POST, hence the method spoofing
        if files:
            fields = form_fields(payload) + [('_method', 'PATCH')]
            return self.request('POST', f'{path}/{pk}', data=fields, files=files,
                                default_error=default_error)
        body = dict(payload, _method='PATCH')
        return self.request('POST', f'{path}/{pk}', json=body, default_error=default_error)

    def delete(self, path: str, pk, *, default_error: str = DEFAULT_ERROR_MESSAGE) -> None:
        self.request('DELETE', f'{path}/{pk}', default_error=default_error)

    def fetch(self, path: str, *, default_error: str = DEFAULT_ERROR_MESSAGE, **query) -> Any:
        return self.request('GET', path, params=query, default_error=default_error)

    def ping(self, timeout: float = 2.0) -> bool:
        try:
            self.http.get(self.base_url, headers=self.headers(), timeout=timeout, verify=self.verify)
        except requests.RequestException:
            return False
        return True
