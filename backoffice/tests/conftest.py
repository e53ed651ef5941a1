import json

import pytest
import requests
from django.core.cache import cache
from rest_framework.test import APIClient

from backoffice.services.session import AUTH_SESSION_KEY, SELECTED_VETERINARY_KEY

BACKEND_URL = 'http://backend.test/api'
CENTRAL = {'id': 3, 'slug': 'central', 'name': 'Central'}
NORTE = {'id': 4, 'slug': 'norte', 'name': 'Norte'}


class FakeResponse:
    def __init__(self, status_code=200, payload=None, content=None):
        self.status_code = status_code
        if content is None:
            content = b'' if payload is None else json.dumps(payload).encode()
        self.content = content

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        return json.loads(self.content)


class FakeBackend:
    """Stands in for the REST backend at the ``requests`` level."""

    def __init__(self):
        self.routes = {}
        self.calls = []
        self.error = None

    def add(self, method, path, payload=None, status=200, content=None):
        self.routes[(method.upper(), path)] = FakeResponse(status, payload, content)

    def __call__(self, method, url, **kwargs):
        path = url[len(BACKEND_URL):].lstrip('/')
        self.calls.append({'method': method.upper(), 'path': path, **kwargs})
        if self.error is not None:
            raise self.error
        return self.routes.get((method.upper(), path)) or FakeResponse(200, {'data': []})

    def requests_to(self, path, method=None):
        return [c for c in self.calls if c['path'] == path and (method is None or c['method'] == method)]

    def last(self, path, method=None):
        calls = self.requests_to(path, method)
        assert calls, f'no backend call to {method or ""} {path}'
        return calls[-1]


@pytest.fixture(autouse=True)
def clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture(autouse=True)
def backend_settings(settings):
    settings.VET_API_URL = BACKEND_URL
    settings.VET_PAGE_SIZE = 10
    settings.DASHBOARD_CACHE_TTL = 60
    return settings


@pytest.fixture
def backend(monkeypatch):
    fake = FakeBackend()
    monkeypatch.setattr(requests.Session, 'request', lambda self, method, url, **kw: fake(method, url, **kw))
    return fake


@pytest.fixture
def api_client():
    return APIClient()


def log_in(client, roles=('admin',), veterinaries=(CENTRAL,), selected=None, **extra):
    """Write an authenticated back-office session straight into the client."""
    session = client.session
    session[AUTH_SESSION_KEY] = {
        'id': extra.get('id', 1),
        'token': extra.get('token', 'tok-123'),
        'name': extra.get('name', 'Ana'),
        'email': extra.get('email', 'ana@vet.test'),
        'last_name': extra.get('last_name', 'Pérez'),
        'phone': '',
        'roles': list(roles),
        'permissions': list(extra.get('permissions', [])),
        'veterinaries': [dict(v) for v in veterinaries],
    }
    if selected:
        session[SELECTED_VETERINARY_KEY] = dict(selected)
    session.save()
    return client


@pytest.fixture
def login():
    return log_in
