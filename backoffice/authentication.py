"""
DRF authentication backed by the server-side session.

The JSON proxy endpoints are called by the pages rendered by this very
project, so they authenticate with the session cookie.  The user object
is the :class:`~backoffice.services.session.SessionUser` rebuilt from the
session; the backend bearer token travels as ``request.auth``.
"""
from __future__ import annotations

from rest_framework import authentication

from backoffice.services.session import current_user


class BackendSessionAuthentication(authentication.SessionAuthentication):
    """Session authentication without Django's auth tables.

    CSRF is enforced exactly as DRF does for session authentication.
    ``authenticate_header`` is defined so unauthenticated calls get a 401
    instead of DRF's 403.
    """

    def authenticate(self, request):
        user = getattr(request._request, 'backend_user', None) or current_user(request._request)
        if user is None:
            return None
        self.enforce_csrf(request)
        return (user, user.token)

    def authenticate_header(self, request):
        return 'Session'
