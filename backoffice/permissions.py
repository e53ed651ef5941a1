"""
Permission classes and view decorators for session users.
"""
from functools import wraps
from urllib.parse import urlencode

from django.conf import settings
from django.shortcuts import redirect
from rest_framework.permissions import BasePermission

from backoffice.services.session import current_user


class IsBackendAuthenticated(BasePermission):
    """Allow access only to requests carrying a backend session."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = getattr(request, "user", None)
        return bool(user and user.is_authenticated)


class IsAdminRole(BasePermission):
    """Allow access only to users with the admin role."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = getattr(request, "user", None)
        return bool(user and user.is_authenticated and getattr(user, "is_admin", False))


def login_required_backend(view_func):
    """Redirect anonymous HTML requests to the sign-in page."""
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        user = getattr(request, "backend_user", None) or current_user(request)
        if user is None:
            query = urlencode({"next": request.get_full_path()})
            return redirect(f"{settings.LOGIN_URL}?{query}")
        request.backend_user = user
        return view_func(request, *args, **kwargs)
    return wrapper
