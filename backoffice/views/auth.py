"""
Sign-in / sign-out, both as HTML pages and as JSON endpoints.

Credentials are checked by the backend (``POST /login``); on success the
bearer token and the user's profile are kept in the server session.
"""
from __future__ import annotations

from django.contrib import messages
from django.shortcuts import redirect, render
from django.utils.http import url_has_allowed_host_and_scheme
from django.views.decorators.http import require_http_methods, require_POST
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from backoffice.permissions import IsBackendAuthenticated
from backoffice.serializers.auth import LoginSerializer
from backoffice.services.session import SignInError, current_user, sign_in, sign_out


def _safe_next(request, default: str = '/') -> str:
    target = request.POST.get('next') or request.GET.get('next') or ''
    if target and url_has_allowed_host_and_scheme(target, allowed_hosts={request.get_host()},
                                                  require_https=request.is_secure()):
        return target
    return default


def _user_payload(user) -> dict:
    return {
        'id': user.id,
        'name': user.name,
        'email': user.email,
        'last_name': user.last_name,
        'phone': user.phone,
        'roles': user.roles,
        'permissions': user.permissions,
        'veterinaries': user.veterinaries,
    }


@require_http_methods(['GET', 'POST'])
def signin_page(request):
    if request.method == 'GET' and current_user(request):
        return redirect(_safe_next(request))

    context = {'next': _safe_next(request, ''), 'email': '', 'error': None, 'field_errors': {}}
    if request.method == 'POST':
        email = request.POST.get('email', '')
        context['email'] = email
        try:
            sign_in(request, email, request.POST.get('password', ''))
        except SignInError as exc:
            context['error'] = exc.message
            context['field_errors'] = exc.field_errors
            return render(request, 'backoffice/signin.html', context, status=400)
        return redirect(_safe_next(request))
    return render(request, 'backoffice/signin.html', context)


@require_POST
def signout(request):
    sign_out(request)
    messages.info(request, 'Sesión cerrada')
    return redirect('signin')


# ---------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------
@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def login_view(request):
    """
    Log in against the backend with ``email`` and ``password``.
    The session cookie is the only credential handed back.
    """
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    try:
        user = sign_in(request._request, s.validated_data.get('email'), s.validated_data.get('password'))
    except SignInError as exc:
        payload = {'error': exc.message}
        if exc.field_errors:
            payload['errors'] = exc.field_errors
        return Response(payload, status=400)
    return Response({'user': _user_payload(user)})

# ScopedRateThrottle reads throttle_scope from the wrapped view class
login_view.cls.throttle_scope = 'login'


@api_view(['POST'])
@permission_classes([IsBackendAuthenticated])
def logout_view(request):
    sign_out(request._request)
    return Response({'success': True})
