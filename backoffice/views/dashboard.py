"""
Per-veterinary analytics dashboard.

The numbers are precomputed by the backend; this view only gathers the
sections for the selected veterinary and shapes them for display.
"""
from __future__ import annotations

from django.shortcuts import render
from django.views.decorators.http import require_GET

from backoffice.permissions import login_required_backend
from backoffice.services.dashboard import PERIODS, build_dashboard, normalize_period
from backoffice.services.session import backend_client, selected_veterinary


@login_required_backend
@require_GET
def home(request):
    veterinary = selected_veterinary(request)
    period = normalize_period(request.GET.get('period'))
    context = {'veterinary': veterinary, 'period': period, 'periods': PERIODS, 'dashboard': None}
    if veterinary:
        context['dashboard'] = build_dashboard(
            backend_client(request), request.backend_user.id, veterinary['id'], period,
        )
    return render(request, 'backoffice/dashboard.html', context)
