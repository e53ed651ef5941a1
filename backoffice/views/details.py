"""
Read-only screens: client and pet detail pages and the movements report.
"""
from __future__ import annotations

from django.contrib import messages
from django.http import Http404
from django.shortcuts import redirect, render
from django.views.decorators.http import require_GET

from backoffice.forms import MovementsFilterForm
from backoffice.permissions import login_required_backend
from backoffice.services.api_client import BackendError
from backoffice.services.details import client_detail as load_client_detail
from backoffice.services.details import pet_detail as load_pet_detail
from backoffice.services.movements import month_bounds, movements_report
from backoffice.services.session import backend_client, selected_veterinary

PET_TABS = ('consultations', 'vaccines')


def _unavailable(request, exc: BackendError, resource: str):
    if exc.status_code == 404:
        raise Http404(exc.message)
    messages.error(request, exc.message)
    return redirect('resource_list', resource=resource)


@login_required_backend
@require_GET
def client_detail(request, pk):
    try:
        context = load_client_detail(backend_client(request), pk)
    except BackendError as exc:
        return _unavailable(request, exc, 'clients')
    context['pk'] = pk
    return render(request, 'backoffice/client_detail.html', context)


@login_required_backend
@require_GET
def pet_detail(request, pk):
    try:
        context = load_pet_detail(backend_client(request), pk)
    except BackendError as exc:
        return _unavailable(request, exc, 'pets')
    context['pk'] = pk
    tab = request.GET.get('tab')
    context['tab'] = tab if tab in PET_TABS else PET_TABS[0]
    return render(request, 'backoffice/pet_detail.html', context)


@login_required_backend
@require_GET
def movements(request):
    veterinary = selected_veterinary(request)
    first_day, last_day = month_bounds()
    form = MovementsFilterForm({
        'start': request.GET.get('start') or first_day.isoformat(),
        'end': request.GET.get('end') or last_day.isoformat(),
    })
    report = None
    if veterinary and form.is_valid():
        report = movements_report(backend_client(request), veterinary['id'],
                                  form.cleaned_data['start'], form.cleaned_data['end'])
    return render(request, 'backoffice/movements.html', {
        'veterinary': veterinary,
        'form': form,
        'report': report,
    }, status=200 if form.is_valid() else 400)
