"""
HTML CRUD screens for the backend resources.

One set of views serves every resource in the registry: a paginated
table, a create/edit form and a delete confirmation.  Backend failures
become page messages or form errors, never an error page.
"""
from __future__ import annotations

from django.conf import settings
from django.contrib import messages
from django.core.exceptions import PermissionDenied
from django.http import Http404
from django.shortcuts import redirect, render
from django.utils.http import url_has_allowed_host_and_scheme
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from backoffice.forms import FORMS, apply_backend_errors
from backoffice.permissions import login_required_backend
from backoffice.resources import get_resource
from backoffice.services.api_client import BackendError, unwrap, uploads
from backoffice.services.audit import log_action
from backoffice.services.pagination import Page, page_from_payload
from backoffice.services.session import backend_client, select_veterinary, selected_veterinary


def _screen_resource(request, key: str):
    resource = get_resource(key)
    if resource is None or not resource.has_screens:
        raise Http404('Recurso no encontrado')
    if not resource.visible_to(request.backend_user):
        raise PermissionDenied('No tienes permiso para gestionar este recurso')
    return resource


def _page_number(request) -> int:
    try:
        return max(1, int(request.GET.get('page', 1)))
    except (TypeError, ValueError):
        return 1


def _rows(resource, items) -> list[dict]:
    return [{'id': item.get('id'), 'cells': [column.value(item) for column in resource.columns]}
            for item in items if isinstance(item, dict)]


@login_required_backend
@require_GET
def resource_list(request, resource):
    res = _screen_resource(request, resource)
    page_number, per_page = _page_number(request), settings.VET_PAGE_SIZE
    query = {'page': page_number, 'per_page': per_page}
    veterinary_id = res.veterinary_filter(request.backend_user, selected_veterinary(request))
    if veterinary_id:
        query['veterinary_id'] = veterinary_id

    error = None
    try:
        payload = backend_client(request).list(res.path, default_error=res.message('list'), **query)
        page = page_from_payload(payload, page_number, per_page)
    except BackendError as exc:
        error = exc.message
        page = Page.empty(page_number, per_page)

    return render(request, 'backoffice/resource_list.html', {
        'resource': res,
        'page': page,
        'rows': _rows(res, page.items),
        'error': error,
    })


def _form_screen(request, res, pk=None):
    user = request.backend_user
    selected = selected_veterinary(request)
    client = backend_client(request)
    form_class = FORMS[res.key]

    instance = None
    if pk is not None:
        try:
            instance = unwrap(client.get(res.path, pk, default_error=res.message('detail')))
        except BackendError as exc:
            if exc.status_code == 404:
                raise Http404(res.message('detail'))
            messages.error(request, exc.message)
            return redirect('resource_list', resource=res.key)

    try:
        options = form_class.load_options(client, user, selected)
    except BackendError as exc:
        messages.error(request, exc.message)
        options = {}

    kwargs = {'user': user, 'selected_veterinary': selected, 'instance': instance, 'options': options}
    status = 200
    if request.method == 'POST':
        form = form_class(request.POST, request.FILES, **kwargs)
        if form.is_valid():
            files = uploads(form.files_payload()) or None
            try:
                if instance is None:
                    client.create(res.path, form.payload(), files=files, default_error=res.message('create'))
                else:
                    client.update(res.path, pk, form.payload(), files=files, default_error=res.message('update'))
            except BackendError as exc:
                apply_backend_errors(form, exc.errors)
                if not exc.errors:
                    form.add_error(None, exc.message)
            else:
                action = 'create' if instance is None else 'update'
                log_action(user=user, action=action, object_type=res.key, object_id=pk)
                messages.success(request, res.message('created' if instance is None else 'updated'))
                return redirect('resource_list', resource=res.key)
        status = 400
    else:
        form = form_class(**kwargs)

    return render(request, 'backoffice/resource_form.html', {
        'resource': res,
        'form': form,
        'instance': instance,
    }, status=status)


@login_required_backend
@require_http_methods(['GET', 'POST'])
def resource_create(request, resource):
    return _form_screen(request, _screen_resource(request, resource))


@login_required_backend
@require_http_methods(['GET', 'POST'])
def resource_edit(request, resource, pk):
    return _form_screen(request, _screen_resource(request, resource), pk)


@login_required_backend
@require_http_methods(['GET', 'POST'])
def resource_delete(request, resource, pk):
    res = _screen_resource(request, resource)
    client = backend_client(request)

    if request.method == 'POST':
        try:
            client.delete(res.path, pk, default_error=res.message('delete'))
        except BackendError as exc:
            messages.error(request, exc.message)
        else:
            log_action(user=request.backend_user, action='delete', object_type=res.key, object_id=pk)
            messages.success(request, res.message('deleted'))
        return redirect('resource_list', resource=res.key)

    try:
        item = unwrap(client.get(res.path, pk, default_error=res.message('detail')))
    except BackendError as exc:
        messages.error(request, exc.message)
        return redirect('resource_list', resource=res.key)
    return render(request, 'backoffice/resource_confirm_delete.html', {'resource': res, 'item': item, 'pk': pk})


@login_required_backend
@require_POST
def select_veterinary_view(request):
    target = request.POST.get('next') or ''
    if not url_has_allowed_host_and_scheme(target, allowed_hosts={request.get_host()}):
        target = 'dashboard'
    try:
        veterinary = select_veterinary(request, request.POST.get('veterinary_id'))
    except ValueError:
        messages.error(request, 'Veterinaria inválida')
    else:
        messages.success(request, f"Veterinaria seleccionada: {veterinary['name']}")
    return redirect(target)
