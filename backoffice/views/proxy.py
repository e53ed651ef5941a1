"""
Same-origin JSON proxy in front of the clinic REST backend.

The browser never sees the backend token: it calls these endpoints with
its session cookie and they forward the call with the bearer token kept
in the session.  Backend failures surface as ``{"error": ...}`` through
the project exception handler.
"""
from __future__ import annotations

from django.http import QueryDict
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import MethodNotAllowed, NotFound, PermissionDenied
from rest_framework.response import Response

from backoffice.permissions import IsAdminRole, IsBackendAuthenticated
from backoffice.resources import get_resource
from backoffice.serializers.proxy import (
    AnalyticsQuerySerializer,
    ListQuerySerializer,
    MovementsQuerySerializer,
    VeterinaryQuerySerializer,
)
from backoffice.services.api_client import BackendClient, uploads
from backoffice.services.audit import log_action


def _resource(request, key: str):
    resource = get_resource(key)
    if resource is None:
        raise NotFound('Recurso no encontrado')
    if resource.admin_only and not IsAdminRole().has_permission(request, None):
        raise PermissionDenied('No tienes permiso para gestionar este recurso')
    return resource


def _client(request) -> BackendClient:
    return BackendClient(token=request.auth)


def _fields(data) -> dict:
    if not isinstance(data, QueryDict):
        return dict(data)
    fields = {}
    for key, values in data.lists():
        if key.endswith('[]'):
            fields[key[:-2]] = values
        else:
            fields[key] = values[-1]
    return fields


def _body(request):
    """Split the incoming body into plain fields and uploaded files."""
    files = uploads(request.FILES)
    fields = _fields(request.data)
    for name in list(files) + ['_method']:
        fields.pop(name, None)
    return fields, files or None


# ---------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------
@api_view(['GET', 'POST'])
@permission_classes([IsBackendAuthenticated])
def resource_collection(request, resource):
    res = _resource(request, resource)
    client = _client(request)

    if request.method == 'POST':
        fields, files = _body(request)
        payload = client.create(res.path, fields, files=files, default_error=res.message('create'))
        log_action(user=request.user, action='create', object_type=res.key)
        return Response(payload, status=status.HTTP_201_CREATED)

    s = ListQuerySerializer(data=request.query_params)
    s.is_valid(raise_exception=True)
    return Response(client.list(res.path, default_error=res.message('list'), **s.to_query(res.list_params)))


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsBackendAuthenticated])
def resource_item(request, resource, pk):
    res = _resource(request, resource)
    if not res.has_detail:
        raise MethodNotAllowed(request.method)
    client = _client(request)

    if request.method == 'PUT':
        fields, files = _body(request)
        payload = client.update(res.path, pk, fields, files=files, default_error=res.message('update'))
        log_action(user=request.user, action='update', object_type=res.key, object_id=pk)
        return Response(payload)

    if request.method == 'DELETE':
        client.delete(res.path, pk, default_error=res.message('delete'))
        log_action(user=request.user, action='delete', object_type=res.key, object_id=pk)
        return Response({'success': True})

    return Response(client.get(res.path, pk, default_error=res.message('detail')))


# ---------------------------------------------------------------------
# Analytics (read only, precomputed by the backend)
# ---------------------------------------------------------------------
def _analytics_view(path: str, serializer_class, default_error: str):
    def view(request):
        s = serializer_class(data=request.query_params)
        s.is_valid(raise_exception=True)
        return Response(_client(request).fetch(path, default_error=default_error, **s.validated_data))

    view.__name__ = path.replace('-', '_')
    view.__doc__ = f'GET /{path} on the backend.'
    return api_view(['GET'])(permission_classes([IsBackendAuthenticated])(view))


kpi_summary = _analytics_view('kpi-summary', VeterinaryQuerySerializer, 'Error al obtener resumen de KPIs')
recent_patients = _analytics_view('recent-patients', VeterinaryQuerySerializer,
                                  'Error al obtener pacientes recientes')
top_selling_products = _analytics_view('top-selling-products', VeterinaryQuerySerializer,
                                       'Error al obtener productos más vendidos')
frequent_consultations = _analytics_view('frequent-consultations', VeterinaryQuerySerializer,
                                         'Error al obtener consultas frecuentes')
critical_inventory = _analytics_view('critical-inventory', VeterinaryQuerySerializer,
                                     'Error al obtener inventario crítico')
sales_analytics = _analytics_view('sales-analytics', AnalyticsQuerySerializer,
                                  'Error al obtener analytics de ventas')
consultations_analytics = _analytics_view('consultations-analytics', AnalyticsQuerySerializer,
                                          'Error al obtener analytics de consultas')
movements_analytics = _analytics_view('movements-analytics', MovementsQuerySerializer,
                                      'Error al obtener análisis de movimientos')

ANALYTICS_VIEWS = {
    'kpi-summary': kpi_summary,
    'recent-patients': recent_patients,
    'top-selling-products': top_selling_products,
    'frequent-consultations': frequent_consultations,
    'critical-inventory': critical_inventory,
    'sales-analytics': sales_analytics,
    'consultations-analytics': consultations_analytics,
    'movements-analytics': movements_analytics,
}
