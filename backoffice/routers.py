"""
URL mappings for the back-office.

JSON proxy paths mirror the backend ones and carry no trailing slash.
The catch-all resource screens go last so they never shadow a fixed path.
"""
from django.urls import path, include

from .views import health
from .views.auth import signin_page, signout, login_view, logout_view
from .views.dashboard import home
from .views.details import client_detail, movements, pet_detail
from .views.proxy import ANALYTICS_VIEWS, resource_collection, resource_item
from .views.screens import (
    resource_list,
    resource_create,
    resource_edit,
    resource_delete,
    select_veterinary_view,
)


urlpatterns = [
    # Authentication
    path('auth/signin', signin_page, name='signin'),
    path('auth/signout', signout, name='signout'),
    path('api/auth/login', login_view, name='login_view'),
    path('api/auth/logout', logout_view, name='logout_view'),
    # Analytics proxy
    *[path(f'api/{name}', view, name=name) for name, view in ANALYTICS_VIEWS.items()],
    # Resource proxy
    path('api/<slug:resource>', resource_collection, name='api_resource_collection'),
    path('api/<slug:resource>/<int:pk>', resource_item, name='api_resource_item'),
    # Operations
    path('healthz', health.healthz, name='healthz'),
    path('', include('django_prometheus.urls')),
    # Screens
    path('', home, name='dashboard'),
    path('veterinary/select', select_veterinary_view, name='select_veterinary'),
    path('movements-analytics/', movements, name='movements'),
    path('clients/<int:pk>/', client_detail, name='client_detail'),
    path('pets/<int:pk>/', pet_detail, name='pet_detail'),
    path('<slug:resource>/', resource_list, name='resource_list'),
    path('<slug:resource>/new', resource_create, name='resource_create'),
    path('<slug:resource>/<int:pk>/edit', resource_edit, name='resource_edit'),
    path('<slug:resource>/<int:pk>/delete', resource_delete, name='resource_delete'),
]
