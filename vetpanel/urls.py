"""
URL configuration for the veterinary back-office project.

The `urlpatterns` list routes URLs to views.  OpenAPI documentation for
the JSON proxy is exposed at ``/swagger/`` and ``/redoc/``; everything
else (screens, proxy, health) comes from the backoffice app.
"""
from django.urls import path, include

from rest_framework import permissions
from drf_yasg.views import get_schema_view
from drf_yasg import openapi

# API metadata for Swagger/OpenAPI documentation
api_info = openapi.Info(
    title="Veterinary Back-office API",
    default_version='v1',
    description="Session-authenticated proxy in front of the clinic REST backend.",
)

schema_view = get_schema_view(
    api_info,
    public=True,
    permission_classes=(permissions.AllowAny,),
)

urlpatterns = [
    # Swagger and ReDoc go first: the screen routes catch any ``<slug>/``
    path('swagger/', schema_view.with_ui('swagger', cache_timeout=0), name='schema-swagger-ui'),
    path('redoc/', schema_view.with_ui('redoc', cache_timeout=0), name='schema-redoc'),
    path('', include('backoffice.routers')),
]
