import logging

from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from backoffice.services.api_client import BackendError

logger = logging.getLogger(__name__)

NOT_AUTHENTICATED_MESSAGE = 'No autenticado'
INVALID_DATA_MESSAGE = 'Datos inválidos'
SERVER_ERROR_MESSAGE = 'Error interno del servidor'


def api_exception_handler(exc, context):
    if isinstance(exc, BackendError):
        return Response(exc.as_payload(), status=exc.status_code)

    if isinstance(exc, (exceptions.NotAuthenticated, exceptions.AuthenticationFailed)):
        return Response({'error': NOT_AUTHENTICATED_MESSAGE}, status=status.HTTP_401_UNAUTHORIZED)

    resp = drf_exception_handler(exc, context)
    if resp is None:
        logger.exception('unhandled error in %s', type(context.get('view')).__name__, exc_info=exc)
        return Response({'error': SERVER_ERROR_MESSAGE}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    # normalize response
    if isinstance(exc, exceptions.ValidationError):
        return Response({'error': INVALID_DATA_MESSAGE, 'errors': resp.data}, status=resp.status_code,
                        headers=_headers(resp))
    detail = resp.data.get('detail') if isinstance(resp.data, dict) else resp.data
    return Response({'error': str(detail)}, status=resp.status_code, headers=_headers(resp))


def _headers(resp):
    return {k: v for k, v in resp.items() if k in ('Retry-After', 'Allow')}
