import logging

from django.core.cache import cache
from django.http import JsonResponse

from backoffice.services.api_client import BackendClient

logger = logging.getLogger(__name__)


def healthz(request):
    try:
        cache.set('healthz', 1, 5)
        cache_ok = cache.get('healthz') == 1
    except Exception as e:
        logger.error('cache unavailable: %s', e)
        return JsonResponse({'ok': False, 'error': str(e)}, status=500)
    if not cache_ok:
        return JsonResponse({'ok': False, 'error': 'cache unavailable'}, status=500)
    return JsonResponse({'ok': True, 'backend': BackendClient().ping()})
