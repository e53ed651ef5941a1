"""
ASGI config for the vetpanel project.

The back-office only serves HTTP, so this is the plain Django ASGI
application.  Backend calls are blocking (``requests``) and run in
Django's sync-to-async thread pool.
"""
import os

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "vetpanel.settings")

from django.core.asgi import get_asgi_application  # noqa: E402

application = get_asgi_application()
