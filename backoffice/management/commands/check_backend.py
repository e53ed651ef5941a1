from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from backoffice.services.api_client import BackendClient, BackendError
from backoffice.services.pagination import items_from_payload


class Command(BaseCommand):
    help = "Check that the clinic REST backend is reachable (and optionally that a login works)."

    def add_arguments(self, parser):
        parser.add_argument('--email', help='Backend account to log in with')
        parser.add_argument('--password', help='Password for --email')
        parser.add_argument('--timeout', type=float, default=5.0)

    def handle(self, *args, **options):
        client = BackendClient(timeout=options['timeout'])
        email, password = options.get('email'), options.get('password')

        if not email:
            if not client.ping(timeout=options['timeout']):
                raise CommandError(f"Backend unreachable at {settings.VET_API_URL}")
            self.stdout.write(self.style.SUCCESS(f"Backend reachable at {settings.VET_API_URL}"))
            return

        if not password:
            raise CommandError("--password is required with --email")
        try:
            payload = client.login(email, password)
            if not isinstance(payload, dict):
                payload = {}
            client.token = payload.get('token') or payload.get('access_token')
            if not client.token:
                raise CommandError("Login answered without a token")
            profile = client.me()
            if not isinstance(profile, dict):
                profile = {}
        except BackendError as e:
            raise CommandError(f"Backend check failed ({e.status_code}): {e.message}")

        roles = ', '.join(profile.get('roles') or []) or '-'
        veterinaries = len(items_from_payload(profile.get('veterinaries') or []))
        self.stdout.write(self.style.SUCCESS(
            f"Logged in as {email} at {settings.VET_API_URL} (roles: {roles}; veterinaries: {veterinaries})"
        ))
        client.logout()
