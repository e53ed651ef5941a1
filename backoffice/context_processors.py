from backoffice.resources import navigation
from backoffice.services.session import available_veterinaries, selected_veterinary


def backend_session(request):
    user = getattr(request, 'backend_user', None)
    if user is None:
        return {'backend_user': None, 'veterinaries': [], 'selected_veterinary': None, 'nav_resources': []}
    return {
        'backend_user': user,
        'veterinaries': available_veterinaries(request, user),
        'selected_veterinary': selected_veterinary(request),
        'nav_resources': navigation(user),
    }
