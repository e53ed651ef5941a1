from backoffice.services.session import current_user, ensure_selected_veterinary


class BackendSessionMiddleware:
    """Attach the session user (``request.backend_user``) to every request.

    Veterinary-role users without a selected veterinary get the first one
    of their list selected here, so every page has a clinic to work on.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        user = current_user(request)
        request.backend_user = user
        if user is not None:
            ensure_selected_veterinary(request, user)
        return self.get_response(request)
