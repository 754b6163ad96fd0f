from functools import wraps

from .utils import error_response, get_role


def api_login_required(view_func):
    """Like login_required, but answers 401 JSON instead of redirecting to a login page."""
    @wraps(view_func)
    def _wrapped(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return error_response("Authentication required", status=401)
        return view_func(request, *args, **kwargs)
    return _wrapped


def role_required(*roles):
    """Reject authenticated users whose role is not one of `roles` with 403."""
    def decorator(view_func):
        @wraps(view_func)
        def _wrapped(request, *args, **kwargs):
            if not request.user.is_authenticated:
                return error_response("Authentication required", status=401)
            if get_role(request.user) not in roles:
                return error_response("Insufficient permissions", status=403)
            return view_func(request, *args, **kwargs)
        return _wrapped
    return decorator
