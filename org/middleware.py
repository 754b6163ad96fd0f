import logging

from django.core.exceptions import PermissionDenied
from django.http import Http404, JsonResponse

logger = logging.getLogger(__name__)


class JsonErrorMiddleware:
    """
    API views answer errors in JSON: 404 for Http404, 403 for PermissionDenied and
    an opaque 500 (logged with traceback) for anything else that escapes a view.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        return self.get_response(request)

    def process_exception(self, request, exception):
        if not request.path.startswith("/api/"):
            return None
        if isinstance(exception, Http404):
            return JsonResponse({"message": str(exception) or "Not found"}, status=404)
        if isinstance(exception, PermissionDenied):
            return JsonResponse({"message": str(exception) or "Forbidden"}, status=403)
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return JsonResponse({"message": "Internal server error"}, status=500)
