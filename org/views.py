import logging

from django.contrib.auth import authenticate, get_user_model, login, logout
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from .decorators import api_login_required
from .utils import error_response, json_body, user_payload

logger = logging.getLogger(__name__)


@csrf_exempt
@require_http_methods(["POST"])
def api_login(request):
    """
    Session login with email + password. Exempt from CSRF since there is no session
    yet; login() rotates the CSRF cookie that later writes must echo back.
    """
    try:
        data = json_body(request)
    except ValueError as e:
        return error_response(str(e))
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    if not email or len(password) < 6:
        return error_response("Valid email and password (min 6 characters) are required")

    User = get_user_model()
    account = User.objects.filter(email__iexact=email).first()
    user = None
    if account is not None:
        user = authenticate(request, username=account.get_username(), password=password)
    if user is None:
        logger.info("Failed login for %s", email)
        return error_response("Invalid credentials", status=401)

    login(request, user)
    return JsonResponse({"user": user_payload(user)})


@require_http_methods(["POST"])
@api_login_required
def api_logout(request):
    logout(request)
    return JsonResponse({"message": "Logged out"})


@require_http_methods(["GET"])
@api_login_required
def api_profile(request):
    return JsonResponse(user_payload(request.user))
