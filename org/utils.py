import json
import re
from decimal import Decimal

from django.http import Http404, JsonResponse
from django.utils.text import capfirst

from .models import Membership, Role


def get_role(user):
    """
    Role flag for an authenticated user.
    Superusers count as ADMIN; users without a membership row are STOREKEEPER.
    """
    if user is None or not user.is_authenticated:
        return None
    if user.is_superuser:
        return Role.ADMIN
    membership = Membership.objects.filter(user=user).only("role").first()
    return membership.role if membership else Role.STOREKEEPER


def user_payload(user):
    return {
        "id": user.id,
        "email": user.email,
        "name": user.get_full_name() or user.get_username(),
        "role": get_role(user),
    }


def json_body(request):
    """Decode a JSON request body into a dict. Raises ValueError on anything else."""
    if not request.body:
        return {}
    try:
        data = json.loads(request.body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ValueError(f"Invalid JSON body: {e}") from e
    if not isinstance(data, dict):
        raise ValueError("JSON body must be an object")
    return data


def error_response(message, status=400, **extra):
    payload = {"message": message}
    payload.update(extra)
    return JsonResponse(payload, status=status)


def form_errors(form):
    """Flatten form.errors into {field: [messages]} for a JSON response."""
    return {field: [str(m) for m in messages] for field, messages in form.errors.items()}


def decimal_str(value):
    """Decimal -> string without trailing zeros ('60.000' -> '60', '12.50' -> '12.5')."""
    if value is None:
        return None
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    if value == value.to_integral_value():
        return str(value.quantize(Decimal(1)))
    return str(value.normalize())


def snake_case_keys(data):
    """{'materialId': 1} -> {'material_id': 1}. Top level only."""
    return {re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower(): value for key, value in data.items()}


def query_int(request, name, default=None):
    """Integer query-string parameter; ValueError when present but not an integer."""
    raw = request.GET.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValueError(f"Query parameter '{name}' must be an integer") from None


def get_or_404(model, **lookup):
    """get_object_or_404 with a '<Model> not found' message for JSON clients."""
    obj = model._default_manager.filter(**lookup).first()
    if obj is None:
        raise Http404(f"{capfirst(model._meta.verbose_name)} not found")
    return obj
