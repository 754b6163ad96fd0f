from django.conf import settings
from django.http import JsonResponse
from django.views.decorators.http import require_GET

from org.decorators import api_login_required
from org.utils import error_response, query_int

from .models import StockTransaction, TxType
from .serializers import inventory_row_payload, stock_transaction_payload
from .services.balance import DIRECT
from .services.stock_view import build_inventory


def _location_param(request, name):
    """Godown id from the query string; 'direct' selects stock held outside any godown."""
    raw = request.GET.get(name)
    if raw is not None and raw.strip().lower() == DIRECT:
        return DIRECT
    return query_int(request, name)


@require_GET
@api_login_required
def inventory(request):
    """Current stock per (material, godown) key, replayed from the ledger. Only positive balances."""
    try:
        godown_id = _location_param(request, "godownId")
        material_id = query_int(request, "materialId")
    except ValueError as e:
        return error_response(str(e))
    rows = build_inventory(godown_id=godown_id, material_id=material_id)
    return JsonResponse([inventory_row_payload(r) for r in rows], safe=False)


@require_GET
@api_login_required
def transactions(request):
    try:
        godown_id = _location_param(request, "godownId")
        material_id = query_int(request, "materialId")
        site_id = query_int(request, "siteId")
        limit = query_int(request, "limit", settings.STOCKBOOK_TRANSACTIONS_PAGE_SIZE)
        offset = query_int(request, "offset", 0)
    except ValueError as e:
        return error_response(str(e))
    if limit < 0 or offset < 0:
        return error_response("limit and offset must not be negative")
    tx_type = (request.GET.get("txType") or "").upper()
    if tx_type and tx_type not in TxType.values:
        return error_response(f"txType must be one of {', '.join(TxType.values)}")

    qs = StockTransaction.objects.select_related("material", "godown", "site")
    if material_id is not None:
        qs = qs.filter(material_id=material_id)
    if godown_id == DIRECT:
        qs = qs.filter(godown__isnull=True)
    elif godown_id is not None:
        qs = qs.filter(godown_id=godown_id)
    if site_id is not None:
        qs = qs.filter(site_id=site_id)
    if tx_type:
        qs = qs.filter(tx_type=tx_type)
    qs = qs.order_by("-created_at", "-id")[offset:offset + limit]
    return JsonResponse([stock_transaction_payload(tx) for tx in qs], safe=False)
