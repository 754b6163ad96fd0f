import logging

from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from inventory.forms import clean_line_items
from ledger.exceptions import ConflictError, InsufficientStockError
from org.decorators import api_login_required, role_required
from org.models import Role
from org.utils import error_response, form_errors, get_or_404, json_body, snake_case_keys

from .forms import BillItemForm, PurchaseBillForm
from .models import PurchaseBill
from .serializers import purchase_bill_payload
from .services import create_purchase_bill, delete_purchase_bill

logger = logging.getLogger(__name__)


def _bills_queryset():
    return PurchaseBill.objects.select_related(
        "company", "created_by", "delivered_to_godown", "delivered_to_site",
    ).prefetch_related("items__material")


@require_http_methods(["GET", "POST"])
@api_login_required
def purchase_bills(request):
    if request.method == "POST":
        return _purchase_bill_create(request)
    bills = _bills_queryset().order_by("-created_at", "-id")
    return JsonResponse([purchase_bill_payload(b) for b in bills], safe=False)


def _purchase_bill_create(request):
    try:
        data = snake_case_keys(json_body(request))
    except ValueError as e:
        return error_response(str(e))
    form = PurchaseBillForm(data)
    rows, item_errors = clean_line_items(data.get("items"), form_class=BillItemForm)
    if not form.is_valid() or item_errors:
        errors = form_errors(form)
        errors.update(item_errors)
        message = "Validation failed"
        for field in ("company_id", "delivered_to_id"):
            if errors.get(field):
                message = errors[field][0]
                break
        return error_response(message, errors=errors)

    cd = form.cleaned_data
    try:
        bill = create_purchase_bill(
            company=cd["company_id"],
            invoice_number=cd["invoice_number"],
            gstin_number=cd.get("gstin_number"),
            bill_date=cd["bill_date"],
            destination=cd["destination"],
            rows=rows,
            created_by=request.user,
        )
    except InsufficientStockError as e:
        return error_response(e.messages[0], code="insufficient_stock")
    except ConflictError as e:
        return error_response(str(e), status=409)
    return JsonResponse(purchase_bill_payload(_bills_queryset().get(pk=bill.pk)), status=201)


@require_http_methods(["GET", "DELETE"])
@api_login_required
def purchase_bill_detail(request, pk: int):
    bill = get_or_404(PurchaseBill, pk=pk)
    if request.method == "DELETE":
        return _purchase_bill_delete(request, bill)
    return JsonResponse(purchase_bill_payload(_bills_queryset().get(pk=bill.pk)))


@role_required(Role.ADMIN)
def _purchase_bill_delete(request, bill):
    try:
        delete_purchase_bill(bill)
    except ConflictError as e:
        return error_response(str(e), status=409)
    return JsonResponse({"message": "Purchase bill deleted successfully"})
