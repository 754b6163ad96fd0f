import logging

from django.db import IntegrityError, transaction
from django.db.models import ProtectedError
from django.db.models.functions import Lower
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from ledger.exceptions import ConflictError, InsufficientStockError
from org.decorators import api_login_required, role_required
from org.models import Role
from org.utils import error_response, form_errors, get_or_404, json_body, snake_case_keys

from .forms import CompanyForm, GodownForm, MaterialForm, MaterialIssueForm, SiteForm, clean_line_items
from .models import Company, Godown, Material, MaterialIssue, Site
from .serializers import (
    company_payload, godown_payload, material_issue_payload, material_payload, site_payload,
)
from .services import create_material_issue, delete_material_issue

logger = logging.getLogger(__name__)


def _request_data(request):
    """(snake_case dict, None) or (None, 400 response)."""
    try:
        return snake_case_keys(json_body(request)), None
    except ValueError as e:
        return None, error_response(str(e))


def _company_data(data):
    if "email_id" in data and "email" not in data:
        data["email"] = data.pop("email_id")
    return data


# --- Reference data: shared create / update / delete ---


def _create(request, form_class, payload, label, prepare=None):
    data, bad_request = _request_data(request)
    if bad_request:
        return bad_request
    if prepare:
        data = prepare(data)
    form = form_class(data)
    if not form.is_valid():
        return error_response(_first_error(form, label), errors=form_errors(form))
    try:
        obj = form.save()
    except IntegrityError:
        return error_response(f"{label} with this name already exists")
    logger.info("Created %s #%s", label.lower(), obj.pk)
    return JsonResponse(payload(obj), status=201)


def _update(request, instance, form_class, payload, label, prepare=None):
    data, bad_request = _request_data(request)
    if bad_request:
        return bad_request
    if prepare:
        data = prepare(data)
    form = form_class.for_update(instance, data)
    if not form.is_valid():
        return error_response(_first_error(form, label), errors=form_errors(form))
    try:
        obj = form.save()
    except IntegrityError:
        return error_response(f"{label} with this name already exists")
    return JsonResponse(payload(obj))


def _delete(instance, label, in_use_message):
    pk = instance.pk
    try:
        instance.delete()
    except ProtectedError:
        return error_response(in_use_message)
    logger.info("Deleted %s #%s", label.lower(), pk)
    return JsonResponse({"message": f"{label} deleted successfully"})


def _first_error(form, label):
    if "name" in form.errors and any("already exists" in str(m) for m in form.errors["name"]):
        return f"{label} with this name already exists"
    return "Validation failed"


def _bulk_create(request, form_class, payload, label, prepare=None, extra_check=None):
    """
    All-or-nothing bulk create from {"<plural>": [...]}: if any row is invalid or
    duplicated (in the database or inside the batch) nothing is created.
    """
    data, bad_request = _request_data(request)
    if bad_request:
        return bad_request
    plural = label.lower() + "s" if not label.endswith("y") else label.lower()[:-1] + "ies"
    rows = data.get(plural)
    if not isinstance(rows, list) or not rows:
        return error_response(f"{capital(plural)} array is required and must not be empty")

    errors = []
    valid_forms = []
    seen = set()
    for raw in rows:
        row = snake_case_keys(raw) if isinstance(raw, dict) else {}
        if prepare:
            row = prepare(row)
        name = str(row.get("name") or "").strip()
        form = form_class(row)
        if not form.is_valid():
            message = _first_error(form, label)
            if message == "Validation failed":
                message = "; ".join(f"{field}: {' '.join(msgs)}" for field, msgs in form_errors(form).items())
            errors.append({"name": name or "Unknown", "error": message})
            continue
        key = form.cleaned_data["name"].lower()
        if key in seen:
            errors.append({"name": name, "error": f"Duplicate {label.lower()} name in upload"})
            continue
        extra = extra_check(form.cleaned_data) if extra_check else None
        if extra:
            errors.append({"name": name, "error": extra})
            continue
        seen.add(key)
        valid_forms.append(form)

    if errors:
        return error_response(
            f"Validation failed: {len(errors)} error(s) found. No {plural} were created.",
            results={"created": [], "skipped": [], "errors": errors},
        )
    try:
        with transaction.atomic():
            created = [form.save() for form in valid_forms]
    except IntegrityError:
        return error_response(f"{label} with this name already exists")
    logger.info("Bulk created %d %s", len(created), plural)
    return JsonResponse({
        "message": f"Successfully created {len(created)} {plural}",
        "results": {"created": [payload(obj) for obj in created], "skipped": [], "errors": []},
    }, status=201)


def capital(text):
    return text[:1].upper() + text[1:]


# --- Materials ---


@require_http_methods(["GET", "POST"])
@api_login_required
def materials(request):
    if request.method == "POST":
        return _material_create(request)
    return JsonResponse([material_payload(m) for m in Material.objects.order_by(Lower("name"))], safe=False)


@role_required(Role.ADMIN)
def _material_create(request):
    return _create(request, MaterialForm, material_payload, "Material")


@require_http_methods(["POST"])
@role_required(Role.ADMIN)
def materials_bulk(request):
    return _bulk_create(request, MaterialForm, material_payload, "Material")


@require_http_methods(["GET", "PUT", "DELETE"])
@api_login_required
def material_detail(request, pk: int):
    material = get_or_404(Material, pk=pk)
    if request.method == "PUT":
        return _material_update(request, material)
    if request.method == "DELETE":
        return _material_delete(request, material)
    return JsonResponse(material_payload(material))


@role_required(Role.ADMIN)
def _material_update(request, material):
    return _update(request, material, MaterialForm, material_payload, "Material")


@role_required(Role.ADMIN)
def _material_delete(request, material):
    return _delete(material, "Material", "Cannot delete material that is used in transactions")


# --- Companies ---


def _gstin_taken(cleaned):
    gstin = cleaned.get("gstin")
    if gstin:
        other = Company.objects.filter(gstin__iexact=gstin).first()
        if other is not None:
            return f"GSTIN {gstin} already exists for company: {other.name}"
    return None


@require_http_methods(["GET", "POST"])
@api_login_required
def companies(request):
    if request.method == "POST":
        return _company_create(request)
    return JsonResponse([company_payload(c) for c in Company.objects.order_by(Lower("name"))], safe=False)


@role_required(Role.ADMIN)
def _company_create(request):
    return _create(request, CompanyForm, company_payload, "Company", prepare=_company_data)


@require_http_methods(["POST"])
@role_required(Role.ADMIN)
def companies_bulk(request):
    return _bulk_create(
        request, CompanyForm, company_payload, "Company", prepare=_company_data, extra_check=_gstin_taken,
    )


@require_http_methods(["GET", "PUT", "DELETE"])
@api_login_required
def company_detail(request, pk: int):
    company = get_or_404(Company, pk=pk)
    if request.method == "PUT":
        return _company_update(request, company)
    if request.method == "DELETE":
        return _company_delete(request, company)
    return JsonResponse(company_payload(company))


@role_required(Role.ADMIN)
def _company_update(request, company):
    return _update(request, company, CompanyForm, company_payload, "Company", prepare=_company_data)


@role_required(Role.ADMIN)
def _company_delete(request, company):
    return _delete(company, "Company", "Cannot delete company with associated purchase bills")


# --- Sites and godowns: storekeepers may create and edit, only admins delete ---


@require_http_methods(["GET", "POST"])
@api_login_required
def sites(request):
    if request.method == "POST":
        return _site_create(request)
    return JsonResponse([site_payload(s) for s in Site.objects.order_by(Lower("name"))], safe=False)


@role_required(Role.ADMIN, Role.STOREKEEPER)
def _site_create(request):
    return _create(request, SiteForm, site_payload, "Site")


@require_http_methods(["GET", "PUT", "DELETE"])
@api_login_required
def site_detail(request, pk: int):
    site = get_or_404(Site, pk=pk)
    if request.method == "PUT":
        return _site_update(request, site)
    if request.method == "DELETE":
        return _site_delete(request, site)
    return JsonResponse(site_payload(site))


@role_required(Role.ADMIN, Role.STOREKEEPER)
def _site_update(request, site):
    return _update(request, site, SiteForm, site_payload, "Site")


@role_required(Role.ADMIN)
def _site_delete(request, site):
    return _delete(site, "Site", "Cannot delete site with associated material issues or purchase bills")


@require_http_methods(["GET", "POST"])
@api_login_required
def godowns(request):
    if request.method == "POST":
        return _godown_create(request)
    return JsonResponse([godown_payload(g) for g in Godown.objects.order_by(Lower("name"))], safe=False)


@role_required(Role.ADMIN, Role.STOREKEEPER)
def _godown_create(request):
    return _create(request, GodownForm, godown_payload, "Godown")


@require_http_methods(["GET", "PUT", "DELETE"])
@api_login_required
def godown_detail(request, pk: int):
    godown = get_or_404(Godown, pk=pk)
    if request.method == "PUT":
        return _godown_update(request, godown)
    if request.method == "DELETE":
        return _godown_delete(request, godown)
    return JsonResponse(godown_payload(godown))


@role_required(Role.ADMIN, Role.STOREKEEPER)
def _godown_update(request, godown):
    return _update(request, godown, GodownForm, godown_payload, "Godown")


@role_required(Role.ADMIN)
def _godown_delete(request, godown):
    return _delete(godown, "Godown", "Cannot delete godown with associated material issues or stock transactions")


# --- Material issues ---


def _issue_error_message(errors):
    for field in ("site_id", "from_godown_id"):
        if errors.get(field):
            return errors[field][0]
    items = errors.get("items")
    if isinstance(items, dict) and any(
        "Material not found" in msgs for row in items.values() for msgs in row.get("material_id", [])
    ):
        return "One or more materials not found"
    return "Validation failed"


def _issues_queryset():
    return MaterialIssue.objects.select_related("site", "from_godown", "created_by").prefetch_related("items__material")


@require_http_methods(["GET", "POST"])
@api_login_required
def material_issues(request):
    if request.method == "POST":
        return _material_issue_create(request)
    issues = _issues_queryset().order_by("-issue_date", "-id")
    return JsonResponse([material_issue_payload(i) for i in issues], safe=False)


def _material_issue_create(request):
    """Issue material to a site. Every item is checked against its source stock; one short item rejects all."""
    data, bad_request = _request_data(request)
    if bad_request:
        return bad_request
    form = MaterialIssueForm(data)
    rows, item_errors = clean_line_items(data.get("items"))
    if not form.is_valid() or item_errors:
        errors = form_errors(form)
        errors.update(item_errors)
        return error_response(_issue_error_message(errors), errors=errors)

    cd = form.cleaned_data
    try:
        issue = create_material_issue(
            site=cd["site_id"],
            from_godown=cd.get("from_godown_id"),
            issue_date=cd["issue_date"],
            rows=rows,
            created_by=request.user,
        )
    except InsufficientStockError as e:
        return error_response(e.messages[0], code="insufficient_stock")
    except ConflictError as e:
        return error_response(str(e), status=409)
    issue = _issues_queryset().get(pk=issue.pk)
    return JsonResponse(material_issue_payload(issue), status=201)


@require_http_methods(["GET", "DELETE"])
@api_login_required
def material_issue_detail(request, pk: int):
    issue = get_or_404(MaterialIssue, pk=pk)
    if request.method == "DELETE":
        return _material_issue_delete(request, issue)
    return JsonResponse(material_issue_payload(_issues_queryset().get(pk=issue.pk)))


@role_required(Role.ADMIN)
def _material_issue_delete(request, issue):
    try:
        delete_material_issue(issue)
    except ConflictError as e:
        return error_response(str(e), status=409)
    return JsonResponse({"message": "Material issue deleted successfully"})
