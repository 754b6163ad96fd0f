from django.http import JsonResponse
from django.views.decorators.http import require_GET

from inventory.models import Material, Site
from org.decorators import api_login_required
from org.utils import error_response, get_or_404, query_int

from .serializers import (
    all_material_reports_payload,
    all_site_reports_payload,
    material_report_payload,
    site_history_payload,
    site_report_payload,
)
from .services import (
    all_material_wise_reports,
    all_site_material_reports,
    material_wise_report,
    site_material_history,
    site_material_report,
)


@require_GET
@api_login_required
def site_materials(request):
    """Site-wise report. ?site_id=<id> for one site with per-entry detail, otherwise every site."""
    try:
        site_id = query_int(request, "site_id")
    except ValueError as e:
        return error_response(str(e))
    if site_id is not None:
        site = get_or_404(Site, pk=site_id)
        return JsonResponse(site_report_payload(site_material_report(site), with_entries=True))
    return JsonResponse(all_site_reports_payload(all_site_material_reports()))


@require_GET
@api_login_required
def site_material_history_view(request, site_id: int, material_id: int):
    site = get_or_404(Site, pk=site_id)
    material = get_or_404(Material, pk=material_id)
    return JsonResponse(site_history_payload(site_material_history(site, material)))


@require_GET
@api_login_required
def material_wise(request):
    """Material-wise report. ?material_id=<id> for one material with additions and per-site issues."""
    try:
        material_id = query_int(request, "material_id")
    except ValueError as e:
        return error_response(str(e))
    if material_id is not None:
        material = get_or_404(Material, pk=material_id)
        return JsonResponse(material_report_payload(material_wise_report(material)))
    return JsonResponse(all_material_reports_payload(all_material_wise_reports()))
