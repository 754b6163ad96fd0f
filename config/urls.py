from django.http import JsonResponse
from django.urls import include, path
from django.utils import timezone
from django.views.decorators.http import require_http_methods


@require_http_methods(["GET"])
def health(request):
    return JsonResponse({"status": "OK", "timestamp": timezone.now().isoformat()})


@require_http_methods(["GET"])
def api_root(request):
    return JsonResponse({"message": "Stock Material Management API", "version": "1.0.0"})


urlpatterns = [
    path("health", health, name="health"),
    path("api/", api_root, name="api_root"),
    path("api/auth/", include("org.urls")),
    path("api/", include("inventory.urls")),
    path("api/purchase-bills/", include("billing.urls")),
    path("api/inventory/", include("ledger.urls")),
    path("api/reports/", include("reports.urls")),
]
