from django.urls import path
from .views import material_wise, site_material_history_view, site_materials

app_name = "reports"

urlpatterns = [
    path("site-materials/", site_materials, name="site_materials"),
    path(
        "site-materials/<int:site_id>/<int:material_id>/history/",
        site_material_history_view,
        name="site_material_history",
    ),
    path("material-wise/", material_wise, name="material_wise"),
]
