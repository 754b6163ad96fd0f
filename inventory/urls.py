from django.urls import path
from . import views

app_name = "inventory"

urlpatterns = [
    # Masters
    path("materials/", views.materials, name="materials"),
    path("materials/bulk/", views.materials_bulk, name="materials_bulk"),
    path("materials/<int:pk>/", views.material_detail, name="material_detail"),
    path("companies/", views.companies, name="companies"),
    path("companies/bulk/", views.companies_bulk, name="companies_bulk"),
    path("companies/<int:pk>/", views.company_detail, name="company_detail"),
    path("sites/", views.sites, name="sites"),
    path("sites/<int:pk>/", views.site_detail, name="site_detail"),
    path("godowns/", views.godowns, name="godowns"),
    path("godowns/<int:pk>/", views.godown_detail, name="godown_detail"),
    # Stock out
    path("material-issues/", views.material_issues, name="material_issues"),
    path("material-issues/<int:pk>/", views.material_issue_detail, name="material_issue_detail"),
]
