from django.urls import path
from . import views

app_name = "billing"

urlpatterns = [
    path("", views.purchase_bills, name="purchase_bills"),
    path("<int:pk>/", views.purchase_bill_detail, name="purchase_bill_detail"),
]
