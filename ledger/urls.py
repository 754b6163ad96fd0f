from django.urls import path
from . import views

app_name = "ledger"

urlpatterns = [
    path("", views.inventory, name="inventory"),
    path("transactions/", views.transactions, name="transactions"),
]
