from django.urls import path
from .views import api_login, api_logout, api_profile

app_name = "org"

urlpatterns = [
    path("login", api_login, name="login"),
    path("logout", api_logout, name="logout"),
    path("profile", api_profile, name="profile"),
]
