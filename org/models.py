from django.conf import settings
from django.db import models


class Role(models.TextChoices):
    ADMIN = "ADMIN", "Admin"
    STOREKEEPER = "STOREKEEPER", "Storekeeper"


class Membership(models.Model):
    """Role of a staff user. Superusers are always treated as ADMIN."""
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="membership")
    role = models.CharField(max_length=20, choices=Role.choices, default=Role.STOREKEEPER)

    def __str__(self):
        return f"{self.user} ({self.role})"
