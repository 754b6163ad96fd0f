from decimal import Decimal

from django.conf import settings
from django.db import models


class Material(models.Model):
    """Material master (cement, steel, sand ...). Balances live in the stock ledger, never here."""
    name = models.CharField(max_length=200, unique=True)
    unit = models.CharField(max_length=32)
    hsn_sac = models.CharField(max_length=32, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


class Godown(models.Model):
    """Storage location. Receives (IN) and releases (OUT) materials."""
    name = models.CharField(max_length=255, unique=True)
    address = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


class Site(models.Model):
    """Construction site. Only consumes material."""
    name = models.CharField(max_length=255, unique=True)
    address = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


class Company(models.Model):
    """Supplier."""
    name = models.CharField(max_length=255, unique=True)
    gstin = models.CharField(max_length=20, blank=True, default="")
    address = models.TextField(blank=True, default="")
    contact_person = models.CharField(max_length=200, blank=True, default="")
    mobile_number = models.CharField(max_length=20, blank=True, default="")
    email = models.EmailField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "Companies"

    def __str__(self):
        return self.name


class MaterialIssue(models.Model):
    """
    Material sent to a site. from_godown=None is a direct issue: the stock leaves the
    direct (no godown) ledger key. Immutable once created; admins may delete it whole.
    """
    IDENTIFIER_PREFIX = "MI"

    identifier = models.CharField(max_length=16, unique=True)
    issue_date = models.DateField()
    site = models.ForeignKey(Site, on_delete=models.PROTECT, related_name="material_issues")
    from_godown = models.ForeignKey(
        Godown, null=True, blank=True, on_delete=models.PROTECT, related_name="material_issues"
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name="material_issues"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-issue_date", "-id"]

    def __str__(self):
        return self.identifier

    @classmethod
    def format_identifier(cls, number):
        return f"{cls.IDENTIFIER_PREFIX}-{number:03d}"

    @classmethod
    def parse_identifier(cls, identifier):
        """'MI-007' -> 7. Returns None for anything that does not follow the pattern."""
        prefix, _, number = (identifier or "").partition("-")
        if prefix != cls.IDENTIFIER_PREFIX or not number.isdigit():
            return None
        return int(number)


class MaterialIssueItem(models.Model):
    material_issue = models.ForeignKey(MaterialIssue, on_delete=models.CASCADE, related_name="items")
    material = models.ForeignKey(Material, on_delete=models.PROTECT, related_name="issue_items")
    quantity = models.DecimalField(max_digits=14, decimal_places=3)
    unit = models.CharField(max_length=32)
    rate = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))
    gst_percent = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0"))
    total_excl_gst = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal("0"))
    total_incl_gst = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal("0"))

    class Meta:
        ordering = ["id"]

    def __str__(self):
        return f"{self.material} x {self.quantity}"
