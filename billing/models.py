from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import Q

from inventory.models import Company, Godown, Material, Site

from .destinations import GodownDestination, SiteDestination


class DeliveredTo(models.TextChoices):
    GODOWN = "GODOWN", "Godown"
    SITE = "SITE", "Site"


class PurchaseBill(models.Model):
    """
    Supplier bill. Goods land either in a godown or straight at a site; the check
    constraint keeps exactly the foreign key that matches delivered_to_type.
    Immutable once created; admins may delete it whole.
    """
    company = models.ForeignKey(Company, on_delete=models.PROTECT, related_name="purchase_bills")
    invoice_number = models.CharField(max_length=64)
    gstin_number = models.CharField(max_length=20, blank=True, default="")
    bill_date = models.DateField()
    delivered_to_type = models.CharField(max_length=8, choices=DeliveredTo.choices)
    delivered_to_godown = models.ForeignKey(
        Godown, null=True, blank=True, on_delete=models.PROTECT, related_name="purchase_bills"
    )
    delivered_to_site = models.ForeignKey(
        Site, null=True, blank=True, on_delete=models.PROTECT, related_name="purchase_bills"
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name="purchase_bills"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(delivered_to_type="GODOWN", delivered_to_godown__isnull=False, delivered_to_site__isnull=True)
                    | Q(delivered_to_type="SITE", delivered_to_site__isnull=False, delivered_to_godown__isnull=True)
                ),
                name="chk_purchasebill_single_destination",
            ),
        ]

    def __str__(self):
        return f"{self.invoice_number} ({self.company})"

    @property
    def destination(self):
        if self.delivered_to_type == DeliveredTo.GODOWN:
            return GodownDestination(godown=self.delivered_to_godown)
        return SiteDestination(site=self.delivered_to_site)

    @destination.setter
    def destination(self, value):
        if isinstance(value, GodownDestination):
            self.delivered_to_type = DeliveredTo.GODOWN
            self.delivered_to_godown = value.godown
            self.delivered_to_site = None
        elif isinstance(value, SiteDestination):
            self.delivered_to_type = DeliveredTo.SITE
            self.delivered_to_site = value.site
            self.delivered_to_godown = None
        else:
            raise TypeError(f"Not a destination: {value!r}")

    @property
    def delivered_to_id(self):
        return self.destination.target.id


class PurchaseBillItem(models.Model):
    purchase_bill = models.ForeignKey(PurchaseBill, on_delete=models.CASCADE, related_name="items")
    material = models.ForeignKey(Material, on_delete=models.PROTECT, related_name="bill_items")
    quantity = models.DecimalField(max_digits=14, decimal_places=3)
    unit = models.CharField(max_length=32)
    rate = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))
    gst_percent = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0"))
    total_excl_gst = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal("0"))
    total_incl_gst = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal("0"))
    location_in_godown = models.CharField(max_length=100, blank=True, default="")

    class Meta:
        ordering = ["id"]

    def __str__(self):
        return f"{self.material} x {self.quantity}"
