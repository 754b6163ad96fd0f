"""
Seed an admin login, reference data and one sample purchase bill.
Idempotent: existing rows (matched by name / email / invoice number) are left alone.
Run: python manage.py seed_stock_data [--admin-email ...] [--admin-password ...]
"""
from datetime import date
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction

from billing.destinations import GodownDestination
from billing.models import PurchaseBill
from billing.services import create_purchase_bill
from inventory.models import Company, Godown, Material, Site
from org.models import Membership, Role

MATERIALS = [
    ("Cement", "Bags", "25232910"),
    ("Steel Rods", "Kg", "72142000"),
    ("Sand", "Cubic Feet", "25051000"),
    ("Bricks", "Pieces", "69010000"),
    ("Cable", "Meters", "85444200"),
]
COMPANIES = [
    ("ABC Construction Ltd", "123 Main St, City"),
    ("XYZ Builders", "456 Oak Ave, Town"),
    ("DEF Materials Co", "789 Pine Rd, Village"),
]
SITES = [
    ("Site A - Downtown Project", "Downtown Area"),
    ("Site B - Residential Complex", "Suburb Area"),
    ("Site C - Office Building", "Business District"),
]
GODOWNS = [
    ("Main Godown", "Central Warehouse"),
    ("Anand Godown", "Anand District"),
    ("North Godown", "Northern Area"),
]
SAMPLE_INVOICE = "INV-001"


class Command(BaseCommand):
    help = "Create an admin user, sample materials, companies, sites, godowns and one purchase bill."

    def add_arguments(self, parser):
        parser.add_argument("--admin-email", default="admin@example.com")
        parser.add_argument("--admin-password", default="admin123")

    @transaction.atomic
    def handle(self, *args, **options):
        admin = self._admin(options["admin_email"], options["admin_password"])

        for name, unit, hsn in MATERIALS:
            Material.objects.get_or_create(name=name, defaults={"unit": unit, "hsn_sac": hsn})
        for name, address in COMPANIES:
            Company.objects.get_or_create(name=name, defaults={"address": address})
        for name, address in SITES:
            Site.objects.get_or_create(name=name, defaults={"address": address})
        for name, address in GODOWNS:
            Godown.objects.get_or_create(name=name, defaults={"address": address})
        self.stdout.write("Reference data ready.")

        if PurchaseBill.objects.filter(invoice_number=SAMPLE_INVOICE).exists():
            self.stdout.write(f"Sample bill {SAMPLE_INVOICE} already present.")
            return
        cement = Material.objects.get(name="Cement")
        steel = Material.objects.get(name="Steel Rods")
        create_purchase_bill(
            company=Company.objects.get(name=COMPANIES[0][0]),
            invoice_number=SAMPLE_INVOICE,
            gstin_number="GST123456789",
            bill_date=date(2024, 1, 15),
            destination=GodownDestination(godown=Godown.objects.get(name=GODOWNS[0][0])),
            rows=[
                _row(cement, Decimal("100"), Decimal("350")),
                _row(steel, Decimal("500"), Decimal("50")),
            ],
            created_by=admin,
        )
        self.stdout.write(self.style.SUCCESS(f"Sample bill {SAMPLE_INVOICE} posted."))

    def _admin(self, email, password):
        User = get_user_model()
        user = User.objects.filter(email__iexact=email).first()
        if user is None:
            user = User.objects.create_user(username=email, email=email, password=password, first_name="Admin")
            self.stdout.write(f"Admin user created: {email}")
        Membership.objects.update_or_create(user=user, defaults={"role": Role.ADMIN})
        return user


def _row(material, quantity, rate, gst_percent=Decimal("18")):
    excl = quantity * rate
    return {
        "material": material,
        "quantity": quantity,
        "unit": material.unit,
        "rate": rate,
        "gst_percent": gst_percent,
        "total_excl_gst": excl,
        "total_incl_gst": excl * (1 + gst_percent / 100),
    }
