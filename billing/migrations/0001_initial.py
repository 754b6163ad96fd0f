import decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("inventory", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="PurchaseBill",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("invoice_number", models.CharField(max_length=64)),
                ("gstin_number", models.CharField(blank=True, default="", max_length=20)),
                ("bill_date", models.DateField()),
                ("delivered_to_type", models.CharField(choices=[("GODOWN", "Godown"), ("SITE", "Site")], max_length=8)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="purchase_bills", to="inventory.company")),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="purchase_bills", to=settings.AUTH_USER_MODEL)),
                ("delivered_to_godown", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="purchase_bills", to="inventory.godown")),
                ("delivered_to_site", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="purchase_bills", to="inventory.site")),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(delivered_to_type="GODOWN", delivered_to_godown__isnull=False, delivered_to_site__isnull=True),
                            models.Q(delivered_to_type="SITE", delivered_to_site__isnull=False, delivered_to_godown__isnull=True),
                            _connector="OR",
                        ),
                        name="chk_purchasebill_single_destination",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PurchaseBillItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("quantity", models.DecimalField(decimal_places=3, max_digits=14)),
                ("unit", models.CharField(max_length=32)),
                ("rate", models.DecimalField(decimal_places=2, default=decimal.Decimal("0"), max_digits=14)),
                ("gst_percent", models.DecimalField(decimal_places=2, default=decimal.Decimal("0"), max_digits=5)),
                ("total_excl_gst", models.DecimalField(decimal_places=2, default=decimal.Decimal("0"), max_digits=16)),
                ("total_incl_gst", models.DecimalField(decimal_places=2, default=decimal.Decimal("0"), max_digits=16)),
                ("location_in_godown", models.CharField(blank=True, default="", max_length=100)),
                ("material", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="bill_items", to="inventory.material")),
                ("purchase_bill", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="items", to="billing.purchasebill")),
            ],
            options={
                "ordering": ["id"],
            },
        ),
    ]
