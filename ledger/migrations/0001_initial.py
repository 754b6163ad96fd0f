import decimal

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("inventory", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="StockTransaction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("tx_type", models.CharField(choices=[("IN", "In"), ("OUT", "Out")], max_length=3)),
                ("reference_table", models.CharField(choices=[("purchase_bills", "Purchase bills"), ("material_issues", "Material issues")], max_length=32)),
                ("reference_id", models.BigIntegerField()),
                ("quantity", models.DecimalField(decimal_places=3, max_digits=14)),
                ("rate", models.DecimalField(decimal_places=2, default=decimal.Decimal("0"), max_digits=14)),
                ("balance_after", models.DecimalField(decimal_places=3, default=decimal.Decimal("0"), max_digits=16)),
                ("tx_date", models.DateField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("godown", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="stock_transactions", to="inventory.godown")),
                ("material", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="stock_transactions", to="inventory.material")),
                ("site", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="stock_transactions", to="inventory.site")),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["material", "godown", "created_at"], name="ledger_stx_key_created_idx"),
                    models.Index(fields=["reference_table", "reference_id"], name="ledger_stx_reference_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(quantity__gt=0), name="chk_stocktransaction_quantity_positive"),
                ],
            },
        ),
        migrations.CreateModel(
            name="StockBalance",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("quantity", models.DecimalField(decimal_places=3, default=decimal.Decimal("0"), max_digits=16)),
                ("total_value", models.DecimalField(decimal_places=5, default=decimal.Decimal("0"), max_digits=20)),
                ("version", models.PositiveBigIntegerField(default=0)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("godown", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name="stock_balances", to="inventory.godown")),
                ("material", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="stock_balances", to="inventory.material")),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(condition=models.Q(godown__isnull=False), fields=("material", "godown"), name="ledger_stockbalance_material_godown_uniq"),
                    models.UniqueConstraint(condition=models.Q(godown__isnull=True), fields=("material",), name="ledger_stockbalance_material_direct_uniq"),
                ],
            },
        ),
    ]
