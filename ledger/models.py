from decimal import Decimal

from django.db import models
from django.db.models import Q

from inventory.models import Godown, Material, Site


class TxType(models.TextChoices):
    IN = "IN", "In"
    OUT = "OUT", "Out"


class ReferenceTable(models.TextChoices):
    PURCHASE_BILLS = "purchase_bills", "Purchase bills"
    MATERIAL_ISSUES = "material_issues", "Material issues"


class StockTransaction(models.Model):
    """
    One immutable stock movement. The key of a movement is (material, godown);
    godown=None is the "direct" key (stock that never sat in a godown).
    Balances = fold of IN/OUT quantities over a key in (created_at, id) order.

    balance_after is the running quantity of the key right after this entry. It is
    written by ledger.services.posting under the key's lock and rewritten only when
    earlier rows of the same key are deleted.
    """
    material = models.ForeignKey(Material, on_delete=models.PROTECT, related_name="stock_transactions")
    godown = models.ForeignKey(
        Godown, null=True, blank=True, on_delete=models.PROTECT, related_name="stock_transactions"
    )
    site = models.ForeignKey(
        Site, null=True, blank=True, on_delete=models.PROTECT, related_name="stock_transactions"
    )
    tx_type = models.CharField(max_length=3, choices=TxType.choices)
    reference_table = models.CharField(max_length=32, choices=ReferenceTable.choices)
    reference_id = models.BigIntegerField()
    quantity = models.DecimalField(max_digits=14, decimal_places=3)
    rate = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))
    balance_after = models.DecimalField(max_digits=16, decimal_places=3, default=Decimal("0"))
    tx_date = models.DateField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["material", "godown", "created_at"], name="ledger_stx_key_created_idx"),
            models.Index(fields=["reference_table", "reference_id"], name="ledger_stx_reference_idx"),
        ]
        constraints = [
            models.CheckConstraint(condition=Q(quantity__gt=0), name="chk_stocktransaction_quantity_positive"),
        ]

    def __str__(self):
        where = self.godown or "direct"
        return f"{self.tx_type} {self.quantity} {self.material} @ {where}"

    @property
    def amount(self):
        return self.quantity * self.rate


class StockBalance(models.Model):
    """
    Materialised balance of one (material, godown-or-direct) key.

    Every ledger write locks this row first (select_for_update), so the replay,
    the availability check and the append for a key never interleave with
    another writer. quantity/total_value mirror the fold of the key's history.
    """
    material = models.ForeignKey(Material, on_delete=models.CASCADE, related_name="stock_balances")
    godown = models.ForeignKey(
        Godown, null=True, blank=True, on_delete=models.CASCADE, related_name="stock_balances"
    )
    quantity = models.DecimalField(max_digits=16, decimal_places=3, default=Decimal("0"))
    total_value = models.DecimalField(max_digits=20, decimal_places=5, default=Decimal("0"))
    version = models.PositiveBigIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["material", "godown"],
                condition=Q(godown__isnull=False),
                name="ledger_stockbalance_material_godown_uniq",
            ),
            models.UniqueConstraint(
                fields=["material"],
                condition=Q(godown__isnull=True),
                name="ledger_stockbalance_material_direct_uniq",
            ),
        ]

    def __str__(self):
        return f"{self.material} @ {self.godown or 'direct'}: {self.quantity}"
