"""
Diagnose the stock ledger: per (material, godown-or-direct) key, replay the
history and report negative balances, entries that over-issued stock, stale
balance_after values and drift of the StockBalance cache; then compare ledger
and document site totals.
Run: python manage.py diagnose_stock_balances [--fix]
"""
from django.core.management.base import BaseCommand
from django.db import transaction

from inventory.models import Material, Site
from ledger.models import StockBalance
from ledger.services.balance import DIRECT
from ledger.services.posting import resync_key
from ledger.services.stock_view import ledger_entries, over_issued_entries, replay_keys, stale_balance_after
from reports.services import reconcile_site_totals


class Command(BaseCommand):
    help = "Replay the stock ledger and report negative balances, stale balance_after values and cache drift."

    def add_arguments(self, parser):
        parser.add_argument(
            "--fix",
            action="store_true",
            help="Rewrite balance_after values and the StockBalance cache from the replay.",
        )

    def handle(self, *args, **options):
        fix = options["fix"]
        cached = {
            (b.material_id, b.godown_id if b.godown_id is not None else DIRECT): b
            for b in StockBalance.objects.all()
        }
        problems = 0
        keys_seen = 0

        for key, rows, balance in replay_keys(ledger_entries()):
            keys_seen += 1
            material, godown = rows[0].material, rows[0].godown
            where = godown.name if godown else "direct"
            issues = []
            if balance.is_negative:
                issues.append(f"negative balance {balance.quantity}")
            over_issued = over_issued_entries(rows)
            if over_issued:
                entry, quantity = over_issued[0]
                more = f" and {len(over_issued) - 1} later entry(ies)" if len(over_issued) > 1 else ""
                issues.append(f"over-issued at entry #{entry.id} ({quantity}){more}")
            stale = stale_balance_after(rows)
            if stale:
                issues.append(f"{len(stale)} stale balance_after value(s)")
            row = cached.get(key)
            if row is None:
                issues.append("no StockBalance row")
            elif row.quantity != balance.quantity or row.total_value != balance.total_value:
                issues.append(f"cache drift (cached={row.quantity} replayed={balance.quantity})")

            if not issues:
                continue
            problems += 1
            self.stdout.write(self.style.WARNING(f"  {material.name} @ {where}: " + "; ".join(issues)))
            if fix:
                with transaction.atomic():
                    _, rewritten = resync_key(material, godown)
                self.stdout.write(f"    fixed: rewrote {rewritten} row(s), cache = {balance.quantity}")

        self.stdout.write(f"Keys replayed: {keys_seen}, with problems: {problems}")

        mismatches = reconcile_site_totals()
        if not mismatches:
            self.stdout.write(self.style.SUCCESS("Ledger and document site totals agree."))
            return
        materials = Material.objects.in_bulk({m.material_id for m in mismatches})
        sites = Site.objects.in_bulk({m.site_id for m in mismatches})
        self.stdout.write(self.style.WARNING("Ledger vs document site totals disagree:"))
        for m in mismatches:
            self.stdout.write(
                f"  {materials[m.material_id].name} @ {sites[m.site_id].name}: "
                f"ledger qty={m.ledger_quantity} value={m.ledger_value}, "
                f"documents qty={m.document_quantity} value={m.document_value}"
            )
