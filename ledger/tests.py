"""
Tests for the stock ledger: the balance fold, the inventory view, availability
checks under the key lock, balance_after maintenance and the diagnostics command.
"""
from datetime import date
from decimal import Decimal
from io import StringIO
from types import SimpleNamespace

from django.core.management import call_command
from django.db import transaction
from django.db.models import F
from django.test import SimpleTestCase, TestCase

from billing.services import delete_purchase_bill
from inventory.models import MaterialIssue
from inventory.tests import issue, make_godown, make_material, make_site, make_user, purchase, row
from ledger.exceptions import ConflictError, InsufficientStockError
from ledger.models import ReferenceTable, StockBalance, StockTransaction, TxType
from ledger.services.balance import DIRECT, Balance, calculate_balance, running_balances
from ledger.services.posting import Movement, StockPosting, check_availability
from ledger.services.stock_view import build_inventory, key_entries


def entry(tx_type, quantity, rate="10"):
    return SimpleNamespace(tx_type=tx_type, quantity=Decimal(str(quantity)), rate=Decimal(str(rate)))


class BalanceCalculatorTest(SimpleTestCase):
    def test_empty(self):
        self.assertEqual(calculate_balance([]), Balance(Decimal("0"), Decimal("0")))

    def test_in_then_out(self):
        balance = calculate_balance([entry("IN", 100), entry("OUT", 40)])
        self.assertEqual(balance.quantity, Decimal("60"))
        self.assertEqual(balance.total_value, Decimal("600"))

    def test_negative_is_not_clamped(self):
        balance = calculate_balance([entry("IN", 5), entry("OUT", 15)])
        self.assertEqual(balance.quantity, Decimal("-10"))
        self.assertTrue(balance.is_negative)

    def test_same_type_reordering_keeps_total(self):
        a, b = entry("IN", 10, "3"), entry("IN", 25, "4")
        self.assertEqual(calculate_balance([a, b]), calculate_balance([b, a]))

    def test_cross_type_reordering_changes_running_totals_only(self):
        first, second = entry("IN", 50), entry("OUT", 20)
        forward = [b.quantity for _, b in running_balances([first, second])]
        backward = [b.quantity for _, b in running_balances([second, first])]
        self.assertEqual(forward, [Decimal("50"), Decimal("30")])
        self.assertEqual(backward, [Decimal("-20"), Decimal("30")])

    def test_round_trip_restores_quantity_not_value(self):
        start = calculate_balance([entry("IN", 7, "2")])
        after = calculate_balance([entry("IN", 7, "2"), entry("IN", 12, "10"), entry("OUT", 12, "8")])
        self.assertEqual(after.quantity, start.quantity)
        self.assertEqual(after.total_value, start.total_value + Decimal("24"))

    def test_unknown_type(self):
        with self.assertRaises(ValueError):
            calculate_balance([entry("MOVE", 1)])


class InventoryViewTest(TestCase):
    def setUp(self):
        self.material = make_material()
        self.godown = make_godown()
        self.site = make_site()

    def test_empty_key_has_no_row(self):
        self.assertEqual(build_inventory(material_id=self.material.id), [])

    def test_in_then_out(self):
        purchase(self.material, 100, rate="10", godown=self.godown)
        issue(self.site, row(self.material, 40, rate="10"), godown=self.godown)
        (stock,) = build_inventory()
        self.assertEqual((stock.material, stock.godown), (self.material, self.godown))
        self.assertEqual(stock.quantity, Decimal("60"))
        self.assertEqual(stock.total_value, Decimal("600"))
        newest = StockTransaction.objects.order_by("-created_at", "-id").first()
        self.assertEqual(stock.last_updated, newest.created_at)

    def test_rebuild_is_idempotent(self):
        purchase(self.material, 10, godown=self.godown)
        purchase(self.material, 3, site=self.site, invoice="INV-2")
        self.assertEqual(build_inventory(), build_inventory())

    def test_filters(self):
        other = make_godown("North Godown")
        purchase(self.material, 10, godown=self.godown)
        purchase(self.material, 4, godown=other, invoice="INV-2")
        rows = build_inventory(godown_id=other.id)
        self.assertEqual([r.quantity for r in rows], [Decimal("4")])
        self.assertEqual(build_inventory(godown_id=DIRECT), [])

    def test_negative_key_is_logged_and_left_out(self):
        StockTransaction.objects.create(
            material=self.material, godown=self.godown, tx_type=TxType.OUT,
            reference_table=ReferenceTable.MATERIAL_ISSUES, reference_id=1,
            quantity=Decimal("5"), tx_date=date(2024, 1, 1),
        )
        with self.assertLogs("ledger.services.stock_view", level="WARNING") as logs:
            self.assertEqual(build_inventory(), [])
        self.assertIn("Negative stock balance", logs.output[0])


class AvailabilityTest(TestCase):
    def setUp(self):
        self.material = make_material()
        self.godown = make_godown()
        self.site = make_site()
        purchase(self.material, 20, godown=self.godown)

    def test_exact_balance_succeeds_one_more_fails(self):
        check_availability(self.material, self.godown, Decimal("20"))
        with self.assertRaises(InsufficientStockError) as ctx:
            check_availability(self.material, self.godown, Decimal("21"))
        self.assertEqual(ctx.exception.available, Decimal("20"))
        self.assertEqual(ctx.exception.requested, Decimal("21"))

    def test_short_issue_writes_nothing(self):
        before = StockTransaction.objects.count()
        with self.assertRaises(InsufficientStockError):
            issue(self.site, row(self.material, 30), godown=self.godown)
        self.assertEqual(StockTransaction.objects.count(), before)
        self.assertFalse(MaterialIssue.objects.exists())

    def test_one_short_item_rejects_the_whole_issue(self):
        steel = make_material("Steel", "Kg")
        purchase(steel, 5, godown=self.godown, invoice="INV-2")
        before = StockTransaction.objects.count()
        with self.assertRaises(InsufficientStockError):
            issue(self.site, row(self.material, 10), row(steel, 6), godown=self.godown)
        self.assertEqual(StockTransaction.objects.count(), before)
        self.assertFalse(MaterialIssue.objects.exists())

    def test_items_on_same_key_are_checked_together(self):
        with self.assertRaises(InsufficientStockError):
            issue(self.site, row(self.material, 15), row(self.material, 15), godown=self.godown)
        created = issue(self.site, row(self.material, 15), row(self.material, 5), godown=self.godown)
        self.assertEqual(created.items.count(), 2)

    def test_direct_issue_uses_direct_key(self):
        with self.assertRaises(InsufficientStockError):
            issue(self.site, row(self.material, 1))


class BalanceAfterTest(TestCase):
    def setUp(self):
        self.material = make_material()
        self.godown = make_godown()
        self.site = make_site()

    def assertBalanceAfterMatchesReplay(self):
        keys = StockTransaction.objects.order_by().values_list("material_id", "godown_id").distinct()
        for material_id, godown_id in keys:
            history = list(key_entries(material_id, godown_id))
            expected = calculate_balance(history)
            self.assertEqual(history[-1].balance_after, expected.quantity)
            for stored, (_, running) in zip(history, running_balances(history)):
                self.assertEqual(stored.balance_after, running.quantity)
            cache = StockBalance.objects.get(material_id=material_id, godown_id=godown_id)
            self.assertEqual(cache.quantity, expected.quantity)

    def test_after_postings(self):
        purchase(self.material, 100, godown=self.godown)
        purchase(self.material, 30, site=self.site, invoice="INV-2")
        issue(self.site, row(self.material, 40), row(self.material, 10), godown=self.godown)
        self.assertBalanceAfterMatchesReplay()

    def test_after_deleting_an_earlier_bill(self):
        purchase(self.material, 100, godown=self.godown)
        second = purchase(self.material, 50, godown=self.godown, invoice="INV-2")
        issue(self.site, row(self.material, 30), godown=self.godown)
        purchase(self.material, 5, godown=self.godown, invoice="INV-3")
        delete_purchase_bill(second)
        self.assertBalanceAfterMatchesReplay()
        self.assertEqual(StockBalance.objects.get(material=self.material, godown=self.godown).quantity, Decimal("75"))

    def test_deleting_issued_stock_is_refused(self):
        bill = purchase(self.material, 50, godown=self.godown)
        issue(self.site, row(self.material, 40), godown=self.godown)
        with self.assertRaises(ConflictError):
            delete_purchase_bill(bill)
        self.assertEqual(StockTransaction.objects.count(), 2)
        self.assertBalanceAfterMatchesReplay()

    def test_deleting_stock_issued_before_a_later_bill_is_refused(self):
        first = purchase(self.material, 100, godown=self.godown)
        issue(self.site, row(self.material, 80), godown=self.godown)
        purchase(self.material, 100, godown=self.godown, invoice="INV-2")
        with self.assertRaises(ConflictError):
            delete_purchase_bill(first)
        self.assertEqual(StockTransaction.objects.count(), 3)
        self.assertBalanceAfterMatchesReplay()

    def test_concurrent_cache_change_aborts_append(self):
        purchase(self.material, 10, godown=self.godown)
        movement = Movement(
            material=self.material, godown=self.godown, site=self.site,
            tx_type=TxType.OUT, quantity=Decimal("4"), rate=Decimal("10"),
        )
        with self.assertRaises(ConflictError):
            with transaction.atomic():
                posting = StockPosting([movement]).prepare()
                StockBalance.objects.filter(material=self.material).update(version=F("version") + 1)
                posting.append(ReferenceTable.MATERIAL_ISSUES, 1, date(2024, 2, 1))
        self.assertEqual(StockTransaction.objects.filter(tx_type=TxType.OUT).count(), 0)

    def test_append_requires_prepare(self):
        movement = Movement(
            material=self.material, godown=self.godown, site=None,
            tx_type=TxType.IN, quantity=Decimal("1"), rate=Decimal("1"),
        )
        with self.assertRaises(RuntimeError):
            StockPosting([movement]).append(ReferenceTable.PURCHASE_BILLS, 1, date(2024, 1, 1))


class LedgerApiTest(TestCase):
    def setUp(self):
        self.material = make_material()
        self.godown = make_godown()
        self.site = make_site()
        purchase(self.material, 100, rate="10", godown=self.godown)
        purchase(self.material, 7, rate="20", site=self.site, invoice="INV-2")
        issue(self.site, row(self.material, 40), godown=self.godown)

    def test_login_required(self):
        self.assertEqual(self.client.get("/api/inventory/").status_code, 401)

    def test_inventory(self):
        self.client.force_login(make_user())
        data = self.client.get("/api/inventory/").json()
        self.assertEqual(len(data), 1)
        self.assertEqual(data[0]["quantity"], "60")
        self.assertEqual(data[0]["totalValue"], "600")
        self.assertEqual(data[0]["godown"]["id"], self.godown.id)
        self.assertEqual(self.client.get("/api/inventory/?godownId=direct").json(), [])

    def test_bad_filter(self):
        self.client.force_login(make_user())
        self.assertEqual(self.client.get("/api/inventory/?materialId=abc").status_code, 400)

    def test_transactions_filters_and_paging(self):
        self.client.force_login(make_user())
        rows = self.client.get("/api/inventory/transactions/").json()
        self.assertEqual(len(rows), 4)
        self.assertEqual(rows[0]["txType"], "OUT")
        self.assertEqual(rows[0]["balanceAfter"], "60")

        direct = self.client.get("/api/inventory/transactions/?godownId=direct&txType=in").json()
        self.assertEqual([(r["txType"], r["quantity"]) for r in direct], [("IN", "7")])

        at_site = self.client.get(f"/api/inventory/transactions/?siteId={self.site.id}&txType=OUT").json()
        self.assertEqual(len(at_site), 2)

        page = self.client.get("/api/inventory/transactions/?limit=2&offset=1").json()
        self.assertEqual([r["id"] for r in page], [r["id"] for r in rows[1:3]])

    def test_unknown_tx_type(self):
        self.client.force_login(make_user())
        self.assertEqual(self.client.get("/api/inventory/transactions/?txType=MOVE").status_code, 400)


class DiagnoseStockBalancesTest(TestCase):
    def setUp(self):
        self.material = make_material()
        self.godown = make_godown()
        purchase(self.material, 100, godown=self.godown)
        issue(make_site(), row(self.material, 40), godown=self.godown)

    def test_clean_ledger(self):
        out = StringIO()
        call_command("diagnose_stock_balances", stdout=out)
        self.assertIn("with problems: 0", out.getvalue())
        self.assertIn("agree", out.getvalue())

    def test_stale_balance_after_is_reported_and_fixed(self):
        StockTransaction.objects.update(balance_after=0)
        out = StringIO()
        call_command("diagnose_stock_balances", stdout=out)
        self.assertIn("2 stale balance_after value(s)", out.getvalue())

        call_command("diagnose_stock_balances", "--fix", stdout=StringIO())
        self.assertEqual(
            list(StockTransaction.objects.order_by("id").values_list("balance_after", flat=True)),
            [Decimal("100"), Decimal("60")],
        )

    def test_over_issued_history_is_reported(self):
        first = StockTransaction.objects.get(tx_type=TxType.IN).reference_id
        purchase(self.material, 100, godown=self.godown, invoice="INV-2")
        StockTransaction.objects.filter(reference_table=ReferenceTable.PURCHASE_BILLS, reference_id=first).delete()
        out_entry = StockTransaction.objects.get(tx_type=TxType.OUT)
        out = StringIO()
        call_command("diagnose_stock_balances", stdout=out)
        self.assertIn(f"over-issued at entry #{out_entry.id} (-40", out.getvalue())
        self.assertNotIn("negative balance", out.getvalue())
