from datetime import date
from decimal import Decimal

from django.test import TestCase

from billing.models import PurchaseBill
from inventory.tests import issue, make_godown, make_material, make_site, make_user, purchase, row
from ledger.models import ReferenceTable, StockTransaction, TxType
from reports.services import (
    all_material_wise_reports,
    all_site_material_reports,
    document_site_consumption,
    ledger_site_consumption,
    material_wise_report,
    reconcile_site_totals,
    site_material_history,
    site_material_report,
)


class ReportFixtureMixin:
    def setUp(self):
        self.cement = make_material("Cement", "Bags")
        self.sand = make_material("Sand", "Cft")
        self.godown = make_godown()
        self.site_a = make_site("Site A")
        self.site_b = make_site("Site B")
        purchase(self.cement, 200, rate="10", godown=self.godown)
        purchase(self.sand, 30, rate="5", site=self.site_a, invoice="INV-2")
        issue(self.site_a, row(self.cement, 100, rate="10"), godown=self.godown)
        issue(self.site_b, row(self.cement, 50, rate="12"), godown=self.godown)


class MaterialWiseTest(ReportFixtureMixin, TestCase):
    def test_summary_and_distribution(self):
        report = material_wise_report(self.cement)
        self.assertEqual(report["summary"], {
            "total_added": Decimal("200"),
            "total_distributed": Decimal("150"),
            "remaining": Decimal("50"),
        })
        shares = {share["site"].name: share["total_quantity"] for share in report["distribution"]}
        self.assertEqual(shares, {"Site A": Decimal("100"), "Site B": Decimal("50")})
        self.assertEqual(sum(shares.values()), report["summary"]["total_distributed"])
        self.assertEqual(len(report["additions"]), 1)

    def test_direct_site_purchase_counts_as_added(self):
        report = material_wise_report(self.sand)
        self.assertEqual(report["summary"]["total_added"], Decimal("30"))
        self.assertEqual(report["summary"]["remaining"], Decimal("30"))
        self.assertEqual(report["additions"][0]["delivered_to"], "Site")

    def test_all_materials(self):
        data = all_material_wise_reports()
        self.assertEqual([r["material"].name for r in data["material_reports"]], ["Cement", "Sand"])
        self.assertEqual(data["summary"]["total_added"], Decimal("230"))
        self.assertEqual(data["summary"]["total_distributed"], Decimal("150"))


class SiteWiseTest(ReportFixtureMixin, TestCase):
    def test_single_site(self):
        report = site_material_report(self.site_a)
        lines = {line["material"].name: line for line in report["materials"]}
        self.assertEqual(lines["Cement"]["total_value"], Decimal("1000"))
        self.assertEqual(lines["Sand"]["total_quantity"], Decimal("30"))
        self.assertEqual([e["kind"] for e in lines["Sand"]["entries"]], ["DIRECT_PURCHASE"])
        self.assertEqual(report["grand_total"], Decimal("1150"))
        self.assertEqual(report["total_materials"], 2)

    def test_all_sites(self):
        data = all_site_material_reports()
        self.assertEqual([r["site"].name for r in data["site_reports"]], ["Site A", "Site B"])
        self.assertEqual(data["summary"]["overall_total"], Decimal("1750"))
        self.assertEqual(data["summary"]["total_materials"], 3)

    def test_history_newest_first(self):
        issue(self.site_a, row(self.cement, 5), godown=self.godown)
        latest = self.site_a.material_issues.order_by("-id").first()
        latest.issue_date = date(2024, 3, 1)
        latest.save()
        data = site_material_history(self.site_a, self.cement)
        self.assertEqual([e["date"] for e in data["history"]], [date(2024, 3, 1), date(2024, 2, 1)])
        self.assertEqual(data["total_quantity"], Decimal("105"))
        self.assertEqual(data["history"][0]["reference"], f"Issue #{latest.identifier}")

    def test_history_same_day_latest_recorded_first(self):
        bill = purchase(self.cement, 5, site=self.site_a, invoice="INV-3")
        PurchaseBill.objects.filter(pk=bill.pk).update(bill_date=date(2024, 2, 1))
        data = site_material_history(self.site_a, self.cement)
        self.assertEqual([e["kind"] for e in data["history"]], ["DIRECT_PURCHASE", "ISSUE"])
        self.assertEqual({e["date"] for e in data["history"]}, {date(2024, 2, 1)})


class ReconciliationTest(ReportFixtureMixin, TestCase):
    def test_views_agree_after_posting(self):
        self.assertEqual(ledger_site_consumption(), document_site_consumption())
        self.assertEqual(reconcile_site_totals(), [])

    def test_stray_ledger_row_is_reported(self):
        StockTransaction.objects.create(
            material=self.cement, godown=self.godown, site=self.site_b, tx_type=TxType.OUT,
            reference_table=ReferenceTable.MATERIAL_ISSUES, reference_id=999,
            quantity=Decimal("2"), rate=Decimal("12"), tx_date=date(2024, 2, 1),
        )
        (mismatch,) = reconcile_site_totals()
        self.assertEqual((mismatch.material_id, mismatch.site_id), (self.cement.id, self.site_b.id))
        self.assertEqual(mismatch.ledger_quantity - mismatch.document_quantity, Decimal("2"))


class ReportApiTest(ReportFixtureMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.client.force_login(make_user())

    def test_site_materials(self):
        data = self.client.get(f"/api/reports/site-materials/?site_id={self.site_a.id}").json()
        self.assertEqual(data["grandTotal"], "1150")
        sand = next(m for m in data["materials"] if m["materialName"] == "Sand")
        self.assertTrue(sand["issues"][0]["isDirectPurchase"])

        everything = self.client.get("/api/reports/site-materials/").json()
        self.assertEqual(everything["summary"]["totalSites"], 2)

    def test_unknown_site(self):
        response = self.client.get("/api/reports/site-materials/?site_id=999")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["message"], "Site not found")

    def test_history(self):
        data = self.client.get(f"/api/reports/site-materials/{self.site_b.id}/{self.cement.id}/history/").json()
        self.assertEqual(data["totals"], {"totalQuantity": "50", "totalValue": "600"})

    def test_material_wise(self):
        data = self.client.get(f"/api/reports/material-wise/?material_id={self.cement.id}").json()
        self.assertEqual(data["summary"], {"totalAdded": "200", "totalDistributed": "150", "remaining": "50"})
        everything = self.client.get("/api/reports/material-wise/").json()
        self.assertEqual(everything["summary"]["totalMaterials"], 2)
