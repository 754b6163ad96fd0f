from datetime import date
from decimal import Decimal

from django.db import IntegrityError, transaction
from django.test import TestCase

from billing.destinations import GodownDestination, SiteDestination, destination_for
from billing.models import DeliveredTo, PurchaseBill
from billing.services import bill_movements
from inventory.tests import (
    issue, item_json, make_company, make_godown, make_material, make_site, make_user, purchase, row,
)
from ledger.exceptions import InsufficientStockError
from ledger.models import StockTransaction
from ledger.services.stock_view import build_inventory
from org.models import Role


class DestinationTest(TestCase):
    def setUp(self):
        self.godown = make_godown()
        self.site = make_site()

    def test_destination_for(self):
        self.assertEqual(destination_for("GODOWN", self.godown), GodownDestination(godown=self.godown))
        self.assertEqual(destination_for("SITE", self.site).target, self.site)
        with self.assertRaises(ValueError):
            destination_for("TRUCK", self.site)

    def test_model_keeps_one_foreign_key(self):
        bill = PurchaseBill(company=make_company(), invoice_number="INV-1", bill_date=date(2024, 1, 1))
        bill.destination = GodownDestination(godown=self.godown)
        bill.destination = SiteDestination(site=self.site)
        bill.save()
        bill.refresh_from_db()
        self.assertEqual(bill.delivered_to_type, DeliveredTo.SITE)
        self.assertIsNone(bill.delivered_to_godown)
        self.assertEqual(bill.delivered_to_id, self.site.id)

    def test_database_rejects_both_destinations(self):
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                PurchaseBill.objects.create(
                    company=make_company(), invoice_number="INV-1", bill_date=date(2024, 1, 1),
                    delivered_to_type=DeliveredTo.GODOWN,
                    delivered_to_godown=self.godown, delivered_to_site=self.site,
                )


class PostingTest(TestCase):
    def setUp(self):
        self.material = make_material()

    def test_godown_delivery_is_one_in(self):
        godown = make_godown()
        bill = purchase(self.material, 25, godown=godown)
        (tx,) = StockTransaction.objects.filter(reference_id=bill.id)
        self.assertEqual((tx.tx_type, tx.godown, tx.site), ("IN", godown, None))
        self.assertEqual(tx.balance_after, Decimal("25"))

    def test_site_delivery_passes_through_direct_stock(self):
        site = make_site()
        bill = purchase(self.material, 50, rate="20", site=site)
        entries = list(StockTransaction.objects.filter(reference_id=bill.id).order_by("created_at", "id"))
        self.assertEqual([e.tx_type for e in entries], ["IN", "OUT"])
        for e in entries:
            self.assertEqual((e.quantity, e.godown, e.site), (Decimal("50"), None, site))
        self.assertEqual([e.balance_after for e in entries], [Decimal("50"), Decimal("0")])
        self.assertEqual(build_inventory(material_id=self.material.id), [])

    def test_site_delivery_never_checks_stock(self):
        movements = bill_movements(SiteDestination(site=make_site()), [row(self.material, 5)])
        self.assertEqual([m.check_stock for m in movements], [True, False])

    def test_site_delivery_leaves_direct_issues_short(self):
        site = make_site()
        purchase(self.material, 10, site=site)
        with self.assertRaises(InsufficientStockError):
            issue(site, row(self.material, 1))


class PurchaseBillApiTest(TestCase):
    def setUp(self):
        self.admin = make_user()
        self.client.force_login(self.admin)
        self.company = make_company()
        self.material = make_material()
        self.godown = make_godown()
        self.site = make_site()

    def _post(self, delivered_to_type="GODOWN", delivered_to_id=None, items=None, company_id=None):
        return self.client.post(
            "/api/purchase-bills/",
            {
                "companyId": company_id or self.company.id,
                "invoiceNumber": "INV-9",
                "gstinNumber": "27ABCDE1234F1Z5",
                "billDate": "2024-01-15",
                "deliveredToType": delivered_to_type,
                "deliveredToId": delivered_to_id or self.godown.id,
                "items": items if items is not None else [item_json(self.material, 100, "350")],
            },
            content_type="application/json",
        )

    def test_create_to_godown(self):
        response = self._post()
        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertEqual((data["deliveredToType"], data["deliveredToId"]), ("GODOWN", self.godown.id))
        self.assertEqual(data["items"][0]["rate"], "350")
        self.assertEqual(data["company"]["name"], self.company.name)
        self.assertEqual(StockTransaction.objects.count(), 1)

    def test_create_to_site(self):
        response = self._post("SITE", self.site.id)
        self.assertEqual(response.status_code, 201)
        self.assertEqual(StockTransaction.objects.count(), 2)

    def test_unknown_company(self):
        response = self._post(company_id=999)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Company not found")

    def test_unknown_destination(self):
        response = self._post("SITE", 999)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Site not found")
        self.assertFalse(PurchaseBill.objects.exists())

    def test_bad_item(self):
        bad = {**item_json(self.material, 1), "quantity": "0"}
        response = self._post(items=[bad])
        self.assertEqual(response.status_code, 400)
        self.assertIn("quantity", response.json()["errors"]["items"]["0"])
        self.assertFalse(StockTransaction.objects.exists())

    def test_detail_and_list(self):
        bill_id = self._post().json()["id"]
        self.assertEqual(self.client.get(f"/api/purchase-bills/{bill_id}/").json()["invoiceNumber"], "INV-9")
        self.assertEqual(len(self.client.get("/api/purchase-bills/").json()), 1)
        self.assertEqual(self.client.get("/api/purchase-bills/999/").status_code, 404)

    def test_delete(self):
        bill_id = self._post().json()["id"]
        response = self.client.delete(f"/api/purchase-bills/{bill_id}/")
        self.assertEqual(response.status_code, 200)
        self.assertFalse(PurchaseBill.objects.exists())
        self.assertFalse(StockTransaction.objects.exists())

    def test_delete_after_issue_conflicts(self):
        bill_id = self._post().json()["id"]
        issue(self.site, row(self.material, 60), godown=self.godown)
        response = self.client.delete(f"/api/purchase-bills/{bill_id}/")
        self.assertEqual(response.status_code, 409)
        self.assertTrue(PurchaseBill.objects.filter(pk=bill_id).exists())

    def test_storekeeper_cannot_delete(self):
        bill_id = self._post().json()["id"]
        self.client.force_login(make_user("keeper@example.com", Role.STOREKEEPER))
        self.assertEqual(self.client.delete(f"/api/purchase-bills/{bill_id}/").status_code, 403)
