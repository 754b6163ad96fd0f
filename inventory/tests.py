"""
Tests for inventory app: reference-data API, material issues and the MI-### sequence.
Fixture helpers here are shared with the other apps' tests.
"""
from datetime import date
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase

from billing.destinations import GodownDestination, SiteDestination
from billing.services import create_purchase_bill
from inventory.models import Company, Godown, Material, MaterialIssue, Site
from inventory.services import create_material_issue, next_issue_identifier
from ledger.models import StockTransaction
from org.models import Membership, Role

PASSWORD = "secret123"


def make_user(email="admin@example.com", role=Role.ADMIN):
    user = get_user_model().objects.create_user(username=email, email=email, password=PASSWORD)
    Membership.objects.create(user=user, role=role)
    return user


def make_material(name="Cement", unit="Bags"):
    return Material.objects.create(name=name, unit=unit)


def make_godown(name="Main Godown"):
    return Godown.objects.create(name=name)


def make_site(name="Site A"):
    return Site.objects.create(name=name)


def make_company(name="ABC Construction Ltd", gstin=""):
    return Company.objects.create(name=name, gstin=gstin)


def row(material, quantity, rate="10"):
    quantity, rate = Decimal(str(quantity)), Decimal(str(rate))
    return {
        "material": material,
        "quantity": quantity,
        "unit": material.unit,
        "rate": rate,
        "gst_percent": Decimal("0"),
        "total_excl_gst": quantity * rate,
        "total_incl_gst": quantity * rate,
    }


def purchase(material, quantity, rate="10", godown=None, site=None, company=None, invoice="INV-1"):
    """Post a one-item bill to a godown (default) or straight to a site."""
    destination = SiteDestination(site=site) if site is not None else GodownDestination(godown=godown)
    return create_purchase_bill(
        company=company or Company.objects.first() or make_company(),
        invoice_number=invoice,
        bill_date=date(2024, 1, 15),
        destination=destination,
        rows=[row(material, quantity, rate)],
    )


def issue(site, *rows, godown=None):
    return create_material_issue(site=site, from_godown=godown, issue_date=date(2024, 2, 1), rows=list(rows))


def item_json(material, quantity, rate="10"):
    return {
        "materialId": material.id,
        "quantity": str(quantity),
        "unit": material.unit,
        "rate": str(rate),
        "gstPercent": "18",
        "totalExclGst": "0",
        "totalInclGst": "0",
    }


class MaterialApiTest(TestCase):
    def setUp(self):
        self.admin = make_user()
        self.keeper = make_user("keeper@example.com", Role.STOREKEEPER)

    def test_requires_login(self):
        response = self.client.get("/api/materials/")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["message"], "Authentication required")

    def test_admin_creates_and_lists(self):
        self.client.force_login(self.admin)
        response = self.client.post(
            "/api/materials/", {"name": "Cement", "unit": "Bags", "hsnSac": "2523"}, content_type="application/json"
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["hsnSac"], "2523")
        names = [m["name"] for m in self.client.get("/api/materials/").json()]
        self.assertEqual(names, ["Cement"])

    def test_storekeeper_cannot_create(self):
        self.client.force_login(self.keeper)
        response = self.client.post("/api/materials/", {"name": "Sand", "unit": "Cft"}, content_type="application/json")
        self.assertEqual(response.status_code, 403)
        self.assertFalse(Material.objects.exists())

    def test_duplicate_name_rejected(self):
        make_material("Cement")
        self.client.force_login(self.admin)
        response = self.client.post("/api/materials/", {"name": "Cement", "unit": "Bags"}, content_type="application/json")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Material with this name already exists")

    def test_partial_update_keeps_other_fields(self):
        material = make_material("Cement", "Bags")
        self.client.force_login(self.admin)
        response = self.client.put(
            f"/api/materials/{material.id}/", {"unit": "Kg"}, content_type="application/json"
        )
        self.assertEqual(response.status_code, 200)
        material.refresh_from_db()
        self.assertEqual((material.name, material.unit), ("Cement", "Kg"))

    def test_unknown_material_is_json_404(self):
        self.client.force_login(self.admin)
        response = self.client.get("/api/materials/999/")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["message"], "Material not found")

    def test_delete_refused_while_used(self):
        material = make_material()
        purchase(material, 10, godown=make_godown())
        self.client.force_login(self.admin)
        response = self.client.delete(f"/api/materials/{material.id}/")
        self.assertEqual(response.status_code, 400)
        self.assertTrue(Material.objects.filter(pk=material.pk).exists())

    def test_delete_unused(self):
        material = make_material()
        self.client.force_login(self.admin)
        response = self.client.delete(f"/api/materials/{material.id}/")
        self.assertEqual(response.status_code, 200)
        self.assertFalse(Material.objects.exists())


class BulkCreateTest(TestCase):
    def setUp(self):
        self.client.force_login(make_user())

    def test_all_created(self):
        response = self.client.post(
            "/api/materials/bulk/",
            {"materials": [{"name": "Cement", "unit": "Bags"}, {"name": "Sand", "unit": "Cft"}]},
            content_type="application/json",
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(len(response.json()["results"]["created"]), 2)
        self.assertEqual(Material.objects.count(), 2)

    def test_one_bad_row_creates_nothing(self):
        make_material("Cement")
        response = self.client.post(
            "/api/materials/bulk/",
            {"materials": [{"name": "Sand", "unit": "Cft"}, {"name": "Cement", "unit": "Bags"}]},
            content_type="application/json",
        )
        self.assertEqual(response.status_code, 400)
        errors = response.json()["results"]["errors"]
        self.assertEqual([e["name"] for e in errors], ["Cement"])
        self.assertEqual(Material.objects.count(), 1)

    def test_duplicate_inside_upload(self):
        response = self.client.post(
            "/api/materials/bulk/",
            {"materials": [{"name": "Sand", "unit": "Cft"}, {"name": "sand", "unit": "Cft"}]},
            content_type="application/json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertFalse(Material.objects.exists())

    def test_empty_upload(self):
        response = self.client.post("/api/materials/bulk/", {"materials": []}, content_type="application/json")
        self.assertEqual(response.status_code, 400)

    def test_company_gstin_collision(self):
        make_company("ABC", gstin="27ABCDE1234F1Z5")
        response = self.client.post(
            "/api/companies/bulk/",
            {"companies": [{"name": "XYZ", "gstin": "27abcde1234f1z5", "emailId": "x@example.com"}]},
            content_type="application/json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("already exists for company: ABC", response.json()["results"]["errors"][0]["error"])
        self.assertEqual(Company.objects.count(), 1)


class SiteGodownRolesTest(TestCase):
    def setUp(self):
        self.keeper = make_user("keeper@example.com", Role.STOREKEEPER)
        self.client.force_login(self.keeper)

    def test_storekeeper_creates_and_updates_site(self):
        response = self.client.post("/api/sites/", {"name": "Site A"}, content_type="application/json")
        self.assertEqual(response.status_code, 201)
        site_id = response.json()["id"]
        response = self.client.put(f"/api/sites/{site_id}/", {"address": "Downtown"}, content_type="application/json")
        self.assertEqual(response.json()["address"], "Downtown")

    def test_storekeeper_cannot_delete_godown(self):
        godown = make_godown()
        response = self.client.delete(f"/api/godowns/{godown.id}/")
        self.assertEqual(response.status_code, 403)
        self.assertTrue(Godown.objects.filter(pk=godown.pk).exists())


class MaterialIssueTest(TestCase):
    def setUp(self):
        self.material = make_material()
        self.godown = make_godown()
        self.site = make_site()
        purchase(self.material, 100, godown=self.godown)

    def test_identifiers_are_sequential(self):
        first = issue(self.site, row(self.material, 10), godown=self.godown)
        second = issue(self.site, row(self.material, 10), godown=self.godown)
        self.assertEqual((first.identifier, second.identifier), ("MI-001", "MI-002"))
        self.assertEqual(next_issue_identifier(), "MI-003")

    def test_parse_identifier(self):
        self.assertEqual(MaterialIssue.parse_identifier("MI-007"), 7)
        self.assertEqual(MaterialIssue.parse_identifier("MI-1234"), 1234)
        self.assertIsNone(MaterialIssue.parse_identifier("X-1"))

    def test_issue_posts_out_rows_with_site(self):
        created = issue(self.site, row(self.material, 30), godown=self.godown)
        out = StockTransaction.objects.get(reference_table="material_issues", reference_id=created.id)
        self.assertEqual((out.tx_type, out.godown, out.site), ("OUT", self.godown, self.site))
        self.assertEqual(out.quantity, Decimal("30"))
        self.assertEqual(out.balance_after, Decimal("70"))


class MaterialIssueApiTest(TestCase):
    def setUp(self):
        self.admin = make_user()
        self.client.force_login(self.admin)
        self.material = make_material()
        self.godown = make_godown()
        self.site = make_site()
        purchase(self.material, 20, godown=self.godown)

    def _post(self, items, godown=True):
        body = {"siteId": self.site.id, "issueDate": "2024-02-01", "items": items}
        if godown:
            body["fromGodownId"] = self.godown.id
        return self.client.post("/api/material-issues/", body, content_type="application/json")

    def test_create(self):
        response = self._post([item_json(self.material, 20)])
        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertEqual(data["identifier"], "MI-001")
        self.assertEqual(data["items"][0]["quantity"], "20")
        self.assertEqual(data["createdBy"]["email"], self.admin.email)

    def test_insufficient_stock(self):
        response = self._post([item_json(self.material, 30)])
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "insufficient_stock")
        self.assertIn("Available: 20", response.json()["message"])
        self.assertFalse(MaterialIssue.objects.exists())

    def test_unknown_material(self):
        response = self._post([{**item_json(self.material, 1), "materialId": 999}])
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "One or more materials not found")

    def test_unknown_site(self):
        response = self.client.post(
            "/api/material-issues/",
            {"siteId": 999, "issueDate": "2024-02-01", "items": [item_json(self.material, 1)]},
            content_type="application/json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Site not found")

    def test_missing_items(self):
        response = self._post([])
        self.assertEqual(response.status_code, 400)
        self.assertIn("items", response.json()["errors"])

    def test_delete_restores_stock(self):
        created = self._post([item_json(self.material, 15)]).json()
        response = self.client.delete(f"/api/material-issues/{created['id']}/")
        self.assertEqual(response.status_code, 200)
        self.assertFalse(StockTransaction.objects.filter(reference_table="material_issues").exists())
        self.assertEqual(self._post([item_json(self.material, 20)]).status_code, 201)

    def test_storekeeper_cannot_delete(self):
        created = self._post([item_json(self.material, 5)]).json()
        self.client.force_login(make_user("keeper@example.com", Role.STOREKEEPER))
        response = self.client.delete(f"/api/material-issues/{created['id']}/")
        self.assertEqual(response.status_code, 403)
