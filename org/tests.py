from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase

from inventory.tests import PASSWORD, make_user
from org.models import Role
from org.utils import decimal_str, get_role, snake_case_keys


class UtilsTest(SimpleTestCase):
    def test_decimal_str(self):
        self.assertEqual(decimal_str(Decimal("60.000")), "60")
        self.assertEqual(decimal_str(Decimal("12.50")), "12.5")
        self.assertEqual(decimal_str(Decimal("-0.500")), "-0.5")
        self.assertIsNone(decimal_str(None))

    def test_snake_case_keys(self):
        self.assertEqual(
            snake_case_keys({"materialId": 1, "totalInclGst": 2, "name": 3}),
            {"material_id": 1, "total_incl_gst": 2, "name": 3},
        )


class RoleTest(TestCase):
    def test_roles(self):
        self.assertEqual(get_role(make_user()), Role.ADMIN)
        self.assertEqual(get_role(make_user("k@example.com", Role.STOREKEEPER)), Role.STOREKEEPER)
        plain = get_user_model().objects.create_user(username="p", email="p@example.com", password=PASSWORD)
        self.assertEqual(get_role(plain), Role.STOREKEEPER)
        boss = get_user_model().objects.create_superuser(username="s", email="s@example.com", password=PASSWORD)
        self.assertEqual(get_role(boss), Role.ADMIN)


class AuthApiTest(TestCase):
    def setUp(self):
        self.user = make_user("Admin@Example.com")

    def test_login_profile_logout(self):
        response = self.client.post(
            "/api/auth/login", {"email": "admin@example.com", "password": PASSWORD}, content_type="application/json"
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["user"]["role"], "ADMIN")

        profile = self.client.get("/api/auth/profile").json()
        self.assertEqual(profile["id"], self.user.id)

        self.assertEqual(self.client.post("/api/auth/logout").status_code, 200)
        self.assertEqual(self.client.get("/api/auth/profile").status_code, 401)

    def test_wrong_password(self):
        response = self.client.post(
            "/api/auth/login", {"email": "admin@example.com", "password": "nope-nope"}, content_type="application/json"
        )
        self.assertEqual(response.status_code, 401)

    def test_short_password(self):
        response = self.client.post(
            "/api/auth/login", {"email": "admin@example.com", "password": "123"}, content_type="application/json"
        )
        self.assertEqual(response.status_code, 400)

    def test_invalid_json(self):
        response = self.client.post("/api/auth/login", "not json", content_type="application/json")
        self.assertEqual(response.status_code, 400)

    def test_health(self):
        self.assertEqual(self.client.get("/health").json()["status"], "OK")
