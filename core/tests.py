import json
import logging
from io import StringIO

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.core.management import call_command
from django.test import TestCase
from rest_framework.test import APIClient

from common.logging import JsonFormatter
from fleet.models import Vehicle
from hr.models import Employee
from inventory.models import InventoryItem, StockTransaction


class AuthenticationTests(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.user_model = get_user_model()
        self.user = self.user_model.objects.create_user(
            username="dispatcher",
            email="Dispatcher@Example.com",
            password="pass1234",
            role="manager",
        )

    def login(self, username, password="pass1234"):
        return self.client.post("/api/v1/auth/login/", {"username": username, "password": password}, format="json")

    def test_email_is_lowercased_on_save(self):
        self.user.refresh_from_db()
        self.assertEqual(self.user.email, "dispatcher@example.com")

    def test_login_accepts_username_or_email(self):
        by_username = self.login("dispatcher")
        by_email = self.login("DISPATCHER@example.com")

        self.assertEqual(by_username.status_code, 200, by_username.content)
        self.assertEqual(by_email.status_code, 200, by_email.content)
        self.assertIn("access", by_email.json())
        self.assertIn("refresh", by_email.json())

    def test_bad_credentials_use_error_envelope(self):
        response = self.login("dispatcher", password="wrong-pass")

        self.assertEqual(response.status_code, 401)
        body = response.json()
        self.assertFalse(body["success"])
        self.assertEqual(body["code"], "authentication_failed")
        self.assertEqual(body["status"], 401)

    def test_me_returns_profile_with_bearer_token(self):
        access = self.login("dispatcher").json()["access"]
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {access}")

        response = self.client.get("/api/v1/auth/me/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["username"], "dispatcher")
        self.assertEqual(response.json()["role"], "manager")

    def test_logout_blacklists_refresh_token(self):
        tokens = self.login("dispatcher").json()
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['access']}")

        logout = self.client.post("/api/v1/auth/logout/", {"refresh": tokens["refresh"]}, format="json")
        self.assertEqual(logout.status_code, 200)

        refresh = self.client.post("/api/v1/auth/refresh/", {"refresh": tokens["refresh"]}, format="json")
        self.assertEqual(refresh.status_code, 401)

    def test_anonymous_request_is_rejected_with_envelope(self):
        response = self.client.get("/api/v1/inventory-items/")

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["code"], "not_authenticated")


class UserAdminTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.user_model = get_user_model()
        self.superadmin = self.user_model.objects.create_user(
            username="root-admin",
            email="root@example.com",
            password="pass1234",
            role="superadmin",
        )
        self.admin = self.user_model.objects.create_user(
            username="plain-admin",
            email="plain-admin@example.com",
            password="pass1234",
            role="admin",
        )

    def test_only_superadmin_manages_users(self):
        self.client.force_authenticate(user=self.admin)
        with self.assertLogs("security.authorization", level="WARNING") as captured:
            denied = self.client.get("/api/v1/admin/users/")

        self.assertEqual(denied.status_code, 403)
        self.assertTrue(any("capability=user.manage" in line for line in captured.output))

        self.client.force_authenticate(user=self.superadmin)
        allowed = self.client.get("/api/v1/admin/users/")
        self.assertEqual(allowed.status_code, 200)
        self.assertEqual(allowed.json()["count"], 2)

    def test_create_rejects_duplicate_email_case_insensitively(self):
        self.client.force_authenticate(user=self.superadmin)

        response = self.client.post(
            "/api/v1/admin/users/",
            {"username": "another", "email": "PLAIN-ADMIN@example.com", "password": "long-enough-pass-1", "role": "staff"},
            format="json",
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["errors"]["email"], ["A user with this email already exists."])

    def test_superadmin_cannot_delete_self(self):
        self.client.force_authenticate(user=self.superadmin)

        response = self.client.delete(f"/api/v1/admin/users/{self.superadmin.id}/")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "You cannot delete your own account.")


class ObservabilityTests(TestCase):
    def test_health_probes_echo_request_id(self):
        client = APIClient()

        health = client.get("/api/v1/healthz/", HTTP_X_REQUEST_ID="req-123")
        ready = client.get("/api/v1/readyz/")

        self.assertEqual(health.status_code, 200)
        self.assertEqual(health.json()["request_id"], "req-123")
        self.assertEqual(health["X-Request-ID"], "req-123")
        self.assertEqual(ready.json()["status"], "ready")
        self.assertTrue(ready["X-Request-ID"])

    def test_mutations_write_audit_lines(self):
        client = APIClient()
        manager = get_user_model().objects.create_user(username="audit-manager", password="pass1234", role="manager")
        client.force_authenticate(user=manager)

        with self.assertLogs("audit", level="INFO") as captured:
            response = client.post(
                "/api/v1/employees/",
                {"first_name": "Efua", "last_name": "Darko", "email": "efua@example.com"},
                format="json",
                HTTP_X_REQUEST_ID="req-audit",
            )

        self.assertEqual(response.status_code, 201, response.content)
        record = captured.records[0]
        self.assertEqual(record.getMessage(), "employee_created")
        self.assertEqual(record.entity_id, response.json()["id"])
        self.assertEqual(record.request_id, "req-audit")

    def test_json_formatter_keeps_structured_fields(self):
        record = logging.LogRecord("inventory.services", logging.INFO, __file__, 1, "stock_adjusted", None, None)
        record.entity_id = "abc"
        record.request_id = "req-9"

        payload = json.loads(JsonFormatter().format(record))

        self.assertEqual(payload["message"], "stock_adjusted")
        self.assertEqual(payload["logger"], "inventory.services")
        self.assertEqual(payload["entity_id"], "abc")
        self.assertEqual(payload["request_id"], "req-9")
        self.assertNotIn("status_code", payload)


class SeedDemoDataCommandTests(TestCase):
    def test_seed_is_idempotent(self):
        call_command("seed_demo_data", stdout=StringIO())
        call_command("seed_demo_data", stdout=StringIO())

        self.assertEqual(get_user_model().objects.count(), 3)
        self.assertEqual(InventoryItem.objects.count(), 3)
        self.assertEqual(StockTransaction.objects.count(), 3)
        self.assertEqual(InventoryItem.objects.get(item_code="OIL-5W30").quantity_in_stock, 40)
        self.assertEqual(Employee.objects.filter(is_driver=True).count(), 1)
        self.assertEqual(Vehicle.objects.count(), 2)
