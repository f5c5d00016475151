from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework.test import APIClient

from hr.models import Employee


class EmployeeApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.user_model = get_user_model()
        self.manager = self.user_model.objects.create_user(
            username="hr-manager",
            email="hr-manager@example.com",
            password="pass1234",
            role="manager",
        )
        self.client.force_authenticate(user=self.manager)

    def employee_payload(self, **overrides):
        payload = {
            "first_name": " Yaw ",
            "last_name": "Boateng",
            "email": "Yaw.Boateng@Example.com",
            "position": "Dispatcher",
            "department": "Logistics",
        }
        payload.update(overrides)
        return payload

    def test_staff_numbers_follow_highest_existing(self):
        first = self.client.post("/api/v1/employees/", self.employee_payload(), format="json")
        second = self.client.post("/api/v1/employees/", self.employee_payload(email="efua@example.com"), format="json")

        self.assertEqual(first.status_code, 201, first.content)
        self.assertEqual(first.json()["staff_number"], "EMP-00001")
        self.assertEqual(first.json()["first_name"], "Yaw")
        self.assertEqual(first.json()["email"], "yaw.boateng@example.com")
        self.assertEqual(second.json()["staff_number"], "EMP-00002")

    def test_staff_number_cannot_be_supplied(self):
        Employee.objects.create(staff_number="EMP-00041", first_name="Old", last_name="Hand", email="old@example.com")

        response = self.client.post("/api/v1/employees/", self.employee_payload(staff_number="EMP-99999"), format="json")

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["staff_number"], "EMP-00042")

    def test_duplicate_email_rejected_case_insensitively(self):
        self.client.post("/api/v1/employees/", self.employee_payload(), format="json")

        response = self.client.post("/api/v1/employees/", self.employee_payload(email="YAW.BOATENG@example.com"), format="json")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["errors"]["email"], ["Employee with this email already exists"])

    def test_terminated_status_requires_termination_date(self):
        response = self.client.post("/api/v1/employees/", self.employee_payload(status="terminated"), format="json")

        self.assertEqual(response.status_code, 400)
        self.assertIn("termination_date", response.json()["errors"])

        ok = self.client.post(
            "/api/v1/employees/",
            self.employee_payload(status="terminated", termination_date="2026-03-31"),
            format="json",
        )
        self.assertEqual(ok.status_code, 201, ok.content)

    def test_drivers_lists_active_drivers_only(self):
        Employee.objects.create(staff_number="EMP-00001", first_name="Kofi", last_name="Asante", email="kofi@example.com", is_driver=True)
        Employee.objects.create(
            staff_number="EMP-00002",
            first_name="Esi",
            last_name="Mensah",
            email="esi@example.com",
            is_driver=True,
            status=Employee.Status.ON_LEAVE,
        )
        Employee.objects.create(staff_number="EMP-00003", first_name="Abena", last_name="Ofori", email="abena@example.com")

        response = self.client.get("/api/v1/employees/drivers/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual([row["email"] for row in response.json()["results"]], ["kofi@example.com"])

    def test_search_and_status_filters(self):
        Employee.objects.create(staff_number="EMP-00001", first_name="Kofi", last_name="Asante", email="kofi@example.com")
        Employee.objects.create(
            staff_number="EMP-00002",
            first_name="Esi",
            last_name="Mensah",
            email="esi@example.com",
            status=Employee.Status.ON_LEAVE,
        )

        self.assertEqual(self.client.get("/api/v1/employees/", {"search": "asan"}).json()["count"], 1)
        self.assertEqual(self.client.get("/api/v1/employees/", {"status": "ON_LEAVE"}).json()["count"], 1)

    def test_staff_cannot_delete_employees(self):
        employee = Employee.objects.create(staff_number="EMP-00001", first_name="Kofi", last_name="Asante", email="kofi@example.com")
        staff = self.user_model.objects.create_user(username="hr-staff", email="hr-staff@example.com", password="pass1234")
        self.client.force_authenticate(user=staff)

        with self.assertLogs("security.authorization", level="WARNING") as captured:
            response = self.client.delete(f"/api/v1/employees/{employee.id}/")

        self.assertEqual(response.status_code, 403)
        self.assertTrue(any("capability=hr.delete" in line for line in captured.output))
        self.assertTrue(Employee.objects.filter(pk=employee.pk).exists())
