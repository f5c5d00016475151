from datetime import timedelta

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from fleet.models import Insurance, RoadWorth, Vehicle, VehicleDriverLog
from hr.models import Employee


class FleetTestMixin:
    def setUp(self):
        self.client = APIClient()
        self.user_model = get_user_model()
        self.manager = self.user_model.objects.create_user(
            username="fleet-manager",
            email="fleet-manager@example.com",
            password="pass1234",
            role="manager",
        )
        self.client.force_authenticate(user=self.manager)
        self.driver = Employee.objects.create(
            staff_number="EMP-00001",
            first_name="Ama",
            last_name="Owusu",
            email="ama@example.com",
            is_driver=True,
        )
        self.vehicle = Vehicle.objects.create(
            registration_number="GR-1234-22",
            vin="1HGCM82633A004352",
            make="Toyota",
            model="Hilux",
            year=2022,
            vehicle_type=Vehicle.VehicleType.PICKUP,
            fuel_type=Vehicle.FuelType.DIESEL,
            transmission=Vehicle.Transmission.MANUAL,
            mileage=1000,
        )


class InsuranceApiTests(FleetTestMixin, TestCase):
    def insurance_payload(self, **overrides):
        payload = {
            "policy_number": "POL-001",
            "provider": "Allianz",
            "coverage_amount": "25000.00",
            "insurance_type": "AUTO",
            "auto_insurance_type": "Comprehensive",
            "description": "Fleet Cover",
            "start_date": "2026-01-01",
            "end_date": "2026-12-31",
        }
        payload.update(overrides)
        return payload

    def test_create_lowercases_enums_and_description(self):
        response = self.client.post("/api/v1/insurance/", self.insurance_payload(), format="json")

        self.assertEqual(response.status_code, 201, response.content)
        body = response.json()
        self.assertEqual(body["provider"], "allianz")
        self.assertEqual(body["insurance_type"], "auto")
        self.assertEqual(body["auto_insurance_type"], "comprehensive")
        self.assertEqual(body["description"], "fleet cover")

    def test_duplicate_policy_number_is_conflict(self):
        self.client.post("/api/v1/insurance/", self.insurance_payload(), format="json")

        response = self.client.post("/api/v1/insurance/", self.insurance_payload(policy_number="pol-001"), format="json")

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["message"], "Insurance policy already exists.")
        self.assertEqual(Insurance.objects.count(), 1)

    def test_start_date_must_precede_end_date(self):
        response = self.client.post(
            "/api/v1/insurance/",
            self.insurance_payload(start_date="2026-12-31", end_date="2026-01-01"),
            format="json",
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Start date must be before end date")

    def test_auto_policy_requires_auto_type(self):
        response = self.client.post("/api/v1/insurance/", self.insurance_payload(auto_insurance_type=None), format="json")

        self.assertEqual(response.status_code, 400)
        self.assertIn("auto_insurance_type", response.json()["errors"])

    def test_by_type_and_expiring_lookups(self):
        self.client.post("/api/v1/insurance/", self.insurance_payload(), format="json")
        self.client.post(
            "/api/v1/insurance/",
            self.insurance_payload(policy_number="POL-002", insurance_type="health", auto_insurance_type=None, end_date="2027-06-30"),
            format="json",
        )

        by_type = self.client.get("/api/v1/insurance/by-type/AUTO/")
        self.assertEqual(by_type.status_code, 200)
        self.assertEqual([row["policy_number"] for row in by_type.json()["results"]], ["POL-001"])

        expiring = self.client.get("/api/v1/insurance/expiring/", {"start_date": "2026-12-01", "end_date": "2026-12-31"})
        self.assertEqual(expiring.status_code, 200)
        self.assertEqual(expiring.json()["count"], 1)

        missing = self.client.get("/api/v1/insurance/expiring/", {"start_date": "2026-12-01"})
        self.assertEqual(missing.status_code, 400)
        self.assertIn("end_date", missing.json()["errors"])


class RoadWorthApiTests(FleetTestMixin, TestCase):
    def test_duplicate_certificate_rejected(self):
        payload = {"certificate_number": "RW-77", "issued_by": "DVLA", "start_date": "2026-01-01", "end_date": "2027-01-01"}
        first = self.client.post("/api/v1/road-worth/", payload, format="json")
        self.assertEqual(first.status_code, 201, first.content)
        self.assertEqual(first.json()["issued_by"], "dvla")

        second = self.client.post("/api/v1/road-worth/", payload, format="json")

        self.assertEqual(second.status_code, 400)
        self.assertEqual(second.json()["errors"]["certificate_number"], ["Certificate number already exists."])

    def test_end_date_must_follow_start_date(self):
        response = self.client.post(
            "/api/v1/road-worth/",
            {"certificate_number": "RW-78", "start_date": "2026-05-01", "end_date": "2026-05-01"},
            format="json",
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "End date must be after start date.")

    def test_expiring_window_and_issuer_lookup(self):
        today = timezone.localdate()
        RoadWorth.objects.create(certificate_number="RW-1", start_date=today - timedelta(days=300), end_date=today + timedelta(days=10))
        RoadWorth.objects.create(certificate_number="RW-2", start_date=today - timedelta(days=100), end_date=today + timedelta(days=90))
        RoadWorth.objects.create(
            certificate_number="RW-3",
            issued_by="police mtts",
            start_date=today - timedelta(days=400),
            end_date=today - timedelta(days=5),
        )

        expiring = self.client.get("/api/v1/road-worth/expiring/")
        self.assertEqual([row["certificate_number"] for row in expiring.json()["results"]], ["RW-1"])

        wider = self.client.get("/api/v1/road-worth/expiring/", {"days": "120"})
        self.assertEqual(wider.json()["count"], 2)

        by_issuer = self.client.get("/api/v1/road-worth/issuer/Police%20MTTS/")
        self.assertEqual([row["certificate_number"] for row in by_issuer.json()["results"]], ["RW-3"])


class VehicleApiTests(FleetTestMixin, TestCase):
    def test_create_normalizes_identifiers(self):
        response = self.client.post(
            "/api/v1/vehicles/",
            {
                "registration_number": " gt-555-23 ",
                "vin": "jh4ka7561pc008269",
                "make": "Nissan",
                "model": "Urvan",
                "year": 2023,
                "vehicle_type": "VAN",
                "fuel_type": "Diesel",
                "transmission": "manual",
            },
            format="json",
        )

        self.assertEqual(response.status_code, 201, response.content)
        body = response.json()
        self.assertEqual(body["registration_number"], "GT-555-23")
        self.assertEqual(body["vin"], "JH4KA7561PC008269")
        self.assertEqual(body["vehicle_type"], "van")
        self.assertEqual(body["status"], "available")

    def test_mileage_cannot_decrease(self):
        response = self.client.patch(f"/api/v1/vehicles/{self.vehicle.id}/mileage/", {"mileage": 900}, format="json")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "New mileage cannot be less than current mileage")
        self.vehicle.refresh_from_db()
        self.assertEqual(self.vehicle.mileage, 1000)

        ok = self.client.patch(f"/api/v1/vehicles/{self.vehicle.id}/mileage/", {"mileage": 1500}, format="json")
        self.assertEqual(ok.status_code, 200)
        self.assertEqual(ok.json()["mileage"], 1500)

    def test_update_rejects_mileage_decrease(self):
        response = self.client.patch(f"/api/v1/vehicles/{self.vehicle.id}/", {"mileage": 10}, format="json")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "business_rule_violation")

    def test_status_endpoint_validates_enum(self):
        bad = self.client.patch(f"/api/v1/vehicles/{self.vehicle.id}/status/", {"status": "flying"}, format="json")
        self.assertEqual(bad.status_code, 400)

        ok = self.client.patch(f"/api/v1/vehicles/{self.vehicle.id}/status/", {"status": "MAINTENANCE"}, format="json")
        self.assertEqual(ok.status_code, 200)
        self.assertEqual(ok.json()["status"], "maintenance")

        listed = self.client.get("/api/v1/vehicles/status/maintenance/")
        self.assertEqual(listed.json()["count"], 1)

    def test_assign_and_unassign_driver_track_logs(self):
        assigned = self.client.post(
            f"/api/v1/vehicles/{self.vehicle.id}/assign-driver/",
            {"employee": str(self.driver.id), "vehicle_location": "Head Office", "reason": "Site Visits"},
            format="json",
        )

        self.assertEqual(assigned.status_code, 200, assigned.content)
        self.assertEqual(assigned.json()["vehicle"]["status"], "in_use")
        self.assertEqual(assigned.json()["log"]["reason"], "site visits")
        log = VehicleDriverLog.objects.get(vehicle=self.vehicle)
        self.assertEqual(log.status, VehicleDriverLog.Status.ACTIVE)
        self.assertEqual(log.odometer_start, 1000)

        by_driver = self.client.get(f"/api/v1/vehicles/driver/{self.driver.id}/")
        self.assertEqual(by_driver.json()["count"], 1)

        unassigned = self.client.post(f"/api/v1/vehicles/{self.vehicle.id}/unassign-driver/")

        self.assertEqual(unassigned.status_code, 200)
        self.assertIsNone(unassigned.json()["assigned_driver"])
        self.assertEqual(unassigned.json()["status"], "available")
        log.refresh_from_db()
        self.assertEqual(log.status, VehicleDriverLog.Status.COMPLETED)
        self.assertEqual(log.odometer_end, 1000)
        self.assertIsNotNone(log.assignment_end_date)

    def test_assign_requires_active_employee(self):
        self.driver.status = Employee.Status.TERMINATED
        self.driver.termination_date = timezone.localdate()
        self.driver.save()

        response = self.client.post(
            f"/api/v1/vehicles/{self.vehicle.id}/assign-driver/",
            {"employee": str(self.driver.id)},
            format="json",
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Only active employees can be assigned to a vehicle")
        self.assertFalse(VehicleDriverLog.objects.exists())

    def test_unassign_without_driver_rejected(self):
        response = self.client.post(f"/api/v1/vehicles/{self.vehicle.id}/unassign-driver/")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Vehicle has no assigned driver")

    def test_pool_available_excludes_busy_vehicles(self):
        Vehicle.objects.create(
            registration_number="GR-9999-21",
            vin="2HGCM82633A004353",
            make="Ford",
            model="Ranger",
            year=2021,
            vehicle_type=Vehicle.VehicleType.PICKUP,
            fuel_type=Vehicle.FuelType.DIESEL,
            transmission=Vehicle.Transmission.AUTOMATIC,
            status=Vehicle.Status.IN_USE,
        )

        response = self.client.get("/api/v1/vehicles/pool/available/")

        self.assertEqual([row["registration_number"] for row in response.json()["results"]], ["GR-1234-22"])

    def test_staff_cannot_create_vehicles(self):
        staff = self.user_model.objects.create_user(username="fleet-staff", email="fleet-staff@example.com", password="pass1234")
        self.client.force_authenticate(user=staff)

        with self.assertLogs("security.authorization", level="WARNING") as captured:
            response = self.client.post("/api/v1/vehicles/", {"registration_number": "X"}, format="json")

        self.assertEqual(response.status_code, 403)
        self.assertTrue(any("capability=fleet.manage" in line for line in captured.output))


class VehicleDriverLogApiTests(FleetTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.log = VehicleDriverLog.objects.create(vehicle=self.vehicle, employee=self.driver, odometer_start=1000)

    def test_complete_log_moves_vehicle_mileage_forward(self):
        response = self.client.post(
            f"/api/v1/vehicle-driver-logs/{self.log.id}/complete/",
            {"odometer_end": 1250, "notes": "Returned Clean"},
            format="json",
        )

        self.assertEqual(response.status_code, 200, response.content)
        self.assertEqual(response.json()["status"], "completed")
        self.assertEqual(response.json()["notes"], "returned clean")
        self.vehicle.refresh_from_db()
        self.assertEqual(self.vehicle.mileage, 1250)

    def test_complete_rejects_lower_odometer(self):
        response = self.client.post(f"/api/v1/vehicle-driver-logs/{self.log.id}/complete/", {"odometer_end": 999}, format="json")

        self.assertEqual(response.status_code, 400)
        self.log.refresh_from_db()
        self.assertEqual(self.log.status, VehicleDriverLog.Status.ACTIVE)

    def test_complete_only_active_logs(self):
        self.log.status = VehicleDriverLog.Status.COMPLETED
        self.log.save()

        response = self.client.post(f"/api/v1/vehicle-driver-logs/{self.log.id}/complete/", {"odometer_end": 1100}, format="json")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Only active logs can be completed")

    def test_lookup_routes(self):
        by_vehicle = self.client.get(f"/api/v1/vehicle-driver-logs/vehicle/{self.vehicle.id}/")
        by_employee = self.client.get(f"/api/v1/vehicle-driver-logs/employee/{self.driver.id}/")
        active = self.client.get("/api/v1/vehicle-driver-logs/active/")

        self.assertEqual(by_vehicle.json()["count"], 1)
        self.assertEqual(by_employee.json()["count"], 1)
        self.assertEqual(active.json()["results"][0]["id"], str(self.log.id))
