from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from fleet.models import Insurance, RoadWorth, Vehicle
from hr.models import Employee
from inventory.models import InventoryCategory, InventoryItem, ItemSupplier, Location, Supplier, TaxRate
from inventory.services import seed_initial_stock


class Command(BaseCommand):
    help = "Seed demo fleet/HR/inventory data for local development."

    def _user(self, username, role, password, **extra):
        User = get_user_model()
        user, created = User.objects.get_or_create(
            username=username,
            defaults={"email": f"{username}@example.com", "role": role, "is_active": True, **extra},
        )
        if created:
            user.set_password(password)
            user.save(update_fields=["password"])
        return user

    @transaction.atomic
    def handle(self, *args, **options):
        User = get_user_model()
        admin_user = self._user("admin", User.Role.SUPERADMIN, "admin1234", is_staff=True, is_superuser=True)
        self._user("manager", User.Role.MANAGER, "manager1234")
        self._user("staff", User.Role.STAFF, "staff1234")

        parts, _ = InventoryCategory.objects.get_or_create(name="Spare Parts", defaults={"description": "Vehicle spare parts"})
        filters, _ = InventoryCategory.objects.get_or_create(name="Filters", defaults={"parent_category": parts})
        lubricants, _ = InventoryCategory.objects.get_or_create(name="Lubricants")

        vat, _ = TaxRate.objects.get_or_create(name="VAT", defaults={"rate": Decimal("15.000"), "applies_to": TaxRate.AppliesTo.BOTH})
        supplier, _ = Supplier.objects.get_or_create(
            name="Accra Auto Parts",
            defaults={"email": "sales@accra-auto.example", "phone": "+233300000001"},
        )

        catalogue = [
            ("OIL-5W30", "Engine oil 5W30, 4L", lubricants, Decimal("32.00"), Decimal("45.00"), 40, Location.WAREHOUSE),
            ("FLT-OIL-01", "Oil filter", filters, Decimal("6.50"), Decimal("12.00"), 25, Location.RETAIL_STORE),
            ("FLT-AIR-01", "Air filter", filters, Decimal("9.00"), Decimal("18.00"), 4, Location.RETAIL_STORE),
        ]
        for code, description, category, unit_cost, retail_price, opening, location in catalogue:
            item, created = InventoryItem.objects.get_or_create(
                item_code=code,
                defaults={
                    "item_description": description,
                    "category": category,
                    "unit_cost": unit_cost,
                    "retail_price": retail_price,
                    "sale_taxable": True,
                    "tax_rate": vat,
                    "reorder_level": 5,
                    "reorder_quantity": 20,
                },
            )
            if created:
                ItemSupplier.objects.create(item=item, supplier=supplier, supplier_item_code=f"AAP-{code}", lead_time_days=3)
                seed_initial_stock(item, quantity=opening, location=location, user=admin_user)

        driver, _ = Employee.objects.get_or_create(
            staff_number="EMP-00001",
            defaults={
                "first_name": "Kofi",
                "last_name": "Asante",
                "email": "kofi.asante@example.com",
                "position": "Driver",
                "department": "Logistics",
                "is_driver": True,
                "license_number": "DL-0001",
            },
        )
        Employee.objects.get_or_create(
            staff_number="EMP-00002",
            defaults={
                "first_name": "Ama",
                "last_name": "Owusu",
                "email": "ama.owusu@example.com",
                "position": "Fleet Officer",
                "department": "Logistics",
            },
        )

        today = timezone.localdate()
        insurance, _ = Insurance.objects.get_or_create(
            policy_number="POL-DEMO-001",
            defaults={
                "provider": Insurance.Provider.ENTERPRISE,
                "coverage_amount": Decimal("50000.00"),
                "insurance_type": Insurance.InsuranceType.AUTO,
                "auto_insurance_type": Insurance.AutoInsuranceType.COMPREHENSIVE,
                "start_date": today - timedelta(days=30),
                "end_date": today + timedelta(days=335),
            },
        )
        road_worth, _ = RoadWorth.objects.get_or_create(
            certificate_number="RW-DEMO-001",
            defaults={"start_date": today - timedelta(days=30), "end_date": today + timedelta(days=20)},
        )
        Vehicle.objects.get_or_create(
            registration_number="GR-1234-22",
            defaults={
                "vin": "1HGCM82633A004352",
                "make": "Toyota",
                "model": "Hilux",
                "year": 2022,
                "vehicle_type": Vehicle.VehicleType.PICKUP,
                "fuel_type": Vehicle.FuelType.DIESEL,
                "transmission": Vehicle.Transmission.MANUAL,
                "mileage": 18250,
                "insurance": insurance,
                "road_worth": road_worth,
            },
        )
        Vehicle.objects.get_or_create(
            registration_number="GT-5555-23",
            defaults={
                "vin": "JH4KA7561PC008269",
                "make": "Nissan",
                "model": "Urvan",
                "year": 2023,
                "vehicle_type": Vehicle.VehicleType.VAN,
                "fuel_type": Vehicle.FuelType.DIESEL,
                "transmission": Vehicle.Transmission.MANUAL,
                "seating_capacity": 15,
                "pool_vehicle": False,
                "mileage": 4200,
            },
        )

        self.stdout.write(self.style.SUCCESS("Demo data seeded successfully."))
        self.stdout.write("Credentials: admin/admin1234, manager/manager1234, staff/staff1234")
        self.stdout.write(f"Driver: {driver.staff_number} | Items: {InventoryItem.objects.count()} | Vehicles: {Vehicle.objects.count()}")
