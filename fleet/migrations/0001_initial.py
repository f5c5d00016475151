import uuid

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("hr", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Insurance",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("policy_number", models.CharField(max_length=64, unique=True)),
                (
                    "provider",
                    models.CharField(
                        choices=[
                            ("enterprise insurance", "Enterprise Insurance"),
                            ("alliance insurance", "Alliance Insurance"),
                            ("united insurance", "United Insurance"),
                            ("global insurance", "Global Insurance"),
                            ("sic insurance", "SIC Insurance"),
                            ("star assurance", "Star Assurance"),
                            ("allianz", "Allianz"),
                            ("axa", "AXA"),
                            ("metlife", "MetLife"),
                            ("prudential", "Prudential"),
                            ("other", "Other"),
                        ],
                        max_length=64,
                    ),
                ),
                (
                    "coverage_amount",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=14,
                        validators=[django.core.validators.MinValueValidator(0)],
                    ),
                ),
                (
                    "insurance_type",
                    models.CharField(
                        choices=[
                            ("health", "Health"),
                            ("life", "Life"),
                            ("auto", "Auto"),
                            ("home", "Home"),
                            ("travel", "Travel"),
                            ("business", "Business"),
                        ],
                        max_length=16,
                    ),
                ),
                (
                    "auto_insurance_type",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("comprehensive", "Comprehensive"),
                            ("third_party", "Third Party"),
                            ("third_party_fire", "Third Party, Fire and Theft"),
                        ],
                        max_length=32,
                        null=True,
                    ),
                ),
                ("description", models.TextField(blank=True, default="")),
                ("start_date", models.DateField()),
                ("end_date", models.DateField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["end_date"],
                "indexes": [
                    models.Index(fields=["insurance_type", "end_date"], name="insurance_type_end_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="RoadWorth",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("certificate_number", models.CharField(max_length=64, unique=True)),
                ("issued_by", models.CharField(default="dvla", max_length=128)),
                ("notes", models.TextField(blank=True, default="")),
                ("start_date", models.DateField()),
                ("end_date", models.DateField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["end_date"],
                "indexes": [
                    models.Index(fields=["issued_by", "end_date"], name="roadworth_issuer_end_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Vehicle",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("registration_number", models.CharField(max_length=32, unique=True)),
                ("vin", models.CharField(max_length=32, unique=True)),
                ("make", models.CharField(max_length=64)),
                ("model", models.CharField(max_length=64)),
                (
                    "year",
                    models.PositiveSmallIntegerField(
                        validators=[
                            django.core.validators.MinValueValidator(1900),
                            django.core.validators.MaxValueValidator(2100),
                        ]
                    ),
                ),
                (
                    "vehicle_type",
                    models.CharField(
                        choices=[
                            ("sedan", "Sedan"),
                            ("suv", "SUV"),
                            ("truck", "Truck"),
                            ("van", "Van"),
                            ("pickup", "Pickup"),
                            ("minivan", "Minivan"),
                            ("bus", "Bus"),
                            ("motorcycle", "Motorcycle"),
                            ("utility", "Utility"),
                        ],
                        max_length=16,
                    ),
                ),
                (
                    "fuel_type",
                    models.CharField(
                        choices=[
                            ("diesel", "Diesel"),
                            ("petrol", "Petrol"),
                            ("electric", "Electric"),
                            ("hybrid", "Hybrid"),
                            ("cng", "Compressed Natural Gas"),
                            ("lpg", "Liquefied Petroleum Gas"),
                        ],
                        max_length=16,
                    ),
                ),
                (
                    "transmission",
                    models.CharField(
                        choices=[
                            ("automatic", "Automatic"),
                            ("manual", "Manual"),
                            ("semi_automatic", "Semi-automatic"),
                            ("cvt", "CVT"),
                        ],
                        max_length=16,
                    ),
                ),
                (
                    "seating_capacity",
                    models.PositiveSmallIntegerField(
                        default=1,
                        validators=[django.core.validators.MinValueValidator(1)],
                    ),
                ),
                (
                    "weight",
                    models.DecimalField(
                        decimal_places=2,
                        default=0,
                        max_digits=10,
                        validators=[django.core.validators.MinValueValidator(0)],
                    ),
                ),
                ("color", models.CharField(blank=True, default="", max_length=32)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("available", "Available"),
                            ("in_use", "In Use"),
                            ("maintenance", "Maintenance"),
                            ("out_of_service", "Out of Service"),
                            ("retired", "Retired"),
                        ],
                        default="available",
                        max_length=16,
                    ),
                ),
                ("pool_vehicle", models.BooleanField(default=True)),
                ("mileage", models.PositiveIntegerField(default=0)),
                ("notes", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "assigned_driver",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="assigned_vehicles",
                        to="hr.employee",
                    ),
                ),
                (
                    "insurance",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="vehicles",
                        to="fleet.insurance",
                    ),
                ),
                (
                    "road_worth",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="vehicles",
                        to="fleet.roadworth",
                    ),
                ),
            ],
            options={
                "ordering": ["registration_number"],
                "indexes": [
                    models.Index(fields=["status", "pool_vehicle"], name="vehicle_status_pool_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="VehicleDriverLog",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("vehicle_location", models.CharField(blank=True, default="", max_length=255)),
                ("assignment_start_date", models.DateTimeField(default=django.utils.timezone.now)),
                ("assignment_end_date", models.DateTimeField(blank=True, null=True)),
                ("reason", models.CharField(blank=True, default="", max_length=255)),
                ("odometer_start", models.PositiveIntegerField(blank=True, null=True)),
                ("odometer_end", models.PositiveIntegerField(blank=True, null=True)),
                ("notes", models.TextField(blank=True, default="")),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Active"), ("completed", "Completed"), ("terminated", "Terminated")],
                        default="active",
                        max_length=16,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "employee",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="vehicle_logs",
                        to="hr.employee",
                    ),
                ),
                (
                    "vehicle",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="driver_logs",
                        to="fleet.vehicle",
                    ),
                ),
            ],
            options={
                "ordering": ["-assignment_start_date"],
                "indexes": [
                    models.Index(fields=["vehicle", "status"], name="driverlog_vehicle_status_idx"),
                    models.Index(fields=["employee", "status"], name="driverlog_employee_status_idx"),
                ],
            },
        ),
    ]
