import uuid

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

from hr.models import Employee


class Insurance(models.Model):
    class Provider(models.TextChoices):
        ENTERPRISE = "enterprise insurance", "Enterprise Insurance"
        ALLIANCE = "alliance insurance", "Alliance Insurance"
        UNITED = "united insurance", "United Insurance"
        GLOBAL = "global insurance", "Global Insurance"
        SIC = "sic insurance", "SIC Insurance"
        STAR = "star assurance", "Star Assurance"
        ALLIANZ = "allianz", "Allianz"
        AXA = "axa", "AXA"
        METLIFE = "metlife", "MetLife"
        PRUDENTIAL = "prudential", "Prudential"
        OTHER = "other", "Other"

    class InsuranceType(models.TextChoices):
        HEALTH = "health", "Health"
        LIFE = "life", "Life"
        AUTO = "auto", "Auto"
        HOME = "home", "Home"
        TRAVEL = "travel", "Travel"
        BUSINESS = "business", "Business"

    class AutoInsuranceType(models.TextChoices):
        COMPREHENSIVE = "comprehensive", "Comprehensive"
        THIRD_PARTY = "third_party", "Third Party"
        THIRD_PARTY_FIRE = "third_party_fire", "Third Party, Fire and Theft"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    policy_number = models.CharField(max_length=64, unique=True)
    provider = models.CharField(max_length=64, choices=Provider.choices)
    coverage_amount = models.DecimalField(max_digits=14, decimal_places=2, validators=[MinValueValidator(0)])
    insurance_type = models.CharField(max_length=16, choices=InsuranceType.choices)
    auto_insurance_type = models.CharField(max_length=32, choices=AutoInsuranceType.choices, null=True, blank=True)
    description = models.TextField(blank=True, default="")
    start_date = models.DateField()
    end_date = models.DateField()
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["end_date"]
        indexes = [
            models.Index(fields=["insurance_type", "end_date"], name="insurance_type_end_idx"),
        ]

    def __str__(self):
        return self.policy_number


class RoadWorth(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    certificate_number = models.CharField(max_length=64, unique=True)
    issued_by = models.CharField(max_length=128, default="dvla")
    notes = models.TextField(blank=True, default="")
    start_date = models.DateField()
    end_date = models.DateField()
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["end_date"]
        indexes = [
            models.Index(fields=["issued_by", "end_date"], name="roadworth_issuer_end_idx"),
        ]

    def __str__(self):
        return self.certificate_number


class Vehicle(models.Model):
    class VehicleType(models.TextChoices):
        SEDAN = "sedan", "Sedan"
        SUV = "suv", "SUV"
        TRUCK = "truck", "Truck"
        VAN = "van", "Van"
        PICKUP = "pickup", "Pickup"
        MINIVAN = "minivan", "Minivan"
        BUS = "bus", "Bus"
        MOTORCYCLE = "motorcycle", "Motorcycle"
        UTILITY = "utility", "Utility"

    class FuelType(models.TextChoices):
        DIESEL = "diesel", "Diesel"
        PETROL = "petrol", "Petrol"
        ELECTRIC = "electric", "Electric"
        HYBRID = "hybrid", "Hybrid"
        CNG = "cng", "Compressed Natural Gas"
        LPG = "lpg", "Liquefied Petroleum Gas"

    class Transmission(models.TextChoices):
        AUTOMATIC = "automatic", "Automatic"
        MANUAL = "manual", "Manual"
        SEMI_AUTOMATIC = "semi_automatic", "Semi-automatic"
        CVT = "cvt", "CVT"

    class Status(models.TextChoices):
        AVAILABLE = "available", "Available"
        IN_USE = "in_use", "In Use"
        MAINTENANCE = "maintenance", "Maintenance"
        OUT_OF_SERVICE = "out_of_service", "Out of Service"
        RETIRED = "retired", "Retired"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    registration_number = models.CharField(max_length=32, unique=True)
    vin = models.CharField(max_length=32, unique=True)
    make = models.CharField(max_length=64)
    model = models.CharField(max_length=64)
    year = models.PositiveSmallIntegerField(validators=[MinValueValidator(1900), MaxValueValidator(2100)])
    vehicle_type = models.CharField(max_length=16, choices=VehicleType.choices)
    fuel_type = models.CharField(max_length=16, choices=FuelType.choices)
    transmission = models.CharField(max_length=16, choices=Transmission.choices)
    seating_capacity = models.PositiveSmallIntegerField(default=1, validators=[MinValueValidator(1)])
    weight = models.DecimalField(max_digits=10, decimal_places=2, default=0, validators=[MinValueValidator(0)])
    color = models.CharField(max_length=32, blank=True, default="")
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.AVAILABLE)
    pool_vehicle = models.BooleanField(default=True)
    mileage = models.PositiveIntegerField(default=0)
    assigned_driver = models.ForeignKey(
        Employee,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="assigned_vehicles",
    )
    insurance = models.ForeignKey(Insurance, on_delete=models.SET_NULL, null=True, blank=True, related_name="vehicles")
    road_worth = models.ForeignKey(RoadWorth, on_delete=models.SET_NULL, null=True, blank=True, related_name="vehicles")
    notes = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["registration_number"]
        indexes = [
            models.Index(fields=["status", "pool_vehicle"], name="vehicle_status_pool_idx"),
        ]

    def __str__(self):
        return self.registration_number


class VehicleDriverLog(models.Model):
    class Status(models.TextChoices):
        ACTIVE = "active", "Active"
        COMPLETED = "completed", "Completed"
        TERMINATED = "terminated", "Terminated"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    vehicle = models.ForeignKey(Vehicle, on_delete=models.CASCADE, related_name="driver_logs")
    employee = models.ForeignKey(Employee, on_delete=models.PROTECT, related_name="vehicle_logs")
    vehicle_location = models.CharField(max_length=255, blank=True, default="")
    assignment_start_date = models.DateTimeField(default=timezone.now)
    assignment_end_date = models.DateTimeField(null=True, blank=True)
    reason = models.CharField(max_length=255, blank=True, default="")
    odometer_start = models.PositiveIntegerField(null=True, blank=True)
    odometer_end = models.PositiveIntegerField(null=True, blank=True)
    notes = models.TextField(blank=True, default="")
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.ACTIVE)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-assignment_start_date"]
        indexes = [
            models.Index(fields=["vehicle", "status"], name="driverlog_vehicle_status_idx"),
            models.Index(fields=["employee", "status"], name="driverlog_employee_status_idx"),
        ]
