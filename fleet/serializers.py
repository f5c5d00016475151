from rest_framework import serializers

from common.exceptions import BusinessRuleError, Conflict
from common.normalization import lowercase_fields, strip_fields
from common.serializers import LowercaseChoicesMixin
from fleet.models import Insurance, RoadWorth, Vehicle, VehicleDriverLog


class InsuranceSerializer(LowercaseChoicesMixin, serializers.ModelSerializer):
    lowercase_choice_fields = ("provider", "insurance_type", "auto_insurance_type")

    class Meta:
        model = Insurance
        fields = [
            "id",
            "policy_number",
            "provider",
            "coverage_amount",
            "insurance_type",
            "auto_insurance_type",
            "description",
            "start_date",
            "end_date",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]
        extra_kwargs = {"policy_number": {"validators": []}}

    def validate_policy_number(self, value):
        value = value.strip()
        existing = Insurance.objects.filter(policy_number__iexact=value)
        if self.instance is not None:
            existing = existing.exclude(pk=self.instance.pk)
        if existing.exists():
            raise Conflict("Insurance policy already exists.")
        return value

    def validate(self, attrs):
        attrs = lowercase_fields(attrs, ["description"])

        def current(field):
            return attrs[field] if field in attrs else getattr(self.instance, field, None)

        start_date, end_date = current("start_date"), current("end_date")
        if start_date and end_date and start_date >= end_date:
            raise serializers.ValidationError("Start date must be before end date")

        if current("insurance_type") == Insurance.InsuranceType.AUTO:
            if not current("auto_insurance_type"):
                raise serializers.ValidationError(
                    {"auto_insurance_type": "Auto insurance type is required for auto insurance."}
                )
        elif "insurance_type" in attrs:
            attrs["auto_insurance_type"] = None
        return attrs


class RoadWorthSerializer(serializers.ModelSerializer):
    class Meta:
        model = RoadWorth
        fields = [
            "id",
            "certificate_number",
            "issued_by",
            "notes",
            "start_date",
            "end_date",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]
        extra_kwargs = {"certificate_number": {"validators": []}}

    def validate_certificate_number(self, value):
        value = value.strip()
        existing = RoadWorth.objects.filter(certificate_number__iexact=value)
        if self.instance is not None:
            existing = existing.exclude(pk=self.instance.pk)
        if existing.exists():
            raise serializers.ValidationError("Certificate number already exists.")
        return value

    def validate(self, attrs):
        attrs = lowercase_fields(attrs, ["issued_by", "notes"])
        start_date = attrs.get("start_date", getattr(self.instance, "start_date", None))
        end_date = attrs.get("end_date", getattr(self.instance, "end_date", None))
        if start_date and end_date and end_date <= start_date:
            raise serializers.ValidationError("End date must be after start date.")
        return attrs


class VehicleSerializer(LowercaseChoicesMixin, serializers.ModelSerializer):
    lowercase_choice_fields = ("vehicle_type", "fuel_type", "transmission", "status")

    assigned_driver_name = serializers.CharField(source="assigned_driver.full_name", read_only=True, default=None)
    insurance_policy_number = serializers.CharField(source="insurance.policy_number", read_only=True, default=None)
    road_worth_certificate_number = serializers.CharField(source="road_worth.certificate_number", read_only=True, default=None)

    class Meta:
        model = Vehicle
        fields = [
            "id",
            "registration_number",
            "vin",
            "make",
            "model",
            "year",
            "vehicle_type",
            "fuel_type",
            "transmission",
            "seating_capacity",
            "weight",
            "color",
            "status",
            "pool_vehicle",
            "mileage",
            "assigned_driver",
            "assigned_driver_name",
            "insurance",
            "insurance_policy_number",
            "road_worth",
            "road_worth_certificate_number",
            "notes",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "assigned_driver", "created_at", "updated_at"]
        extra_kwargs = {
            "registration_number": {"validators": []},
            "vin": {"validators": []},
        }

    def _ensure_unique(self, field, value, message):
        existing = Vehicle.objects.filter(**{f"{field}__iexact": value})
        if self.instance is not None:
            existing = existing.exclude(pk=self.instance.pk)
        if existing.exists():
            raise serializers.ValidationError(message)

    def validate_registration_number(self, value):
        value = value.strip().upper()
        self._ensure_unique("registration_number", value, "A vehicle with this registration number already exists.")
        return value

    def validate_vin(self, value):
        value = value.strip().upper()
        self._ensure_unique("vin", value, "A vehicle with this VIN already exists.")
        return value

    def validate(self, attrs):
        attrs = strip_fields(attrs, ["make", "model", "notes"])
        attrs = lowercase_fields(attrs, ["color"])
        if self.instance is not None and "mileage" in attrs and attrs["mileage"] < self.instance.mileage:
            raise BusinessRuleError("New mileage cannot be less than current mileage")
        return attrs


class VehicleStatusSerializer(LowercaseChoicesMixin, serializers.Serializer):
    lowercase_choice_fields = ("status",)

    status = serializers.ChoiceField(choices=Vehicle.Status.choices, error_messages={"invalid_choice": "Invalid status"})


class VehicleMileageSerializer(serializers.Serializer):
    mileage = serializers.IntegerField(min_value=0)


class AssignDriverSerializer(serializers.Serializer):
    employee = serializers.UUIDField()
    vehicle_location = serializers.CharField(required=False, allow_blank=True, default="")
    reason = serializers.CharField(required=False, allow_blank=True, default="")

    def validate(self, attrs):
        attrs = strip_fields(attrs, ["vehicle_location"])
        return lowercase_fields(attrs, ["reason"])


class VehicleDriverLogSerializer(LowercaseChoicesMixin, serializers.ModelSerializer):
    lowercase_choice_fields = ("status",)

    vehicle_registration = serializers.CharField(source="vehicle.registration_number", read_only=True)
    employee_name = serializers.CharField(source="employee.full_name", read_only=True)

    class Meta:
        model = VehicleDriverLog
        fields = [
            "id",
            "vehicle",
            "vehicle_registration",
            "employee",
            "employee_name",
            "vehicle_location",
            "assignment_start_date",
            "assignment_end_date",
            "reason",
            "odometer_start",
            "odometer_end",
            "notes",
            "status",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]

    def validate(self, attrs):
        attrs = lowercase_fields(attrs, ["reason", "notes"])

        def current(field):
            return attrs[field] if field in attrs else getattr(self.instance, field, None)

        odometer_start, odometer_end = current("odometer_start"), current("odometer_end")
        if odometer_start is not None and odometer_end is not None and odometer_end < odometer_start:
            raise serializers.ValidationError({"odometer_end": "Odometer end reading cannot be less than the start reading."})

        start, end = current("assignment_start_date"), current("assignment_end_date")
        if start and end and end < start:
            raise serializers.ValidationError({"assignment_end_date": "Assignment end date cannot be before the start date."})
        return attrs


class CompleteDriverLogSerializer(serializers.Serializer):
    odometer_end = serializers.IntegerField(min_value=0)
    notes = serializers.CharField(required=False, allow_blank=True)
