from django.db import transaction
from rest_framework import serializers

from common.normalization import lowercase_fields, strip_fields
from hr.models import Employee
from hr.services import next_staff_number


class EmployeeSerializer(serializers.ModelSerializer):
    full_name = serializers.CharField(read_only=True)

    class Meta:
        model = Employee
        fields = [
            "id",
            "staff_number",
            "first_name",
            "last_name",
            "full_name",
            "email",
            "phone",
            "position",
            "department",
            "date_employed",
            "status",
            "termination_date",
            "is_driver",
            "license_number",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "staff_number", "created_at", "updated_at"]

    def validate_email(self, value):
        value = value.strip().lower()
        existing = Employee.objects.filter(email__iexact=value)
        if self.instance is not None:
            existing = existing.exclude(pk=self.instance.pk)
        if existing.exists():
            raise serializers.ValidationError("Employee with this email already exists")
        return value

    def validate(self, attrs):
        attrs = strip_fields(attrs, ["first_name", "last_name", "phone", "position", "department", "license_number"])
        attrs = lowercase_fields(attrs, ["email"])

        status = attrs.get("status", getattr(self.instance, "status", Employee.Status.ACTIVE))
        termination_date = attrs.get("termination_date", getattr(self.instance, "termination_date", None))
        if status == Employee.Status.TERMINATED and not termination_date:
            raise serializers.ValidationError({"termination_date": "Termination date is required for terminated employees."})
        return attrs

    @transaction.atomic
    def create(self, validated_data):
        validated_data["staff_number"] = next_staff_number()
        return super().create(validated_data)
