from datetime import timedelta

from django.db.models import Q
from django.utils import timezone
from django.utils.dateparse import parse_date
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.generics import get_object_or_404
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from common.audit import LoggedMutationMixin
from common.filters import parse_bool
from common.permissions import RoleCapabilityPermission, crud_action_map
from fleet.models import Insurance, RoadWorth, Vehicle, VehicleDriverLog
from fleet.serializers import (
    AssignDriverSerializer,
    CompleteDriverLogSerializer,
    InsuranceSerializer,
    RoadWorthSerializer,
    VehicleDriverLogSerializer,
    VehicleMileageSerializer,
    VehicleSerializer,
    VehicleStatusSerializer,
)
from fleet.services import assign_driver, complete_driver_log, unassign_driver, update_mileage
from hr.models import Employee

UUID_PATTERN = r"[0-9a-fA-F]{8}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{12}"


class PaginatedListMixin:
    def list_response(self, queryset):
        page = self.paginate_queryset(queryset)
        if page is not None:
            return self.get_paginated_response(self.get_serializer(page, many=True).data)
        return Response(self.get_serializer(queryset, many=True).data)


def _required_date(params, name):
    raw = params.get(name)
    value = parse_date(raw) if raw else None
    if value is None:
        raise ValidationError({name: "Enter a valid date (YYYY-MM-DD)."})
    return value


class InsuranceViewSet(PaginatedListMixin, LoggedMutationMixin, viewsets.ModelViewSet):
    queryset = Insurance.objects.all()
    serializer_class = InsuranceSerializer
    permission_classes = [IsAuthenticated, RoleCapabilityPermission]
    permission_action_map = crud_action_map(
        "fleet.view", "fleet.manage", "fleet.delete", by_type="fleet.view", expiring="fleet.view"
    )
    log_entity = "insurance"

    def get_queryset(self):
        qs = super().get_queryset()
        params = self.request.query_params
        if params.get("provider"):
            qs = qs.filter(provider=params["provider"].lower())
        if params.get("insurance_type"):
            qs = qs.filter(insurance_type=params["insurance_type"].lower())
        if params.get("search"):
            search = params["search"]
            qs = qs.filter(Q(policy_number__icontains=search) | Q(description__icontains=search))
        return qs

    @action(detail=False, methods=["get"], url_path=r"by-type/(?P<insurance_type>[^/.]+)")
    def by_type(self, request, insurance_type=None):
        return self.list_response(Insurance.objects.filter(insurance_type=insurance_type.lower()))

    @action(detail=False, methods=["get"], url_path="expiring")
    def expiring(self, request):
        start = _required_date(request.query_params, "start_date")
        end = _required_date(request.query_params, "end_date")
        return self.list_response(Insurance.objects.filter(end_date__gte=start, end_date__lte=end))


class RoadWorthViewSet(PaginatedListMixin, LoggedMutationMixin, viewsets.ModelViewSet):
    queryset = RoadWorth.objects.all()
    serializer_class = RoadWorthSerializer
    permission_classes = [IsAuthenticated, RoleCapabilityPermission]
    permission_action_map = crud_action_map(
        "fleet.view", "fleet.manage", "fleet.delete", expiring="fleet.view", by_issuer="fleet.view"
    )
    log_entity = "road_worth"

    def get_queryset(self):
        qs = super().get_queryset()
        search = self.request.query_params.get("search")
        if search:
            qs = qs.filter(Q(certificate_number__icontains=search) | Q(issued_by__icontains=search))
        return qs

    @action(detail=False, methods=["get"], url_path="expiring")
    def expiring(self, request):
        raw_days = request.query_params.get("days", "30")
        try:
            days = int(raw_days)
        except ValueError:
            raise ValidationError({"days": "Enter a whole number of days."})
        if days < 0:
            raise ValidationError({"days": "Enter a whole number of days."})
        today = timezone.localdate()
        return self.list_response(
            RoadWorth.objects.filter(end_date__gte=today, end_date__lte=today + timedelta(days=days))
        )

    @action(detail=False, methods=["get"], url_path=r"issuer/(?P<issued_by>[^/]+)")
    def by_issuer(self, request, issued_by=None):
        return self.list_response(RoadWorth.objects.filter(issued_by=issued_by.strip().lower()))


class VehicleDriverLogViewSet(PaginatedListMixin, LoggedMutationMixin, viewsets.ModelViewSet):
    queryset = VehicleDriverLog.objects.select_related("vehicle", "employee")
    serializer_class = VehicleDriverLogSerializer
    permission_classes = [IsAuthenticated, RoleCapabilityPermission]
    permission_action_map = crud_action_map(
        "fleet.view",
        "fleet.manage",
        "fleet.delete",
        by_vehicle="fleet.view",
        by_employee="fleet.view",
        active="fleet.view",
        complete="fleet.manage",
    )
    log_entity = "vehicle_driver_log"

    def get_queryset(self):
        qs = super().get_queryset()
        params = self.request.query_params
        if params.get("vehicle"):
            qs = qs.filter(vehicle_id=params["vehicle"])
        if params.get("employee"):
            qs = qs.filter(employee_id=params["employee"])
        if params.get("status"):
            qs = qs.filter(status=params["status"].lower())
        return qs

    @action(detail=False, methods=["get"], url_path=rf"vehicle/(?P<vehicle_id>{UUID_PATTERN})")
    def by_vehicle(self, request, vehicle_id=None):
        vehicle = get_object_or_404(Vehicle, pk=vehicle_id)
        return self.list_response(self.get_queryset().filter(vehicle=vehicle))

    @action(detail=False, methods=["get"], url_path=rf"employee/(?P<employee_id>{UUID_PATTERN})")
    def by_employee(self, request, employee_id=None):
        employee = get_object_or_404(Employee, pk=employee_id)
        return self.list_response(self.get_queryset().filter(employee=employee))

    @action(detail=False, methods=["get"], url_path="active")
    def active(self, request):
        return self.list_response(self.get_queryset().filter(status=VehicleDriverLog.Status.ACTIVE))

    @action(detail=True, methods=["post"], url_path="complete")
    def complete(self, request, pk=None):
        log = self.get_object()
        serializer = CompleteDriverLogSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        log = complete_driver_log(log, **serializer.validated_data)
        self._log("completed", log.id)
        return Response(VehicleDriverLogSerializer(log).data)


class VehicleViewSet(PaginatedListMixin, LoggedMutationMixin, viewsets.ModelViewSet):
    queryset = Vehicle.objects.select_related("assigned_driver", "insurance", "road_worth")
    serializer_class = VehicleSerializer
    permission_classes = [IsAuthenticated, RoleCapabilityPermission]
    permission_action_map = crud_action_map(
        "fleet.view",
        "fleet.manage",
        "fleet.delete",
        set_status="fleet.manage",
        set_mileage="fleet.manage",
        assign_driver="fleet.manage",
        unassign_driver="fleet.manage",
        pool_available="fleet.view",
        by_status="fleet.view",
        by_driver="fleet.view",
    )
    log_entity = "vehicle"

    def get_queryset(self):
        qs = super().get_queryset()
        params = self.request.query_params
        if params.get("status"):
            qs = qs.filter(status=params["status"].lower())
        if params.get("pool_vehicle") is not None:
            qs = qs.filter(pool_vehicle=parse_bool(params["pool_vehicle"]))
        if params.get("vehicle_type"):
            qs = qs.filter(vehicle_type=params["vehicle_type"].lower())
        if params.get("search"):
            search = params["search"]
            qs = qs.filter(
                Q(registration_number__icontains=search)
                | Q(vin__icontains=search)
                | Q(make__icontains=search)
                | Q(model__icontains=search)
            )
        return qs

    @action(detail=True, methods=["patch"], url_path="status")
    def set_status(self, request, pk=None):
        vehicle = self.get_object()
        serializer = VehicleStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        vehicle.status = serializer.validated_data["status"]
        vehicle.save(update_fields=["status", "updated_at"])
        self._log("status_updated", vehicle.id)
        return Response(VehicleSerializer(vehicle).data)

    @action(detail=True, methods=["patch"], url_path="mileage")
    def set_mileage(self, request, pk=None):
        vehicle = self.get_object()
        serializer = VehicleMileageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        vehicle = update_mileage(vehicle, serializer.validated_data["mileage"])
        self._log("mileage_updated", vehicle.id)
        return Response(VehicleSerializer(vehicle).data)

    @action(detail=True, methods=["post"], url_path="assign-driver")
    def assign_driver(self, request, pk=None):
        vehicle = self.get_object()
        serializer = AssignDriverSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        vehicle, log = assign_driver(
            vehicle,
            employee_id=data["employee"],
            vehicle_location=data["vehicle_location"],
            reason=data["reason"],
        )
        self._log("driver_assigned", vehicle.id)
        return Response({"vehicle": VehicleSerializer(vehicle).data, "log": VehicleDriverLogSerializer(log).data})

    @action(detail=True, methods=["post"], url_path="unassign-driver")
    def unassign_driver(self, request, pk=None):
        vehicle = unassign_driver(self.get_object())
        self._log("driver_unassigned", vehicle.id)
        return Response(VehicleSerializer(vehicle).data)

    @action(detail=False, methods=["get"], url_path="pool/available")
    def pool_available(self, request):
        return self.list_response(self.get_queryset().filter(pool_vehicle=True, status=Vehicle.Status.AVAILABLE))

    @action(detail=False, methods=["get"], url_path=r"status/(?P<vehicle_status>[^/.]+)")
    def by_status(self, request, vehicle_status=None):
        vehicle_status = vehicle_status.lower()
        if vehicle_status not in Vehicle.Status.values:
            raise ValidationError({"status": "Invalid status"})
        return self.list_response(Vehicle.objects.select_related("assigned_driver").filter(status=vehicle_status))

    @action(detail=False, methods=["get"], url_path=rf"driver/(?P<employee_id>{UUID_PATTERN})")
    def by_driver(self, request, employee_id=None):
        employee = get_object_or_404(Employee, pk=employee_id)
        return self.list_response(Vehicle.objects.filter(assigned_driver=employee))
