import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound

from common.exceptions import BusinessRuleError
from fleet.models import Vehicle, VehicleDriverLog
from hr.models import Employee

logger = logging.getLogger(__name__)

ASSIGNABLE_STATUSES = (Vehicle.Status.AVAILABLE, Vehicle.Status.IN_USE)


def _lock_vehicle(vehicle):
    return Vehicle.objects.select_for_update().get(pk=vehicle.pk)


def _close_active_logs(vehicle, *, odometer_end, status=VehicleDriverLog.Status.COMPLETED):
    closed = 0
    for log in VehicleDriverLog.objects.select_for_update().filter(vehicle=vehicle, status=VehicleDriverLog.Status.ACTIVE):
        log.status = status
        log.assignment_end_date = timezone.now()
        if log.odometer_start is None or odometer_end >= log.odometer_start:
            log.odometer_end = odometer_end
        log.save(update_fields=["status", "assignment_end_date", "odometer_end", "updated_at"])
        closed += 1
    return closed


@transaction.atomic
def assign_driver(vehicle, *, employee_id, vehicle_location="", reason=""):
    vehicle = _lock_vehicle(vehicle)
    try:
        employee = Employee.objects.get(pk=employee_id)
    except (Employee.DoesNotExist, DjangoValidationError, ValueError):
        raise NotFound("Employee not found")

    if employee.status != Employee.Status.ACTIVE:
        raise BusinessRuleError("Only active employees can be assigned to a vehicle")
    if vehicle.status not in ASSIGNABLE_STATUSES:
        raise BusinessRuleError(f"Cannot assign a driver to a vehicle with status: {vehicle.status}")

    _close_active_logs(vehicle, odometer_end=vehicle.mileage, status=VehicleDriverLog.Status.TERMINATED)

    vehicle.assigned_driver = employee
    vehicle.status = Vehicle.Status.IN_USE
    vehicle.save(update_fields=["assigned_driver", "status", "updated_at"])
    log = VehicleDriverLog.objects.create(
        vehicle=vehicle,
        employee=employee,
        vehicle_location=vehicle_location,
        reason=reason,
        odometer_start=vehicle.mileage,
    )
    logger.info("vehicle_driver_assigned", extra={"entity_id": str(vehicle.id)})
    return vehicle, log


@transaction.atomic
def unassign_driver(vehicle):
    vehicle = _lock_vehicle(vehicle)
    if vehicle.assigned_driver_id is None:
        raise BusinessRuleError("Vehicle has no assigned driver")

    _close_active_logs(vehicle, odometer_end=vehicle.mileage)
    vehicle.assigned_driver = None
    vehicle.status = Vehicle.Status.AVAILABLE
    vehicle.save(update_fields=["assigned_driver", "status", "updated_at"])
    logger.info("vehicle_driver_unassigned", extra={"entity_id": str(vehicle.id)})
    return vehicle


@transaction.atomic
def update_mileage(vehicle, mileage):
    vehicle = _lock_vehicle(vehicle)
    if mileage < vehicle.mileage:
        raise BusinessRuleError("New mileage cannot be less than current mileage")
    vehicle.mileage = mileage
    vehicle.save(update_fields=["mileage", "updated_at"])
    return vehicle


@transaction.atomic
def complete_driver_log(log, *, odometer_end, notes=None):
    log = VehicleDriverLog.objects.select_for_update().get(pk=log.pk)
    if log.status != VehicleDriverLog.Status.ACTIVE:
        raise BusinessRuleError("Only active logs can be completed")
    if log.odometer_start is not None and odometer_end < log.odometer_start:
        raise BusinessRuleError("Odometer end reading cannot be less than the start reading")

    log.status = VehicleDriverLog.Status.COMPLETED
    log.assignment_end_date = timezone.now()
    log.odometer_end = odometer_end
    if notes:
        log.notes = notes.strip().lower()
    log.save()

    # The vehicle's odometer only moves forward.
    Vehicle.objects.filter(pk=log.vehicle_id, mileage__lt=odometer_end).update(mileage=odometer_end, updated_at=timezone.now())
    logger.info("vehicle_driver_log_completed", extra={"entity_id": str(log.id)})
    return log
