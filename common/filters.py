from datetime import datetime, time
from decimal import Decimal, InvalidOperation

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime
from rest_framework.exceptions import ValidationError


def parse_boundary(raw, *, end=False, param="date"):
    """Parse a query-string date or datetime into an aware datetime.

    Bare dates expand to the start (or, with ``end=True``, the end) of the day.
    """
    if raw in (None, ""):
        return None
    try:
        day = parse_date(raw)
        value = datetime.combine(day, time.max if end else time.min) if day else parse_datetime(raw)
    except ValueError:
        value = None
    if value is None:
        raise ValidationError({param: "Enter a valid date (YYYY-MM-DD) or ISO datetime."})
    if timezone.is_naive(value):
        value = timezone.make_aware(value)
    return value


def filter_date_range(queryset, field, params, start_param="start_date", end_param="end_date"):
    start = parse_boundary(params.get(start_param), param=start_param)
    end = parse_boundary(params.get(end_param), end=True, param=end_param)
    if start:
        queryset = queryset.filter(**{f"{field}__gte": start})
    if end:
        queryset = queryset.filter(**{f"{field}__lte": end})
    return queryset


def parse_decimal(raw, param):
    if raw in (None, ""):
        return None
    try:
        return Decimal(raw)
    except (InvalidOperation, TypeError):
        raise ValidationError({param: "Enter a valid number."})


def parse_bool(raw):
    if raw is None:
        return None
    return raw.strip().lower() in {"1", "true", "t", "yes", "y", "on"}
