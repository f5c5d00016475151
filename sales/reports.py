from collections import OrderedDict
from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings
from django.core.cache import cache
from django.db.models import Avg, Count, Sum
from django.db.models.functions import Coalesce, TruncDate, TruncMonth
from rest_framework.exceptions import ValidationError

from common.filters import parse_boundary
from sales.models import SalesOrder, SalesOrderLine

MONEY_QUANT = Decimal("0.01")
DAILY_TREND_MAX_DAYS = 31
TOP_ITEMS_LIMIT = 10


def _to_money(value):
    return Decimal(value or 0).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def cached_report(key, full_path, callback):
    cache_key = f"reports:{key}:{full_path}"
    payload = cache.get(cache_key)
    if payload is None:
        payload = callback()
        cache.set(cache_key, payload, getattr(settings, "REPORT_CACHE_SECONDS", 60))
    return payload


def parse_report_range(params):
    start = parse_boundary(params.get("start_date"), param="start_date")
    end = parse_boundary(params.get("end_date"), end=True, param="end_date")
    if start and end and start > end:
        raise ValidationError({"date_range": "start_date must be before or equal to end_date."})
    return start, end


def _in_range(queryset, field, start, end):
    if start:
        queryset = queryset.filter(**{f"{field}__gte": start})
    if end:
        queryset = queryset.filter(**{f"{field}__lte": end})
    return queryset


def _use_daily_trend(start, end):
    if not start or not end:
        return True
    return end - start <= timedelta(days=DAILY_TREND_MAX_DAYS)


def sales_summary(start=None, end=None):
    """Order counts and revenue by status, best sellers and a daily or monthly trend."""
    orders = _in_range(SalesOrder.objects.all(), "order_date", start, end)
    billable = orders.exclude(status=SalesOrder.Status.CANCELLED)

    by_status = [
        {"status": row["status"], "count": row["count"], "total_revenue": _to_money(row["total_revenue"])}
        for row in orders.values("status")
        .annotate(count=Count("id"), total_revenue=Coalesce(Sum("total_amount"), Decimal("0.00")))
        .order_by("status")
    ]
    by_payment_status = [
        {"payment_status": row["payment_status"], "count": row["count"], "total_amount": _to_money(row["total_amount"])}
        for row in orders.values("payment_status")
        .annotate(count=Count("id"), total_amount=Coalesce(Sum("total_amount"), Decimal("0.00")))
        .order_by("payment_status")
    ]

    lines = _in_range(
        SalesOrderLine.objects.exclude(order__status=SalesOrder.Status.CANCELLED),
        "order__order_date",
        start,
        end,
    )
    top_selling_items = [
        {
            "item_id": str(row["item_id"]),
            "item_code": row["item__item_code"],
            "item_description": row["item__item_description"],
            "total_quantity": row["total_quantity"],
            "total_revenue": _to_money(row["total_revenue"]),
            "average_unit_price": _to_money(row["average_unit_price"]),
        }
        for row in lines.values("item_id", "item__item_code", "item__item_description")
        .annotate(
            total_quantity=Sum("quantity"),
            total_revenue=Sum("total_price"),
            average_unit_price=Avg("unit_price"),
        )
        .order_by("-total_quantity", "item__item_code")[:TOP_ITEMS_LIMIT]
    ]

    daily = _use_daily_trend(start, end)
    trunc = TruncDate("order_date") if daily else TruncMonth("order_date")
    sales_trend = [
        {
            "period": row["period"].strftime("%Y-%m-%d" if daily else "%Y-%m"),
            "count": row["count"],
            "total_revenue": _to_money(row["total_revenue"]),
        }
        for row in billable.annotate(period=trunc)
        .values("period")
        .annotate(count=Count("id"), total_revenue=Coalesce(Sum("total_amount"), Decimal("0.00")))
        .order_by("period")
    ]

    return {
        "total_sales": orders.count(),
        "by_status": by_status,
        "by_payment_status": by_payment_status,
        "top_selling_items": top_selling_items,
        "sales_trend": sales_trend,
    }


def customer_history(customer_name=None, customer_email=None):
    if not customer_name and not customer_email:
        raise ValidationError("Please provide either customer name or email")

    orders = SalesOrder.objects.prefetch_related("lines__item").order_by("-order_date")
    if customer_name:
        orders = orders.filter(customer_name__icontains=customer_name)
    if customer_email:
        orders = orders.filter(customer_email__iexact=customer_email.strip())
    orders = list(orders)

    frequency = OrderedDict()
    total_spent = Decimal("0")
    for order in orders:
        total_spent += order.total_amount
        for line in order.lines.all():
            entry = frequency.setdefault(
                line.item_id,
                {
                    "item_id": str(line.item_id),
                    "item_code": line.item.item_code,
                    "item_description": line.item.item_description,
                    "total_quantity": 0,
                    "total_spent": Decimal("0"),
                    "order_count": 0,
                },
            )
            entry["total_quantity"] += line.quantity
            entry["total_spent"] += line.total_price
            entry["order_count"] += 1

    first = orders[0] if orders else None
    return {
        "customer": (
            {
                "name": first.customer_name,
                "email": first.customer_email,
                "phone": first.customer_phone,
                "address": first.customer_address,
            }
            if first
            else None
        ),
        "total_orders": len(orders),
        "total_spent": _to_money(total_spent),
        "orders": orders,
        "frequently_purchased_items": sorted(frequency.values(), key=lambda entry: entry["total_quantity"], reverse=True),
    }
