import logging
from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from common.exceptions import BusinessRuleError
from inventory.models import Location, StockTransaction
from inventory.services import lock_items
from sales.models import SalesOrder, SalesOrderLine

logger = logging.getLogger(__name__)

MONEY_QUANT = Decimal("0.01")
MONEY_TOLERANCE = Decimal("0.01")

UPDATABLE_FIELDS = ("status", "payment_status", "payment_method", "delivery_date")


def _to_money(value):
    return Decimal(value).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def _user_or_none(user):
    return user if getattr(user, "is_authenticated", False) else None


def sales_location():
    location = getattr(settings, "SALES_ORDER_DEFAULT_LOCATION", Location.RETAIL_STORE)
    if location not in Location.values:
        return Location.RETAIL_STORE
    return location


def _next_order_number():
    prefix = timezone.now().strftime("SO%y%m")
    existing = SalesOrder.objects.filter(order_number__startswith=prefix).values_list("order_number", flat=True)
    serials = [int(number[len(prefix):]) for number in existing if number[len(prefix):].isdigit()]
    serial = max(serials + [0]) + 1
    return f"{prefix}{serial:04d}"


def _validate_line(item, line, reserved):
    quantity = line["quantity"]
    if not item.saleable:
        raise BusinessRuleError(f"Item {item.item_code} is not available for sale")

    available = item.quantity_in_stock - reserved
    if available < quantity:
        raise BusinessRuleError(
            f"Insufficient stock for item {item.item_code}. Available: {available}, Requested: {quantity}"
        )

    serial_numbers = line.get("serial_numbers") or []
    if item.serialized and len(serial_numbers) != quantity:
        raise BusinessRuleError(f"Serial numbers count must match quantity for serialized item {item.item_code}")


@transaction.atomic
def create_sales_order(payload, user=None):
    """Create an order, take its lines out of stock and write one ledger entry per line."""
    lines = payload["items"]
    items = lock_items([line["item"] for line in lines])

    reserved = {}
    subtotal = Decimal("0")
    computed_lines = []
    for line in lines:
        item = items[str(line["item"])]
        _validate_line(item, line, reserved.get(item.pk, 0))
        reserved[item.pk] = reserved.get(item.pk, 0) + line["quantity"]

        total_price = _to_money(Decimal(line["quantity"]) * Decimal(line["unit_price"]))
        subtotal += total_price
        computed_lines.append((item, line, total_price))

    subtotal = _to_money(subtotal)
    tax_amount = _to_money(payload.get("tax_amount") or 0)
    provided_subtotal = _to_money(payload["subtotal"])
    if abs(subtotal - provided_subtotal) > MONEY_TOLERANCE:
        raise BusinessRuleError(f"Subtotal calculation mismatch. Calculated: {subtotal}, Provided: {provided_subtotal}")
    total_amount = _to_money(subtotal + tax_amount)
    provided_total = _to_money(payload["total_amount"])
    if abs(total_amount - provided_total) > MONEY_TOLERANCE:
        raise BusinessRuleError(f"Total amount calculation mismatch. Calculated: {total_amount}, Provided: {provided_total}")

    customer = payload["customer"]
    created_by = _user_or_none(user)
    order = SalesOrder.objects.create(
        order_number=_next_order_number(),
        customer_name=customer["name"],
        customer_email=customer.get("email", ""),
        customer_phone=customer.get("phone", ""),
        customer_address=customer.get("address", ""),
        subtotal=subtotal,
        tax_amount=tax_amount,
        total_amount=total_amount,
        payment_status=payload.get("payment_status") or SalesOrder.PaymentStatus.UNPAID,
        payment_method=payload.get("payment_method"),
        delivery_date=payload.get("delivery_date"),
        created_by=created_by,
    )

    location = sales_location()
    for item, line, total_price in computed_lines:
        SalesOrderLine.objects.create(
            order=order,
            item=item,
            quantity=line["quantity"],
            unit_price=_to_money(line["unit_price"]),
            total_price=total_price,
            serial_numbers=line.get("serial_numbers") or [],
        )
        item.quantity_in_stock -= line["quantity"]
        item.save(update_fields=["quantity_in_stock", "updated_at"])
        StockTransaction.objects.create(
            item=item,
            transaction_type=StockTransaction.TransactionType.STOCK_OUT,
            quantity=line["quantity"],
            location=location,
            reference=f"Sales Order: {order.order_number}",
            created_by=created_by,
        )

    logger.info(
        "sales_order_created",
        extra={"entity_id": str(order.id), "user_id": str(created_by.id) if created_by else None},
    )
    return order


def _restore_stock(order, reference, user=None):
    """Put every line back into stock and log a ``return`` entry for it."""
    lines = list(order.lines.all())
    items = lock_items([line.item_id for line in lines])
    location = sales_location()
    for line in lines:
        item = items[str(line.item_id)]
        item.quantity_in_stock += line.quantity
        item.save(update_fields=["quantity_in_stock", "updated_at"])
        StockTransaction.objects.create(
            item=item,
            transaction_type=StockTransaction.TransactionType.RETURN,
            quantity=line.quantity,
            location=location,
            reference=f"{reference}: {order.order_number}",
            created_by=_user_or_none(user),
        )


def _lock_order(order):
    return SalesOrder.objects.select_for_update().get(pk=order.pk)


@transaction.atomic
def update_sales_order(order, changes, user=None):
    order = _lock_order(order)
    if order.status in SalesOrder.TERMINAL_STATUSES:
        raise BusinessRuleError(f"Cannot update a sales order with status: {order.status}")

    updates = {field: changes[field] for field in UPDATABLE_FIELDS if field in changes}
    if updates.get("status") == SalesOrder.Status.CANCELLED:
        _restore_stock(order, "Cancelled Sales Order", user=user)
        logger.info("sales_order_cancelled", extra={"entity_id": str(order.id)})

    for field, value in updates.items():
        setattr(order, field, value)
    order.save()
    logger.info("sales_order_updated", extra={"entity_id": str(order.id)})
    return order


@transaction.atomic
def delete_sales_order(order, user=None):
    order = _lock_order(order)
    if order.status != SalesOrder.Status.PENDING:
        raise BusinessRuleError(f"Only pending orders can be deleted. Current status: {order.status}")

    _restore_stock(order, "Deleted Sales Order", user=user)
    order_id = order.id
    order.delete()
    logger.info("sales_order_deleted", extra={"entity_id": str(order_id)})
