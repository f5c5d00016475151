import logging
from collections import defaultdict

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.db.models import Count
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from common.exceptions import BusinessRuleError
from inventory.models import InventoryCategory, InventoryItem, Location, StockLocation, StockTransaction

logger = logging.getLogger(__name__)

TxnType = StockTransaction.TransactionType


def stock_effect(transaction_type, quantity):
    """Signed change a ledger entry applies to an item's quantity in stock."""
    quantity = int(quantity)
    if transaction_type in (TxnType.STOCK_IN, TxnType.RETURN):
        return quantity
    if transaction_type == TxnType.STOCK_OUT:
        return -quantity
    if transaction_type == TxnType.ADJUSTMENT:
        return quantity
    raise ValidationError({"transaction_type": f"Unsupported transaction type: {transaction_type}"})


def validate_location(location):
    if location not in Location.values:
        raise BusinessRuleError("Invalid location")
    return location


def lock_item(item_id, message="Inventory item not found"):
    try:
        return InventoryItem.objects.select_for_update().get(pk=item_id)
    except (InventoryItem.DoesNotExist, DjangoValidationError, ValueError, TypeError):
        raise NotFound(message)


def lock_items(item_ids, message_template="Inventory item with ID {item_id} not found"):
    """Lock several items in primary-key order and return them keyed by id."""
    locked = {}
    for item_id in sorted({str(item_id) for item_id in item_ids}):
        locked[item_id] = lock_item(item_id, message=message_template.format(item_id=item_id))
    return locked


def _save_quantity(item, quantity):
    item.quantity_in_stock = quantity
    item.save(update_fields=["quantity_in_stock", "updated_at"])


@transaction.atomic
def record_stock_transaction(*, item, transaction_type, quantity, location, reference="", user=None, transaction_date=None):
    item = lock_item(getattr(item, "pk", item))
    validate_location(location)
    current = item.quantity_in_stock

    if transaction_type == TxnType.STOCK_OUT and current < quantity:
        raise BusinessRuleError("Insufficient stock available")

    new_quantity = current + stock_effect(transaction_type, quantity)
    if new_quantity < 0:
        raise BusinessRuleError("Adjustment would result in negative inventory")

    txn = StockTransaction.objects.create(
        item=item,
        transaction_type=transaction_type,
        quantity=quantity,
        location=location,
        reference=reference or "",
        transaction_date=transaction_date or timezone.now(),
        created_by=user if getattr(user, "is_authenticated", False) else None,
    )
    _save_quantity(item, new_quantity)

    logger.info(
        "stock_transaction_recorded",
        extra={"entity_id": str(txn.id), "user_id": str(user.id) if getattr(user, "is_authenticated", False) else None},
    )
    return txn


@transaction.atomic
def update_stock_transaction(txn, *, changes):
    """Revert ``txn``'s effect on its item, then apply the changed values."""
    txn = StockTransaction.objects.select_for_update().get(pk=txn.pk)
    item = lock_item(txn.item_id)

    reverted = item.quantity_in_stock - stock_effect(txn.transaction_type, txn.quantity)
    if reverted < 0:
        raise BusinessRuleError("Insufficient stock available for updated transaction")

    transaction_type = changes.get("transaction_type", txn.transaction_type)
    quantity = changes.get("quantity", txn.quantity)
    location = changes.get("location", txn.location)
    validate_location(location)

    if transaction_type == TxnType.STOCK_OUT and reverted < quantity:
        raise BusinessRuleError("Insufficient stock available for updated transaction")

    new_quantity = reverted + stock_effect(transaction_type, quantity)
    if new_quantity < 0:
        raise BusinessRuleError("Insufficient stock available for updated transaction")

    txn.transaction_type = transaction_type
    txn.quantity = quantity
    txn.location = location
    for field in ("reference", "transaction_date"):
        if field in changes:
            setattr(txn, field, changes[field])
    txn.save()
    _save_quantity(item, new_quantity)

    logger.info("stock_transaction_updated", extra={"entity_id": str(txn.id)})
    return txn


@transaction.atomic
def delete_stock_transaction(txn):
    txn = StockTransaction.objects.select_for_update().get(pk=txn.pk)
    item = lock_item(txn.item_id)

    new_quantity = item.quantity_in_stock - stock_effect(txn.transaction_type, txn.quantity)
    if new_quantity < 0:
        raise BusinessRuleError("Cannot delete transaction as it would result in negative inventory")

    txn_id = txn.id
    txn.delete()
    _save_quantity(item, new_quantity)
    logger.info("stock_transaction_deleted", extra={"entity_id": str(txn_id)})
    return item


def location_balances(item):
    """Net quantity per location reconstructed from the item's ledger."""
    balances = defaultdict(int)
    for txn in StockTransaction.objects.filter(item=item).only("transaction_type", "quantity", "location"):
        balances[txn.location] += stock_effect(txn.transaction_type, txn.quantity)
    return [{"location": location, "balance": balance} for location, balance in sorted(balances.items())]


def _lock_location(item, location, *, create=False):
    qs = StockLocation.objects.select_for_update().filter(item=item, location=location)
    stock_location = qs.first()
    if stock_location is None and create:
        stock_location = StockLocation.objects.create(item=item, location=location, quantity=0)
    return stock_location


@transaction.atomic
def transfer_stock(*, item_id, from_location, to_location, quantity, reason="", user=None):
    try:
        quantity = int(quantity) if quantity not in (None, "") else 0
    except (TypeError, ValueError):
        quantity = 0
    if not from_location or not to_location or quantity <= 0:
        raise BusinessRuleError("From location, to location, and positive quantity are required")

    validate_location(from_location)
    validate_location(to_location)
    if from_location == to_location:
        raise BusinessRuleError("Source and destination locations cannot be the same")

    item = lock_item(item_id)

    # Lock both rows in a stable order.
    ordered = sorted([from_location, to_location])
    locked = {location: _lock_location(item, location) for location in ordered}
    source = locked[from_location]
    if source is None or source.quantity < quantity:
        raise BusinessRuleError("Not enough stock in source location")

    destination = locked[to_location] or _lock_location(item, to_location, create=True)

    source.quantity -= quantity
    source.save(update_fields=["quantity", "last_updated"])
    destination.quantity += quantity
    destination.save(update_fields=["quantity", "last_updated"])

    transaction_ref = f"Transfer-{int(timezone.now().timestamp() * 1000)}"
    reference = f"{transaction_ref}: {reason}" if reason else transaction_ref
    created_by = user if getattr(user, "is_authenticated", False) else None
    StockTransaction.objects.create(
        item=item,
        transaction_type=TxnType.STOCK_OUT,
        quantity=quantity,
        location=from_location,
        reference=reference,
        created_by=created_by,
    )
    StockTransaction.objects.create(
        item=item,
        transaction_type=TxnType.STOCK_IN,
        quantity=quantity,
        location=to_location,
        reference=reference,
        created_by=created_by,
    )

    logger.info(
        "stock_transfer_completed",
        extra={"entity_id": str(item.id), "user_id": str(created_by.id) if created_by else None},
    )
    return {
        "item": item,
        "from_location": from_location,
        "to_location": to_location,
        "quantity": quantity,
        "transaction_ref": transaction_ref,
    }


@transaction.atomic
def adjust_stock(*, item_id, quantity, location, reason="", user=None):
    try:
        quantity = int(quantity)
    except (TypeError, ValueError):
        raise ValidationError({"quantity": "A whole-number quantity is required."})
    if not location:
        raise ValidationError({"location": "This field is required."})
    validate_location(location)

    item = lock_item(item_id)
    stock_location = _lock_location(item, location, create=True)

    previous_quantity = stock_location.quantity
    new_quantity = previous_quantity + quantity
    if new_quantity < 0 or item.quantity_in_stock + quantity < 0:
        raise BusinessRuleError("Adjustment would result in negative stock")

    stock_location.quantity = new_quantity
    stock_location.save(update_fields=["quantity", "last_updated"])
    _save_quantity(item, item.quantity_in_stock + quantity)

    StockTransaction.objects.create(
        item=item,
        transaction_type=TxnType.ADJUSTMENT,
        quantity=quantity,
        location=location,
        reference=reason or "Manual adjustment",
        created_by=user if getattr(user, "is_authenticated", False) else None,
    )
    logger.info("stock_adjusted", extra={"entity_id": str(item.id)})
    return {
        "item": item,
        "location": location,
        "previous_quantity": previous_quantity,
        "new_quantity": new_quantity,
        "total_quantity": item.quantity_in_stock,
    }


def seed_initial_stock(item, *, quantity, location, user=None):
    """Record opening stock for a freshly created item. Caller owns the transaction."""
    validate_location(location)
    StockLocation.objects.create(item=item, location=location, quantity=quantity)
    StockTransaction.objects.create(
        item=item,
        transaction_type=TxnType.STOCK_IN,
        quantity=quantity,
        location=location,
        reference="Initial stock",
        created_by=user if getattr(user, "is_authenticated", False) else None,
    )
    _save_quantity(item, quantity)
    return item


@transaction.atomic
def delete_inventory_item(item):
    item = lock_item(item.pk)
    if item.stock_locations.filter(quantity__gt=0).exists():
        raise BusinessRuleError("Cannot delete item with existing stock")
    item.stock_locations.all().delete()
    item.transactions.all().delete()
    item_id = item.id
    item.delete()
    logger.info("inventory_item_deleted", extra={"entity_id": str(item_id)})


def _is_descendant_or_self(category_id, candidate_parent):
    """Walk up from ``candidate_parent`` looking for ``category_id``."""
    seen = set()
    current = candidate_parent
    while current is not None:
        if current.pk == category_id:
            return True
        if current.pk in seen:
            return True
        seen.add(current.pk)
        current = current.parent_category
    return False


def resolve_category_parent(category, parent_id):
    """Validate ``parent_id`` as the parent of ``category`` (None while creating) and return it."""
    if parent_id in (None, ""):
        return None
    if category is not None and str(parent_id) == str(category.pk):
        raise BusinessRuleError("Category cannot be its own parent")

    try:
        parent = InventoryCategory.objects.select_for_update().filter(pk=parent_id).first()
    except DjangoValidationError:
        parent = None
    if parent is None:
        if category is None:
            raise NotFound("Parent category not found")
        raise BusinessRuleError("Parent category not found")

    if category is not None and _is_descendant_or_self(category.pk, parent):
        raise BusinessRuleError("Circular reference detected in category hierarchy")
    return parent


def ensure_category_deletable(category):
    if category.subcategories.exists():
        raise BusinessRuleError("Cannot delete category with subcategories")
    if category.items.exists():
        raise BusinessRuleError("Cannot delete category with associated items")


def build_category_tree():
    """Nested category tree with per-node item counts, built from two queries."""
    item_counts = dict(
        InventoryItem.objects.values("category_id").annotate(total=Count("id")).values_list("category_id", "total")
    )
    nodes = {}
    children = defaultdict(list)
    for category in InventoryCategory.objects.order_by("name"):
        nodes[category.pk] = {
            "id": str(category.pk),
            "name": category.name,
            "description": category.description,
            "item_count": item_counts.get(category.pk, 0),
            "children": [],
        }
        children[category.parent_category_id].append(category.pk)

    def attach(parent_id):
        result = []
        for child_id in children.get(parent_id, []):
            node = nodes[child_id]
            node["children"] = attach(child_id)
            result.append(node)
        return result

    return attach(None)
