import uuid

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone


class Location(models.TextChoices):
    WAREHOUSE = "warehouse", "Warehouse"
    FINISHED_GOODS_STORE = "finishedgoodsstore", "Finished Goods Store"
    RETAIL_STORE = "retailstore", "Retail Store"
    TRANSIT = "transit", "Transit"


class InventoryCategory(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255, unique=True)
    description = models.TextField(blank=True, default="")
    parent_category = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="subcategories",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["parent_category"], name="category_parent_idx"),
        ]

    def __str__(self):
        return self.name


class Supplier(models.Model):
    class Status(models.TextChoices):
        ACTIVE = "active", "Active"
        INACTIVE = "inactive", "Inactive"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    email = models.EmailField(blank=True, default="")
    phone = models.CharField(max_length=64, blank=True, default="")
    address = models.TextField(blank=True, default="")
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.ACTIVE)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        indexes = [models.Index(fields=["status", "name"], name="supplier_status_name_idx")]

    def __str__(self):
        return self.name


class TaxRate(models.Model):
    class AppliesTo(models.TextChoices):
        PURCHASE = "purchase", "Purchase"
        SALE = "sale", "Sale"
        BOTH = "both", "Both"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=128, unique=True)
    rate = models.DecimalField(
        max_digits=6,
        decimal_places=3,
        validators=[MinValueValidator(0), MaxValueValidator(100)],
    )
    applies_to = models.CharField(max_length=16, choices=AppliesTo.choices, default=AppliesTo.BOTH)
    description = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def applies_for(self, usage):
        return self.applies_to == self.AppliesTo.BOTH or self.applies_to == usage

    def __str__(self):
        return f"{self.name} ({self.rate}%)"


class InventoryItem(models.Model):
    class InventoryType(models.TextChoices):
        PHYSICAL = "physical", "Physical"
        SERVICE = "service", "Service"

    class UnitOfMeasure(models.TextChoices):
        PIECE = "piece", "Piece"
        SET = "set", "Set"
        BOX = "box", "Box"
        BUNDLE = "bundle", "Bundle"
        KG = "kg", "Kg"
        LITER = "liter", "Liter"

    class Status(models.TextChoices):
        ACTIVE = "active", "Active"
        DISCONTINUED = "discontinued", "Discontinued"
        ON_HOLD = "on_hold", "On Hold"

    class SpecialPricePeriod(models.TextChoices):
        DAYS = "days", "Days"
        WEEKS = "weeks", "Weeks"
        MONTHS = "months", "Months"
        YEARS = "years", "Years"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    item_code = models.CharField(max_length=64, unique=True)
    item_description = models.CharField(max_length=255)
    inventory_type = models.CharField(max_length=16, choices=InventoryType.choices, default=InventoryType.PHYSICAL)
    unit_of_measure = models.CharField(max_length=16, choices=UnitOfMeasure.choices, default=UnitOfMeasure.PIECE)
    saleable = models.BooleanField(default=True)
    category = models.ForeignKey(InventoryCategory, on_delete=models.PROTECT, related_name="items")
    unit_cost = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    last_purchase_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    retail_price = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    wholesale_price = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    serialized = models.BooleanField(default=False)
    barcode = models.CharField(max_length=128, null=True, blank=True)
    purchase_taxable = models.BooleanField(default=False)
    sale_taxable = models.BooleanField(default=False)
    tax_rate = models.ForeignKey(TaxRate, on_delete=models.SET_NULL, null=True, blank=True, related_name="items")
    special_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    special_price_duration = models.PositiveIntegerField(null=True, blank=True)
    special_price_period = models.CharField(max_length=16, choices=SpecialPricePeriod.choices, null=True, blank=True)
    special_price_start_date = models.DateTimeField(null=True, blank=True)
    special_price_end_date = models.DateTimeField(null=True, blank=True)
    quantity_in_stock = models.PositiveIntegerField(default=0)
    reorder_level = models.PositiveIntegerField(default=0)
    reorder_quantity = models.PositiveIntegerField(default=0)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.ACTIVE)
    suppliers = models.ManyToManyField(Supplier, through="ItemSupplier", related_name="supplied_items", blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["item_code"]
        indexes = [
            models.Index(fields=["status", "category"], name="item_status_category_idx"),
            models.Index(fields=["barcode"], name="item_barcode_idx"),
        ]

    def __str__(self):
        return self.item_code


class ItemSupplier(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    item = models.ForeignKey(InventoryItem, on_delete=models.CASCADE, related_name="supplier_links")
    supplier = models.ForeignKey(Supplier, on_delete=models.CASCADE, related_name="item_links")
    supplier_item_code = models.CharField(max_length=64, blank=True, default="")
    lead_time_days = models.PositiveIntegerField(default=0)

    class Meta:
        unique_together = ("item", "supplier")


class StockLocation(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    item = models.ForeignKey(InventoryItem, on_delete=models.CASCADE, related_name="stock_locations")
    location = models.CharField(max_length=32, choices=Location.choices)
    quantity = models.PositiveIntegerField(default=0)
    last_updated = models.DateTimeField(auto_now=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["location"]
        constraints = [
            models.UniqueConstraint(fields=["item", "location"], name="uniq_stock_location_item_location"),
        ]
        indexes = [
            models.Index(fields=["location", "quantity"], name="stockloc_location_qty_idx"),
        ]


class StockTransaction(models.Model):
    class TransactionType(models.TextChoices):
        STOCK_IN = "stockin", "Stock In"
        STOCK_OUT = "stockout", "Stock Out"
        ADJUSTMENT = "adjustment", "Adjustment"
        RETURN = "return", "Return"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    item = models.ForeignKey(InventoryItem, on_delete=models.CASCADE, related_name="transactions")
    transaction_type = models.CharField(max_length=16, choices=TransactionType.choices)
    quantity = models.IntegerField()
    location = models.CharField(max_length=32, choices=Location.choices)
    reference = models.CharField(max_length=255, blank=True, default="")
    transaction_date = models.DateTimeField(default=timezone.now)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stock_transactions",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-transaction_date", "-created_at"]
        indexes = [
            models.Index(fields=["item", "transaction_date"], name="stocktxn_item_date_idx"),
            models.Index(fields=["transaction_type", "transaction_date"], name="stocktxn_type_date_idx"),
            models.Index(fields=["location"], name="stocktxn_location_idx"),
        ]
