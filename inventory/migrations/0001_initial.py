import uuid

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="InventoryCategory",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=255, unique=True)),
                ("description", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "parent_category",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="subcategories",
                        to="inventory.inventorycategory",
                    ),
                ),
            ],
            options={
                "ordering": ["name"],
                "indexes": [
                    models.Index(fields=["parent_category"], name="category_parent_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Supplier",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=255)),
                ("email", models.EmailField(blank=True, default="", max_length=254)),
                ("phone", models.CharField(blank=True, default="", max_length=64)),
                ("address", models.TextField(blank=True, default="")),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Active"), ("inactive", "Inactive")],
                        default="active",
                        max_length=16,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["name"],
                "indexes": [
                    models.Index(fields=["status", "name"], name="supplier_status_name_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="TaxRate",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=128, unique=True)),
                (
                    "rate",
                    models.DecimalField(
                        decimal_places=3,
                        max_digits=6,
                        validators=[
                            django.core.validators.MinValueValidator(0),
                            django.core.validators.MaxValueValidator(100),
                        ],
                    ),
                ),
                (
                    "applies_to",
                    models.CharField(
                        choices=[("purchase", "Purchase"), ("sale", "Sale"), ("both", "Both")],
                        default="both",
                        max_length=16,
                    ),
                ),
                ("description", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="InventoryItem",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("item_code", models.CharField(max_length=64, unique=True)),
                ("item_description", models.CharField(max_length=255)),
                (
                    "inventory_type",
                    models.CharField(
                        choices=[("physical", "Physical"), ("service", "Service")],
                        default="physical",
                        max_length=16,
                    ),
                ),
                (
                    "unit_of_measure",
                    models.CharField(
                        choices=[
                            ("piece", "Piece"),
                            ("set", "Set"),
                            ("box", "Box"),
                            ("bundle", "Bundle"),
                            ("kg", "Kg"),
                            ("liter", "Liter"),
                        ],
                        default="piece",
                        max_length=16,
                    ),
                ),
                ("saleable", models.BooleanField(default=True)),
                ("unit_cost", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("last_purchase_price", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("retail_price", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("wholesale_price", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("serialized", models.BooleanField(default=False)),
                ("barcode", models.CharField(blank=True, max_length=128, null=True)),
                ("purchase_taxable", models.BooleanField(default=False)),
                ("sale_taxable", models.BooleanField(default=False)),
                ("special_price", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("special_price_duration", models.PositiveIntegerField(blank=True, null=True)),
                (
                    "special_price_period",
                    models.CharField(
                        blank=True,
                        choices=[("days", "Days"), ("weeks", "Weeks"), ("months", "Months"), ("years", "Years")],
                        max_length=16,
                        null=True,
                    ),
                ),
                ("special_price_start_date", models.DateTimeField(blank=True, null=True)),
                ("special_price_end_date", models.DateTimeField(blank=True, null=True)),
                ("quantity_in_stock", models.PositiveIntegerField(default=0)),
                ("reorder_level", models.PositiveIntegerField(default=0)),
                ("reorder_quantity", models.PositiveIntegerField(default=0)),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Active"), ("discontinued", "Discontinued"), ("on_hold", "On Hold")],
                        default="active",
                        max_length=16,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "category",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="items",
                        to="inventory.inventorycategory",
                    ),
                ),
                (
                    "tax_rate",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="items",
                        to="inventory.taxrate",
                    ),
                ),
            ],
            options={
                "ordering": ["item_code"],
                "indexes": [
                    models.Index(fields=["status", "category"], name="item_status_category_idx"),
                    models.Index(fields=["barcode"], name="item_barcode_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ItemSupplier",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("supplier_item_code", models.CharField(blank=True, default="", max_length=64)),
                ("lead_time_days", models.PositiveIntegerField(default=0)),
                (
                    "item",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="supplier_links",
                        to="inventory.inventoryitem",
                    ),
                ),
                (
                    "supplier",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="item_links",
                        to="inventory.supplier",
                    ),
                ),
            ],
            options={
                "unique_together": {("item", "supplier")},
            },
        ),
        migrations.AddField(
            model_name="inventoryitem",
            name="suppliers",
            field=models.ManyToManyField(
                blank=True,
                related_name="supplied_items",
                through="inventory.ItemSupplier",
                to="inventory.supplier",
            ),
        ),
        migrations.CreateModel(
            name="StockLocation",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "location",
                    models.CharField(
                        choices=[
                            ("warehouse", "Warehouse"),
                            ("finishedgoodsstore", "Finished Goods Store"),
                            ("retailstore", "Retail Store"),
                            ("transit", "Transit"),
                        ],
                        max_length=32,
                    ),
                ),
                ("quantity", models.PositiveIntegerField(default=0)),
                ("last_updated", models.DateTimeField(auto_now=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "item",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="stock_locations",
                        to="inventory.inventoryitem",
                    ),
                ),
            ],
            options={
                "ordering": ["location"],
                "indexes": [
                    models.Index(fields=["location", "quantity"], name="stockloc_location_qty_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("item", "location"), name="uniq_stock_location_item_location"),
                ],
            },
        ),
        migrations.CreateModel(
            name="StockTransaction",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "transaction_type",
                    models.CharField(
                        choices=[
                            ("stockin", "Stock In"),
                            ("stockout", "Stock Out"),
                            ("adjustment", "Adjustment"),
                            ("return", "Return"),
                        ],
                        max_length=16,
                    ),
                ),
                ("quantity", models.IntegerField()),
                (
                    "location",
                    models.CharField(
                        choices=[
                            ("warehouse", "Warehouse"),
                            ("finishedgoodsstore", "Finished Goods Store"),
                            ("retailstore", "Retail Store"),
                            ("transit", "Transit"),
                        ],
                        max_length=32,
                    ),
                ),
                ("reference", models.CharField(blank=True, default="", max_length=255)),
                ("transaction_date", models.DateTimeField(default=django.utils.timezone.now)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="stock_transactions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "item",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="transactions",
                        to="inventory.inventoryitem",
                    ),
                ),
            ],
            options={
                "ordering": ["-transaction_date", "-created_at"],
                "indexes": [
                    models.Index(fields=["item", "transaction_date"], name="stocktxn_item_date_idx"),
                    models.Index(fields=["transaction_type", "transaction_date"], name="stocktxn_type_date_idx"),
                    models.Index(fields=["location"], name="stocktxn_location_idx"),
                ],
            },
        ),
    ]
