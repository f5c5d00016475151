from decimal import Decimal, ROUND_HALF_UP

from django.db import transaction
from rest_framework import serializers

from common.normalization import add_period, lowercase_fields, strip_fields, uppercase_fields
from common.serializers import LowercaseChoicesMixin
from inventory.models import (
    InventoryCategory,
    InventoryItem,
    ItemSupplier,
    Location,
    StockLocation,
    StockTransaction,
    Supplier,
    TaxRate,
)
from inventory.services import (
    record_stock_transaction,
    resolve_category_parent,
    seed_initial_stock,
    update_stock_transaction,
)

MONEY_QUANT = Decimal("0.01")


def _to_money(value):
    return Decimal(value).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


class InventoryCategorySerializer(serializers.ModelSerializer):
    parent_category = serializers.UUIDField(source="parent_category_id", required=False, allow_null=True)
    parent_category_name = serializers.CharField(source="parent_category.name", read_only=True, default=None)

    class Meta:
        model = InventoryCategory
        fields = [
            "id",
            "name",
            "description",
            "parent_category",
            "parent_category_name",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]

    def validate(self, attrs):
        return strip_fields(attrs, ["name", "description"])

    @transaction.atomic
    def create(self, validated_data):
        parent_id = validated_data.pop("parent_category_id", None)
        validated_data["parent_category"] = resolve_category_parent(None, parent_id)
        return super().create(validated_data)

    @transaction.atomic
    def update(self, instance, validated_data):
        if "parent_category_id" in validated_data:
            parent_id = validated_data.pop("parent_category_id")
            validated_data["parent_category"] = resolve_category_parent(instance, parent_id)
        return super().update(instance, validated_data)


class InventoryCategoryDetailSerializer(InventoryCategorySerializer):
    subcategories = serializers.SerializerMethodField()
    item_count = serializers.SerializerMethodField()

    class Meta(InventoryCategorySerializer.Meta):
        fields = InventoryCategorySerializer.Meta.fields + ["subcategories", "item_count"]

    def get_subcategories(self, obj):
        return [{"id": str(child.id), "name": child.name} for child in obj.subcategories.order_by("name")]

    def get_item_count(self, obj):
        return obj.items.count()


class SupplierSerializer(LowercaseChoicesMixin, serializers.ModelSerializer):
    lowercase_choice_fields = ("status",)

    class Meta:
        model = Supplier
        fields = ["id", "name", "email", "phone", "address", "status", "created_at", "updated_at"]
        read_only_fields = ["id", "created_at", "updated_at"]

    def validate(self, attrs):
        attrs = strip_fields(attrs, ["name", "phone", "address"])
        return lowercase_fields(attrs, ["email"])


class SupplierDetailSerializer(SupplierSerializer):
    supplied_items = serializers.SerializerMethodField()

    class Meta(SupplierSerializer.Meta):
        fields = SupplierSerializer.Meta.fields + ["supplied_items"]

    def get_supplied_items(self, obj):
        return [
            {
                "id": str(link.item_id),
                "item_code": link.item.item_code,
                "item_description": link.item.item_description,
                "supplier_item_code": link.supplier_item_code,
                "lead_time_days": link.lead_time_days,
            }
            for link in obj.item_links.select_related("item")
        ]


class SupplierStatusSerializer(serializers.Serializer):
    status = serializers.CharField()

    def validate_status(self, value):
        value = value.strip().lower()
        if value not in Supplier.Status.values:
            raise serializers.ValidationError("Invalid status")
        return value


class TaxRateSerializer(LowercaseChoicesMixin, serializers.ModelSerializer):
    lowercase_choice_fields = ("applies_to",)

    class Meta:
        model = TaxRate
        fields = ["id", "name", "rate", "applies_to", "description", "created_at", "updated_at"]
        read_only_fields = ["id", "created_at", "updated_at"]
        # Uniqueness is checked in validate_name so the message stays stable.
        extra_kwargs = {"name": {"validators": []}}

    def validate_name(self, value):
        value = value.strip()
        existing = TaxRate.objects.filter(name__iexact=value)
        if self.instance is not None:
            existing = existing.exclude(pk=self.instance.pk)
        if existing.exists():
            raise serializers.ValidationError("Tax rate with this name already exists")
        return value


class TaxCalculationSerializer(LowercaseChoicesMixin, serializers.Serializer):
    lowercase_choice_fields = ("type",)

    tax_rate_id = serializers.PrimaryKeyRelatedField(queryset=TaxRate.objects.all(), source="tax_rate")
    value = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal("0"))
    type = serializers.ChoiceField(choices=[TaxRate.AppliesTo.PURCHASE, TaxRate.AppliesTo.SALE])

    def validate(self, attrs):
        if not attrs["tax_rate"].applies_for(attrs["type"]):
            raise serializers.ValidationError(f"Tax rate not applicable for {attrs['type']}")
        return attrs

    def calculate(self):
        tax_rate = self.validated_data["tax_rate"]
        value = self.validated_data["value"]
        tax_amount = _to_money(value * tax_rate.rate / Decimal("100"))
        return {
            "tax_rate": TaxRateSerializer(tax_rate).data,
            "value": _to_money(value),
            "tax_amount": tax_amount,
            "total_with_tax": _to_money(value + tax_amount),
        }


class ItemSupplierSerializer(serializers.ModelSerializer):
    supplier_name = serializers.CharField(source="supplier.name", read_only=True)

    class Meta:
        model = ItemSupplier
        fields = ["supplier", "supplier_name", "supplier_item_code", "lead_time_days"]


class StockLocationSerializer(serializers.ModelSerializer):
    item_code = serializers.CharField(source="item.item_code", read_only=True)
    item_description = serializers.CharField(source="item.item_description", read_only=True)

    class Meta:
        model = StockLocation
        fields = ["id", "item", "item_code", "item_description", "location", "quantity", "last_updated"]
        read_only_fields = fields


class InventoryItemSerializer(LowercaseChoicesMixin, serializers.ModelSerializer):
    lowercase_choice_fields = ("inventory_type", "unit_of_measure", "special_price_period", "status", "initial_stock_location")

    category_name = serializers.CharField(source="category.name", read_only=True)
    suppliers = ItemSupplierSerializer(source="supplier_links", many=True, required=False)
    initial_stock = serializers.IntegerField(write_only=True, required=False, min_value=0)
    initial_stock_location = serializers.ChoiceField(choices=Location.choices, write_only=True, required=False)

    class Meta:
        model = InventoryItem
        fields = [
            "id",
            "item_code",
            "item_description",
            "inventory_type",
            "unit_of_measure",
            "saleable",
            "category",
            "category_name",
            "unit_cost",
            "last_purchase_price",
            "retail_price",
            "wholesale_price",
            "suppliers",
            "serialized",
            "barcode",
            "purchase_taxable",
            "sale_taxable",
            "tax_rate",
            "special_price",
            "special_price_duration",
            "special_price_period",
            "special_price_start_date",
            "special_price_end_date",
            "quantity_in_stock",
            "reorder_level",
            "reorder_quantity",
            "status",
            "initial_stock",
            "initial_stock_location",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "quantity_in_stock", "special_price_end_date", "created_at", "updated_at"]

    def validate(self, attrs):
        attrs = uppercase_fields(attrs, ["item_code"])
        attrs = strip_fields(attrs, ["item_description", "barcode"])

        def current(field):
            if field in attrs:
                return attrs[field]
            return getattr(self.instance, field, None)

        start = current("special_price_start_date")
        duration = current("special_price_duration")
        period = current("special_price_period")
        if any(field in attrs for field in ("special_price_start_date", "special_price_duration", "special_price_period")) or self.instance is None:
            attrs["special_price_end_date"] = add_period(start, duration, period)

        if attrs.get("initial_stock") and not attrs.get("initial_stock_location"):
            raise serializers.ValidationError({"initial_stock_location": "Required when initial_stock is given."})
        return attrs

    def _sync_suppliers(self, item, supplier_links):
        item.supplier_links.all().delete()
        for link in supplier_links:
            ItemSupplier.objects.create(item=item, **link)

    @transaction.atomic
    def create(self, validated_data):
        supplier_links = validated_data.pop("supplier_links", [])
        initial_stock = validated_data.pop("initial_stock", None)
        initial_location = validated_data.pop("initial_stock_location", None)

        item = InventoryItem.objects.create(**validated_data)
        self._sync_suppliers(item, supplier_links)
        if initial_stock and initial_location:
            request = self.context.get("request")
            seed_initial_stock(item, quantity=initial_stock, location=initial_location, user=getattr(request, "user", None))
        return item

    @transaction.atomic
    def update(self, instance, validated_data):
        supplier_links = validated_data.pop("supplier_links", None)
        validated_data.pop("initial_stock", None)
        validated_data.pop("initial_stock_location", None)
        instance = super().update(instance, validated_data)
        if supplier_links is not None:
            self._sync_suppliers(instance, supplier_links)
        return instance


class InventoryItemDetailSerializer(InventoryItemSerializer):
    stock_locations = StockLocationSerializer(many=True, read_only=True)

    class Meta(InventoryItemSerializer.Meta):
        fields = InventoryItemSerializer.Meta.fields + ["stock_locations"]


class StockAdjustmentSerializer(LowercaseChoicesMixin, serializers.Serializer):
    lowercase_choice_fields = ("location",)

    quantity = serializers.IntegerField()
    location = serializers.ChoiceField(choices=Location.choices)
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class StockTransferSerializer(LowercaseChoicesMixin, serializers.Serializer):
    lowercase_choice_fields = ("from_location", "to_location")

    from_location = serializers.CharField(required=False, allow_blank=True)
    to_location = serializers.CharField(required=False, allow_blank=True)
    quantity = serializers.IntegerField(required=False, allow_null=True)
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class StockTransactionSerializer(LowercaseChoicesMixin, serializers.ModelSerializer):
    lowercase_choice_fields = ("transaction_type", "location")

    item = serializers.UUIDField(source="item_id")
    item_code = serializers.CharField(source="item.item_code", read_only=True)
    created_by_username = serializers.CharField(source="created_by.username", read_only=True, default=None)

    class Meta:
        model = StockTransaction
        fields = [
            "id",
            "item",
            "item_code",
            "transaction_type",
            "quantity",
            "location",
            "reference",
            "transaction_date",
            "created_by",
            "created_by_username",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_by", "created_at", "updated_at"]
        extra_kwargs = {"transaction_date": {"required": False}}

    def validate(self, attrs):
        transaction_type = attrs.get("transaction_type", getattr(self.instance, "transaction_type", None))
        quantity = attrs.get("quantity", getattr(self.instance, "quantity", None))
        if self.instance is not None and "item_id" in attrs and attrs["item_id"] != self.instance.item_id:
            raise serializers.ValidationError({"item": "The item of an existing transaction cannot be changed."})
        if transaction_type == StockTransaction.TransactionType.ADJUSTMENT:
            if quantity == 0:
                raise serializers.ValidationError({"quantity": "Adjustment quantity cannot be zero."})
        elif quantity is not None and quantity <= 0:
            raise serializers.ValidationError({"quantity": "Quantity must be greater than zero."})
        return strip_fields(attrs, ["reference"])

    def create(self, validated_data):
        request = self.context.get("request")
        return record_stock_transaction(
            item=validated_data["item_id"],
            transaction_type=validated_data["transaction_type"],
            quantity=validated_data["quantity"],
            location=validated_data["location"],
            reference=validated_data.get("reference", ""),
            transaction_date=validated_data.get("transaction_date"),
            user=getattr(request, "user", None),
        )

    def update(self, instance, validated_data):
        validated_data.pop("item_id", None)
        return update_stock_transaction(instance, changes=validated_data)
