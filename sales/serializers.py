from decimal import Decimal

from rest_framework import serializers

from common.normalization import lowercase_fields, strip_fields
from common.serializers import LowercaseChoicesMixin
from sales.models import SalesOrder, SalesOrderLine
from sales.services import create_sales_order, update_sales_order


class SalesOrderLineSerializer(serializers.ModelSerializer):
    item_code = serializers.CharField(source="item.item_code", read_only=True)
    item_description = serializers.CharField(source="item.item_description", read_only=True)

    class Meta:
        model = SalesOrderLine
        fields = ["id", "item", "item_code", "item_description", "quantity", "unit_price", "total_price", "serial_numbers"]
        read_only_fields = fields


class SalesOrderSerializer(serializers.ModelSerializer):
    customer = serializers.SerializerMethodField()
    items = SalesOrderLineSerializer(source="lines", many=True, read_only=True)
    created_by_username = serializers.CharField(source="created_by.username", read_only=True, default=None)

    class Meta:
        model = SalesOrder
        fields = [
            "id",
            "order_number",
            "customer",
            "items",
            "subtotal",
            "tax_amount",
            "total_amount",
            "status",
            "payment_status",
            "payment_method",
            "order_date",
            "delivery_date",
            "created_by",
            "created_by_username",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_customer(self, obj):
        return {
            "name": obj.customer_name,
            "email": obj.customer_email,
            "phone": obj.customer_phone,
            "address": obj.customer_address,
        }


class CustomerInputSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    email = serializers.EmailField(required=False, allow_blank=True, default="")
    phone = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")
    address = serializers.CharField(required=False, allow_blank=True, default="")

    def validate(self, attrs):
        attrs = strip_fields(attrs, ["name", "phone", "address"])
        return lowercase_fields(attrs, ["email"])


class SalesOrderLineInputSerializer(serializers.Serializer):
    item = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0"))
    serial_numbers = serializers.ListField(child=serializers.CharField(max_length=128), required=False, default=list)


class SalesOrderCreateSerializer(LowercaseChoicesMixin, serializers.Serializer):
    lowercase_choice_fields = ("payment_status", "payment_method")

    customer = CustomerInputSerializer()
    items = SalesOrderLineInputSerializer(many=True, allow_empty=False)
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0"))
    tax_amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0"), required=False, default=Decimal("0"))
    total_amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0"))
    payment_status = serializers.ChoiceField(choices=SalesOrder.PaymentStatus.choices, required=False)
    payment_method = serializers.ChoiceField(choices=SalesOrder.PaymentMethod.choices, required=False, allow_null=True)
    delivery_date = serializers.DateTimeField(required=False, allow_null=True)

    def create(self, validated_data):
        request = self.context.get("request")
        return create_sales_order(validated_data, user=getattr(request, "user", None))

    def to_representation(self, instance):
        return SalesOrderSerializer(instance, context=self.context).data


class SalesOrderUpdateSerializer(LowercaseChoicesMixin, serializers.Serializer):
    lowercase_choice_fields = ("status", "payment_status", "payment_method")

    status = serializers.ChoiceField(choices=SalesOrder.Status.choices, required=False)
    payment_status = serializers.ChoiceField(choices=SalesOrder.PaymentStatus.choices, required=False)
    payment_method = serializers.ChoiceField(choices=SalesOrder.PaymentMethod.choices, required=False, allow_null=True)
    delivery_date = serializers.DateTimeField(required=False, allow_null=True)

    def update(self, instance, validated_data):
        request = self.context.get("request")
        return update_sales_order(instance, validated_data, user=getattr(request, "user", None))

    def to_representation(self, instance):
        return SalesOrderSerializer(instance, context=self.context).data
