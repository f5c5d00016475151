import logging

from django.db import transaction
from django.db.models import F, Q
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.generics import get_object_or_404
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from common.audit import LoggedMutationMixin
from common.exceptions import BusinessRuleError
from common.filters import filter_date_range, parse_bool
from common.permissions import RoleCapabilityPermission, crud_action_map
from inventory.models import (
    InventoryCategory,
    InventoryItem,
    StockLocation,
    StockTransaction,
    Supplier,
    TaxRate,
)
from inventory.serializers import (
    InventoryCategoryDetailSerializer,
    InventoryCategorySerializer,
    InventoryItemDetailSerializer,
    InventoryItemSerializer,
    StockAdjustmentSerializer,
    StockLocationSerializer,
    StockTransactionSerializer,
    StockTransferSerializer,
    SupplierDetailSerializer,
    SupplierSerializer,
    SupplierStatusSerializer,
    TaxCalculationSerializer,
    TaxRateSerializer,
)
from inventory.services import (
    adjust_stock,
    build_category_tree,
    delete_inventory_item,
    delete_stock_transaction,
    ensure_category_deletable,
    location_balances,
    transfer_stock,
    validate_location,
)

logger = logging.getLogger(__name__)


class InventoryCategoryViewSet(LoggedMutationMixin, viewsets.ModelViewSet):
    queryset = InventoryCategory.objects.select_related("parent_category")
    serializer_class = InventoryCategorySerializer
    permission_classes = [IsAuthenticated, RoleCapabilityPermission]
    permission_action_map = crud_action_map("inventory.view", "inventory.manage", "inventory.delete", hierarchy="inventory.view")
    log_entity = "inventory_category"

    def get_serializer_class(self):
        if self.action == "retrieve":
            return InventoryCategoryDetailSerializer
        return super().get_serializer_class()

    def get_queryset(self):
        qs = super().get_queryset()
        params = self.request.query_params
        if params.get("search"):
            qs = qs.filter(name__icontains=params["search"])
        if params.get("parent_category"):
            qs = qs.filter(parent_category_id=params["parent_category"])
        if parse_bool(params.get("root_only")):
            qs = qs.filter(parent_category__isnull=True)
        return qs

    @transaction.atomic
    def perform_destroy(self, instance):
        ensure_category_deletable(instance)
        super().perform_destroy(instance)

    @action(detail=False, methods=["get"], url_path="hierarchy")
    def hierarchy(self, request):
        return Response(build_category_tree())


class InventoryItemViewSet(LoggedMutationMixin, viewsets.ModelViewSet):
    queryset = InventoryItem.objects.select_related("category", "tax_rate").prefetch_related("supplier_links__supplier")
    serializer_class = InventoryItemSerializer
    permission_classes = [IsAuthenticated, RoleCapabilityPermission]
    permission_action_map = crud_action_map(
        "inventory.view",
        "inventory.manage",
        "inventory.delete",
        low_stock="inventory.view",
        stock="stock.adjust",
    )
    log_entity = "inventory_item"

    def get_serializer_class(self):
        if self.action == "retrieve":
            return InventoryItemDetailSerializer
        return super().get_serializer_class()

    def get_queryset(self):
        qs = super().get_queryset()
        params = self.request.query_params
        for param in ("status", "inventory_type"):
            if params.get(param):
                qs = qs.filter(**{param: params[param]})
        if params.get("category"):
            qs = qs.filter(category_id=params["category"])
        if params.get("search"):
            search = params["search"]
            qs = qs.filter(Q(item_code__icontains=search) | Q(item_description__icontains=search))
        return qs

    def perform_destroy(self, instance):
        instance_id = instance.id
        delete_inventory_item(instance)
        self._log("deleted", instance_id)

    @action(detail=False, methods=["get"], url_path="low-stock")
    def low_stock(self, request):
        qs = self.get_queryset().filter(quantity_in_stock__lte=F("reorder_level")).order_by("quantity_in_stock")
        page = self.paginate_queryset(qs)
        if page is not None:
            return self.get_paginated_response(self.get_serializer(page, many=True).data)
        return Response(self.get_serializer(qs, many=True).data)

    @action(detail=True, methods=["post"], url_path="stock")
    def stock(self, request, pk=None):
        item = self.get_object()
        serializer = StockAdjustmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = adjust_stock(
            item_id=item.pk,
            quantity=serializer.validated_data["quantity"],
            location=serializer.validated_data["location"],
            reason=serializer.validated_data["reason"],
            user=request.user,
        )
        return Response(
            {
                **result,
                "item": InventoryItemDetailSerializer(result["item"], context={"request": request}).data,
            }
        )


class SupplierViewSet(LoggedMutationMixin, viewsets.ModelViewSet):
    queryset = Supplier.objects.all()
    serializer_class = SupplierSerializer
    permission_classes = [IsAuthenticated, RoleCapabilityPermission]
    permission_action_map = crud_action_map("inventory.view", "inventory.manage", "inventory.delete", set_status="inventory.manage")
    log_entity = "supplier"

    def get_serializer_class(self):
        if self.action == "retrieve":
            return SupplierDetailSerializer
        return super().get_serializer_class()

    def get_queryset(self):
        qs = super().get_queryset()
        params = self.request.query_params
        if params.get("status"):
            qs = qs.filter(status=params["status"].lower())
        if params.get("search"):
            search = params["search"]
            qs = qs.filter(Q(name__icontains=search) | Q(email__icontains=search))
        return qs

    @transaction.atomic
    def perform_destroy(self, instance):
        instance.item_links.all().delete()
        logger.info("supplier_items_detached", extra={"entity_id": str(instance.id)})
        super().perform_destroy(instance)

    @action(detail=True, methods=["patch"], url_path="status")
    def set_status(self, request, pk=None):
        supplier = self.get_object()
        serializer = SupplierStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        supplier.status = serializer.validated_data["status"]
        supplier.save(update_fields=["status", "updated_at"])
        self._log("status_updated", supplier.id)
        return Response(SupplierSerializer(supplier).data)


class TaxRateViewSet(LoggedMutationMixin, viewsets.ModelViewSet):
    queryset = TaxRate.objects.all()
    serializer_class = TaxRateSerializer
    permission_classes = [IsAuthenticated, RoleCapabilityPermission]
    permission_action_map = crud_action_map(
        "inventory.view",
        "inventory.manage",
        "inventory.delete",
        bulk="inventory.manage",
        calculate="inventory.view",
    )
    log_entity = "tax_rate"

    def get_queryset(self):
        qs = super().get_queryset()
        applies_to = self.request.query_params.get("applies_to")
        if applies_to:
            qs = qs.filter(Q(applies_to=applies_to) | Q(applies_to=TaxRate.AppliesTo.BOTH))
        return qs

    def perform_destroy(self, instance):
        in_use = instance.items.count()
        if in_use:
            raise BusinessRuleError(f"Cannot delete tax rate. It is being used by {in_use} inventory items.")
        super().perform_destroy(instance)

    @action(detail=False, methods=["post"], url_path="bulk")
    def bulk(self, request):
        rows = request.data if isinstance(request.data, list) else request.data.get("tax_rates")
        if not isinstance(rows, list) or not rows:
            raise ValidationError("Provide a non-empty list of tax rates.")

        seen = set()
        for row in rows:
            name = str((row or {}).get("name", "")).strip().lower()
            if name and name in seen:
                raise ValidationError(f"Duplicate tax rate name in request: {name}")
            seen.add(name)

        serializer = TaxRateSerializer(data=rows, many=True)
        serializer.is_valid(raise_exception=True)
        with transaction.atomic():
            instances = serializer.save()
        logger.info("tax_rates_bulk_created", extra={"user_id": str(request.user.id)})
        return Response(TaxRateSerializer(instances, many=True).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["post"], url_path="calculate")
    def calculate(self, request):
        serializer = TaxCalculationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return Response(serializer.calculate())


class StockTransactionViewSet(LoggedMutationMixin, viewsets.ModelViewSet):
    queryset = StockTransaction.objects.select_related("item", "created_by")
    serializer_class = StockTransactionSerializer
    permission_classes = [IsAuthenticated, RoleCapabilityPermission]
    permission_action_map = crud_action_map(
        "inventory.view",
        "stock.adjust",
        "inventory.delete",
        item_balance="inventory.view",
    )
    log_entity = "stock_transaction"

    def get_queryset(self):
        qs = super().get_queryset()
        params = self.request.query_params
        if params.get("item"):
            qs = qs.filter(item_id=params["item"])
        if params.get("transaction_type"):
            qs = qs.filter(transaction_type=params["transaction_type"].lower())
        if params.get("location"):
            qs = qs.filter(location=params["location"].lower())
        if params.get("reference"):
            qs = qs.filter(reference__icontains=params["reference"])
        return filter_date_range(qs, "transaction_date", params)

    def perform_destroy(self, instance):
        instance_id = instance.id
        delete_stock_transaction(instance)
        self._log("deleted", instance_id)

    @action(detail=False, methods=["get"], url_path=r"item/(?P<item_id>[^/.]+)/balance")
    def item_balance(self, request, item_id=None):
        item = get_object_or_404(InventoryItem, pk=item_id)
        recent = StockTransaction.objects.filter(item=item).select_related("created_by")[:10]
        return Response(
            {
                "item": InventoryItemSerializer(item, context={"request": request}).data,
                "quantity_in_stock": item.quantity_in_stock,
                "recent_transactions": StockTransactionSerializer(recent, many=True).data,
                "location_balances": location_balances(item),
            }
        )


class StockLocationViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = StockLocation.objects.select_related("item")
    serializer_class = StockLocationSerializer
    permission_classes = [IsAuthenticated, RoleCapabilityPermission]
    permission_action_map = {
        "list": "inventory.view",
        "retrieve": "inventory.view",
        "by_location": "inventory.view",
        "by_item": "inventory.view",
        "transfer": "stock.transfer",
    }

    def get_queryset(self):
        qs = super().get_queryset()
        params = self.request.query_params
        if params.get("item"):
            qs = qs.filter(item_id=params["item"])
        if params.get("location"):
            qs = qs.filter(location=params["location"].lower())
        return qs

    @action(detail=False, methods=["get"], url_path=r"location/(?P<location>[^/.]+)")
    def by_location(self, request, location=None):
        location = validate_location(location.lower())
        qs = StockLocation.objects.select_related("item").filter(location=location)
        if not parse_bool(request.query_params.get("show_all")):
            qs = qs.filter(quantity__gt=0)
        qs = qs.order_by("-quantity")
        page = self.paginate_queryset(qs)
        if page is not None:
            return self.get_paginated_response(self.get_serializer(page, many=True).data)
        return Response(self.get_serializer(qs, many=True).data)

    @action(detail=False, methods=["get"], url_path=r"item/(?P<item_id>[^/.]+)")
    def by_item(self, request, item_id=None):
        item = get_object_or_404(InventoryItem, pk=item_id)
        return Response(
            {
                "item": InventoryItemSerializer(item, context={"request": request}).data,
                "locations": StockLocationSerializer(item.stock_locations.order_by("location"), many=True).data,
                "recent_transactions": StockTransactionSerializer(item.transactions.all()[:10], many=True).data,
            }
        )

    @action(detail=False, methods=["post"], url_path=r"transfer/(?P<item_id>[^/.]+)")
    def transfer(self, request, item_id=None):
        serializer = StockTransferSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        result = transfer_stock(
            item_id=item_id,
            from_location=(data.get("from_location") or "").lower(),
            to_location=(data.get("to_location") or "").lower(),
            quantity=data.get("quantity"),
            reason=data.get("reason", ""),
            user=request.user,
        )
        return Response({**result, "item": InventoryItemSerializer(result["item"], context={"request": request}).data})
