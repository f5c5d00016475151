from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from common.audit import LoggedMutationMixin
from common.filters import filter_date_range, parse_decimal
from common.permissions import RoleCapabilityPermission, crud_action_map
from sales import reports
from sales.models import SalesOrder
from sales.serializers import SalesOrderCreateSerializer, SalesOrderSerializer, SalesOrderUpdateSerializer
from sales.services import delete_sales_order


class SalesOrderViewSet(LoggedMutationMixin, viewsets.ModelViewSet):
    queryset = SalesOrder.objects.select_related("created_by").prefetch_related("lines__item")
    serializer_class = SalesOrderSerializer
    permission_classes = [IsAuthenticated, RoleCapabilityPermission]
    permission_action_map = crud_action_map(
        "sales.view",
        "sales.manage",
        "sales.delete",
        summary="sales.view",
        customer_history="sales.view",
    )
    log_entity = "sales_order"

    def get_serializer_class(self):
        if self.action == "create":
            return SalesOrderCreateSerializer
        if self.action in {"update", "partial_update"}:
            return SalesOrderUpdateSerializer
        return super().get_serializer_class()

    def get_queryset(self):
        qs = super().get_queryset()
        params = self.request.query_params
        if params.get("order_number"):
            qs = qs.filter(order_number__icontains=params["order_number"])
        if params.get("status"):
            qs = qs.filter(status=params["status"].lower())
        if params.get("payment_status"):
            qs = qs.filter(payment_status=params["payment_status"].lower())
        if params.get("customer_name"):
            qs = qs.filter(customer_name__icontains=params["customer_name"])
        qs = filter_date_range(qs, "order_date", params)

        min_amount = parse_decimal(params.get("min_amount"), "min_amount")
        max_amount = parse_decimal(params.get("max_amount"), "max_amount")
        if min_amount is not None:
            qs = qs.filter(total_amount__gte=min_amount)
        if max_amount is not None:
            qs = qs.filter(total_amount__lte=max_amount)
        return qs.order_by("-order_date", "-created_at")

    def perform_destroy(self, instance):
        instance_id = instance.id
        delete_sales_order(instance, user=self.request.user)
        self._log("deleted", instance_id)

    @action(detail=False, methods=["get"], url_path="summary")
    def summary(self, request):
        start, end = reports.parse_report_range(request.query_params)
        payload = reports.cached_report("sales-summary", request.get_full_path(), lambda: reports.sales_summary(start, end))
        return Response(payload)

    @action(detail=False, methods=["get"], url_path="customer-history")
    def customer_history(self, request):
        params = request.query_params

        def run():
            history = reports.customer_history(params.get("customer_name"), params.get("customer_email"))
            history["orders"] = SalesOrderSerializer(history["orders"], many=True).data
            return history

        return Response(reports.cached_report("customer-history", request.get_full_path(), run))
