from django.db.models import Q
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from common.audit import LoggedMutationMixin
from common.filters import parse_bool
from common.permissions import RoleCapabilityPermission, crud_action_map
from hr.models import Employee
from hr.serializers import EmployeeSerializer


class EmployeeViewSet(LoggedMutationMixin, viewsets.ModelViewSet):
    queryset = Employee.objects.all()
    serializer_class = EmployeeSerializer
    permission_classes = [IsAuthenticated, RoleCapabilityPermission]
    permission_action_map = crud_action_map("hr.view", "hr.manage", "hr.delete", drivers="hr.view")
    log_entity = "employee"

    def get_queryset(self):
        qs = super().get_queryset()
        params = self.request.query_params
        if params.get("status"):
            qs = qs.filter(status=params["status"].lower())
        if params.get("is_driver") is not None:
            qs = qs.filter(is_driver=parse_bool(params["is_driver"]))
        if params.get("search"):
            search = params["search"]
            qs = qs.filter(
                Q(first_name__icontains=search)
                | Q(last_name__icontains=search)
                | Q(email__icontains=search)
                | Q(staff_number__icontains=search)
            )
        return qs

    @action(detail=False, methods=["get"], url_path="drivers")
    def drivers(self, request):
        qs = Employee.objects.filter(is_driver=True, status=Employee.Status.ACTIVE)
        page = self.paginate_queryset(qs)
        if page is not None:
            return self.get_paginated_response(self.get_serializer(page, many=True).data)
        return Response(self.get_serializer(qs, many=True).data)
