from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class StandardResultsSetPagination(PageNumberPagination):
    """Shared pagination behavior for list endpoints.

    Clients pick a page with `?page=` and tune its size with `?limit=` (or the
    older `?page_size=`); sizes are capped to keep payloads predictable.
    """

    page_size_query_param = "limit"
    max_page_size = 200

    def get_page_size(self, request):
        if self.page_size_query_param not in request.query_params and "page_size" in request.query_params:
            self.page_size_query_param = "page_size"
        return super().get_page_size(request)

    def get_paginated_response(self, data):
        return Response(
            {
                "count": self.page.paginator.count,
                "total_pages": self.page.paginator.num_pages,
                "current_page": self.page.number,
                "next": self.get_next_link(),
                "previous": self.get_previous_link(),
                "results": data,
            }
        )
