import math

from django.core.paginator import Page
from rest_framework.exceptions import ValidationError
from rest_framework.pagination import PageNumberPagination


class StandardResultsSetPagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = "limit"
    max_page_size = 100

    def paginate_queryset(self, queryset, request, view=None):
        """Like DRF's, but a page past the end is an empty page, not a 404."""
        page_size = self.get_page_size(request)
        if not page_size:
            return None

        paginator = self.django_paginator_class(queryset, page_size)
        page_number = self.get_page_number(request, paginator)
        try:
            number = int(page_number)
        except (TypeError, ValueError):
            number = 0
        if number < 1:
            raise ValidationError({"page": "Page must be a positive integer."})

        if number > paginator.num_pages:
            self.page = Page([], number, paginator)
        else:
            self.page = paginator.page(number)
        self.request = request
        return list(self.page)

    def get_pagination(self):
        count = self.page.paginator.count
        limit = self.page.paginator.per_page
        return {
            "total": count,
            "page": self.page.number,
            "limit": limit,
            "pages": math.ceil(count / limit) if limit else 0,
        }
