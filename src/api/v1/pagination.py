"""Pagination for the admin API."""
from rest_framework.pagination import PageNumberPagination


class StandardResultsSetPagination(PageNumberPagination):
    """25 rows per page; operators may ask for up to 100 with ``?page_size=``."""

    page_size = 25
    page_size_query_param = "page_size"
    max_page_size = 100
