"""django-filter FilterSets for the regions app."""
import django_filters

from .models import RegionalRevenue, Settlement


class RegionalRevenueFilter(django_filters.FilterSet):
    """Filter by region, licensee, status and period overlap with ``start``/``end``."""

    status = django_filters.MultipleChoiceFilter(choices=RegionalRevenue.Status.choices)
    start = django_filters.DateFilter(method="filter_start")
    end = django_filters.DateFilter(method="filter_end")

    class Meta:
        model = RegionalRevenue
        fields = ["region", "licensee", "status", "settlement"]

    def filter_start(self, queryset, name, value):
        return queryset.overlapping(value, None)

    def filter_end(self, queryset, name, value):
        return queryset.overlapping(None, value)


class SettlementFilter(django_filters.FilterSet):

    class Meta:
        model = Settlement
        fields = ["licensee", "status"]
