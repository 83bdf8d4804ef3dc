"""django-filter FilterSets for the commissions app."""
import django_filters

from .models import Commission


class CommissionFilter(django_filters.FilterSet):
    status = django_filters.MultipleChoiceFilter(choices=Commission.Status.choices)
    created_from = django_filters.DateFilter(field_name="created_at", lookup_expr="date__gte")
    created_to = django_filters.DateFilter(field_name="created_at", lookup_expr="date__lte")

    class Meta:
        model = Commission
        fields = ["consultant", "job", "region", "type", "status"]
