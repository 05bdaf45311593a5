from django_filters import rest_framework as filters
from .models import Task


class TaskFilter(filters.FilterSet):
    status = filters.ChoiceFilter(choices=Task.STATUS_CHOICES)
    priority = filters.ChoiceFilter(choices=Task.PRIORITY_CHOICES)
    assignee = filters.NumberFilter(field_name="assignee_id")
    search = filters.CharFilter(field_name="title", lookup_expr="icontains")
    due_before = filters.IsoDateTimeFilter(
        field_name="due_date", lookup_expr="lte"
    )

    class Meta:
        model = Task
        fields = ["status", "priority", "assignee"]
