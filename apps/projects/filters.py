import django_filters
from rest_framework.exceptions import ValidationError

from .models import Project


class ProjectListFilter(django_filters.FilterSet):
    install_start = django_filters.DateFilter(
        field_name="install_date", lookup_expr="gte"
    )
    install_end = django_filters.DateFilter(
        field_name="install_date", lookup_expr="lte"
    )
    scheduled = django_filters.BooleanFilter(
        field_name="install_date", lookup_expr="isnull", exclude=True
    )
    status = django_filters.ChoiceFilter(choices=Project.Status.choices)
    user = django_filters.NumberFilter(field_name="user_id")
    search = django_filters.CharFilter(field_name="name", lookup_expr="icontains")

    def filter_queryset(self, queryset):
        start_date = self.form.cleaned_data.get("install_start")
        end_date = self.form.cleaned_data.get("install_end")

        if start_date and end_date and start_date > end_date:
            raise ValidationError(
                {"detail": "install_start must be <= install_end"}
            )

        return super().filter_queryset(queryset)

    class Meta:
        model = Project
        fields = ["install_start", "install_end", "scheduled", "status", "user", "search"]
