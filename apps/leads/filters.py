import django_filters

from .models import ContactRequest


class ContactRequestListFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=ContactRequest.Status.choices)

    class Meta:
        model = ContactRequest
        fields = ["status"]
