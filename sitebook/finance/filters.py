import django_filters
from django.db.models import Q
from rest_framework import serializers

from .models import Expense, Payment, MemberAdvance, PAYMENT_MODE_CHOICES


class DateRangeFilterSet(django_filters.FilterSet):
    """Adds date_from/date_to on `date_field` and rejects inverted ranges"""
    date_field = None

    date_from = django_filters.DateFilter(method='filter_date_from')
    date_to = django_filters.DateFilter(method='filter_date_to')

    def filter_date_from(self, queryset, name, value):
        return queryset.filter(**{f'{self.date_field}__gte': value})

    def filter_date_to(self, queryset, name, value):
        return queryset.filter(**{f'{self.date_field}__lte': value})

    def is_valid(self):
        valid = super().is_valid()
        if valid:
            date_from = self.form.cleaned_data.get('date_from')
            date_to = self.form.cleaned_data.get('date_to')
            if date_from and date_to and date_to < date_from:
                self.form.add_error('date_to', 'Must not be earlier than date_from.')
                return False
        return valid


class ExpenseFilter(DateRangeFilterSet):
    date_field = 'expense_date'

    project = django_filters.NumberFilter(field_name='project_id')
    party = django_filters.NumberFilter(field_name='party_id')
    stage = django_filters.NumberFilter(field_name='stage_id')
    category = django_filters.NumberFilter(field_name='category_id')
    member_advance = django_filters.NumberFilter(field_name='member_advance_id')
    status = django_filters.ChoiceFilter(choices=Expense.STATUS_CHOICES)
    payment_mode = django_filters.ChoiceFilter(choices=PAYMENT_MODE_CHOICES)
    search = django_filters.CharFilter(method='filter_search')

    class Meta:
        model = Expense
        fields = ['project', 'party', 'stage', 'category', 'member_advance', 'status', 'payment_mode']

    def filter_search(self, queryset, name, value):
        return queryset.filter(
            Q(description__icontains=value) |
            Q(notes__icontains=value) |
            Q(party__name__icontains=value)
        )


class PaymentFilter(DateRangeFilterSet):
    date_field = 'payment_date'

    project = django_filters.NumberFilter(field_name='project_id')
    party = django_filters.NumberFilter(field_name='party_id')
    expense = django_filters.NumberFilter(field_name='expense_id')
    type = django_filters.ChoiceFilter(choices=Payment.TYPE_CHOICES)
    payment_mode = django_filters.ChoiceFilter(choices=PAYMENT_MODE_CHOICES)

    class Meta:
        model = Payment
        fields = ['project', 'party', 'expense', 'type', 'payment_mode']


class MemberAdvanceFilter(DateRangeFilterSet):
    date_field = 'advance_date'

    project = django_filters.NumberFilter(field_name='project_id')
    member = django_filters.NumberFilter(field_name='member_id')
    payment_mode = django_filters.ChoiceFilter(choices=PAYMENT_MODE_CHOICES)
    ordering = django_filters.OrderingFilter(
        fields=(
            ('advance_date', 'advance_date'),
            ('amount', 'amount'),
            ('created_at', 'created_at'),
        )
    )

    class Meta:
        model = MemberAdvance
        fields = ['project', 'member', 'payment_mode']


def filter_or_raise(filterset_class, request, queryset):
    """Apply a FilterSet to a queryset; invalid query params become a 400"""
    filterset = filterset_class(request.query_params, queryset=queryset, request=request)
    if not filterset.is_valid():
        raise serializers.ValidationError(filterset.errors)
    return filterset.qs
