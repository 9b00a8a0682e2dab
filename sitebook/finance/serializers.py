from decimal import Decimal

from rest_framework import serializers

from sitebook.categories.defaults import EXPENSE_TYPE, MATERIAL_TYPE, LABOUR_TYPE, SUB_WORK_TYPE
from sitebook.categories.models import CategoryItem
from sitebook.core.models import User
from sitebook.core.serializers import OrganizationScopedSerializer
from sitebook.parties.models import Party
from sitebook.projects.models import Project, Stage
from . import store
from .models import Expense, Payment, MemberAdvance

MONEY = {'max_digits': 15, 'decimal_places': 2}
# rate x quantity: 13 + 11 integer digits, 2 + 4 decimals
PRODUCT = {'max_digits': 30, 'decimal_places': 6}


class ExpenseSerializer(OrganizationScopedSerializer):
    amount = serializers.DecimalField(read_only=True, **PRODUCT)
    project_name = serializers.CharField(source='project.name', read_only=True)
    party_name = serializers.CharField(source='party.name', read_only=True, allow_null=True)
    stage_name = serializers.CharField(source='stage.name', read_only=True, allow_null=True)
    category_name = serializers.CharField(source='category.name', read_only=True)
    rate = serializers.DecimalField(min_value=Decimal('0'), **MONEY)
    quantity = serializers.DecimalField(max_digits=15, decimal_places=4, min_value=Decimal('0.0001'))
    # Only read on create: pays the expense immediately
    paid_amount = serializers.DecimalField(write_only=True, required=False, allow_null=True,
                                           min_value=Decimal('0'), **MONEY)
    reference_number = serializers.CharField(write_only=True, required=False, allow_null=True,
                                             allow_blank=True, max_length=100)

    class Meta:
        model = Expense
        fields = ['id', 'project', 'project_name', 'party', 'party_name', 'stage', 'stage_name',
                  'category', 'category_name', 'material_type', 'labour_type', 'sub_work_type',
                  'member_advance', 'description', 'rate', 'quantity', 'amount', 'payment_mode',
                  'expense_date', 'status', 'notes', 'recorded_by', 'paid_amount', 'reference_number',
                  'created_at', 'updated_at']
        read_only_fields = ['recorded_by', 'created_at', 'updated_at']

    def get_scoped_querysets(self, organization):
        items = CategoryItem.objects.filter(organization=organization)
        return {
            'project': Project.objects.filter(organization=organization),
            'party': Party.objects.filter(organization=organization),
            'stage': Stage.objects.filter(organization=organization),
            'category': items.filter(category_type__key=EXPENSE_TYPE),
            'material_type': items.filter(category_type__key=MATERIAL_TYPE),
            'labour_type': items.filter(category_type__key=LABOUR_TYPE),
            'sub_work_type': items.filter(category_type__key=SUB_WORK_TYPE),
            'member_advance': MemberAdvance.objects.filter(organization=organization),
        }

    def _current(self, attrs, name):
        if name in attrs:
            return attrs[name]
        return getattr(self.instance, name, None)

    def validate_status(self, value):
        if self.instance is not None and self.instance.status == Expense.APPROVED and value != Expense.APPROVED:
            raise serializers.ValidationError("An approved expense cannot go back to pending.")
        return value

    def validate(self, attrs):
        project = self._current(attrs, 'project')
        stage = self._current(attrs, 'stage')
        member_advance = self._current(attrs, 'member_advance')

        if self.instance is not None and 'project' in attrs and attrs['project'] != self.instance.project:
            if self.instance.payments.exists():
                raise serializers.ValidationError({"project": "An expense with payments cannot move to another project."})
        if stage is not None and project is not None and stage.project_id != project.pk:
            raise serializers.ValidationError({"stage": "Stage does not belong to this project."})
        if member_advance is not None and project is not None and member_advance.project_id != project.pk:
            raise serializers.ValidationError({"member_advance": "Advance was given for a different project."})

        if self.instance is not None:
            attrs.pop('paid_amount', None)
            attrs.pop('reference_number', None)
        else:
            paid_amount = attrs.get('paid_amount')
            if paid_amount and not attrs.get('payment_mode'):
                raise serializers.ValidationError({"payment_mode": "Required when paid_amount is given."})
        return attrs


class PaymentSerializer(OrganizationScopedSerializer):
    project_name = serializers.CharField(source='project.name', read_only=True)
    party_name = serializers.CharField(source='party.name', read_only=True, allow_null=True)
    amount = serializers.DecimalField(min_value=Decimal('0.01'), **MONEY)

    class Meta:
        model = Payment
        fields = ['id', 'project', 'project_name', 'party', 'party_name', 'expense', 'type',
                  'payment_mode', 'amount', 'payment_date', 'reference_number', 'notes',
                  'recorded_by', 'created_at', 'updated_at']
        read_only_fields = ['recorded_by', 'created_at', 'updated_at']

    def get_scoped_querysets(self, organization):
        return {
            'project': Project.objects.filter(organization=organization),
            'party': Party.objects.filter(organization=organization),
            'expense': Expense.objects.filter(organization=organization),
        }

    def _current(self, attrs, name):
        if name in attrs:
            return attrs[name]
        return getattr(self.instance, name, None)

    def validate(self, attrs):
        project = self._current(attrs, 'project')
        expense = self._current(attrs, 'expense')
        payment_type = self._current(attrs, 'type')
        amount = self._current(attrs, 'amount')

        if expense is not None:
            if payment_type != Payment.OUT:
                raise serializers.ValidationError({"type": "Payments against an expense must be OUT."})
            if project is not None and expense.project_id != project.pk:
                raise serializers.ValidationError({"expense": "Expense belongs to a different project."})
            party = self._current(attrs, 'party')
            if party is None:
                attrs['party'] = expense.party
            elif expense.party_id is not None and party.pk != expense.party_id:
                raise serializers.ValidationError({"party": "Party does not match the expense's party."})

            unpaid = store.expense_unpaid_amount(expense.organization, expense, exclude_payment=self.instance)
            if amount is not None and amount > unpaid:
                raise serializers.ValidationError({"amount": f"Exceeds the unpaid amount of this expense ({unpaid})."})
        return attrs


class MemberAdvanceSerializer(OrganizationScopedSerializer):
    project_name = serializers.CharField(source='project.name', read_only=True)
    member_name = serializers.CharField(source='member.get_display_name', read_only=True)
    amount = serializers.DecimalField(min_value=Decimal('0.01'), **MONEY)

    class Meta:
        model = MemberAdvance
        fields = ['id', 'project', 'project_name', 'member', 'member_name', 'amount', 'purpose',
                  'payment_mode', 'advance_date', 'expected_settlement_date', 'notes',
                  'recorded_by', 'created_at', 'updated_at']
        read_only_fields = ['recorded_by', 'created_at', 'updated_at']

    def get_scoped_querysets(self, organization):
        return {
            'project': Project.objects.filter(organization=organization),
            'member': User.objects.filter(memberships__organization=organization),
        }

    def validate(self, attrs):
        advance_date = attrs.get('advance_date', getattr(self.instance, 'advance_date', None))
        settlement = attrs.get('expected_settlement_date', getattr(self.instance, 'expected_settlement_date', None))
        if advance_date and settlement and settlement < advance_date:
            raise serializers.ValidationError(
                {"expected_settlement_date": "Must not be earlier than advance_date."}
            )
        if self.instance is not None and 'project' in attrs and attrs['project'] != self.instance.project:
            if self.instance.expenses.exists():
                raise serializers.ValidationError({"project": "Advance already has expenses drawn from it."})
        return attrs


class UnpaidExpenseSerializer(serializers.Serializer):
    """Row of the pay-against list"""
    id = serializers.IntegerField(source='expense.pk')
    project = serializers.IntegerField(source='expense.project_id')
    project_name = serializers.CharField(source='expense.project.name')
    category_name = serializers.CharField(source='expense.category.name')
    description = serializers.CharField(source='expense.description', allow_null=True)
    expense_date = serializers.DateField(source='expense.expense_date')
    amount = serializers.DecimalField(**PRODUCT)
    amount_paid = serializers.DecimalField(**PRODUCT)
    amount_unpaid = serializers.DecimalField(**PRODUCT)
