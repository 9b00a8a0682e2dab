from decimal import Decimal

from rest_framework import serializers

from sitebook.categories.defaults import EXPENSE_TYPE
from sitebook.categories.models import CategoryItem
from sitebook.core.serializers import OrganizationScopedSerializer
from sitebook.finance import ledger
from sitebook.finance.serializers import PRODUCT
from sitebook.projects.models import Stage
from .models import BOQSection, BOQItem


class BOQSectionSerializer(serializers.ModelSerializer):
    item_count = serializers.SerializerMethodField()

    class Meta:
        model = BOQSection
        fields = ['id', 'project', 'name', 'sort_order', 'item_count', 'created_at', 'updated_at']
        read_only_fields = ['project', 'created_at', 'updated_at']
        validators = []

    def get_item_count(self, obj):
        return obj.items.count()

    def validate_name(self, value):
        value = value.strip()
        project = self.context['project']
        duplicates = BOQSection.objects.filter(project=project, name__iexact=value)
        if self.instance is not None:
            duplicates = duplicates.exclude(pk=self.instance.pk)
        if duplicates.exists():
            raise serializers.ValidationError(f"Section '{value}' already exists in this project.")
        return value


class BOQItemSerializer(OrganizationScopedSerializer):
    """
    BOQ line with its quoted amount and the actual spend of linked expenses.

    The project comes from the URL and is passed in the context.
    """
    category_name = serializers.CharField(source='category.name', read_only=True)
    section_name = serializers.CharField(source='section.name', read_only=True, allow_null=True)
    stage_name = serializers.CharField(source='stage.name', read_only=True, allow_null=True)
    quantity = serializers.DecimalField(max_digits=15, decimal_places=4, min_value=Decimal('0'))
    rate = serializers.DecimalField(max_digits=15, decimal_places=2, min_value=Decimal('0'))
    quoted_amount = serializers.DecimalField(read_only=True, **PRODUCT)
    actual_amount = serializers.SerializerMethodField()
    linked_expenses = serializers.PrimaryKeyRelatedField(source='expenses', many=True, read_only=True)

    class Meta:
        model = BOQItem
        fields = ['id', 'project', 'section', 'section_name', 'stage', 'stage_name', 'category',
                  'category_name', 'code', 'description', 'unit', 'quantity', 'rate',
                  'quoted_amount', 'actual_amount', 'linked_expenses', 'notes',
                  'is_review_flagged', 'flag_reason', 'created_at', 'updated_at']
        read_only_fields = ['project', 'created_at', 'updated_at']

    def get_scoped_querysets(self, organization):
        project = self.context.get('project')
        return {
            'section': BOQSection.objects.filter(organization=organization, project=project),
            'stage': Stage.objects.filter(organization=organization, project=project),
            'category': CategoryItem.objects.filter(
                organization=organization, category_type__key=EXPENSE_TYPE
            ),
        }

    def get_actual_amount(self, obj):
        return float(ledger.sum_expense_amounts(obj.expenses.all()))

    def validate(self, attrs):
        flagged = attrs.get('is_review_flagged', getattr(self.instance, 'is_review_flagged', False))
        if not flagged:
            attrs['flag_reason'] = None
        return attrs


class ExpenseLinkSerializer(serializers.Serializer):
    expense = serializers.IntegerField()
