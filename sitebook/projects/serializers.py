from decimal import Decimal

from rest_framework import serializers

from sitebook.categories.defaults import PROJECT_TYPE
from sitebook.categories.models import CategoryItem
from sitebook.core.models import User
from sitebook.core.serializers import OrganizationScopedSerializer
from sitebook.core.validators import validate_date_range
from sitebook.parties.models import Party
from .models import Project, Stage, Task


class AssigneeSerializer(serializers.ModelSerializer):
    display_name = serializers.CharField(source='get_display_name', read_only=True)

    class Meta:
        model = User
        fields = ['id', 'display_name', 'phone']


class ProjectSerializer(OrganizationScopedSerializer):
    client_name = serializers.CharField(source='client.name', read_only=True, allow_null=True)
    project_type_name = serializers.CharField(source='project_type.name', read_only=True, allow_null=True)
    amount = serializers.DecimalField(max_digits=15, decimal_places=2, min_value=Decimal('0'),
                                      required=False, allow_null=True)

    class Meta:
        model = Project
        fields = ['id', 'name', 'client', 'client_name', 'location', 'start_date', 'end_date',
                  'amount', 'project_type', 'project_type_name', 'area', 'status',
                  'created_by', 'created_at', 'updated_at']
        read_only_fields = ['created_by', 'created_at', 'updated_at']

    def get_scoped_querysets(self, organization):
        return {
            'client': Party.objects.filter(organization=organization, type=Party.CLIENT),
            'project_type': CategoryItem.objects.filter(
                organization=organization, category_type__key=PROJECT_TYPE
            ),
        }

    def validate_client(self, value):
        if value is not None and value.type != Party.CLIENT:
            raise serializers.ValidationError("Client must be a party of type CLIENT.")
        return value

    def validate(self, attrs):
        validate_date_range(
            attrs.get('start_date', getattr(self.instance, 'start_date', None)),
            attrs.get('end_date', getattr(self.instance, 'end_date', None)),
        )
        return attrs


class StageSerializer(OrganizationScopedSerializer):
    project_name = serializers.CharField(source='project.name', read_only=True)
    budget_amount = serializers.DecimalField(max_digits=15, decimal_places=2, min_value=Decimal('0'),
                                             required=False)
    weight = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=Decimal('0'),
                                      max_value=Decimal('100'), required=False)
    member_details = AssigneeSerializer(source='members', many=True, read_only=True)
    task_count = serializers.SerializerMethodField()

    class Meta:
        model = Stage
        fields = ['id', 'project', 'project_name', 'name', 'description', 'start_date', 'end_date',
                  'budget_amount', 'weight', 'status', 'members', 'member_details', 'parties',
                  'task_count', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']
        # Name uniqueness is checked case-insensitively in validate()
        validators = []

    def get_scoped_querysets(self, organization):
        return {
            'project': Project.objects.filter(organization=organization),
            'members': User.objects.filter(memberships__organization=organization),
            'parties': Party.objects.filter(organization=organization),
        }

    def get_task_count(self, obj):
        return obj.tasks.count()

    def validate(self, attrs):
        validate_date_range(
            attrs.get('start_date', getattr(self.instance, 'start_date', None)),
            attrs.get('end_date', getattr(self.instance, 'end_date', None)),
        )
        project = attrs.get('project', getattr(self.instance, 'project', None))
        name = attrs.get('name', getattr(self.instance, 'name', None))
        if project is not None and name:
            duplicates = Stage.objects.filter(project=project, name__iexact=name.strip())
            if self.instance is not None:
                duplicates = duplicates.exclude(pk=self.instance.pk)
            if duplicates.exists():
                raise serializers.ValidationError({"name": f"Stage '{name}' already exists in this project."})
        if self.instance is not None and 'project' in attrs and attrs['project'] != self.instance.project:
            raise serializers.ValidationError({"project": "A stage cannot move to another project."})
        return attrs


class TaskSerializer(OrganizationScopedSerializer):
    stage_name = serializers.CharField(source='stage.name', read_only=True)
    project = serializers.IntegerField(source='stage.project_id', read_only=True)
    days_allocated = serializers.IntegerField(min_value=1, required=False)
    member_details = AssigneeSerializer(source='members', many=True, read_only=True)

    class Meta:
        model = Task
        fields = ['id', 'stage', 'stage_name', 'project', 'name', 'description', 'days_allocated',
                  'status', 'members', 'member_details', 'parties', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def get_scoped_querysets(self, organization):
        return {
            'stage': Stage.objects.filter(organization=organization),
            'members': User.objects.filter(memberships__organization=organization),
            'parties': Party.objects.filter(organization=organization),
        }

    def validate_status(self, value):
        if self.instance is not None and not self.instance.can_transition_to(value):
            raise serializers.ValidationError(f"Cannot move task from {self.instance.status} to {value}.")
        return value


class TaskStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Task.STATUS_CHOICES)
