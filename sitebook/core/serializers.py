from rest_framework import serializers
from django.contrib.auth.password_validation import validate_password
from .models import User, Organization, Permission, Role, OrganizationMember, AuditLog
from .permissions import SYSTEM_ROLES
from .validators import validate_phone


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'username', 'name', 'email', 'phone', 'is_active', 'created_at', 'updated_at']
        read_only_fields = ['username', 'is_active', 'created_at', 'updated_at']


class UserCreateSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, validators=[validate_password])
    password_confirm = serializers.CharField(write_only=True)

    class Meta:
        model = User
        fields = ['username', 'name', 'email', 'phone', 'password', 'password_confirm']

    def validate(self, attrs):
        if attrs['password'] != attrs['password_confirm']:
            raise serializers.ValidationError({"password": "Passwords don't match"})
        return attrs

    def create(self, validated_data):
        validated_data.pop('password_confirm')
        password = validated_data.pop('password')
        user = User(**validated_data, is_active=True)
        user.set_password(password)
        user.save()
        return user


class OrganizationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Organization
        fields = ['id', 'name', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']


class PermissionSerializer(serializers.ModelSerializer):
    class Meta:
        model = Permission
        fields = ['id', 'key', 'resource', 'action', 'description']


class RoleSerializer(serializers.ModelSerializer):
    permissions = serializers.SlugRelatedField(
        many=True, slug_field='key', queryset=Permission.objects.all(), required=False
    )
    member_count = serializers.SerializerMethodField()

    class Meta:
        model = Role
        fields = ['id', 'name', 'description', 'is_system_role', 'permissions', 'member_count', 'created_at']
        read_only_fields = ['is_system_role', 'created_at']

    def get_member_count(self, obj):
        return obj.members.count()

    def validate_name(self, value):
        value = value.strip().upper()
        if value in SYSTEM_ROLES:
            raise serializers.ValidationError(f"'{value}' is a reserved system role name.")
        organization = self.context['organization']
        duplicates = Role.objects.filter(organization=organization, name=value)
        if self.instance is not None:
            duplicates = duplicates.exclude(pk=self.instance.pk)
        if duplicates.exists():
            raise serializers.ValidationError(f"Role '{value}' already exists.")
        return value

    def validate(self, attrs):
        if self.instance is not None and self.instance.is_system_role:
            raise serializers.ValidationError("System roles cannot be modified.")
        return attrs


class OrganizationMemberSerializer(serializers.ModelSerializer):
    user = UserSerializer(read_only=True)
    role_name = serializers.CharField(source='role.name', read_only=True)

    class Meta:
        model = OrganizationMember
        fields = ['id', 'user', 'role', 'role_name', 'joined_at']
        read_only_fields = ['joined_at']


class MemberInviteSerializer(serializers.Serializer):
    phone = serializers.CharField(max_length=20)
    name = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')
    role = serializers.IntegerField()

    def validate_phone(self, value):
        return validate_phone(value)


class AuditLogSerializer(serializers.ModelSerializer):
    user = UserSerializer(read_only=True)

    class Meta:
        model = AuditLog
        fields = ['id', 'user', 'action', 'model_name', 'object_id', 'object_name',
                  'changes', 'ip_address', 'created_at']


class OrganizationScopedSerializer(serializers.ModelSerializer):
    """
    Model serializer whose related-field choices are limited to one organization.

    Subclasses return {field_name: queryset} from get_scoped_querysets(); the
    organization comes from the serializer context.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        organization = self.context.get('organization')
        if organization is None:
            return
        for name, queryset in self.get_scoped_querysets(organization).items():
            field = self.fields.get(name)
            if field is None or field.read_only:
                continue
            if isinstance(field, serializers.ManyRelatedField):
                field.child_relation.queryset = queryset
            else:
                field.queryset = queryset

    def get_scoped_querysets(self, organization):
        return {}
