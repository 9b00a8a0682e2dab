import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError, AuthenticationFailed
from django.contrib.auth import get_user_model
from django.core.exceptions import ObjectDoesNotExist
from django.db.models import Q
from django.shortcuts import get_object_or_404

from .exceptions import InvalidInput
from .models import Organization, Permission, Role, OrganizationMember, AuditLog
from .permissions import require_permission, get_permission_scope, RESOURCES, role_allows
from .responses import success_response, created_response, validation_error_response, paginate_queryset
from .serializers import (
    UserSerializer, UserCreateSerializer, OrganizationSerializer, PermissionSerializer,
    RoleSerializer, OrganizationMemberSerializer, MemberInviteSerializer, AuditLogSerializer,
)
from .services import create_organization, add_member, remove_member, change_member_role, get_role
from .tenancy import resolve_membership, get_organization
from .utils import create_audit_log

User = get_user_model()
logger = logging.getLogger(__name__)


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        if not self.user.is_active:
            raise AuthenticationFailed('User account is disabled.')
        data['user'] = UserSerializer(self.user).data
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        token['organizations'] = list(user.memberships.values_list('organization_id', flat=True))
        return token


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Token refresh that rejects tokens of deleted users"""
    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except (ObjectDoesNotExist, User.DoesNotExist):
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    serializer_class = CustomTokenRefreshSerializer


@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    """User registration endpoint"""
    serializer = UserCreateSerializer(data=request.data)
    if serializer.is_valid():
        user = serializer.save()
        token = CustomTokenObtainPairSerializer.get_token(user)
        return created_response({
            'user': UserSerializer(user).data,
            'access': str(token.access_token),
            'refresh': str(token),
        })
    return validation_error_response(serializer.errors)


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Current user with organization memberships and the active role's scopes"""
    user = request.user
    if request.method == 'PATCH':
        serializer = UserSerializer(user, data=request.data, partial=True)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        serializer.save()

    user_data = UserSerializer(user).data
    memberships = user.memberships.select_related('organization', 'role')
    user_data['organizations'] = [
        {
            'id': m.organization_id,
            'name': m.organization.name,
            'role': m.role.name,
            'membership_id': m.pk,
        }
        for m in memberships
    ]

    # Permissions for the organization named in the header, when present
    if request.META.get('HTTP_X_ORGANIZATION_ID'):
        membership = resolve_membership(request)
        user_data['permissions'] = {
            resource: {
                'scope': get_permission_scope(membership.role.name, resource) or 'all',
                'actions': [
                    action for action in ('create', 'read', 'update', 'delete', 'manage')
                    if role_allows(membership.role, resource, action)
                ],
            }
            for resource in RESOURCES
        }
    return success_response(user_data)


# Organization views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def organization_list_create(request):
    """List the caller's organizations or create a new one"""
    if request.method == 'GET':
        organizations = Organization.objects.filter(members__user=request.user).distinct()
        serializer = OrganizationSerializer(organizations, many=True)
        return success_response(serializer.data)
    else:
        serializer = OrganizationSerializer(data=request.data)
        if serializer.is_valid():
            organization = create_organization(serializer.validated_data['name'], request.user)
            create_audit_log(request, 'create', 'Organization', organization.pk,
                             object_name=organization.name, organization=organization)
            return created_response(OrganizationSerializer(organization).data)
        return validation_error_response(serializer.errors)


@api_view(['GET', 'PUT', 'PATCH'])
@permission_classes([IsAuthenticated, require_permission('organizations')])
def organization_current(request):
    """Retrieve or rename the organization named in the header"""
    organization = get_organization(request)
    if request.method == 'GET':
        return success_response(OrganizationSerializer(organization).data)
    serializer = OrganizationSerializer(organization, data=request.data, partial=request.method == 'PATCH')
    if serializer.is_valid():
        serializer.save()
        create_audit_log(request, 'update', 'Organization', organization.pk,
                         changes=serializer.validated_data, organization=organization)
        return success_response(serializer.data)
    return validation_error_response(serializer.errors)


# Team member views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, require_permission('members')])
def member_list_create(request):
    """List organization members or add one by phone number"""
    organization = get_organization(request)
    if request.method == 'GET':
        members = (
            OrganizationMember.objects
            .filter(organization=organization)
            .select_related('user', 'role')
        )
        role = request.query_params.get('role')
        if role:
            members = members.filter(role__name=role.upper())
        search = request.query_params.get('search')
        if search:
            members = members.filter(Q(user__name__icontains=search) | Q(user__phone__icontains=search))
        return paginate_queryset(request, members.order_by('joined_at'), OrganizationMemberSerializer)
    else:
        serializer = MemberInviteSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        data = serializer.validated_data
        role = get_role(organization, role_id=data['role'])
        membership = add_member(organization, data['phone'], role, name=data.get('name', ''))
        create_audit_log(request, 'member_add', 'OrganizationMember', membership.pk,
                         object_name=membership.user.get_display_name(), organization=organization)
        return created_response(OrganizationMemberSerializer(membership).data)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, require_permission('members')])
def member_detail(request, pk):
    """Retrieve a member, change their role, or remove them"""
    organization = get_organization(request)
    membership = get_object_or_404(
        OrganizationMember.objects.select_related('user', 'role'), pk=pk, organization=organization
    )
    if request.method == 'GET':
        return success_response(OrganizationMemberSerializer(membership).data)
    elif request.method == 'PATCH':
        role_id = request.data.get('role')
        if role_id is None or not str(role_id).isdigit():
            raise InvalidInput('role must be a role id.', details={'role': ['A valid role id is required.']})
        role = get_role(organization, role_id=role_id)
        old_role = membership.role.name
        change_member_role(membership, role)
        create_audit_log(request, 'role_change', 'OrganizationMember', membership.pk,
                         changes={'role': [old_role, role.name]}, organization=organization)
        return success_response(OrganizationMemberSerializer(membership).data)
    else:  # DELETE
        remove_member(membership)
        create_audit_log(request, 'member_remove', 'OrganizationMember', pk, organization=organization)
        return Response(status=status.HTTP_204_NO_CONTENT)


# Role views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, require_permission('members')])
def role_list_create(request):
    """List the organization's roles or create a custom role"""
    organization = get_organization(request)
    if request.method == 'GET':
        roles = Role.objects.filter(organization=organization).prefetch_related('permissions')
        serializer = RoleSerializer(roles, many=True)
        return success_response(serializer.data)
    else:
        serializer = RoleSerializer(data=request.data, context={'organization': organization})
        if serializer.is_valid():
            role = serializer.save(organization=organization, is_system_role=False)
            return created_response(RoleSerializer(role).data)
        return validation_error_response(serializer.errors)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, require_permission('members')])
def role_detail(request, pk):
    """Retrieve, update or delete a custom role"""
    organization = get_organization(request)
    role = get_object_or_404(Role, pk=pk, organization=organization)

    if request.method == 'GET':
        return success_response(RoleSerializer(role).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = RoleSerializer(
            role, data=request.data, partial=request.method == 'PATCH', context={'organization': organization}
        )
        if serializer.is_valid():
            serializer.save()
            return success_response(serializer.data)
        return validation_error_response(serializer.errors)
    else:  # DELETE
        if role.is_system_role:
            raise InvalidInput('System roles cannot be deleted.', code='SYSTEM_ROLE')
        if role.members.exists():
            raise InvalidInput('Role is assigned to members.', code='ROLE_IN_USE')
        role.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def permission_list(request):
    """Global permission catalogue, optionally filtered by resource"""
    permissions = Permission.objects.all()
    resource = request.query_params.get('resource')
    if resource:
        permissions = permissions.filter(resource=resource)
    return success_response(PermissionSerializer(permissions, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, require_permission('organizations', 'manage')])
def audit_log_list(request):
    """List audit logs for the organization"""
    organization = get_organization(request)
    logs = AuditLog.objects.filter(organization=organization).select_related('user')
    model_name = request.query_params.get('model_name')
    if model_name:
        logs = logs.filter(model_name=model_name)
    action = request.query_params.get('action')
    if action:
        logs = logs.filter(action=action)
    return paginate_queryset(request, logs, AuditLogSerializer)
