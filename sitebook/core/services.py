"""
Organization bootstrap and membership management
"""
import logging

from django.db import transaction

from sitebook.categories.defaults import seed_organization_categories
from .exceptions import InvalidInput, NotFound
from .models import Organization, Permission, Role, RolePermission, OrganizationMember, User
from .permissions import (
    ACTIONS, RESOURCES, SYSTEM_ROLES, ROLE_ADMIN,
    get_role_permission_keys, permission_key,
)

logger = logging.getLogger(__name__)

ROLE_DESCRIPTIONS = {
    'ADMIN': 'Full access to everything in the organization',
    'MANAGER': 'Manages projects, money and parties',
    'ACCOUNTANT': 'Records expenses and payments',
    'SUPERVISOR': 'Site supervisor for assigned projects',
    'CLIENT': 'Read-only access to their own projects',
}


def ensure_permission_catalogue():
    """Create the global permission rows and return them keyed by key"""
    catalogue = {}
    for resource in RESOURCES:
        for action in ACTIONS:
            key = permission_key(resource, action)
            permission, _ = Permission.objects.get_or_create(
                key=key,
                defaults={'resource': resource, 'action': action, 'description': f'{action.title()} {resource}'},
            )
            catalogue[key] = permission
    return catalogue


def create_system_roles(organization):
    catalogue = ensure_permission_catalogue()
    roles = {}
    for role_name in SYSTEM_ROLES:
        role, created = Role.objects.get_or_create(
            organization=organization,
            name=role_name,
            defaults={'is_system_role': True, 'description': ROLE_DESCRIPTIONS.get(role_name, '')},
        )
        if created:
            RolePermission.objects.bulk_create([
                RolePermission(role=role, permission=catalogue[key])
                for key in get_role_permission_keys(role_name)
            ])
        roles[role_name] = role
    return roles


@transaction.atomic
def create_organization(name, user):
    """Create an organization with system roles, default categories and the creator as ADMIN"""
    organization = Organization.objects.create(name=name, created_by=user)
    roles = create_system_roles(organization)
    seed_organization_categories(organization)
    OrganizationMember.objects.create(organization=organization, user=user, role=roles[ROLE_ADMIN])
    logger.info(f"Organization {organization.pk} created by user {user.pk}")
    return organization


def get_role(organization, role_id=None, role_name=None):
    roles = Role.objects.filter(organization=organization)
    role = None
    if role_id is not None:
        role = roles.filter(pk=role_id).first()
    elif role_name:
        role = roles.filter(name=role_name).first()
    if role is None:
        raise NotFound('Role not found in this organization.')
    return role


@transaction.atomic
def add_member(organization, phone, role, name=''):
    """Add a user (created when the phone is unknown) to an organization"""
    user = User.objects.filter(phone=phone).first()
    if user is None:
        user = User(username=phone, phone=phone, name=name)
        user.set_unusable_password()
        user.save()
        logger.info(f"Created placeholder user {user.pk} for phone {phone}")
    if OrganizationMember.objects.filter(organization=organization, user=user).exists():
        raise InvalidInput('User is already a member of this organization.', code='ALREADY_MEMBER')
    return OrganizationMember.objects.create(organization=organization, user=user, role=role)


def remove_member(membership):
    """Remove a member, refusing to leave the organization without an ADMIN"""
    if _is_last_admin(membership):
        raise InvalidInput('An organization needs at least one admin.', code='LAST_ADMIN')
    membership.delete()


def _is_last_admin(membership):
    if membership.role.name != ROLE_ADMIN or not membership.role.is_system_role:
        return False
    admins = OrganizationMember.objects.filter(
        organization=membership.organization, role__name=ROLE_ADMIN, role__is_system_role=True
    ).count()
    return admins <= 1


def change_member_role(membership, role):
    if membership.role_id != role.pk and _is_last_admin(membership):
        raise InvalidInput('An organization needs at least one admin.', code='LAST_ADMIN')
    membership.role = role
    membership.save(update_fields=['role'])
    return membership
