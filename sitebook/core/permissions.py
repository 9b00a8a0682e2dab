"""
Role based access control

System roles carry a fixed resource/action matrix. Custom roles created by an
organization carry explicit permission keys of the form ``<resource>.<action>``.
"""
from rest_framework.permissions import BasePermission

from sitebook.core.tenancy import resolve_membership

ROLE_ADMIN = 'ADMIN'
ROLE_MANAGER = 'MANAGER'
ROLE_ACCOUNTANT = 'ACCOUNTANT'
ROLE_SUPERVISOR = 'SUPERVISOR'
ROLE_CLIENT = 'CLIENT'

SYSTEM_ROLES = [ROLE_ADMIN, ROLE_MANAGER, ROLE_ACCOUNTANT, ROLE_SUPERVISOR, ROLE_CLIENT]

RESOURCES = [
    'projects', 'stages', 'expenses', 'payments', 'parties',
    'documents', 'categories', 'organizations', 'members',
]
ACTIONS = ['create', 'read', 'update', 'delete', 'manage']

CRUD = ['create', 'read', 'update', 'delete']
READ = ['read']

# resource -> (actions, scope)
ROLE_PERMISSIONS = {
    ROLE_ADMIN: {
        'projects': (CRUD + ['manage'], 'all'),
        'stages': (CRUD, 'all'),
        'expenses': (CRUD, 'all'),
        'payments': (CRUD, 'all'),
        'parties': (CRUD + ['manage'], 'all'),
        'documents': (CRUD, 'all'),
        'categories': (CRUD, 'all'),
        'organizations': (['read', 'update', 'manage'], 'all'),
        'members': (CRUD, 'all'),
    },
    ROLE_MANAGER: {
        'projects': (CRUD, 'all'),
        'stages': (CRUD, 'all'),
        'expenses': (CRUD, 'all'),
        'payments': (CRUD, 'all'),
        'parties': (CRUD, 'all'),
        'documents': (CRUD, 'all'),
        'categories': (CRUD, 'all'),
        'organizations': (READ, 'all'),
        'members': (READ, 'all'),
    },
    ROLE_ACCOUNTANT: {
        'projects': (READ, 'all'),
        'stages': (READ, 'all'),
        'expenses': (CRUD, 'all'),
        'payments': (CRUD, 'all'),
        'parties': (READ, 'all'),
        'documents': (READ, 'all'),
        'categories': (READ, 'all'),
        'organizations': (READ, 'all'),
        'members': (READ, 'all'),
    },
    ROLE_SUPERVISOR: {
        'projects': (READ, 'assigned'),
        'stages': (READ, 'assigned'),
        'expenses': (['create', 'read'], 'assigned'),
        'payments': (READ, 'assigned'),
        'parties': (READ, 'all'),
        'documents': (CRUD, 'assigned'),
        'categories': (READ, 'all'),
        'organizations': (READ, 'all'),
        'members': ([], 'all'),
    },
    ROLE_CLIENT: {
        'projects': (READ, 'own'),
        'stages': (READ, 'own'),
        'expenses': (READ, 'own'),
        'payments': (READ, 'own'),
        'parties': ([], 'all'),
        'documents': (READ, 'own'),
        'categories': (READ, 'all'),
        'organizations': (READ, 'all'),
        'members': ([], 'all'),
    },
}

METHOD_ACTIONS = {
    'GET': 'read',
    'HEAD': 'read',
    'OPTIONS': 'read',
    'POST': 'create',
    'PUT': 'update',
    'PATCH': 'update',
    'DELETE': 'delete',
}


def permission_key(resource, action):
    return f'{resource}.{action}'


def has_permission(role_name, resource, action):
    """Check the built-in matrix for a system role"""
    permissions = ROLE_PERMISSIONS.get(role_name)
    if not permissions or resource not in permissions:
        return False
    actions, _scope = permissions[resource]
    return action in actions


def get_permission_scope(role_name, resource):
    permissions = ROLE_PERMISSIONS.get(role_name)
    if not permissions or resource not in permissions:
        return None
    return permissions[resource][1]


def get_role_permission_keys(role_name):
    """All permission keys a system role holds"""
    permissions = ROLE_PERMISSIONS.get(role_name, {})
    return [
        permission_key(resource, action)
        for resource, (actions, _scope) in permissions.items()
        for action in actions
    ]


def is_manager_role(role_name):
    return role_name in (ROLE_ADMIN, ROLE_MANAGER)


def has_financial_access(role_name):
    return role_name in (ROLE_ADMIN, ROLE_MANAGER, ROLE_ACCOUNTANT)


def role_allows(role, resource, action):
    """Check a Role row. System roles use the matrix, custom roles their keys"""
    if role.is_system_role:
        return has_permission(role.name, resource, action)
    return role.permissions.filter(key=permission_key(resource, action)).exists()


def require_permission(resource, action=None):
    """
    Build a DRF permission class for one resource.

    The action is derived from the HTTP method unless given explicitly.

    Usage:
        @permission_classes([IsAuthenticated, require_permission('expenses')])
    """
    class ResourcePermission(BasePermission):
        message = f'You do not have permission to access {resource}.'

        def has_permission(self, request, view):
            membership = resolve_membership(request)
            wanted = action or METHOD_ACTIONS.get(request.method, 'read')
            return role_allows(membership.role, resource, wanted)

    ResourcePermission.__name__ = f'{resource.title()}Permission'
    return ResourcePermission
