"""
Test suite for the core module
Tests: auth, organizations, members, roles, permission matrix, response envelope, pagination
and the migration history
"""
from io import StringIO

from django.core.management import call_command
from django.db import connection
from django.db.migrations.loader import MigrationLoader
from django.test import TestCase, SimpleTestCase
from rest_framework import status
from sitebook.core.models import Organization, OrganizationMember, Role, AuditLog
from sitebook.core.permissions import (
    has_permission, get_permission_scope, get_role_permission_keys, has_financial_access,
)
from sitebook.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from sitebook.categories.models import CategoryItem


class PermissionMatrixTests(SimpleTestCase):
    """Test the built-in role matrix"""

    def test_admin_can_manage_everything(self):
        for resource in ['projects', 'expenses', 'payments', 'parties', 'members']:
            self.assertTrue(has_permission('ADMIN', resource, 'delete'))

    def test_accountant_reads_projects_but_writes_money(self):
        self.assertTrue(has_permission('ACCOUNTANT', 'projects', 'read'))
        self.assertFalse(has_permission('ACCOUNTANT', 'projects', 'create'))
        self.assertTrue(has_permission('ACCOUNTANT', 'expenses', 'create'))
        self.assertTrue(has_permission('ACCOUNTANT', 'payments', 'update'))

    def test_supervisor_limited_to_assigned_scope(self):
        self.assertTrue(has_permission('SUPERVISOR', 'expenses', 'create'))
        self.assertFalse(has_permission('SUPERVISOR', 'expenses', 'delete'))
        self.assertEqual(get_permission_scope('SUPERVISOR', 'projects'), 'assigned')

    def test_client_is_read_only(self):
        self.assertTrue(has_permission('CLIENT', 'projects', 'read'))
        self.assertFalse(has_permission('CLIENT', 'parties', 'read'))
        self.assertEqual(get_permission_scope('CLIENT', 'payments'), 'own')

    def test_unknown_role_has_nothing(self):
        self.assertFalse(has_permission('NOBODY', 'projects', 'read'))
        self.assertIsNone(get_permission_scope('NOBODY', 'projects'))
        self.assertEqual(get_role_permission_keys('NOBODY'), [])

    def test_financial_access(self):
        self.assertTrue(has_financial_access('ACCOUNTANT'))
        self.assertFalse(has_financial_access('SUPERVISOR'))


class AuthTests(TestCase):
    """Test registration, login and the current user endpoint"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def test_register(self):
        response = self.client.post('/api/v1/auth/register/', {
            'username': 'siteowner',
            'name': 'Site Owner',
            'email': 'owner@test.com',
            'password': 'Str0ng-Passw0rd!',
            'password_confirm': 'Str0ng-Passw0rd!',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['success'])
        self.assertIn('access', response.data['data'])

    def test_register_password_mismatch(self):
        response = self.client.post('/api/v1/auth/register/', {
            'username': 'siteowner',
            'password': 'Str0ng-Passw0rd!',
            'password_confirm': 'different',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['success'])
        self.assertEqual(response.data['error']['code'], 'VALIDATION_ERROR')

    def test_login(self):
        user = TestDataFactory.create_user(username='loginuser', password='testpass123')
        response = self.client.post('/api/v1/auth/login/', {
            'username': 'loginuser',
            'password': 'testpass123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertEqual(response.data['user']['id'], user.pk)

    def test_unauthenticated_request(self):
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['error']['code'], 'UNAUTHORIZED')

    def test_me_lists_organizations_and_permissions(self):
        user = TestDataFactory.create_user()
        organization = TestDataFactory.create_organization(user=user)
        self.client.authenticate_user(user, organization)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.data['data']
        self.assertEqual(data['organizations'][0]['id'], organization.pk)
        self.assertEqual(data['organizations'][0]['role'], 'ADMIN')
        self.assertIn('delete', data['permissions']['projects']['actions'])


class OrganizationTests(TestCase):
    """Test organization bootstrap and tenancy"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_organization_bootstraps_roles_and_categories(self):
        response = self.client.post('/api/v1/organizations/', {'name': 'Acme Builders'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        organization = Organization.objects.get(pk=response.data['data']['id'])

        self.assertEqual(
            set(Role.objects.filter(organization=organization).values_list('name', flat=True)),
            {'ADMIN', 'MANAGER', 'ACCOUNTANT', 'SUPERVISOR', 'CLIENT'},
        )
        membership = OrganizationMember.objects.get(organization=organization, user=self.user)
        self.assertEqual(membership.role.name, 'ADMIN')
        names = set(CategoryItem.objects.filter(organization=organization).values_list('name', flat=True))
        self.assertEqual(names, {'Material', 'Labour', 'Sub Work'})

    def test_missing_organization_header(self):
        response = self.client.get('/api/v1/projects/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error']['code'], 'MISSING_ORG_CONTEXT')

    def test_foreign_organization_header(self):
        other = TestDataFactory.create_organization()
        self.client.authenticate_user(self.user, other)
        response = self.client.get('/api/v1/projects/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error']['code'], 'MISSING_ORG_CONTEXT')

    def test_current_organization_rename(self):
        organization = TestDataFactory.create_organization(user=self.user)
        self.client.authenticate_user(self.user, organization)
        response = self.client.patch('/api/v1/organizations/current/', {'name': 'Renamed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        organization.refresh_from_db()
        self.assertEqual(organization.name, 'Renamed')
        self.assertTrue(AuditLog.objects.filter(organization=organization, action='update').exists())


class MemberAndRoleTests(TestCase):
    """Test team membership and custom roles"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.organization = TestDataFactory.create_organization(user=self.user)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user, self.organization)
        self.admin_membership = OrganizationMember.objects.get(organization=self.organization, user=self.user)

    def _role(self, name):
        return Role.objects.get(organization=self.organization, name=name)

    def test_add_member_by_phone(self):
        response = self.client.post('/api/v1/members/', {
            'phone': '98765 43210',
            'name': 'Site Supervisor',
            'role': self._role('SUPERVISOR').pk,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['role_name'], 'SUPERVISOR')

        duplicate = self.client.post('/api/v1/members/', {
            'phone': '98765 43210',
            'role': self._role('SUPERVISOR').pk,
        }, format='json')
        self.assertEqual(duplicate.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(duplicate.data['error']['code'], 'ALREADY_MEMBER')

    def test_add_member_short_phone(self):
        response = self.client.post('/api/v1/members/', {
            'phone': '12345',
            'role': self._role('MANAGER').pk,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('phone', response.data['error']['details'])

    def test_member_list_paginated(self):
        for _ in range(3):
            TestDataFactory.add_member(self.organization)
        response = self.client.get('/api/v1/members/?page=2&limit=2')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        pagination = response.data['data']['pagination']
        self.assertEqual(pagination['total'], 4)
        self.assertEqual(pagination['pages'], 2)
        self.assertFalse(pagination['has_more'])
        self.assertEqual(len(response.data['data']['items']), 2)

    def test_pagination_limit_out_of_range(self):
        response = self.client.get('/api/v1/members/?limit=500')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['code'], 'VALIDATION_ERROR')

    def test_last_admin_cannot_be_removed(self):
        response = self.client.delete(f'/api/v1/members/{self.admin_membership.pk}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['code'], 'LAST_ADMIN')

    def test_change_member_role(self):
        membership = TestDataFactory.add_member(self.organization, role_name='SUPERVISOR')
        response = self.client.patch(
            f'/api/v1/members/{membership.pk}/', {'role': self._role('ACCOUNTANT').pk}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        membership.refresh_from_db()
        self.assertEqual(membership.role.name, 'ACCOUNTANT')

    def test_custom_role_permissions_apply(self):
        response = self.client.post('/api/v1/roles/', {
            'name': 'site clerk',
            'permissions': ['projects.read', 'expenses.read', 'expenses.create'],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['name'], 'SITE CLERK')

        clerk = TestDataFactory.create_user()
        OrganizationMember.objects.create(
            organization=self.organization, user=clerk, role=Role.objects.get(pk=response.data['data']['id'])
        )
        clerk_client = AuthenticatedAPIClient()
        clerk_client.authenticate_user(clerk, self.organization)
        self.assertEqual(clerk_client.get('/api/v1/projects/').status_code, status.HTTP_200_OK)
        denied = clerk_client.post('/api/v1/projects/', {'name': 'X'}, format='json')
        self.assertEqual(denied.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(denied.data['error']['code'], 'FORBIDDEN')

    def test_reserved_role_name(self):
        response = self.client.post('/api/v1/roles/', {'name': 'admin'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_system_role_cannot_be_deleted(self):
        response = self.client.delete(f"/api/v1/roles/{self._role('CLIENT').pk}/")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['code'], 'SYSTEM_ROLE')

    def test_client_role_cannot_list_members(self):
        client_user = TestDataFactory.create_user()
        TestDataFactory.add_member(self.organization, user=client_user, role_name='CLIENT')
        client_api = AuthenticatedAPIClient()
        client_api.authenticate_user(client_user, self.organization)
        response = client_api.get('/api/v1/members/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_not_found_envelope(self):
        response = self.client.get('/api/v1/members/999999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertFalse(response.data['success'])
        self.assertEqual(response.data['error']['code'], 'NOT_FOUND')


class MigrationHistoryTests(TestCase):
    """Models and the migration files stay in step"""

    MODEL_APPS = ['core', 'categories', 'parties', 'projects', 'finance', 'boq', 'documents']

    def test_every_app_has_an_initial_migration(self):
        loader = MigrationLoader(connection)
        for app_label in self.MODEL_APPS:
            self.assertIn((app_label, '0001_initial'), loader.disk_migrations)

    def test_no_model_changes_without_a_migration(self):
        out = StringIO()
        try:
            call_command('makemigrations', '--check', '--dry-run', stdout=out, stderr=out)
        except SystemExit:
            self.fail(f"Models changed without a migration:\n{out.getvalue()}")

    def test_tables_were_built_from_migrations(self):
        loader = MigrationLoader(connection)
        for app_label in self.MODEL_APPS:
            self.assertIn((app_label, '0001_initial'), loader.applied_migrations)
