"""
Test suite for the categories module
Tests: default seeding, item creation, protection of default items
"""
from django.core.management import call_command
from django.test import TestCase
from io import StringIO
from rest_framework import status
from sitebook.categories.defaults import EXPENSE_TYPE, MATERIAL_TYPE, seed_organization_categories
from sitebook.categories.models import CategoryType, CategoryItem
from sitebook.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class CategoryDefaultsTests(TestCase):
    """Test the default categories every organization receives"""

    def test_new_organization_gets_default_expense_types(self):
        organization = TestDataFactory.create_organization()
        items = CategoryItem.objects.filter(organization=organization, category_type__key=EXPENSE_TYPE)
        self.assertEqual(sorted(items.values_list('name', flat=True)), ['Labour', 'Material', 'Sub Work'])
        self.assertFalse(items.filter(is_editable=True).exists())

    def test_seeding_is_idempotent(self):
        organization = TestDataFactory.create_organization()
        self.assertEqual(seed_organization_categories(organization), [])
        self.assertEqual(CategoryItem.objects.filter(organization=organization).count(), 3)

    def test_seed_categories_command(self):
        organization = TestDataFactory.create_organization()
        CategoryItem.objects.filter(organization=organization, name='Labour').delete()
        out = StringIO()
        call_command('seed_categories', organization=organization.pk, stdout=out)
        self.assertTrue(CategoryItem.objects.filter(organization=organization, name='Labour').exists())
        self.assertIn('Added 1 category item', out.getvalue())


class CategoryAPITests(TestCase):
    """Test category endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.organization = TestDataFactory.create_organization(user=self.user)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user, self.organization)

    def test_list_types(self):
        response = self.client.get('/api/v1/categories/types/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        keys = [row['key'] for row in response.data['data']]
        self.assertIn(EXPENSE_TYPE, keys)
        self.assertIn(MATERIAL_TYPE, keys)

    def test_create_and_list_items(self):
        response = self.client.post(
            f'/api/v1/categories/types/{MATERIAL_TYPE}/items/', {'name': 'Cement'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['data']['is_editable'])

        response = self.client.get(f'/api/v1/categories/types/{MATERIAL_TYPE}/items/')
        self.assertEqual([row['name'] for row in response.data['data']], ['Cement'])

    def test_duplicate_name_is_case_insensitive(self):
        response = self.client.post(
            f'/api/v1/categories/types/{EXPENSE_TYPE}/items/', {'name': 'material'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('name', response.data['error']['details'])

    def test_unknown_type(self):
        response = self.client.get('/api/v1/categories/types/unknown_type/items/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_default_item_cannot_be_renamed_or_deleted(self):
        material = TestDataFactory.expense_category(self.organization)
        response = self.client.patch(f'/api/v1/categories/items/{material.pk}/', {'name': 'Materials'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.delete(f'/api/v1/categories/items/{material.pk}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['code'], 'CATEGORY_NOT_EDITABLE')

    def test_deactivated_items_hidden_by_default(self):
        item = CategoryItem.objects.create(
            organization=self.organization,
            category_type=CategoryType.objects.get(key=MATERIAL_TYPE),
            name='Steel',
            is_active=False,
        )
        response = self.client.get(f'/api/v1/categories/types/{MATERIAL_TYPE}/items/')
        self.assertEqual(response.data['data'], [])
        response = self.client.get(f'/api/v1/categories/types/{MATERIAL_TYPE}/items/?include_inactive=true')
        self.assertEqual(response.data['data'][0]['id'], item.pk)

    def test_items_of_other_organization_are_invisible(self):
        other = TestDataFactory.create_organization()
        foreign = TestDataFactory.expense_category(other)
        response = self.client.get(f'/api/v1/categories/items/{foreign.pk}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
