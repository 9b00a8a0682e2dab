"""
Test suite for the BOQ module
Tests: sections, items, expense links and quoted vs actual stats
"""
from decimal import Decimal

from django.test import SimpleTestCase, TestCase
from rest_framework import status

from sitebook.boq.models import BOQSection, BOQItem, BOQExpenseLink
from sitebook.boq.serializers import BOQItemSerializer
from sitebook.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class BOQTestCase(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.organization = TestDataFactory.create_organization(user=self.user)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user, self.organization)
        self.project = TestDataFactory.create_project(self.organization)
        self.material = TestDataFactory.expense_category(self.organization, 'Material')
        self.labour = TestDataFactory.expense_category(self.organization, 'Labour')
        self.base_url = f'/api/v1/projects/{self.project.pk}/boq'

    def create_item(self, rate='100', quantity='10', category=None, description='RCC M20'):
        return BOQItem.objects.create(
            organization=self.organization,
            project=self.project,
            category=category or self.material,
            description=description,
            unit='cum',
            rate=Decimal(rate),
            quantity=Decimal(quantity),
        )


class BOQSectionTests(BOQTestCase):
    """Test BOQ section endpoints"""

    def test_create_and_list(self):
        response = self.client.post(f'{self.base_url}/sections/', {'name': 'Substructure', 'sort_order': 1},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['project'], self.project.pk)

        response = self.client.get(f'{self.base_url}/sections/')
        self.assertEqual([row['name'] for row in response.data['data']], ['Substructure'])

    def test_duplicate_name_case_insensitive(self):
        BOQSection.objects.create(organization=self.organization, project=self.project, name='Finishes')
        response = self.client.post(f'{self.base_url}/sections/', {'name': 'finishes'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('name', response.data['error']['details'])


class BOQItemTests(BOQTestCase):
    """Test BOQ item endpoints"""

    def test_create_item(self):
        section = BOQSection.objects.create(organization=self.organization, project=self.project, name='Frame')
        response = self.client.post(f'{self.base_url}/items/', {
            'section': section.pk,
            'category': self.material.pk,
            'code': 'C-101',
            'description': 'Column concrete',
            'unit': 'cum',
            'quantity': '12.5',
            'rate': '6400.00',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        data = response.data['data']
        self.assertEqual(Decimal(data['quoted_amount']), Decimal('80000'))
        self.assertEqual(data['actual_amount'], 0.0)
        self.assertEqual(data['section_name'], 'Frame')

    def test_section_of_other_project_rejected(self):
        other = TestDataFactory.create_project(self.organization)
        section = BOQSection.objects.create(organization=self.organization, project=other, name='Frame')
        response = self.client.post(f'{self.base_url}/items/', {
            'section': section.pk,
            'category': self.material.pk,
            'description': 'Column concrete',
            'unit': 'cum',
            'quantity': '1',
            'rate': '1',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('section', response.data['error']['details'])

    def test_unflagging_clears_reason(self):
        item = self.create_item()
        item.is_review_flagged = True
        item.flag_reason = 'Rate looks high'
        item.save()
        response = self.client.patch(f'{self.base_url}/items/{item.pk}/', {'is_review_flagged': False}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        item.refresh_from_db()
        self.assertIsNone(item.flag_reason)

    def test_list_filters(self):
        self.create_item(description='Brick masonry')
        self.create_item(category=self.labour, description='Mason labour')
        response = self.client.get(f'{self.base_url}/items/?category={self.labour.pk}')
        self.assertEqual(response.data['data']['pagination']['total'], 1)
        response = self.client.get(f'{self.base_url}/items/?search=brick')
        self.assertEqual(response.data['data']['items'][0]['description'], 'Brick masonry')

    def test_item_of_other_project_not_found(self):
        other = TestDataFactory.create_project(self.organization)
        item = self.create_item()
        response = self.client.get(f'/api/v1/projects/{other.pk}/boq/items/{item.pk}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_delete_item(self):
        item = self.create_item()
        response = self.client.delete(f'{self.base_url}/items/{item.pk}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(BOQItem.objects.filter(pk=item.pk).exists())


class BOQExpenseLinkTests(BOQTestCase):
    """Test linking expenses to BOQ items"""

    def setUp(self):
        super().setUp()
        self.item = self.create_item()
        self.expense = TestDataFactory.create_expense(self.project, rate=Decimal('450'))
        self.link_url = f'{self.base_url}/items/{self.item.pk}/expenses/'

    def test_link_and_unlink(self):
        response = self.client.post(self.link_url, {'expense': self.expense.pk}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['linked_expenses'], [self.expense.pk])
        self.assertEqual(response.data['data']['actual_amount'], 450.0)

        response = self.client.delete(f'{self.link_url}{self.expense.pk}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(BOQExpenseLink.objects.exists())

    def test_duplicate_link(self):
        BOQExpenseLink.objects.create(item=self.item, expense=self.expense)
        response = self.client.post(self.link_url, {'expense': self.expense.pk}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error']['code'], 'ALREADY_LINKED')

    def test_expense_of_other_project(self):
        other_expense = TestDataFactory.create_expense(TestDataFactory.create_project(self.organization))
        response = self.client.post(self.link_url, {'expense': other_expense.pk}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_expense_of_other_organization(self):
        other = TestDataFactory.create_organization()
        foreign_expense = TestDataFactory.create_expense(TestDataFactory.create_project(other))
        response = self.client.post(self.link_url, {'expense': foreign_expense.pk}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_unlink_missing(self):
        response = self.client.delete(f'{self.link_url}{self.expense.pk}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_deleting_expense_removes_link(self):
        BOQExpenseLink.objects.create(item=self.item, expense=self.expense)
        self.expense.delete()
        self.assertFalse(BOQExpenseLink.objects.filter(item=self.item).exists())


class BOQStatsTests(BOQTestCase):
    """Test the quoted vs actual summary"""

    def test_stats(self):
        concrete = self.create_item(rate='100', quantity='10')
        labour = self.create_item(rate='50', quantity='4', category=self.labour)
        BOQExpenseLink.objects.create(item=concrete, expense=TestDataFactory.create_expense(
            self.project, rate=Decimal('800')))
        BOQExpenseLink.objects.create(item=labour, expense=TestDataFactory.create_expense(
            self.project, rate=Decimal('250'), category=self.labour))

        response = self.client.get(f'{self.base_url}/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.data['data']
        self.assertEqual(data['total_quoted'], 1200.0)
        self.assertEqual(data['total_actual'], 1050.0)
        self.assertEqual(data['variance'], 150.0)
        self.assertEqual(data['variance_percent'], 12.5)
        self.assertEqual(data['budget_usage'], 87.5)
        self.assertEqual(data['item_count'], 2)
        self.assertEqual([row['category_name'] for row in data['category_breakdown']], ['Material', 'Labour'])

    def test_empty_boq(self):
        data = self.client.get(f'{self.base_url}/stats/').data['data']
        self.assertEqual(data['total_quoted'], 0.0)
        self.assertEqual(data['budget_usage'], 0.0)
        self.assertEqual(data['category_breakdown'], [])


class QuotedAmountRepresentationTests(SimpleTestCase):

    def test_largest_quoted_amount(self):
        item = BOQItem(rate=Decimal('9999999999999.99'), quantity=Decimal('99999999999.9999'))
        field = BOQItemSerializer().fields['quoted_amount']
        self.assertEqual(field.to_representation(item.quoted_amount), item.quoted_amount)
