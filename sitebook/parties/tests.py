"""
Test suite for the parties module
Tests: party CRUD, balances, unpaid expenses, credits summary and the balance report command
"""
from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase
from rest_framework import status

from sitebook.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from sitebook.finance.models import Payment
from sitebook.parties.models import Party


class PartyAPITests(TestCase):
    """Test party CRUD endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.organization = TestDataFactory.create_organization(user=self.user)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user, self.organization)

    def test_create_vendor(self):
        response = self.client.post('/api/v1/parties/', {
            'name': '  Shree Cement Traders ',
            'phone': '+91 98765-43210',
            'location': 'Pune',
            'type': 'VENDOR',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['name'], 'Shree Cement Traders')

    def test_vendor_requires_phone(self):
        response = self.client.post('/api/v1/parties/', {'name': 'No Phone', 'type': 'VENDOR'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('phone', response.data['error']['details'])

    def test_client_without_phone(self):
        response = self.client.post('/api/v1/parties/', {'name': 'Mr. Client', 'type': 'CLIENT'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIsNone(response.data['data']['phone'])
        self.assertIsNone(response.data['data']['location'])

    def test_blank_location_stored_as_null(self):
        response = self.client.post('/api/v1/parties/', {
            'name': 'Site Labour', 'phone': '9876543210', 'location': '   ', 'type': 'LABOUR',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIsNone(Party.objects.get(pk=response.data['data']['id']).location)

    def test_phone_needs_ten_digits(self):
        response = self.client.post('/api/v1/parties/', {
            'name': 'Short Phone', 'phone': '98-765', 'type': 'LABOUR',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_search_and_type(self):
        TestDataFactory.create_party(self.organization, name='Alpha Steel')
        TestDataFactory.create_party(self.organization, name='Beta Labour Co', party_type=Party.LABOUR)
        response = self.client.get('/api/v1/parties/?search=steel')
        self.assertEqual([row['name'] for row in response.data['data']['items']], ['Alpha Steel'])

        response = self.client.get('/api/v1/parties/?type=LABOUR')
        self.assertEqual(response.data['data']['pagination']['total'], 1)

        response = self.client.get('/api/v1/parties/?type=SUPPLIER')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_clearing_phone_of_vendor_rejected(self):
        party = TestDataFactory.create_party(self.organization)
        response = self.client.patch(f'/api/v1/parties/{party.pk}/', {'phone': ''}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_unused_party(self):
        party = TestDataFactory.create_party(self.organization)
        response = self.client.delete(f'/api/v1/parties/{party.pk}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Party.objects.filter(pk=party.pk).exists())

    def test_delete_party_with_expenses_conflicts(self):
        party = TestDataFactory.create_party(self.organization)
        TestDataFactory.create_expense(TestDataFactory.create_project(self.organization), party=party)
        response = self.client.delete(f'/api/v1/parties/{party.pk}/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error']['code'], 'RECORD_IN_USE')
        self.assertTrue(Party.objects.filter(pk=party.pk).exists())

    def test_party_of_other_organization(self):
        foreign = TestDataFactory.create_party(TestDataFactory.create_organization())
        response = self.client.get(f'/api/v1/parties/{foreign.pk}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class PartyBalanceTests(TestCase):
    """Test party stats, unpaid expenses, projects, transactions and the credits summary"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.organization = TestDataFactory.create_organization(user=self.user)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user, self.organization)
        self.project = TestDataFactory.create_project(self.organization, name='Tower A')
        self.vendor = TestDataFactory.create_party(self.organization, name='Vendor One')

        self.first = TestDataFactory.create_expense(self.project, party=self.vendor, rate=Decimal('1000'))
        self.second = TestDataFactory.create_expense(self.project, party=self.vendor, rate=Decimal('500'))
        TestDataFactory.create_payment(self.project, amount=Decimal('600'), party=self.vendor, expense=self.first)
        TestDataFactory.create_payment(self.project, amount=Decimal('100'), party=self.vendor)
        # money received from the vendor does not settle what we owe them
        TestDataFactory.create_payment(self.project, amount=Decimal('50'), party=self.vendor,
                                       payment_type=Payment.IN)

    def test_stats(self):
        response = self.client.get(f'/api/v1/parties/{self.vendor.pk}/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.data['data']
        self.assertEqual(data['total_expenses'], 1500.0)
        self.assertEqual(data['total_payments'], 700.0)
        self.assertEqual(data['balance'], 800.0)
        self.assertEqual(data['pending'], 800.0)
        self.assertEqual(data['party']['id'], self.vendor.pk)

    def test_stats_for_overpaid_party(self):
        TestDataFactory.create_payment(self.project, amount=Decimal('1000'), party=self.vendor)
        data = self.client.get(f'/api/v1/parties/{self.vendor.pk}/stats/').data['data']
        self.assertEqual(data['balance'], -200.0)
        self.assertEqual(data['pending'], 0.0)

    def test_stats_narrowed_to_project(self):
        other_project = TestDataFactory.create_project(self.organization)
        TestDataFactory.create_expense(other_project, party=self.vendor, rate=Decimal('75'))
        data = self.client.get(f'/api/v1/parties/{self.vendor.pk}/stats/?project={other_project.pk}').data['data']
        self.assertEqual(data['total_expenses'], 75.0)
        self.assertEqual(data['total_payments'], 0.0)

    def test_unpaid_expenses(self):
        response = self.client.get(f'/api/v1/parties/{self.vendor.pk}/unpaid-expenses/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        rows = {row['id']: row for row in response.data['data']}
        self.assertEqual(Decimal(rows[self.first.pk]['amount_unpaid']), Decimal('400'))
        self.assertEqual(Decimal(rows[self.second.pk]['amount_unpaid']), Decimal('500'))

    def test_fully_paid_expense_not_listed(self):
        TestDataFactory.create_payment(self.project, amount=Decimal('400'), party=self.vendor, expense=self.first)
        response = self.client.get(f'/api/v1/parties/{self.vendor.pk}/unpaid-expenses/')
        self.assertEqual([row['id'] for row in response.data['data']], [self.second.pk])

    def test_projects(self):
        response = self.client.get(f'/api/v1/parties/{self.vendor.pk}/projects/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['data']), 1)
        row = response.data['data'][0]
        self.assertEqual(row['project']['name'], 'Tower A')
        self.assertEqual(row['balance'], 800.0)

    def test_transactions(self):
        response = self.client.get(f'/api/v1/parties/{self.vendor.pk}/transactions/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['pagination']['total'], 2)

        response = self.client.get(f'/api/v1/parties/{self.vendor.pk}/transactions/?type=expenses')
        self.assertEqual(response.data['data']['pagination']['total'], 2)

        response = self.client.get(f'/api/v1/parties/{self.vendor.pk}/transactions/?type=invoices')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('type', response.data['error']['details'])

    def test_credits_summary(self):
        labour = TestDataFactory.create_party(self.organization, party_type=Party.LABOUR)
        TestDataFactory.create_expense(self.project, party=labour, rate=Decimal('300'))
        client = TestDataFactory.create_party(self.organization, party_type=Party.CLIENT)
        TestDataFactory.create_expense(self.project, party=client, rate=Decimal('9999'))

        response = self.client.get('/api/v1/parties/summary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.data['data']
        self.assertEqual(data['vendors'], {'count': 1, 'balance': 800.0, 'pending': 800.0})
        self.assertEqual(data['labours']['balance'], 300.0)
        self.assertEqual(data['subcontractors']['count'], 0)
        self.assertEqual(data['total'], 1100.0)

    def test_supervisor_can_read_but_not_delete(self):
        supervisor = TestDataFactory.create_user()
        TestDataFactory.add_member(self.organization, user=supervisor, role_name='SUPERVISOR')
        client = AuthenticatedAPIClient()
        client.authenticate_user(supervisor, self.organization)
        self.assertEqual(client.get(f'/api/v1/parties/{self.vendor.pk}/stats/').status_code, status.HTTP_200_OK)
        self.assertEqual(client.delete(f'/api/v1/parties/{self.vendor.pk}/').status_code, status.HTTP_403_FORBIDDEN)


class RecomputePartyBalancesCommandTests(TestCase):
    """Test the recompute_party_balances management command"""

    def setUp(self):
        self.organization = TestDataFactory.create_organization()
        self.project = TestDataFactory.create_project(self.organization)
        self.owed = TestDataFactory.create_party(self.organization, name='Owed Vendor')
        self.overpaid = TestDataFactory.create_party(self.organization, name='Overpaid Vendor')
        TestDataFactory.create_expense(self.project, party=self.owed, rate=Decimal('250'))
        TestDataFactory.create_payment(self.project, amount=Decimal('80'), party=self.overpaid)

    def run_command(self, **options):
        out = StringIO()
        call_command('recompute_party_balances', organization=self.organization.pk, stdout=out, **options)
        return out.getvalue()

    def test_reports_balances(self):
        output = self.run_command()
        self.assertIn('Owed Vendor [VENDOR]', output)
        self.assertIn('balance=250', output)
        self.assertIn('Overpaid Vendor [VENDOR]', output)
        self.assertIn('(overpaid)', output)
        self.assertIn('Total outstanding to creditors: 170', output)

    def test_outstanding_only(self):
        output = self.run_command(outstanding_only=True)
        self.assertIn('Owed Vendor', output)
        self.assertNotIn('Overpaid Vendor', output)

    def test_unknown_organization(self):
        with self.assertRaises(CommandError):
            call_command('recompute_party_balances', organization=999999, stdout=StringIO())
