"""
Test suite for the projects module
Tests: project CRUD and stats, stages, tasks and the task status graph
"""
from decimal import Decimal

from django.test import TestCase, SimpleTestCase
from rest_framework import status

from sitebook.core.models import AuditLog
from sitebook.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from sitebook.finance.models import Payment
from sitebook.parties.models import Party
from sitebook.projects.models import Project, Stage, Task


class TaskTransitionTests(SimpleTestCase):
    """Test the task status graph on the model"""

    def test_allowed_transition(self):
        task = Task(status=Task.NOT_STARTED)
        task.transition_to(Task.IN_PROGRESS)
        self.assertEqual(task.status, Task.IN_PROGRESS)

    def test_forbidden_transition(self):
        task = Task(status=Task.NOT_STARTED)
        with self.assertRaises(ValueError):
            task.transition_to(Task.COMPLETED)
        self.assertEqual(task.status, Task.NOT_STARTED)

    def test_same_status_is_allowed(self):
        task = Task(status=Task.BLOCKED)
        self.assertTrue(task.can_transition_to(Task.BLOCKED))

    def test_completed_can_be_reopened(self):
        task = Task(status=Task.COMPLETED)
        self.assertTrue(task.can_transition_to(Task.IN_PROGRESS))
        self.assertFalse(task.can_transition_to(Task.NOT_STARTED))

    def test_unknown_status(self):
        with self.assertRaises(ValueError):
            Task(status=Task.NOT_STARTED).transition_to('DONE')


class ProjectAPITests(TestCase):
    """Test project endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.organization = TestDataFactory.create_organization(user=self.user)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user, self.organization)

    def test_create_project(self):
        client_party = TestDataFactory.create_party(self.organization, party_type=Party.CLIENT)
        response = self.client.post('/api/v1/projects/', {
            'name': 'Green Villa',
            'client': client_party.pk,
            'location': 'Nashik',
            'start_date': '2024-04-01',
            'end_date': '2025-03-31',
            'amount': '2500000.00',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        project = Project.objects.get(pk=response.data['data']['id'])
        self.assertEqual(project.created_by, self.user)
        self.assertEqual(project.status, Project.ACTIVE)
        self.assertEqual(response.data['data']['client_name'], client_party.name)

    def test_end_date_before_start_date(self):
        response = self.client.post('/api/v1/projects/', {
            'name': 'Backwards',
            'location': 'Nashik',
            'start_date': '2024-04-01',
            'end_date': '2024-03-01',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('end_date', response.data['error']['details'])

    def test_client_must_be_client_party(self):
        vendor = TestDataFactory.create_party(self.organization)
        response = self.client.post('/api/v1/projects/', {
            'name': 'Wrong Client',
            'client': vendor.pk,
            'location': 'Nashik',
            'start_date': '2024-04-01',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('client', response.data['error']['details'])

    def test_negative_budget_rejected(self):
        response = self.client.post('/api/v1/projects/', {
            'name': 'Negative', 'location': 'X', 'start_date': '2024-04-01', 'amount': '-1',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_filters(self):
        TestDataFactory.create_project(self.organization, name='Riverside')
        TestDataFactory.create_project(self.organization, name='Hilltop', status=Project.COMPLETED)
        response = self.client.get('/api/v1/projects/?status=COMPLETED')
        self.assertEqual([row['name'] for row in response.data['data']['items']], ['Hilltop'])
        response = self.client.get('/api/v1/projects/?search=river')
        self.assertEqual(response.data['data']['pagination']['total'], 1)
        response = self.client.get('/api/v1/projects/?status=DONE')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_status_change_is_audited(self):
        project = TestDataFactory.create_project(self.organization)
        response = self.client.patch(f'/api/v1/projects/{project.pk}/', {'status': 'ON_HOLD'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(AuditLog.objects.filter(
            organization=self.organization, action='status_change', object_id=str(project.pk)
        ).exists())

    def test_stats(self):
        project = TestDataFactory.create_project(self.organization, amount=Decimal('10000'))
        TestDataFactory.create_stage(project)
        TestDataFactory.create_expense(project, rate=Decimal('2500'))
        TestDataFactory.create_payment(project, amount=Decimal('4000'), payment_type=Payment.IN)
        TestDataFactory.create_payment(project, amount=Decimal('1000'))

        response = self.client.get(f'/api/v1/projects/{project.pk}/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.data['data']
        self.assertEqual(data['total_expenses'], 2500.0)
        self.assertEqual(data['total_payments_in'], 4000.0)
        self.assertEqual(data['total_payments_out'], 1000.0)
        self.assertEqual(data['balance'], 1500.0)
        self.assertEqual(data['remaining_budget'], 7500.0)
        self.assertEqual(data['budget_usage'], 25.0)
        self.assertEqual(data['stage_count'], 1)

    def test_stats_without_budget(self):
        project = TestDataFactory.create_project(self.organization, amount=None)
        data = self.client.get(f'/api/v1/projects/{project.pk}/stats/').data['data']
        self.assertEqual(data['budget'], 0.0)
        self.assertEqual(data['budget_usage'], 0.0)

    def test_accountant_cannot_create_project(self):
        accountant = TestDataFactory.create_user()
        TestDataFactory.add_member(self.organization, user=accountant, role_name='ACCOUNTANT')
        client = AuthenticatedAPIClient()
        client.authenticate_user(accountant, self.organization)
        response = client.post('/api/v1/projects/', {
            'name': 'Nope', 'location': 'X', 'start_date': '2024-04-01',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class StageAndTaskAPITests(TestCase):
    """Test stage and task endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.organization = TestDataFactory.create_organization(user=self.user)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user, self.organization)
        self.project = TestDataFactory.create_project(self.organization)
        self.stage = TestDataFactory.create_stage(self.project, name='Foundation')

    def test_create_stage(self):
        supervisor = TestDataFactory.add_member(self.organization, role_name='SUPERVISOR').user
        response = self.client.post('/api/v1/stages/', {
            'project': self.project.pk,
            'name': 'Plinth',
            'start_date': '2024-05-01',
            'end_date': '2024-06-15',
            'budget_amount': '150000.00',
            'weight': '20',
            'members': [supervisor.pk],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['member_details'][0]['id'], supervisor.pk)
        self.assertEqual(response.data['data']['task_count'], 0)

    def test_duplicate_stage_name_in_project(self):
        response = self.client.post('/api/v1/stages/', {
            'project': self.project.pk,
            'name': 'foundation',
            'start_date': '2024-05-01',
            'end_date': '2024-06-15',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('name', response.data['error']['details'])

    def test_same_stage_name_in_other_project(self):
        other = TestDataFactory.create_project(self.organization)
        response = self.client.post('/api/v1/stages/', {
            'project': other.pk,
            'name': 'Foundation',
            'start_date': '2024-05-01',
            'end_date': '2024-06-15',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_weight_above_hundred(self):
        response = self.client.patch(f'/api/v1/stages/{self.stage.pk}/', {'weight': '120'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_stage_cannot_move_project(self):
        other = TestDataFactory.create_project(self.organization)
        response = self.client.patch(f'/api/v1/stages/{self.stage.pk}/', {'project': other.pk}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_stages_of_project(self):
        TestDataFactory.create_stage(TestDataFactory.create_project(self.organization))
        response = self.client.get(f'/api/v1/stages/?project={self.project.pk}')
        self.assertEqual([row['id'] for row in response.data['data']['items']], [self.stage.pk])

    def test_create_task(self):
        response = self.client.post('/api/v1/tasks/', {
            'stage': self.stage.pk, 'name': 'Excavation', 'days_allocated': 4,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['project'], self.project.pk)
        self.assertEqual(response.data['data']['status'], Task.NOT_STARTED)

    def test_days_allocated_at_least_one(self):
        response = self.client.post('/api/v1/tasks/', {
            'stage': self.stage.pk, 'name': 'Excavation', 'days_allocated': 0,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_task_status_transition(self):
        task = TestDataFactory.create_task(self.stage)
        response = self.client.patch(f'/api/v1/tasks/{task.pk}/status/', {'status': 'IN_PROGRESS'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        task.refresh_from_db()
        self.assertEqual(task.status, Task.IN_PROGRESS)

    def test_invalid_task_transition(self):
        task = TestDataFactory.create_task(self.stage)
        response = self.client.patch(f'/api/v1/tasks/{task.pk}/status/', {'status': 'COMPLETED'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['code'], 'INVALID_STATUS_TRANSITION')
        task.refresh_from_db()
        self.assertEqual(task.status, Task.NOT_STARTED)

    def test_same_status_is_no_op(self):
        task = TestDataFactory.create_task(self.stage, status=Task.IN_PROGRESS)
        response = self.client.patch(f'/api/v1/tasks/{task.pk}/status/', {'status': 'IN_PROGRESS'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(AuditLog.objects.filter(action='status_change', model_name='Task').exists())

    def test_task_update_checks_graph(self):
        task = TestDataFactory.create_task(self.stage)
        response = self.client.patch(f'/api/v1/tasks/{task.pk}/', {'status': 'COMPLETED'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('status', response.data['error']['details'])

    def test_filter_tasks_by_project(self):
        TestDataFactory.create_task(self.stage)
        other_stage = TestDataFactory.create_stage(TestDataFactory.create_project(self.organization))
        TestDataFactory.create_task(other_stage)
        response = self.client.get(f'/api/v1/tasks/?project={self.project.pk}')
        self.assertEqual(response.data['data']['pagination']['total'], 1)

    def test_deleting_stage_keeps_expenses(self):
        expense = TestDataFactory.create_expense(self.project, stage=self.stage)
        response = self.client.delete(f'/api/v1/stages/{self.stage.pk}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        expense.refresh_from_db()
        self.assertIsNone(expense.stage_id)
        self.assertFalse(Stage.objects.filter(pk=self.stage.pk).exists())
