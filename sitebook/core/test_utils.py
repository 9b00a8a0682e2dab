"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from sitebook.categories.defaults import EXPENSE_TYPE
from sitebook.categories.models import CategoryItem
from sitebook.core.models import OrganizationMember
from sitebook.core.services import create_organization, get_role
from sitebook.documents.models import Document
from sitebook.finance.models import Expense, Payment, MemberAdvance
from sitebook.parties.models import Party
from sitebook.projects.models import Project, Stage, Task
from decimal import Decimal
from datetime import timedelta
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def random_phone():
        return f'9{random.randint(100000000, 999999999)}'

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', name=None, phone=None):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            name=name or username,
            phone=phone,
        )

    @staticmethod
    def create_organization(user=None, name=None):
        """Create an organization (roles, categories and the user as ADMIN)"""
        if not user:
            user = TestDataFactory.create_user()
        if not name:
            name = f'Org_{TestDataFactory.random_string(6)}'
        return create_organization(name, user)

    @staticmethod
    def add_member(organization, user=None, role_name='MANAGER'):
        """Add a user to an organization with a system role"""
        if not user:
            user = TestDataFactory.create_user()
        role = get_role(organization, role_name=role_name)
        return OrganizationMember.objects.create(organization=organization, user=user, role=role)

    @staticmethod
    def expense_category(organization, name='Material'):
        """One of the default expense categories of an organization"""
        return CategoryItem.objects.get(
            organization=organization, category_type__key=EXPENSE_TYPE, name=name
        )

    @staticmethod
    def create_party(organization, name=None, party_type=Party.VENDOR, phone=None):
        """Create a test party"""
        if not name:
            name = f'Party_{TestDataFactory.random_string(6)}'
        if phone is None and party_type in Party.PAYABLE_TYPES:
            phone = TestDataFactory.random_phone()
        return Party.objects.create(
            organization=organization,
            name=name,
            phone=phone,
            location='Test Location',
            type=party_type,
        )

    @staticmethod
    def create_project(organization, name=None, amount=Decimal('100000.00'), status=Project.ACTIVE,
                       client=None, start_date=None, user=None):
        """Create a test project"""
        if not name:
            name = f'Project_{TestDataFactory.random_string(6)}'
        return Project.objects.create(
            organization=organization,
            name=name,
            client=client,
            location='Test Site',
            start_date=start_date or timezone.localdate() - timedelta(days=30),
            amount=amount,
            status=status,
            created_by=user,
        )

    @staticmethod
    def create_stage(project, name=None, budget_amount=Decimal('0.00'), end_date=None, status=Stage.SCHEDULED):
        """Create a test stage"""
        if not name:
            name = f'Stage_{TestDataFactory.random_string(6)}'
        start_date = project.start_date
        return Stage.objects.create(
            organization=project.organization,
            project=project,
            name=name,
            start_date=start_date,
            end_date=end_date or start_date + timedelta(days=60),
            budget_amount=budget_amount,
            status=status,
        )

    @staticmethod
    def create_task(stage, name=None, status=Task.NOT_STARTED):
        """Create a test task"""
        if not name:
            name = f'Task_{TestDataFactory.random_string(6)}'
        return Task.objects.create(
            organization=stage.organization,
            stage=stage,
            name=name,
            status=status,
        )

    @staticmethod
    def create_expense(project, party=None, rate=Decimal('100.00'), quantity=Decimal('1'), category=None,
                       status=Expense.PENDING, expense_date=None, member_advance=None, stage=None):
        """Create a test expense (amount = rate x quantity)"""
        organization = project.organization
        return Expense.objects.create(
            organization=organization,
            project=project,
            party=party,
            stage=stage,
            category=category or TestDataFactory.expense_category(organization),
            member_advance=member_advance,
            rate=rate,
            quantity=quantity,
            expense_date=expense_date or timezone.localdate(),
            status=status,
        )

    @staticmethod
    def create_payment(project, amount=Decimal('100.00'), payment_type=Payment.OUT, party=None,
                       expense=None, payment_mode='CASH', payment_date=None):
        """Create a test payment"""
        return Payment.objects.create(
            organization=project.organization,
            project=project,
            party=party,
            expense=expense,
            type=payment_type,
            payment_mode=payment_mode,
            amount=amount,
            payment_date=payment_date or timezone.localdate(),
        )

    @staticmethod
    def create_member_advance(project, member, amount=Decimal('1000.00'), advance_date=None):
        """Create a test member advance"""
        return MemberAdvance.objects.create(
            organization=project.organization,
            project=project,
            member=member,
            amount=amount,
            purpose='Site expenses',
            payment_mode='CASH',
            advance_date=advance_date or timezone.localdate(),
        )

    @staticmethod
    def create_document(project, file_name='plan.pdf', content=b'%PDF-1.4 test', mime_type='application/pdf'):
        """Create a test document with its stored file"""
        document = Document(
            organization=project.organization,
            project=project,
            file_name=file_name,
            file_type=file_name.rsplit('.', 1)[-1],
            mime_type=mime_type,
            size=len(content),
        )
        document.file.save(file_name, SimpleUploadedFile(file_name, content, content_type=mime_type), save=False)
        document.save()
        return document


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user, organization=None):
        """Authenticate the client with a user, acting in `organization` when given"""
        refresh = RefreshToken.for_user(user)
        credentials = {'HTTP_AUTHORIZATION': f'Bearer {refresh.access_token}'}
        if organization is not None:
            credentials['HTTP_X_ORGANIZATION_ID'] = str(organization.pk)
        self.credentials(**credentials)
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
