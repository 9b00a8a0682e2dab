"""
Test suite for the documents module
Tests: upload validation, listing, retrieve, download, delete and stored file cleanup
"""
import shutil
import tempfile

from django.conf import settings
from django.core.files.storage import default_storage
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from rest_framework import status

from sitebook.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from sitebook.documents.models import Document

MEDIA_ROOT = tempfile.mkdtemp(prefix='sitebook-media-')


@override_settings(MEDIA_ROOT=MEDIA_ROOT)
class DocumentTestCase(TestCase):

    @classmethod
    def tearDownClass(cls):
        shutil.rmtree(MEDIA_ROOT, ignore_errors=True)
        super().tearDownClass()

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.organization = TestDataFactory.create_organization(user=self.user)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user, self.organization)
        self.project = TestDataFactory.create_project(self.organization, name='Tower A')

    def upload(self, name='plan.pdf', content=b'%PDF-1.4 ground floor', content_type='application/pdf',
               project=None, client=None):
        data = {'file': SimpleUploadedFile(name, content, content_type=content_type)}
        project_id = project.pk if project is not None else self.project.pk
        return (client or self.client).post(f'/api/v1/documents/?project={project_id}', data, format='multipart')


class DocumentUploadTests(DocumentTestCase):
    """Test uploads and their validation"""

    def test_upload_pdf(self):
        response = self.upload()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        data = response.data['data']
        self.assertEqual(data['file_name'], 'plan.pdf')
        self.assertEqual(data['file_type'], 'pdf')
        self.assertEqual(data['mime_type'], 'application/pdf')
        self.assertEqual(data['size'], len(b'%PDF-1.4 ground floor'))
        self.assertEqual(data['project_name'], 'Tower A')
        self.assertTrue(data['file_url'].endswith(f'/api/v1/documents/{data["id"]}/download/'))

        document = Document.objects.get(pk=data['id'])
        self.assertTrue(document.file.name.startswith(f'documents/{self.organization.pk}/{self.project.pk}/'))
        self.assertTrue(default_storage.exists(document.file.name))
        self.assertEqual(document.uploaded_by, self.user)

    def test_project_in_form_body(self):
        data = {
            'file': SimpleUploadedFile('site.jpg', b'\xff\xd8\xff', content_type='image/jpeg'),
            'project': self.project.pk,
        }
        response = self.client.post('/api/v1/documents/', data, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['project'], self.project.pk)

    def test_generic_content_type_is_guessed_from_name(self):
        response = self.upload(name='slab.png', content=b'\x89PNG', content_type='application/octet-stream')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['mime_type'], 'image/png')

    def test_no_file(self):
        response = self.client.post(f'/api/v1/documents/?project={self.project.pk}', {}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['code'], 'NO_FILE')

    def test_disallowed_type(self):
        response = self.upload(name='notes.txt', content=b'hello', content_type='text/plain')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['code'], 'INVALID_FILE_TYPE')
        self.assertFalse(Document.objects.exists())

    @override_settings(DOCUMENT_MAX_UPLOAD_SIZE=16)
    def test_file_too_large(self):
        response = self.upload(content=b'x' * 17)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['code'], 'FILE_TOO_LARGE')

    @override_settings(DOCUMENT_MAX_UPLOAD_SIZE=16)
    def test_file_at_the_limit(self):
        response = self.upload(content=b'x' * 16)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_default_limit_is_fifty_megabytes(self):
        self.assertEqual(settings.DOCUMENT_MAX_UPLOAD_SIZE, 50 * 1024 * 1024)

    def test_missing_project(self):
        data = {'file': SimpleUploadedFile('plan.pdf', b'%PDF', content_type='application/pdf')}
        response = self.client.post('/api/v1/documents/', data, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('project', response.data['error']['details'])

    def test_project_of_other_organization(self):
        foreign = TestDataFactory.create_project(TestDataFactory.create_organization())
        response = self.upload(project=foreign)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['code'], 'INVALID_PROJECT')

    def test_accountant_cannot_upload(self):
        accountant = TestDataFactory.create_user()
        TestDataFactory.add_member(self.organization, user=accountant, role_name='ACCOUNTANT')
        client = AuthenticatedAPIClient()
        client.authenticate_user(accountant, self.organization)
        response = self.upload(client=client)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class DocumentListTests(DocumentTestCase):
    """Test listing, retrieve and download"""

    def test_list_is_paginated_newest_first(self):
        first = TestDataFactory.create_document(self.project, file_name='a.pdf')
        second = TestDataFactory.create_document(self.project, file_name='b.pdf')
        response = self.client.get('/api/v1/documents/?limit=1')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.data['data']
        self.assertEqual(data['pagination']['total'], 2)
        self.assertTrue(data['pagination']['has_more'])
        self.assertEqual(data['items'][0]['id'], second.pk)

        response = self.client.get('/api/v1/documents/?limit=1&page=2')
        self.assertEqual(response.data['data']['items'][0]['id'], first.pk)

    def test_filter_by_project(self):
        other = TestDataFactory.create_project(self.organization)
        TestDataFactory.create_document(self.project)
        TestDataFactory.create_document(other, file_name='bill.pdf')
        response = self.client.get(f'/api/v1/documents/?project={other.pk}')
        self.assertEqual([row['file_name'] for row in response.data['data']['items']], ['bill.pdf'])

    def test_other_organization_is_isolated(self):
        foreign = TestDataFactory.create_document(TestDataFactory.create_project(TestDataFactory.create_organization()))
        self.assertEqual(self.client.get('/api/v1/documents/').data['data']['pagination']['total'], 0)
        self.assertEqual(self.client.get(f'/api/v1/documents/{foreign.pk}/').status_code, status.HTTP_404_NOT_FOUND)

    def test_retrieve(self):
        document = TestDataFactory.create_document(self.project)
        response = self.client.get(f'/api/v1/documents/{document.pk}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['file_name'], 'plan.pdf')

    def test_download(self):
        document = TestDataFactory.create_document(self.project, content=b'%PDF-1.4 elevation')
        response = self.client.get(f'/api/v1/documents/{document.pk}/download/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(b''.join(response.streaming_content), b'%PDF-1.4 elevation')
        self.assertIn('attachment', response['Content-Disposition'])
        self.assertIn('plan.pdf', response['Content-Disposition'])

    def test_download_of_missing_file(self):
        document = TestDataFactory.create_document(self.project)
        default_storage.delete(document.file.name)
        response = self.client.get(f'/api/v1/documents/{document.pk}/download/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error']['code'], 'FILE_MISSING')

    def test_client_role_can_read(self):
        viewer = TestDataFactory.create_user()
        TestDataFactory.add_member(self.organization, user=viewer, role_name='CLIENT')
        client = AuthenticatedAPIClient()
        client.authenticate_user(viewer, self.organization)
        document = TestDataFactory.create_document(self.project)
        self.assertEqual(client.get(f'/api/v1/documents/{document.pk}/').status_code, status.HTTP_200_OK)
        self.assertEqual(client.delete(f'/api/v1/documents/{document.pk}/').status_code, status.HTTP_403_FORBIDDEN)


class DocumentDeleteTests(DocumentTestCase):
    """Test deletion and stored file cleanup"""

    def test_delete_removes_row_and_file(self):
        document = TestDataFactory.create_document(self.project)
        name = document.file.name
        response = self.client.delete(f'/api/v1/documents/{document.pk}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Document.objects.filter(pk=document.pk).exists())
        self.assertFalse(default_storage.exists(name))

    def test_deleting_project_removes_files(self):
        document = TestDataFactory.create_document(self.project)
        name = document.file.name
        self.project.delete()
        self.assertFalse(Document.objects.exists())
        self.assertFalse(default_storage.exists(name))
