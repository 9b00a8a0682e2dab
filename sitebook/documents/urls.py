from django.urls import path
from .views import document_list_create, document_detail, document_download

urlpatterns = [
    path('documents/', document_list_create, name='document-list-create'),
    path('documents/<int:pk>/', document_detail, name='document-detail'),
    path('documents/<int:pk>/download/', document_download, name='document-download'),
]
