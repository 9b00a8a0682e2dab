from django.urls import reverse
from rest_framework import serializers
from .models import Document


class DocumentSerializer(serializers.ModelSerializer):
    project_name = serializers.CharField(source='project.name', read_only=True)
    file_url = serializers.SerializerMethodField()
    uploaded_by_name = serializers.SerializerMethodField()

    class Meta:
        model = Document
        fields = ['id', 'project', 'project_name', 'file_name', 'file_type', 'mime_type', 'size',
                  'file_url', 'uploaded_by', 'uploaded_by_name', 'uploaded_at']
        read_only_fields = ['project', 'file_name', 'file_type', 'mime_type', 'size', 'uploaded_by', 'uploaded_at']

    def get_file_url(self, obj):
        # files are only served through the authenticated download endpoint
        url = reverse('document-download', args=[obj.pk])
        request = self.context.get('request')
        return request.build_absolute_uri(url) if request else url

    def get_uploaded_by_name(self, obj):
        return obj.uploaded_by.get_display_name() if obj.uploaded_by else None
