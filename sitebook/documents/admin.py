from django.contrib import admin
from .models import Document


@admin.register(Document)
class DocumentAdmin(admin.ModelAdmin):
    list_display = ['file_name', 'project', 'mime_type', 'size', 'organization', 'uploaded_at']
    list_filter = ['mime_type', 'organization']
    search_fields = ['file_name', 'project__name']
    readonly_fields = ['size', 'mime_type', 'uploaded_at']
