from django.contrib import admin
from .models import Party


@admin.register(Party)
class PartyAdmin(admin.ModelAdmin):
    list_display = ['name', 'type', 'phone', 'location', 'organization', 'created_at']
    list_filter = ['type', 'organization']
    search_fields = ['name', 'phone', 'location']
