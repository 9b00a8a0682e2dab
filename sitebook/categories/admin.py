from django.contrib import admin
from .models import CategoryType, CategoryItem


@admin.register(CategoryType)
class CategoryTypeAdmin(admin.ModelAdmin):
    list_display = ['key', 'label', 'sort_order']
    ordering = ['sort_order']


@admin.register(CategoryItem)
class CategoryItemAdmin(admin.ModelAdmin):
    list_display = ['name', 'category_type', 'organization', 'is_active', 'is_editable']
    list_filter = ['category_type', 'is_active', 'is_editable']
    search_fields = ['name', 'organization__name']
