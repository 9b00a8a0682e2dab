from django.contrib import admin
from .models import BOQSection, BOQItem, BOQExpenseLink


class BOQExpenseLinkInline(admin.TabularInline):
    model = BOQExpenseLink
    extra = 0
    raw_id_fields = ['expense']


@admin.register(BOQSection)
class BOQSectionAdmin(admin.ModelAdmin):
    list_display = ['name', 'project', 'sort_order']
    search_fields = ['name', 'project__name']


@admin.register(BOQItem)
class BOQItemAdmin(admin.ModelAdmin):
    list_display = ['code', 'description', 'project', 'section', 'unit', 'quantity', 'rate', 'is_review_flagged']
    list_filter = ['is_review_flagged', 'organization']
    search_fields = ['code', 'description', 'project__name']
    raw_id_fields = ['project', 'section', 'stage']
    inlines = [BOQExpenseLinkInline]
