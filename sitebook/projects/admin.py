from django.contrib import admin
from .models import Project, Stage, Task


class StageInline(admin.TabularInline):
    model = Stage
    extra = 0
    fields = ['name', 'start_date', 'end_date', 'budget_amount', 'weight', 'status']


class TaskInline(admin.TabularInline):
    model = Task
    extra = 0
    fields = ['name', 'days_allocated', 'status']


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = ['name', 'client', 'status', 'amount', 'start_date', 'end_date', 'organization']
    list_filter = ['status', 'organization']
    search_fields = ['name', 'location', 'client__name']
    inlines = [StageInline]


@admin.register(Stage)
class StageAdmin(admin.ModelAdmin):
    list_display = ['name', 'project', 'status', 'budget_amount', 'start_date', 'end_date']
    list_filter = ['status']
    search_fields = ['name', 'project__name']
    filter_horizontal = ['members', 'parties']
    inlines = [TaskInline]


@admin.register(Task)
class TaskAdmin(admin.ModelAdmin):
    list_display = ['name', 'stage', 'status', 'days_allocated']
    list_filter = ['status']
    search_fields = ['name', 'stage__name']
    filter_horizontal = ['members', 'parties']
