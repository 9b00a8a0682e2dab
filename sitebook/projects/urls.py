from django.urls import path
from .views import (
    project_list_create, project_detail, project_stats,
    stage_list_create, stage_detail,
    task_list_create, task_detail, task_status,
)

urlpatterns = [
    # Project endpoints
    path('projects/', project_list_create, name='project-list-create'),
    path('projects/<int:pk>/', project_detail, name='project-detail'),
    path('projects/<int:pk>/stats/', project_stats, name='project-stats'),

    # Stage endpoints
    path('stages/', stage_list_create, name='stage-list-create'),
    path('stages/<int:pk>/', stage_detail, name='stage-detail'),

    # Task endpoints
    path('tasks/', task_list_create, name='task-list-create'),
    path('tasks/<int:pk>/', task_detail, name='task-detail'),
    path('tasks/<int:pk>/status/', task_status, name='task-status'),
]
