from django.urls import path
from .views import (
    boq_item_list_create, boq_item_detail, boq_section_list_create,
    boq_link_expense, boq_unlink_expense, boq_stats,
)

urlpatterns = [
    path('projects/<int:project_id>/boq/items/', boq_item_list_create, name='boq-item-list-create'),
    path('projects/<int:project_id>/boq/items/<int:pk>/', boq_item_detail, name='boq-item-detail'),
    path('projects/<int:project_id>/boq/items/<int:pk>/expenses/', boq_link_expense, name='boq-link-expense'),
    path('projects/<int:project_id>/boq/items/<int:pk>/expenses/<int:expense_id>/',
         boq_unlink_expense, name='boq-unlink-expense'),
    path('projects/<int:project_id>/boq/sections/', boq_section_list_create, name='boq-section-list-create'),
    path('projects/<int:project_id>/boq/stats/', boq_stats, name='boq-stats'),
]
