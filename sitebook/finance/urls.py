from django.urls import path
from .views import (
    expense_list_create, expense_detail, expenses_by_category,
    payment_list_create, payment_detail, payment_summary,
    member_advance_list_create, member_advance_detail, member_advance_summary,
    project_member_advance_summaries, member_advance_balances,
)

urlpatterns = [
    # Expense endpoints
    path('expenses/', expense_list_create, name='expense-list-create'),
    path('expenses/summary/by-category/', expenses_by_category, name='expense-summary-by-category'),
    path('expenses/<int:pk>/', expense_detail, name='expense-detail'),

    # Payment endpoints
    path('payments/', payment_list_create, name='payment-list-create'),
    path('payments/summary/', payment_summary, name='payment-summary'),
    path('payments/<int:pk>/', payment_detail, name='payment-detail'),

    # Member advance endpoints
    path('member-advances/', member_advance_list_create, name='member-advance-list-create'),
    path('member-advances/<int:pk>/', member_advance_detail, name='member-advance-detail'),
    path('member-advances/projects/<int:project_id>/members/<int:member_id>/summary/',
         member_advance_summary, name='member-advance-summary'),
    path('member-advances/projects/<int:project_id>/summaries/',
         project_member_advance_summaries, name='project-member-advance-summaries'),
    path('member-advances/members/<int:member_id>/balances/',
         member_advance_balances, name='member-advance-balances'),
]
