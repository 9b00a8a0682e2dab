from django.urls import path
from .views import (
    party_list_create, party_detail, party_stats, party_summary,
    party_unpaid_expenses, party_projects, party_transactions,
)

urlpatterns = [
    path('parties/', party_list_create, name='party-list-create'),
    path('parties/summary/', party_summary, name='party-summary'),
    path('parties/<int:pk>/', party_detail, name='party-detail'),
    path('parties/<int:pk>/stats/', party_stats, name='party-stats'),
    path('parties/<int:pk>/unpaid-expenses/', party_unpaid_expenses, name='party-unpaid-expenses'),
    path('parties/<int:pk>/projects/', party_projects, name='party-projects'),
    path('parties/<int:pk>/transactions/', party_transactions, name='party-transactions'),
]
