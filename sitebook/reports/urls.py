from django.urls import path
from . import views

urlpatterns = [
    path('reports/overview/', views.overview, name='overview'),
    path('reports/overview/<str:section>/', views.overview_section, name='overview-section'),
]
