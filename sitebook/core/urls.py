from django.urls import path
from .views import (
    CustomTokenObtainPairView, CustomTokenRefreshView, register, user_me,
    organization_list_create, organization_current,
    member_list_create, member_detail,
    role_list_create, role_detail, permission_list,
    audit_log_list,
)

urlpatterns = [
    # Auth endpoints
    path('auth/register/', register, name='register'),
    path('auth/login/', CustomTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/refresh/', CustomTokenRefreshView.as_view(), name='token_refresh'),
    path('auth/me/', user_me, name='user-me'),

    # Organization endpoints
    path('organizations/', organization_list_create, name='organization-list-create'),
    path('organizations/current/', organization_current, name='organization-current'),

    # Team endpoints
    path('members/', member_list_create, name='member-list-create'),
    path('members/<int:pk>/', member_detail, name='member-detail'),

    # Role and permission endpoints
    path('roles/', role_list_create, name='role-list-create'),
    path('roles/<int:pk>/', role_detail, name='role-detail'),
    path('permissions/', permission_list, name='permission-list'),

    # AuditLog endpoints
    path('audit-logs/', audit_log_list, name='audit-log-list'),
]
