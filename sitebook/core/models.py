from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Extended user model with additional fields"""
    name = models.CharField(max_length=200, blank=True)
    phone = models.CharField(max_length=20, unique=True, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def get_display_name(self):
        return self.name or self.get_full_name() or self.username

    class Meta:
        db_table = 'users'


class Organization(models.Model):
    """A tenant. Every project, party and money row belongs to exactly one"""
    name = models.CharField(max_length=200)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_organizations')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'organizations'
        ordering = ['name']


class Permission(models.Model):
    """Global permission catalogue, one row per resource/action pair"""
    key = models.CharField(max_length=100, unique=True)
    resource = models.CharField(max_length=50)
    action = models.CharField(max_length=20)
    description = models.CharField(max_length=255, blank=True)

    def __str__(self):
        return self.key

    class Meta:
        db_table = 'permissions'
        ordering = ['resource', 'action']


class Role(models.Model):
    """Organization role. System roles follow the built-in matrix"""
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='roles')
    name = models.CharField(max_length=50)
    description = models.CharField(max_length=255, blank=True)
    is_system_role = models.BooleanField(default=False)
    permissions = models.ManyToManyField(Permission, through='RolePermission', related_name='roles')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.organization.name} - {self.name}"

    class Meta:
        db_table = 'roles'
        ordering = ['name']
        unique_together = [['organization', 'name']]


class RolePermission(models.Model):
    role = models.ForeignKey(Role, on_delete=models.CASCADE, related_name='role_permissions')
    permission = models.ForeignKey(Permission, on_delete=models.CASCADE, related_name='role_permissions')

    class Meta:
        db_table = 'role_permissions'
        unique_together = [['role', 'permission']]


class OrganizationMember(models.Model):
    """Membership of a user in an organization under one role"""
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='members')
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='memberships')
    role = models.ForeignKey(Role, on_delete=models.PROTECT, related_name='members')
    joined_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.user.get_display_name()} @ {self.organization.name} ({self.role.name})"

    class Meta:
        db_table = 'organization_members'
        ordering = ['joined_at']
        unique_together = [['organization', 'user']]


class AuditLog(models.Model):
    """Audit log for money-affecting operations"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('status_change', 'Status Changed'),
        ('payment_add', 'Payment Added'),
        ('member_add', 'Member Added'),
        ('member_remove', 'Member Removed'),
        ('role_change', 'Role Changed'),
    ]

    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, null=True, blank=True, related_name='audit_logs')
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='audit_logs')
    action = models.CharField(max_length=30, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100, blank=True)
    object_name = models.CharField(max_length=255, blank=True)
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.action} {self.model_name}#{self.object_id}"

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['organization', 'model_name', 'object_id'], name='audit_org_model_obj_idx'),
            models.Index(fields=['created_at'], name='audit_created_at_idx'),
        ]
