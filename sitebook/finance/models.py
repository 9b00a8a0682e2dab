from django.db import models
from decimal import Decimal


PAYMENT_MODE_CHOICES = [
    ('CASH', 'Cash'),
    ('CHEQUE', 'Cheque'),
    ('ONLINE', 'Online'),
]


class MemberAdvance(models.Model):
    """Cash handed to a team member to spend on project costs"""
    organization = models.ForeignKey('core.Organization', on_delete=models.CASCADE, related_name='member_advances')
    project = models.ForeignKey('projects.Project', on_delete=models.CASCADE, related_name='member_advances')
    member = models.ForeignKey('core.User', on_delete=models.PROTECT, related_name='advances')
    amount = models.DecimalField(max_digits=15, decimal_places=2)
    purpose = models.CharField(max_length=255)
    payment_mode = models.CharField(max_length=20, choices=PAYMENT_MODE_CHOICES)
    advance_date = models.DateField()
    expected_settlement_date = models.DateField(null=True, blank=True)
    notes = models.TextField(blank=True, null=True)
    recorded_by = models.ForeignKey('core.User', on_delete=models.SET_NULL, null=True, blank=True, related_name='recorded_advances')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Advance {self.amount} to {self.member_id} on {self.advance_date}"

    class Meta:
        db_table = 'member_advances'
        ordering = ['-advance_date', '-created_at']
        indexes = [
            models.Index(fields=['organization', 'project', 'member'], name='advance_org_proj_member_idx'),
        ]


class Expense(models.Model):
    """
    A cost recorded against a project.

    The amount is always rate x quantity and is never stored.
    """
    PENDING = 'PENDING'
    APPROVED = 'APPROVED'
    STATUS_CHOICES = [
        (PENDING, 'Pending'),
        (APPROVED, 'Approved'),
    ]

    organization = models.ForeignKey('core.Organization', on_delete=models.CASCADE, related_name='expenses')
    project = models.ForeignKey('projects.Project', on_delete=models.CASCADE, related_name='expenses')
    party = models.ForeignKey('parties.Party', on_delete=models.PROTECT, null=True, blank=True, related_name='expenses')
    stage = models.ForeignKey('projects.Stage', on_delete=models.SET_NULL, null=True, blank=True, related_name='expenses')
    category = models.ForeignKey('categories.CategoryItem', on_delete=models.PROTECT, related_name='expenses')
    material_type = models.ForeignKey('categories.CategoryItem', on_delete=models.SET_NULL, null=True, blank=True, related_name='material_expenses')
    labour_type = models.ForeignKey('categories.CategoryItem', on_delete=models.SET_NULL, null=True, blank=True, related_name='labour_expenses')
    sub_work_type = models.ForeignKey('categories.CategoryItem', on_delete=models.SET_NULL, null=True, blank=True, related_name='sub_work_expenses')
    member_advance = models.ForeignKey(MemberAdvance, on_delete=models.SET_NULL, null=True, blank=True, related_name='expenses')
    description = models.TextField(blank=True, null=True)
    rate = models.DecimalField(max_digits=15, decimal_places=2)
    quantity = models.DecimalField(max_digits=15, decimal_places=4)
    payment_mode = models.CharField(max_length=20, choices=PAYMENT_MODE_CHOICES, blank=True, null=True)
    expense_date = models.DateField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=PENDING)
    notes = models.TextField(blank=True, null=True)
    recorded_by = models.ForeignKey('core.User', on_delete=models.SET_NULL, null=True, blank=True, related_name='recorded_expenses')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Expense #{self.pk} - {self.amount}"

    @property
    def amount(self):
        return (self.rate or Decimal('0')) * (self.quantity or Decimal('0'))

    class Meta:
        db_table = 'expenses'
        ordering = ['-expense_date', '-created_at']
        indexes = [
            models.Index(fields=['organization', 'project'], name='expense_org_project_idx'),
            models.Index(fields=['organization', 'party'], name='expense_org_party_idx'),
            models.Index(fields=['expense_date'], name='expense_date_idx'),
        ]


class Payment(models.Model):
    """Money received from a client (IN) or paid to a party (OUT)"""
    IN = 'IN'
    OUT = 'OUT'
    TYPE_CHOICES = [
        (IN, 'Received'),
        (OUT, 'Paid'),
    ]

    organization = models.ForeignKey('core.Organization', on_delete=models.CASCADE, related_name='payments')
    project = models.ForeignKey('projects.Project', on_delete=models.CASCADE, related_name='payments')
    party = models.ForeignKey('parties.Party', on_delete=models.SET_NULL, null=True, blank=True, related_name='payments')
    expense = models.ForeignKey(Expense, on_delete=models.SET_NULL, null=True, blank=True, related_name='payments')
    recorded_by = models.ForeignKey('core.User', on_delete=models.SET_NULL, null=True, blank=True, related_name='recorded_payments')
    type = models.CharField(max_length=3, choices=TYPE_CHOICES)
    payment_mode = models.CharField(max_length=20, choices=PAYMENT_MODE_CHOICES)
    amount = models.DecimalField(max_digits=15, decimal_places=2)
    payment_date = models.DateField()
    reference_number = models.CharField(max_length=100, blank=True, null=True)
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.type} {self.amount} on {self.payment_date}"

    class Meta:
        db_table = 'payments'
        ordering = ['-payment_date', '-created_at']
        indexes = [
            models.Index(fields=['organization', 'project', 'type'], name='payment_org_proj_type_idx'),
            models.Index(fields=['organization', 'party'], name='payment_org_party_idx'),
            models.Index(fields=['payment_date'], name='payment_date_idx'),
        ]
