from django.db import models
from decimal import Decimal


class BOQSection(models.Model):
    """Heading that groups bill of quantities lines inside a project"""
    organization = models.ForeignKey('core.Organization', on_delete=models.CASCADE, related_name='boq_sections')
    project = models.ForeignKey('projects.Project', on_delete=models.CASCADE, related_name='boq_sections')
    name = models.CharField(max_length=200)
    sort_order = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'boq_sections'
        ordering = ['sort_order', 'name']
        unique_together = [['project', 'name']]


class BOQItem(models.Model):
    """One quoted line: quantity x rate of some work or material"""
    organization = models.ForeignKey('core.Organization', on_delete=models.CASCADE, related_name='boq_items')
    project = models.ForeignKey('projects.Project', on_delete=models.CASCADE, related_name='boq_items')
    section = models.ForeignKey(BOQSection, on_delete=models.SET_NULL, null=True, blank=True, related_name='items')
    stage = models.ForeignKey('projects.Stage', on_delete=models.SET_NULL, null=True, blank=True, related_name='boq_items')
    category = models.ForeignKey('categories.CategoryItem', on_delete=models.PROTECT, related_name='boq_items')
    code = models.CharField(max_length=50, blank=True, null=True)
    description = models.TextField()
    unit = models.CharField(max_length=30)
    quantity = models.DecimalField(max_digits=15, decimal_places=4)
    rate = models.DecimalField(max_digits=15, decimal_places=2)
    notes = models.TextField(blank=True, null=True)
    is_review_flagged = models.BooleanField(default=False)
    flag_reason = models.CharField(max_length=255, blank=True, null=True)
    expenses = models.ManyToManyField('finance.Expense', through='BOQExpenseLink', related_name='boq_items', blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.code or self.pk} - {self.description[:40]}"

    @property
    def quoted_amount(self):
        return (self.rate or Decimal('0')) * (self.quantity or Decimal('0'))

    class Meta:
        db_table = 'boq_items'
        ordering = ['section__sort_order', 'code', 'id']
        indexes = [
            models.Index(fields=['organization', 'project'], name='boq_item_org_project_idx'),
        ]


class BOQExpenseLink(models.Model):
    """Expense counted as actual spend against a BOQ item"""
    item = models.ForeignKey(BOQItem, on_delete=models.CASCADE, related_name='expense_links')
    expense = models.ForeignKey('finance.Expense', on_delete=models.CASCADE, related_name='boq_links')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"BOQ {self.item_id} <- Expense {self.expense_id}"

    class Meta:
        db_table = 'boq_expense_links'
        unique_together = [['item', 'expense']]
