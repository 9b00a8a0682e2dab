from django.db import models


class CategoryType(models.Model):
    """Global category kinds shared by every organization (expense_type, material_type, ...)"""
    key = models.CharField(max_length=50, unique=True)
    label = models.CharField(max_length=100)
    description = models.TextField(blank=True)
    sort_order = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.label

    class Meta:
        db_table = 'category_types'
        ordering = ['sort_order', 'key']


class CategoryItem(models.Model):
    """An organization's entry under a category type"""
    organization = models.ForeignKey('core.Organization', on_delete=models.CASCADE, related_name='category_items')
    category_type = models.ForeignKey(CategoryType, on_delete=models.PROTECT, related_name='items')
    name = models.CharField(max_length=200)
    is_active = models.BooleanField(default=True)
    is_editable = models.BooleanField(default=True)
    sort_order = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'category_items'
        ordering = ['sort_order', 'name']
        unique_together = [['organization', 'category_type', 'name']]
        indexes = [
            models.Index(fields=['organization', 'category_type'], name='cat_item_org_type_idx'),
        ]
