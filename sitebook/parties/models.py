from django.db import models


class Party(models.Model):
    """Counterparty of expenses and payments. Balances are derived, never stored"""
    VENDOR = 'VENDOR'
    LABOUR = 'LABOUR'
    SUBCONTRACTOR = 'SUBCONTRACTOR'
    CLIENT = 'CLIENT'
    TYPE_CHOICES = [
        (VENDOR, 'Vendor'),
        (LABOUR, 'Labour'),
        (SUBCONTRACTOR, 'Subcontractor'),
        (CLIENT, 'Client'),
    ]
    # Types that are paid by the organization and need a reachable phone
    PAYABLE_TYPES = [VENDOR, LABOUR, SUBCONTRACTOR]

    organization = models.ForeignKey('core.Organization', on_delete=models.CASCADE, related_name='parties')
    name = models.CharField(max_length=200)
    phone = models.CharField(max_length=20, blank=True, null=True)
    location = models.CharField(max_length=255, blank=True, null=True)
    type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.type})"

    class Meta:
        db_table = 'parties'
        ordering = ['name']
        verbose_name_plural = 'parties'
        indexes = [
            models.Index(fields=['organization', 'type'], name='party_org_type_idx'),
            models.Index(fields=['organization', 'name'], name='party_org_name_idx'),
        ]
