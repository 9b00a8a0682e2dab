from django.db import models
from decimal import Decimal


class Project(models.Model):
    """A construction project. Owns stages, money rows and BOQ items"""
    ACTIVE = 'ACTIVE'
    ON_HOLD = 'ON_HOLD'
    COMPLETED = 'COMPLETED'
    STATUS_CHOICES = [
        (ACTIVE, 'Active'),
        (ON_HOLD, 'On Hold'),
        (COMPLETED, 'Completed'),
    ]

    organization = models.ForeignKey('core.Organization', on_delete=models.CASCADE, related_name='projects')
    name = models.CharField(max_length=200)
    client = models.ForeignKey('parties.Party', on_delete=models.SET_NULL, null=True, blank=True, related_name='client_projects')
    location = models.CharField(max_length=255)
    start_date = models.DateField()
    end_date = models.DateField(null=True, blank=True)
    amount = models.DecimalField(max_digits=15, decimal_places=2, null=True, blank=True)  # budget
    project_type = models.ForeignKey('categories.CategoryItem', on_delete=models.SET_NULL, null=True, blank=True, related_name='projects')
    area = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=ACTIVE)
    created_by = models.ForeignKey('core.User', on_delete=models.SET_NULL, null=True, blank=True, related_name='created_projects')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    @property
    def budget(self):
        return self.amount or Decimal('0')

    class Meta:
        db_table = 'projects'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['organization', 'status'], name='project_org_status_idx'),
        ]


class Stage(models.Model):
    """A phase of a project with its own budget and schedule"""
    SCHEDULED = 'SCHEDULED'
    IN_PROGRESS = 'IN_PROGRESS'
    COMPLETED = 'COMPLETED'
    ON_HOLD = 'ON_HOLD'
    STATUS_CHOICES = [
        (SCHEDULED, 'Scheduled'),
        (IN_PROGRESS, 'In Progress'),
        (COMPLETED, 'Completed'),
        (ON_HOLD, 'On Hold'),
    ]

    organization = models.ForeignKey('core.Organization', on_delete=models.CASCADE, related_name='stages')
    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name='stages')
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True, null=True)
    start_date = models.DateField()
    end_date = models.DateField()
    budget_amount = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    weight = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0.00'))
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=SCHEDULED)
    members = models.ManyToManyField('core.User', blank=True, related_name='assigned_stages')
    parties = models.ManyToManyField('parties.Party', blank=True, related_name='assigned_stages')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.project.name} - {self.name}"

    class Meta:
        db_table = 'stages'
        ordering = ['start_date', 'id']
        unique_together = [['project', 'name']]


class Task(models.Model):
    """Unit of work inside a stage"""
    NOT_STARTED = 'NOT_STARTED'
    IN_PROGRESS = 'IN_PROGRESS'
    COMPLETED = 'COMPLETED'
    ON_HOLD = 'ON_HOLD'
    BLOCKED = 'BLOCKED'
    STATUS_CHOICES = [
        (NOT_STARTED, 'Not Started'),
        (IN_PROGRESS, 'In Progress'),
        (COMPLETED, 'Completed'),
        (ON_HOLD, 'On Hold'),
        (BLOCKED, 'Blocked'),
    ]

    # status -> statuses it may move to
    ALLOWED_TRANSITIONS = {
        NOT_STARTED: {IN_PROGRESS, ON_HOLD, BLOCKED},
        IN_PROGRESS: {COMPLETED, ON_HOLD, BLOCKED},
        ON_HOLD: {IN_PROGRESS, BLOCKED},
        BLOCKED: {IN_PROGRESS, ON_HOLD},
        COMPLETED: {IN_PROGRESS},
    }

    organization = models.ForeignKey('core.Organization', on_delete=models.CASCADE, related_name='tasks')
    stage = models.ForeignKey(Stage, on_delete=models.CASCADE, related_name='tasks')
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True, null=True)
    days_allocated = models.PositiveIntegerField(default=1)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=NOT_STARTED)
    members = models.ManyToManyField('core.User', blank=True, related_name='assigned_tasks')
    parties = models.ManyToManyField('parties.Party', blank=True, related_name='assigned_tasks')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    def can_transition_to(self, new_status):
        if new_status == self.status:
            return True
        return new_status in self.ALLOWED_TRANSITIONS.get(self.status, set())

    def transition_to(self, new_status):
        """Move to new_status, raising ValueError when the graph forbids it"""
        if new_status not in dict(self.STATUS_CHOICES):
            raise ValueError(f"Unknown task status: {new_status}")
        if not self.can_transition_to(new_status):
            raise ValueError(f"Cannot move task from {self.status} to {new_status}")
        self.status = new_status

    class Meta:
        db_table = 'tasks'
        ordering = ['created_at']
