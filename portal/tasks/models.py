from django.db import models
from django.db.models import Q
from django.utils import timezone
from portal.clients.models import Client


class Task(models.Model):
    """Work item tracked for a client; 'overdue' is derived from due_date"""
    STATUS_PENDING = 'pending'
    STATUS_IN_PROGRESS = 'in_progress'
    STATUS_COMPLETED = 'completed'
    STATUS_OVERDUE = 'overdue'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_IN_PROGRESS, 'In Progress'),
        (STATUS_COMPLETED, 'Completed'),
    ]

    PRIORITY_LOW = 'low'
    PRIORITY_MEDIUM = 'medium'
    PRIORITY_HIGH = 'high'

    PRIORITY_CHOICES = [
        (PRIORITY_LOW, 'Low'),
        (PRIORITY_MEDIUM, 'Medium'),
        (PRIORITY_HIGH, 'High'),
    ]

    client = models.ForeignKey(Client, on_delete=models.CASCADE, related_name='tasks')
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default='')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default=PRIORITY_MEDIUM)
    due_date = models.DateTimeField()
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.title

    @staticmethod
    def overdue_q(now):
        """Filter for tasks past their due date that are not completed"""
        return Q(due_date__lt=now) & ~Q(status=Task.STATUS_COMPLETED)

    def is_overdue_at(self, now):
        return self.status != self.STATUS_COMPLETED and self.due_date is not None and self.due_date < now

    @property
    def display_status(self):
        if self.is_overdue_at(timezone.now()):
            return self.STATUS_OVERDUE
        return self.status

    class Meta:
        db_table = 'tasks'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['client', 'status'], name='idx_task_client_status'),
            models.Index(fields=['due_date'], name='idx_task_due_date'),
        ]


class ServiceRequest(models.Model):
    """Request raised by a client from the portal"""
    STATUS_PENDING = 'pending'
    STATUS_IN_PROGRESS = 'in_progress'
    STATUS_COMPLETED = 'completed'
    STATUS_REJECTED = 'rejected'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_IN_PROGRESS, 'In Progress'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_REJECTED, 'Rejected'),
    ]
    OPEN_STATUSES = [STATUS_PENDING, STATUS_IN_PROGRESS]

    client = models.ForeignKey(Client, on_delete=models.CASCADE, related_name='requests')
    title = models.CharField(max_length=255)
    description = models.TextField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.title

    class Meta:
        db_table = 'requests'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['client', 'status'], name='idx_request_client_status'),
        ]
