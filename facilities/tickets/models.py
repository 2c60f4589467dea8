from django.conf import settings
from django.db import models


class Ticket(models.Model):
    """Support or maintenance request, optionally linked to an asset"""
    STATUS_CHOICES = [
        ('OPEN', 'Open'),
        ('IN_PROGRESS', 'In Progress'),
        ('RESOLVED', 'Resolved'),
        ('CLOSED', 'Closed'),
    ]

    PRIORITY_CHOICES = [
        ('LOW', 'Low'),
        ('MEDIUM', 'Medium'),
        ('HIGH', 'High'),
        ('CRITICAL', 'Critical'),
    ]

    display_id = models.CharField(max_length=30, unique=True)
    barcode = models.CharField(max_length=50, unique=True)
    title = models.CharField(max_length=255)
    description = models.TextField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='OPEN')
    priority = models.CharField(max_length=20, choices=PRIORITY_CHOICES, default='MEDIUM')
    asset = models.ForeignKey('assets.Asset', on_delete=models.SET_NULL, null=True, blank=True, related_name='tickets')
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='created_tickets')
    assigned_to = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='assigned_tickets')
    resolved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.display_id}: {self.title}"

    class Meta:
        db_table = 'tickets'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='tickets_status_a41c07_idx'),
            models.Index(fields=['priority'], name='tickets_priorit_5b2f90_idx'),
        ]


class TicketHistory(models.Model):
    """Status/priority change or comment on a ticket"""
    ticket = models.ForeignKey(Ticket, on_delete=models.CASCADE, related_name='history')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='ticket_history')
    status = models.CharField(max_length=20, choices=Ticket.STATUS_CHOICES, null=True, blank=True)
    priority = models.CharField(max_length=20, choices=Ticket.PRIORITY_CHOICES, null=True, blank=True)
    comment = models.TextField(blank=True)
    started_at = models.DateTimeField(null=True, blank=True)
    resolution_time = models.PositiveIntegerField(null=True, blank=True, help_text="Seconds from work start to resolution")
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.ticket.display_id} @ {self.created_at:%Y-%m-%d %H:%M}"

    class Meta:
        db_table = 'ticket_history'
        ordering = ['-created_at', '-id']
        verbose_name_plural = 'ticket history'
