from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Extended user model with a facility role"""
    ROLE_CHOICES = [
        ('ADMIN', 'Administrator'),
        ('MANAGER', 'Manager'),
        ('STAFF', 'Staff'),
    ]

    phone = models.CharField(max_length=20, blank=True, null=True)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='STAFF')
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'users'

    @property
    def display_name(self):
        """Email local part, falling back to the username"""
        if self.email:
            return self.email.split('@')[0]
        return self.username


class AuditLog(models.Model):
    """Audit log for critical operations"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('asset_move', 'Asset Moved'),
        ('asset_dispose', 'Asset Disposed'),
        ('asset_duplicate', 'Asset Duplicated'),
        ('document_upload', 'Document Uploaded'),
        ('document_delete', 'Document Deleted'),
        ('ticket_status', 'Ticket Status Changed'),
        ('food_consume', 'Food Consumed'),
        ('food_dispose', 'Food Disposed'),
        ('food_order', 'Food Ordered'),
        ('recipe_use', 'Recipe Used'),
        ('vehicle_assign', 'Vehicle Assigned'),
        ('vehicle_return', 'Vehicle Returned'),
        ('vendor_review', 'Vendor Reviewed'),
        ('barcode_scan', 'Barcode Scanned'),
        ('notifications_read', 'Notifications Read'),
    ]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_name = models.CharField(max_length=255, blank=True, null=True, help_text="Human-readable name of the object (e.g., asset name, ticket number)")
    object_reference = models.CharField(max_length=255, blank=True, null=True, help_text="Reference identifier (e.g., asset id, rental number)")
    barcode = models.CharField(max_length=255, blank=True, null=True)
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='audit_logs_created_8f1c2a_idx'),
            models.Index(fields=['action'], name='audit_logs_action_3b7d91_idx'),
            models.Index(fields=['model_name'], name='audit_logs_model_n_5e0a44_idx'),
            models.Index(fields=['barcode'], name='audit_logs_barcode_c2d8f7_idx'),
            models.Index(fields=['object_reference'], name='audit_logs_object__9a61be_idx'),
        ]

    def __str__(self):
        return f"{self.action} {self.model_name}#{self.object_id}"
