from django.conf import settings
from django.db import models


class NotificationRead(models.Model):
    """Marks a derived notification as read for one user"""
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='notification_reads')
    notification_id = models.CharField(max_length=100)
    read_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.user} read {self.notification_id}"

    class Meta:
        db_table = 'notification_reads'
        constraints = [
            models.UniqueConstraint(fields=['user', 'notification_id'], name='unique_notification_read'),
        ]
