from django.conf import settings
from django.db import models


class Kitchen(models.Model):
    """Kitchen that holds food supplies and serves recipes"""
    name = models.CharField(max_length=200)
    floor_number = models.CharField(max_length=20, blank=True)
    description = models.TextField(blank=True)
    location = models.ForeignKey('locations.Location', on_delete=models.SET_NULL, null=True, blank=True, related_name='kitchens')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'kitchens'
        ordering = ['name']


class KitchenAssignment(models.Model):
    """User assigned to work in a kitchen"""
    kitchen = models.ForeignKey(Kitchen, on_delete=models.CASCADE, related_name='assignments')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='kitchen_assignments')
    assigned_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.user} @ {self.kitchen}"

    class Meta:
        db_table = 'kitchen_assignments'
        ordering = ['kitchen', 'user']
        constraints = [
            models.UniqueConstraint(fields=['kitchen', 'user'], name='unique_kitchen_assignment'),
        ]
