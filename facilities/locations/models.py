from django.db import models


class Location(models.Model):
    """A room or area inside a facility building"""
    name = models.CharField(max_length=200, blank=True)
    building = models.CharField(max_length=200, blank=True)
    floor_number = models.CharField(max_length=20)
    room_number = models.CharField(max_length=20)
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.display_name

    @property
    def display_name(self):
        if self.name:
            return self.name
        label = f"Floor {self.floor_number}, Room {self.room_number}"
        if self.building:
            return f"{self.building} {label}"
        return label

    class Meta:
        db_table = 'locations'
        ordering = ['building', 'floor_number', 'room_number']
        constraints = [
            models.UniqueConstraint(fields=['building', 'floor_number', 'room_number'], name='unique_location_room'),
        ]
