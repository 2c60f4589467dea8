from decimal import Decimal
from django.conf import settings
from django.db import models
from django.utils import timezone


class Vehicle(models.Model):
    """Fleet vehicle available for rental"""
    STATUS_CHOICES = [
        ('AVAILABLE', 'Available'),
        ('RENTED', 'Rented'),
        ('MAINTENANCE', 'Maintenance'),
        ('RETIRED', 'Retired'),
    ]

    TYPE_CHOICES = [
        ('SEDAN', 'Sedan'),
        ('SUV', 'SUV'),
        ('VAN', 'Van'),
        ('PICKUP', 'Pickup'),
        ('TRUCK', 'Truck'),
        ('BUS', 'Bus'),
        ('OTHER', 'Other'),
    ]

    name = models.CharField(max_length=200, blank=True)
    make = models.CharField(max_length=100)
    model = models.CharField(max_length=100)
    year = models.PositiveIntegerField()
    plate_number = models.CharField(max_length=50, unique=True)
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='SEDAN')
    color = models.CharField(max_length=50, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='AVAILABLE')
    rental_amount = models.DecimalField(max_digits=10, decimal_places=2)
    image_url = models.URLField(max_length=500, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def save(self, *args, **kwargs):
        self.name = f"{self.make} {self.model}".strip()
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.name} ({self.plate_number})"

    class Meta:
        db_table = 'vehicles'
        ordering = ['make', 'model']
        indexes = [
            models.Index(fields=['status'], name='vehicles_status_6e2d48_idx'),
        ]


class VehicleRental(models.Model):
    """Vehicle assigned to a user for a period"""
    STATUS_CHOICES = [
        ('ACTIVE', 'Active'),
        ('COMPLETED', 'Completed'),
        ('CANCELLED', 'Cancelled'),
    ]

    display_id = models.CharField(max_length=30, unique=True)
    vehicle = models.ForeignKey(Vehicle, on_delete=models.CASCADE, related_name='rentals')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='vehicle_rentals')
    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='ACTIVE')
    daily_rate = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    total_cost = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    notes = models.TextField(blank=True)
    ended_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.display_id}: {self.vehicle} -> {self.user}"

    @property
    def effective_daily_rate(self):
        if self.daily_rate is not None:
            return self.daily_rate
        return self.vehicle.rental_amount

    @property
    def is_overdue(self):
        return self.status == 'ACTIVE' and self.end_date < timezone.now()

    class Meta:
        db_table = 'vehicle_rentals'
        ordering = ['-start_date']
        indexes = [
            models.Index(fields=['status'], name='vehicle_re_status_1b9c33_idx'),
        ]


class VehicleTrip(models.Model):
    """Journey recorded while a rental is active"""
    COMPLETION_CHOICES = [
        ('IN_PROGRESS', 'In progress'),
        ('COMPLETED', 'Completed'),
        ('INCOMPLETE', 'Incomplete'),
    ]

    vehicle = models.ForeignKey(Vehicle, on_delete=models.CASCADE, related_name='trips')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='vehicle_trips')
    rental = models.ForeignKey(VehicleRental, on_delete=models.SET_NULL, null=True, blank=True, related_name='trips')
    start_time = models.DateTimeField(default=timezone.now)
    end_time = models.DateTimeField(null=True, blank=True)
    start_latitude = models.DecimalField(max_digits=9, decimal_places=6)
    start_longitude = models.DecimalField(max_digits=9, decimal_places=6)
    end_latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    end_longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    distance = models.DecimalField(max_digits=10, decimal_places=3, default=Decimal('0'))
    is_auto_started = models.BooleanField(default=False)
    is_auto_ended = models.BooleanField(default=False)
    completion_status = models.CharField(max_length=20, choices=COMPLETION_CHOICES, default='IN_PROGRESS')
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"Trip {self.pk} {self.vehicle} ({self.completion_status})"

    @property
    def duration_ms(self):
        if not self.end_time:
            return None
        return int((self.end_time - self.start_time).total_seconds() * 1000)

    class Meta:
        db_table = 'vehicle_trips'
        ordering = ['-start_time']
        indexes = [
            models.Index(fields=['user', 'end_time'], name='vehicle_tr_user_id_4c7a20_idx'),
        ]


class VehicleLocation(models.Model):
    """GPS point reported for a vehicle"""
    vehicle = models.ForeignKey(Vehicle, on_delete=models.CASCADE, related_name='locations')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='vehicle_locations')
    trip = models.ForeignKey(VehicleTrip, on_delete=models.CASCADE, null=True, blank=True, related_name='points')
    latitude = models.DecimalField(max_digits=9, decimal_places=6)
    longitude = models.DecimalField(max_digits=9, decimal_places=6)
    recorded_at = models.DateTimeField(default=timezone.now)

    def __str__(self):
        return f"{self.vehicle} @ {self.latitude},{self.longitude}"

    class Meta:
        db_table = 'vehicle_locations'
        ordering = ['recorded_at']


class VehicleMaintenance(models.Model):
    """Maintenance work and its cost"""
    vehicle = models.ForeignKey(Vehicle, on_delete=models.CASCADE, related_name='maintenance_records')
    description = models.TextField()
    cost = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))
    maintenance_date = models.DateField(default=timezone.localdate)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.vehicle} maintenance on {self.maintenance_date}"

    class Meta:
        db_table = 'vehicle_maintenance'
        ordering = ['-maintenance_date', '-id']
