from django.conf import settings
from django.db import models


class Asset(models.Model):
    """Physical enterprise item tracked by location and status"""
    TYPE_CHOICES = [
        ('FURNITURE', 'Furniture'),
        ('EQUIPMENT', 'Equipment'),
        ('ELECTRONICS', 'Electronics'),
        ('KITCHEN', 'Kitchen'),
        ('IT', 'IT'),
        ('OTHER', 'Other'),
    ]

    STATUS_CHOICES = [
        ('ACTIVE', 'Active'),
        ('LIKE_NEW', 'Like New'),
        ('IN_TRANSIT', 'In Transit'),
        ('MAINTENANCE', 'Maintenance'),
        ('DAMAGED', 'Damaged'),
        ('CRITICAL', 'Critical'),
        ('DISPOSED', 'Disposed'),
    ]

    asset_id = models.CharField(max_length=50, unique=True)
    barcode = models.CharField(max_length=100, unique=True)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='ACTIVE')
    floor_number = models.CharField(max_length=20, blank=True)
    room_number = models.CharField(max_length=20, blank=True)
    location = models.ForeignKey('locations.Location', on_delete=models.SET_NULL, null=True, blank=True, related_name='assets')
    vendor = models.ForeignKey('vendors.Vendor', on_delete=models.PROTECT, related_name='assets')
    owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='assets')
    purchase_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    purchase_date = models.DateField(null=True, blank=True)
    image_url = models.URLField(max_length=500, blank=True)
    latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    last_moved_at = models.DateTimeField(null=True, blank=True)
    disposed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.asset_id})"

    class Meta:
        db_table = 'assets'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='assets_status_6f2e1d_idx'),
            models.Index(fields=['type'], name='assets_type_0b9c3a_idx'),
            models.Index(fields=['floor_number', 'room_number'], name='assets_floor_n_4d7e2b_idx'),
        ]


class AssetHistory(models.Model):
    """Timeline entry for an asset"""
    ACTION_CHOICES = [
        ('REGISTERED', 'Registered'),
        ('UPDATED', 'Updated'),
        ('MOVED', 'Moved'),
        ('STATUS_CHANGED', 'Status Changed'),
        ('DISPOSED', 'Disposed'),
        ('DOCUMENT_ADDED', 'Document Added'),
        ('DOCUMENT_DELETED', 'Document Deleted'),
    ]

    asset = models.ForeignKey(Asset, on_delete=models.CASCADE, related_name='history')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='asset_history')
    action = models.CharField(max_length=30, choices=ACTION_CHOICES)
    details = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.asset.asset_id} {self.action}"

    class Meta:
        db_table = 'asset_history'
        ordering = ['-created_at', '-id']
        verbose_name_plural = 'asset history'


class AssetMovement(models.Model):
    """Floor/room move of an asset"""
    asset = models.ForeignKey(Asset, on_delete=models.CASCADE, related_name='movements')
    from_floor = models.CharField(max_length=20, blank=True)
    from_room = models.CharField(max_length=20, blank=True)
    to_floor = models.CharField(max_length=20)
    to_room = models.CharField(max_length=20)
    reason = models.TextField(blank=True)
    moved_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='asset_movements')
    moved_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.asset.asset_id}: {self.from_floor}/{self.from_room} -> {self.to_floor}/{self.to_room}"

    class Meta:
        db_table = 'asset_movements'
        ordering = ['-moved_at', '-id']


class AssetDocument(models.Model):
    """Uploaded file or external link attached to an asset"""
    asset = models.ForeignKey(Asset, on_delete=models.CASCADE, related_name='documents')
    file = models.FileField(upload_to='asset_documents/%Y/%m/', blank=True)
    file_url = models.URLField(max_length=1000, blank=True)
    file_name = models.CharField(max_length=255)
    file_type = models.CharField(max_length=100, blank=True)
    file_size = models.PositiveIntegerField(default=0)
    uploaded_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='asset_documents')
    uploaded_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.file_name

    @property
    def url(self):
        if self.file:
            return self.file.url
        return self.file_url

    class Meta:
        db_table = 'asset_documents'
        ordering = ['-uploaded_at', '-id']
