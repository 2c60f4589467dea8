from django.conf import settings
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models


class Vendor(models.Model):
    """Supplier of assets, food or services"""
    TYPE_CHOICES = [
        ('ASSET', 'Asset'),
        ('FOOD', 'Food'),
        ('MAINTENANCE', 'Maintenance'),
        ('OTHER', 'Other'),
    ]
    SCORE_FIELDS = ['reliability_score', 'quality_score', 'response_time_score']

    name = models.CharField(max_length=200)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=20, blank=True)
    address = models.TextField(blank=True)
    types = models.JSONField(default=list, blank=True)
    reliability_score = models.PositiveSmallIntegerField(null=True, blank=True, validators=[MinValueValidator(0), MaxValueValidator(100)])
    quality_score = models.PositiveSmallIntegerField(null=True, blank=True, validators=[MinValueValidator(0), MaxValueValidator(100)])
    response_time_score = models.PositiveSmallIntegerField(null=True, blank=True, validators=[MinValueValidator(0), MaxValueValidator(100)])
    last_review_date = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    @property
    def overall_score(self):
        scores = [getattr(self, field) for field in self.SCORE_FIELDS if getattr(self, field) is not None]
        if not scores:
            return None
        return round(sum(scores) / len(scores), 1)

    class Meta:
        db_table = 'vendors'
        ordering = ['name']


class VendorEvaluation(models.Model):
    """One performance review of a vendor"""
    vendor = models.ForeignKey(Vendor, on_delete=models.CASCADE, related_name='evaluations')
    reviewer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='vendor_evaluations')
    reliability_score = models.PositiveSmallIntegerField(null=True, blank=True)
    quality_score = models.PositiveSmallIntegerField(null=True, blank=True)
    response_time_score = models.PositiveSmallIntegerField(null=True, blank=True)
    previous_scores = models.JSONField(default=dict, blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.vendor.name} review {self.created_at:%Y-%m-%d}"

    class Meta:
        db_table = 'vendor_evaluations'
        ordering = ['-created_at']
