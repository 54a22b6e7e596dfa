# ==========================================
# apps/production/models.py
# ==========================================

from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
from decimal import Decimal
import uuid


class VesselType(models.TextChoices):
    FERMENTER = 'fermenter', 'Fermenter'
    CONDITIONING = 'conditioning', 'Conditioning tank'
    BRIGHT = 'bright', 'Bright tank'
    UNITANK = 'unitank', 'Unitank'


class VesselStatus(models.TextChoices):
    AVAILABLE = 'available', 'Available'
    IN_USE = 'in_use', 'In use'
    NEEDS_CIP = 'needs_cip', 'Needs CIP'
    MAINTENANCE = 'maintenance', 'Maintenance'


class BatchStatus(models.TextChoices):
    PLANNED = 'planned', 'Planned'
    BREWING = 'brewing', 'Brewing'
    FERMENTING = 'fermenting', 'Fermenting'
    CONDITIONING = 'conditioning', 'Conditioning'
    READY = 'ready', 'Ready'
    PACKAGING = 'packaging', 'Packaging'
    COMPLETED = 'completed', 'Completed'


class ReadingType(models.TextChoices):
    ORIGINAL = 'original', 'Original gravity'
    ROUTINE = 'routine', 'Routine'
    FINAL = 'final', 'Final gravity'


class Recipe(models.Model):
    """Read-only recipe data a batch is brewed from."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    style = models.CharField(max_length=100, blank=True)

    # Targets
    target_og = models.DecimalField(max_digits=6, decimal_places=4, null=True, blank=True)
    target_fg = models.DecimalField(max_digits=6, decimal_places=4, null=True, blank=True)
    batch_size = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))],
        help_text='Reference volume in litres the ingredient amounts are written for',
    )
    yeast_strain = models.CharField(max_length=100, blank=True)

    # [{"stock_item": "...", "name": "...", "amount": 4.5, "unit": "kg"}, ...]
    ingredients = models.JSONField(default=list, blank=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'recipes'
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.style})" if self.style else self.name


class Vessel(models.Model):
    """Fermenter / tank a lot physically sits in."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    code = models.CharField(max_length=20, unique=True)
    name = models.CharField(max_length=100)
    vessel_type = models.CharField(
        max_length=20,
        choices=VesselType.choices,
        default=VesselType.FERMENTER,
    )
    capacity = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))],
    )
    status = models.CharField(
        max_length=20,
        choices=VesselStatus.choices,
        default=VesselStatus.AVAILABLE,
    )

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'vessels'
        indexes = [
            models.Index(fields=['status'], name='vessels_status_idx'),
        ]
        ordering = ['code']

    def __str__(self):
        return f"{self.code} - {self.name}"


class Batch(models.Model):
    """A planned brew. Its beer lives on in one or more lots."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    batch_number = models.CharField(max_length=20, unique=True, db_index=True)
    recipe = models.ForeignKey(
        Recipe,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='batches',
    )
    planned_volume = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))],
    )

    # Gravity (SG)
    target_og = models.DecimalField(max_digits=6, decimal_places=4, null=True, blank=True)
    target_fg = models.DecimalField(max_digits=6, decimal_places=4, null=True, blank=True)
    original_gravity = models.DecimalField(max_digits=6, decimal_places=4, null=True, blank=True)
    final_gravity = models.DecimalField(max_digits=6, decimal_places=4, null=True, blank=True)
    current_gravity = models.DecimalField(max_digits=6, decimal_places=4, null=True, blank=True)

    status = models.CharField(
        max_length=20,
        choices=BatchStatus.choices,
        default=BatchStatus.PLANNED,
    )
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='batches_created',
    )

    # Milestones
    brew_date = models.DateTimeField(null=True, blank=True)
    fermentation_started_at = models.DateTimeField(null=True, blank=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'batches'
        indexes = [
            models.Index(fields=['status', 'created_at'], name='batches_status_created_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return self.batch_number

    @property
    def recipe_name(self):
        return self.recipe.name if self.recipe else None


class GravityReading(models.Model):
    """Append-only gravity measurement, always stored in SG."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    batch = models.ForeignKey(
        Batch,
        on_delete=models.CASCADE,
        related_name='gravity_readings',
    )
    lot = models.ForeignKey(
        'lots.Lot',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='gravity_readings',
    )
    gravity = models.DecimalField(max_digits=6, decimal_places=4)
    temperature = models.DecimalField(max_digits=4, decimal_places=1, null=True, blank=True)
    reading_type = models.CharField(
        max_length=20,
        choices=ReadingType.choices,
        default=ReadingType.ROUTINE,
    )
    notes = models.TextField(blank=True)
    recorded_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='gravity_readings',
    )
    recorded_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'gravity_readings'
        indexes = [
            models.Index(fields=['batch', 'recorded_at'], name='readings_batch_recorded_idx'),
        ]
        ordering = ['-recorded_at']

    def __str__(self):
        return f"{self.batch.batch_number}: {self.gravity} ({self.reading_type})"
