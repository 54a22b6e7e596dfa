# ==========================================
# apps/lots/models.py
# ==========================================

from django.core.serializers.json import DjangoJSONEncoder
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
from decimal import Decimal
import uuid


class LotType(models.TextChoices):
    SINGLE = 'single', 'Single batch'
    SPLIT = 'split', 'Split child'
    BLEND = 'blend', 'Blend'


class LotPhase(models.TextChoices):
    FERMENTATION = 'FERMENTATION', 'Fermentation'
    CONDITIONING = 'CONDITIONING', 'Conditioning'
    BRIGHT = 'BRIGHT', 'Bright'
    PACKAGING = 'PACKAGING', 'Packaging'
    COMPLETED = 'COMPLETED', 'Completed'


# Lots only ever move forward through this sequence
PHASE_ORDER = [
    LotPhase.FERMENTATION,
    LotPhase.CONDITIONING,
    LotPhase.BRIGHT,
    LotPhase.PACKAGING,
    LotPhase.COMPLETED,
]


def phase_index(phase):
    return PHASE_ORDER.index(phase)


class LotStatus(models.TextChoices):
    ACTIVE = 'ACTIVE', 'Active'
    COMPLETED = 'COMPLETED', 'Completed'


class CompletionReason(models.TextChoices):
    PACKAGED = 'packaged', 'Packaged'
    SPLIT = 'split', 'Split into child lots'
    BLENDED = 'blended', 'Blended into another lot'


class PackageType(models.TextChoices):
    KEG_50 = 'KEG_50', 'Keg 50 L'
    KEG_30 = 'KEG_30', 'Keg 30 L'
    KEG_20 = 'KEG_20', 'Keg 20 L'
    BOTTLE_750 = 'BOTTLE_750', 'Bottle 0.75 L'
    BOTTLE_500 = 'BOTTLE_500', 'Bottle 0.5 L'
    BOTTLE_330 = 'BOTTLE_330', 'Bottle 0.33 L'
    CAN_500 = 'CAN_500', 'Can 0.5 L'
    CAN_330 = 'CAN_330', 'Can 0.33 L'
    CUSTOM = 'CUSTOM', 'Custom'


# Litres per unit; CUSTOM runs must state their volume
PACKAGE_SIZES = {
    PackageType.KEG_50: Decimal('50'),
    PackageType.KEG_30: Decimal('30'),
    PackageType.KEG_20: Decimal('20'),
    PackageType.BOTTLE_750: Decimal('0.75'),
    PackageType.BOTTLE_500: Decimal('0.5'),
    PackageType.BOTTLE_330: Decimal('0.33'),
    PackageType.CAN_500: Decimal('0.5'),
    PackageType.CAN_330: Decimal('0.33'),
}


class TimelineEvent(models.TextChoices):
    CREATED = 'created', 'Created'
    PHASE_CHANGED = 'phase_changed', 'Phase changed'
    COMPLETED = 'completed', 'Completed'
    SPLIT = 'split', 'Split'
    BLENDED = 'blended', 'Blended'
    SUPERSEDED = 'superseded', 'Superseded by blend'
    PACKAGED = 'packaged', 'Packaged'


class Lot(models.Model):
    """
    A physical quantity of beer moving through production.

    Single lots map 1:1 to a batch. Split children share one batch across
    several vessels; a blend combines several batches in one vessel.
    A lot is immutable once completed.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    lot_code = models.CharField(max_length=40, unique=True, db_index=True)
    lot_type = models.CharField(max_length=10, choices=LotType.choices, default=LotType.SINGLE)
    phase = models.CharField(max_length=20, choices=LotPhase.choices, default=LotPhase.FERMENTATION)
    status = models.CharField(max_length=10, choices=LotStatus.choices, default=LotStatus.ACTIVE)

    total_volume = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))],
    )
    vessel = models.ForeignKey(
        'production.Vessel',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='lots',
    )

    # Blend bookkeeping
    is_blend_result = models.BooleanField(default=False)
    batch_count = models.PositiveIntegerField(default=1)

    # Lineage
    parent_lot = models.ForeignKey(
        'self',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='child_lots',
    )
    superseded_by = models.ForeignKey(
        'self',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='source_lots',
    )
    completion_reason = models.CharField(
        max_length=10,
        choices=CompletionReason.choices,
        blank=True,
    )

    # Milestones
    split_at = models.DateTimeField(null=True, blank=True)
    blended_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    # Optimistic concurrency counter
    version = models.PositiveIntegerField(default=1)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'lots'
        indexes = [
            models.Index(fields=['status', 'phase'], name='lots_status_phase_idx'),
            models.Index(fields=['created_at'], name='lots_created_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.lot_code} ({self.phase})"

    @property
    def is_active(self):
        return self.status == LotStatus.ACTIVE

    @property
    def is_split_child(self):
        return self.lot_type == LotType.SPLIT

    @property
    def batch_ids(self):
        return [link.batch_id for link in self.batch_links.all()]


class LotBatch(models.Model):
    """How much of a batch's beer went into a lot."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    lot = models.ForeignKey(Lot, on_delete=models.CASCADE, related_name='batch_links')
    batch = models.ForeignKey('production.Batch', on_delete=models.PROTECT, related_name='lot_links')
    volume_contribution = models.DecimalField(max_digits=10, decimal_places=2)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'lot_batches'
        unique_together = [['lot', 'batch']]
        ordering = ['created_at']

    def __str__(self):
        return f"{self.lot.lot_code} <- {self.batch.batch_number} ({self.volume_contribution} L)"


class PackagingRun(models.Model):
    """Beer drawn off a lot into kegs, bottles or cans. Created only."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    # Legacy runs predate the FK and are matched by lot_code only
    lot = models.ForeignKey(
        Lot,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='packaging_runs',
    )
    lot_code = models.CharField(max_length=40, db_index=True)

    package_type = models.CharField(max_length=20, choices=PackageType.choices)
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    volume_total = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))],
    )

    performed_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='packaging_runs',
    )
    performed_at = models.DateTimeField(default=timezone.now)
    notes = models.TextField(blank=True)
    idempotency_key = models.CharField(max_length=64, unique=True, null=True, blank=True)

    class Meta:
        db_table = 'packaging_runs'
        indexes = [
            models.Index(fields=['lot', 'performed_at'], name='runs_lot_performed_idx'),
        ]
        ordering = ['-performed_at']

    def __str__(self):
        return f"{self.lot_code}: {self.quantity} x {self.package_type}"


class LotTimelineEntry(models.Model):
    """Immutable audit record of something that happened to a lot."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    lot = models.ForeignKey(Lot, on_delete=models.CASCADE, related_name='timeline')
    event = models.CharField(max_length=20, choices=TimelineEvent.choices)
    previous_phase = models.CharField(max_length=20, choices=LotPhase.choices, blank=True)
    new_phase = models.CharField(max_length=20, choices=LotPhase.choices, blank=True)
    actor = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='lot_timeline_entries',
    )
    data = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'lot_timeline'
        indexes = [
            models.Index(fields=['lot', 'created_at'], name='timeline_lot_created_idx'),
        ]
        ordering = ['created_at']

    def __str__(self):
        return f"{self.lot.lot_code}: {self.event}"
