"""
Volume reconciliation.

How much of a lot has been packaged and how much is left. Packaged
volume is the sum of the lot's packaging runs; legacy runs written
before runs referenced lots directly are matched by lot code.
"""

from decimal import Decimal, ROUND_HALF_UP

from django.db.models import Q, Sum

from apps.lots.models import CompletionReason, Lot, PackagingRun


TWO_PLACES = Decimal('0.01')
ZERO = Decimal('0.00')
TRANSFERRED_REASONS = (CompletionReason.SPLIT, CompletionReason.BLENDED)


def packaged_volume(lot: Lot) -> Decimal:
    """Litres packaged from ``lot`` so far."""
    total = (
        PackagingRun.objects
        .filter(Q(lot=lot) | Q(lot__isnull=True, lot_code=lot.lot_code))
        .aggregate(total=Sum('volume_total'))['total']
    )
    return (total or ZERO).quantize(TWO_PLACES)


def remaining_volume(total, packaged) -> Decimal:
    """Litres left to package; never negative."""
    remaining = Decimal(total) - Decimal(packaged)
    return max(ZERO, remaining).quantize(TWO_PLACES)


def progress_percent(total, packaged) -> Decimal:
    """Share of the lot packaged, capped at 100."""
    total = Decimal(total)
    if total <= 0:
        return ZERO
    percent = min(Decimal(100), Decimal(packaged) / total * 100)
    return percent.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def volume_summary(lot: Lot) -> dict:
    """
    Totals for ``lot``. A lot closed by a split or blend has handed its
    beer on to other lots, so it has nothing left to package.
    """
    packaged = packaged_volume(lot)
    if lot.completion_reason in TRANSFERRED_REASONS:
        remaining = ZERO
    else:
        remaining = remaining_volume(lot.total_volume, packaged)
    return {
        'total_volume': lot.total_volume,
        'packaged_volume': packaged,
        'remaining_volume': remaining,
        'progress_percent': progress_percent(lot.total_volume, packaged),
    }
