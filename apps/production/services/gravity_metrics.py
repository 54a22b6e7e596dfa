"""
Gravity and derived-metric calculator.

Resolves the original and current gravity of a batch from its reading
history and derives ABV and apparent attenuation from them.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Sequence

from apps.production.models import Batch, BatchStatus, GravityReading, ReadingType
from apps.production.units import sg_to_plato


ABV_FACTOR = Decimal('131.25')
TWO_PLACES = Decimal('0.01')
ZERO = Decimal('0.00')


def _valid_readings(batch: Batch) -> Sequence[GravityReading]:
    # Legacy phase markers were stored with gravity 0
    return list(
        batch.gravity_readings
        .filter(gravity__gt=0)
        .order_by('recorded_at')
    )


def resolve_original_gravity(
    batch: Batch,
    readings: Optional[Sequence[GravityReading]] = None,
) -> Optional[Decimal]:
    """
    Resolve OG: earliest reading flagged original, then the recorded
    ``original_gravity``, then the earliest reading of any type.
    """
    if readings is None:
        readings = _valid_readings(batch)

    for reading in readings:
        if reading.reading_type == ReadingType.ORIGINAL:
            return reading.gravity

    if batch.original_gravity and batch.original_gravity > 0:
        return batch.original_gravity

    if readings:
        return readings[0].gravity
    return None


def resolve_current_gravity(
    batch: Batch,
    readings: Optional[Sequence[GravityReading]] = None,
    original_gravity: Optional[Decimal] = None,
) -> Optional[Decimal]:
    """
    Resolve the current gravity.

    Completed batches report their recorded final gravity (or the recipe
    target). Otherwise the latest reading wins, then the recorded final
    gravity, then OG.
    """
    if readings is None:
        readings = _valid_readings(batch)

    if batch.status == BatchStatus.COMPLETED:
        if batch.final_gravity and batch.final_gravity > 0:
            return batch.final_gravity
        if batch.target_fg and batch.target_fg > 0:
            return batch.target_fg

    if readings:
        return readings[-1].gravity

    if batch.final_gravity and batch.final_gravity > 0:
        return batch.final_gravity

    if original_gravity is None:
        original_gravity = resolve_original_gravity(batch, readings)
    return original_gravity


def calculate_abv(original_gravity, current_gravity) -> Decimal:
    """ABV % = (OG - current) * 131.25, 0 when either side is missing."""
    if not original_gravity or not current_gravity:
        return ZERO
    if original_gravity == current_gravity:
        return ZERO
    abv = (Decimal(original_gravity) - Decimal(current_gravity)) * ABV_FACTOR
    return max(ZERO, abv.quantize(TWO_PLACES, rounding=ROUND_HALF_UP))


def calculate_attenuation(original_gravity, current_gravity) -> Decimal:
    """Apparent attenuation % = (OG - current) / (OG - 1) * 100."""
    if not original_gravity or not current_gravity:
        return ZERO
    og = Decimal(original_gravity)
    current = Decimal(current_gravity)
    if og <= 1 or og == current:
        return ZERO
    attenuation = (og - current) / (og - 1) * 100
    return max(ZERO, attenuation.quantize(TWO_PLACES, rounding=ROUND_HALF_UP))


def get_batch_metrics(batch: Batch) -> dict:
    """
    Compute the gravity summary of a batch.

    Args:
        batch: Batch instance

    Returns:
        Dict with original/current gravity (SG and °P), ABV, attenuation
        and the number of readings considered.
    """
    readings = _valid_readings(batch)
    og = resolve_original_gravity(batch, readings)
    current = resolve_current_gravity(batch, readings, original_gravity=og)

    return {
        'batch_id': batch.id,
        'batch_number': batch.batch_number,
        'original_gravity': og,
        'current_gravity': current,
        'original_plato': sg_to_plato(og) if og else None,
        'current_plato': sg_to_plato(current) if current else None,
        'abv': calculate_abv(og, current),
        'attenuation': calculate_attenuation(og, current),
        'reading_count': len(readings),
    }
