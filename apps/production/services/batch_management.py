"""
Batch management service.

Handles the life of a batch up to the point its beer becomes a lot:
planning, brewing, transfer to a fermenter and gravity readings.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Tuple
from uuid import UUID

from django.db import transaction
from django.utils import timezone

from apps.accounts.models import User
from apps.production.models import Batch, BatchStatus, GravityReading, ReadingType
from apps.production.units import GravityUnit, to_sg

from .collaborators import get_inventory_gateway, get_recipe_catalog, get_vessel_gateway
from .exceptions import (
    BatchNotFoundError,
    InvalidBatchStateError,
    InvalidGravityReadingError,
)
from .gravity_metrics import get_batch_metrics as compute_batch_metrics

logger = logging.getLogger(__name__)


# Plausible range for wort and beer
MIN_SG = Decimal('0.9800')
MAX_SG = Decimal('1.2000')

INGREDIENT_PLACES = Decimal('0.001')


def _next_batch_number(year: int) -> str:
    prefix = f"{year}-"
    last = (
        Batch.objects
        .select_for_update()
        .filter(batch_number__startswith=prefix)
        .order_by('-batch_number')
        .first()
    )
    sequence = int(last.batch_number[len(prefix):]) + 1 if last else 1
    return f"{prefix}{sequence:04d}"


def _lock_batch(batch_id: UUID) -> Batch:
    try:
        return (
            Batch.objects
            .select_for_update()
            .select_related('recipe')
            .get(id=batch_id)
        )
    except Batch.DoesNotExist:
        raise BatchNotFoundError(f"Batch with ID {batch_id} not found")


@transaction.atomic
def create_batch(
    *,
    planned_volume: Decimal,
    created_by: Optional[User] = None,
    recipe_id: Optional[UUID] = None,
    target_og: Optional[Decimal] = None,
    target_fg: Optional[Decimal] = None,
    notes: str = '',
) -> Batch:
    """
    Plan a new batch.

    Target gravities default to the recipe's. The batch number is the
    next ``YYYY-NNNN`` in the current year.

    Args:
        planned_volume: Litres to brew
        created_by: User planning the batch
        recipe_id: Optional recipe UUID
        target_og: Target original gravity (SG), defaults to recipe
        target_fg: Target final gravity (SG), defaults to recipe
        notes: Free text

    Returns:
        Created Batch instance in PLANNED status

    Raises:
        RecipeNotFoundError: If recipe_id doesn't exist
    """
    recipe = None
    if recipe_id:
        recipe = get_recipe_catalog().get(recipe_id)
        if target_og is None:
            target_og = recipe.target_og
        if target_fg is None:
            target_fg = recipe.target_fg

    batch = Batch.objects.create(
        batch_number=_next_batch_number(timezone.now().year),
        recipe=recipe,
        planned_volume=planned_volume,
        target_og=target_og,
        target_fg=target_fg,
        notes=notes,
        created_by=created_by,
    )

    logger.info("Batch %s planned (%s L)", batch.batch_number, planned_volume)
    return batch


@transaction.atomic
def start_brewing(
    *,
    batch_id: UUID,
    original_gravity: Optional[Decimal] = None,
) -> Batch:
    """
    Move a batch from PLANNED to BREWING.

    Raises:
        BatchNotFoundError: If batch doesn't exist
        InvalidBatchStateError: If batch is not PLANNED
    """
    batch = _lock_batch(batch_id)

    if batch.status != BatchStatus.PLANNED:
        raise InvalidBatchStateError(batch, BatchStatus.PLANNED)

    batch.status = BatchStatus.BREWING
    batch.brew_date = timezone.now()
    if original_gravity is not None:
        batch.original_gravity = original_gravity
    batch.save()

    logger.info("Batch %s brewing", batch.batch_number)
    return batch


@transaction.atomic
def start_fermentation(
    *,
    batch_id: UUID,
    vessel_id: UUID,
    actor: Optional[User] = None,
    volume: Optional[Decimal] = None,
) -> Tuple[Batch, 'Lot']:
    """
    Transfer a brewed batch to a fermenter.

    Reserves the vessel, deducts the recipe's ingredients scaled to the
    actual volume and creates the batch's single lot in FERMENTATION.

    Args:
        batch_id: UUID of the batch
        vessel_id: UUID of the fermenter
        actor: User performing the transfer
        volume: Litres transferred, defaults to the planned volume

    Returns:
        Tuple of (updated Batch, created Lot)

    Raises:
        BatchNotFoundError: If batch doesn't exist
        InvalidBatchStateError: If batch is not BREWING
        VesselNotFoundError: If vessel doesn't exist
        VesselUnavailableError: If vessel is busy or too small
    """
    # Lots build on production; import here to keep app loading acyclic
    from apps.lots.models import LotType
    from apps.lots.services.lot_records import create_lot

    batch = _lock_batch(batch_id)

    if batch.status != BatchStatus.BREWING:
        raise InvalidBatchStateError(batch, BatchStatus.BREWING)

    volume = volume if volume is not None else batch.planned_volume
    vessel = get_vessel_gateway().reserve(vessel_id=vessel_id, volume=volume)

    if batch.recipe:
        _deduct_ingredients(batch, volume)

    batch.status = BatchStatus.FERMENTING
    batch.fermentation_started_at = timezone.now()
    batch.save()

    lot = create_lot(
        lot_code=batch.batch_number,
        lot_type=LotType.SINGLE,
        total_volume=volume,
        vessel=vessel,
        contributions=[(batch, volume)],
        actor=actor,
    )

    logger.info(
        "Batch %s fermenting in %s, lot %s created",
        batch.batch_number, vessel.code, lot.lot_code,
    )
    return batch, lot


def _deduct_ingredients(batch: Batch, volume: Decimal) -> None:
    recipe = batch.recipe
    scale = Decimal(volume) / recipe.batch_size
    inventory = get_inventory_gateway()

    for ingredient in recipe.ingredients:
        quantity = (Decimal(str(ingredient['amount'])) * scale).quantize(
            INGREDIENT_PLACES, rounding=ROUND_HALF_UP
        )
        inventory.deduct(
            stock_item=ingredient.get('stock_item') or ingredient['name'],
            quantity=quantity,
            unit=ingredient.get('unit', ''),
            reference=f"Batch {batch.batch_number}",
        )


@transaction.atomic
def record_gravity_reading(
    *,
    batch_id: UUID,
    gravity: Decimal,
    unit: str = GravityUnit.SG,
    temperature: Optional[Decimal] = None,
    reading_type: str = ReadingType.ROUTINE,
    notes: str = '',
    recorded_by: Optional[User] = None,
    lot_id: Optional[UUID] = None,
) -> GravityReading:
    """
    Append a gravity reading to a batch.

    Values in °P or °Bx are converted to SG before storage. The batch's
    recorded gravities are kept in step: every reading updates
    ``current_gravity``, an original reading fills ``original_gravity`` and
    a final reading sets ``final_gravity``. When the batch has exactly one
    active lot the reading is linked to it; an explicit ``lot_id`` must be
    a lot the batch contributed to.

    Raises:
        BatchNotFoundError: If batch doesn't exist
        InvalidGravityReadingError: If the value is not a plausible gravity
            or the lot holds no beer from the batch
    """
    batch = _lock_batch(batch_id)

    if reading_type not in ReadingType.values:
        raise InvalidGravityReadingError(f"Unknown reading type: {reading_type}")

    if Decimal(str(gravity)) < 0:
        raise InvalidGravityReadingError(f"Gravity cannot be negative: {gravity}")

    try:
        sg = to_sg(gravity, unit)
    except ValueError as e:
        raise InvalidGravityReadingError(str(e))

    if not (MIN_SG <= sg <= MAX_SG):
        raise InvalidGravityReadingError(
            f"Gravity {gravity} {unit} (SG {sg}) is outside {MIN_SG}-{MAX_SG}"
        )

    if lot_id is not None:
        if not batch.lot_links.filter(lot_id=lot_id).exists():
            raise InvalidGravityReadingError(
                f"Lot {lot_id} does not hold beer from batch {batch.batch_number}"
            )
    else:
        active_links = list(
            batch.lot_links
            .filter(lot__status='ACTIVE')
            .values_list('lot_id', flat=True)
        )
        if len(active_links) == 1:
            lot_id = active_links[0]

    reading = GravityReading.objects.create(
        batch=batch,
        lot_id=lot_id,
        gravity=sg,
        temperature=temperature,
        reading_type=reading_type,
        notes=notes,
        recorded_by=recorded_by,
    )

    batch.current_gravity = sg
    if reading_type == ReadingType.ORIGINAL and not batch.original_gravity:
        batch.original_gravity = sg
    if reading_type == ReadingType.FINAL:
        batch.final_gravity = sg
    batch.save(update_fields=[
        'current_gravity', 'original_gravity', 'final_gravity', 'updated_at',
    ])

    logger.info("Gravity %s recorded for batch %s", sg, batch.batch_number)
    return reading


def get_batch_by_id(*, batch_id: UUID) -> Batch:
    """
    Get batch by ID.

    Raises:
        BatchNotFoundError: If batch doesn't exist
    """
    try:
        return Batch.objects.select_related('recipe').get(id=batch_id)
    except Batch.DoesNotExist:
        raise BatchNotFoundError(f"Batch with ID {batch_id} not found")


def get_batch_metrics(*, batch_id: UUID) -> dict:
    """OG, current gravity, ABV and attenuation for a batch."""
    batch = get_batch_by_id(batch_id=batch_id)
    return compute_batch_metrics(batch)
