"""
Blend operator.

Combines the active lots of two or more batches into one blend lot in a
single vessel. The source lots are retired (superseded by the blend) but
kept for lineage and reporting.
"""

import logging
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple
from uuid import UUID

from django.db import transaction
from django.utils import timezone

from apps.accounts.models import User
from apps.lots.models import (
    CompletionReason,
    Lot,
    LotType,
    TimelineEvent,
    phase_index,
)
from apps.production.models import Batch
from apps.production.services.collaborators import get_vessel_gateway

from .exceptions import BlendSourceUnavailableError, UnsupportedLotOperationError
from .lifecycle import close_source_lot
from .lot_records import (
    active_lots_for_batch,
    add_timeline_entry,
    create_lot,
    lock_batch,
    sync_batch_statuses,
)
from .reconciliation import packaged_volume, remaining_volume

logger = logging.getLogger(__name__)


def _next_blend_code(year: int) -> str:
    prefix = f"BLEND-{year}-"
    last = (
        Lot.objects
        .select_for_update()
        .filter(lot_code__startswith=prefix)
        .order_by('-lot_code')
        .first()
    )
    sequence = int(last.lot_code[len(prefix):]) + 1 if last else 1
    return f"{prefix}{sequence:04d}"


def _source_lot(batch: Batch) -> Lot:
    active = list(active_lots_for_batch(batch))

    for lot in active:
        if lot.lot_type == LotType.SPLIT:
            raise UnsupportedLotOperationError(
                f"Batch {batch.batch_number} is split ({lot.lot_code}); split lots cannot be blended",
                batch_id=str(batch.id),
                lot_id=str(lot.id),
            )
        if lot.is_blend_result:
            raise BlendSourceUnavailableError(
                f"Batch {batch.batch_number} is already part of blend {lot.lot_code}",
                batch_id=str(batch.id),
                lot_id=str(lot.id),
            )

    if len(active) != 1:
        raise BlendSourceUnavailableError(
            f"Batch {batch.batch_number} has {len(active)} active lots, expected 1",
            batch_id=str(batch.id),
        )
    return active[0]


def check_compatibility(batches: Sequence[Batch]) -> List[str]:
    """
    Compare the recipes behind the batches being blended.

    Returns:
        Human-readable warnings for differing styles or recipes

    Raises:
        BlendSourceUnavailableError: If the batches were fermented with
            different yeast strains
    """
    recipes = [batch.recipe for batch in batches if batch.recipe]

    strains = {recipe.yeast_strain.strip().lower() for recipe in recipes if recipe.yeast_strain.strip()}
    if len(strains) > 1:
        raise BlendSourceUnavailableError(
            f"Batches use different yeast strains: {', '.join(sorted(strains))}",
            yeast_strains=sorted(strains),
        )

    warnings = []
    styles = {recipe.style for recipe in recipes if recipe.style}
    if len(styles) > 1:
        warnings.append(f"Blending different styles: {', '.join(sorted(styles))}")

    recipe_names = {recipe.name for recipe in recipes}
    if len(recipe_names) > 1:
        warnings.append(f"Blending different recipes: {', '.join(sorted(recipe_names))}")

    if len(recipes) != len(batches):
        warnings.append("Some batches have no recipe; compatibility not fully checked")

    return warnings


@transaction.atomic
def blend_batches(
    *,
    batch_ids: Sequence[UUID],
    vessel_id: UUID,
    actor: Optional[User] = None,
) -> Tuple[Lot, List[str]]:
    """
    Blend the active lots of several batches into one lot.

    The blend holds everything still unpackaged in each source lot and
    starts in the least advanced source phase. Sources are completed with
    ``completion_reason=blended`` and point at the blend.

    Args:
        batch_ids: Two or more distinct batch UUIDs
        vessel_id: UUID of the vessel receiving the blend
        actor: User performing the blend

    Returns:
        Tuple of (blend lot, compatibility warnings)

    Raises:
        BatchNotFoundError: If a batch doesn't exist
        BlendSourceUnavailableError: If fewer than two batches are given,
            a batch has no single active non-blend lot, a source is empty
            or yeast strains differ
        UnsupportedLotOperationError: If a batch's active lots are split children
        VesselUnavailableError: If the vessel is busy or too small
    """
    ordered_ids = list(dict.fromkeys(str(batch_id) for batch_id in batch_ids))
    if len(ordered_ids) < 2:
        raise BlendSourceUnavailableError(
            "A blend needs at least two distinct batches",
            batch_ids=ordered_ids,
        )

    # Lock in a stable order so concurrent blends cannot deadlock
    locked = {batch_id: lock_batch(batch_id) for batch_id in sorted(ordered_ids)}
    batches = [locked[batch_id] for batch_id in ordered_ids]

    sources = [_source_lot(batch) for batch in batches]
    warnings = check_compatibility(batches)

    contributions = []
    for batch, lot in zip(batches, sources):
        volume = remaining_volume(lot.total_volume, packaged_volume(lot))
        if volume <= 0:
            raise BlendSourceUnavailableError(
                f"Lot {lot.lot_code} of batch {batch.batch_number} has nothing left to blend",
                batch_id=str(batch.id),
                lot_id=str(lot.id),
            )
        contributions.append((batch, volume))

    total = sum((volume for _, volume in contributions), Decimal('0.00'))
    phase = min((lot.phase for lot in sources), key=phase_index)

    source_vessel_ids = {str(lot.vessel_id) for lot in sources if lot.vessel_id}
    gateway = get_vessel_gateway()
    vessel = gateway.reserve(
        vessel_id=vessel_id,
        volume=total,
        already_held=str(vessel_id) in source_vessel_ids,
    )

    blend = create_lot(
        lot_code=_next_blend_code(timezone.now().year),
        lot_type=LotType.BLEND,
        total_volume=total,
        vessel=vessel,
        contributions=contributions,
        actor=actor,
        phase=phase,
        is_blend_result=True,
    )
    add_timeline_entry(
        blend,
        TimelineEvent.BLENDED,
        actor=actor,
        new_phase=phase,
        data={
            'sources': {lot.lot_code: volume for lot, (_, volume) in zip(sources, contributions)},
            'warnings': warnings,
        },
    )

    for lot in sources:
        if lot.vessel_id and lot.vessel_id != vessel.id:
            gateway.release(lot.vessel)
        close_source_lot(
            lot,
            reason=CompletionReason.BLENDED,
            actor=actor,
            superseded_by=blend,
            data={'blend_lot': blend.lot_code},
        )

    sync_batch_statuses(blend)

    for warning in warnings:
        logger.warning("Blend %s: %s", blend.lot_code, warning)
    logger.info(
        "Blend %s created from %s (%s L)",
        blend.lot_code, ', '.join(lot.lot_code for lot in sources), total,
    )
    return blend, warnings
