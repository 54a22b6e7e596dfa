"""
Lot persistence helpers.

Every lot write in the engine goes through this module: row locking,
the optimistic version check, audit timeline entries, lot creation and
keeping the contributing batches' status in step with the lot's phase.
"""

from decimal import Decimal
from typing import Iterable, Optional, Sequence, Tuple
from uuid import UUID

from django.db.models import F
from django.utils import timezone

from apps.accounts.models import User
from apps.lots.models import (
    Lot,
    LotBatch,
    LotPhase,
    LotStatus,
    LotTimelineEntry,
    TimelineEvent,
)
from apps.production.models import Batch, BatchStatus, Vessel
from apps.production.services.exceptions import BatchNotFoundError

from .exceptions import ConcurrentModificationError, LotNotFoundError


BATCH_STATUS_ORDER = [
    BatchStatus.PLANNED,
    BatchStatus.BREWING,
    BatchStatus.FERMENTING,
    BatchStatus.CONDITIONING,
    BatchStatus.READY,
    BatchStatus.PACKAGING,
    BatchStatus.COMPLETED,
]

BATCH_STATUS_FOR_PHASE = {
    LotPhase.FERMENTATION: BatchStatus.FERMENTING,
    LotPhase.CONDITIONING: BatchStatus.CONDITIONING,
    LotPhase.BRIGHT: BatchStatus.READY,
    LotPhase.PACKAGING: BatchStatus.PACKAGING,
    LotPhase.COMPLETED: BatchStatus.COMPLETED,
}


def lock_lot(lot_id: UUID) -> Lot:
    """
    Fetch a lot with a row lock for the rest of the transaction.

    Raises:
        LotNotFoundError: If lot doesn't exist
    """
    try:
        return (
            Lot.objects
            .select_for_update()
            .get(id=lot_id)
        )
    except Lot.DoesNotExist:
        raise LotNotFoundError(f"Lot with ID {lot_id} not found", lot_id=str(lot_id))


def get_lot_by_id(lot_id: UUID) -> Lot:
    """
    Get lot by ID without locking.

    Raises:
        LotNotFoundError: If lot doesn't exist
    """
    try:
        return (
            Lot.objects
            .select_related('vessel', 'parent_lot', 'superseded_by')
            .get(id=lot_id)
        )
    except Lot.DoesNotExist:
        raise LotNotFoundError(f"Lot with ID {lot_id} not found", lot_id=str(lot_id))


def check_version(lot: Lot, expected_version: Optional[int]) -> None:
    """Fail fast when the caller edited a stale copy of the lot."""
    if expected_version is not None and expected_version != lot.version:
        raise ConcurrentModificationError(
            f"Lot {lot.lot_code} is at version {lot.version}, not {expected_version}",
            lot_id=str(lot.id),
            expected_version=expected_version,
            current_version=lot.version,
        )


def save_lot_with_version(
    lot: Lot,
    fields: Sequence[str],
    expected_version: Optional[int] = None,
) -> Lot:
    """
    Persist ``fields`` of ``lot`` with a conditional version bump.

    The UPDATE only matches while the row still carries the version this
    copy was read at, so two writers racing past their row locks (or a
    writer on a stale copy) cannot both win.

    Raises:
        ConcurrentModificationError: If the stored version moved on
    """
    check_version(lot, expected_version)

    read_version = lot.version
    now = timezone.now()
    values = {field: getattr(lot, field) for field in fields}
    values['updated_at'] = now

    updated = (
        Lot.objects
        .filter(id=lot.id, version=read_version)
        .update(version=F('version') + 1, **values)
    )
    if updated == 0:
        raise ConcurrentModificationError(
            f"Lot {lot.lot_code} was modified concurrently",
            lot_id=str(lot.id),
            expected_version=read_version,
        )

    lot.version = read_version + 1
    lot.updated_at = now
    return lot


def add_timeline_entry(
    lot: Lot,
    event: str,
    *,
    actor: Optional[User] = None,
    previous_phase: str = '',
    new_phase: str = '',
    data: Optional[dict] = None,
) -> LotTimelineEntry:
    return LotTimelineEntry.objects.create(
        lot=lot,
        event=event,
        previous_phase=previous_phase,
        new_phase=new_phase,
        actor=actor,
        data=data or {},
    )


def create_lot(
    *,
    lot_code: str,
    lot_type: str,
    total_volume: Decimal,
    vessel: Optional[Vessel],
    contributions: Iterable[Tuple[Batch, Decimal]],
    actor: Optional[User] = None,
    phase: str = LotPhase.FERMENTATION,
    parent_lot: Optional[Lot] = None,
    is_blend_result: bool = False,
    data: Optional[dict] = None,
) -> Lot:
    """
    Create an ACTIVE lot with its batch contributions and a creation entry.

    Args:
        lot_code: Unique human-readable code
        lot_type: LotType value
        total_volume: Litres in the lot
        vessel: Vessel already reserved for the lot
        contributions: (batch, litres) pairs, one LotBatch row each
        actor: User responsible
        phase: Starting phase
        parent_lot: Source lot for split children
        is_blend_result: Whether the lot is the result of a blend
        data: Extra payload for the creation timeline entry

    Returns:
        Created Lot instance
    """
    contributions = list(contributions)

    lot = Lot.objects.create(
        lot_code=lot_code,
        lot_type=lot_type,
        phase=phase,
        status=LotStatus.ACTIVE,
        total_volume=total_volume,
        vessel=vessel,
        is_blend_result=is_blend_result,
        batch_count=len(contributions),
        parent_lot=parent_lot,
    )

    LotBatch.objects.bulk_create([
        LotBatch(lot=lot, batch=batch, volume_contribution=volume)
        for batch, volume in contributions
    ])

    payload = {
        'lot_type': lot_type,
        'total_volume': total_volume,
        'vessel': vessel.code if vessel else None,
        'batches': [batch.batch_number for batch, _ in contributions],
    }
    payload.update(data or {})
    add_timeline_entry(lot, TimelineEvent.CREATED, actor=actor, new_phase=phase, data=payload)

    return lot


def sync_batch_statuses(lot: Lot) -> None:
    """
    Move every batch contributing to ``lot`` to the status matching the
    lot's phase.

    Batch status never moves backwards, and a batch is only completed
    once none of its lots is still active.
    """
    target = BATCH_STATUS_FOR_PHASE[lot.phase]
    batch_ids = LotBatch.objects.filter(lot=lot).values_list('batch_id', flat=True)

    for batch in Batch.objects.select_for_update().filter(id__in=list(batch_ids)):
        if target == BatchStatus.COMPLETED:
            still_active = LotBatch.objects.filter(
                batch=batch,
                lot__status=LotStatus.ACTIVE,
            ).exists()
            if still_active:
                continue

        if BATCH_STATUS_ORDER.index(target) <= BATCH_STATUS_ORDER.index(batch.status):
            continue

        batch.status = target
        batch.save(update_fields=['status', 'updated_at'])


def lock_batch(batch_id: UUID) -> Batch:
    """
    Fetch a batch with a row lock.

    Raises:
        BatchNotFoundError: If batch doesn't exist
    """
    try:
        return Batch.objects.select_for_update().get(id=batch_id)
    except Batch.DoesNotExist:
        raise BatchNotFoundError(f"Batch with ID {batch_id} not found")


def active_lots_for_batch(batch: Batch):
    """Locked queryset of the ACTIVE lots holding beer from ``batch``."""
    return (
        Lot.objects
        .select_for_update()
        .filter(batch_links__batch=batch, status=LotStatus.ACTIVE)
        .order_by('created_at')
    )
