"""
Split operator.

Divides a batch's active lot across several vessels. Allocations are
worked out in whole centilitres so children always add up exactly: any
rounding remainder is handed out one centilitre at a time to the first
targets, the same way money is split to the smallest coin.
"""

import logging
import string
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple
from uuid import UUID

from django.conf import settings
from django.db import transaction

from apps.accounts.models import User
from apps.lots.models import CompletionReason, Lot, LotType, TimelineEvent
from apps.production.services.collaborators import get_vessel_gateway

from .exceptions import (
    InvalidAllocationError,
    SourceNotActiveError,
    SplitVolumeMismatchError,
    UnsupportedLotOperationError,
)
from .lifecycle import close_source_lot
from .lot_records import active_lots_for_batch, create_lot, lock_batch
from .reconciliation import packaged_volume, remaining_volume

logger = logging.getLogger(__name__)


CENTILITRES_PER_LITRE = 100


def _centilitres(litres: Decimal) -> int:
    return int(Decimal(litres) * CENTILITRES_PER_LITRE)


def _litres(centilitres: int) -> Decimal:
    return Decimal(centilitres) / Decimal(CENTILITRES_PER_LITRE)


def allocate_volumes(requested: Decimal, targets: Sequence[dict]) -> List[Decimal]:
    """
    Work out the litres each split target receives.

    A target's explicit ``volume`` wins over its ``percentage``. Percentage
    shares are taken of ``requested`` in centilitres:

        1. Floor each share: ``requested_cl * pct // 100``
        2. The percentage group as a whole is owed
           ``requested_cl * sum(pct) // 100``
        3. The shortfall (at most one centilitre per target) goes to the
           first percentage targets

    so 100 % always allocates exactly ``requested``.

    Args:
        requested: Litres being split
        targets: Dicts with ``vessel_id`` and ``volume`` or ``percentage``

    Returns:
        Litres per target, in target order

    Raises:
        InvalidAllocationError: If a target has no positive amount or the
            percentages add up to more than 100
    """
    requested_cl = _centilitres(requested)
    allocations_cl = []
    percentage_slots = []
    percentage_total = Decimal('0')

    for index, target in enumerate(targets):
        volume = target.get('volume')
        percentage = target.get('percentage')

        if volume is not None:
            volume = Decimal(volume)
            if volume <= 0:
                raise InvalidAllocationError(
                    f"Target {index + 1}: volume must be positive",
                    target_index=index,
                )
            allocations_cl.append(_centilitres(volume))
        elif percentage is not None:
            percentage = Decimal(percentage)
            if percentage <= 0:
                raise InvalidAllocationError(
                    f"Target {index + 1}: percentage must be positive",
                    target_index=index,
                )
            percentage_total += percentage
            percentage_slots.append(index)
            allocations_cl.append(int(requested_cl * percentage // 100))
        else:
            raise InvalidAllocationError(
                f"Target {index + 1}: volume or percentage is required",
                target_index=index,
            )

    if percentage_total > 100:
        raise InvalidAllocationError(
            f"Percentages add up to {percentage_total}, more than 100",
            percentage_total=percentage_total,
        )

    if percentage_slots:
        owed_cl = int(requested_cl * percentage_total // 100)
        shortfall = owed_cl - sum(allocations_cl[i] for i in percentage_slots)
        for i in percentage_slots[:shortfall]:
            allocations_cl[i] += 1

        # Safety check
        if percentage_total == 100 and len(percentage_slots) == len(targets):
            if sum(allocations_cl) != requested_cl:
                raise ValueError(
                    f"Split calculation error: {sum(allocations_cl)} != {requested_cl}"
                )

    for index, amount in enumerate(allocations_cl):
        if amount <= 0:
            raise InvalidAllocationError(
                f"Target {index + 1} would receive no beer",
                target_index=index,
            )

    return [_litres(amount) for amount in allocations_cl]


def _validate_targets(targets: Sequence[dict]) -> None:
    if len(targets) < 2:
        raise InvalidAllocationError(
            "A split needs at least two targets",
            target_count=len(targets),
        )

    vessel_ids = [str(target.get('vessel_id')) for target in targets]
    if len(set(vessel_ids)) != len(vessel_ids):
        raise InvalidAllocationError(
            "Each split target must use a different vessel",
            vessel_ids=vessel_ids,
        )


def _find_source_lot(batch) -> Lot:
    active = list(active_lots_for_batch(batch))
    if not active:
        raise SourceNotActiveError(
            f"Batch {batch.batch_number} has no active lot to split",
            batch_id=str(batch.id),
        )

    for lot in active:
        if lot.lot_type == LotType.BLEND:
            raise UnsupportedLotOperationError(
                f"Batch {batch.batch_number} is in blend {lot.lot_code}; blends cannot be split",
                batch_id=str(batch.id),
                lot_id=str(lot.id),
            )
        if lot.lot_type == LotType.SPLIT:
            raise UnsupportedLotOperationError(
                f"Batch {batch.batch_number} is already split ({lot.lot_code})",
                batch_id=str(batch.id),
                lot_id=str(lot.id),
            )

    return active[0]


def _child_code(source_code: str, index: int) -> str:
    return f"{source_code}-{string.ascii_uppercase[index]}"


@transaction.atomic
def split_batch(
    *,
    batch_id: UUID,
    targets: Sequence[dict],
    volume: Optional[Decimal] = None,
    actor: Optional[User] = None,
) -> Tuple[List[Lot], Decimal]:
    """
    Split a batch's active lot into child lots in separate vessels.

    Args:
        batch_id: UUID of the batch whose lot is split
        targets: Two or more dicts with ``vessel_id`` and ``volume`` or
            ``percentage``, in the order child codes are assigned
        volume: Litres to split, defaults to the lot's remaining volume
        actor: User performing the split

    Returns:
        Tuple of (child lots in target order, litres of the lot's remaining
        volume that went to no child)

    Raises:
        BatchNotFoundError: If batch doesn't exist
        InvalidAllocationError: If targets are too few, repeat a vessel
            or carry non-positive amounts
        SourceNotActiveError: If the batch has no active lot
        UnsupportedLotOperationError: If the active lot is a blend or split child
        SplitVolumeMismatchError: If more beer is asked for than the lot holds
        VesselUnavailableError: If a target vessel is busy or too small
    """
    tolerance = settings.LOT_ENGINE['VOLUME_TOLERANCE']

    _validate_targets(targets)
    if len(targets) > len(string.ascii_uppercase):
        raise InvalidAllocationError(
            f"A split supports at most {len(string.ascii_uppercase)} targets",
            target_count=len(targets),
        )

    batch = lock_batch(batch_id)
    source = _find_source_lot(batch)

    available = remaining_volume(source.total_volume, packaged_volume(source))
    requested = Decimal(volume) if volume is not None else available

    if requested <= 0:
        raise InvalidAllocationError(
            f"Nothing to split: requested {requested} L",
            requested_volume=requested,
        )
    if requested > available + tolerance:
        raise SplitVolumeMismatchError(
            f"Lot {source.lot_code} holds {available} L, {requested} L requested",
            requested_volume=requested,
            available_volume=available,
        )

    allocations = allocate_volumes(requested, targets)
    allocated = sum(allocations, Decimal('0'))

    if allocated > requested + tolerance:
        raise SplitVolumeMismatchError(
            f"Allocations add up to {allocated} L, {requested} L requested",
            computed_volume=allocated,
            requested_volume=requested,
        )

    # Beer not allocated to a child, including any part of the lot left out of
    # ``requested``, is reported rather than dropped with the source
    unassigned = max(Decimal('0.00'), available - allocated)

    gateway = get_vessel_gateway()
    children = []
    for index, (target, litres) in enumerate(zip(targets, allocations)):
        already_held = (
            source.vessel_id is not None
            and str(target['vessel_id']) == str(source.vessel_id)
        )
        vessel = gateway.reserve(
            vessel_id=target['vessel_id'],
            volume=litres,
            already_held=already_held,
        )
        child = create_lot(
            lot_code=_child_code(source.lot_code, index),
            lot_type=LotType.SPLIT,
            total_volume=litres,
            vessel=vessel,
            contributions=[(batch, litres)],
            actor=actor,
            phase=source.phase,
            parent_lot=source,
            data={'parent_lot': source.lot_code},
        )
        children.append(child)

    reused_vessel_ids = {child.vessel_id for child in children}
    if source.vessel_id and source.vessel_id not in reused_vessel_ids:
        gateway.release(source.vessel)

    if unassigned > 0:
        logger.warning(
            "Split of %s left %s L unassigned (lot held %s L, requested %s L, allocated %s L)",
            source.lot_code, unassigned, available, requested, allocated,
        )

    close_source_lot(
        source,
        reason=CompletionReason.SPLIT,
        actor=actor,
        data={
            'children': [child.lot_code for child in children],
            'allocations': {child.lot_code: child.total_volume for child in children},
            'available_volume': available,
            'requested_volume': requested,
            'unassigned_volume': unassigned,
        },
    )

    logger.info(
        "Lot %s split into %s",
        source.lot_code, ', '.join(child.lot_code for child in children),
    )
    return children, unassigned
