"""
Packaging run recording.

Draws beer off a lot into kegs, bottles or cans. Runs are append-only;
the lot's remaining volume is always derived from them.
"""

import logging
from decimal import Decimal
from typing import Optional, Tuple
from uuid import UUID

from django.conf import settings
from django.db import IntegrityError, transaction

from apps.accounts.models import User
from apps.lots.models import (
    PACKAGE_SIZES,
    LotPhase,
    LotStatus,
    PackageType,
    PackagingRun,
    TimelineEvent,
)

from .exceptions import (
    IdempotencyKeyReuseError,
    InvalidPackagingRunError,
    InvalidTransitionError,
    LotCompletedError,
    VolumeExceededError,
)
from .lifecycle import transition
from .lot_records import add_timeline_entry, get_lot_by_id, lock_lot
from .reconciliation import volume_summary

logger = logging.getLogger(__name__)


TWO_PLACES = Decimal('0.01')


def resolve_run_volume(package_type: str, quantity: int, volume: Optional[Decimal] = None) -> Decimal:
    """
    Litres a run draws: the explicit ``volume`` if given, otherwise
    ``quantity`` units of the package size.

    Raises:
        InvalidPackagingRunError: If the package type is unknown, the
            quantity is not positive or a CUSTOM run has no volume
    """
    if package_type not in PackageType.values:
        raise InvalidPackagingRunError(
            f"Unknown package type: {package_type}",
            package_type=package_type,
        )
    if quantity is None or quantity < 1:
        raise InvalidPackagingRunError(
            "Quantity must be at least 1",
            quantity=quantity,
        )

    if volume is not None:
        volume = Decimal(volume).quantize(TWO_PLACES)
        if volume <= 0:
            raise InvalidPackagingRunError("Volume must be positive", volume_total=volume)
        return volume

    if package_type == PackageType.CUSTOM:
        raise InvalidPackagingRunError(
            "CUSTOM packaging runs need an explicit volume",
            package_type=package_type,
        )
    return (PACKAGE_SIZES[package_type] * quantity).quantize(TWO_PLACES)


def _replay(idempotency_key: str, lot_id: UUID):
    existing = PackagingRun.objects.filter(idempotency_key=idempotency_key).first()
    if existing is None:
        return None

    if str(existing.lot_id) != str(lot_id):
        raise IdempotencyKeyReuseError(
            f"Idempotency key {idempotency_key} was already used for lot {existing.lot_code}",
            idempotency_key=idempotency_key,
            original_lot_id=str(existing.lot_id),
        )
    return existing


@transaction.atomic
def record_packaging_run(
    *,
    lot_id: UUID,
    package_type: str,
    quantity: int,
    volume: Optional[Decimal] = None,
    actor: Optional[User] = None,
    idempotency_key: Optional[str] = None,
    confirm_overshoot: bool = False,
    notes: str = '',
) -> Tuple[PackagingRun, dict]:
    """
    Record a packaging run against a lot.

    A BRIGHT lot moves to PACKAGING with its first run. Drawing more than
    the lot has left is refused with ``VolumeExceededError`` unless the
    caller confirms the overshoot; a confirmed overshoot is recorded as
    is and the lot reports zero remaining.

    Args:
        lot_id: UUID of the lot
        package_type: PackageType value
        quantity: Number of units filled
        volume: Litres drawn, overrides quantity x package size
        actor: User performing the run
        idempotency_key: Client key; replays return the original run
        confirm_overshoot: Accept a run larger than the remaining volume
        notes: Free text

    Returns:
        Tuple of (PackagingRun, volume summary of the lot)

    Raises:
        LotNotFoundError: If lot doesn't exist
        LotCompletedError: If the lot is already completed
        InvalidTransitionError: If the lot is not yet BRIGHT
        InvalidPackagingRunError: If the run's volume cannot be determined
        VolumeExceededError: If the run exceeds the remaining volume
        IdempotencyKeyReuseError: If the key belongs to another lot's run
    """
    if idempotency_key:
        existing = _replay(idempotency_key, lot_id)
        if existing is not None:
            return existing, volume_summary(get_lot_by_id(lot_id))

    lot = lock_lot(lot_id)

    if lot.status == LotStatus.COMPLETED:
        raise LotCompletedError(
            f"Lot {lot.lot_code} is completed",
            lot_id=str(lot.id),
        )
    if lot.phase not in (LotPhase.BRIGHT, LotPhase.PACKAGING):
        raise InvalidTransitionError(
            f"Lot {lot.lot_code} is in {lot.phase}; only BRIGHT or PACKAGING lots can be packaged",
            lot_id=str(lot.id),
            current_phase=lot.phase,
            target_phase=LotPhase.PACKAGING,
        )

    run_volume = resolve_run_volume(package_type, quantity, volume)

    remaining = volume_summary(lot)['remaining_volume']
    tolerance = settings.LOT_ENGINE['VOLUME_TOLERANCE']
    overshoot = run_volume > remaining + tolerance
    if overshoot and not confirm_overshoot:
        raise VolumeExceededError(
            f"Run of {run_volume} L exceeds the {remaining} L left in lot {lot.lot_code}",
            remaining_volume=remaining,
            requested_volume=run_volume,
            requires_confirmation=True,
        )

    if lot.phase == LotPhase.BRIGHT:
        transition(lot, LotPhase.PACKAGING, actor=actor)

    try:
        with transaction.atomic():
            run = PackagingRun.objects.create(
                lot=lot,
                lot_code=lot.lot_code,
                package_type=package_type,
                quantity=quantity,
                volume_total=run_volume,
                performed_by=actor,
                notes=notes,
                idempotency_key=idempotency_key or None,
            )
    except IntegrityError:
        # Lost a race with a retry carrying the same key
        existing = _replay(idempotency_key, lot_id) if idempotency_key else None
        if existing is None:
            raise
        return existing, volume_summary(lot)

    add_timeline_entry(
        lot,
        TimelineEvent.PACKAGED,
        actor=actor,
        previous_phase=lot.phase,
        new_phase=lot.phase,
        data={
            'run_id': str(run.id),
            'package_type': package_type,
            'quantity': quantity,
            'volume': run_volume,
            'overshoot': overshoot,
        },
    )

    summary = volume_summary(lot)
    if overshoot:
        logger.warning(
            "Lot %s over-packaged: run of %s L with %s L remaining (confirmed)",
            lot.lot_code, run_volume, remaining,
        )
    logger.info(
        "Lot %s packaged %s x %s (%s L), %s L remaining",
        lot.lot_code, quantity, package_type, run_volume, summary['remaining_volume'],
    )
    return run, summary
