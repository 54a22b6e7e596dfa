"""
Lot lifecycle state machine.

FERMENTATION -> CONDITIONING -> BRIGHT -> PACKAGING -> COMPLETED

Lots only step forward one phase at a time. Completion is only possible
from PACKAGING. Lots absorbed into a blend are frozen: the blend lot is
the one to move.
"""

import logging
from typing import Optional
from uuid import UUID

from django.db import transaction
from django.utils import timezone

from apps.accounts.models import User
from apps.lots.models import (
    CompletionReason,
    Lot,
    LotPhase,
    LotStatus,
    TimelineEvent,
    phase_index,
)
from apps.production.services.collaborators import get_vessel_gateway

from .exceptions import BlendMembershipConflictError, InvalidTransitionError
from .lot_records import (
    add_timeline_entry,
    check_version,
    lock_lot,
    save_lot_with_version,
    sync_batch_statuses,
)

logger = logging.getLogger(__name__)


def _ensure_transitionable(lot: Lot) -> None:
    if lot.superseded_by_id:
        blend = lot.superseded_by
        raise BlendMembershipConflictError(
            f"Lot {lot.lot_code} is part of blend {blend.lot_code}; "
            f"transition the blend lot instead",
            lot_id=str(lot.id),
            blend_lot_id=str(blend.id),
            source_batch_ids=[str(batch_id) for batch_id in blend.batch_ids],
        )

    if lot.status == LotStatus.COMPLETED:
        raise InvalidTransitionError(
            f"Lot {lot.lot_code} is completed",
            lot_id=str(lot.id),
            current_phase=lot.phase,
        )


@transaction.atomic
def advance_phase(
    *,
    lot_id: UUID,
    target_phase: str,
    actor: Optional[User] = None,
    expected_version: Optional[int] = None,
) -> Lot:
    """
    Move a lot to the next phase.

    Requesting the phase the lot is already in is a no-op. Requesting
    COMPLETED is the same as calling ``complete``.

    Args:
        lot_id: UUID of the lot
        target_phase: LotPhase value
        actor: User performing the transition
        expected_version: Version the caller last saw, if known

    Returns:
        The lot, transitioned or unchanged

    Raises:
        LotNotFoundError: If lot doesn't exist
        BlendMembershipConflictError: If the lot was absorbed into a blend
        InvalidTransitionError: If the lot is completed or the target is
            not the immediate successor
        ConcurrentModificationError: If the lot changed underneath the caller
    """
    lot = lock_lot(lot_id)

    if target_phase not in LotPhase.values:
        raise InvalidTransitionError(
            f"Unknown phase: {target_phase}",
            lot_id=str(lot.id),
            target_phase=target_phase,
        )

    _ensure_transitionable(lot)
    check_version(lot, expected_version)

    if target_phase == lot.phase:
        return lot

    if target_phase == LotPhase.COMPLETED:
        return _complete(lot, actor=actor)

    if phase_index(target_phase) != phase_index(lot.phase) + 1:
        raise InvalidTransitionError(
            f"Lot {lot.lot_code} cannot move from {lot.phase} to {target_phase}",
            lot_id=str(lot.id),
            current_phase=lot.phase,
            target_phase=target_phase,
        )

    return transition(lot, target_phase, actor=actor)


def transition(lot: Lot, target_phase: str, *, actor: Optional[User] = None) -> Lot:
    """Apply an already validated phase change to a locked lot."""
    previous_phase = lot.phase
    lot.phase = target_phase
    save_lot_with_version(lot, ['phase'])

    add_timeline_entry(
        lot,
        TimelineEvent.PHASE_CHANGED,
        actor=actor,
        previous_phase=previous_phase,
        new_phase=target_phase,
    )
    sync_batch_statuses(lot)

    logger.info("Lot %s: %s -> %s", lot.lot_code, previous_phase, target_phase)
    return lot


@transaction.atomic
def complete(
    *,
    lot_id: UUID,
    actor: Optional[User] = None,
    expected_version: Optional[int] = None,
) -> Lot:
    """
    Mark a fully packaged lot as completed and free its vessel.

    Raises:
        LotNotFoundError: If lot doesn't exist
        BlendMembershipConflictError: If the lot was absorbed into a blend
        InvalidTransitionError: If the lot is not in PACKAGING
    """
    lot = lock_lot(lot_id)
    _ensure_transitionable(lot)
    check_version(lot, expected_version)
    return _complete(lot, actor=actor)


def _complete(lot: Lot, *, actor: Optional[User] = None) -> Lot:
    if lot.phase != LotPhase.PACKAGING:
        raise InvalidTransitionError(
            f"Lot {lot.lot_code} can only be completed from PACKAGING, not {lot.phase}",
            lot_id=str(lot.id),
            current_phase=lot.phase,
            target_phase=LotPhase.COMPLETED,
        )

    previous_phase = lot.phase
    lot.phase = LotPhase.COMPLETED
    lot.status = LotStatus.COMPLETED
    lot.completion_reason = CompletionReason.PACKAGED
    lot.completed_at = timezone.now()
    save_lot_with_version(lot, ['phase', 'status', 'completion_reason', 'completed_at'])

    get_vessel_gateway().release(lot.vessel)

    add_timeline_entry(
        lot,
        TimelineEvent.COMPLETED,
        actor=actor,
        previous_phase=previous_phase,
        new_phase=LotPhase.COMPLETED,
        data={'reason': CompletionReason.PACKAGED},
    )
    sync_batch_statuses(lot)

    logger.info("Lot %s completed", lot.lot_code)
    return lot


def close_source_lot(
    lot: Lot,
    *,
    reason: str,
    actor: Optional[User] = None,
    superseded_by: Optional[Lot] = None,
    data: Optional[dict] = None,
) -> Lot:
    """
    Retire a lot whose beer moved into other lots (split or blend).

    The lot keeps its last phase for the record; only its status changes.
    """
    now = timezone.now()
    lot.status = LotStatus.COMPLETED
    lot.completion_reason = reason
    lot.completed_at = now
    fields = ['status', 'completion_reason', 'completed_at']

    if reason == CompletionReason.SPLIT:
        lot.split_at = now
        fields.append('split_at')
        event = TimelineEvent.SPLIT
    else:
        lot.superseded_by = superseded_by
        lot.blended_at = now
        fields += ['superseded_by', 'blended_at']
        event = TimelineEvent.SUPERSEDED

    save_lot_with_version(lot, fields)
    add_timeline_entry(
        lot,
        event,
        actor=actor,
        previous_phase=lot.phase,
        new_phase=lot.phase,
        data=data,
    )
    return lot
