"""
Lot Engine
==========

Single entry point for everything that changes or reports on lots.
Views and management commands go through ``LotEngine`` rather than the
individual operator modules.

Example:
    Split a batch 60/40 and package the first child::

        from apps.lots.services import LotEngine

        children, unassigned = LotEngine.split_batch(
            batch_id=batch.id,
            targets=[
                {'vessel_id': fv1.id, 'percentage': Decimal('60')},
                {'vessel_id': fv2.id, 'percentage': Decimal('40')},
            ],
            actor=request.user,
        )
"""

import logging
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple
from uuid import UUID

from apps.accounts.models import User
from apps.lots.models import Lot, PackagingRun
from apps.production.models import GravityReading, ReadingType
from apps.production.services import batch_management
from apps.production.services.gravity_metrics import get_batch_metrics
from apps.production.units import GravityUnit

from . import blending, lifecycle, packaging, splitting
from .lot_records import get_lot_by_id
from .reconciliation import volume_summary

logger = logging.getLogger(__name__)


def _lot_ref(lot: Optional[Lot]) -> Optional[dict]:
    if lot is None:
        return None
    return {
        'id': lot.id,
        'lot_code': lot.lot_code,
        'lot_type': lot.lot_type,
        'phase': lot.phase,
        'status': lot.status,
        'total_volume': lot.total_volume,
    }


class LotEngine:
    """
    Orchestrates the lot lifecycle, split/blend operators, packaging and
    volume reconciliation.

    Every mutating method runs in one database transaction: it either
    succeeds completely or leaves nothing changed.
    """

    @staticmethod
    def advance_lot_phase(
        *,
        lot_id: UUID,
        target_phase: str,
        actor: Optional[User] = None,
        expected_version: Optional[int] = None,
    ) -> Lot:
        return lifecycle.advance_phase(
            lot_id=lot_id,
            target_phase=target_phase,
            actor=actor,
            expected_version=expected_version,
        )

    @staticmethod
    def complete_lot(
        *,
        lot_id: UUID,
        actor: Optional[User] = None,
        expected_version: Optional[int] = None,
    ) -> Lot:
        return lifecycle.complete(lot_id=lot_id, actor=actor, expected_version=expected_version)

    @staticmethod
    def split_batch(
        *,
        batch_id: UUID,
        targets: Sequence[dict],
        volume: Optional[Decimal] = None,
        actor: Optional[User] = None,
    ) -> Tuple[List[Lot], Decimal]:
        return splitting.split_batch(
            batch_id=batch_id,
            targets=targets,
            volume=volume,
            actor=actor,
        )

    @staticmethod
    def blend_batches(
        *,
        batch_ids: Sequence[UUID],
        vessel_id: UUID,
        actor: Optional[User] = None,
    ) -> Tuple[Lot, List[str]]:
        return blending.blend_batches(batch_ids=batch_ids, vessel_id=vessel_id, actor=actor)

    @staticmethod
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
        return packaging.record_packaging_run(
            lot_id=lot_id,
            package_type=package_type,
            quantity=quantity,
            volume=volume,
            actor=actor,
            idempotency_key=idempotency_key,
            confirm_overshoot=confirm_overshoot,
            notes=notes,
        )

    @staticmethod
    def record_gravity_reading(
        *,
        batch_id: UUID,
        gravity: Decimal,
        unit: str = GravityUnit.SG,
        temperature: Optional[Decimal] = None,
        notes: str = '',
        reading_type: str = ReadingType.ROUTINE,
        actor: Optional[User] = None,
        lot_id: Optional[UUID] = None,
    ) -> Tuple[GravityReading, dict]:
        """Record a reading and return it with the batch's refreshed metrics."""
        reading = batch_management.record_gravity_reading(
            batch_id=batch_id,
            gravity=gravity,
            unit=unit,
            temperature=temperature,
            reading_type=reading_type,
            notes=notes,
            recorded_by=actor,
            lot_id=lot_id,
        )
        return reading, get_batch_metrics(reading.batch)

    @staticmethod
    def get_lot_status(*, lot_id: UUID) -> dict:
        """
        Current state of a lot with its volume reconciliation.

        Returns:
            Dict with identity, phase, status, version, vessel, contributing
            batches and total / packaged / remaining volume and progress

        Raises:
            LotNotFoundError: If lot doesn't exist
        """
        lot = get_lot_by_id(lot_id)
        links = lot.batch_links.select_related('batch').order_by('created_at')

        status = {
            'id': lot.id,
            'lot_code': lot.lot_code,
            'lot_type': lot.lot_type,
            'phase': lot.phase,
            'status': lot.status,
            'version': lot.version,
            'is_blend_result': lot.is_blend_result,
            'batch_count': lot.batch_count,
            'completion_reason': lot.completion_reason or None,
            'vessel': lot.vessel.code if lot.vessel else None,
            'superseded_by': lot.superseded_by.lot_code if lot.superseded_by else None,
            'batches': [
                {
                    'batch_id': link.batch_id,
                    'batch_number': link.batch.batch_number,
                    'volume_contribution': link.volume_contribution,
                }
                for link in links
            ],
        }
        status.update(volume_summary(lot))
        return status

    @staticmethod
    def get_lot_lineage(*, lot_id: UUID) -> dict:
        """
        Where a lot's beer came from and where it went.

        Returns:
            Dict with the lot, its split parent, split children, the blend
            that superseded it and the lots it was blended from

        Raises:
            LotNotFoundError: If lot doesn't exist
        """
        lot = get_lot_by_id(lot_id)
        return {
            'lot': _lot_ref(lot),
            'parent': _lot_ref(lot.parent_lot),
            'children': [_lot_ref(child) for child in lot.child_lots.order_by('lot_code')],
            'superseded_by': _lot_ref(lot.superseded_by),
            'sources': [_lot_ref(source) for source in lot.source_lots.order_by('lot_code')],
        }
