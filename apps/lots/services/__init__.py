"""
Lots app services layer.

Services contain business logic and orchestrate operations across models.
All state-changing operations use transactions, row locks and the lot
version counter.
"""

from .exceptions import (
    LotEngineError,
    LotNotFoundError,
    InvalidTransitionError,
    BlendMembershipConflictError,
    LotCompletedError,
    ConcurrentModificationError,
    SplitVolumeMismatchError,
    InvalidAllocationError,
    SourceNotActiveError,
    UnsupportedLotOperationError,
    BlendSourceUnavailableError,
    VolumeExceededError,
    InvalidPackagingRunError,
    IdempotencyKeyReuseError,
)

from .lifecycle import (
    advance_phase,
    complete,
)

from .splitting import (
    split_batch,
    allocate_volumes,
)

from .blending import (
    blend_batches,
    check_compatibility,
)

from .packaging import (
    record_packaging_run,
    resolve_run_volume,
)

from .reconciliation import (
    packaged_volume,
    remaining_volume,
    progress_percent,
    volume_summary,
)

from .lot_records import (
    get_lot_by_id,
    save_lot_with_version,
)

from .engine import LotEngine


__all__ = [
    # Exceptions
    'LotEngineError',
    'LotNotFoundError',
    'InvalidTransitionError',
    'BlendMembershipConflictError',
    'LotCompletedError',
    'ConcurrentModificationError',
    'SplitVolumeMismatchError',
    'InvalidAllocationError',
    'SourceNotActiveError',
    'UnsupportedLotOperationError',
    'BlendSourceUnavailableError',
    'VolumeExceededError',
    'InvalidPackagingRunError',
    'IdempotencyKeyReuseError',

    # Lifecycle
    'advance_phase',
    'complete',

    # Split / Blend
    'split_batch',
    'allocate_volumes',
    'blend_batches',
    'check_compatibility',

    # Packaging
    'record_packaging_run',
    'resolve_run_volume',

    # Reconciliation
    'packaged_volume',
    'remaining_volume',
    'progress_percent',
    'volume_summary',

    # Records
    'get_lot_by_id',
    'save_lot_with_version',

    # Orchestrator
    'LotEngine',
]
