"""
Domain-specific exceptions for the lot engine.

Every error carries a machine-readable ``code`` and a ``details`` dict
with the values a caller needs to react (offending batch, computed vs
requested totals, remaining volume...). Views translate them to HTTP
responses; nothing here knows about HTTP.
"""


class LotEngineError(Exception):
    """Base exception for all lot engine errors."""
    code = 'lot_engine_error'

    def __init__(self, message, **details):
        super().__init__(message)
        self.details = details


class LotNotFoundError(LotEngineError):
    """Raised when a lot does not exist."""
    code = 'lot_not_found'


class InvalidTransitionError(LotEngineError):
    """Raised when a phase change skips, reverses or leaves a completed lot."""
    code = 'invalid_transition'


class BlendMembershipConflictError(LotEngineError):
    """Raised when a lot superseded by a blend is transitioned directly."""
    code = 'blend_membership_conflict'


class LotCompletedError(LotEngineError):
    """Raised when writing to a lot that is already completed."""
    code = 'lot_completed'


class ConcurrentModificationError(LotEngineError):
    """Raised when a lot changed between read and write."""
    code = 'concurrent_modification'


class SplitVolumeMismatchError(LotEngineError):
    """Raised when split allocations don't fit the source volume."""
    code = 'split_volume_mismatch'


class InvalidAllocationError(LotEngineError):
    """Raised when split targets are malformed (too few, duplicates, non-positive)."""
    code = 'invalid_allocation'


class SourceNotActiveError(LotEngineError):
    """Raised when a batch has no active lot to split."""
    code = 'source_not_active'


class UnsupportedLotOperationError(LotEngineError):
    """Raised when splitting a blend or blending a split child."""
    code = 'unsupported_lot_operation'


class BlendSourceUnavailableError(LotEngineError):
    """Raised when a batch cannot contribute to a blend."""
    code = 'blend_source_unavailable'


class VolumeExceededError(LotEngineError):
    """Raised when a packaging run would exceed the lot's remaining volume.

    This is a soft warning: the caller may retry with confirmation.
    """
    code = 'volume_exceeded'


class InvalidPackagingRunError(LotEngineError):
    """Raised when a packaging run has no determinable volume."""
    code = 'invalid_packaging_run'


class IdempotencyKeyReuseError(LotEngineError):
    """Raised when an idempotency key is replayed against a different lot."""
    code = 'idempotency_key_reuse'
