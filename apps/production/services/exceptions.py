"""
Domain-specific exceptions for production app.

These exceptions represent business rule violations and should be
caught in views and converted to appropriate HTTP responses.
"""


class ProductionServiceError(Exception):
    """Base exception for all production service errors."""
    pass


class BatchNotFoundError(ProductionServiceError):
    """Raised when a batch does not exist."""
    pass


class RecipeNotFoundError(ProductionServiceError):
    """Raised when a recipe does not exist."""
    pass


class VesselNotFoundError(ProductionServiceError):
    """Raised when a vessel does not exist."""
    pass


class VesselUnavailableError(ProductionServiceError):
    """Raised when a vessel is occupied, dirty, in maintenance or too small."""
    pass


class InvalidBatchStateError(ProductionServiceError):
    """Raised when a batch operation requires a different batch status."""

    def __init__(self, batch, expected):
        self.batch_id = batch.id
        self.current = batch.status
        self.expected = expected
        super().__init__(
            f"Batch {batch.batch_number} is {batch.status}, expected {expected}"
        )


class InvalidGravityReadingError(ProductionServiceError):
    """Raised when a gravity reading is out of range or uses an unknown unit."""
    pass
