"""
Production app services layer.

Services contain business logic and orchestrate operations across models.
All state-changing operations use transactions and row locks.
"""

from .exceptions import (
    ProductionServiceError,
    BatchNotFoundError,
    RecipeNotFoundError,
    VesselNotFoundError,
    VesselUnavailableError,
    InvalidBatchStateError,
    InvalidGravityReadingError,
)

from .batch_management import (
    create_batch,
    start_brewing,
    start_fermentation,
    record_gravity_reading,
    get_batch_by_id,
    get_batch_metrics,
)

from .gravity_metrics import (
    resolve_original_gravity,
    resolve_current_gravity,
    calculate_abv,
    calculate_attenuation,
)

from .collaborators import (
    LoggingInventoryGateway,
    DatabaseVesselGateway,
    DatabaseRecipeCatalog,
    get_inventory_gateway,
    get_vessel_gateway,
    get_recipe_catalog,
)


__all__ = [
    # Exceptions
    'ProductionServiceError',
    'BatchNotFoundError',
    'RecipeNotFoundError',
    'VesselNotFoundError',
    'VesselUnavailableError',
    'InvalidBatchStateError',
    'InvalidGravityReadingError',

    # Batch Management
    'create_batch',
    'start_brewing',
    'start_fermentation',
    'record_gravity_reading',
    'get_batch_by_id',
    'get_batch_metrics',

    # Gravity Metrics
    'resolve_original_gravity',
    'resolve_current_gravity',
    'calculate_abv',
    'calculate_attenuation',

    # Collaborators
    'LoggingInventoryGateway',
    'DatabaseVesselGateway',
    'DatabaseRecipeCatalog',
    'get_inventory_gateway',
    'get_vessel_gateway',
    'get_recipe_catalog',
]
