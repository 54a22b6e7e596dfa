"""
Gateways to the systems the lot engine consumes but does not own.

Ingredient stock, vessel assignment and recipe data live elsewhere in a
full brewery deployment. The engine only talks to them through the three
small interfaces below. Concrete classes are configured by dotted path in
``settings.LOT_ENGINE`` and loaded with ``import_string``, so a deployment
can swap in its own inventory system without touching the engine.
"""

import logging
from decimal import Decimal
from uuid import UUID

from django.conf import settings
from django.utils.module_loading import import_string

from apps.production.models import Recipe, Vessel, VesselStatus

from .exceptions import (
    RecipeNotFoundError,
    VesselNotFoundError,
    VesselUnavailableError,
)

logger = logging.getLogger(__name__)


UNAVAILABLE_VESSEL_STATUSES = (
    VesselStatus.IN_USE,
    VesselStatus.NEEDS_CIP,
    VesselStatus.MAINTENANCE,
)


class LoggingInventoryGateway:
    """Inventory gateway that records deductions in the log only."""

    def deduct(self, *, stock_item: str, quantity: Decimal, unit: str, reference: str) -> None:
        logger.info(
            "Inventory deduction: %s %s of %s (ref %s)",
            quantity, unit, stock_item, reference,
        )


class DatabaseVesselGateway:
    """Vessel gateway backed by the ``Vessel`` table."""

    def reserve(self, *, vessel_id: UUID, volume: Decimal, already_held: bool = False) -> Vessel:
        """
        Reserve a vessel for ``volume`` litres.

        Args:
            vessel_id: UUID of the vessel
            volume: Litres that will be put in the vessel
            already_held: The vessel already holds the beer being moved
                (a source lot's own tank), so its IN_USE status is expected

        Returns:
            The locked Vessel, now IN_USE

        Raises:
            VesselNotFoundError: If the vessel doesn't exist
            VesselUnavailableError: If the vessel is occupied, dirty,
                in maintenance or smaller than ``volume``
        """
        try:
            vessel = Vessel.objects.select_for_update().get(id=vessel_id)
        except Vessel.DoesNotExist:
            raise VesselNotFoundError(f"Vessel with ID {vessel_id} not found")

        if vessel.status in UNAVAILABLE_VESSEL_STATUSES and not already_held:
            raise VesselUnavailableError(
                f"Vessel {vessel.code} is {vessel.get_status_display().lower()}"
            )

        if volume > vessel.capacity:
            raise VesselUnavailableError(
                f"Vessel {vessel.code} holds {vessel.capacity} L, {volume} L requested"
            )

        vessel.status = VesselStatus.IN_USE
        vessel.save(update_fields=['status', 'updated_at'])
        return vessel

    def release(self, vessel) -> None:
        """Mark a vessel as emptied; it needs cleaning before the next lot."""
        if vessel is None:
            return
        Vessel.objects.filter(id=vessel.id).update(status=VesselStatus.NEEDS_CIP)
        vessel.status = VesselStatus.NEEDS_CIP


class DatabaseRecipeCatalog:
    """Recipe catalog backed by the ``Recipe`` table."""

    def get(self, recipe_id: UUID) -> Recipe:
        try:
            return Recipe.objects.get(id=recipe_id)
        except Recipe.DoesNotExist:
            raise RecipeNotFoundError(f"Recipe with ID {recipe_id} not found")


def _load(setting_name):
    return import_string(settings.LOT_ENGINE[setting_name])()


def get_inventory_gateway():
    return _load('INVENTORY_GATEWAY')


def get_vessel_gateway():
    return _load('VESSEL_GATEWAY')


def get_recipe_catalog():
    return _load('RECIPE_CATALOG')
