"""
Gravity unit conversion.

Gravity is stored as specific gravity (SG) everywhere. Plato and Brix only
exist at the edges: readings entered in °P / °Bx are converted on the way
in, and API responses may convert on the way out.

All functions accept anything ``Decimal()`` understands (Decimal, int, str,
float) and return ``Decimal``: SG quantized to 4 places, °P / °Bx to 2.
"""

from decimal import Decimal, ROUND_HALF_UP

from django.db import models


SG_PLACES = Decimal('0.0001')
DEGREE_PLACES = Decimal('0.01')

# Below this SG the polynomials are meaningless (legacy rows used 0 as a marker)
MIN_VALID_SG = 0.9


class GravityUnit(models.TextChoices):
    SG = 'sg', 'Specific gravity'
    PLATO = 'plato', 'Degrees Plato'
    BRIX = 'brix', 'Degrees Brix'


def _to_float(value) -> float:
    return float(Decimal(str(value)))


def _quantize(value: float, places: Decimal) -> Decimal:
    return Decimal(str(value)).quantize(places, rounding=ROUND_HALF_UP)


def sg_to_plato(sg) -> Decimal:
    """Convert specific gravity to degrees Plato (cubic fit)."""
    sg = _to_float(sg)
    if sg < MIN_VALID_SG:
        return Decimal('0.00')
    plato = -616.868 + 1111.14 * sg - 630.272 * sg ** 2 + 135.997 * sg ** 3
    return _quantize(plato, DEGREE_PLACES)


def sg_to_brix(sg) -> Decimal:
    """Convert specific gravity to degrees Brix."""
    sg = _to_float(sg)
    if sg < MIN_VALID_SG:
        return Decimal('0.00')
    brix = ((182.4601 * sg - 775.6821) * sg + 1262.7794) * sg - 669.5622
    return _quantize(brix, DEGREE_PLACES)


def plato_to_sg(plato) -> Decimal:
    """Convert degrees Plato to specific gravity."""
    plato = _to_float(plato)
    sg = 1 + plato / (258.6 - (plato / 258.2) * 227.1)
    return _quantize(sg, SG_PLACES)


def brix_to_sg(brix) -> Decimal:
    """Convert degrees Brix to specific gravity.

    Brix and Plato differ by less than the precision of a refractometer,
    so the same approximation is used.
    """
    brix = _to_float(brix)
    sg = 1 + brix / (258.6 - (brix / 258.2) * 227.1)
    return _quantize(sg, SG_PLACES)


def to_sg(value, unit=GravityUnit.SG) -> Decimal:
    """Normalize a gravity value given in ``unit`` to SG."""
    if unit == GravityUnit.PLATO:
        return plato_to_sg(value)
    if unit == GravityUnit.BRIX:
        return brix_to_sg(value)
    if unit == GravityUnit.SG:
        return _quantize(_to_float(value), SG_PLACES)
    raise ValueError(f"Unknown gravity unit: {unit}")


def from_sg(sg, unit=GravityUnit.SG) -> Decimal:
    """Express a stored SG value in ``unit``."""
    if unit == GravityUnit.PLATO:
        return sg_to_plato(sg)
    if unit == GravityUnit.BRIX:
        return sg_to_brix(sg)
    if unit == GravityUnit.SG:
        return _quantize(_to_float(sg), SG_PLACES)
    raise ValueError(f"Unknown gravity unit: {unit}")
