"""
Unit tests for gravity conversion and derived metrics.

No database needed except where a batch is built.
"""

import pytest
from datetime import timedelta
from decimal import Decimal
from django.utils import timezone

from apps.production.models import BatchStatus, GravityReading, ReadingType
from apps.production.units import (
    GravityUnit,
    brix_to_sg,
    from_sg,
    plato_to_sg,
    sg_to_brix,
    sg_to_plato,
    to_sg,
)
from apps.production.services.gravity_metrics import (
    calculate_abv,
    calculate_attenuation,
    get_batch_metrics,
    resolve_current_gravity,
    resolve_original_gravity,
)


# =============================================================================
# Unit Conversion Tests
# =============================================================================

class TestGravityConversion:
    """Tests for SG <-> Plato / Brix conversion."""

    def test_sg_to_plato(self):
        assert sg_to_plato(Decimal('1.050')) == Decimal('12.39')

    def test_sg_to_brix(self):
        assert sg_to_brix(Decimal('1.050')) == Decimal('12.39')

    def test_plato_to_sg(self):
        assert plato_to_sg(12) == Decimal('1.0484')

    def test_brix_to_sg_matches_plato(self):
        assert brix_to_sg(12) == plato_to_sg(12)

    def test_water_is_zero_plato(self):
        assert abs(sg_to_plato('1.000')) <= Decimal('0.01')

    def test_round_trip_within_tolerance(self):
        """Converting to Plato and back lands within a point of SG."""
        for sg in ['1.010', '1.035', '1.050', '1.080']:
            back = plato_to_sg(sg_to_plato(sg))
            assert abs(back - Decimal(sg)) <= Decimal('0.0005')

    def test_legacy_zero_marker(self):
        """Values below 0.9 SG are treated as missing."""
        assert sg_to_plato(0) == Decimal('0.00')
        assert sg_to_brix('0.5') == Decimal('0.00')

    def test_to_sg_by_unit(self):
        assert to_sg('1.05') == Decimal('1.0500')
        assert to_sg(12, GravityUnit.PLATO) == Decimal('1.0484')
        assert to_sg(12, GravityUnit.BRIX) == Decimal('1.0484')

    def test_from_sg_by_unit(self):
        assert from_sg('1.05', GravityUnit.SG) == Decimal('1.0500')
        assert from_sg('1.05', GravityUnit.PLATO) == Decimal('12.39')

    def test_unknown_unit(self):
        with pytest.raises(ValueError):
            to_sg(1, 'oechsle')
        with pytest.raises(ValueError):
            from_sg(1, 'oechsle')


# =============================================================================
# Derived Metric Tests
# =============================================================================

class TestDerivedMetrics:
    """Tests for ABV and attenuation."""

    def test_abv(self):
        assert calculate_abv(Decimal('1.050'), Decimal('1.010')) == Decimal('5.25')

    def test_abv_missing_side(self):
        assert calculate_abv(None, Decimal('1.010')) == Decimal('0.00')
        assert calculate_abv(Decimal('1.050'), None) == Decimal('0.00')

    def test_abv_never_negative(self):
        """A reading above OG (e.g. after a sugar addition) clamps at zero."""
        assert calculate_abv(Decimal('1.040'), Decimal('1.050')) == Decimal('0.00')

    def test_attenuation(self):
        assert calculate_attenuation(Decimal('1.050'), Decimal('1.010')) == Decimal('80.00')

    def test_attenuation_of_water(self):
        assert calculate_attenuation(Decimal('1.000'), Decimal('0.998')) == Decimal('0.00')


@pytest.mark.django_db
class TestGravityResolution:
    """Tests for OG / current gravity resolution from reading history."""

    def _reading(self, batch, gravity, reading_type=ReadingType.ROUTINE, minutes=0):
        return GravityReading.objects.create(
            batch=batch,
            gravity=Decimal(gravity),
            reading_type=reading_type,
            recorded_at=timezone.now() - timedelta(days=10) + timedelta(minutes=minutes),
        )

    def test_no_readings_falls_back_to_recorded_og(self, brewing_batch):
        assert resolve_original_gravity(brewing_batch) == Decimal('1.0520')
        assert resolve_current_gravity(brewing_batch) == Decimal('1.0520')

    def test_original_reading_wins(self, brewing_batch):
        self._reading(brewing_batch, '1.0480', minutes=1)
        self._reading(brewing_batch, '1.0500', ReadingType.ORIGINAL, minutes=2)

        assert resolve_original_gravity(brewing_batch) == Decimal('1.0500')

    def test_earliest_reading_when_nothing_recorded(self, batch):
        self._reading(batch, '1.0490', minutes=1)
        self._reading(batch, '1.0300', minutes=2)

        assert resolve_original_gravity(batch) == Decimal('1.0490')

    def test_latest_reading_is_current(self, brewing_batch):
        self._reading(brewing_batch, '1.0300', minutes=1)
        self._reading(brewing_batch, '1.0150', minutes=2)

        assert resolve_current_gravity(brewing_batch) == Decimal('1.0150')

    def test_legacy_zero_readings_ignored(self, brewing_batch):
        self._reading(brewing_batch, '1.0200', minutes=1)
        self._reading(brewing_batch, '0', minutes=2)

        assert resolve_current_gravity(brewing_batch) == Decimal('1.0200')

    def test_completed_batch_reports_final_gravity(self, brewing_batch):
        self._reading(brewing_batch, '1.0200', minutes=1)
        brewing_batch.status = BatchStatus.COMPLETED
        brewing_batch.final_gravity = Decimal('1.0110')
        brewing_batch.save()

        assert resolve_current_gravity(brewing_batch) == Decimal('1.0110')

    def test_completed_batch_falls_back_to_target(self, brewing_batch):
        brewing_batch.status = BatchStatus.COMPLETED
        brewing_batch.save()

        assert resolve_current_gravity(brewing_batch) == brewing_batch.target_fg

    def test_batch_metrics(self, brewing_batch):
        self._reading(brewing_batch, '1.0500', ReadingType.ORIGINAL, minutes=1)
        self._reading(brewing_batch, '1.0100', minutes=2)

        metrics = get_batch_metrics(brewing_batch)

        assert metrics['batch_number'] == brewing_batch.batch_number
        assert metrics['original_gravity'] == Decimal('1.0500')
        assert metrics['current_gravity'] == Decimal('1.0100')
        assert metrics['original_plato'] == Decimal('12.39')
        assert metrics['abv'] == Decimal('5.25')
        assert metrics['attenuation'] == Decimal('80.00')
        assert metrics['reading_count'] == 2


class TestConversionRoundTrip:
    """Degrees survive a trip through SG within 0.05 across the brewing range."""

    @pytest.mark.parametrize('degrees', [0, 5, 10, 15, 20])
    def test_plato_round_trip(self, degrees):
        assert abs(sg_to_plato(plato_to_sg(degrees)) - degrees) <= Decimal('0.05')

    @pytest.mark.parametrize('degrees', [0, 5, 10, 15, 20])
    def test_brix_round_trip(self, degrees):
        assert abs(sg_to_brix(brix_to_sg(degrees)) - degrees) <= Decimal('0.05')
