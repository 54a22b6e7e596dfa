import pytest
from decimal import Decimal
from io import StringIO
from django.core.management import call_command

from apps.lots.models import PackageType, PackagingRun


def _legacy_run(lot_code, volume='100.00'):
    return PackagingRun.objects.create(
        lot=None,
        lot_code=lot_code,
        package_type=PackageType.CUSTOM,
        quantity=1,
        volume_total=Decimal(volume),
    )


# =============================================================================
# backfill_packaging_lots Tests
# =============================================================================

@pytest.mark.django_db
class TestBackfillPackagingLots:
    """Tests for the backfill_packaging_lots management command."""

    def test_links_runs_by_lot_code(self, lot):
        run = _legacy_run(lot.lot_code)
        out = StringIO()

        call_command('backfill_packaging_lots', stdout=out)

        run.refresh_from_db()
        assert run.lot_id == lot.id
        assert 'Linked 1 packaging run(s)' in out.getvalue()

    def test_dry_run_changes_nothing(self, lot):
        run = _legacy_run(lot.lot_code)
        out = StringIO()

        call_command('backfill_packaging_lots', '--dry-run', stdout=out)

        run.refresh_from_db()
        assert run.lot_id is None
        assert 'dry-run' in out.getvalue()

    def test_unmatched_runs_left_alone(self, lot):
        orphan = _legacy_run('1999-0042')
        _legacy_run(lot.lot_code)
        out = StringIO()

        call_command('backfill_packaging_lots', stdout=out)

        orphan.refresh_from_db()
        assert orphan.lot_id is None
        assert '1 run(s) have no matching lot' in out.getvalue()

    def test_nothing_to_do(self, db):
        out = StringIO()

        call_command('backfill_packaging_lots', stdout=out)

        assert 'No unlinked packaging runs' in out.getvalue()
