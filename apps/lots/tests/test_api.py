import pytest
from decimal import Decimal
from uuid import uuid4
from django.urls import reverse
from rest_framework import status

from apps.lots.models import Lot, LotBatch, LotPhase, LotStatus, LotType, PackageType, PackagingRun
from apps.lots.services import LotEngine


def _batch_id(lot):
    return str(LotBatch.objects.get(lot=lot).batch_id)


# =============================================================================
# Lot Read Tests
# =============================================================================

@pytest.mark.django_db
class TestLotRead:
    """Tests for GET /api/lots/ and per-lot views."""

    def test_list_lots(self, authenticated_client, lot):
        response = authenticated_client.get(reverse('lots:lot-list'))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['count'] == 1
        assert response.data['results'][0]['lot_code'] == lot.lot_code

    def test_filter_by_phase(self, authenticated_client, make_lot, advance_to):
        make_lot(volume=Decimal('500.00'))
        bright = advance_to(make_lot(volume=Decimal('300.00')), LotPhase.BRIGHT)

        response = authenticated_client.get(reverse('lots:lot-list'), {'phase': LotPhase.BRIGHT})

        assert response.data['count'] == 1
        assert response.data['results'][0]['id'] == str(bright.id)

    def test_retrieve_lot(self, authenticated_client, lot):
        response = authenticated_client.get(reverse('lots:lot-detail', args=[lot.id]))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['phase'] == LotPhase.FERMENTATION
        assert response.data['total_volume'] == '1000.00'
        assert response.data['batches'][0]['volume_contribution'] == '1000.00'

    def test_lot_status(self, authenticated_client, bright_lot):
        LotEngine.record_packaging_run(
            lot_id=bright_lot.id,
            package_type=PackageType.KEG_50,
            quantity=6,
        )

        response = authenticated_client.get(reverse('lots:lot-status', args=[bright_lot.id]))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['phase'] == LotPhase.PACKAGING
        assert response.data['packaged_volume'] == '300.00'
        assert response.data['remaining_volume'] == '500.00'
        assert response.data['progress_percent'] == '37.50'

    def test_lot_status_unknown(self, authenticated_client):
        response = authenticated_client.get(reverse('lots:lot-status', args=[uuid4()]))

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data['code'] == 'lot_not_found'

    def test_timeline(self, authenticated_client, lot):
        LotEngine.advance_lot_phase(lot_id=lot.id, target_phase=LotPhase.CONDITIONING)

        response = authenticated_client.get(reverse('lots:lot-timeline', args=[lot.id]))

        assert response.status_code == status.HTTP_200_OK
        assert [entry['event'] for entry in response.data] == ['created', 'phase_changed']

    def test_unauthenticated(self, api_client, lot):
        response = api_client.get(reverse('lots:lot-list'))

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


# =============================================================================
# Lifecycle Tests
# =============================================================================

@pytest.mark.django_db
class TestLotLifecycleEndpoints:
    """Tests for POST /api/lots/{id}/advance_phase/ and /complete/"""

    def test_advance_phase(self, authenticated_client, lot):
        response = authenticated_client.post(
            reverse('lots:lot-advance-phase', args=[lot.id]),
            {'target_phase': LotPhase.CONDITIONING, 'expected_version': 1},
            format='json',
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['phase'] == LotPhase.CONDITIONING
        assert response.data['version'] == 2

    def test_skip_phase_conflict(self, authenticated_client, lot):
        response = authenticated_client.post(
            reverse('lots:lot-advance-phase', args=[lot.id]),
            {'target_phase': LotPhase.PACKAGING},
            format='json',
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['code'] == 'invalid_transition'
        assert response.data['current_phase'] == LotPhase.FERMENTATION

    def test_stale_version_conflict(self, authenticated_client, lot):
        LotEngine.advance_lot_phase(lot_id=lot.id, target_phase=LotPhase.CONDITIONING)

        response = authenticated_client.post(
            reverse('lots:lot-advance-phase', args=[lot.id]),
            {'target_phase': LotPhase.BRIGHT, 'expected_version': 1},
            format='json',
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['code'] == 'concurrent_modification'

    def test_unknown_phase_rejected(self, authenticated_client, lot):
        response = authenticated_client.post(
            reverse('lots:lot-advance-phase', args=[lot.id]),
            {'target_phase': 'DRINKING'},
            format='json',
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_advance_unknown_lot(self, authenticated_client):
        response = authenticated_client.post(
            reverse('lots:lot-advance-phase', args=[uuid4()]),
            {'target_phase': LotPhase.CONDITIONING},
            format='json',
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_complete(self, authenticated_client, lot, advance_to):
        advance_to(lot, LotPhase.PACKAGING)

        response = authenticated_client.post(
            reverse('lots:lot-complete', args=[lot.id]),
            {},
            format='json',
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['status'] == LotStatus.COMPLETED
        assert response.data['completion_reason'] == 'packaged'

    def test_complete_too_early(self, authenticated_client, lot):
        response = authenticated_client.post(
            reverse('lots:lot-complete', args=[lot.id]),
            {},
            format='json',
        )

        assert response.status_code == status.HTTP_409_CONFLICT


# =============================================================================
# Packaging Tests
# =============================================================================

@pytest.mark.django_db
class TestPackagingEndpoints:
    """Tests for /api/lots/{id}/packaging_runs/"""

    def test_record_run(self, authenticated_client, bright_lot, user):
        response = authenticated_client.post(
            reverse('lots:lot-packaging-runs', args=[bright_lot.id]),
            {'package_type': PackageType.KEG_50, 'quantity': 6},
            format='json',
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['run']['volume_total'] == '300.00'
        assert response.data['run']['performed_by']['email'] == user.email
        assert response.data['summary']['remaining_volume'] == '500.00'

    def test_overshoot_needs_confirmation(self, authenticated_client, bright_lot):
        url = reverse('lots:lot-packaging-runs', args=[bright_lot.id])

        response = authenticated_client.post(
            url,
            {'package_type': PackageType.CUSTOM, 'quantity': 1, 'volume': '900.00'},
            format='json',
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['code'] == 'volume_exceeded'
        assert response.data['requires_confirmation'] is True
        assert PackagingRun.objects.count() == 0

        response = authenticated_client.post(
            url,
            {
                'package_type': PackageType.CUSTOM,
                'quantity': 1,
                'volume': '900.00',
                'confirm_overshoot': True,
            },
            format='json',
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['summary']['remaining_volume'] == '0.00'

    def test_custom_run_without_volume(self, authenticated_client, bright_lot):
        response = authenticated_client.post(
            reverse('lots:lot-packaging-runs', args=[bright_lot.id]),
            {'package_type': PackageType.CUSTOM, 'quantity': 1},
            format='json',
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'invalid_packaging_run'

    def test_lot_not_ready(self, authenticated_client, lot):
        response = authenticated_client.post(
            reverse('lots:lot-packaging-runs', args=[lot.id]),
            {'package_type': PackageType.KEG_50, 'quantity': 1},
            format='json',
        )

        assert response.status_code == status.HTTP_409_CONFLICT

    def test_idempotent_retry(self, authenticated_client, bright_lot):
        url = reverse('lots:lot-packaging-runs', args=[bright_lot.id])
        payload = {'package_type': PackageType.KEG_50, 'quantity': 2, 'idempotency_key': 'retry-1'}

        first = authenticated_client.post(url, payload, format='json')
        second = authenticated_client.post(url, payload, format='json')

        assert second.status_code == status.HTTP_201_CREATED
        assert second.data['run']['id'] == first.data['run']['id']
        assert PackagingRun.objects.count() == 1

    def test_list_runs(self, authenticated_client, bright_lot):
        LotEngine.record_packaging_run(
            lot_id=bright_lot.id,
            package_type=PackageType.KEG_50,
            quantity=1,
        )

        response = authenticated_client.get(reverse('lots:lot-packaging-runs', args=[bright_lot.id]))

        assert response.status_code == status.HTTP_200_OK
        assert len(response.data) == 1

    def test_list_runs_includes_unlinked(self, authenticated_client, bright_lot):
        PackagingRun.objects.create(
            lot=None,
            lot_code=bright_lot.lot_code,
            package_type=PackageType.CUSTOM,
            quantity=1,
            volume_total=Decimal('120.00'),
        )
        PackagingRun.objects.create(
            lot=None,
            lot_code='2020-9999',
            package_type=PackageType.CUSTOM,
            quantity=1,
            volume_total=Decimal('40.00'),
        )

        runs = authenticated_client.get(
            reverse('lots:lot-packaging-runs', args=[bright_lot.id])
        ).data
        lot_status = authenticated_client.get(
            reverse('lots:lot-status', args=[bright_lot.id])
        ).data

        assert [run['volume_total'] for run in runs] == ['120.00']
        assert lot_status['packaged_volume'] == '120.00'


# =============================================================================
# Split / Blend Tests
# =============================================================================

@pytest.mark.django_db
class TestSplitBlendEndpoints:
    """Tests for POST /api/lots/split/ and /api/lots/blend/"""

    def test_split(self, authenticated_client, lot, make_vessel):
        response = authenticated_client.post(
            reverse('lots:lot-split'),
            {
                'batch_id': _batch_id(lot),
                'targets': [
                    {'vessel_id': str(make_vessel().id), 'percentage': '60'},
                    {'vessel_id': str(make_vessel().id), 'percentage': '40'},
                ],
            },
            format='json',
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert [child['total_volume'] for child in response.data['children']] == ['600.00', '400.00']
        assert response.data['unassigned_volume'] == '0.00'
        assert Lot.objects.filter(lot_type=LotType.SPLIT).count() == 2

    def test_split_target_needs_amount(self, authenticated_client, lot, make_vessel):
        response = authenticated_client.post(
            reverse('lots:lot-split'),
            {
                'batch_id': _batch_id(lot),
                'targets': [
                    {'vessel_id': str(make_vessel().id), 'percentage': '60'},
                    {'vessel_id': str(make_vessel().id)},
                ],
            },
            format='json',
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_split_over_allocated(self, authenticated_client, lot, make_vessel):
        response = authenticated_client.post(
            reverse('lots:lot-split'),
            {
                'batch_id': _batch_id(lot),
                'targets': [
                    {'vessel_id': str(make_vessel().id), 'volume': '700'},
                    {'vessel_id': str(make_vessel().id), 'volume': '400'},
                ],
            },
            format='json',
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'split_volume_mismatch'

    def test_split_unknown_batch(self, authenticated_client, make_vessel):
        response = authenticated_client.post(
            reverse('lots:lot-split'),
            {
                'batch_id': str(uuid4()),
                'targets': [
                    {'vessel_id': str(make_vessel().id), 'percentage': '50'},
                    {'vessel_id': str(make_vessel().id), 'percentage': '50'},
                ],
            },
            format='json',
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_split_busy_vessel(self, authenticated_client, lot, make_vessel):
        response = authenticated_client.post(
            reverse('lots:lot-split'),
            {
                'batch_id': _batch_id(lot),
                'targets': [
                    {'vessel_id': str(make_vessel().id), 'percentage': '50'},
                    {'vessel_id': str(make_vessel(status='in_use').id), 'percentage': '50'},
                ],
            },
            format='json',
        )

        assert response.status_code == status.HTTP_409_CONFLICT

    def test_blend(self, authenticated_client, make_lot, make_vessel, advance_to):
        first = make_lot(volume=Decimal('500.00'))
        second = advance_to(make_lot(volume=Decimal('300.00')), LotPhase.CONDITIONING)

        response = authenticated_client.post(
            reverse('lots:lot-blend'),
            {
                'batch_ids': [_batch_id(first), _batch_id(second)],
                'vessel_id': str(make_vessel().id),
            },
            format='json',
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['lot']['total_volume'] == '800.00'
        assert response.data['lot']['batch_count'] == 2
        assert response.data['lot']['phase'] == LotPhase.FERMENTATION
        assert response.data['warnings'] == []

    def test_blend_needs_two_batches(self, authenticated_client, lot, make_vessel):
        response = authenticated_client.post(
            reverse('lots:lot-blend'),
            {'batch_ids': [_batch_id(lot)], 'vessel_id': str(make_vessel().id)},
            format='json',
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_transition_blended_source(self, authenticated_client, make_lot, make_vessel):
        first = make_lot(volume=Decimal('500.00'))
        second = make_lot(volume=Decimal('300.00'))
        authenticated_client.post(
            reverse('lots:lot-blend'),
            {
                'batch_ids': [_batch_id(first), _batch_id(second)],
                'vessel_id': str(make_vessel().id),
            },
            format='json',
        )

        response = authenticated_client.post(
            reverse('lots:lot-advance-phase', args=[first.id]),
            {'target_phase': LotPhase.CONDITIONING},
            format='json',
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['code'] == 'blend_membership_conflict'
        assert 'blend_lot_id' in response.data

    def test_lineage(self, authenticated_client, make_lot, make_vessel):
        first = make_lot(volume=Decimal('500.00'))
        second = make_lot(volume=Decimal('300.00'))
        blend, _ = LotEngine.blend_batches(
            batch_ids=[_batch_id(first), _batch_id(second)],
            vessel_id=make_vessel().id,
        )

        response = authenticated_client.get(reverse('lots:lot-lineage', args=[blend.id]))

        assert response.status_code == status.HTTP_200_OK
        assert len(response.data['sources']) == 2
        assert response.data['parent'] is None
