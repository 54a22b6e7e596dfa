import pytest
from decimal import Decimal
from uuid import uuid4
from django.urls import reverse
from rest_framework import status

from apps.lots.models import Lot
from apps.production.models import Batch, BatchStatus, GravityReading, VesselStatus
from apps.production.services import create_batch


# =============================================================================
# Recipe / Vessel Tests
# =============================================================================

@pytest.mark.django_db
class TestCatalogEndpoints:
    """Tests for GET /api/production/recipes/ and /vessels/"""

    def test_list_recipes(self, authenticated_client, recipe):
        response = authenticated_client.get(reverse('production:recipe-list'))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['count'] == 1
        assert response.data['results'][0]['name'] == 'House Pale Ale'

    def test_filter_vessels_by_status(self, authenticated_client, fermenter, busy_fermenter):
        response = authenticated_client.get(
            reverse('production:vessel-list'),
            {'status': VesselStatus.AVAILABLE},
        )

        assert response.status_code == status.HTTP_200_OK
        codes = [vessel['code'] for vessel in response.data['results']]
        assert codes == ['FV-01']

    def test_unauthenticated(self, api_client, recipe):
        response = api_client.get(reverse('production:recipe-list'))

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


# =============================================================================
# Batch Tests
# =============================================================================

@pytest.mark.django_db
class TestBatchEndpoints:
    """Tests for /api/production/batches/"""

    def test_create_batch(self, authenticated_client, user, recipe):
        response = authenticated_client.post(
            reverse('production:batch-list'),
            {'recipe_id': str(recipe.id), 'planned_volume': '1000.00'},
            format='json',
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['status'] == BatchStatus.PLANNED
        assert response.data['recipe_name'] == 'House Pale Ale'
        assert response.data['created_by']['email'] == user.email
        assert Batch.objects.count() == 1

    def test_create_batch_unknown_recipe(self, authenticated_client):
        response = authenticated_client.post(
            reverse('production:batch-list'),
            {'recipe_id': str(uuid4()), 'planned_volume': '1000.00'},
            format='json',
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'error' in response.data

    def test_create_batch_invalid_volume(self, authenticated_client):
        response = authenticated_client.post(
            reverse('production:batch-list'),
            {'planned_volume': '0'},
            format='json',
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_list_batches_by_status(self, authenticated_client, brewing_batch, user):
        create_batch(planned_volume=Decimal('200'), created_by=user)

        response = authenticated_client.get(
            reverse('production:batch-list'),
            {'status': BatchStatus.BREWING},
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['count'] == 1
        assert response.data['results'][0]['batch_number'] == brewing_batch.batch_number

    def test_start_brewing(self, authenticated_client, batch):
        response = authenticated_client.post(
            reverse('production:batch-start-brewing', args=[batch.id]),
            {'original_gravity': '1.0500'},
            format='json',
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['status'] == BatchStatus.BREWING

    def test_start_brewing_wrong_state(self, authenticated_client, brewing_batch):
        response = authenticated_client.post(
            reverse('production:batch-start-brewing', args=[brewing_batch.id]),
            {},
            format='json',
        )

        assert response.status_code == status.HTTP_409_CONFLICT

    def test_start_brewing_unknown_batch(self, authenticated_client):
        response = authenticated_client.post(
            reverse('production:batch-start-brewing', args=[uuid4()]),
            {},
            format='json',
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_start_fermentation(self, authenticated_client, brewing_batch, fermenter):
        response = authenticated_client.post(
            reverse('production:batch-start-fermentation', args=[brewing_batch.id]),
            {'vessel_id': str(fermenter.id)},
            format='json',
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['batch']['status'] == BatchStatus.FERMENTING
        assert response.data['lot']['lot_code'] == brewing_batch.batch_number
        assert response.data['lot']['vessel_code'] == 'FV-01'
        assert Lot.objects.count() == 1

    def test_start_fermentation_busy_vessel(self, authenticated_client, brewing_batch, busy_fermenter):
        response = authenticated_client.post(
            reverse('production:batch-start-fermentation', args=[brewing_batch.id]),
            {'vessel_id': str(busy_fermenter.id)},
            format='json',
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert not Lot.objects.exists()

    def test_start_fermentation_unknown_vessel(self, authenticated_client, brewing_batch):
        response = authenticated_client.post(
            reverse('production:batch-start-fermentation', args=[brewing_batch.id]),
            {'vessel_id': str(uuid4())},
            format='json',
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND


# =============================================================================
# Gravity Tests
# =============================================================================

@pytest.mark.django_db
class TestGravityEndpoints:
    """Tests for readings, metrics and gravity conversion."""

    def test_record_reading_returns_metrics(self, authenticated_client, brewing_batch):
        response = authenticated_client.post(
            reverse('production:batch-readings', args=[brewing_batch.id]),
            {'gravity': '1.0100', 'temperature': '18.0'},
            format='json',
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['reading']['gravity'] == '1.0100'
        assert response.data['metrics']['original_gravity'] == '1.0520'
        assert response.data['metrics']['current_gravity'] == '1.0100'
        assert response.data['metrics']['abv'] == '5.51'

    def test_record_reading_in_plato(self, authenticated_client, brewing_batch):
        response = authenticated_client.post(
            reverse('production:batch-readings', args=[brewing_batch.id]),
            {'gravity': '12', 'unit': 'plato'},
            format='json',
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['reading']['gravity'] == '1.0484'

    def test_record_implausible_reading(self, authenticated_client, brewing_batch):
        response = authenticated_client.post(
            reverse('production:batch-readings', args=[brewing_batch.id]),
            {'gravity': '2.5'},
            format='json',
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert not GravityReading.objects.exists()

    def test_record_reading_for_unknown_lot(self, authenticated_client, brewing_batch):
        response = authenticated_client.post(
            reverse('production:batch-readings', args=[brewing_batch.id]),
            {'gravity': '1.0400', 'lot_id': str(uuid4())},
            format='json',
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert not GravityReading.objects.exists()

    def test_record_reading_unknown_batch(self, authenticated_client):
        response = authenticated_client.post(
            reverse('production:batch-readings', args=[uuid4()]),
            {'gravity': '1.0400'},
            format='json',
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_list_readings(self, authenticated_client, brewing_batch):
        for gravity in ['1.0400', '1.0200']:
            authenticated_client.post(
                reverse('production:batch-readings', args=[brewing_batch.id]),
                {'gravity': gravity},
                format='json',
            )

        response = authenticated_client.get(
            reverse('production:batch-readings', args=[brewing_batch.id])
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['count'] == 2

    def test_metrics(self, authenticated_client, brewing_batch):
        response = authenticated_client.get(
            reverse('production:batch-metrics', args=[brewing_batch.id])
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['batch_number'] == brewing_batch.batch_number
        assert response.data['reading_count'] == 0

    def test_metrics_unknown_batch(self, authenticated_client):
        response = authenticated_client.get(
            reverse('production:batch-metrics', args=[uuid4()])
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_convert_gravity(self, authenticated_client):
        response = authenticated_client.get(
            reverse('production:gravity-convert'),
            {'value': '12', 'unit': 'plato'},
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['sg'] == '1.0484'

    def test_convert_gravity_requires_value(self, authenticated_client):
        response = authenticated_client.get(reverse('production:gravity-convert'))

        assert response.status_code == status.HTTP_400_BAD_REQUEST
