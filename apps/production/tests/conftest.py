import pytest
from decimal import Decimal
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.accounts.models import User
from apps.production.models import Recipe, Vessel, VesselStatus
from apps.production.services import create_batch, start_brewing


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def user(db):
    """Create and return a test user."""
    return User.objects.create_user(
        email='brewer@example.com',
        password='TestPass123!',
        display_name='Head Brewer',
    )


@pytest.fixture
def authenticated_client(api_client, user):
    """Return an authenticated API client using JWT."""
    refresh = RefreshToken.for_user(user)
    api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return api_client


@pytest.fixture
def recipe(db):
    """Create and return a pale ale recipe written for 100 L."""
    return Recipe.objects.create(
        name='House Pale Ale',
        style='American Pale Ale',
        target_og=Decimal('1.0500'),
        target_fg=Decimal('1.0100'),
        batch_size=Decimal('100.00'),
        yeast_strain='US-05',
        ingredients=[
            {'stock_item': 'MALT-PALE', 'name': 'Pale malt', 'amount': 20, 'unit': 'kg'},
            {'stock_item': 'HOP-CASCADE', 'name': 'Cascade', 'amount': 0.4, 'unit': 'kg'},
        ],
    )


@pytest.fixture
def fermenter(db):
    """Create and return an empty 1200 L fermenter."""
    return Vessel.objects.create(
        code='FV-01',
        name='Fermenter 1',
        capacity=Decimal('1200.00'),
    )


@pytest.fixture
def small_fermenter(db):
    """Create and return an empty 100 L fermenter."""
    return Vessel.objects.create(
        code='FV-09',
        name='Pilot fermenter',
        capacity=Decimal('100.00'),
    )


@pytest.fixture
def busy_fermenter(db):
    """Create and return a fermenter that is already in use."""
    return Vessel.objects.create(
        code='FV-02',
        name='Fermenter 2',
        capacity=Decimal('1200.00'),
        status=VesselStatus.IN_USE,
    )


@pytest.fixture
def batch(user, recipe):
    """Create and return a planned 1000 L batch."""
    return create_batch(
        planned_volume=Decimal('1000.00'),
        created_by=user,
        recipe_id=recipe.id,
    )


@pytest.fixture
def brewing_batch(batch):
    """Planned batch moved to brewing."""
    return start_brewing(batch_id=batch.id, original_gravity=Decimal('1.0520'))
