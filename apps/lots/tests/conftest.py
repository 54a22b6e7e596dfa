import itertools
import pytest
from decimal import Decimal
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.accounts.models import User
from apps.lots.models import PHASE_ORDER, LotPhase, phase_index
from apps.lots.services import LotEngine
from apps.production.models import Recipe, Vessel
from apps.production.services import create_batch, start_brewing, start_fermentation


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
    """Pale ale fermented with US-05."""
    return Recipe.objects.create(
        name='House Pale Ale',
        style='American Pale Ale',
        target_og=Decimal('1.0500'),
        target_fg=Decimal('1.0100'),
        batch_size=Decimal('100.00'),
        yeast_strain='US-05',
    )


@pytest.fixture
def recipe_ipa(db):
    """Different style, same yeast as the pale ale."""
    return Recipe.objects.create(
        name='West Coast IPA',
        style='American IPA',
        target_og=Decimal('1.0650'),
        target_fg=Decimal('1.0120'),
        batch_size=Decimal('100.00'),
        yeast_strain='us-05',
    )


@pytest.fixture
def recipe_lager(db):
    """Lager yeast; cannot be blended with ales."""
    return Recipe.objects.create(
        name='Pilsner',
        style='Czech Pale Lager',
        target_og=Decimal('1.0480'),
        target_fg=Decimal('1.0120'),
        batch_size=Decimal('100.00'),
        yeast_strain='W-34/70',
    )


@pytest.fixture
def make_vessel(db):
    """Factory for empty vessels with sequential codes."""
    counter = itertools.count(1)

    def _make_vessel(capacity=Decimal('2000.00'), **kwargs):
        number = next(counter)
        return Vessel.objects.create(
            code=kwargs.pop('code', f'FV-{number:02d}'),
            name=kwargs.pop('name', f'Fermenter {number}'),
            capacity=capacity,
            **kwargs
        )

    return _make_vessel


@pytest.fixture
def make_lot(user, recipe, make_vessel):
    """Factory: brew a batch and ferment it into a single lot."""
    default_recipe = recipe

    def _make_lot(volume=Decimal('1000.00'), recipe=default_recipe, vessel=None):
        vessel = vessel or make_vessel()
        batch = create_batch(
            planned_volume=volume,
            created_by=user,
            recipe_id=recipe.id if recipe else None,
        )
        start_brewing(batch_id=batch.id)
        _, lot = start_fermentation(batch_id=batch.id, vessel_id=vessel.id, actor=user)
        return lot

    return _make_lot


@pytest.fixture
def advance_to(user):
    """Step a lot forward one phase at a time until it reaches ``phase``."""

    def _advance_to(lot, phase):
        lot.refresh_from_db()
        while phase_index(lot.phase) < phase_index(phase):
            next_phase = PHASE_ORDER[phase_index(lot.phase) + 1]
            lot = LotEngine.advance_lot_phase(lot_id=lot.id, target_phase=next_phase, actor=user)
        return lot

    return _advance_to


@pytest.fixture
def lot(make_lot):
    """1000 L single lot in FERMENTATION."""
    return make_lot()


@pytest.fixture
def bright_lot(make_lot, advance_to):
    """800 L single lot ready for packaging."""
    return advance_to(make_lot(volume=Decimal('800.00')), LotPhase.BRIGHT)
