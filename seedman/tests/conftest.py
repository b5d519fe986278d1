"""
Pytest fixtures for Seedman tests.
"""

from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group

from seedman import lots
from seedman.adapters import reset_role_resolver
from seedman.models import Chamber, SeedType, Slot


User = get_user_model()


@pytest.fixture(autouse=True)
def _fresh_role_resolver():
    """Resolver is cached per process; tests may swap it via settings."""
    reset_role_resolver()
    yield
    reset_role_resolver()


@pytest.fixture
def groups(db):
    """Role groups understood by GroupRoleResolver."""
    return {
        name: Group.objects.get_or_create(name=name)[0]
        for name in ('admin', 'operator', 'viewer')
    }


def _user_with_roles(username, groups, *roles):
    user = User.objects.create_user(username=username, password='testpass123')
    for role in roles:
        user.groups.add(groups[role])
    return user


@pytest.fixture
def manager(db, groups):
    """User in the admin role (intake, exits, withdrawal requests)."""
    return _user_with_roles('gestor', groups, 'admin')


@pytest.fixture
def operator(db, groups):
    """User in the operator role (allocation, moves, confirmations)."""
    return _user_with_roles('operador', groups, 'operator')


@pytest.fixture
def other_operator(db, groups):
    return _user_with_roles('operador2', groups, 'operator')


@pytest.fixture
def viewer(db, groups):
    return _user_with_roles('visitante', groups, 'viewer')


@pytest.fixture
def chamber(db):
    """Active chamber at 10 °C / 50 %."""
    return Chamber.objects.create(
        name='Câmara 1',
        target_temperature=Decimal('10'),
        target_humidity=Decimal('50'),
    )


@pytest.fixture
def seed_type(db):
    """Soybean, suited to the default chamber, one year of storage."""
    return SeedType.objects.create(
        name='Soja',
        optimal_temperature=Decimal('10'),
        optimal_humidity=Decimal('52'),
        max_storage_days=365,
    )


@pytest.fixture
def other_seed_type(db):
    """Corn, too warm for the default chamber."""
    return SeedType.objects.create(
        name='Milho',
        optimal_temperature=Decimal('20'),
        optimal_humidity=Decimal('60'),
        max_storage_days=180,
    )


@pytest.fixture
def make_slot(db, chamber):
    """Factory: make_slot(block, side, row, level, max_capacity, chamber)."""
    def make(block=1, side='A', row=1, level=1, max_capacity=Decimal('1000'), chamber=chamber):
        return Slot.objects.create(
            chamber=chamber,
            block=block,
            side=side,
            row=row,
            level=level,
            max_capacity=max_capacity,
        )
    return make


@pytest.fixture
def s1(make_slot):
    """Slot with 600 kg capacity."""
    return make_slot(1, 'A', 1, 1, Decimal('600'))


@pytest.fixture
def s2(make_slot):
    return make_slot(1, 'A', 2, 1, Decimal('1000'))


@pytest.fixture
def s3(make_slot):
    return make_slot(3, 'C', 1, 1, Decimal('1000'))


@pytest.fixture
def stored_lot(seed_type, s1, manager):
    """10 units × 50 kg stored in s1 (500 of 600 kg)."""
    return lots.intake(seed_type, 'L-001', 10, Decimal('50'), user=manager, slot=s1).lot


@pytest.fixture
def waiting_lot(seed_type, manager):
    """8 units × 25 kg waiting for a slot."""
    return lots.intake(seed_type, 'L-002', 8, Decimal('25'), user=manager).lot
