"""
Tests for slots: codes, capacity, occupancy and the slot registry.
"""

import logging
from decimal import Decimal

import pytest
from django.db import IntegrityError, transaction

from seedman import LotError, lots
from seedman.models import Lot, LotStatus, Slot, build_slot_code


pytestmark = pytest.mark.django_db


class TestSlotModel:

    def test_code_from_coordinates(self, make_slot):
        slot = make_slot(2, 'c', 3, 4)

        assert slot.side == 'C'
        assert slot.code == 'Q2-LC-F3-A4'
        assert build_slot_code(1, 'a', 1, 1) == 'Q1-LA-F1-A1'

    def test_code_follows_coordinate_change(self, s1):
        s1.level = 2
        s1.save(update_fields=['level'])

        s1.refresh_from_db()
        assert s1.code == 'Q1-LA-F1-A2'

    def test_duplicate_coordinates_rejected(self, s1, make_slot):
        with pytest.raises(IntegrityError), transaction.atomic():
            make_slot(1, 'A', 1, 1)

    def test_capacity_status(self, s1):
        assert s1.capacity_status == 'empty'

        s1.current_load = Decimal('150')
        assert s1.capacity_status == 'low'
        s1.current_load = Decimal('400')
        assert s1.capacity_status == 'medium'
        s1.current_load = Decimal('550')
        assert s1.capacity_status == 'high'
        s1.current_load = Decimal('600')
        assert s1.capacity_status == 'full'
        assert s1.available_capacity == Decimal('0')

    def test_distance(self, s1, s2, s3):
        assert s1.distance_to(s2) == 1
        assert s1.distance_to(s3) == 4

    def test_load_constraint(self, s1):
        with pytest.raises(IntegrityError), transaction.atomic():
            Slot.objects.filter(pk=s1.pk).update(current_load=Decimal('601'))

    def test_one_active_lot_per_slot(self, stored_lot, seed_type, s1):
        with pytest.raises(IntegrityError), transaction.atomic():
            Lot.objects.create(
                seed_type=seed_type,
                code='L-X',
                quantity=1,
                unit_mass=Decimal('1'),
                slot=s1,
                status=LotStatus.LOCADO,
            )

    def test_stored_lot_needs_slot(self, seed_type):
        with pytest.raises(IntegrityError), transaction.atomic():
            Lot.objects.create(
                seed_type=seed_type,
                code='L-Y',
                quantity=1,
                unit_mass=Decimal('1'),
                status=LotStatus.LOCADO,
            )

    def test_recalculate_fixes_drift(self, stored_lot, s1, caplog):
        Slot.objects.filter(pk=s1.pk).update(current_load=Decimal('100'))
        s1.refresh_from_db()

        with caplog.at_level(logging.WARNING, logger='seedman'):
            total = s1.recalculate()

        s1.refresh_from_db()
        assert total == Decimal('500.000')
        assert s1.current_load == Decimal('500.000')
        assert s1.code in caplog.text

    def test_recalculate_ignores_terminal_lots(self, stored_lot, s1, manager):
        lots.remove(stored_lot, user=manager)
        s1.refresh_from_db()

        assert s1.recalculate() == Decimal('0')


class TestSlotRegistry:
    """Tests for the slot methods on lots."""

    def test_check_capacity(self, stored_lot, s1):
        check = lots.check_capacity(s1.pk, Decimal('80'))

        assert check.can_accommodate
        assert check.current_load == Decimal('500.000')
        assert check.available == Decimal('100.000')
        assert check.warnings

    def test_check_capacity_over(self, stored_lot, s1):
        check = lots.check_capacity(s1.pk, Decimal('150'))

        assert not check.can_accommodate
        assert check.utilization_after == Decimal('108.33')
        assert check.warnings == ()

    def test_available_slots(self, stored_lot, s1, s2, s3):
        available = list(lots.available_slots(min_capacity=Decimal('100')))

        assert s1 not in available
        assert available == [s2, s3]

    def test_available_slots_min_capacity(self, s1, s2):
        available = list(lots.available_slots(min_capacity=Decimal('700')))

        assert available == [s2]

    def test_adjacent_slots(self, s1, s2, s3):
        assert lots.adjacent_slots(s1) == [s2]
        assert lots.adjacent_slots(s1, radius=4) == [s2, s3]

    def test_adjacent_available_only(self, seed_type, s1, s2, manager):
        lots.intake(seed_type, 'L-050', 1, Decimal('10'), user=manager, slot=s2)

        assert lots.adjacent_slots(s1, available_only=True) == []

    def test_deactivate_free_slot(self, s2):
        slot = lots.deactivate_slot(s2)

        assert slot.is_active is False
        s2.refresh_from_db()
        assert s2.is_active is False

    def test_deactivate_occupied_slot(self, stored_lot, s1):
        with pytest.raises(LotError) as exc:
            lots.deactivate_slot(s1)

        s1.refresh_from_db()
        assert exc.value.code == 'SLOT_OCCUPIED'
        assert s1.is_active

    def test_inactive_slot_rejects_lots(self, seed_type, s2, manager):
        lots.deactivate_slot(s2)

        with pytest.raises(LotError) as exc:
            lots.intake(seed_type, 'L-051', 1, Decimal('10'), user=manager, slot=s2)

        assert exc.value.code == 'VALIDATION_ERROR'

    def test_reactivate_slot(self, seed_type, s2, manager):
        lots.deactivate_slot(s2)
        lots.reactivate_slot(s2)

        result = lots.intake(seed_type, 'L-052', 1, Decimal('10'), user=manager, slot=s2)
        assert result.lot.slot == s2

    def test_chamber_not_active_rejects_lots(self, seed_type, chamber, s2, manager):
        chamber.status = 'inactive'
        chamber.save()

        with pytest.raises(LotError) as exc:
            lots.intake(seed_type, 'L-053', 1, Decimal('10'), user=manager, slot=s2)

        assert exc.value.code == 'VALIDATION_ERROR'

    def test_get_slot_not_found(self):
        with pytest.raises(LotError) as exc:
            lots.get_slot(999999)

        assert exc.value.code == 'NOT_FOUND'
