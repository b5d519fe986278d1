"""
Tests for the lot lifecycle: intake, allocation, moves, splits, exits.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from seedman import LotError, lots
from seedman.models import Lot, LotStatus, Movement, MovementKind


pytestmark = pytest.mark.django_db


class TestIntake:
    """Tests for lots.intake()."""

    def test_intake_into_slot(self, seed_type, s1, manager):
        """Lot goes straight to LOCADO and the slot takes its mass."""
        result = lots.intake(seed_type, 'L-001', 10, Decimal('50'), user=manager, slot=s1)
        lot = result.lot

        s1.refresh_from_db()
        assert lot.status == LotStatus.LOCADO
        assert lot.slot == s1
        assert lot.total_mass == Decimal('500.000')
        assert lot.version == 1
        assert s1.current_load == Decimal('500.000')

        movement = result.movement
        assert movement.kind == MovementKind.ENTRY
        assert movement.destination_slot == s1
        assert movement.source_slot is None
        assert movement.quantity == 10
        assert movement.mass == Decimal('500.000')
        assert lot.movements.count() == 1

    def test_entry_date_defaults_to_local_date(self, settings, seed_type, manager):
        settings.TIME_ZONE = 'Pacific/Kiritimati'

        lot = lots.intake(seed_type, 'L-014', 1, Decimal('10'), user=manager).lot

        assert lot.entry_date == timezone.localdate()
        assert lot.expiration_date == seed_type.expiration_for(timezone.localdate())

    def test_intake_without_slot_waits(self, seed_type, manager):
        result = lots.intake(seed_type, 'L-002', 8, Decimal('25'), user=manager)

        assert result.lot.status == LotStatus.AGUARDANDO_LOCACAO
        assert result.lot.slot is None
        assert result.movement.kind == MovementKind.ENTRY
        assert result.movement.destination_slot is None

    def test_intake_expiration_from_seed_type(self, seed_type, manager):
        entry = date(2026, 3, 1)
        lot = lots.intake(seed_type, 'L-003', 1, Decimal('40'), user=manager, entry_date=entry).lot

        assert lot.expiration_date == entry + timedelta(days=365)

    def test_intake_expiration_before_entry(self, seed_type, manager):
        with pytest.raises(LotError) as exc:
            lots.intake(
                seed_type, 'L-004', 1, Decimal('40'), user=manager,
                entry_date=date(2026, 3, 1), expiration_date=date(2026, 2, 1),
            )

        assert exc.value.code == 'VALIDATION_ERROR'
        assert exc.value.data['field'] == 'expiration_date'

    @pytest.mark.parametrize('quantity', [0, -3, 2.5, True, '10'])
    def test_intake_invalid_quantity(self, seed_type, manager, quantity):
        with pytest.raises(LotError) as exc:
            lots.intake(seed_type, 'L-005', quantity, Decimal('50'), user=manager)

        assert exc.value.code == 'VALIDATION_ERROR'
        assert Lot.objects.count() == 0

    @pytest.mark.parametrize('unit_mass', [Decimal('0'), Decimal('-1'), 'abc', Decimal('5000')])
    def test_intake_invalid_unit_mass(self, seed_type, manager, unit_mass):
        with pytest.raises(LotError) as exc:
            lots.intake(seed_type, 'L-006', 1, unit_mass, user=manager)

        assert exc.value.code == 'VALIDATION_ERROR'
        assert exc.value.data['field'] == 'unit_mass'

    def test_intake_requires_code(self, seed_type, manager):
        with pytest.raises(LotError) as exc:
            lots.intake(seed_type, '  ', 1, Decimal('50'), user=manager)

        assert exc.value.code == 'VALIDATION_ERROR'

    def test_intake_inactive_seed_type(self, seed_type, manager):
        seed_type.is_active = False
        seed_type.save()

        with pytest.raises(LotError) as exc:
            lots.intake(seed_type, 'L-007', 1, Decimal('50'), user=manager)

        assert exc.value.code == 'VALIDATION_ERROR'
        assert exc.value.data['field'] == 'seed_type'

    def test_intake_into_occupied_slot(self, stored_lot, seed_type, s1, manager):
        with pytest.raises(LotError) as exc:
            lots.intake(seed_type, 'L-008', 1, Decimal('10'), user=manager, slot=s1)

        assert exc.value.code == 'SLOT_OCCUPIED'
        assert Lot.objects.count() == 1

    def test_intake_capacity_exceeded(self, seed_type, s1, manager):
        """13 × 50 kg = 650 kg does not fit a 600 kg slot."""
        with pytest.raises(LotError) as exc:
            lots.intake(seed_type, 'L-009', 13, Decimal('50'), user=manager, slot=s1)

        s1.refresh_from_db()
        assert exc.value.code == 'CAPACITY_EXCEEDED'
        assert exc.value.available == Decimal('600.000')
        assert exc.value.requested == Decimal('650.000')
        assert s1.current_load == Decimal('0')
        assert Lot.objects.count() == 0
        assert Movement.objects.count() == 0

    def test_intake_near_capacity_warns(self, seed_type, s1, manager):
        result = lots.intake(seed_type, 'L-010', 12, Decimal('50'), user=manager, slot=s1)

        assert result.lot.status == LotStatus.LOCADO
        assert len(result.warnings) == 1
        assert s1.code in result.warnings[0]

    def test_intake_auto_allocate(self, seed_type, s1, s2, manager):
        """The tighter slot wins: 200 kg fills s1 (600) better than s2 (1000)."""
        result = lots.intake(seed_type, 'L-011', 4, Decimal('50'), user=manager, auto_allocate=True)

        assert result.lot.status == LotStatus.LOCADO
        assert result.lot.slot == s1
        assert result.allocation is not None
        assert result.allocation.slot == s1
        assert result.movement.destination_slot == s1

    def test_intake_auto_allocate_without_slots(self, seed_type, manager):
        result = lots.intake(seed_type, 'L-012', 4, Decimal('50'), user=manager, auto_allocate=True)

        assert result.lot.status == LotStatus.AGUARDANDO_LOCACAO
        assert result.allocation is None
        assert result.warnings

    def test_intake_auto_allocate_from_settings(self, settings, seed_type, s2, manager):
        settings.SEEDMAN = {'AUTO_ALLOCATE': True}

        result = lots.intake(seed_type, 'L-013', 2, Decimal('50'), user=manager)

        assert result.lot.slot == s2


class TestAssignSlot:
    """Tests for lots.assign_slot()."""

    def test_assign_waiting_lot(self, waiting_lot, s2, operator):
        result = lots.assign_slot(waiting_lot, s2, user=operator)

        s2.refresh_from_db()
        assert result.lot.status == LotStatus.LOCADO
        assert result.lot.slot == s2
        assert result.lot.version == 2
        assert s2.current_load == Decimal('200.000')
        assert result.movement.kind == MovementKind.TRANSFER
        assert result.movement.source_slot is None
        assert result.movement.destination_slot == s2
        assert waiting_lot.movements.count() == 2

    def test_assign_stored_lot_fails(self, stored_lot, s2, operator):
        with pytest.raises(LotError) as exc:
            lots.assign_slot(stored_lot, s2, user=operator)

        assert exc.value.code == 'INVALID_TRANSITION'

    def test_assign_capacity_exceeded(self, waiting_lot, make_slot, operator):
        small = make_slot(2, 'B', 1, 1, Decimal('150'))

        with pytest.raises(LotError) as exc:
            lots.assign_slot(waiting_lot, small, user=operator)

        waiting_lot.refresh_from_db()
        assert exc.value.code == 'CAPACITY_EXCEEDED'
        assert waiting_lot.status == LotStatus.AGUARDANDO_LOCACAO
        assert waiting_lot.version == 1


class TestMove:
    """Tests for lots.move()."""

    def test_move_updates_both_slots(self, stored_lot, s1, s2, operator):
        result = lots.move(stored_lot, s2, user=operator)

        s1.refresh_from_db()
        s2.refresh_from_db()
        assert result.lot.slot == s2
        assert result.lot.status == LotStatus.LOCADO
        assert s1.current_load == Decimal('0')
        assert s2.current_load == Decimal('500.000')
        assert result.movement.source_slot == s1
        assert result.movement.destination_slot == s2
        assert result.movement.mass == Decimal('500.000')

    def test_move_to_same_slot(self, stored_lot, s1, operator):
        with pytest.raises(LotError) as exc:
            lots.move(stored_lot, s1, user=operator)

        assert exc.value.code == 'VALIDATION_ERROR'

    def test_move_to_occupied_slot(self, stored_lot, seed_type, s2, manager, operator):
        lots.intake(seed_type, 'L-020', 1, Decimal('10'), user=manager, slot=s2)

        with pytest.raises(LotError) as exc:
            lots.move(stored_lot, s2, user=operator)

        assert exc.value.code == 'SLOT_OCCUPIED'

    def test_consecutive_moves_are_not_duplicates(self, stored_lot, s2, s3, operator):
        """Different destinations are different movements."""
        lots.move(stored_lot, s2, user=operator)
        lots.move(stored_lot, s3, user=operator)

        stored_lot.refresh_from_db()
        assert stored_lot.slot == s3
        assert stored_lot.version == 3
        assert stored_lot.movements.filter(kind=MovementKind.TRANSFER).count() == 2

    def test_move_with_stale_version(self, stored_lot, s2, s3, operator):
        version = stored_lot.version
        lots.move(stored_lot, s2, user=operator, expected_version=version)

        with pytest.raises(LotError) as exc:
            lots.move(stored_lot, s3, user=operator, expected_version=version)

        s3.refresh_from_db()
        assert exc.value.code == 'STALE_VERSION'
        assert exc.value.retryable
        assert s3.current_load == Decimal('0')

    def test_move_waiting_lot_fails(self, waiting_lot, s2, operator):
        with pytest.raises(LotError) as exc:
            lots.move(waiting_lot, s2, user=operator)

        assert exc.value.code == 'INVALID_TRANSITION'


class TestPartialMove:
    """Tests for lots.partial_move()."""

    def test_split_lot(self, stored_lot, s1, s2, operator):
        """Moving 4 of 10 units leaves 6 behind and creates a new lot."""
        result = lots.partial_move(stored_lot, 4, s2, user=operator)
        original, fragment = result.lot, result.fragment

        s1.refresh_from_db()
        s2.refresh_from_db()
        assert original.quantity == 6
        assert original.total_mass == Decimal('300.000')
        assert original.slot == s1
        assert fragment.quantity == 4
        assert fragment.total_mass == Decimal('200.000')
        assert fragment.slot == s2
        assert fragment.status == LotStatus.LOCADO
        assert fragment.origin == original
        assert fragment.code == original.code
        assert s1.current_load == Decimal('300.000')
        assert s2.current_load == Decimal('200.000')

        assert result.movement.lot == fragment
        assert result.movement.metadata['origin_lot_id'] == original.pk
        assert original.movements.count() == 1

    def test_split_conserves_mass(self, stored_lot, s1, s2, operator):
        result = lots.partial_move(stored_lot, 3, s2, user=operator)

        s1.refresh_from_db()
        s2.refresh_from_db()
        assert result.lot.total_mass + result.fragment.total_mass == Decimal('500.000')
        assert s1.current_load + s2.current_load == Decimal('500.000')

    @pytest.mark.parametrize('quantity', [10, 11])
    def test_split_whole_lot_rejected(self, stored_lot, s2, operator, quantity):
        with pytest.raises(LotError) as exc:
            lots.partial_move(stored_lot, quantity, s2, user=operator)

        assert exc.value.code == 'INSUFFICIENT_QUANTITY'
        assert exc.value.data['available'] == 10

    def test_split_into_small_slot(self, stored_lot, make_slot, operator):
        small = make_slot(2, 'B', 1, 1, Decimal('100'))

        with pytest.raises(LotError) as exc:
            lots.partial_move(stored_lot, 4, small, user=operator)

        stored_lot.refresh_from_db()
        assert exc.value.code == 'CAPACITY_EXCEEDED'
        assert stored_lot.quantity == 10
        assert Lot.objects.count() == 1


class TestPartialExit:
    """Tests for lots.partial_exit()."""

    def test_partial_exit_decrements(self, stored_lot, s1, manager):
        result = lots.partial_exit(stored_lot, 4, user=manager)

        s1.refresh_from_db()
        assert result.lot.quantity == 6
        assert result.lot.total_mass == Decimal('300.000')
        assert result.lot.status == LotStatus.LOCADO
        assert s1.current_load == Decimal('300.000')
        assert result.movement.kind == MovementKind.EXIT
        assert result.movement.source_slot == s1
        assert result.movement.mass == Decimal('200.000')

    def test_partial_exit_to_zero_releases_slot(self, stored_lot, s1, manager):
        result = lots.partial_exit(stored_lot, 10, user=manager)

        s1.refresh_from_db()
        assert result.lot.status == LotStatus.REMOVIDO
        assert result.lot.slot is None
        assert s1.current_load == Decimal('0')
        assert result.movement.mass == Decimal('500.000')

    def test_partial_exit_to_zero_with_terminal_status(self, stored_lot, manager):
        result = lots.partial_exit(stored_lot, 10, user=manager, terminal_status=LotStatus.RETIRADO)

        assert result.lot.status == LotStatus.RETIRADO

    def test_partial_exit_invalid_terminal_status(self, stored_lot, manager):
        with pytest.raises(LotError) as exc:
            lots.partial_exit(stored_lot, 1, user=manager, terminal_status=LotStatus.LOCADO)

        assert exc.value.code == 'VALIDATION_ERROR'

    def test_partial_exit_too_much(self, stored_lot, manager):
        with pytest.raises(LotError) as exc:
            lots.partial_exit(stored_lot, 11, user=manager)

        assert exc.value.code == 'INSUFFICIENT_QUANTITY'
        assert exc.value.requested == 11


class TestAddStock:
    """Tests for lots.add_stock()."""

    def test_add_stock_over_capacity(self, stored_lot, s1, manager):
        """500 + 3 × 50 = 650 kg does not fit 600 kg; nothing changes."""
        with pytest.raises(LotError) as exc:
            lots.add_stock(stored_lot, 3, user=manager)

        stored_lot.refresh_from_db()
        s1.refresh_from_db()
        assert exc.value.code == 'CAPACITY_EXCEEDED'
        assert stored_lot.quantity == 10
        assert stored_lot.version == 1
        assert s1.current_load == Decimal('500.000')
        assert stored_lot.movements.count() == 1

    def test_add_stock_within_capacity(self, seed_type, make_slot, manager):
        slot = make_slot(4, 'D', 1, 1, Decimal('700'))
        lot = lots.intake(seed_type, 'L-030', 10, Decimal('50'), user=manager, slot=slot).lot

        result = lots.add_stock(lot, 3, user=manager)

        slot.refresh_from_db()
        assert result.lot.quantity == 13
        assert result.lot.total_mass == Decimal('650.000')
        assert slot.current_load == Decimal('650.000')
        assert result.movement.kind == MovementKind.ADJUSTMENT
        assert result.movement.destination_slot == slot
        assert result.movement.mass == Decimal('150.000')

    def test_add_stock_reweighs_lot(self, stored_lot, s1, manager):
        """New unit mass applies to every unit: 11 × 52 = 572 kg."""
        result = lots.add_stock(stored_lot, 1, user=manager, unit_mass=Decimal('52'))

        s1.refresh_from_db()
        assert result.lot.unit_mass == Decimal('52.000')
        assert result.lot.total_mass == Decimal('572.000')
        assert result.movement.mass == Decimal('72.000')
        assert s1.current_load == Decimal('572.000')

    def test_add_stock_cannot_lower_mass(self, stored_lot, manager):
        with pytest.raises(LotError) as exc:
            lots.add_stock(stored_lot, 1, user=manager, unit_mass=Decimal('10'))

        assert exc.value.code == 'VALIDATION_ERROR'


class TestRemove:
    """Tests for lots.remove()."""

    def test_remove_releases_slot(self, stored_lot, s1, manager):
        result = lots.remove(stored_lot, user=manager)

        s1.refresh_from_db()
        assert result.lot.status == LotStatus.REMOVIDO
        assert result.lot.slot is None
        assert result.lot.quantity == 10
        assert s1.current_load == Decimal('0')
        assert result.movement.kind == MovementKind.EXIT
        assert result.movement.source_slot == s1

    def test_remove_with_pending_withdrawal(self, stored_lot, manager):
        lots.request_withdrawal(stored_lot, user=manager)

        with pytest.raises(LotError) as exc:
            lots.remove(stored_lot, user=manager)

        assert exc.value.code == 'INVALID_TRANSITION'

    def test_terminal_lot_is_frozen(self, stored_lot, s2, manager, operator):
        lots.remove(stored_lot, user=manager)

        with pytest.raises(LotError) as exc:
            lots.move(stored_lot, s2, user=operator)
        assert exc.value.code == 'INVALID_TRANSITION'

        with pytest.raises(LotError) as exc:
            lots.add_stock(stored_lot, 1, user=manager)
        assert exc.value.code == 'INVALID_TRANSITION'

    def test_removed_slot_takes_new_lot(self, stored_lot, seed_type, s1, manager):
        lots.remove(stored_lot, user=manager)

        result = lots.intake(seed_type, 'L-040', 2, Decimal('50'), user=manager, slot=s1)

        assert result.lot.slot == s1
