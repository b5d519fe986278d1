"""
Lot lifecycle — intake, allocation, moves, splits, exits and removal.

All methods use transaction.atomic() with the lot row locked first and
slot rows locked after it, in primary-key order. Every successful call
appends exactly one movement to the ledger.
"""

import logging

from django.db import transaction
from django.utils import timezone

from seedman.conf import seedman_settings
from seedman.exceptions import LotError
from seedman.fsm import ensure_status, ensure_transition
from seedman.mass import to_mass, total_mass
from seedman.models.enums import TERMINAL_LOT_STATUSES, LotStatus, MovementKind
from seedman.models.lot import Lot
from seedman.models.seed_type import SeedType
from seedman.models.withdrawal import WithdrawalRequest
from seedman.permissions import require_role
from seedman.services.allocation import AllocationAdvisor
from seedman.services.ledger import MovementLedger
from seedman.services.locking import lock_lot, save_lot
from seedman.services.results import LotResult
from seedman.services.slots import SlotRegistry

logger = logging.getLogger('seedman')


def _validate_quantity(quantity, field: str = 'quantity') -> int:
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
        raise LotError(
            'VALIDATION_ERROR',
            'Quantidade deve ser um inteiro positivo',
            field=field,
            requested=quantity,
        )
    return quantity


def _validate_unit_mass(unit_mass):
    try:
        value = to_mass(unit_mass)
    except ValueError:
        raise LotError('VALIDATION_ERROR', 'Massa unitária inválida', field='unit_mass') from None
    if value <= 0 or value > to_mass(seedman_settings.MAX_UNIT_MASS):
        raise LotError(
            'VALIDATION_ERROR',
            'Massa unitária fora do intervalo permitido',
            field='unit_mass',
            requested=value,
        )
    return value


def _resolve_seed_type(seed_type) -> SeedType:
    pk = getattr(seed_type, 'pk', seed_type)
    try:
        resolved = SeedType.objects.get(pk=pk)
    except (SeedType.DoesNotExist, TypeError, ValueError):
        raise LotError('VALIDATION_ERROR', 'Tipo de semente não encontrado', field='seed_type') from None
    if not resolved.is_active:
        raise LotError('VALIDATION_ERROR', 'Tipo de semente inativo', field='seed_type', seed_type_id=pk)
    return resolved


def _ensure_distinct_slot(locked: Lot, destination) -> None:
    if locked.slot_id == getattr(destination, 'pk', destination):
        raise LotError(
            'VALIDATION_ERROR',
            'Lote já está nesta localização',
            lot_id=locked.pk,
            slot_id=locked.slot_id,
        )


class LotLifecycle:
    """State-changing lot lifecycle methods."""

    @classmethod
    def intake(cls, seed_type, code, quantity, unit_mass, user, slot=None,
               expiration_date=None, entry_date=None, notes='',
               auto_allocate=None, chamber=None, batch_id='', **metadata) -> LotResult:
        """
        Register a new lot.

        With a slot the lot goes straight to LOCADO. Without one it
        waits in AGUARDANDO_LOCACAO, unless auto-allocation (argument or
        SEEDMAN['AUTO_ALLOCATE']) finds a free slot first.

        Raises:
            LotError('VALIDATION_ERROR'): Bad quantity, mass, code, seed type or dates
            LotError('SLOT_OCCUPIED'): Slot holds another lot
            LotError('CAPACITY_EXCEEDED'): Lot does not fit the slot
        """
        require_role(user, 'intake')
        quantity = _validate_quantity(quantity)
        unit_mass = _validate_unit_mass(unit_mass)
        code = (code or '').strip()
        if not code:
            raise LotError('VALIDATION_ERROR', 'Código do lote é obrigatório', field='code')
        seed_type = _resolve_seed_type(seed_type)

        entry_date = entry_date or timezone.localdate()
        if expiration_date is None:
            expiration_date = seed_type.expiration_for(entry_date)
        elif expiration_date <= entry_date:
            raise LotError(
                'VALIDATION_ERROR',
                'Data de validade deve ser posterior à entrada',
                field='expiration_date',
            )

        if auto_allocate is None:
            auto_allocate = seedman_settings.AUTO_ALLOCATE
        mass = total_mass(quantity, unit_mass)

        with transaction.atomic():
            lot = Lot(
                seed_type=seed_type,
                code=code,
                quantity=quantity,
                unit_mass=unit_mass,
                entry_date=entry_date,
                expiration_date=expiration_date,
                notes=notes or '',
                created_by=user,
                updated_by=user,
                metadata=metadata,
            )

            target = None
            allocation = None
            warnings = []

            if slot is not None:
                slot_pk = getattr(slot, 'pk', slot)
                target = SlotRegistry.lock_slots(slot_pk)[slot_pk]
                SlotRegistry.ensure_usable(target, mass)
            elif auto_allocate:
                target, allocation = cls._allocate(seed_type, quantity, unit_mass, mass, chamber)
                if target is None:
                    warnings.append('Nenhuma localização disponível; lote aguardando locação')

            if target is not None:
                warnings.extend(SlotRegistry.check_capacity(target, mass).warnings)
                ensure_transition(lot, LotStatus.LOCADO, 'intake')
                lot.status = LotStatus.LOCADO
                lot.slot = target
            else:
                ensure_transition(lot, LotStatus.AGUARDANDO_LOCACAO, 'intake')
                lot.status = LotStatus.AGUARDANDO_LOCACAO
            lot.save()

            if target is not None:
                SlotRegistry.add_load(target, mass)

            movement = MovementLedger.record(
                lot, MovementKind.ENTRY, quantity, mass, user,
                reason='Entrada de lote',
                destination_slot=target,
                notes=notes,
                batch_id=batch_id,
            )
            logger.info(
                "lot.intake",
                extra={
                    "lot_id": lot.pk,
                    "code": code,
                    "qty": quantity,
                    "mass": str(mass),
                    "slot_id": getattr(target, 'pk', None),
                    "status": lot.status,
                },
            )
            return LotResult(
                lot=lot,
                movement=movement,
                allocation=allocation,
                warnings=tuple(warnings),
            )

    @classmethod
    def _allocate(cls, seed_type, quantity, unit_mass, mass, chamber):
        """Lock the best usable suggested slot, or (None, None)."""
        try:
            suggestion = AllocationAdvisor.find_optimal_slot(
                quantity, unit_mass, seed_type=seed_type, chamber=chamber,
            )
        except LotError as e:
            if e.code != 'NO_SLOT_AVAILABLE':
                raise
            return None, None

        candidates = [suggestion.slot] + [s for s, _ in suggestion.alternatives]
        for candidate in candidates:
            locked = SlotRegistry.lock_slots(candidate)[candidate.pk]
            try:
                SlotRegistry.ensure_usable(locked, mass)
            except LotError as e:
                if e.code not in ('SLOT_OCCUPIED', 'CAPACITY_EXCEEDED', 'VALIDATION_ERROR'):
                    raise
                continue
            return locked, suggestion
        return None, None

    @classmethod
    def assign_slot(cls, lot, slot, user, expected_version=None, notes='') -> LotResult:
        """
        Place a waiting lot in a slot.

        Transition: AGUARDANDO_LOCACAO -> LOCADO

        Raises:
            LotError('INVALID_TRANSITION'): Lot is not waiting for a slot
            LotError('SLOT_OCCUPIED'): Slot holds another lot
            LotError('CAPACITY_EXCEEDED'): Lot does not fit the slot
        """
        require_role(user, 'assign_slot')

        with transaction.atomic():
            locked = lock_lot(lot, expected_version)
            ensure_status(locked, LotStatus.AGUARDANDO_LOCACAO, 'assign_slot')
            slot_pk = getattr(slot, 'pk', slot)
            target = SlotRegistry.lock_slots(slot_pk)[slot_pk]

            SlotRegistry.ensure_usable(target, locked.total_mass, lot=locked)
            warnings = SlotRegistry.check_capacity(target, locked.total_mass).warnings
            ensure_transition(locked, LotStatus.LOCADO, 'assign_slot')

            SlotRegistry.add_load(target, locked.total_mass)
            save_lot(locked, user, status=LotStatus.LOCADO, slot=target)

            movement = MovementLedger.record(
                locked, MovementKind.TRANSFER, locked.quantity, locked.total_mass, user,
                reason='Locação de lote',
                destination_slot=target,
                notes=notes,
            )
            logger.info(
                "lot.assigned",
                extra={"lot_id": locked.pk, "slot_id": target.pk, "mass": str(locked.total_mass)},
            )
            return LotResult(lot=locked, movement=movement, warnings=tuple(warnings))

    @classmethod
    def move(cls, lot, slot, user, expected_version=None,
             reason='Transferência de lote', notes='') -> LotResult:
        """
        Move a stored lot to another slot.

        Transition: LOCADO -> LOCADO

        Raises:
            LotError('INVALID_TRANSITION'): Lot is not LOCADO
            LotError('VALIDATION_ERROR'): Destination is the current slot
            LotError('SLOT_OCCUPIED'): Destination holds another lot
            LotError('CAPACITY_EXCEEDED'): Lot does not fit the destination
            LotError('STALE_VERSION'): Lot changed since expected_version
        """
        require_role(user, 'move')

        with transaction.atomic():
            locked = lock_lot(lot, expected_version)
            ensure_status(locked, LotStatus.LOCADO, 'move')
            _ensure_distinct_slot(locked, slot)

            dest_pk = getattr(slot, 'pk', slot)
            slots = SlotRegistry.lock_slots(locked.slot_id, dest_pk)
            origin, destination = slots[locked.slot_id], slots[dest_pk]
            mass = locked.total_mass

            SlotRegistry.ensure_usable(destination, mass, lot=locked)
            warnings = SlotRegistry.check_capacity(destination, mass).warnings
            ensure_transition(locked, LotStatus.LOCADO, 'move')

            SlotRegistry.remove_load(origin, mass)
            SlotRegistry.add_load(destination, mass)
            save_lot(locked, user, slot=destination)

            movement = MovementLedger.record(
                locked, MovementKind.TRANSFER, locked.quantity, mass, user,
                reason=reason,
                source_slot=origin,
                destination_slot=destination,
                notes=notes,
            )
            logger.info(
                "lot.moved",
                extra={
                    "lot_id": locked.pk,
                    "from_slot": origin.pk,
                    "to_slot": destination.pk,
                    "mass": str(mass),
                },
            )
            return LotResult(lot=locked, movement=movement, warnings=tuple(warnings))

    @classmethod
    def partial_move(cls, lot, quantity, slot, user, expected_version=None,
                     reason='Transferência parcial', notes='') -> LotResult:
        """
        Split part of a lot into a new lot stored in another slot.

        The original keeps quantity - moved units in its slot; a new
        LOCADO lot (same seed type and code, origin = original) holds
        the moved units at the destination. The single transfer
        movement references the new lot.

        Raises:
            LotError('INSUFFICIENT_QUANTITY'): quantity >= lot quantity (use move)
            LotError('SLOT_OCCUPIED'): Destination holds another lot
            LotError('CAPACITY_EXCEEDED'): Fragment does not fit the destination
        """
        require_role(user, 'partial_move')
        quantity = _validate_quantity(quantity)

        with transaction.atomic():
            locked = lock_lot(lot, expected_version)
            ensure_status(locked, LotStatus.LOCADO, 'partial_move')
            if quantity >= locked.quantity:
                raise LotError(
                    'INSUFFICIENT_QUANTITY',
                    'Quantidade deve ser menor que a do lote; use a movimentação total',
                    available=locked.quantity,
                    requested=quantity,
                )
            _ensure_distinct_slot(locked, slot)

            dest_pk = getattr(slot, 'pk', slot)
            slots = SlotRegistry.lock_slots(locked.slot_id, dest_pk)
            origin, destination = slots[locked.slot_id], slots[dest_pk]
            moved_mass = total_mass(quantity, locked.unit_mass)

            SlotRegistry.ensure_usable(destination, moved_mass)
            warnings = SlotRegistry.check_capacity(destination, moved_mass).warnings
            ensure_transition(locked, LotStatus.LOCADO, 'partial_move')

            SlotRegistry.remove_load(origin, moved_mass)
            SlotRegistry.add_load(destination, moved_mass)
            save_lot(locked, user, quantity=locked.quantity - quantity)

            fragment = Lot.objects.create(
                seed_type_id=locked.seed_type_id,
                code=locked.code,
                quantity=quantity,
                unit_mass=locked.unit_mass,
                slot=destination,
                status=LotStatus.LOCADO,
                entry_date=locked.entry_date,
                expiration_date=locked.expiration_date,
                notes=notes or '',
                origin=locked,
                created_by=user,
                updated_by=user,
                metadata={'origin_lot_id': locked.pk},
            )

            movement = MovementLedger.record(
                fragment, MovementKind.TRANSFER, quantity, moved_mass, user,
                reason=reason,
                source_slot=origin,
                destination_slot=destination,
                notes=notes,
                metadata={'origin_lot_id': locked.pk},
            )
            logger.info(
                "lot.split",
                extra={
                    "lot_id": locked.pk,
                    "fragment_id": fragment.pk,
                    "qty": quantity,
                    "remaining": locked.quantity,
                    "to_slot": destination.pk,
                },
            )
            return LotResult(lot=locked, movement=movement, fragment=fragment, warnings=tuple(warnings))

    @classmethod
    def partial_exit(cls, lot, quantity, user, expected_version=None,
                     terminal_status=None, reason='Saída parcial', notes='') -> LotResult:
        """
        Take units out of a stored lot.

        When nothing remains the slot is released and the lot ends in
        terminal_status (default SEEDMAN['PARTIAL_EXIT_TERMINAL_STATUS']).

        Raises:
            LotError('INSUFFICIENT_QUANTITY'): quantity > lot quantity
            LotError('INVALID_TRANSITION'): Lot is not LOCADO
        """
        require_role(user, 'partial_exit')
        quantity = _validate_quantity(quantity)
        terminal = terminal_status or seedman_settings.PARTIAL_EXIT_TERMINAL_STATUS
        if terminal not in TERMINAL_LOT_STATUSES:
            raise LotError('VALIDATION_ERROR', 'Status final inválido', terminal_status=terminal)

        with transaction.atomic():
            locked = lock_lot(lot, expected_version)
            ensure_status(locked, LotStatus.LOCADO, 'partial_exit')
            if quantity > locked.quantity:
                raise LotError(
                    'INSUFFICIENT_QUANTITY',
                    available=locked.quantity,
                    requested=quantity,
                )

            slot_pk = locked.slot_id
            origin = SlotRegistry.lock_slots(slot_pk)[slot_pk]
            exit_mass = total_mass(quantity, locked.unit_mass)
            remaining = locked.quantity - quantity

            if remaining == 0:
                ensure_transition(locked, terminal, 'partial_exit')
                SlotRegistry.remove_load(origin, locked.total_mass)
                save_lot(locked, user, status=terminal, slot=None)
            else:
                ensure_transition(locked, LotStatus.LOCADO, 'partial_exit')
                SlotRegistry.remove_load(origin, exit_mass)
                save_lot(locked, user, quantity=remaining)

            movement = MovementLedger.record(
                locked, MovementKind.EXIT, quantity, exit_mass, user,
                reason=reason,
                source_slot=origin,
                notes=notes,
            )
            logger.info(
                "lot.exit",
                extra={
                    "lot_id": locked.pk,
                    "qty": quantity,
                    "remaining": remaining,
                    "status": locked.status,
                },
            )
            return LotResult(lot=locked, movement=movement)

    @classmethod
    def add_stock(cls, lot, quantity, user, unit_mass=None, expected_version=None,
                  reason='Adição de estoque', notes='') -> LotResult:
        """
        Add units to a stored lot.

        A new unit_mass re-weighs the whole lot; the resulting total
        mass may not be lower than the current one. The slot must fit
        the extra mass.

        Raises:
            LotError('CAPACITY_EXCEEDED'): Slot cannot take the extra mass
            LotError('VALIDATION_ERROR'): Bad quantity or unit mass
            LotError('INVALID_TRANSITION'): Lot is not LOCADO
        """
        require_role(user, 'add_stock')
        quantity = _validate_quantity(quantity)
        new_unit_mass = _validate_unit_mass(unit_mass) if unit_mass is not None else None

        with transaction.atomic():
            locked = lock_lot(lot, expected_version)
            ensure_status(locked, LotStatus.LOCADO, 'add_stock')

            unit = new_unit_mass if new_unit_mass is not None else locked.unit_mass
            new_quantity = locked.quantity + quantity
            added_mass = total_mass(new_quantity, unit) - locked.total_mass
            if added_mass < 0:
                raise LotError(
                    'VALIDATION_ERROR',
                    'Massa total não pode diminuir ao adicionar estoque',
                    field='unit_mass',
                    requested=unit,
                )

            slot_pk = locked.slot_id
            slot = SlotRegistry.lock_slots(slot_pk)[slot_pk]
            SlotRegistry.ensure_usable(slot, added_mass, lot=locked)
            warnings = SlotRegistry.check_capacity(slot, added_mass).warnings
            ensure_transition(locked, LotStatus.LOCADO, 'add_stock')

            SlotRegistry.add_load(slot, added_mass)
            save_lot(locked, user, quantity=new_quantity, unit_mass=unit)

            movement = MovementLedger.record(
                locked, MovementKind.ADJUSTMENT, quantity, added_mass, user,
                reason=reason,
                destination_slot=slot,
                notes=notes,
            )
            logger.info(
                "lot.stock_added",
                extra={
                    "lot_id": locked.pk,
                    "qty": quantity,
                    "mass": str(added_mass),
                    "total_mass": str(locked.total_mass),
                },
            )
            return LotResult(lot=locked, movement=movement, warnings=tuple(warnings))

    @classmethod
    def remove(cls, lot, user, expected_version=None,
               reason='Remoção de lote', notes='') -> LotResult:
        """
        Remove a stored lot from the chamber.

        Transition: LOCADO -> REMOVIDO

        Raises:
            LotError('INVALID_TRANSITION'): Lot is not LOCADO, or has an open
                withdrawal request
        """
        require_role(user, 'remove')

        with transaction.atomic():
            locked = lock_lot(lot, expected_version)
            if WithdrawalRequest.objects.for_lot(locked).pending().exists():
                raise LotError(
                    'INVALID_TRANSITION',
                    'Lote possui solicitação de retirada pendente',
                    lot_id=locked.pk,
                    current=locked.status,
                    operation='remove',
                )
            ensure_status(locked, LotStatus.LOCADO, 'remove')
            ensure_transition(locked, LotStatus.REMOVIDO, 'remove')

            slot_pk = locked.slot_id
            origin = SlotRegistry.lock_slots(slot_pk)[slot_pk]
            SlotRegistry.remove_load(origin, locked.total_mass)
            save_lot(locked, user, status=LotStatus.REMOVIDO, slot=None)

            movement = MovementLedger.record(
                locked, MovementKind.EXIT, locked.quantity, locked.total_mass, user,
                reason=reason,
                source_slot=origin,
                notes=notes,
            )
            logger.info(
                "lot.removed",
                extra={"lot_id": locked.pk, "slot_id": origin.pk, "mass": str(locked.total_mass)},
            )
            return LotResult(lot=locked, movement=movement)
