"""
Slot registry — capacity and occupancy checks, load bookkeeping.

Load changes always run inside the caller's transaction on slot rows
locked with select_for_update(). The check constraint on Slot is the
last guard against overfilling.
"""

import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from seedman.conf import seedman_settings
from seedman.exceptions import LotError
from seedman.mass import ZERO, to_mass
from seedman.models.enums import ACTIVE_LOT_STATUSES
from seedman.models.lot import Lot
from seedman.models.slot import Slot
from seedman.services.results import CapacityCheck

logger = logging.getLogger('seedman')


def _slot_pk(slot) -> int:
    return slot.pk if isinstance(slot, Slot) else int(slot)


class SlotRegistry:
    """Slot lookup, locking, capacity checks and load updates."""

    @classmethod
    def get_slot(cls, slot) -> Slot:
        """Fetch a slot by instance or pk. Raises NOT_FOUND."""
        try:
            return Slot.objects.select_related('chamber').get(pk=_slot_pk(slot))
        except (Slot.DoesNotExist, TypeError, ValueError):
            raise LotError('NOT_FOUND', entity='slot', slot_id=getattr(slot, 'pk', slot)) from None

    @classmethod
    def lock_slots(cls, *slots) -> dict[int, Slot]:
        """
        Lock slot rows in primary-key order and return them by pk.

        Must be called inside transaction.atomic(), after the lot row
        has been locked.
        """
        pks = sorted({_slot_pk(s) for s in slots if s is not None})
        locked = {
            s.pk: s for s in Slot.objects.select_for_update().filter(pk__in=pks).order_by('pk')
        }
        missing = [pk for pk in pks if pk not in locked]
        if missing:
            raise LotError('NOT_FOUND', entity='slot', slot_id=missing[0])
        return locked

    @classmethod
    def occupant(cls, slot, exclude_lot=None) -> Lot | None:
        """Active lot stored in the slot, if any."""
        qs = Lot.objects.filter(slot_id=_slot_pk(slot), status__in=ACTIVE_LOT_STATUSES)
        if exclude_lot is not None:
            qs = qs.exclude(pk=exclude_lot.pk)
        return qs.first()

    @classmethod
    def ensure_usable(cls, slot: Slot, mass, lot=None) -> None:
        """
        Check that slot can take `mass` more kg for `lot`.

        A slot is usable when it and its chamber are active, no other
        active lot sits in it and the load stays within capacity.

        Raises:
            LotError('VALIDATION_ERROR'): Slot or chamber inactive
            LotError('SLOT_OCCUPIED'): Another active lot is stored there
            LotError('CAPACITY_EXCEEDED'): current_load + mass > max_capacity
        """
        mass = to_mass(mass)

        if not slot.is_active:
            raise LotError(
                'VALIDATION_ERROR', 'Localização inativa',
                slot_id=slot.pk, slot_code=slot.code,
            )
        if not slot.chamber.is_active:
            raise LotError(
                'VALIDATION_ERROR', 'Câmara não está ativa',
                slot_id=slot.pk, chamber_status=slot.chamber.status,
            )

        other = cls.occupant(slot, exclude_lot=lot)
        already_here = lot is not None and lot.slot_id == slot.pk
        if other is not None or (not already_here and slot.current_load > 0):
            raise LotError(
                'SLOT_OCCUPIED',
                slot_id=slot.pk,
                slot_code=slot.code,
                occupant_id=other.pk if other else None,
            )

        if slot.current_load + mass > slot.max_capacity:
            raise LotError(
                'CAPACITY_EXCEEDED',
                slot_id=slot.pk,
                slot_code=slot.code,
                available=slot.available_capacity,
                requested=mass,
            )

    @classmethod
    def check_capacity(cls, slot, mass) -> CapacityCheck:
        """
        Non-raising capacity analysis.

        Adds a warning when the operation leaves less free space than
        CAPACITY_SAFETY_MARGIN of the slot's capacity.
        """
        if not isinstance(slot, Slot):
            slot = cls.get_slot(slot)
        mass = to_mass(mass)
        after = slot.current_load + mass
        utilization = (after / slot.max_capacity * 100).quantize(Decimal('0.01'))
        fits = after <= slot.max_capacity

        warnings = []
        margin = Decimal(str(seedman_settings.CAPACITY_SAFETY_MARGIN))
        if fits and after > slot.max_capacity * (1 - margin):
            warnings.append(
                f"Localização {slot.code} ficará com {utilization}% da capacidade"
            )

        return CapacityCheck(
            slot_id=slot.pk,
            can_accommodate=fits,
            current_load=slot.current_load,
            max_capacity=slot.max_capacity,
            incoming=mass,
            available=slot.available_capacity,
            utilization_after=utilization,
            warnings=tuple(warnings),
        )

    @classmethod
    def add_load(cls, slot: Slot, mass) -> None:
        """Increase the slot's load (caller holds the row lock)."""
        mass = to_mass(mass)
        Slot.objects.filter(pk=slot.pk).update(
            current_load=F('current_load') + mass,
            updated_at=timezone.now(),
        )
        slot.refresh_from_db(fields=['current_load'])

    @classmethod
    def remove_load(cls, slot: Slot, mass) -> None:
        """Decrease the slot's load, never below zero (caller holds the row lock)."""
        mass = to_mass(mass)
        if mass > slot.current_load:
            logger.warning(
                "slot.load_underflow",
                extra={
                    "slot_id": slot.pk,
                    "current_load": str(slot.current_load),
                    "released": str(mass),
                },
            )
        new_load = ZERO if mass > slot.current_load else F('current_load') - mass
        Slot.objects.filter(pk=slot.pk).update(
            current_load=new_load,
            updated_at=timezone.now(),
        )
        slot.refresh_from_db(fields=['current_load'])

    @classmethod
    def deactivate_slot(cls, slot) -> Slot:
        """
        Soft-delete a slot.

        Raises:
            LotError('SLOT_OCCUPIED'): An active lot is stored there
        """
        with transaction.atomic():
            locked = cls.lock_slots(slot)[_slot_pk(slot)]
            if cls.occupant(locked) is not None or locked.current_load > 0:
                raise LotError('SLOT_OCCUPIED', slot_id=locked.pk, slot_code=locked.code)
            locked.is_active = False
            locked.save(update_fields=['is_active', 'updated_at'])
            logger.info("slot.deactivated", extra={"slot_id": locked.pk, "slot_code": locked.code})
            return locked

    @classmethod
    def reactivate_slot(cls, slot) -> Slot:
        with transaction.atomic():
            locked = cls.lock_slots(slot)[_slot_pk(slot)]
            locked.is_active = True
            locked.save(update_fields=['is_active', 'updated_at'])
            logger.info("slot.reactivated", extra={"slot_id": locked.pk, "slot_code": locked.code})
            return locked

    @classmethod
    def available_slots(cls, min_capacity=0, chamber=None):
        """
        Free, usable slots that fit min_capacity kg.

        Ordered lower level first, then smallest capacity.
        """
        qs = Slot.objects.active().free().with_capacity(to_mass(min_capacity))
        if chamber is not None:
            qs = qs.in_chamber(chamber)
        return qs.select_related('chamber').order_by('level', 'max_capacity', 'code')

    @classmethod
    def adjacent_slots(cls, slot, radius: int | None = None, available_only: bool = False) -> list[Slot]:
        """Slots in the same chamber within `radius` (Manhattan distance)."""
        if not isinstance(slot, Slot):
            slot = cls.get_slot(slot)
        radius = seedman_settings.ADJACENCY_RADIUS if radius is None else radius

        qs = Slot.objects.filter(
            chamber_id=slot.chamber_id,
            block__range=(slot.block - radius, slot.block + radius),
            row__range=(slot.row - radius, slot.row + radius),
            level__range=(slot.level - radius, slot.level + radius),
        ).exclude(pk=slot.pk)
        if available_only:
            qs = qs.active().free()

        neighbours = [s for s in qs if slot.distance_to(s) <= radius]
        neighbours.sort(key=lambda s: (slot.distance_to(s), s.code))
        return neighbours
