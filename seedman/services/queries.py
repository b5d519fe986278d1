"""
Lot queries — read-only operations.

All methods are classmethods on Lots and use no locking.
"""

from datetime import date, timedelta
from decimal import Decimal

from django.db.models import Count, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from seedman.exceptions import LotError
from seedman.models.enums import ACTIVE_LOT_STATUSES
from seedman.models.lot import Lot
from seedman.models.movement import Movement
from seedman.models.slot import Slot
from seedman.models.withdrawal import WithdrawalRequest


class LotQueries:
    """Read-only lot, ledger and occupancy queries."""

    @classmethod
    def get_lot(cls, lot_id) -> Lot:
        try:
            return Lot.objects.select_related('seed_type', 'slot').get(pk=lot_id)
        except (Lot.DoesNotExist, TypeError, ValueError):
            raise LotError('NOT_FOUND', entity='lot', lot_id=lot_id) from None

    @classmethod
    def lots(cls, status=None, seed_type=None, slot=None, chamber=None, code=None,
             include_terminal: bool = True):
        """List lots with filters."""
        qs = Lot.objects.select_related('seed_type', 'slot')

        if status is not None:
            qs = qs.filter(status__in=[status] if isinstance(status, str) else status)
        if seed_type is not None:
            qs = qs.filter(seed_type=seed_type)
        if slot is not None:
            qs = qs.in_slot(slot)
        if chamber is not None:
            qs = qs.filter(slot__chamber=chamber)
        if code:
            qs = qs.filter(code__icontains=code)
        if not include_terminal:
            qs = qs.in_storage()

        return qs

    @classmethod
    def pending_allocation(cls):
        """Lots waiting for a slot, oldest first."""
        return Lot.objects.pending_allocation().order_by('created_at')

    @classmethod
    def pending_withdrawal(cls):
        return Lot.objects.pending_withdrawal().order_by('updated_at')

    @classmethod
    def pending_requests(cls):
        """Open withdrawal requests, oldest first."""
        return WithdrawalRequest.objects.pending().select_related('lot', 'requested_by').order_by('requested_at')

    @classmethod
    def movements(cls, lot=None, slot=None, user=None, kind=None,
                  start=None, end=None, verified: bool | None = None):
        """Ledger entries, newest first."""
        qs = Movement.objects.select_related('lot', 'source_slot', 'destination_slot', 'user')

        if lot is not None:
            qs = qs.for_lot(lot)
        if slot is not None:
            qs = qs.for_slot(slot)
        if user is not None:
            qs = qs.by_user(user)
        if kind is not None:
            qs = qs.filter(kind=kind)
        if start is not None or end is not None:
            qs = qs.between(start, end)
        if verified is not None:
            qs = qs.filter(is_verified=verified)

        return qs.order_by('-timestamp', '-pk')

    @classmethod
    def lot_history(cls, lot):
        """Movements of a lot and of every fragment split from it, at any depth, in order."""
        lot_ids = {getattr(lot, 'pk', lot)}
        frontier = set(lot_ids)
        while frontier:
            frontier = set(
                Lot.objects.filter(origin__in=frontier)
                .exclude(pk__in=lot_ids)
                .values_list('pk', flat=True)
            )
            lot_ids |= frontier
        return Movement.objects.filter(lot__in=lot_ids).order_by('timestamp', 'pk')

    @classmethod
    def chamber_load(cls, chamber=None) -> dict:
        """
        Load summary over active slots.

        Returns:
            dict with total_capacity, current_load, utilization (%),
            slots and occupied_slots
        """
        qs = Slot.objects.filter(is_active=True)
        if chamber is not None:
            qs = qs.in_chamber(chamber)

        totals = qs.aggregate(
            capacity=Coalesce(Sum('max_capacity'), Decimal('0')),
            load=Coalesce(Sum('current_load'), Decimal('0')),
            slots=Count('pk'),
        )
        occupied = qs.filter(lots__status__in=ACTIVE_LOT_STATUSES).distinct().count()
        capacity = totals['capacity']
        utilization = (totals['load'] / capacity * 100).quantize(Decimal('0.01')) if capacity else Decimal('0')

        return {
            'total_capacity': capacity,
            'current_load': totals['load'],
            'utilization': utilization,
            'slots': totals['slots'],
            'occupied_slots': occupied,
        }

    @classmethod
    def expiring_lots(cls, days: int = 30, today: date | None = None):
        """Stored lots expiring within `days`, soonest first."""
        limit = (today or timezone.localdate()) + timedelta(days=days)
        return Lot.objects.expiring_before(limit).order_by('expiration_date')
