"""
Lot row locking and versioned writes.

Lock order for every mutating operation: lot row first, then slot rows
in primary-key order (SlotRegistry.lock_slots).
"""

from django.db.models import F
from django.utils import timezone

from seedman.exceptions import LotError
from seedman.mass import total_mass
from seedman.models.lot import Lot


def lock_lot(lot, expected_version: int | None = None) -> Lot:
    """
    Re-read the lot under select_for_update().

    Raises:
        LotError('NOT_FOUND'): Lot does not exist
        LotError('STALE_VERSION'): expected_version given and outdated
    """
    pk = getattr(lot, 'pk', lot)
    try:
        locked = Lot.objects.select_for_update().get(pk=pk)
    except (Lot.DoesNotExist, TypeError, ValueError):
        raise LotError('NOT_FOUND', entity='lot', lot_id=pk) from None

    if expected_version is not None and locked.version != expected_version:
        raise LotError(
            'STALE_VERSION',
            lot_id=locked.pk,
            expected=expected_version,
            current=locked.version,
        )
    return locked


def save_lot(locked: Lot, user, **changes) -> Lot:
    """
    Write changes with a version-conditional update.

    total_mass is recomputed from quantity and unit_mass. The row is
    only written while its version still equals the one read under
    lock; otherwise another writer got there first.

    Raises:
        LotError('STALE_VERSION'): Version moved since the lot was read
    """
    read_version = locked.version
    for name, value in changes.items():
        setattr(locked, name, value)
    locked.total_mass = total_mass(locked.quantity, locked.unit_mass)
    now = timezone.now()

    updated = Lot.objects.filter(pk=locked.pk, version=read_version).update(
        **changes,
        total_mass=locked.total_mass,
        updated_by=user,
        updated_at=now,
        version=F('version') + 1,
    )
    if not updated:
        raise LotError('STALE_VERSION', lot_id=locked.pk, expected=read_version)

    locked.version = read_version + 1
    locked.updated_by = user
    locked.updated_at = now
    return locked
