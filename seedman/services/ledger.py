"""
Movement ledger — append-only history with duplicate suppression.

record() is called by the lifecycle services inside their transaction,
with the lot row already locked, so duplicate detection for a lot is
serialized.
"""

import logging
from datetime import timedelta

from django.db import transaction
from django.utils import timezone

from seedman.conf import seedman_settings
from seedman.exceptions import LotError
from seedman.mass import to_mass, total_mass
from seedman.models.enums import MovementKind
from seedman.models.lot import Lot
from seedman.models.movement import Movement
from seedman.permissions import require_role
from seedman.services.slots import SlotRegistry

logger = logging.getLogger('seedman')


def movement_confidence(movement: Movement, now=None) -> float:
    """
    Heuristic confidence that a ledger row is correct, in [0, 1].

    Automatic rows, rows whose mass matches the lot's unit mass and
    recent rows score higher.
    """
    now = now or timezone.now()
    confidence = 0.5
    if movement.is_automatic:
        confidence += 0.3
    if movement.user_id and movement.reason:
        confidence += 0.2
    if movement.mass == total_mass(movement.quantity, movement.lot.unit_mass):
        confidence += 0.2
    if now - movement.timestamp < timedelta(hours=1):
        confidence += 0.1
    return min(1.0, confidence)


class MovementLedger:
    """Ledger writes, duplicate suppression, manual entries and verification."""

    @classmethod
    def find_duplicate(cls, lot, kind, quantity, mass, user,
                       source_slot=None, destination_slot=None,
                       window_seconds: int | None = None) -> Movement | None:
        """
        Recent movement with the same full tuple, if any.

        The tuple is (lot, kind, quantity, mass, user, source slot,
        destination slot). A window of 0 disables the lookup.
        """
        if window_seconds is None:
            window_seconds = seedman_settings.DUPLICATE_WINDOW_SECONDS
        if not window_seconds:
            return None

        since = timezone.now() - timedelta(seconds=window_seconds)
        return Movement.objects.filter(
            lot=lot,
            kind=kind,
            quantity=quantity,
            mass=to_mass(mass),
            user=user,
            source_slot=source_slot,
            destination_slot=destination_slot,
            timestamp__gte=since,
        ).order_by('-timestamp').first()

    @classmethod
    def record(cls, lot, kind, quantity, mass, user, reason,
               source_slot=None, destination_slot=None, notes='',
               automatic=False, batch_id='', metadata=None) -> Movement:
        """
        Append one movement.

        Must run inside the caller's transaction.atomic() block.

        Raises:
            LotError('DUPLICATE_MOVEMENT'): Same tuple recorded inside the window
        """
        mass = to_mass(mass)

        if not automatic:
            duplicate = cls.find_duplicate(
                lot, kind, quantity, mass, user,
                source_slot=source_slot,
                destination_slot=destination_slot,
            )
            if duplicate is not None:
                logger.warning(
                    "ledger.duplicate_rejected",
                    extra={
                        "lot_id": lot.pk,
                        "kind": str(kind),
                        "qty": quantity,
                        "existing_movement_id": duplicate.pk,
                    },
                )
                raise LotError(
                    'DUPLICATE_MOVEMENT',
                    lot_id=lot.pk,
                    movement_id=duplicate.pk,
                    kind=str(kind),
                )

        movement = Movement.objects.create(
            lot=lot,
            kind=kind,
            quantity=quantity,
            mass=mass,
            user=user,
            reason=reason,
            source_slot=source_slot,
            destination_slot=destination_slot,
            notes=notes or '',
            is_automatic=automatic,
            batch_id=batch_id or '',
            metadata=metadata or {},
        )
        logger.info(
            "ledger.recorded",
            extra={
                "movement_id": movement.pk,
                "lot_id": lot.pk,
                "kind": str(kind),
                "qty": quantity,
                "mass": str(mass),
            },
        )
        return movement

    @classmethod
    def register_movement(cls, lot, kind, quantity, user, reason,
                          source_slot=None, destination_slot=None, mass=None,
                          notes='', batch_id='', metadata=None) -> Movement:
        """
        Manual ledger entry (back-office correction or external event).

        Writes only the ledger: lot and slot state are left untouched.
        Manual entries are never automatic and always pass the duplicate check.

        Slot rules per kind:
        - entry: destination required
        - exit: source required
        - transfer: destination required, different from source
        - adjustment: source or destination required

        Raises:
            LotError('VALIDATION_ERROR'): Bad quantity, mass, reason or slots
            LotError('NOT_FOUND'): Lot does not exist
            LotError('CAPACITY_EXCEEDED'): Destination cannot take the mass
            LotError('DUPLICATE_MOVEMENT'): Same tuple recorded inside the window
        """
        require_role(user, 'register_movement')

        if kind not in MovementKind.values:
            raise LotError('VALIDATION_ERROR', 'Tipo de movimentação inválido', kind=kind)
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
            raise LotError('VALIDATION_ERROR', 'Quantidade deve ser um inteiro positivo', requested=quantity)

        reason = (reason or '').strip()
        min_length = seedman_settings.MANUAL_REASON_MIN_LENGTH
        if len(reason) < min_length or len(reason) > 200:
            raise LotError(
                'VALIDATION_ERROR',
                f'Motivo deve ter entre {min_length} e 200 caracteres',
                field='reason',
            )

        if kind == MovementKind.ENTRY and destination_slot is None:
            raise LotError('VALIDATION_ERROR', 'Entrada exige localização de destino', field='destination_slot')
        if kind == MovementKind.EXIT and source_slot is None:
            raise LotError('VALIDATION_ERROR', 'Saída exige localização de origem', field='source_slot')
        if kind == MovementKind.TRANSFER:
            if destination_slot is None:
                raise LotError('VALIDATION_ERROR', 'Transferência exige localização de destino', field='destination_slot')
            if source_slot is not None and source_slot.pk == destination_slot.pk:
                raise LotError('VALIDATION_ERROR', 'Origem e destino devem ser diferentes', field='destination_slot')
        if kind == MovementKind.ADJUSTMENT and source_slot is None and destination_slot is None:
            raise LotError('VALIDATION_ERROR', 'Ajuste exige uma localização', field='slot')

        with transaction.atomic():
            try:
                locked = Lot.objects.select_for_update().get(pk=getattr(lot, 'pk', lot))
            except Lot.DoesNotExist:
                raise LotError('NOT_FOUND', entity='lot', lot_id=getattr(lot, 'pk', lot)) from None

            if mass is None:
                mass = total_mass(quantity, locked.unit_mass)
            try:
                mass = to_mass(mass)
            except ValueError:
                raise LotError('VALIDATION_ERROR', 'Massa inválida', requested=mass) from None
            if mass <= 0:
                raise LotError('VALIDATION_ERROR', 'Massa deve ser positiva', requested=mass)

            if destination_slot is not None and kind in (MovementKind.ENTRY, MovementKind.TRANSFER):
                dest_pk = getattr(destination_slot, 'pk', destination_slot)
                target = SlotRegistry.lock_slots(dest_pk)[dest_pk]
                check = SlotRegistry.check_capacity(target, mass)
                if not check.can_accommodate:
                    raise LotError(
                        'CAPACITY_EXCEEDED',
                        slot_id=check.slot_id,
                        available=check.available,
                        requested=mass,
                    )

            return cls.record(
                locked, kind, quantity, mass, user, reason,
                source_slot=source_slot,
                destination_slot=destination_slot,
                notes=notes,
                batch_id=batch_id,
                metadata=metadata,
            )

    @classmethod
    def verify_movement(cls, movement, verifier, notes='') -> Movement:
        """
        Mark a movement as verified.

        Only the verification fields are written; ledger content is
        never touched.

        Raises:
            LotError('NOT_FOUND'): Movement does not exist
            LotError('VALIDATION_ERROR'): Already verified
        """
        require_role(verifier, 'verify_movement')
        pk = getattr(movement, 'pk', movement)

        updated = Movement.objects.filter(pk=pk, is_verified=False).update(
            is_verified=True,
            verified_by=verifier,
            verified_at=timezone.now(),
            verification_notes=notes or '',
        )
        if not updated:
            if not Movement.objects.filter(pk=pk).exists():
                raise LotError('NOT_FOUND', entity='movement', movement_id=pk)
            raise LotError('VALIDATION_ERROR', 'Movimentação já verificada', movement_id=pk)

        logger.info("ledger.verified", extra={"movement_id": pk, "verifier_id": verifier.pk})
        return Movement.objects.get(pk=pk)

    @classmethod
    def verify_movements(cls, verifier=None, max_age_hours: int = 24,
                         threshold: float = 0.95, dry_run: bool = False) -> dict:
        """
        Verification pass over recent unverified movements.

        Movements at or above the confidence threshold are verified;
        the rest are left for manual review. With no verifier the pass
        is recorded as a system verification.

        Returns:
            dict with pending, verified and needs_review counts
        """
        if verifier is not None:
            require_role(verifier, 'verify_movement')

        now = timezone.now()
        cutoff = now - timedelta(hours=max_age_hours)
        pending = list(
            Movement.objects.unverified()
            .filter(timestamp__gte=cutoff)
            .select_related('lot')
        )

        confident = [m.pk for m in pending if movement_confidence(m, now) >= threshold]
        verified = 0
        if confident and not dry_run:
            verified = Movement.objects.filter(pk__in=confident, is_verified=False).update(
                is_verified=True,
                verified_by=verifier,
                verified_at=now,
                verification_notes='Verificação automática',
            )
            logger.info(
                "ledger.verified_batch",
                extra={"count": verified, "verifier_id": getattr(verifier, 'pk', None)},
            )

        return {
            'pending': len(pending),
            'verified': verified if not dry_run else len(confident),
            'needs_review': len(pending) - len(confident),
        }
