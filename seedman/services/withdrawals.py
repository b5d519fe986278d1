"""
Withdrawal workflow — request, confirm, cancel.

One principal requests, another confirms. Confirmation is the only
step that touches stock; requesting and canceling only move the lot
between LOCADO and AGUARDANDO_RETIRADA.
"""

import logging

from django.db import transaction
from django.utils import timezone

from seedman.conf import seedman_settings
from seedman.exceptions import LotError
from seedman.fsm import ensure_status, ensure_transition
from seedman.mass import total_mass
from seedman.models.enums import LotStatus, MovementKind, WithdrawalKind, WithdrawalStatus
from seedman.models.withdrawal import WithdrawalRequest
from seedman.permissions import require_role
from seedman.services.ledger import MovementLedger
from seedman.services.locking import lock_lot, save_lot
from seedman.services.results import WithdrawalResult
from seedman.services.slots import SlotRegistry

logger = logging.getLogger('seedman')


def _lock_request(request) -> WithdrawalRequest:
    pk = getattr(request, 'pk', request)
    try:
        return WithdrawalRequest.objects.select_for_update().get(pk=pk)
    except (WithdrawalRequest.DoesNotExist, TypeError, ValueError):
        raise LotError('NOT_FOUND', entity='withdrawal_request', request_id=pk) from None


def _ensure_pending(req: WithdrawalRequest) -> None:
    if req.status != WithdrawalStatus.PENDENTE:
        raise LotError(
            'INVALID_TRANSITION',
            'Solicitação não está pendente',
            request_id=req.pk,
            current=req.status,
            expected=WithdrawalStatus.PENDENTE,
        )


def _lot_snapshot(lot) -> dict:
    return {
        'code': lot.code,
        'quantity': lot.quantity,
        'unit_mass': str(lot.unit_mass),
        'total_mass': str(lot.total_mass),
        'slot_id': lot.slot_id,
        'version': lot.version,
    }


class WithdrawalWorkflow:
    """Two-party withdrawal methods."""

    @classmethod
    def request_withdrawal(cls, lot, user, kind=WithdrawalKind.TOTAL, quantity=None,
                           reason='', notes='', expected_version=None) -> WithdrawalResult:
        """
        Open a withdrawal request.

        Transition: LOCADO -> AGUARDANDO_RETIRADA (no movement)

        Raises:
            LotError('DUPLICATE_REQUEST'): A request is already pending for the lot
            LotError('INVALID_TRANSITION'): Lot is not LOCADO
            LotError('VALIDATION_ERROR'): PARCIAL without a positive quantity
            LotError('INSUFFICIENT_QUANTITY'): PARCIAL quantity > lot quantity
        """
        require_role(user, 'request_withdrawal')
        if kind not in WithdrawalKind.values:
            raise LotError('VALIDATION_ERROR', 'Tipo de retirada inválido', kind=kind)
        if kind == WithdrawalKind.PARCIAL:
            if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
                raise LotError(
                    'VALIDATION_ERROR',
                    'Retirada parcial exige quantidade positiva',
                    field='quantity',
                    requested=quantity,
                )
        else:
            quantity = None

        with transaction.atomic():
            locked = lock_lot(lot, expected_version)

            existing = WithdrawalRequest.objects.for_lot(locked).pending().first()
            if existing is not None:
                raise LotError('DUPLICATE_REQUEST', lot_id=locked.pk, request_id=existing.pk)

            ensure_status(locked, LotStatus.LOCADO, 'request_withdrawal')
            if quantity is not None and quantity > locked.quantity:
                raise LotError(
                    'INSUFFICIENT_QUANTITY',
                    available=locked.quantity,
                    requested=quantity,
                )
            ensure_transition(locked, LotStatus.AGUARDANDO_RETIRADA, 'request_withdrawal')

            snapshot = _lot_snapshot(locked)
            save_lot(locked, user, status=LotStatus.AGUARDANDO_RETIRADA)

            req = WithdrawalRequest.objects.create(
                lot=locked,
                kind=kind,
                quantity=quantity,
                reason=reason or '',
                notes=notes or '',
                requested_by=user,
                metadata={'lot_snapshot': snapshot},
            )
            logger.info(
                "withdrawal.requested",
                extra={
                    "request_id": req.pk,
                    "lot_id": locked.pk,
                    "kind": str(kind),
                    "qty": quantity,
                },
            )
            return WithdrawalResult(request=req, lot=locked)

    @classmethod
    def confirm_withdrawal(cls, request, user, notes='', expected_version=None) -> WithdrawalResult:
        """
        Confirm a pending request and take the stock out.

        TOTAL: slot released, lot RETIRADO.
        PARCIAL: quantity reduced; lot back to LOCADO while units remain,
        RETIRADO otherwise.

        Raises:
            LotError('INVALID_TRANSITION'): Request is not pending
            LotError('PERMISSION_DENIED'): Confirmer lacks the role or is the requester
        """
        require_role(user, 'confirm_withdrawal')

        with transaction.atomic():
            req = _lock_request(request)
            _ensure_pending(req)
            if seedman_settings.REQUIRE_DISTINCT_CONFIRMER and req.requested_by_id == user.pk:
                raise LotError(
                    'PERMISSION_DENIED',
                    'Quem solicitou a retirada não pode confirmá-la',
                    request_id=req.pk,
                    operation='confirm_withdrawal',
                )

            locked = lock_lot(req.lot_id, expected_version)
            ensure_status(locked, LotStatus.AGUARDANDO_RETIRADA, 'confirm_withdrawal')

            slot_pk = locked.slot_id
            origin = SlotRegistry.lock_slots(slot_pk)[slot_pk]

            if req.kind == WithdrawalKind.PARCIAL:
                exit_quantity = req.quantity
                if exit_quantity > locked.quantity:
                    raise LotError(
                        'INSUFFICIENT_QUANTITY',
                        available=locked.quantity,
                        requested=exit_quantity,
                    )
            else:
                exit_quantity = locked.quantity
            remaining = locked.quantity - exit_quantity
            exit_mass = total_mass(exit_quantity, locked.unit_mass)

            if remaining > 0:
                ensure_transition(locked, LotStatus.LOCADO, 'confirm_withdrawal')
                SlotRegistry.remove_load(origin, exit_mass)
                save_lot(locked, user, status=LotStatus.LOCADO, quantity=remaining)
            else:
                ensure_transition(locked, LotStatus.RETIRADO, 'confirm_withdrawal')
                SlotRegistry.remove_load(origin, locked.total_mass)
                save_lot(locked, user, status=LotStatus.RETIRADO, slot=None)

            movement = MovementLedger.record(
                locked, MovementKind.EXIT, exit_quantity, exit_mass, user,
                reason=f'Retirada {req.get_kind_display().lower()}',
                source_slot=origin,
                notes=notes,
                automatic=True,
                metadata={'withdrawal_request_id': req.pk},
            )

            req.status = WithdrawalStatus.CONFIRMADO
            req.confirmed_by = user
            req.confirmed_at = timezone.now()
            req.movement = movement
            if notes:
                req.notes = notes
            req.save(update_fields=['status', 'confirmed_by', 'confirmed_at', 'movement', 'notes'])

            logger.info(
                "withdrawal.confirmed",
                extra={
                    "request_id": req.pk,
                    "lot_id": locked.pk,
                    "qty": exit_quantity,
                    "remaining": remaining,
                    "status": locked.status,
                },
            )
            return WithdrawalResult(request=req, lot=locked, movement=movement)

    @classmethod
    def cancel_withdrawal(cls, request, user, reason='', expected_version=None) -> WithdrawalResult:
        """
        Cancel a pending request.

        Transition: AGUARDANDO_RETIRADA -> LOCADO (no movement)

        Raises:
            LotError('INVALID_TRANSITION'): Request is not pending
        """
        require_role(user, 'cancel_withdrawal')

        with transaction.atomic():
            req = _lock_request(request)
            _ensure_pending(req)

            locked = lock_lot(req.lot_id, expected_version)
            ensure_status(locked, LotStatus.AGUARDANDO_RETIRADA, 'cancel_withdrawal')
            ensure_transition(locked, LotStatus.LOCADO, 'cancel_withdrawal')
            save_lot(locked, user, status=LotStatus.LOCADO)

            req.status = WithdrawalStatus.CANCELADO
            req.canceled_by = user
            req.canceled_at = timezone.now()
            req.cancel_reason = reason or ''
            req.save(update_fields=['status', 'canceled_by', 'canceled_at', 'cancel_reason'])

            logger.info(
                "withdrawal.canceled",
                extra={"request_id": req.pk, "lot_id": locked.pk, "reason": reason},
            )
            return WithdrawalResult(request=req, lot=locked)
