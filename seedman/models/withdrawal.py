"""
WithdrawalRequest model — Two-party withdrawal of a stored lot.
"""

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from seedman.models.enums import WithdrawalKind, WithdrawalStatus


class WithdrawalRequestQuerySet(models.QuerySet):

    def pending(self):
        return self.filter(status=WithdrawalStatus.PENDENTE)

    def for_lot(self, lot):
        return self.filter(lot=lot)


class WithdrawalRequest(models.Model):
    """
    Request to take a lot (or part of it) out of storage.

    LIFECYCLE:

        (none) ──request──► PENDENTE ──confirm──► CONFIRMADO
                               │
                               └─────cancel────► CANCELADO

    One party requests, another confirms. At most one PENDENTE
    request exists per lot.
    """

    lot = models.ForeignKey(
        'seedman.Lot',
        on_delete=models.PROTECT,
        related_name='withdrawal_requests',
        verbose_name=_('Lote'),
    )
    kind = models.CharField(
        max_length=10,
        choices=WithdrawalKind.choices,
        default=WithdrawalKind.TOTAL,
        verbose_name=_('Tipo'),
    )
    quantity = models.PositiveIntegerField(
        null=True,
        blank=True,
        verbose_name=_('Quantidade'),
        help_text=_('Obrigatória para retirada parcial.'),
    )
    status = models.CharField(
        max_length=20,
        choices=WithdrawalStatus.choices,
        default=WithdrawalStatus.PENDENTE,
        db_index=True,
        verbose_name=_('Status'),
    )
    reason = models.CharField(max_length=200, blank=True, default='', verbose_name=_('Motivo'))
    notes = models.TextField(blank=True, default='', verbose_name=_('Observações'))

    requested_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='+',
        verbose_name=_('Solicitado por'),
    )
    requested_at = models.DateTimeField(default=timezone.now, verbose_name=_('Solicitado em'))

    confirmed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Confirmado por'),
    )
    confirmed_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Confirmado em'))

    canceled_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Cancelado por'),
    )
    canceled_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Cancelado em'))
    cancel_reason = models.CharField(max_length=200, blank=True, default='', verbose_name=_('Motivo do cancelamento'))

    movement = models.ForeignKey(
        'seedman.Movement',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Movimentação'),
        help_text=_('Saída registrada na confirmação.'),
    )

    # Snapshot of the lot at request time
    metadata = models.JSONField(default=dict, blank=True, verbose_name=_('Metadados'))

    objects = WithdrawalRequestQuerySet.as_manager()

    class Meta:
        verbose_name = _('Solicitação de Retirada')
        verbose_name_plural = _('Solicitações de Retirada')
        ordering = ['-requested_at']
        constraints = [
            models.UniqueConstraint(
                fields=['lot'],
                condition=Q(status=WithdrawalStatus.PENDENTE),
                name='one_pending_withdrawal_per_lot',
            ),
            models.CheckConstraint(
                condition=~Q(kind=WithdrawalKind.PARCIAL) | Q(quantity__gt=0),
                name='partial_withdrawal_requires_quantity',
            ),
        ]

    @property
    def is_pending(self) -> bool:
        return self.status == WithdrawalStatus.PENDENTE

    @property
    def waiting_days(self) -> int:
        """Days since the request (until resolution, if resolved)."""
        end = self.confirmed_at or self.canceled_at or timezone.now()
        return (end - self.requested_at).days

    @property
    def urgency_status(self) -> str:
        """resolved / normal / urgent (>3 days) / overdue (>7 days)."""
        if not self.is_pending:
            return 'resolved'
        days = self.waiting_days
        if days > 7:
            return 'overdue'
        if days > 3:
            return 'urgent'
        return 'normal'

    def __str__(self) -> str:
        return f"Retirada {self.get_kind_display()} de {self.lot.code} [{self.status}]"
