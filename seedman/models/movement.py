"""
Movement model — Immutable ledger of lot movements.
"""

from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from seedman.models.enums import MovementKind


class MovementQuerySet(models.QuerySet):
    """QuerySet with helper methods for ledger queries."""

    def for_lot(self, lot):
        return self.filter(lot=lot)

    def for_slot(self, slot):
        """Movements that touched the slot as source or destination."""
        return self.filter(models.Q(source_slot=slot) | models.Q(destination_slot=slot))

    def by_user(self, user):
        return self.filter(user=user)

    def between(self, start=None, end=None):
        qs = self
        if start is not None:
            qs = qs.filter(timestamp__gte=start)
        if end is not None:
            qs = qs.filter(timestamp__lte=end)
        return qs

    def unverified(self):
        return self.filter(is_verified=False)


class Movement(models.Model):
    """
    Immutable record of something that happened to a lot.

    Rules:
    - NEVER update() ledger content or delete()
    - Corrections are new adjustment Movements
    - Only the verification fields may be written after insert,
      through MovementLedger.verify_movement()
    """

    lot = models.ForeignKey(
        'seedman.Lot',
        on_delete=models.PROTECT,
        related_name='movements',
        verbose_name=_('Lote'),
    )
    kind = models.CharField(
        max_length=20,
        choices=MovementKind.choices,
        db_index=True,
        verbose_name=_('Tipo'),
    )
    source_slot = models.ForeignKey(
        'seedman.Slot',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='outgoing_movements',
        verbose_name=_('Origem'),
    )
    destination_slot = models.ForeignKey(
        'seedman.Slot',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='incoming_movements',
        verbose_name=_('Destino'),
    )

    quantity = models.PositiveIntegerField(verbose_name=_('Quantidade'))
    mass = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        verbose_name=_('Massa (kg)'),
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='+',
        verbose_name=_('Usuário'),
    )
    reason = models.CharField(
        max_length=200,
        verbose_name=_('Motivo'),
        help_text=_('Obrigatório. Ex: "Entrada de lote", "Transferência"'),
    )
    notes = models.TextField(blank=True, default='', verbose_name=_('Observações'))
    timestamp = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Data/Hora'))

    is_automatic = models.BooleanField(
        default=False,
        verbose_name=_('Automático'),
        help_text=_('Gerado pelo sistema (não passa pela detecção de duplicidade).'),
    )
    batch_id = models.CharField(
        max_length=64,
        blank=True,
        default='',
        db_index=True,
        verbose_name=_('Identificador de lote de operações'),
    )
    metadata = models.JSONField(default=dict, blank=True, verbose_name=_('Metadados'))

    # Verification (the only mutable part)
    is_verified = models.BooleanField(default=False, verbose_name=_('Verificado'))
    verified_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Verificado por'),
    )
    verified_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Verificado em'))
    verification_notes = models.TextField(blank=True, default='', verbose_name=_('Notas da verificação'))

    objects = MovementQuerySet.as_manager()

    class Meta:
        verbose_name = _('Movimentação')
        verbose_name_plural = _('Movimentações')
        ordering = ['timestamp']
        indexes = [
            models.Index(fields=['lot', 'kind', 'timestamp'], name='seedman_mov_lot_kind_ts_idx'),
            models.Index(fields=['user', 'timestamp'], name='seedman_mov_user_ts_idx'),
        ]

    def save(self, *args, **kwargs):
        # Immutability check
        if self.pk:
            raise ValueError(
                "Movimentações são imutáveis. "
                "Para corrigir, registre um novo ajuste."
            )

        if not self.reason:
            raise ValueError("Motivo é obrigatório")

        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        """Movements are immutable; deletion is refused."""
        raise ValueError(
            "Movimentações são imutáveis. "
            "Para estornar, registre um novo ajuste."
        )

    @property
    def signed_mass(self) -> Decimal:
        """Mass as seen by the stock: exits negative."""
        if self.kind == MovementKind.EXIT:
            return -self.mass
        return self.mass

    def __str__(self) -> str:
        return f"{self.get_kind_display()} {self.quantity} ({self.mass} kg) | {self.reason}"
