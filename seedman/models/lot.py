"""
Lot model — Seed lot and its lifecycle status.
"""

from datetime import date
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from seedman.mass import total_mass
from seedman.models.enums import ACTIVE_LOT_STATUSES, TERMINAL_LOT_STATUSES, LotStatus


class LotQuerySet(models.QuerySet):
    """QuerySet with helper methods for Lot queries."""

    def active(self):
        """Lots currently holding a slot."""
        return self.filter(status__in=ACTIVE_LOT_STATUSES)

    def pending_allocation(self):
        return self.filter(status=LotStatus.AGUARDANDO_LOCACAO)

    def pending_withdrawal(self):
        return self.filter(status=LotStatus.AGUARDANDO_RETIRADA)

    def in_storage(self):
        """Everything not yet withdrawn or removed."""
        return self.exclude(status__in=TERMINAL_LOT_STATUSES)

    def in_slot(self, slot):
        return self.filter(slot=slot)

    def expiring_before(self, limit: date):
        return self.in_storage().filter(expiration_date__isnull=False, expiration_date__lte=limit)

    def expired(self, today: date | None = None):
        return self.in_storage().filter(expiration_date__lt=today or timezone.localdate())


class Lot(models.Model):
    """
    Batch of seeds of one type, stored in at most one slot.

    LIFECYCLE:

        CADASTRADO ──intake──► AGUARDANDO_LOCACAO ──assign_slot──► LOCADO
        CADASTRADO ──intake(slot)─────────────────────────────────► LOCADO
        LOCADO ──move / partial_move / partial_exit / add_stock──► LOCADO
        LOCADO ──request_withdrawal──► AGUARDANDO_RETIRADA
        AGUARDANDO_RETIRADA ──confirm──► RETIRADO (or LOCADO if remainder)
        AGUARDANDO_RETIRADA ──cancel───► LOCADO
        LOCADO ──remove / partial_exit to zero──► REMOVIDO

    INVARIANTS:
    - total_mass = quantity × unit_mass (recomputed on save)
    - slot set ⇔ status in (LOCADO, AGUARDANDO_RETIRADA)
    - at most one active lot per slot
    - version increments on every mutation (optimistic concurrency)

    Never change status or slot directly: use the lots service.
    """

    seed_type = models.ForeignKey(
        'seedman.SeedType',
        on_delete=models.PROTECT,
        related_name='lots',
        verbose_name=_('Tipo de Semente'),
    )
    code = models.CharField(
        max_length=50,
        db_index=True,
        verbose_name=_('Código do Lote'),
    )

    quantity = models.PositiveIntegerField(
        verbose_name=_('Quantidade'),
        help_text=_('Número de unidades (sacos, caixas...)'),
    )
    unit_mass = models.DecimalField(
        max_digits=10,
        decimal_places=3,
        verbose_name=_('Massa unitária (kg)'),
    )
    total_mass = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        default=Decimal('0'),
        editable=False,
        verbose_name=_('Massa total (kg)'),
    )

    slot = models.ForeignKey(
        'seedman.Slot',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='lots',
        verbose_name=_('Localização'),
    )
    status = models.CharField(
        max_length=20,
        choices=LotStatus.choices,
        default=LotStatus.CADASTRADO,
        db_index=True,
        verbose_name=_('Status'),
    )

    entry_date = models.DateField(
        default=timezone.localdate,
        verbose_name=_('Data de entrada'),
    )
    expiration_date = models.DateField(
        null=True,
        blank=True,
        db_index=True,
        verbose_name=_('Data de validade'),
    )
    notes = models.TextField(
        blank=True,
        default='',
        verbose_name=_('Observações'),
    )

    # Lot this one was split from by a partial move
    origin = models.ForeignKey(
        'self',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='fragments',
        verbose_name=_('Lote de origem'),
    )

    version = models.PositiveIntegerField(
        default=1,
        verbose_name=_('Versão'),
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Criado por'),
    )
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Atualizado por'),
    )
    metadata = models.JSONField(default=dict, blank=True, verbose_name=_('Metadados'))

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    objects = LotQuerySet.as_manager()

    class Meta:
        verbose_name = _('Lote')
        verbose_name_plural = _('Lotes')
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['slot'],
                condition=Q(status__in=ACTIVE_LOT_STATUSES),
                name='one_active_lot_per_slot',
            ),
            models.CheckConstraint(
                condition=(
                    Q(slot__isnull=True) & ~Q(status__in=ACTIVE_LOT_STATUSES)
                ) | (
                    Q(slot__isnull=False) & Q(status__in=ACTIVE_LOT_STATUSES)
                ),
                name='lot_slot_matches_status',
            ),
            models.CheckConstraint(
                condition=Q(unit_mass__gt=0),
                name='lot_unit_mass_positive',
            ),
        ]
        indexes = [
            models.Index(fields=['seed_type', 'status'], name='seedman_lot_type_status_idx'),
        ]

    def save(self, *args, **kwargs):
        self.total_mass = total_mass(self.quantity, self.unit_mass)
        update_fields = kwargs.get('update_fields')
        if update_fields is not None and 'total_mass' not in update_fields:
            kwargs['update_fields'] = list(update_fields) + ['total_mass']
        super().save(*args, **kwargs)

    # ══════════════════════════════════════════════════════════════
    # PROPERTIES
    # ══════════════════════════════════════════════════════════════

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_LOT_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_LOT_STATUSES

    @property
    def days_until_expiration(self) -> int | None:
        if self.expiration_date is None:
            return None
        return (self.expiration_date - timezone.localdate()).days

    @property
    def is_near_expiration(self) -> bool:
        days = self.days_until_expiration
        return days is not None and 0 <= days <= 30

    @property
    def expiration_status(self) -> str:
        """no-expiration / expired / critical / warning / good."""
        days = self.days_until_expiration
        if days is None:
            return 'no-expiration'
        if days < 0:
            return 'expired'
        if days <= 7:
            return 'critical'
        if days <= 30:
            return 'warning'
        return 'good'

    @property
    def storage_days(self) -> int:
        return (timezone.localdate() - self.entry_date).days

    def __str__(self) -> str:
        return f"{self.code} ({self.quantity} × {self.unit_mass} kg) [{self.status}]"
