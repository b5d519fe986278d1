"""
Slot model — Addressable, capacity-bounded storage location.
"""

import logging
import string
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q, Sum
from django.db.models.functions import Coalesce
from django.utils.translation import gettext_lazy as _

from seedman.models.enums import ACTIVE_LOT_STATUSES

logger = logging.getLogger('seedman')

SIDE_CHOICES = [(letter, letter) for letter in string.ascii_uppercase[:20]]  # A..T


def build_slot_code(block: int, side: str, row: int, level: int) -> str:
    """Canonical slot code, e.g. Q1-LA-F2-A3."""
    return f"Q{block}-L{side.upper()}-F{row}-A{level}"


class SlotQuerySet(models.QuerySet):
    """QuerySet with helper methods for Slot queries."""

    def active(self):
        """Usable slots: slot and chamber both active."""
        return self.filter(is_active=True, chamber__status='active')

    def occupied(self):
        return self.filter(lots__status__in=ACTIVE_LOT_STATUSES).distinct()

    def free(self):
        """Slots with no active lot linked."""
        return self.exclude(lots__status__in=ACTIVE_LOT_STATUSES)

    def in_chamber(self, chamber):
        return self.filter(chamber=chamber)

    def with_capacity(self, mass):
        """Slots whose remaining capacity fits the given mass."""
        return self.filter(max_capacity__gte=models.F('current_load') + mass)


class Slot(models.Model):
    """
    Storage position inside a chamber.

    Coordinates:
    - block (quadra): ≥ 1
    - side (lado):    A..T
    - row (fila):     ≥ 1
    - level (andar):  ≥ 1

    Load:
    - current_load is a cache updated by the lifecycle services with F()
    - The database guarantees 0 ≤ current_load ≤ max_capacity
    - Use recalculate() for audit/correction

    Slots are never deleted while referenced; deactivate them instead.
    """

    chamber = models.ForeignKey(
        'seedman.Chamber',
        on_delete=models.PROTECT,
        related_name='slots',
        verbose_name=_('Câmara'),
    )

    block = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
        verbose_name=_('Quadra'),
    )
    side = models.CharField(
        max_length=1,
        choices=SIDE_CHOICES,
        verbose_name=_('Lado'),
    )
    row = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
        verbose_name=_('Fila'),
    )
    level = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
        verbose_name=_('Andar'),
    )
    code = models.CharField(
        max_length=40,
        blank=True,
        db_index=True,
        verbose_name=_('Código'),
        help_text=_('Gerado a partir das coordenadas (ex: Q1-LA-F1-A1)'),
    )

    max_capacity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        default=Decimal('1000'),
        validators=[MinValueValidator(Decimal('1'))],
        verbose_name=_('Capacidade máxima (kg)'),
    )
    current_load = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        default=Decimal('0'),
        verbose_name=_('Carga atual (kg)'),
    )

    is_active = models.BooleanField(
        default=True,
        verbose_name=_('Ativa'),
        help_text=_('Localizações inativas não recebem lotes.'),
    )
    metadata = models.JSONField(
        default=dict,
        blank=True,
        verbose_name=_('Metadados'),
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = SlotQuerySet.as_manager()

    class Meta:
        verbose_name = _('Localização')
        verbose_name_plural = _('Localizações')
        ordering = ['chamber', 'block', 'side', 'row', 'level']
        constraints = [
            models.UniqueConstraint(
                fields=['chamber', 'block', 'side', 'row', 'level'],
                name='unique_slot_coordinate',
            ),
            models.UniqueConstraint(
                fields=['chamber', 'code'],
                name='unique_slot_code_per_chamber',
            ),
            models.CheckConstraint(
                condition=Q(current_load__gte=0) & Q(current_load__lte=models.F('max_capacity')),
                name='slot_load_within_capacity',
            ),
            models.CheckConstraint(
                condition=Q(max_capacity__gt=0),
                name='slot_capacity_positive',
            ),
        ]

    def save(self, *args, **kwargs):
        self.side = (self.side or '').upper()
        self.code = build_slot_code(self.block, self.side, self.row, self.level)
        update_fields = kwargs.get('update_fields')
        if update_fields is not None and 'code' not in update_fields:
            if {'block', 'side', 'row', 'level'} & set(update_fields):
                kwargs['update_fields'] = list(update_fields) + ['code']
        super().save(*args, **kwargs)

    # ══════════════════════════════════════════════════════════════
    # PROPERTIES
    # ══════════════════════════════════════════════════════════════

    @property
    def coordinates(self) -> tuple[int, str, int, int]:
        return (self.block, self.side, self.row, self.level)

    @property
    def is_occupied(self) -> bool:
        return self.current_load > 0

    @property
    def available_capacity(self) -> Decimal:
        return max(self.max_capacity - self.current_load, Decimal('0'))

    @property
    def occupancy_percentage(self) -> int:
        if not self.max_capacity:
            return 0
        return round(self.current_load / self.max_capacity * 100)

    @property
    def capacity_status(self) -> str:
        """empty / low / medium / high / full."""
        pct = self.occupancy_percentage
        if pct == 0:
            return 'empty'
        if pct < 50:
            return 'low'
        if pct < 80:
            return 'medium'
        if pct < 100:
            return 'high'
        return 'full'

    # ══════════════════════════════════════════════════════════════
    # METHODS
    # ══════════════════════════════════════════════════════════════

    def can_accommodate(self, mass) -> bool:
        return self.current_load + Decimal(str(mass)) <= self.max_capacity

    def distance_to(self, other) -> int:
        """Manhattan distance over (block, side, row, level)."""
        return (
            abs(self.block - other.block)
            + abs(ord(self.side) - ord(other.side))
            + abs(self.row - other.row)
            + abs(self.level - other.level)
        )

    def recalculate(self) -> Decimal:
        """
        Recalculate current_load from the active lots stored here.

        Use for:
        - Integrity audit
        - Correction after detected inconsistency

        Returns:
            New calculated load
        """
        total = self.lots.filter(status__in=ACTIVE_LOT_STATUSES).aggregate(
            t=Coalesce(Sum('total_mass'), Decimal('0'))
        )['t']

        if total != self.current_load:
            old = self.current_load
            self.current_load = total
            self.save(update_fields=['current_load', 'updated_at'])
            logger.warning(
                f"Slot {self.code} recalculated: {old} → {total} "
                f"(diff: {total - old})"
            )

        return total

    def __str__(self) -> str:
        return f"{self.chamber} / {self.code}"
