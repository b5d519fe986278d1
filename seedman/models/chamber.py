"""
Chamber model — Refrigerated room that holds slots.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _

from seedman.models.enums import ChamberStatus


class Chamber(models.Model):
    """
    Cold storage chamber.

    Chambers are provisioned outside the lifecycle engine. Only their
    status and environmental targets are read here: slots in a chamber
    that is not active cannot receive lots.
    """

    name = models.CharField(
        max_length=100,
        unique=True,
        verbose_name=_('Nome'),
    )
    description = models.TextField(
        blank=True,
        default='',
        verbose_name=_('Descrição'),
    )
    status = models.CharField(
        max_length=20,
        choices=ChamberStatus.choices,
        default=ChamberStatus.ACTIVE,
        db_index=True,
        verbose_name=_('Status'),
    )
    target_temperature = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name=_('Temperatura alvo (°C)'),
    )
    target_humidity = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name=_('Umidade alvo (%)'),
    )
    metadata = models.JSONField(
        default=dict,
        blank=True,
        verbose_name=_('Metadados'),
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Câmara')
        verbose_name_plural = _('Câmaras')
        ordering = ['name']

    @property
    def is_active(self) -> bool:
        return self.status == ChamberStatus.ACTIVE

    def __str__(self) -> str:
        return self.name
