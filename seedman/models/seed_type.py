"""
SeedType model — Kind of seed stored in lots.
"""

from datetime import date, timedelta
from decimal import Decimal

from django.db import models
from django.utils.translation import gettext_lazy as _


class SeedType(models.Model):
    """
    Seed species/variety with its storage requirements.

    Examples:
        SeedType.objects.create(name='Soja', optimal_temperature=10,
                                optimal_humidity=55, max_storage_days=365)
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
    optimal_temperature = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name=_('Temperatura ideal (°C)'),
    )
    optimal_humidity = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name=_('Umidade ideal (%)'),
    )
    max_storage_days = models.PositiveIntegerField(
        null=True,
        blank=True,
        verbose_name=_('Armazenamento máximo (dias)'),
        help_text=_('Usado para calcular a validade quando não informada.'),
    )
    is_active = models.BooleanField(
        default=True,
        verbose_name=_('Ativo'),
    )
    metadata = models.JSONField(
        default=dict,
        blank=True,
        verbose_name=_('Metadados'),
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Tipo de Semente')
        verbose_name_plural = _('Tipos de Semente')
        ordering = ['name']

    def suits(self, chamber, temperature_tolerance=Decimal('2'),
              humidity_tolerance=Decimal('5')) -> bool | None:
        """
        Does the chamber's environment suit this seed type?

        Returns None when either side lacks the data to decide.
        """
        if chamber is None:
            return None

        checks = []
        if self.optimal_temperature is not None and chamber.target_temperature is not None:
            diff = abs(chamber.target_temperature - self.optimal_temperature)
            checks.append(diff <= Decimal(str(temperature_tolerance)))
        if self.optimal_humidity is not None and chamber.target_humidity is not None:
            diff = abs(chamber.target_humidity - self.optimal_humidity)
            checks.append(diff <= Decimal(str(humidity_tolerance)))

        if not checks:
            return None
        return all(checks)

    def expiration_for(self, entry_date: date) -> date | None:
        if not self.max_storage_days:
            return None
        return entry_date + timedelta(days=self.max_storage_days)

    def __str__(self) -> str:
        return self.name
