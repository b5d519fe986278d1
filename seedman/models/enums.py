"""
Enums for Seedman models.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class LotStatus(models.TextChoices):
    """
    Lot lifecycle status.

    CADASTRADO:          Registered, transient until intake finishes
    AGUARDANDO_LOCACAO:  Waiting for a slot
    LOCADO:              Stored in a slot
    AGUARDANDO_RETIRADA: Withdrawal requested, awaiting confirmation
    RETIRADO:            Withdrawn (terminal)
    REMOVIDO:            Removed (terminal)
    """
    CADASTRADO = 'CADASTRADO', _('Cadastrado')
    AGUARDANDO_LOCACAO = 'AGUARDANDO_LOCACAO', _('Aguardando locação')
    LOCADO = 'LOCADO', _('Locado')
    AGUARDANDO_RETIRADA = 'AGUARDANDO_RETIRADA', _('Aguardando retirada')
    RETIRADO = 'RETIRADO', _('Retirado')
    REMOVIDO = 'REMOVIDO', _('Removido')


# Statuses that hold a slot
ACTIVE_LOT_STATUSES = (LotStatus.LOCADO, LotStatus.AGUARDANDO_RETIRADA)

TERMINAL_LOT_STATUSES = (LotStatus.RETIRADO, LotStatus.REMOVIDO)


class MovementKind(models.TextChoices):
    """Ledger entry kind."""
    ENTRY = 'entry', _('Entrada')
    EXIT = 'exit', _('Saída')
    TRANSFER = 'transfer', _('Transferência')
    ADJUSTMENT = 'adjustment', _('Ajuste')


class WithdrawalKind(models.TextChoices):
    TOTAL = 'TOTAL', _('Total')
    PARCIAL = 'PARCIAL', _('Parcial')


class WithdrawalStatus(models.TextChoices):
    """Withdrawal request status."""
    PENDENTE = 'PENDENTE', _('Pendente')       # Awaiting confirmer
    CONFIRMADO = 'CONFIRMADO', _('Confirmado') # Stock left the chamber
    CANCELADO = 'CANCELADO', _('Cancelado')    # Lot back to LOCADO


class ChamberStatus(models.TextChoices):
    ACTIVE = 'active', _('Ativa')
    MAINTENANCE = 'maintenance', _('Em manutenção')
    INACTIVE = 'inactive', _('Inativa')


class Role(models.TextChoices):
    """Principal roles understood by the authorization boundary."""
    ADMIN = 'admin', _('Administrador')
    OPERATOR = 'operator', _('Operador')
    VIEWER = 'viewer', _('Visualizador')
