"""
Django Seedman — Motor de Ciclo de Vida de Lotes de Sementes.

Armazenamento de lotes em câmaras frias, com localizações de
capacidade limitada, histórico imutável de movimentações e retirada
em duas etapas (solicitação e confirmação).

Uso:
    from seedman import lots, LotError

    r = lots.intake(soja, 'L-001', 10, Decimal('50'), user=admin, slot=s1)
    lots.partial_move(r.lot, 4, s2, user=operador)
    lots.request_withdrawal(r.lot, user=admin)
"""


def __getattr__(name):
    """Lazy import to avoid circular imports during app loading."""
    if name == 'lots':
        from seedman.service import Lots
        return Lots
    elif name == 'LotError':
        from seedman.exceptions import LotError
        return LotError
    elif name == 'Chamber':
        from seedman.models.chamber import Chamber
        return Chamber
    elif name == 'SeedType':
        from seedman.models.seed_type import SeedType
        return SeedType
    elif name == 'Slot':
        from seedman.models.slot import Slot
        return Slot
    elif name == 'Lot':
        from seedman.models.lot import Lot
        return Lot
    elif name == 'Movement':
        from seedman.models.movement import Movement
        return Movement
    elif name == 'WithdrawalRequest':
        from seedman.models.withdrawal import WithdrawalRequest
        return WithdrawalRequest
    elif name == 'LotStatus':
        from seedman.models.enums import LotStatus
        return LotStatus
    elif name == 'MovementKind':
        from seedman.models.enums import MovementKind
        return MovementKind
    elif name == 'WithdrawalKind':
        from seedman.models.enums import WithdrawalKind
        return WithdrawalKind
    elif name == 'WithdrawalStatus':
        from seedman.models.enums import WithdrawalStatus
        return WithdrawalStatus
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'lots',
    'LotError',
    'Chamber',
    'SeedType',
    'Slot',
    'Lot',
    'Movement',
    'WithdrawalRequest',
    'LotStatus',
    'MovementKind',
    'WithdrawalKind',
    'WithdrawalStatus',
]

__version__ = '0.1.0'
