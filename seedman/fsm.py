"""
Lot state machine.

The transition table is the single source of truth for which status
changes an operation may perform. Services call ensure_transition()
before writing a new status.
"""

from seedman.exceptions import LotError
from seedman.models.enums import LotStatus

TRANSITIONS: dict[str, frozenset[str]] = {
    LotStatus.CADASTRADO: frozenset({LotStatus.AGUARDANDO_LOCACAO, LotStatus.LOCADO}),
    LotStatus.AGUARDANDO_LOCACAO: frozenset({LotStatus.LOCADO}),
    # LOCADO -> LOCADO covers move, partial move, partial exit and add stock
    LotStatus.LOCADO: frozenset({
        LotStatus.LOCADO,
        LotStatus.AGUARDANDO_RETIRADA,
        LotStatus.REMOVIDO,
        LotStatus.RETIRADO,
    }),
    LotStatus.AGUARDANDO_RETIRADA: frozenset({LotStatus.RETIRADO, LotStatus.LOCADO}),
    LotStatus.RETIRADO: frozenset(),
    LotStatus.REMOVIDO: frozenset(),
}


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def ensure_transition(lot, target: str, operation: str = '') -> None:
    """Raise INVALID_TRANSITION unless lot.status -> target is allowed."""
    if not can_transition(lot.status, target):
        raise LotError(
            'INVALID_TRANSITION',
            lot_id=lot.pk,
            current=lot.status,
            target=str(target),
            operation=operation,
        )


def ensure_status(lot, expected, operation: str = '') -> None:
    """Raise INVALID_TRANSITION unless the lot is in one of the expected statuses."""
    if isinstance(expected, str):
        expected = (expected,)
    if lot.status not in expected:
        raise LotError(
            'INVALID_TRANSITION',
            lot_id=lot.pk,
            current=lot.status,
            expected=[str(s) for s in expected],
            operation=operation,
        )
