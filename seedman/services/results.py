"""
Result objects returned by the lot services.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from seedman.models import Lot, Movement, Slot, WithdrawalRequest


@dataclass(frozen=True)
class CapacityCheck:
    """Non-raising capacity analysis of a slot for an incoming mass."""

    slot_id: int
    can_accommodate: bool
    current_load: Decimal
    max_capacity: Decimal
    incoming: Decimal
    available: Decimal
    utilization_after: Decimal  # percentage, 0..100+
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class AllocationSuggestion:
    """Best slot found by the allocation advisor."""

    slot: Slot
    score: float
    breakdown: dict[str, float] = field(default_factory=dict)
    alternatives: tuple[tuple[Slot, float], ...] = ()

    def as_dict(self) -> dict[str, Any]:
        return {
            'slot_id': self.slot.pk,
            'slot_code': self.slot.code,
            'score': round(self.score, 4),
            'breakdown': {k: round(v, 4) for k, v in self.breakdown.items()},
            'alternatives': [
                {'slot_id': s.pk, 'slot_code': s.code, 'score': round(sc, 4)}
                for s, sc in self.alternatives
            ],
        }


@dataclass(frozen=True)
class LotResult:
    """
    Outcome of a lifecycle operation.

    fragment is set by partial_move (the new lot); allocation is set
    when intake asked the advisor for a slot.
    """

    lot: Lot
    movement: Movement | None = None
    fragment: Lot | None = None
    allocation: AllocationSuggestion | None = None
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class WithdrawalResult:
    """Outcome of a withdrawal workflow step."""

    request: WithdrawalRequest
    lot: Lot
    movement: Movement | None = None
