"""
Lots Service — The single public interface for all lot operations.

Usage:
    from seedman import lots, LotError

    result = lots.intake(soja, 'L-2024-001', 10, Decimal('50'), user=admin, slot=s1)
    lots.move(result.lot, s2, user=operador, expected_version=result.lot.version)
    req = lots.request_withdrawal(result.lot, user=admin).request
    lots.confirm_withdrawal(req, user=operador)
"""

from seedman.services.allocation import AllocationAdvisor
from seedman.services.ledger import MovementLedger
from seedman.services.lifecycle import LotLifecycle
from seedman.services.queries import LotQueries
from seedman.services.slots import SlotRegistry
from seedman.services.withdrawals import WithdrawalWorkflow


class Lots(
    LotLifecycle,
    WithdrawalWorkflow,
    MovementLedger,
    SlotRegistry,
    AllocationAdvisor,
    LotQueries,
):
    """
    Single interface for all lot operations.

    IMPORTANT: All state-changing methods run in one transaction.atomic()
    block touching Lot, Slot and Movement rows together, with the lot
    row locked before any slot row. See each method's docstring.
    """
