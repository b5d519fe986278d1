"""
Lot services — modular organization of lot operations.

Re-exports all service classes:
    from seedman.services import LotLifecycle, WithdrawalWorkflow, MovementLedger
"""

from seedman.services.allocation import AllocationAdvisor
from seedman.services.ledger import MovementLedger
from seedman.services.lifecycle import LotLifecycle
from seedman.services.queries import LotQueries
from seedman.services.results import AllocationSuggestion, CapacityCheck, LotResult, WithdrawalResult
from seedman.services.slots import SlotRegistry
from seedman.services.withdrawals import WithdrawalWorkflow

__all__ = [
    'AllocationAdvisor',
    'MovementLedger',
    'LotLifecycle',
    'LotQueries',
    'SlotRegistry',
    'WithdrawalWorkflow',
    'AllocationSuggestion',
    'CapacityCheck',
    'LotResult',
    'WithdrawalResult',
]
