"""
Seedman Models.

Core models for seed lot storage:
- Chamber: Refrigerated room
- SeedType: What is stored, with storage requirements
- Slot: Capacity-bounded position inside a chamber
- Lot: Seed lot and its lifecycle status
- Movement: Immutable ledger of lot movements
- WithdrawalRequest: Two-party withdrawal workflow
"""

from seedman.models.chamber import Chamber
from seedman.models.enums import (
    ACTIVE_LOT_STATUSES,
    TERMINAL_LOT_STATUSES,
    ChamberStatus,
    LotStatus,
    MovementKind,
    Role,
    WithdrawalKind,
    WithdrawalStatus,
)
from seedman.models.lot import Lot
from seedman.models.movement import Movement
from seedman.models.seed_type import SeedType
from seedman.models.slot import Slot, build_slot_code
from seedman.models.withdrawal import WithdrawalRequest

__all__ = [
    'ACTIVE_LOT_STATUSES',
    'TERMINAL_LOT_STATUSES',
    'ChamberStatus',
    'LotStatus',
    'MovementKind',
    'Role',
    'WithdrawalKind',
    'WithdrawalStatus',
    'Chamber',
    'SeedType',
    'Slot',
    'build_slot_code',
    'Lot',
    'Movement',
    'WithdrawalRequest',
]
