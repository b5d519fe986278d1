"""
Seedman configuration.

Usage in settings.py:
    SEEDMAN = {
        "DUPLICATE_WINDOW_SECONDS": 120,
        "AUTO_ALLOCATE": True,
        "ROLE_RESOLVER": "seedman.adapters.groups.GroupRoleResolver",
        "ALLOCATION_WEIGHTS": {"fit": 0.6, "adjacency": 0.3, "environment": 0.1},
    }
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from django.conf import settings


def _default_role_permissions() -> dict[str, tuple[str, ...]]:
    return {
        'intake': ('admin',),
        'add_stock': ('admin',),
        'partial_exit': ('admin',),
        'remove': ('admin',),
        'request_withdrawal': ('admin',),
        'cancel_withdrawal': ('admin',),
        'assign_slot': ('operator',),
        'move': ('operator',),
        'partial_move': ('operator',),
        'confirm_withdrawal': ('operator',),
        'register_movement': ('admin', 'operator'),
        'verify_movement': ('admin', 'operator'),
    }


def _default_allocation_weights() -> dict[str, float]:
    return {'fit': 0.5, 'adjacency': 0.3, 'environment': 0.2}


@dataclass
class SeedmanSettings:
    """Seedman configuration settings."""

    # Trailing window for duplicate movement suppression (0 = disabled)
    DUPLICATE_WINDOW_SECONDS: int = 120

    # Let intake pick a slot when none is given
    AUTO_ALLOCATE: bool = False

    # Weights of the allocation score components
    ALLOCATION_WEIGHTS: dict[str, float] = field(default_factory=_default_allocation_weights)

    # Manhattan distance considered "adjacent"
    ADJACENCY_RADIUS: int = 1

    # Warn when an operation uses more than this fraction of a slot's capacity
    CAPACITY_SAFETY_MARGIN: Decimal = Decimal('0.05')

    # Environmental suitability tolerances (°C and % RH)
    TEMPERATURE_TOLERANCE: Decimal = Decimal('2')
    HUMIDITY_TOLERANCE: Decimal = Decimal('5')

    # Upper bound for the mass of a single unit (kg)
    MAX_UNIT_MASS: Decimal = Decimal('1000')

    # Status given to a lot whose partial exit consumes everything
    PARTIAL_EXIT_TERMINAL_STATUS: str = 'REMOVIDO'

    # Minimum reason length for manual movements
    MANUAL_REASON_MIN_LENGTH: int = 3

    # Role resolution backend (dotted path)
    ROLE_RESOLVER: str = 'seedman.adapters.groups.GroupRoleResolver'

    # Check ROLE_PERMISSIONS before every mutating operation
    ENFORCE_ROLES: bool = True

    # Withdrawal confirmer must differ from the requester
    REQUIRE_DISTINCT_CONFIRMER: bool = True

    # Operation name -> roles allowed to run it
    ROLE_PERMISSIONS: dict[str, tuple[str, ...]] = field(default_factory=_default_role_permissions)


def get_seedman_settings() -> SeedmanSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "SEEDMAN", {})
    return SeedmanSettings(**{
        k: v for k, v in user_settings.items()
        if k in SeedmanSettings.__dataclass_fields__
    })


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_seedman_settings(), name)


seedman_settings = _LazySettings()
