"""
Seedman Protocols.

Defines interfaces for external system integration.
"""

from seedman.protocols.roles import RoleResolver

__all__ = [
    "RoleResolver",
]
