"""
Role Resolution Protocol — Interface for the authorization boundary.

Seedman defines this protocol; the host project's user/role system implements it.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class RoleResolver(Protocol):
    """
    Protocol for role resolution.

    Seedman only needs to know which of its roles
    ("admin", "operator", "viewer") a principal holds.
    """

    def roles_for(self, user) -> frozenset[str]:
        """
        Return the roles held by the user.

        Args:
            user: Acting principal (usually a Django user)

        Returns:
            Set of role names; empty if the user has none
        """
        ...
