"""
Seedman Adapters.

Implementations of protocols for external systems, and the loader
for the configured role resolver.

Usage:
    from seedman.adapters import get_role_resolver

    resolver = get_role_resolver()
    resolver.roles_for(request.user)  # frozenset({'operator'})

Settings:
    SEEDMAN = {
        "ROLE_RESOLVER": "seedman.adapters.groups.GroupRoleResolver",
    }
"""

from __future__ import annotations

import logging
import threading

from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string

from seedman.conf import seedman_settings
from seedman.protocols.roles import RoleResolver

logger = logging.getLogger(__name__)


# Cached resolver instance
_lock = threading.Lock()
_role_resolver: RoleResolver | None = None


def get_role_resolver() -> RoleResolver:
    """
    Return the configured role resolver.

    Raises:
        ImproperlyConfigured: If ROLE_RESOLVER is empty, fails to import,
            or does not implement RoleResolver
    """
    global _role_resolver

    if _role_resolver is None:
        with _lock:
            if _role_resolver is None:  # double-checked
                resolver_path = seedman_settings.ROLE_RESOLVER

                if not resolver_path:
                    raise ImproperlyConfigured(
                        "SEEDMAN['ROLE_RESOLVER'] must be configured. "
                        "Example: 'seedman.adapters.groups.GroupRoleResolver'"
                    )

                try:
                    resolver_class = import_string(resolver_path)
                except ImportError as e:
                    raise ImproperlyConfigured(
                        f"Failed to import role resolver '{resolver_path}': {e}"
                    ) from e

                resolver = resolver_class()
                if not isinstance(resolver, RoleResolver):
                    raise ImproperlyConfigured(
                        f"'{resolver_path}' does not implement roles_for(user)"
                    )
                _role_resolver = resolver
                logger.debug("Loaded role resolver: %s", resolver_path)

    return _role_resolver


def reset_role_resolver() -> None:
    """Reset the cached resolver. Useful for testing."""
    global _role_resolver
    _role_resolver = None


__all__ = [
    "get_role_resolver",
    "reset_role_resolver",
]
