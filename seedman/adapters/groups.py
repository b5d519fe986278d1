"""
Seedman Groups Adapter — roles from Django auth groups.

A user holds a role when they belong to a group with the same name
("admin", "operator", "viewer"). Custom user models exposing a
``role`` attribute are honored as well. Superusers hold every role.
"""

from seedman.models.enums import Role

KNOWN_ROLES = frozenset(Role.values)


class GroupRoleResolver:
    """RoleResolver backed by django.contrib.auth groups."""

    def roles_for(self, user) -> frozenset[str]:
        if user is None or not getattr(user, 'is_authenticated', False):
            return frozenset()
        if getattr(user, 'is_superuser', False):
            return KNOWN_ROLES

        roles = set()
        role = getattr(user, 'role', None)
        if role in KNOWN_ROLES:
            roles.add(role)
        if hasattr(user, 'groups'):
            names = user.groups.filter(name__in=KNOWN_ROLES).values_list('name', flat=True)
            roles.update(names)
        return frozenset(roles)
