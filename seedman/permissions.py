"""
Authorization boundary for lifecycle operations.

Operations name themselves ("move", "confirm_withdrawal", ...) and
SEEDMAN['ROLE_PERMISSIONS'] lists the roles allowed to run each one.
"""

from seedman.adapters import get_role_resolver
from seedman.conf import seedman_settings
from seedman.exceptions import LotError


def roles_of(user) -> frozenset[str]:
    return get_role_resolver().roles_for(user)


def require_principal(user) -> None:
    if user is None:
        raise LotError('VALIDATION_ERROR', 'Usuário responsável é obrigatório', field='user')


def require_role(user, operation: str) -> None:
    """
    Check that user may run operation.

    Raises:
        LotError('VALIDATION_ERROR'): No acting principal
        LotError('PERMISSION_DENIED'): None of the user's roles is allowed
    """
    require_principal(user)
    if not seedman_settings.ENFORCE_ROLES:
        return

    allowed = seedman_settings.ROLE_PERMISSIONS.get(operation)
    if allowed is None:
        return

    roles = roles_of(user)
    if not roles & set(allowed):
        raise LotError(
            'PERMISSION_DENIED',
            operation=operation,
            required=list(allowed),
            roles=sorted(roles),
        )
