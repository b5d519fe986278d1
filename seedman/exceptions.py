"""
Exceptions for Seedman.

All errors are LotError with a structured code for programmatic handling.
"""

from decimal import Decimal
from typing import Any


class LotError(Exception):
    """
    Structured exception for lot operations.

    Usage:
        try:
            lots.move(lote, s2, user=operador)
        except LotError as e:
            if e.code == 'CAPACITY_EXCEEDED':
                print(f"Só cabem {e.available} kg")

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable message
        data: Additional context data
    """

    _default_messages = {
        'VALIDATION_ERROR': 'Dados inválidos para a operação',
        'INVALID_TRANSITION': 'Transição de status não permitida',
        'CAPACITY_EXCEEDED': 'Capacidade da localização excedida',
        'SLOT_OCCUPIED': 'Localização já ocupada por outro lote',
        'INSUFFICIENT_QUANTITY': 'Quantidade insuficiente no lote',
        'DUPLICATE_REQUEST': 'Já existe uma solicitação de retirada pendente',
        'DUPLICATE_MOVEMENT': 'Movimentação duplicada detectada',
        'STALE_VERSION': 'O lote foi alterado por outra operação',
        'NOT_FOUND': 'Registro não encontrado',
        'NO_SLOT_AVAILABLE': 'Nenhuma localização disponível',
        'PERMISSION_DENIED': 'Permissão negada para esta operação',
    }

    # Stable HTTP-like status per code
    _statuses = {
        'VALIDATION_ERROR': 400,
        'INVALID_TRANSITION': 409,
        'CAPACITY_EXCEEDED': 422,
        'SLOT_OCCUPIED': 409,
        'INSUFFICIENT_QUANTITY': 422,
        'DUPLICATE_REQUEST': 409,
        'DUPLICATE_MOVEMENT': 409,
        'STALE_VERSION': 409,
        'NOT_FOUND': 404,
        'NO_SLOT_AVAILABLE': 422,
        'PERMISSION_DENIED': 403,
    }

    def __init__(self, code: str, message: str | None = None, **data):
        self.code = code
        self.message = message or self._default_messages.get(code, code)
        self.data = data
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    @property
    def status(self) -> int:
        return self._statuses.get(self.code, 400)

    @property
    def retryable(self) -> bool:
        """Only version conflicts are worth retrying after a fresh read."""
        return self.code == 'STALE_VERSION'

    @property
    def available(self) -> Decimal:
        """Shortcut for data['available']."""
        return self.data.get('available', Decimal('0'))

    @property
    def requested(self) -> Decimal:
        """Shortcut for data['requested']."""
        return self.data.get('requested', Decimal('0'))

    def as_dict(self) -> dict[str, Any]:
        """Serialize to dict (useful for APIs)."""
        return {
            'code': self.code,
            'message': self.message,
            'status': self.status,
            'data': {
                k: str(v) if isinstance(v, Decimal) else v
                for k, v in self.data.items()
            }
        }
