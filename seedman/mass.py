"""
Mass arithmetic helpers.

Masses are kilograms stored as Decimal with three decimal places.
Floats are converted through str() so 0.1 stays 0.1.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

MASS_QUANT = Decimal('0.001')
ZERO = Decimal('0.000')


def to_mass(value) -> Decimal:
    """Coerce int/float/str/Decimal to a kg Decimal quantized to grams."""
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError):
            raise ValueError(f"Massa inválida: {value!r}") from None
    if not result.is_finite():
        raise ValueError(f"Massa inválida: {value!r}")
    return result.quantize(MASS_QUANT, rounding=ROUND_HALF_UP)


def total_mass(quantity: int, unit_mass) -> Decimal:
    """quantity × unit_mass, rounded to grams."""
    return to_mass(Decimal(quantity) * to_mass(unit_mass))
