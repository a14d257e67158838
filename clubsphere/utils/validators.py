from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID

from clubsphere.errors import ValidationError

def parse_uuid(value: Any, label: str = "identifiant") -> str:
    """Normalise un identifiant en UUID canonique (minuscules, avec tirets)."""
    try:
        return str(UUID(str(value or "").strip()))
    except (ValueError, AttributeError):
        raise ValidationError(f"{label} invalide")

def parse_fee(value: Any) -> Decimal:
    """
    Convertit un tarif (str|int|float|Decimal|None) en Decimal.
    - None / "" -> 0 (gratuit)
    - Refuse les valeurs non numériques et les fractions de centime (ex: 10.005)
    """
    if value is None or value == "":
        return Decimal("0")
    try:
        fee = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError("Tarif invalide")
    if not fee.is_finite():
        raise ValidationError("Tarif invalide")
    if fee != fee.quantize(Decimal("0.01")):
        raise ValidationError("Tarif avec fraction de centime refusé")
    return fee
