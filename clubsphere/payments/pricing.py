"""
Logique tarifaire pure (pas de Stripe, pas de DB).
Montants Stripe en unités mineures (centimes); montants stockés en unités majeures.
"""
from decimal import Decimal
from typing import Any, Dict

from clubsphere.errors import InvalidSessionError
from .models import MEMBERSHIP

# module clubsphere.payments.pricing
def to_minor_units(fee: Decimal) -> int:
    """
    Convertit un tarif validé (Decimal, au plus 2 décimales) en centimes.
    - 25.00 -> 2500
    - Tronque vers zéro; parse_fee a déjà refusé les fractions de centime.
    """
    return int(fee * 100)

def from_minor_units(amount: Any) -> Decimal:
    """
    Centimes Stripe (amount_total) -> Decimal à 2 décimales (2500 -> 25.00).
    Montant absent, non entier ou négatif: InvalidSessionError (jamais de paiement à 0 par défaut).
    """
    if amount is None or isinstance(amount, bool):
        raise InvalidSessionError("Montant de session manquant")
    if isinstance(amount, float) and not amount.is_integer():
        raise InvalidSessionError("Montant de session invalide")
    try:
        minor = int(amount)
    except (TypeError, ValueError):
        raise InvalidSessionError("Montant de session invalide")
    if minor < 0:
        raise InvalidSessionError("Montant de session invalide")
    return (Decimal(minor) / 100).quantize(Decimal("0.01"))

def product_name(purchase_kind: str, target_name: str) -> str:
    if purchase_kind == MEMBERSHIP:
        return f"{target_name} Membership Fee"
    return f"{target_name} Registration Fee"

def make_line_item(purchase_kind: str, target_name: str, unit_amount: int, currency: str) -> Dict[str, Any]:
    """Une ligne Stripe 'price_data' (quantité 1) pour une adhésion ou une inscription."""
    return {
        "quantity": 1,
        "price_data": {
            "currency": currency,
            "unit_amount": unit_amount,
            "product_data": {"name": product_name(purchase_kind, target_name or "ClubSphere")},
        },
    }
