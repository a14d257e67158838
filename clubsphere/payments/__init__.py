"""
Module 'payments' (feature-first): point d'entrée public.
Réunit logique tarifaire, metadata Stripe, client Stripe, registre des droits et services.
"""

from .models import MEMBERSHIP, EVENT, PURCHASE_KINDS, PurchaseState, Entitlement, CommitResult
from .pricing import to_minor_units, from_minor_units, make_line_item
from .metadata import make_metadata, extract_metadata_from_session, transaction_id_of
from .stripe_client import StripeProvider
from .ledger import EntitlementLedger, one_year_after
from .service import CheckoutInitiator, PaymentConfirmationResolver, build_entitlement

__all__ = [
    # models
    "MEMBERSHIP",
    "EVENT",
    "PURCHASE_KINDS",
    "PurchaseState",
    "Entitlement",
    "CommitResult",
    # pricing
    "to_minor_units",
    "from_minor_units",
    "make_line_item",
    # metadata
    "make_metadata",
    "extract_metadata_from_session",
    "transaction_id_of",
    # stripe
    "StripeProvider",
    # ledger
    "EntitlementLedger",
    "one_year_after",
    # services
    "CheckoutInitiator",
    "PaymentConfirmationResolver",
    "build_entitlement",
]
