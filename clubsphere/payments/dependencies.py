"""
Fournisseurs FastAPI des composants de paiement.
Chaque requête reçoit des composants construits explicitement à partir des clients
partagés de l'application (Supabase, Stripe); les tests les remplacent via
app.dependency_overrides.
"""
from fastapi import Depends, Request
from supabase import Client

from clubsphere.config import (
    CHECKOUT_CANCEL_PATH,
    CHECKOUT_SUCCESS_PATH,
    CLIENT_URL,
    STRIPE_CURRENCY,
    STRIPE_MAX_RETRIES,
    STRIPE_SECRET_KEY,
    STRIPE_TIMEOUT_SECONDS,
    STRIPE_WEBHOOK_SECRET,
)
from clubsphere.infra.supabase_client import get_store
from .ledger import EntitlementLedger
from .service import CheckoutInitiator, PaymentConfirmationResolver
from .stripe_client import StripeProvider

def create_payment_provider() -> StripeProvider:
    return StripeProvider(
        api_key=STRIPE_SECRET_KEY,
        webhook_secret=STRIPE_WEBHOOK_SECRET,
        timeout=STRIPE_TIMEOUT_SECONDS,
        max_retries=STRIPE_MAX_RETRIES,
    )

def get_payment_provider(request: Request) -> StripeProvider:
    provider = getattr(request.app.state, "payment_provider", None)
    if provider is None:
        provider = create_payment_provider()
        request.app.state.payment_provider = provider
    return provider

def get_ledger(store: Client = Depends(get_store)) -> EntitlementLedger:
    return EntitlementLedger(store)

def get_checkout_initiator(
    store: Client = Depends(get_store),
    provider: StripeProvider = Depends(get_payment_provider),
    ledger: EntitlementLedger = Depends(get_ledger),
) -> CheckoutInitiator:
    return CheckoutInitiator(
        store,
        provider,
        ledger,
        success_url=f"{CLIENT_URL}{CHECKOUT_SUCCESS_PATH}",
        cancel_url=f"{CLIENT_URL}{CHECKOUT_CANCEL_PATH}",
        currency=STRIPE_CURRENCY,
    )

def get_confirmation_resolver(
    provider: StripeProvider = Depends(get_payment_provider),
    ledger: EntitlementLedger = Depends(get_ledger),
) -> PaymentConfirmationResolver:
    return PaymentConfirmationResolver(provider, ledger)
