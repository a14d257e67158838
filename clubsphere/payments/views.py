# module clubsphere.payments.views

"""Endpoints de l'user story Adhésion/Inscription payante.
- /create-checkout-session, /checkout: démarre un achat (Stripe ou droit gratuit direct).
- /payment-success, /payment-confirm: confirmation par le client au retour de Stripe.
- /webhook/stripe: confirmation par Stripe (signature vérifiée).
- /payments: historique des paiements.
Sécurité:
- require_capability: contrôle déclaratif du rôle de l'appelant.
- optional_rate_limit: limite la fréquence de création de sessions et de confirmations.
"""
from typing import Any, Dict, Optional
import logging

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, ConfigDict, Field
from starlette.concurrency import run_in_threadpool
from supabase import Client

from clubsphere.errors import ForbiddenError, ValidationError
from clubsphere.infra.supabase_client import get_store
from clubsphere.utils.rate_limit import optional_rate_limit
from clubsphere.utils.security import (
    CHECKOUT_CREATE,
    PAYMENTS_CONFIRM,
    PAYMENTS_READ_ANY,
    PAYMENTS_READ_OWN,
    has_capability,
    require_capability,
)
from . import repository as payments_repository
from .dependencies import get_checkout_initiator, get_confirmation_resolver, get_payment_provider
from .models import MEMBERSHIP
from .service import CheckoutInitiator, PaymentConfirmationResolver
from .stripe_client import StripeProvider

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Payments API"])


class MembershipCheckoutRequest(BaseModel):
    # clubName / membershipFee envoyés par d'anciens clients sont ignorés: le tarif vient du club stocké
    model_config = ConfigDict(populate_by_name=True, extra="ignore")
    club_id: str = Field(alias="clubId")


class CheckoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    kind: str
    target_id: str = Field(alias="targetId")


class ConfirmRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    session_id: Optional[str] = Field(default=None, alias="sessionId")


@router.post("/create-checkout-session", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_membership_checkout(
    body: MembershipCheckoutRequest,
    user: Dict[str, Any] = Depends(require_capability(CHECKOUT_CREATE)),
    initiator: CheckoutInitiator = Depends(get_checkout_initiator),
):
    """Crée une session Checkout Stripe pour l'adhésion à un club.
    - Entrée JSON: { "clubId": "<uuid>" }
    - Réponse: {"url": "..."} (ou droit accordé directement si cotisation nulle)
    """
    return initiator.initiate(MEMBERSHIP, user, body.club_id)


@router.post("/checkout", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_checkout(
    body: CheckoutRequest,
    user: Dict[str, Any] = Depends(require_capability(CHECKOUT_CREATE)),
    initiator: CheckoutInitiator = Depends(get_checkout_initiator),
):
    """Variante générique: { "kind": "membership"|"event", "targetId": "<uuid>" }."""
    return initiator.initiate(body.kind, user, body.target_id)


@router.patch("/payment-success", dependencies=[Depends(optional_rate_limit(times=30, seconds=60))])
def payment_success(
    session_id: str = Query(default=""),
    user: Dict[str, Any] = Depends(require_capability(PAYMENTS_CONFIRM)),
    resolver: PaymentConfirmationResolver = Depends(get_confirmation_resolver),
):
    """Confirmation au retour de Stripe (?session_id=...).
    - {"success": false} si la session n'est pas encore payée
    - Idempotent: les appels répétés renvoient le même succès
    """
    if not session_id:
        raise ValidationError("Missing session_id")
    return resolver.confirm(session_id, user)


@router.post("/payment-confirm", dependencies=[Depends(optional_rate_limit(times=30, seconds=60))])
def payment_confirm(
    session_id: Optional[str] = Query(default=None),
    body: Optional[ConfirmRequest] = None,
    user: Dict[str, Any] = Depends(require_capability(PAYMENTS_CONFIRM)),
    resolver: PaymentConfirmationResolver = Depends(get_confirmation_resolver),
):
    """Variante POST: accepte session_id en query ou JSON body {"sessionId": "..."}."""
    session_id = session_id or (body.session_id if body else None)
    if not session_id:
        raise ValidationError("Missing session_id")
    return resolver.confirm(session_id, user)


@router.post("/webhook/stripe", include_in_schema=False)
async def webhook_stripe(
    request: Request,
    provider: StripeProvider = Depends(get_payment_provider),
    resolver: PaymentConfirmationResolver = Depends(get_confirmation_resolver),
):
    """Webhook Stripe: consomme checkout.session.completed pour écrire le droit.
    - Signature: Stripe-Signature + STRIPE_WEBHOOK_SECRET (400 sinon)
    - Réponses: {"status": "ok", ...}, {"status": "pending"} ou {"status": "ignored"}
    """
    payload = await request.body()
    event = provider.construct_event(payload, request.headers.get("stripe-signature"))
    result = await run_in_threadpool(resolver.handle_event, event)
    logger.info("payments.webhook type=%s status=%s", event.get("type"), result.get("status"))
    return result


@router.get("/payments")
def list_payments(
    email: Optional[str] = Query(default=None),
    user: Dict[str, Any] = Depends(require_capability(PAYMENTS_READ_OWN)),
    store: Client = Depends(get_store),
):
    """Historique des paiements (capacité payments:read_own requise).
    - Sans email: ceux de l'appelant (tous pour un admin)
    - Email d'un tiers: réservé aux rôles ayant payments:read_any
    """
    can_read_any = has_capability(user, PAYMENTS_READ_ANY)
    if email and email.lower() != (user.get("email") or "").lower() and not can_read_any:
        raise ForbiddenError("Accès interdit")
    if not email and not can_read_any:
        email = user.get("email")
    return payments_repository.list_payments(store, email)
