"""
Cas d'usage 'payments': orchestre repository, pricing, stripe, metadata et registre.
- CheckoutInitiator: prépare la session Stripe (ou accorde directement un droit gratuit).
- PaymentConfirmationResolver: confirme une session payée et écrit le droit une seule fois.
"""
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional
import logging

from supabase import Client

from clubsphere.clubs import repository as clubs_repository
from clubsphere.events import repository as events_repository
from clubsphere.errors import (
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from clubsphere.utils.validators import parse_fee, parse_uuid
from . import metadata as meta
from . import pricing
from .ledger import EntitlementLedger, one_year_after
from .models import (
    EVENT,
    MEMBERSHIP,
    PURCHASE_KINDS,
    Entitlement,
    PurchaseState,
    state_of_session,
)
from .stripe_client import StripeProvider

logger = logging.getLogger(__name__)

COMPLETED_EVENT_TYPES = {
    "checkout.session.completed",
    "checkout.session.async_payment_succeeded",
}

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

def build_entitlement(
    purchase_kind: str,
    subject_email: str,
    target_id: str,
    club_id: str,
    payment_id: Optional[str],
    now: datetime,
) -> Entitlement:
    """Ligne memberships (active, échéance +1 an) ou eventRegistrations (registered)."""
    if purchase_kind == MEMBERSHIP:
        return Entitlement(MEMBERSHIP, {
            "user_email": subject_email,
            "club_id": target_id,
            "status": "active",
            "payment_id": payment_id,
            "joined_at": now.isoformat(),
            "expiry_date": one_year_after(now).isoformat(),
        })
    return Entitlement(EVENT, {
        "user_email": subject_email,
        "event_id": target_id,
        "club_id": club_id,
        "status": "registered",
        "payment_id": payment_id,
        "registered_at": now.isoformat(),
    })

def _entitlement_key(kind: str) -> str:
    return "membership" if kind == MEMBERSHIP else "registration"


class CheckoutInitiator:
    def __init__(
        self,
        store: Client,
        provider: StripeProvider,
        ledger: EntitlementLedger,
        *,
        success_url: str,
        cancel_url: str,
        currency: str = "usd",
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.provider = provider
        self.ledger = ledger
        self.success_url = success_url
        self.cancel_url = cancel_url
        self.currency = currency
        self.clock = clock

    def load_target(self, purchase_kind: str, target_id: str) -> Dict[str, Any]:
        """
        Charge la cible d'achat et la normalise en {id, name, fee, club_id}.
        - Adhésion: club existant et approuvé, tarif membership_fee.
        - Événement: événement existant; tarif event_fee seulement si is_paid.
        """
        target_id = parse_uuid(target_id, "Identifiant de cible")
        if purchase_kind == MEMBERSHIP:
            club = clubs_repository.get_club(self.store, target_id)
            if not club or club.get("status") != "approved":
                raise NotFoundError("Club introuvable")
            return {
                "id": target_id,
                "name": club.get("club_name") or "",
                "fee": parse_fee(club.get("membership_fee")),
                "club_id": target_id,
            }
        event = events_repository.get_event(self.store, target_id)
        if not event:
            raise NotFoundError("Événement introuvable")
        fee = parse_fee(event.get("event_fee")) if event.get("is_paid") else parse_fee(0)
        return {
            "id": target_id,
            "name": event.get("title") or "",
            "fee": fee,
            "club_id": str(event.get("club_id") or ""),
        }

    def initiate(self, purchase_kind: str, identity: Dict[str, Any], target_id: str) -> Dict[str, Any]:
        """
        Démarre un achat pour l'utilisateur authentifié.
        - Tarif <= 0: aucun appel Stripe, le droit est accordé directement.
        - Sinon: session Stripe Checkout, rien n'est écrit localement (achat provisoire).
        Retour: {"url", "sessionId"} ou {"url": None, "free": True, ...}
        """
        if purchase_kind not in PURCHASE_KINDS:
            raise ValidationError("Type d'achat invalide")
        email = (identity or {}).get("email")
        if not email:
            raise UnauthorizedError()
        target = self.load_target(purchase_kind, target_id)

        held = self.ledger.find_entitlement(purchase_kind, email, target["id"])
        if held:
            logger.info(
                "payments.checkout already entitled kind=%s target=%s user=%s",
                purchase_kind, target["id"], email,
            )
            return {
                "url": None,
                "free": target["fee"] <= 0,
                "duplicate": True,
                "message": "Droit déjà accordé",
                _entitlement_key(purchase_kind): held,
            }

        if target["fee"] <= 0:
            entitlement = build_entitlement(
                purchase_kind, email, target["id"], target["club_id"], None, self.clock()
            )
            result = self.ledger.grant_entitlement(entitlement)
            return {
                "url": None,
                "free": True,
                "duplicate": result.duplicate,
                _entitlement_key(purchase_kind): result.entitlement,
            }

        line_item = pricing.make_line_item(
            purchase_kind, target["name"], pricing.to_minor_units(target["fee"]), self.currency
        )
        metadata = meta.make_metadata(
            purchase_kind=purchase_kind,
            target_id=target["id"],
            target_name=target["name"],
            subject_email=email,
            club_id=target["club_id"],
        )
        sep = "&" if "?" in self.success_url else "?"
        session = self.provider.create_session(
            line_items=[line_item],
            metadata=metadata,
            success_url=f"{self.success_url}{sep}session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=self.cancel_url,
            customer_email=email,
        )
        logger.info(
            "payments.checkout created session_id=%s kind=%s target=%s user=%s",
            session.get("id"), purchase_kind, target["id"], email,
        )
        return {
            "url": session.get("url"),
            "sessionId": session.get("id"),
            "state": PurchaseState.PENDING_PAYMENT.value,
        }


class PaymentConfirmationResolver:
    def __init__(
        self,
        provider: StripeProvider,
        ledger: EntitlementLedger,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.provider = provider
        self.ledger = ledger
        self.clock = clock

    def confirm(self, session_id: str, identity: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Confirme une session Stripe au nom de l'utilisateur authentifié.
        - Session non payée: {"success": False} sans écriture (le client peut repasser plus tard).
        - Session d'un autre utilisateur: ForbiddenError, sans écriture.
        - Appels répétés: même résultat, une seule ligne payments.
        """
        if not session_id:
            raise ValidationError("session_id manquant")
        email = (identity or {}).get("email")
        if not email:
            raise UnauthorizedError()

        session = self.provider.retrieve_session(session_id)
        payment_status = session.get("payment_status") or ""
        if payment_status != "paid":
            return {
                "success": False,
                "payment_status": payment_status,
                "state": state_of_session(session).value,
            }

        metadata = meta.extract_metadata_from_session(session)
        if metadata["subject_email"].lower() != email.strip().lower():
            logger.warning(
                "payments.confirm forbidden session_id=%s caller=%s", session_id, email
            )
            raise ForbiddenError("Session appartenant à un autre utilisateur")
        return self._settle(session, metadata)

    def handle_event(self, event: Dict[str, Any]) -> Dict[str, Any]:
        """
        Webhook Stripe (signature déjà vérifiée): confirme la session désignée par l'événement.
        La session est relue chez Stripe; le contenu de l'événement ne sert qu'à trouver son id.
        """
        event_type = (event or {}).get("type")
        if event_type not in COMPLETED_EVENT_TYPES:
            return {"status": "ignored", "type": event_type}
        session_ref = ((event.get("data") or {}).get("object") or {}).get("id")
        session = self.provider.retrieve_session(session_ref)
        if (session.get("payment_status") or "") != "paid":
            return {"status": "pending", "type": event_type}
        metadata = meta.extract_metadata_from_session(session)
        result = self._settle(session, metadata)
        return {"status": "ok", "type": event_type, **result}

    def _settle(self, session: Dict[str, Any], metadata: Dict[str, str]) -> Dict[str, Any]:
        kind = metadata["purchase_kind"]
        transaction_id = meta.transaction_id_of(session)
        now = self.clock()
        entitlement = build_entitlement(
            kind,
            metadata["subject_email"],
            metadata["target_id"],
            metadata["club_id"],
            transaction_id,
            now,
        )
        key = _entitlement_key(kind)

        existing_payment = self.ledger.find_payment(transaction_id)
        if existing_payment:
            # une session déjà traitée ne renouvelle pas une adhésion échue
            row = self.ledger.find_by_payment(kind, transaction_id)
            if row is None:
                row, _ = self.ledger.ensure_entitlement(entitlement)
            return self._success(transaction_id, existing_payment, key, row, "Paiement déjà traité")

        amount = pricing.from_minor_units(session.get("amount_total"))
        payment_record = {
            "transaction_id": transaction_id,
            "user_email": metadata["subject_email"],
            "amount": float(amount),
            "type": kind,
            "club_id": metadata["club_id"],
            "club_name": metadata["target_name"] if kind == MEMBERSHIP else None,
            "event_id": metadata["target_id"] if kind == EVENT else None,
            "status": session.get("payment_status"),
            "created_at": now.isoformat(),
        }

        granted = self.ledger.find_entitlement(kind, metadata["subject_email"], metadata["target_id"])
        if granted:
            # le débit est encaissé: il est consigné même si le droit existait déjà
            payment, _ = self.ledger.record_payment(payment_record)
            logger.warning(
                "payments.confirm charge for already granted %s user=%s target=%s transaction_id=%s",
                kind, metadata["subject_email"], metadata["target_id"], transaction_id,
            )
            return self._success(transaction_id, payment, key, granted, "Droit déjà accordé")

        result = self.ledger.commit_purchase(payment_record, entitlement)
        message = "Paiement déjà traité" if result.duplicate else None
        return self._success(transaction_id, result.payment, key, result.entitlement, message)

    @staticmethod
    def _success(transaction_id, payment, key, entitlement, message=None) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "success": True,
            "transactionId": transaction_id,
            "duplicate": message is not None,
            "state": PurchaseState.PAID_CONFIRMED.value,
            "payment": payment,
            key: entitlement,
        }
        if message:
            body["message"] = message
        return body
