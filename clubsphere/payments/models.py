"""
Types du flux de paiement: natures d'achat, état d'une tentative, résultat d'écriture.
"""
from enum import Enum
from typing import Any, Dict, Optional

MEMBERSHIP = "membership"
EVENT = "event"
PURCHASE_KINDS = (MEMBERSHIP, EVENT)


class PurchaseState(str, Enum):
    """INITIATED -> PENDING_PAYMENT -> {PAID_CONFIRMED | ABANDONED}; PAID_CONFIRMED est terminal."""
    INITIATED = "INITIATED"
    PENDING_PAYMENT = "PENDING_PAYMENT"
    PAID_CONFIRMED = "PAID_CONFIRMED"
    ABANDONED = "ABANDONED"


def state_of_session(session: Dict[str, Any]) -> PurchaseState:
    """État d'une session Stripe non encore confirmée localement."""
    if (session or {}).get("status") == "expired":
        return PurchaseState.ABANDONED
    return PurchaseState.PENDING_PAYMENT


class Entitlement:
    """Droit à écrire: une adhésion (memberships) ou une inscription (eventRegistrations)."""

    def __init__(self, kind: str, row: Dict[str, Any]):
        self.kind = kind
        self.row = row

    @property
    def user_email(self) -> str:
        return self.row.get("user_email") or ""

    @property
    def target_id(self) -> str:
        key = "club_id" if self.kind == MEMBERSHIP else "event_id"
        return str(self.row.get(key) or "")


class CommitResult:
    def __init__(
        self,
        entitlement: Dict[str, Any],
        payment: Optional[Dict[str, Any]] = None,
        duplicate: bool = False,
    ):
        self.entitlement = entitlement
        self.payment = payment
        self.duplicate = duplicate
