"""
Registre des droits (Entitlement Ledger).

Écrit la paire (paiement, adhésion|inscription) au plus une fois par transaction_id.
PostgREST ne fournit pas de transaction multi-tables: chaque écriture est une insertion
conditionnelle dont l'unicité est garantie par un index, et la violation d'index
(ConflictError) est le signal autoritaire « déjà écrit », y compris entre deux
confirmations concurrentes. Les pré-vérifications du résolveur évitent seulement
des écritures inutiles.

Ordre d'écriture:
1) le paiement « réserve » le transaction_id;
2) le droit est inséré (ou relu s'il existe).
Si 2) échoue après 1), une nouvelle confirmation retrouve le paiement et ré-applique
le droit manquant: l'utilisateur ne reste jamais payé-mais-sans-droit de façon durable.

Une adhésion 'active' dont expiry_date est passée ne compte plus comme droit:
au renouvellement elle passe en 'expired' avant l'insertion de la nouvelle.
"""
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Tuple
import logging

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta
from supabase import Client

from clubsphere.errors import ConflictError, StorageError
from . import repository
from .models import MEMBERSHIP, CommitResult, Entitlement

logger = logging.getLogger(__name__)

def one_year_after(moment: datetime) -> datetime:
    """Échéance annuelle calendaire (29/02 -> 28/02 l'année suivante)."""
    return moment + relativedelta(years=1)

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

def is_lapsed(membership: Optional[Dict[str, Any]], now: datetime) -> bool:
    """Vrai si l'adhésion a une échéance lisible strictement passée."""
    value = (membership or {}).get("expiry_date")
    if not value:
        return False
    try:
        expiry = date_parser.isoparse(str(value))
    except (ValueError, OverflowError):
        return False
    if expiry.tzinfo is None:
        expiry = expiry.replace(tzinfo=timezone.utc)
    return expiry < now

# module clubsphere.payments.ledger
class EntitlementLedger:
    def __init__(self, store: Client, clock: Callable[[], datetime] = _utcnow):
        self.store = store
        self.clock = clock

    # --- lectures ---

    def find_payment(self, transaction_id: str) -> Optional[dict]:
        return repository.find_payment_by_transaction(self.store, transaction_id)

    def find_entitlement(self, kind: str, user_email: str, target_id: str) -> Optional[dict]:
        """Droit en cours pour (utilisateur, cible); une adhésion échue est ignorée."""
        if kind == MEMBERSHIP:
            row = repository.find_active_membership(self.store, user_email, target_id)
            if row and is_lapsed(row, self.clock()):
                return None
            return row
        return repository.find_registration(self.store, user_email, target_id)

    def find_by_payment(self, kind: str, transaction_id: str) -> Optional[dict]:
        if kind == MEMBERSHIP:
            return repository.find_membership_by_payment(self.store, transaction_id)
        return repository.find_registration_by_payment(self.store, transaction_id)

    # --- écritures ---

    def record_payment(self, payment_record: Dict[str, Any]) -> Tuple[dict, bool]:
        """Insère le paiement seul. Retour: (ligne, déjà_existant)."""
        try:
            return repository.insert_payment(self.store, payment_record), False
        except ConflictError:
            existing = self.find_payment(payment_record.get("transaction_id"))
            if existing is None:
                raise StorageError("Paiement en conflit mais introuvable")
            return existing, True

    def commit_purchase(self, payment_record: Dict[str, Any], entitlement: Entitlement) -> CommitResult:
        """
        Persiste un paiement confirmé et le droit associé.
        - Ré-invocation avec le même transaction_id: renvoie le paiement stocké (duplicate=True)
          et garantit la présence du droit.
        - Toute autre erreur de stockage: StorageError (jamais silencieuse).
        """
        transaction_id = payment_record.get("transaction_id")
        if not transaction_id:
            raise StorageError("transaction_id manquant")
        payment, duplicate = self.record_payment(payment_record)
        row, already_granted = self.ensure_entitlement(entitlement)
        if duplicate:
            logger.info("ledger.commit_purchase duplicate transaction_id=%s", transaction_id)
            return CommitResult(row, payment=payment, duplicate=True)

        if already_granted:
            logger.warning(
                "ledger.commit_purchase payment recorded for existing %s user=%s target=%s transaction_id=%s",
                entitlement.kind, entitlement.user_email, entitlement.target_id, transaction_id,
            )
        logger.info(
            "ledger.commit_purchase committed %s user=%s target=%s transaction_id=%s",
            entitlement.kind, entitlement.user_email, entitlement.target_id, transaction_id,
        )
        return CommitResult(row, payment=payment, duplicate=False)

    def grant_entitlement(self, entitlement: Entitlement) -> CommitResult:
        """Droit sans paiement (tarif nul): même insertion conditionnelle, sans ligne payments."""
        row, duplicate = self.ensure_entitlement(entitlement)
        if not duplicate:
            logger.info(
                "ledger.grant_entitlement granted %s user=%s target=%s",
                entitlement.kind, entitlement.user_email, entitlement.target_id,
            )
        return CommitResult(row, duplicate=duplicate)

    def ensure_entitlement(self, entitlement: Entitlement) -> Tuple[dict, bool]:
        """
        Insère le droit s'il n'existe pas. Retour: (ligne, déjà_existant).
        L'index unique tranche entre écrivains concurrents: le perdant relit la ligne gagnante.
        Une adhésion active échue qui bloque l'index est passée en 'expired', puis
        l'insertion est retentée une fois.
        """
        try:
            return self._insert_entitlement(entitlement), False
        except ConflictError:
            pass
        existing = self._existing_row(entitlement)
        if entitlement.kind == MEMBERSHIP and is_lapsed(existing, self.clock()):
            repository.expire_membership(self.store, existing.get("id"))
            logger.info(
                "ledger.ensure_entitlement renewing membership user=%s club=%s previous_expiry=%s",
                entitlement.user_email, entitlement.target_id, existing.get("expiry_date"),
            )
            try:
                return self._insert_entitlement(entitlement), False
            except ConflictError:
                existing = self._existing_row(entitlement)
        return existing, True

    def _insert_entitlement(self, entitlement: Entitlement) -> dict:
        if entitlement.kind == MEMBERSHIP:
            return repository.insert_membership(self.store, entitlement.row)
        return repository.insert_registration(self.store, entitlement.row)

    def _existing_row(self, entitlement: Entitlement) -> dict:
        if entitlement.kind == MEMBERSHIP:
            existing = repository.find_active_membership(self.store, entitlement.user_email, entitlement.target_id)
        else:
            existing = repository.find_registration(self.store, entitlement.user_email, entitlement.target_id)
        if existing is None:
            raise StorageError("Droit en conflit mais introuvable")
        return existing
