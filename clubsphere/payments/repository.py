"""
Accès aux données pour la feature 'payments': paiements, adhésions, inscriptions.
Les insertions ne vérifient rien elles-mêmes: l'unicité est portée par les index
(voir infra/schema.sql) et une violation remonte en ConflictError.
"""
from typing import Any, Dict, List, Optional
import logging

from supabase import Client

from clubsphere.errors import ConflictError, StorageError
from clubsphere.infra.supabase_client import first_row, is_unique_violation

logger = logging.getLogger(__name__)

PAYMENTS_TABLE = "payments"
MEMBERSHIPS_TABLE = "memberships"
REGISTRATIONS_TABLE = "eventRegistrations"

# module clubsphere.payments.repository
def _insert(store: Client, table: str, row: Dict[str, Any]) -> dict:
    try:
        res = store.table(table).insert(row).execute()
    except Exception as e:
        if is_unique_violation(e):
            raise ConflictError(f"Doublon dans {table}")
        logger.exception("payments.repository insert failed table=%s", table)
        raise StorageError(f"Écriture impossible dans {table}")
    return first_row(res) or dict(row)

def _find_one(store: Client, table: str, filters: Dict[str, Any]) -> Optional[dict]:
    try:
        query = store.table(table).select("*")
        for column, value in filters.items():
            query = query.eq(column, value)
        res = query.limit(1).execute()
    except Exception:
        logger.exception("payments.repository lookup failed table=%s filters=%s", table, filters)
        raise StorageError(f"Lecture impossible dans {table}")
    return first_row(res)

# --- payments ---

def find_payment_by_transaction(store: Client, transaction_id: str) -> Optional[dict]:
    return _find_one(store, PAYMENTS_TABLE, {"transaction_id": transaction_id})

def insert_payment(store: Client, row: Dict[str, Any]) -> dict:
    """Insère un paiement; ConflictError si transaction_id existe déjà."""
    return _insert(store, PAYMENTS_TABLE, row)

def list_payments(store: Client, email: Optional[str] = None) -> List[dict]:
    """Historique des paiements (tous si email est None), plus récents d'abord."""
    try:
        query = store.table(PAYMENTS_TABLE).select("*")
        if email:
            query = query.eq("user_email", email)
        res = query.order("created_at", desc=True).execute()
        return res.data or []
    except Exception:
        logger.exception("payments.repository.list_payments failed email=%s", email)
        raise StorageError("Lecture des paiements impossible")

# --- memberships ---

def find_active_membership(store: Client, user_email: str, club_id: str) -> Optional[dict]:
    return _find_one(store, MEMBERSHIPS_TABLE, {"user_email": user_email, "club_id": club_id, "status": "active"})

def insert_membership(store: Client, row: Dict[str, Any]) -> dict:
    """ConflictError si une adhésion active existe déjà pour (user_email, club_id)."""
    return _insert(store, MEMBERSHIPS_TABLE, row)

def expire_membership(store: Client, membership_id: str) -> List[dict]:
    """Passe une adhésion active échue au statut 'expired' (libère l'index unique)."""
    try:
        res = (
            store.table(MEMBERSHIPS_TABLE)
            .update({"status": "expired"})
            .eq("id", membership_id)
            .eq("status", "active")
            .execute()
        )
        return res.data or []
    except Exception:
        logger.exception("payments.repository.expire_membership failed id=%s", membership_id)
        raise StorageError("Mise à jour de l'adhésion impossible")

def find_membership_by_payment(store: Client, payment_id: str) -> Optional[dict]:
    """Adhésion écrite par ce paiement, quel que soit son statut."""
    return _find_one(store, MEMBERSHIPS_TABLE, {"payment_id": payment_id})

def list_active_memberships(store: Client, user_email: str) -> List[dict]:
    try:
        res = (
            store.table(MEMBERSHIPS_TABLE)
            .select("*")
            .eq("user_email", user_email)
            .eq("status", "active")
            .execute()
        )
        return res.data or []
    except Exception:
        logger.exception("payments.repository.list_active_memberships failed email=%s", user_email)
        raise StorageError("Lecture des adhésions impossible")

# --- eventRegistrations ---

def find_registration(store: Client, user_email: str, event_id: str) -> Optional[dict]:
    return _find_one(store, REGISTRATIONS_TABLE, {"user_email": user_email, "event_id": event_id})

def insert_registration(store: Client, row: Dict[str, Any]) -> dict:
    """ConflictError si (user_email, event_id) est déjà inscrit."""
    return _insert(store, REGISTRATIONS_TABLE, row)

def find_registration_by_payment(store: Client, payment_id: str) -> Optional[dict]:
    return _find_one(store, REGISTRATIONS_TABLE, {"payment_id": payment_id})

def list_registrations(store: Client, user_email: str, status: str = "registered") -> List[dict]:
    try:
        res = (
            store.table(REGISTRATIONS_TABLE)
            .select("*")
            .eq("user_email", user_email)
            .eq("status", status)
            .execute()
        )
        return res.data or []
    except Exception:
        logger.exception("payments.repository.list_registrations failed email=%s", user_email)
        raise StorageError("Lecture des inscriptions impossible")
