"""
Sérialisation/désérialisation des métadonnées Stripe.
Les métadonnées sont le seul canal qui ramène le contexte métier (cible, acheteur, nature)
jusqu'à la confirmation: l'API de session Stripe ne renvoie rien d'autre d'applicatif.
"""
from typing import Any, Dict

from clubsphere.errors import InvalidSessionError, ValidationError
from clubsphere.utils.validators import parse_uuid
from .models import MEMBERSHIP, PURCHASE_KINDS

# Stripe limite chaque valeur de metadata à 500 caractères
_MAX_VALUE = 500

# module clubsphere.payments.metadata
def make_metadata(
    *,
    purchase_kind: str,
    target_id: str,
    target_name: str,
    subject_email: str,
    club_id: str,
) -> Dict[str, str]:
    return {
        "purchase_kind": purchase_kind,
        "target_id": str(target_id),
        "target_name": (target_name or "")[:_MAX_VALUE],
        "subject_email": subject_email,
        "club_id": str(club_id or ""),
    }

def extract_metadata_from_session(session: Dict[str, Any]) -> Dict[str, str]:
    """
    Extrait et valide les métadonnées d'une session Stripe Checkout.
    - Accepte aussi l'ancien format {clubId, clubName, userEmail} (adhésions uniquement).
    - Soulève InvalidSessionError si la cible, la nature ou l'acheteur manquent.
    """
    meta = (session or {}).get("metadata") or {}
    purchase_kind = meta.get("purchase_kind") or (MEMBERSHIP if meta.get("clubId") else "")
    target_id = meta.get("target_id") or meta.get("clubId") or ""
    subject_email = (meta.get("subject_email") or meta.get("userEmail") or "").strip()
    if purchase_kind not in PURCHASE_KINDS or not target_id or not subject_email:
        raise InvalidSessionError("Métadonnées de session incomplètes")
    try:
        target_id = parse_uuid(target_id)
        if purchase_kind == MEMBERSHIP:
            club_id = target_id
        else:
            club_id = parse_uuid(meta.get("club_id"))
    except ValidationError:
        raise InvalidSessionError("Métadonnées de session invalides")
    return {
        "purchase_kind": purchase_kind,
        "target_id": target_id,
        "target_name": meta.get("target_name") or meta.get("clubName") or "",
        "subject_email": subject_email,
        "club_id": club_id,
    }

def transaction_id_of(session: Dict[str, Any]) -> str:
    """
    Identifiant de transaction (clé d'idempotence): le payment_intent de la session.
    - payment_intent peut être développé (objet) ou absent (paiement à 0): repli sur l'id de session.
    """
    intent = (session or {}).get("payment_intent")
    if isinstance(intent, dict):
        intent = intent.get("id")
    return str(intent or (session or {}).get("id") or "")
