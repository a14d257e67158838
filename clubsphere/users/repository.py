"""Accès aux données (Supabase) pour la table users.
Le rôle stocké ici est le seul discriminant d'autorisation (member|clubManager|admin).
"""
from typing import Any, Dict, Optional
from datetime import datetime, timezone
import logging

from supabase import Client

from clubsphere.errors import ConflictError, StorageError
from clubsphere.infra.supabase_client import first_row, is_unique_violation

logger = logging.getLogger(__name__)

USERS_TABLE = "users"

def get_user_by_email(store: Client, email: str) -> Optional[dict]:
    """Récupère un utilisateur par email, None si absent."""
    if not email:
        return None
    try:
        res = store.table(USERS_TABLE).select("*").eq("email", email).limit(1).execute()
    except Exception:
        logger.exception("users.repository.get_user_by_email failed email=%s", email)
        raise StorageError("Lecture utilisateur impossible")
    return first_row(res)

def create_user(store: Client, data: Dict[str, Any]) -> dict:
    """Insère un profil; le rôle est toujours forcé à 'member' (promotion hors périmètre)."""
    payload = {
        **data,
        "role": "member",
        "created_at": datetime.now(timezone.utc).isoformat(),
    }
    try:
        res = store.table(USERS_TABLE).insert(payload).execute()
    except Exception as e:
        if is_unique_violation(e):
            raise ConflictError("Utilisateur existe déjà")
        logger.exception("users.repository.create_user failed email=%s", data.get("email"))
        raise StorageError("Création utilisateur impossible")
    return first_row(res) or payload
