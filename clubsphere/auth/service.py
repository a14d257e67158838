"""
Vérification d'identité: jeton Bearer -> {id, email, role}.
Le jeton est validé par Supabase Auth; le rôle applicatif vient de la table users.
"""
from typing import Any, Dict, Optional
import logging

from supabase import Client

from clubsphere.errors import UnauthorizedError
from clubsphere.users import repository as users_repository
from .repository import get_user_from_access_token

logger = logging.getLogger(__name__)

ROLES = ("member", "clubManager", "admin")

def determine_role(profile: Optional[Dict[str, Any]]) -> str:
    """Rôle connu du profil, 'member' par défaut (profil absent ou rôle inconnu)."""
    role = str((profile or {}).get("role") or "")
    return role if role in ROLES else "member"


class IdentityVerifier:
    def __init__(self, store: Client):
        self.store = store

    def verify(self, access_token: str) -> Dict[str, Any]:
        """
        Normalise l'utilisateur issu de supabase.auth.get_user(access_token):
        - Retourne {id, email, role}
        - UnauthorizedError si le jeton est invalide/expiré ou sans email
        """
        if not access_token:
            raise UnauthorizedError()
        try:
            raw = get_user_from_access_token(self.store, access_token)
        except Exception as e:
            logger.info("auth.verify rejected token: %s", e)
            raise UnauthorizedError("Session expirée, veuillez vous connecter")
        email = raw.get("email")
        if not raw.get("id") or not email:
            raise UnauthorizedError("Session expirée, veuillez vous connecter")
        profile = users_repository.get_user_by_email(self.store, email)
        return {"id": raw.get("id"), "email": email, "role": determine_role(profile)}
